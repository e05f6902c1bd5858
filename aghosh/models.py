from datetime import datetime
from enum import Enum
from flask_security import UserMixin, RoleMixin
from aghosh.extensions import db

# Association table for many-to-many relationship between users and roles
roles_users = db.Table('roles_users',
    db.Column('user_id', db.Integer(), db.ForeignKey('user.id')),
    db.Column('role_id', db.Integer(), db.ForeignKey('role.id'))
)

# ========== Enums ==========

class DonationCategory(str, Enum):
    """Causes a one-time donation can be earmarked for"""
    HEALTH = 'health'
    EDUCATION = 'education'
    FOOD = 'food'
    CLOTHING = 'clothing'
    GENERAL = 'general'

    @classmethod
    def all(cls):
        """Return all values as a list"""
        return [category.value for category in cls]

    @classmethod
    def coerce(cls, value):
        """Return a valid category value, falling back to 'general'"""
        if value in cls.all():
            return value
        return cls.GENERAL.value


class DonationType(str, Enum):
    """Religious / accounting type of a donation"""
    ZAKAT = 'zakat'
    SADAQAH = 'sadaqah'
    CHARITY = 'charity'
    FUNDS = 'funds'

    @classmethod
    def all(cls):
        return [donation_type.value for donation_type in cls]

    @classmethod
    def coerce(cls, value):
        if value in cls.all():
            return value
        return cls.SADAQAH.value

    @property
    def label(self):
        return self.value.capitalize()


class PaymentMethod(str, Enum):
    CARD = 'card'
    BANK = 'bank'

    @classmethod
    def all(cls):
        return [method.value for method in cls]


class PaymentStatus(str, Enum):
    """Payment state of a sponsorship"""
    PENDING = 'pending'
    COMPLETED = 'completed'
    FAILED = 'failed'

    @classmethod
    def all(cls):
        return [status.value for status in cls]


class AttendanceStatus(str, Enum):
    """RSVP given with an event donation"""
    ATTENDING = 'attending'
    NOT_ATTENDING = 'not_attending'
    MAYBE = 'maybe'

    @classmethod
    def all(cls):
        return [status.value for status in cls]


class SponsorshipStatus(str, Enum):
    ACTIVE = 'active'
    PAUSED = 'paused'
    ENDED = 'ended'

    @classmethod
    def all(cls):
        return [status.value for status in cls]


class Role(db.Model, RoleMixin):
    id = db.Column(db.Integer(), primary_key=True)
    name = db.Column(db.String(80), unique=True)
    description = db.Column(db.String(255))

    def __repr__(self):
        return f'<Role {self.name}>'


class User(db.Model, UserMixin):
    """Admin or donor account (distinguished by role)"""
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    full_name = db.Column(db.String(255))
    phone = db.Column(db.String(50))
    password = db.Column(db.String(255))
    active = db.Column(db.Boolean(), default=True)
    fs_uniquifier = db.Column(db.String(255), unique=True, nullable=False)
    confirmed_at = db.Column(db.DateTime())
    created_at = db.Column(db.DateTime(), default=datetime.utcnow)

    roles = db.relationship('Role', secondary=roles_users, backref=db.backref('users', lazy='dynamic'))

    @property
    def is_donor(self):
        return self.has_role('donor')

    def __repr__(self):
        return f'<User {self.email}>'


class Child(db.Model):
    """A child in the care home who can be sponsored"""
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    age = db.Column(db.Integer)
    gender = db.Column(db.String(20))
    bio = db.Column(db.Text)
    monthly_amount = db.Column(db.Integer)  # PKR
    is_sponsored = db.Column(db.Boolean(), default=False)
    created_at = db.Column(db.DateTime(), default=datetime.utcnow)

    sponsorships = db.relationship('Sponsorship', backref='child', lazy='dynamic')

    def __repr__(self):
        return f'<Child {self.name}>'


class Donation(db.Model):
    """One-time donation, created once per successfully completed payment"""
    id = db.Column(db.Integer, primary_key=True)
    donor_name = db.Column(db.String(255))
    email = db.Column(db.String(255))
    amount = db.Column(db.Integer, nullable=False)  # PKR, whatever currency the payer used
    category = db.Column(db.String(20), nullable=False, default=DonationCategory.GENERAL.value)
    donation_type = db.Column(db.String(20), default=DonationType.SADAQAH.value)
    is_anonymous = db.Column(db.Boolean(), default=False)
    payment_method = db.Column(db.String(20), nullable=False, default=PaymentMethod.CARD.value)
    is_recurring = db.Column(db.Boolean(), default=False)
    recurring_interval = db.Column(db.String(20))
    message = db.Column(db.Text)
    original_currency = db.Column(db.String(3))
    original_amount = db.Column(db.String(32))
    stripe_reference = db.Column(db.String(255), index=True)  # payment intent or checkout session id
    receipt_number = db.Column(db.String(64), unique=True)
    created_at = db.Column(db.DateTime(), default=datetime.utcnow)

    donor_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    donor = db.relationship('User', backref=db.backref('donations', lazy='dynamic'))

    __table_args__ = (
        db.CheckConstraint('amount > 0', name='ck_donation_amount_positive'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'donorName': self.donor_name,
            'email': self.email,
            'amount': self.amount,
            'category': self.category,
            'donationType': self.donation_type,
            'isAnonymous': self.is_anonymous,
            'paymentMethod': self.payment_method,
            'isRecurring': self.is_recurring,
            'recurringInterval': self.recurring_interval,
            'receiptNumber': self.receipt_number,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<Donation {self.amount} PKR from {self.donor_name or "Anonymous"} - {self.category}>'


class Sponsorship(db.Model):
    """Recurring monthly commitment to one child"""
    id = db.Column(db.Integer, primary_key=True)
    child_id = db.Column(db.Integer, db.ForeignKey('child.id'), nullable=False)
    donor_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    sponsor_name = db.Column(db.String(255), nullable=False)
    sponsor_email = db.Column(db.String(255), nullable=False)
    sponsor_phone = db.Column(db.String(50))
    monthly_amount = db.Column(db.Integer, nullable=False)  # PKR
    start_date = db.Column(db.DateTime(), default=datetime.utcnow)
    end_date = db.Column(db.DateTime())
    status = db.Column(db.String(20), default=SponsorshipStatus.ACTIVE.value)
    payment_method = db.Column(db.String(20), default=PaymentMethod.BANK.value)
    payment_status = db.Column(db.String(20), default=PaymentStatus.PENDING.value, index=True)
    stripe_payment_intent_id = db.Column(db.String(255), index=True)
    stripe_receipt_url = db.Column(db.String(500))
    local_receipt_number = db.Column(db.String(64), unique=True)
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime(), default=datetime.utcnow)

    donor = db.relationship('User', backref=db.backref('sponsorships', lazy='dynamic'))

    def to_dict(self):
        return {
            'id': self.id,
            'childId': self.child_id,
            'donorId': self.donor_id,
            'sponsorName': self.sponsor_name,
            'sponsorEmail': self.sponsor_email,
            'monthlyAmount': self.monthly_amount,
            'status': self.status,
            'paymentMethod': self.payment_method,
            'paymentStatus': self.payment_status,
            'stripePaymentIntentId': self.stripe_payment_intent_id,
            'stripeReceiptUrl': self.stripe_receipt_url,
            'localReceiptNumber': self.local_receipt_number,
            'startDate': self.start_date.isoformat() if self.start_date else None,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<Sponsorship child:{self.child_id} {self.monthly_amount} PKR - {self.payment_status}>'


class Event(db.Model):
    """Fundraising event donors contribute to when they RSVP"""
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    date = db.Column(db.DateTime())
    location = db.Column(db.String(255))
    is_active = db.Column(db.Boolean(), default=True)
    created_at = db.Column(db.DateTime(), default=datetime.utcnow)

    donations = db.relationship('EventDonation', backref='event', lazy='dynamic')

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'date': self.date.isoformat() if self.date else None,
            'location': self.location,
            'isActive': self.is_active,
        }

    def __repr__(self):
        return f'<Event {self.title}>'


class EventDonation(db.Model):
    """Contribution made with an event RSVP; created pending, completed by the webhook"""
    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(db.Integer, db.ForeignKey('event.id'), nullable=False, index=True)
    donor_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True, index=True)
    donor_name = db.Column(db.String(255), nullable=False)
    donor_email = db.Column(db.String(255), nullable=False)
    donor_phone = db.Column(db.String(50))
    amount = db.Column(db.Integer, nullable=False)  # PKR
    payment_method = db.Column(db.String(20), default=PaymentMethod.CARD.value)
    payment_status = db.Column(db.String(20), default=PaymentStatus.PENDING.value)
    attendance_status = db.Column(db.String(20), default=AttendanceStatus.ATTENDING.value)
    stripe_payment_intent_id = db.Column(db.String(255), index=True)
    stripe_receipt_url = db.Column(db.String(500))
    local_receipt_number = db.Column(db.String(64), unique=True)
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime(), default=datetime.utcnow)

    donor = db.relationship('User', backref=db.backref('event_donations', lazy='dynamic'))

    __table_args__ = (
        db.CheckConstraint('amount > 0', name='ck_event_donation_amount_positive'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'eventId': self.event_id,
            'donorId': self.donor_id,
            'donorName': self.donor_name,
            'donorEmail': self.donor_email,
            'amount': self.amount,
            'paymentMethod': self.payment_method,
            'paymentStatus': self.payment_status,
            'attendanceStatus': self.attendance_status,
            'stripePaymentIntentId': self.stripe_payment_intent_id,
            'stripeReceiptUrl': self.stripe_receipt_url,
            'localReceiptNumber': self.local_receipt_number,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }

    def receipt(self):
        """Receipt view data, shaped like a sponsorship receipt so one template renders both"""
        event = self.event
        return {
            'localReceiptNumber': self.local_receipt_number,
            'sponsorName': self.donor_name,
            'sponsorEmail': self.donor_email,
            'monthlyAmount': self.amount,
            'startDate': self.created_at.isoformat() if self.created_at else None,
            'paymentMethod': self.payment_method,
            'paymentStatus': self.payment_status,
            'stripeReceiptUrl': self.stripe_receipt_url,
            'child': {'name': event.title},
            'isEventDonation': True,
            'eventTitle': event.title,
            'eventDate': event.date.isoformat() if event.date else None,
            'eventLocation': event.location,
            'attendanceStatus': self.attendance_status,
        }

    def __repr__(self):
        return f'<EventDonation event:{self.event_id} {self.amount} PKR - {self.payment_status}>'


class ProcessedPayment(db.Model):
    """Idempotency ledger entry: an external payment id already turned into a record"""
    id = db.Column(db.Integer, primary_key=True)
    external_id = db.Column(db.String(255), unique=True, nullable=False)
    source = db.Column(db.String(32))  # confirm, verify, webhook, sponsorship
    claimed_at = db.Column(db.DateTime(), default=datetime.utcnow)

    def __repr__(self):
        return f'<ProcessedPayment {self.external_id} via {self.source}>'
