import hashlib
import hmac
import json
import time
from datetime import datetime

import pytest

from aghosh import create_app
from aghosh.cli import ensure_roles
from aghosh.container import get_container
from aghosh.extensions import db
from aghosh.models import Child, Event, EventDonation, Role, Sponsorship, PaymentStatus as SponsorshipPaymentStatus
from aghosh.payments.currency import to_minor_units
from aghosh.payments.errors import ValidationError
from aghosh.payments.gateway import (
    CheckoutSessionResult,
    PaymentGateway,
    PaymentIntentResult,
    PaymentStatus,
    StripeGateway,
)

WEBHOOK_SECRET = 'whsec_test_123'


def donation_metadata(pkr='5000', category='education', **overrides):
    metadata = {
        'type': 'donation',
        'category': category,
        'donationType': 'zakat',
        'donorName': 'Ayesha Khan',
        'donorEmail': 'ayesha@example.com',
        'isAnonymous': 'false',
        'message': '',
        'pkrEquivalent': pkr,
        'originalCurrency': 'pkr',
        'originalAmount': pkr,
    }
    metadata.update(overrides)
    return metadata


def sign_payload(payload, secret=WEBHOOK_SECRET, timestamp=None):
    """Build a Stripe-Signature header the way Stripe computes it"""
    timestamp = timestamp or int(time.time())
    signed = f'{timestamp}.'.encode() + payload
    signature = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f't={timestamp},v1={signature}'


def webhook_event(event_type, obj, event_id='evt_test_1'):
    return json.dumps({
        'id': event_id,
        'object': 'event',
        'type': event_type,
        'data': {'object': obj},
    }).encode()


class FakeGateway(PaymentGateway):
    """In-process stand-in for Stripe; webhook verification uses the real signature check"""

    def __init__(self, webhook_secret=WEBHOOK_SECRET):
        super().__init__()
        self.payments = {}
        self.receipts = {}
        self.created = []
        self.retrieved = []
        self.configured = True
        self._verifier = StripeGateway(
            secret_key='sk_test_123', publishable_key='pk_test_123', webhook_secret=webhook_secret
        )
        self._counter = 0

    def _next(self, prefix):
        self._counter += 1
        return f'{prefix}{self._counter}'

    def is_configured(self):
        return self.configured

    def add_payment_intent(self, payment_intent_id, metadata, status='succeeded', amount=None,
                           currency='pkr', receipt_url=None):
        self.payments[payment_intent_id] = PaymentStatus(
            external_id=payment_intent_id,
            kind='payment_intent',
            status=status,
            succeeded=status == 'succeeded',
            metadata=dict(metadata),
            amount=amount if amount is not None else int(metadata.get('pkrEquivalent') or 0) * 100,
            currency=currency,
            payment_intent_id=payment_intent_id,
            receipt_url=receipt_url,
        )
        return self.payments[payment_intent_id]

    def add_checkout_session(self, session_id, metadata, payment_intent_id=None, payment_status='paid',
                             amount=None, currency='pkr'):
        self.payments[session_id] = PaymentStatus(
            external_id=session_id,
            kind='checkout_session',
            status=payment_status,
            succeeded=payment_status == 'paid',
            metadata=dict(metadata),
            amount=amount if amount is not None else int(metadata.get('pkrEquivalent') or 0) * 100,
            currency=currency,
            payment_intent_id=payment_intent_id,
        )
        return self.payments[session_id]

    def create_payment_intent(self, donation_request):
        base = self.prepare(donation_request)
        payment_intent_id = self._next('pi_fake')
        self.created.append(payment_intent_id)
        self.add_payment_intent(
            payment_intent_id,
            donation_request.metadata(base),
            status='requires_payment_method',
            amount=to_minor_units(donation_request.amount),
            currency=donation_request.currency,
        )
        return PaymentIntentResult(
            client_secret=f'{payment_intent_id}_secret_abc',
            external_id=payment_intent_id,
            base_currency_equivalent=base,
        )

    def create_checkout_session(self, donation_request, success_url, cancel_url):
        base = self.prepare(donation_request)
        session_id = self._next('cs_test_fake')
        self.created.append(session_id)
        self.add_checkout_session(
            session_id,
            donation_request.metadata(base),
            payment_intent_id=self._next('pi_fakecs'),
            payment_status='unpaid',
            amount=to_minor_units(donation_request.amount),
            currency=donation_request.currency,
        )
        return CheckoutSessionResult(
            redirect_url=f'https://checkout.stripe.test/{session_id}',
            external_id=session_id,
            base_currency_equivalent=base,
        )

    def create_sponsorship_intent(self, sponsorship):
        payment_intent_id = self._next('pi_fakesp')
        self.created.append(payment_intent_id)
        self.add_payment_intent(
            payment_intent_id,
            {
                'type': 'monthly_sponsorship',
                'sponsorshipId': str(sponsorship.id),
                'childId': str(sponsorship.child_id),
                'sponsorName': sponsorship.sponsor_name,
                'sponsorEmail': sponsorship.sponsor_email,
            },
            status='requires_payment_method',
            amount=sponsorship.monthly_amount * 100,
        )
        return PaymentIntentResult(
            client_secret=f'{payment_intent_id}_secret_abc',
            external_id=payment_intent_id,
            base_currency_equivalent=sponsorship.monthly_amount,
        )

    def create_event_donation_intent(self, event_donation):
        payment_intent_id = self._next('pi_fakeev')
        self.created.append(payment_intent_id)
        self.add_payment_intent(
            payment_intent_id,
            {
                'type': 'event_donation',
                'eventDonationId': str(event_donation.id),
                'eventId': str(event_donation.event_id),
                'donorName': event_donation.donor_name,
                'donorEmail': event_donation.donor_email,
            },
            status='requires_payment_method',
            amount=event_donation.amount * 100,
        )
        return PaymentIntentResult(
            client_secret=f'{payment_intent_id}_secret_abc',
            external_id=payment_intent_id,
            base_currency_equivalent=event_donation.amount,
        )

    def retrieve_status(self, external_id):
        self.retrieved.append(external_id)
        if external_id not in self.payments:
            raise ValidationError(f'No such payment: {external_id}')
        return self.payments[external_id]

    def retrieve_receipt_url(self, payment_intent_id):
        value = self.receipts.get(payment_intent_id)
        if isinstance(value, Exception):
            raise value
        return value

    def construct_event(self, payload, signature):
        return self._verifier.construct_event(payload, signature)


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        ensure_roles()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def gateway(app):
    fake = FakeGateway()
    get_container().register_instance('payment_gateway', fake, service_type=PaymentGateway)
    return fake


@pytest.fixture
def reconciler(app, gateway):
    return get_container().get('payment_reconciler')


@pytest.fixture
def child(app):
    child = Child(name='Bilal', age=9, gender='male', monthly_amount=15000)
    db.session.add(child)
    db.session.commit()
    return child


@pytest.fixture
def make_sponsorship(app, child):
    def _make(payment_status=SponsorshipPaymentStatus.PENDING.value, payment_intent_id=None,
              receipt_url=None, donor=None):
        sponsorship = Sponsorship(
            child_id=child.id,
            donor_id=donor.id if donor else None,
            sponsor_name='Omar Farooq',
            sponsor_email='omar@example.com',
            monthly_amount=15000,
            payment_method='card',
            payment_status=payment_status,
            stripe_payment_intent_id=payment_intent_id,
            stripe_receipt_url=receipt_url,
        )
        db.session.add(sponsorship)
        db.session.commit()
        return sponsorship
    return _make


@pytest.fixture
def event(app):
    event = Event(title='Iftar Dinner', location='Lahore', date=datetime(2026, 3, 20, 18, 30), is_active=True)
    db.session.add(event)
    db.session.commit()
    return event


@pytest.fixture
def make_event_donation(app, event):
    def _make(amount=2500, donor=None, payment_status=SponsorshipPaymentStatus.PENDING.value):
        event_donation = EventDonation(
            event_id=event.id,
            donor_id=donor.id if donor else None,
            donor_name='Sana Malik',
            donor_email='sana@example.com',
            amount=amount,
            payment_method='card',
            payment_status=payment_status,
            local_receipt_number=f'EVT-20260320-{EventDonation.query.count() + 1:04d}',
        )
        db.session.add(event_donation)
        db.session.commit()
        return event_donation
    return _make


def _create_user(app, email, role_name):
    datastore = app.extensions['security'].datastore
    role = Role.query.filter_by(name=role_name).first()
    user = datastore.create_user(email=email, full_name=email.split('@')[0], active=True, roles=[role])
    db.session.commit()
    return user


@pytest.fixture
def donor_user(app):
    return _create_user(app, 'donor@example.com', 'donor')


@pytest.fixture
def admin_user(app):
    return _create_user(app, 'admin@example.com', 'admin')


def login(client, user):
    with client.session_transaction() as session:
        session['_user_id'] = user.fs_uniquifier
        session['_fresh'] = True
