from flask import Blueprint, jsonify, current_app, request
from aghosh.container import provide
from aghosh.extensions import csrf, db, limiter
from aghosh.forms import EventDonationIntentForm, SponsorshipIntentForm
from aghosh.models import Child, Event, EventDonation, PaymentMethod, PaymentStatus, Sponsorship
from aghosh.payments.errors import PaymentGatewayUnavailable, ValidationError
from aghosh.core.rate_limiting import payment_rate_limit
from aghosh.utils import generate_receipt_number, sanitize_html

bp = Blueprint('stripe', __name__, url_prefix='/stripe')
csrf.exempt(bp)


@bp.route('/webhook', methods=['POST'])
def stripe_webhook():
    """Handle Stripe webhook events"""
    # Signature is computed over the exact bytes Stripe sent
    payload = request.get_data()
    signature = request.headers.get('Stripe-Signature')

    result = provide('payment_reconciler').handle_webhook(payload, signature)
    return jsonify({'received': True, 'outcome': result.outcome.value})


@bp.route('/status', methods=['GET'])
def status():
    return jsonify({'configured': provide('payment_gateway').is_configured()})


@bp.route('/publishable-key', methods=['GET'])
def publishable_key():
    gateway = provide('payment_gateway')
    if not gateway.is_configured():
        raise PaymentGatewayUnavailable()
    return jsonify({'publishableKey': current_app.config.get('STRIPE_PUBLISHABLE_KEY')})


@bp.route('/create-sponsorship-intent', methods=['POST'])
@limiter.limit(payment_rate_limit)
def create_sponsorship_intent():
    """Create a pending card sponsorship and the payment intent that pays its first month"""
    from flask_security import current_user

    form = SponsorshipIntentForm.from_json().validate_or_raise('Missing required fields')
    gateway = provide('payment_gateway')
    if not gateway.is_configured():
        raise PaymentGatewayUnavailable()

    child = db.session.get(Child, form.child_id.data)
    if child is None:
        raise ValidationError('Child not found', errors={'child_id': ['Unknown child']})

    monthly_amount = form.amount.data or child.monthly_amount or current_app.config['DEFAULT_SPONSORSHIP_AMOUNT']
    sponsorship = Sponsorship(
        child_id=child.id,
        donor_id=current_user.id if current_user.is_authenticated and current_user.has_role('donor') else None,
        sponsor_name=sanitize_html(form.sponsor_name.data),
        sponsor_email=form.sponsor_email.data,
        sponsor_phone=form.sponsor_phone.data or None,
        monthly_amount=monthly_amount,
        payment_method=PaymentMethod.CARD.value,
        payment_status=PaymentStatus.PENDING.value,
    )
    db.session.add(sponsorship)
    child.is_sponsored = True
    db.session.flush()

    try:
        result = gateway.create_sponsorship_intent(sponsorship)
    except Exception:
        db.session.rollback()
        raise

    sponsorship.stripe_payment_intent_id = result.external_id
    db.session.commit()
    current_app.logger.info(
        f'Sponsorship {sponsorship.id} created for child {child.id}: '
        f'{monthly_amount} PKR/month, intent {result.external_id}'
    )
    return jsonify({
        'clientSecret': result.client_secret,
        'sponsorshipId': sponsorship.id,
        'paymentIntentId': result.external_id,
    })


@bp.route('/create-event-donation-intent', methods=['POST'])
@limiter.limit(payment_rate_limit)
def create_event_donation_intent():
    """Create a pending event donation and the payment intent that pays it"""
    from flask_security import current_user

    form = EventDonationIntentForm.from_json().validate_or_raise('Missing required fields')
    gateway = provide('payment_gateway')
    if not gateway.is_configured():
        raise PaymentGatewayUnavailable()

    event = db.session.get(Event, form.event_id.data)
    if event is None or not event.is_active:
        raise ValidationError('Event not found', errors={'event_id': ['Unknown event']})

    table = gateway.get_currency_table()
    amount = table.to_base(table.validate(form.amount.data, table.base_currency), table.base_currency)

    event_donation = EventDonation(
        event_id=event.id,
        donor_id=current_user.id if current_user.is_authenticated and current_user.has_role('donor') else None,
        donor_name=sanitize_html(form.donor_name.data),
        donor_email=form.donor_email.data,
        donor_phone=form.donor_phone.data or None,
        amount=amount,
        payment_method=PaymentMethod.CARD.value,
        payment_status=PaymentStatus.PENDING.value,
        attendance_status=form.attendance_status.data,
        local_receipt_number=generate_receipt_number(current_app.config['EVENT_RECEIPT_NUMBER_PREFIX']),
    )
    db.session.add(event_donation)
    db.session.flush()

    try:
        result = gateway.create_event_donation_intent(event_donation)
    except Exception:
        db.session.rollback()
        raise

    event_donation.stripe_payment_intent_id = result.external_id
    db.session.commit()
    current_app.logger.info(
        f'Event donation {event_donation.id} created for event {event.id}: '
        f'{amount} PKR, intent {result.external_id}'
    )
    return jsonify({
        'clientSecret': result.client_secret,
        'eventDonationId': event_donation.id,
        'paymentIntentId': result.external_id,
        'receiptNumber': event_donation.local_receipt_number,
    })
