from flask import Blueprint, jsonify, current_app, request
from flask_security import current_user
from aghosh.container import provide
from aghosh.core.rate_limiting import payment_rate_limit
from aghosh.extensions import csrf, limiter
from aghosh.forms import ConfirmPaymentForm, DonationForm
from aghosh.payments.currency import CurrencyTable
from aghosh.payments.gateway import DonationRequest
from aghosh.utils import sanitize_html

bp = Blueprint('donations', __name__, url_prefix='/donate')
csrf.exempt(bp)


def _donation_request_from(form):
    donor_id = None
    if current_user.is_authenticated and current_user.has_role('donor'):
        donor_id = current_user.id
    return DonationRequest(
        amount=form.amount.data,
        currency=form.currency.data,
        category=form.category.data,
        donation_type=form.donation_type.data,
        donor_name=sanitize_html(form.donor_name.data) or None,
        donor_email=form.donor_email.data or None,
        is_anonymous=form.is_anonymous.data,
        message=sanitize_html(form.message.data) or None,
        donor_id=donor_id,
    )


@bp.route('/exchange-rates', methods=['GET'])
def exchange_rates():
    """Rate table, minimums and maximum used for server-side conversion"""
    return jsonify(CurrencyTable.from_config(current_app.config).as_dict())


@bp.route('/create-payment-intent', methods=['POST'])
@limiter.limit(payment_rate_limit)
def create_payment_intent():
    """Create a card payment intent for the embedded payment form"""
    form = DonationForm.from_json().validate_or_raise()
    donation_request = _donation_request_from(form)

    result = provide('payment_gateway').create_payment_intent(donation_request)
    current_app.logger.info(
        f'Payment intent {result.external_id} created: {donation_request.amount} '
        f'{donation_request.currency.upper()} -> {result.base_currency_equivalent} PKR'
    )
    return jsonify({
        'clientSecret': result.client_secret,
        'paymentIntentId': result.external_id,
        'baseCurrencyEquivalent': result.base_currency_equivalent,
    })


@bp.route('/checkout', methods=['POST'])
@limiter.limit(payment_rate_limit)
def checkout():
    """Create a hosted checkout session and return its redirect URL"""
    form = DonationForm.from_json().validate_or_raise()
    donation_request = _donation_request_from(form)

    # Stripe substitutes the placeholder with the real session id
    success_url = request.host_url.rstrip('/') + '/donate/success?session_id={CHECKOUT_SESSION_ID}'
    cancel_url = request.host_url.rstrip('/') + '/donate'

    result = provide('payment_gateway').create_checkout_session(donation_request, success_url, cancel_url)
    current_app.logger.info(
        f'Checkout session {result.external_id} created: {donation_request.amount} '
        f'{donation_request.currency.upper()} -> {result.base_currency_equivalent} PKR'
    )
    return jsonify({
        'sessionId': result.external_id,
        'url': result.redirect_url,
        'baseCurrencyEquivalent': result.base_currency_equivalent,
    })


@bp.route('/confirm-payment', methods=['POST'])
def confirm_payment():
    """Client-side confirmation after the card form reports success"""
    form = ConfirmPaymentForm.from_json().validate_or_raise('Invalid payment intent ID')
    result = provide('payment_reconciler').confirm_payment(form.payment_intent_id.data.strip())
    return jsonify(result.payload)


@bp.route('/verify/<session_id>', methods=['GET'])
def verify_session(session_id):
    """Success-page poll for a hosted checkout session"""
    result = provide('payment_reconciler').verify_session(session_id)
    return jsonify(result.payload)
