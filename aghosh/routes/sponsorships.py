from flask import Blueprint, jsonify, abort
from aghosh.container import provide
from aghosh.extensions import csrf, db
from aghosh.forms import ConfirmPaymentForm
from aghosh.models import Sponsorship

bp = Blueprint('sponsorships', __name__, url_prefix='/sponsorships')
csrf.exempt(bp)


@bp.route('/<int:sponsorship_id>/payment', methods=['POST'])
def confirm_payment(sponsorship_id):
    """Confirm a sponsorship card payment after re-checking it with Stripe"""
    if db.session.get(Sponsorship, sponsorship_id) is None:
        abort(404)

    form = ConfirmPaymentForm.from_json().validate_or_raise('Invalid payment intent ID')
    result = provide('payment_reconciler').confirm_sponsorship_payment(
        sponsorship_id, form.payment_intent_id.data.strip()
    )

    payload = dict(result.payload)
    if result.success and 'sponsorship' not in payload:
        payload['sponsorship'] = db.session.get(Sponsorship, sponsorship_id).to_dict()
    return jsonify(payload)
