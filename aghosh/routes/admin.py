from flask import Blueprint, abort, jsonify, request, current_app
from flask_security import current_user
from aghosh.container import provide
from aghosh.core.decorators import admin_required
from aghosh.extensions import db
from aghosh.models import Donation, Event, EventDonation, PaymentStatus, Sponsorship
from aghosh.payments.receipts import backfill_missing_receipts

bp = Blueprint('admin', __name__, url_prefix='/admin')


def _pagination_payload(pagination, items):
    return {
        'items': items,
        'page': pagination.page,
        'perPage': pagination.per_page,
        'total': pagination.total,
        'pages': pagination.pages,
    }


@bp.route('/donations', methods=['GET'])
@admin_required
def donations():
    """Recorded donations, newest first, with totals"""
    page = request.args.get('page', 1, type=int)
    per_page = min(request.args.get('per_page', 20, type=int), 100)

    query = Donation.query
    category = request.args.get('category')
    if category:
        query = query.filter(Donation.category == category)

    pagination = query.order_by(Donation.created_at.desc()).paginate(
        page=page,
        per_page=per_page,
        error_out=False
    )

    total_amount = db.session.query(db.func.sum(Donation.amount)).scalar() or 0
    payload = _pagination_payload(pagination, [donation.to_dict() for donation in pagination.items])
    payload['totalAmount'] = int(total_amount)
    payload['totalDonations'] = Donation.query.count()
    return jsonify(payload)


@bp.route('/sponsorships', methods=['GET'])
@admin_required
def sponsorships():
    """Sponsorships, optionally filtered by payment status"""
    page = request.args.get('page', 1, type=int)
    per_page = min(request.args.get('per_page', 20, type=int), 100)

    query = Sponsorship.query
    payment_status = request.args.get('payment_status')
    if payment_status in PaymentStatus.all():
        query = query.filter(Sponsorship.payment_status == payment_status)

    pagination = query.order_by(Sponsorship.created_at.desc()).paginate(
        page=page,
        per_page=per_page,
        error_out=False
    )
    payload = _pagination_payload(pagination, [sponsorship.to_dict() for sponsorship in pagination.items])
    payload['missingReceipts'] = (
        Sponsorship.query
        .filter(Sponsorship.payment_status == PaymentStatus.COMPLETED.value)
        .filter(Sponsorship.stripe_payment_intent_id.isnot(None))
        .filter(Sponsorship.stripe_receipt_url.is_(None))
        .count()
    )
    return jsonify(payload)


@bp.route('/events/<int:event_id>/donations', methods=['GET'])
@admin_required
def event_donations(event_id):
    """Donations and RSVPs received for one event"""
    if db.session.get(Event, event_id) is None:
        abort(404)
    rows = (
        EventDonation.query
        .filter_by(event_id=event_id)
        .order_by(EventDonation.created_at.desc())
        .all()
    )
    return jsonify([event_donation.to_dict() for event_donation in rows])


@bp.route('/receipts/backfill', methods=['POST'])
@admin_required
def run_receipt_backfill():
    """Run the receipt backfill now instead of waiting for the schedule"""
    current_app.logger.info(f'Receipt backfill triggered by {current_user.email}')
    report = backfill_missing_receipts(provide('payment_gateway'))
    return jsonify(report.to_dict())
