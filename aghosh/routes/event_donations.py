from flask import Blueprint, abort, jsonify, request
from flask_security import current_user
from aghosh.extensions import db
from aghosh.models import EventDonation

bp = Blueprint('event_donations', __name__, url_prefix='/event-donations')


def _can_view(event_donation):
    if current_user.is_authenticated:
        if current_user.has_role('admin'):
            return True
        if event_donation.donor_id and event_donation.donor_id == current_user.id:
            return True
    # Anyone else proves they made the donation with the receipt number they were given
    receipt_number = request.args.get('receipt')
    return bool(receipt_number) and receipt_number == event_donation.local_receipt_number


@bp.route('/<int:event_donation_id>/receipt', methods=['GET'])
def receipt(event_donation_id):
    """Receipt data for an event donation"""
    event_donation = db.session.get(EventDonation, event_donation_id)
    if event_donation is None or not _can_view(event_donation):
        abort(404)
    return jsonify(event_donation.receipt())
