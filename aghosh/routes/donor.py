from flask import Blueprint, jsonify
from flask_security import current_user
from aghosh.core.decorators import donor_required
from aghosh.models import Donation, EventDonation, Sponsorship

bp = Blueprint('donor', __name__, url_prefix='/donor')


@bp.route('/sponsorships', methods=['GET'])
@donor_required
def sponsorships():
    """Sponsorships linked to the logged-in donor"""
    rows = (
        Sponsorship.query
        .filter_by(donor_id=current_user.id)
        .order_by(Sponsorship.created_at.desc())
        .all()
    )
    return jsonify([sponsorship.to_dict() for sponsorship in rows])


@bp.route('/donations', methods=['GET'])
@donor_required
def donations():
    """One-time donations linked to the logged-in donor"""
    rows = (
        Donation.query
        .filter_by(donor_id=current_user.id)
        .order_by(Donation.created_at.desc())
        .all()
    )
    return jsonify([donation.to_dict() for donation in rows])


@bp.route('/event-donations', methods=['GET'])
@donor_required
def event_donations():
    rows = (
        EventDonation.query
        .filter_by(donor_id=current_user.id)
        .order_by(EventDonation.created_at.desc())
        .all()
    )
    return jsonify([event_donation.to_dict() for event_donation in rows])
