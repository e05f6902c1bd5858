"""
Donation recorder

Turns the metadata of a verified, claimed payment into exactly one local
record. Callers must hold the ledger claim; nothing here checks for
duplicates.
"""
from decimal import Decimal, InvalidOperation
import logging

from sqlalchemy.exc import SQLAlchemyError

from aghosh.extensions import db
from aghosh.models import (
    Donation,
    DonationCategory,
    DonationType,
    EventDonation,
    PaymentMethod,
    PaymentStatus,
    Sponsorship,
    User,
)
from aghosh.payments.errors import RecorderPersistenceFailure
from aghosh.utils import generate_receipt_number, parse_bool, sanitize_html

logger = logging.getLogger(__name__)


def parse_base_amount(metadata):
    """Whole base-currency amount from ``pkrEquivalent``; None when unusable"""
    raw = (metadata or {}).get('pkrEquivalent')
    if raw in (None, ''):
        return None
    try:
        amount = Decimal(str(raw))
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite() or amount <= 0:
        return None
    return int(amount)


def _linked_donor(metadata):
    donor_id = metadata.get('donorId')
    if not donor_id:
        return None
    try:
        user = db.session.get(User, int(donor_id))
    except (TypeError, ValueError):
        return None
    if user is None or not user.is_donor:
        return None
    return user


def record_donation_from_payment(metadata, external_id=None, receipt_prefix='AGH'):
    """Insert one Donation built from payment metadata.

    Args:
        metadata: string-valued metadata attached to the intent or session
        external_id: processor identifier kept for reference only
        receipt_prefix: prefix of the receipt number stored on the donation

    Raises:
        RecorderPersistenceFailure: amount missing or invalid, or the INSERT failed
    """
    metadata = dict(metadata or {})
    amount = parse_base_amount(metadata)
    if amount is None:
        raise RecorderPersistenceFailure(
            f'Payment {external_id} has no usable pkrEquivalent', metadata=metadata
        )

    is_anonymous = parse_bool(metadata.get('isAnonymous'))
    donor_name = sanitize_html(metadata.get('donorName')) or None
    if is_anonymous or not donor_name:
        donor_name = 'Anonymous'
    email = None if is_anonymous else (metadata.get('donorEmail') or None)

    try:
        donor = _linked_donor(metadata)
        donation = Donation(
            donor_name=donor_name,
            email=email,
            amount=amount,
            category=DonationCategory.coerce(metadata.get('category')),
            donation_type=DonationType.coerce(metadata.get('donationType')),
            is_anonymous=is_anonymous,
            payment_method=PaymentMethod.CARD.value,
            is_recurring=False,
            message=sanitize_html(metadata.get('message')) or None,
            original_currency=(metadata.get('originalCurrency') or '')[:3] or None,
            original_amount=metadata.get('originalAmount') or None,
            stripe_reference=external_id,
            receipt_number=generate_receipt_number(receipt_prefix),
            donor=donor,
        )
        db.session.add(donation)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        raise RecorderPersistenceFailure(
            f'Could not store donation for payment {external_id}: {str(e)}', metadata=metadata
        ) from e

    logger.info(f'Donation recorded: {donation.amount} PKR for {donation.category} ({external_id})')
    return donation


def mark_sponsorship_paid(sponsorship_id, payment_intent_id, receipt_url=None, receipt_prefix='AGH'):
    """Flip a sponsorship to completed/card and attach the processor references"""
    try:
        sponsorship = db.session.get(Sponsorship, int(sponsorship_id))
    except (TypeError, ValueError):
        sponsorship = None
    if sponsorship is None:
        raise RecorderPersistenceFailure(
            f'Sponsorship {sponsorship_id} not found for payment {payment_intent_id}',
            metadata={'sponsorshipId': str(sponsorship_id), 'paymentIntentId': payment_intent_id},
        )

    try:
        sponsorship.payment_status = PaymentStatus.COMPLETED.value
        sponsorship.payment_method = PaymentMethod.CARD.value
        sponsorship.stripe_payment_intent_id = payment_intent_id
        if receipt_url and not sponsorship.stripe_receipt_url:
            sponsorship.stripe_receipt_url = receipt_url
        if not sponsorship.local_receipt_number:
            sponsorship.local_receipt_number = generate_receipt_number(receipt_prefix)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        raise RecorderPersistenceFailure(
            f'Could not mark sponsorship {sponsorship_id} paid: {str(e)}',
            metadata={'sponsorshipId': str(sponsorship_id), 'paymentIntentId': payment_intent_id},
        ) from e

    logger.info(f'Sponsorship {sponsorship.id} marked paid ({payment_intent_id})')
    return sponsorship


def mark_event_donation_paid(event_donation_id, payment_intent_id, receipt_url=None):
    """Complete a pending event donation with its processor references"""
    try:
        event_donation = db.session.get(EventDonation, int(event_donation_id))
    except (TypeError, ValueError):
        event_donation = None
    if event_donation is None:
        raise RecorderPersistenceFailure(
            f'Event donation {event_donation_id} not found for payment {payment_intent_id}',
            metadata={'eventDonationId': str(event_donation_id), 'paymentIntentId': payment_intent_id},
        )

    try:
        event_donation.payment_status = PaymentStatus.COMPLETED.value
        event_donation.stripe_payment_intent_id = payment_intent_id
        if receipt_url and not event_donation.stripe_receipt_url:
            event_donation.stripe_receipt_url = receipt_url
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        raise RecorderPersistenceFailure(
            f'Could not mark event donation {event_donation_id} paid: {str(e)}',
            metadata={'eventDonationId': str(event_donation_id), 'paymentIntentId': payment_intent_id},
        ) from e

    logger.info(f'Event donation {event_donation.id} marked paid ({payment_intent_id})')
    return event_donation
