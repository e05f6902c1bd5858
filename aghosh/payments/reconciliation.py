"""
Payment reconciliation

Three independent paths observe the same successful payment: the client's
confirm-payment call, the checkout verify poll and the processor webhook.
Each re-fetches (or verifies) the authoritative status, claims the payment
in the idempotency ledger and only the claimant calls the recorder.
Sponsorship and event-donation payments go through the same claim with
their own recorder step.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional
import logging

from aghosh.models import Donation
from aghosh.payments.errors import RecorderPersistenceFailure, ValidationError
from aghosh.payments.gateway import (
    PaymentGateway,
    PaymentStatus,
    _get,
    checkout_session_status,
    is_checkout_session_id,
    is_payment_intent_id,
    payment_intent_status,
)
from aghosh.payments.ledger import IdempotencyLedger
from aghosh.payments.recorder import (
    mark_event_donation_paid,
    mark_sponsorship_paid,
    parse_base_amount,
    record_donation_from_payment,
)
from aghosh.utils import parse_bool

logger = logging.getLogger(__name__)


class ReconciliationOutcome(str, Enum):
    RECORDED = 'recorded'
    DUPLICATE = 'duplicate'
    NOT_SUCCEEDED = 'not_succeeded'
    RECORD_FAILED = 'record_failed'
    IGNORED = 'ignored'


@dataclass
class ReconciliationResult:
    outcome: ReconciliationOutcome
    payload: Dict[str, Any] = field(default_factory=dict)
    record: Any = None

    @property
    def success(self):
        return self.outcome not in (ReconciliationOutcome.NOT_SUCCEEDED, ReconciliationOutcome.IGNORED)


class PaymentReconciler:
    """Entry points that turn observed payments into exactly one record each"""

    def __init__(self, gateway: PaymentGateway, ledger: IdempotencyLedger,
                 on_donation_recorded: Optional[Callable] = None,
                 on_sponsorship_paid: Optional[Callable] = None, receipt_prefix: str = 'AGH'):
        self.gateway = gateway
        self.ledger = ledger
        self.on_donation_recorded = on_donation_recorded
        self.on_sponsorship_paid = on_sponsorship_paid
        self.receipt_prefix = receipt_prefix

    # ------------------------------------------------------------------
    # Shared claim-then-record step
    # ------------------------------------------------------------------

    def _claim_and_record(self, status: PaymentStatus, source: str) -> ReconciliationResult:
        key = status.claim_key
        if not self.ledger.try_claim(key, source=source):
            logger.info(f'Payment {key} already processed, {source} path is a no-op')
            return ReconciliationResult(ReconciliationOutcome.DUPLICATE)

        try:
            donation = record_donation_from_payment(
                status.metadata, external_id=key, receipt_prefix=self.receipt_prefix
            )
        except RecorderPersistenceFailure as e:
            # The claim stays: a retry must not double-record once storage recovers
            logger.error(
                f'RECORD FAILED for payment {key} via {source}: {e.message}. '
                f'Manual entry required. Metadata: {e.metadata}'
            )
            return ReconciliationResult(ReconciliationOutcome.RECORD_FAILED)

        self._notify(self.on_donation_recorded, donation)
        return ReconciliationResult(ReconciliationOutcome.RECORDED, record=donation)

    def _notify(self, hook, record):
        if not hook:
            return
        try:
            hook(record)
        except Exception as e:
            logger.error(f'Confirmation hook failed for {record!r}: {str(e)}', exc_info=True)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def confirm_payment(self, payment_intent_id) -> ReconciliationResult:
        """Client-reported completion of an embedded card payment"""
        if not is_payment_intent_id(payment_intent_id):
            raise ValidationError('Invalid payment intent ID')

        status = self.gateway.retrieve_status(payment_intent_id)
        if not status.succeeded:
            return ReconciliationResult(
                ReconciliationOutcome.NOT_SUCCEEDED,
                payload={'success': False, 'status': status.status},
            )
        if status.is_sponsorship:
            raise ValidationError('Sponsorship payments are confirmed through the sponsorship endpoint')
        if status.is_event_donation:
            raise ValidationError('Event donation payments are confirmed by the payment processor')

        result = self._claim_and_record(status, source='confirm')
        donation = result.record or Donation.query.filter_by(stripe_reference=status.claim_key).first()
        metadata = status.metadata
        anonymous = parse_bool(metadata.get('isAnonymous'))
        result.payload = {
            'success': True,
            'receiptNumber': donation.receipt_number if donation else None,
            'transactionId': payment_intent_id,
            'stripeReceiptUrl': status.receipt_url,
            'date': (donation.created_at if donation else datetime.now(timezone.utc)).isoformat(),
            'amount': status.display_amount,
            'currency': (status.currency or '').upper(),
            'baseCurrencyEquivalent': parse_base_amount(metadata) or 0,
            'category': metadata.get('category'),
            'donorName': 'Anonymous' if anonymous else metadata.get('donorName'),
            'donorEmail': None if anonymous else metadata.get('donorEmail'),
            'donationType': metadata.get('donationType'),
            'paymentMethod': 'Credit/Debit Card',
        }
        return result

    def verify_session(self, session_id) -> ReconciliationResult:
        """Success-page poll for a hosted checkout session"""
        if not is_checkout_session_id(session_id):
            raise ValidationError('Invalid session ID')

        status = self.gateway.retrieve_status(session_id)
        if not status.succeeded:
            return ReconciliationResult(
                ReconciliationOutcome.NOT_SUCCEEDED,
                payload={'success': False, 'status': status.status},
            )

        result = self._claim_and_record(status, source='verify')
        metadata = status.metadata
        anonymous = parse_bool(metadata.get('isAnonymous'))
        result.payload = {
            'success': True,
            'amount': status.display_amount,
            'currency': (status.currency or '').upper(),
            'baseCurrencyEquivalent': parse_base_amount(metadata) or 0,
            'category': metadata.get('category'),
            'donorName': 'Anonymous' if anonymous else metadata.get('donorName'),
            'donationType': metadata.get('donationType'),
        }
        return result

    def handle_webhook(self, payload, signature) -> ReconciliationResult:
        """Verify and dispatch a processor event.

        Signature verification happens before anything else; a bad signature
        raises WebhookSignatureInvalid and nothing is claimed or recorded.
        """
        event = self.gateway.construct_event(payload, signature)
        logger.info(f'Stripe webhook received: {event.type} ({event.id})')

        if event.type == 'payment_intent.succeeded':
            status = payment_intent_status(event.object)
            if status.is_sponsorship:
                return self._sponsorship_from_webhook(status)
            if status.is_event_donation:
                return self._event_donation_from_webhook(status)
            return self._claim_and_record(status, source='webhook')

        if event.type == 'checkout.session.completed':
            status = checkout_session_status(event.object)
            if not status.succeeded:
                logger.info(f'Checkout session {status.external_id} not paid, skipping donation record')
                return ReconciliationResult(ReconciliationOutcome.NOT_SUCCEEDED)
            return self._claim_and_record(status, source='webhook')

        if event.type in ('charge.succeeded', 'charge.refunded'):
            charge_id = _get(event.object, 'id')
            logger.info(f'Stripe {event.type}: {charge_id}')
        else:
            logger.info(f'Unhandled Stripe event type: {event.type}')
        return ReconciliationResult(ReconciliationOutcome.IGNORED)

    def _sponsorship_from_webhook(self, status: PaymentStatus) -> ReconciliationResult:
        sponsorship_id = status.metadata.get('sponsorshipId')
        if not sponsorship_id:
            logger.warning(f'Sponsorship payment {status.external_id} has no sponsorshipId, ignoring')
            return ReconciliationResult(ReconciliationOutcome.IGNORED)
        return self._claim_sponsorship(status, sponsorship_id, source='webhook')

    def confirm_sponsorship_payment(self, sponsorship_id, payment_intent_id) -> ReconciliationResult:
        """Verified completion of a monthly sponsorship card payment"""
        if not is_payment_intent_id(payment_intent_id):
            raise ValidationError('Invalid payment intent ID')

        status = self.gateway.retrieve_status(payment_intent_id)
        if str(status.metadata.get('sponsorshipId')) != str(sponsorship_id):
            raise ValidationError('Payment does not belong to this sponsorship')
        if not status.succeeded:
            return ReconciliationResult(
                ReconciliationOutcome.NOT_SUCCEEDED,
                payload={'success': False, 'status': status.status},
            )
        return self._claim_sponsorship(status, sponsorship_id, source='sponsorship')

    def _claim_sponsorship(self, status: PaymentStatus, sponsorship_id, source) -> ReconciliationResult:
        key = status.claim_key
        if not self.ledger.try_claim(key, source=source):
            logger.info(f'Sponsorship payment {key} already processed, {source} path is a no-op')
            return ReconciliationResult(ReconciliationOutcome.DUPLICATE, payload={'success': True})
        try:
            sponsorship = mark_sponsorship_paid(
                sponsorship_id, key, receipt_url=status.receipt_url, receipt_prefix=self.receipt_prefix
            )
        except RecorderPersistenceFailure as e:
            logger.error(
                f'RECORD FAILED for sponsorship payment {key} via {source}: {e.message}. '
                f'Manual entry required. Metadata: {e.metadata}'
            )
            return ReconciliationResult(ReconciliationOutcome.RECORD_FAILED, payload={'success': True})
        self._notify(self.on_sponsorship_paid, sponsorship)
        return ReconciliationResult(
            ReconciliationOutcome.RECORDED,
            payload={'success': True, 'sponsorship': sponsorship.to_dict()},
            record=sponsorship,
        )

    def _event_donation_from_webhook(self, status: PaymentStatus) -> ReconciliationResult:
        event_donation_id = status.metadata.get('eventDonationId')
        if not event_donation_id:
            logger.warning(f'Event donation payment {status.external_id} has no eventDonationId, ignoring')
            return ReconciliationResult(ReconciliationOutcome.IGNORED)

        key = status.claim_key
        if not self.ledger.try_claim(key, source='webhook'):
            logger.info(f'Event donation payment {key} already processed, webhook path is a no-op')
            return ReconciliationResult(ReconciliationOutcome.DUPLICATE)
        try:
            event_donation = mark_event_donation_paid(event_donation_id, key, receipt_url=status.receipt_url)
        except RecorderPersistenceFailure as e:
            logger.error(
                f'RECORD FAILED for event donation payment {key} via webhook: {e.message}. '
                f'Manual entry required. Metadata: {e.metadata}'
            )
            return ReconciliationResult(ReconciliationOutcome.RECORD_FAILED)
        return ReconciliationResult(ReconciliationOutcome.RECORDED, record=event_donation)
