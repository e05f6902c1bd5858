"""
Receipt backfill

Card receipts are not always available when a sponsorship payment is
confirmed. This sweep fills ``stripe_receipt_url`` for completed card
sponsorships that still lack one.
"""
from dataclasses import dataclass, field
from typing import List
import logging

from sqlalchemy.exc import SQLAlchemyError

from aghosh.extensions import db
from aghosh.models import PaymentStatus, Sponsorship
from aghosh.payments.errors import PaymentError

logger = logging.getLogger(__name__)


@dataclass
class BackfillReport:
    checked: int = 0
    filled: int = 0
    still_missing: int = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self):
        return {
            'checked': self.checked,
            'filled': self.filled,
            'stillMissing': self.still_missing,
            'errors': list(self.errors),
        }


def sponsorships_missing_receipts():
    return (
        Sponsorship.query
        .filter(Sponsorship.payment_status == PaymentStatus.COMPLETED.value)
        .filter(Sponsorship.stripe_payment_intent_id.isnot(None))
        .filter(Sponsorship.stripe_receipt_url.is_(None))
        .order_by(Sponsorship.id)
        .all()
    )


def backfill_missing_receipts(gateway) -> BackfillReport:
    """Fetch and persist missing receipt URLs. Per-row failures never stop the sweep."""
    report = BackfillReport()
    if not gateway.is_configured():
        logger.info('Stripe not configured, skipping receipt backfill')
        return report

    candidates = sponsorships_missing_receipts()
    logger.info(f'Receipt backfill: {len(candidates)} sponsorship(s) missing a receipt URL')

    for sponsorship in candidates:
        report.checked += 1
        payment_intent_id = sponsorship.stripe_payment_intent_id
        try:
            receipt_url = gateway.retrieve_receipt_url(payment_intent_id)
            if not receipt_url:
                report.still_missing += 1
                logger.info(f'No receipt yet for sponsorship {sponsorship.id} ({payment_intent_id})')
                continue
            sponsorship.stripe_receipt_url = receipt_url
            db.session.commit()
            report.filled += 1
            logger.info(f'Receipt URL saved for sponsorship {sponsorship.id}')
        except (PaymentError, SQLAlchemyError) as e:
            db.session.rollback()
            report.still_missing += 1
            report.errors.append(f'{sponsorship.id}: {str(e)}')
            logger.error(f'Receipt backfill failed for sponsorship {sponsorship.id}: {str(e)}')
        except Exception as e:
            db.session.rollback()
            report.still_missing += 1
            report.errors.append(f'{sponsorship.id}: {str(e)}')
            logger.error(f'Unexpected error backfilling sponsorship {sponsorship.id}: {str(e)}', exc_info=True)

    logger.info(
        f'Receipt backfill done: checked={report.checked} filled={report.filled} '
        f'still_missing={report.still_missing}'
    )
    return report
