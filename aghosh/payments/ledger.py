"""
Idempotency ledger

Records which external payment identifiers have already been turned into
local records. ``try_claim`` is the single point of mutual exclusion between
the confirm, verify and webhook paths: whoever claims first records, the
others do nothing.
"""
from abc import ABC, abstractmethod
from typing import Optional
import logging
import threading

from sqlalchemy.exc import IntegrityError

logger = logging.getLogger(__name__)


class IdempotencyLedger(ABC):
    """Abstract claim store"""

    @abstractmethod
    def try_claim(self, external_id: str, source: Optional[str] = None) -> bool:
        """Return True only for the first claim of ``external_id``"""
        pass

    @abstractmethod
    def is_claimed(self, external_id: str) -> bool:
        pass


class InMemoryLedger(IdempotencyLedger):
    """Process-local ledger. Not shared between workers or across restarts."""

    def __init__(self):
        self._claimed = set()
        self._lock = threading.Lock()

    def try_claim(self, external_id: str, source: Optional[str] = None) -> bool:
        if not external_id:
            return False
        with self._lock:
            if external_id in self._claimed:
                return False
            self._claimed.add(external_id)
        logger.debug(f'Claimed {external_id} via {source or "unknown"}')
        return True

    def is_claimed(self, external_id: str) -> bool:
        with self._lock:
            return external_id in self._claimed

    def __len__(self):
        with self._lock:
            return len(self._claimed)


class DatabaseLedger(IdempotencyLedger):
    """Ledger backed by the unique constraint on ProcessedPayment.external_id"""

    def try_claim(self, external_id: str, source: Optional[str] = None) -> bool:
        from aghosh.extensions import db
        from aghosh.models import ProcessedPayment

        if not external_id:
            return False
        try:
            with db.session.begin_nested():
                db.session.add(ProcessedPayment(external_id=external_id, source=source))
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            logger.info(f'Payment {external_id} already claimed (attempted via {source or "unknown"})')
            return False
        logger.debug(f'Claimed {external_id} via {source or "unknown"}')
        return True

    def is_claimed(self, external_id: str) -> bool:
        from aghosh.models import ProcessedPayment
        return ProcessedPayment.query.filter_by(external_id=external_id).first() is not None


def create_ledger(backend: str = 'database') -> IdempotencyLedger:
    backend = (backend or 'database').lower()
    if backend == 'memory':
        logger.warning('Using in-memory payment ledger: duplicates are only prevented within this process')
        return InMemoryLedger()
    if backend != 'database':
        raise ValueError(f'Unknown payment ledger backend: {backend}')
    return DatabaseLedger()
