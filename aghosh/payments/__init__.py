"""
Payment processing: gateway client, idempotency ledger, recorder,
reconciliation entry points and receipt backfill
"""
from aghosh.payments.errors import (
    PaymentError,
    PaymentGatewayError,
    PaymentGatewayUnavailable,
    RecorderPersistenceFailure,
    ValidationError,
    WebhookSignatureInvalid,
)

__all__ = [
    'PaymentError',
    'PaymentGatewayError',
    'PaymentGatewayUnavailable',
    'RecorderPersistenceFailure',
    'ValidationError',
    'WebhookSignatureInvalid',
]
