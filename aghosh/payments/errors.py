"""
Payment error taxonomy

Every error carries the HTTP status it maps to; ``register_error_handlers``
turns them into JSON responses.
"""


class PaymentError(Exception):
    """Base class for payment failures surfaced to API callers"""
    status_code = 500
    default_message = 'Payment processing error'

    def __init__(self, message=None, status_code=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {'message': self.message}


class ValidationError(PaymentError):
    """Malformed or out-of-range request; never retried"""
    status_code = 400
    default_message = 'Invalid donation data'

    def __init__(self, message=None, errors=None):
        super().__init__(message)
        self.errors = errors or {}

    def to_dict(self):
        data = super().to_dict()
        if self.errors:
            data['errors'] = self.errors
        return data


class PaymentGatewayUnavailable(PaymentError):
    """Processor not configured or unreachable; caller falls back to bank transfer"""
    status_code = 503
    default_message = 'Card payments not available. Please use Bank Transfer.'


class PaymentGatewayError(PaymentError):
    """The processor answered with an error other than unavailability"""
    status_code = 502
    default_message = 'Payment processor error'


class WebhookSignatureInvalid(PaymentError):
    """Webhook payload could not be authenticated"""
    status_code = 400
    default_message = 'Webhook signature verification failed'


class RecorderPersistenceFailure(PaymentError):
    """A claimed payment could not be written to storage; needs manual re-entry"""
    status_code = 500
    default_message = 'Payment recorded at processor but not stored locally'

    def __init__(self, message=None, metadata=None):
        super().__init__(message)
        self.metadata = dict(metadata or {})
