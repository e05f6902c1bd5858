"""
Payment gateway client

Thin wrapper around Stripe: creates payment intents and checkout sessions
carrying enough metadata to rebuild a Donation row later, retrieves their
authoritative status, and verifies webhook signatures.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Optional
import logging
import re

import stripe
from stripe._error import (
    APIConnectionError,
    AuthenticationError,
    InvalidRequestError,
    SignatureVerificationError,
    StripeError,
)

from aghosh.payments.currency import CurrencyTable, to_minor_units
from aghosh.payments.errors import (
    PaymentGatewayError,
    PaymentGatewayUnavailable,
    ValidationError,
    WebhookSignatureInvalid,
)

logger = logging.getLogger(__name__)

PAYMENT_INTENT_PREFIX = 'pi_'
CHECKOUT_SESSION_PREFIX = 'cs_'
CHECKOUT_SESSION_ID_RE = re.compile(r'^cs_(test_|live_)?[A-Za-z0-9]+$')
PAYMENT_INTENT_ID_RE = re.compile(r'^pi_[A-Za-z0-9]+$')

SPONSORSHIP_PAYMENT = 'monthly_sponsorship'
EVENT_DONATION_PAYMENT = 'event_donation'
DONATION_PAYMENT = 'donation'


def is_checkout_session_id(value):
    return isinstance(value, str) and bool(CHECKOUT_SESSION_ID_RE.match(value))


def is_payment_intent_id(value):
    return isinstance(value, str) and bool(PAYMENT_INTENT_ID_RE.match(value))


def _get(obj, key, default=None):
    """Read ``key`` from a Stripe object, a dict or a plain object"""
    if obj is None:
        return default
    try:
        value = obj[key]
    except (KeyError, TypeError, IndexError):
        value = getattr(obj, key, None)
    return default if value is None else value


def _as_dict(obj) -> Dict[str, Any]:
    if not obj:
        return {}
    if isinstance(obj, dict):
        return dict(obj)
    to_dict = getattr(obj, 'to_dict', None)
    if callable(to_dict):
        return to_dict()
    return {key: obj[key] for key in obj.keys()}


@dataclass
class DonationRequest:
    """A validated request to charge a one-time donation"""
    amount: Decimal
    currency: str
    category: str
    donation_type: str = 'sadaqah'
    donor_name: Optional[str] = None
    donor_email: Optional[str] = None
    is_anonymous: bool = False
    message: Optional[str] = None
    donor_id: Optional[int] = None

    @property
    def display_name(self):
        if self.is_anonymous:
            return 'Anonymous'
        return self.donor_name or 'Anonymous'

    def metadata(self, base_equivalent: int) -> Dict[str, str]:
        """Metadata attached to the processor object; all values are strings"""
        data = {
            'type': DONATION_PAYMENT,
            'category': self.category,
            'donationType': self.donation_type,
            'donorName': self.display_name,
            'donorEmail': self.donor_email or '',
            'isAnonymous': 'true' if self.is_anonymous else 'false',
            'message': self.message or '',
            'pkrEquivalent': str(base_equivalent),
            'originalCurrency': self.currency,
            'originalAmount': str(self.amount),
        }
        if self.donor_id:
            data['donorId'] = str(self.donor_id)
        return data

    def description(self, base_equivalent: int) -> str:
        type_label = self.donation_type.capitalize() if self.donation_type else 'Donation'
        return (
            f'Aghosh Orphan Care Home - {type_label} for {self.category} '
            f'(PKR {base_equivalent:,})'
        )


@dataclass
class PaymentIntentResult:
    client_secret: str
    external_id: str
    base_currency_equivalent: int


@dataclass
class CheckoutSessionResult:
    redirect_url: str
    external_id: str
    base_currency_equivalent: int


@dataclass
class PaymentStatus:
    """Authoritative state of a payment intent or checkout session"""
    external_id: str
    kind: str
    status: str
    succeeded: bool
    metadata: Dict[str, str] = field(default_factory=dict)
    amount: Optional[int] = None  # minor units
    currency: Optional[str] = None
    payment_intent_id: Optional[str] = None
    receipt_url: Optional[str] = None

    @property
    def claim_key(self):
        """Identifier shared by every reconciliation path for this payment"""
        return self.payment_intent_id or self.external_id

    @property
    def is_sponsorship(self):
        return self.metadata.get('type') == SPONSORSHIP_PAYMENT

    @property
    def is_event_donation(self):
        return self.metadata.get('type') == EVENT_DONATION_PAYMENT

    @property
    def display_amount(self):
        if self.amount is None:
            return 0
        return self.amount / 100


@dataclass
class WebhookEvent:
    id: Optional[str]
    type: str
    object: Any


class PaymentGateway(ABC):
    """Abstract payment processor"""

    def __init__(self, currency_table: Optional[CurrencyTable] = None):
        self.currency_table = currency_table

    @abstractmethod
    def is_configured(self) -> bool:
        pass

    @abstractmethod
    def create_payment_intent(self, donation_request: DonationRequest) -> PaymentIntentResult:
        pass

    @abstractmethod
    def create_checkout_session(self, donation_request: DonationRequest, success_url: str,
                                cancel_url: str) -> CheckoutSessionResult:
        pass

    @abstractmethod
    def create_sponsorship_intent(self, sponsorship) -> PaymentIntentResult:
        pass

    @abstractmethod
    def create_event_donation_intent(self, event_donation) -> PaymentIntentResult:
        pass

    @abstractmethod
    def retrieve_status(self, external_id: str) -> PaymentStatus:
        pass

    @abstractmethod
    def retrieve_receipt_url(self, payment_intent_id: str) -> Optional[str]:
        pass

    @abstractmethod
    def construct_event(self, payload: bytes, signature: Optional[str]) -> WebhookEvent:
        pass

    def get_currency_table(self) -> CurrencyTable:
        if self.currency_table is None:
            from flask import current_app
            return CurrencyTable.from_config(current_app.config)
        return self.currency_table

    def prepare(self, donation_request: DonationRequest) -> int:
        """Validate the request and return its base-currency equivalent.

        Runs before any processor call so a rejected request never reaches
        the network.
        """
        table = self.get_currency_table()
        donation_request.currency = (donation_request.currency or '').lower()
        donation_request.amount = table.validate(donation_request.amount, donation_request.currency)
        return table.to_base(donation_request.amount, donation_request.currency)


class StripeGateway(PaymentGateway):
    """Stripe implementation of the payment gateway"""

    def __init__(self, secret_key=None, publishable_key=None, webhook_secret=None,
                 api_version=None, currency_table=None):
        super().__init__(currency_table)
        self.secret_key = secret_key or ''
        self.publishable_key = publishable_key or ''
        self.webhook_secret = webhook_secret or ''
        self.api_version = api_version

    def is_configured(self) -> bool:
        return bool(self.secret_key and self.publishable_key)

    def _request_options(self):
        if not self.is_configured():
            raise PaymentGatewayUnavailable()
        options = {'api_key': self.secret_key}
        if self.api_version:
            options['stripe_version'] = self.api_version
        return options

    def _call(self, action, func, *args, **kwargs):
        """Run a Stripe call, translating its errors into payment errors"""
        try:
            return func(*args, **kwargs)
        except (APIConnectionError, AuthenticationError) as e:
            logger.error(f'Stripe unavailable during {action}: {str(e)}')
            raise PaymentGatewayUnavailable() from e
        except InvalidRequestError as e:
            logger.warning(f'Stripe rejected {action}: {str(e)}')
            raise ValidationError(f'Payment processor rejected the request: {e.user_message or "invalid request"}') from e
        except StripeError as e:
            logger.error(f'Stripe error during {action}: {str(e)}', exc_info=True)
            raise PaymentGatewayError() from e

    def create_payment_intent(self, donation_request: DonationRequest) -> PaymentIntentResult:
        base_equivalent = self.prepare(donation_request)
        options = self._request_options()

        params = {
            'amount': to_minor_units(donation_request.amount),
            'currency': donation_request.currency,
            'metadata': donation_request.metadata(base_equivalent),
            'description': donation_request.description(base_equivalent),
        }
        if donation_request.donor_email:
            params['receipt_email'] = donation_request.donor_email

        intent = self._call('payment intent creation', stripe.PaymentIntent.create, **params, **options)
        logger.info(f'Stripe payment intent created: {_get(intent, "id")} ({base_equivalent} PKR)')
        return PaymentIntentResult(
            client_secret=_get(intent, 'client_secret'),
            external_id=_get(intent, 'id'),
            base_currency_equivalent=base_equivalent,
        )

    def create_checkout_session(self, donation_request: DonationRequest, success_url: str,
                                cancel_url: str) -> CheckoutSessionResult:
        base_equivalent = self.prepare(donation_request)
        options = self._request_options()

        metadata = donation_request.metadata(base_equivalent)
        type_label = donation_request.donation_type.capitalize()
        params = {
            'payment_method_types': ['card'],
            'mode': 'payment',
            'line_items': [{
                'price_data': {
                    'currency': donation_request.currency,
                    'product_data': {
                        'name': f'{type_label} - {donation_request.category.capitalize()}',
                        'description': donation_request.description(base_equivalent),
                    },
                    'unit_amount': to_minor_units(donation_request.amount),
                },
                'quantity': 1,
            }],
            'metadata': metadata,
            # The webhook for the underlying intent needs the same metadata
            'payment_intent_data': {'metadata': metadata},
            'success_url': success_url,
            'cancel_url': cancel_url,
        }
        if donation_request.donor_email:
            params['customer_email'] = donation_request.donor_email

        session = self._call('checkout session creation', stripe.checkout.Session.create, **params, **options)
        logger.info(f'Stripe checkout session created: {_get(session, "id")} ({base_equivalent} PKR)')
        return CheckoutSessionResult(
            redirect_url=_get(session, 'url'),
            external_id=_get(session, 'id'),
            base_currency_equivalent=base_equivalent,
        )

    def create_sponsorship_intent(self, sponsorship) -> PaymentIntentResult:
        options = self._request_options()
        params = {
            'amount': to_minor_units(sponsorship.monthly_amount),
            'currency': 'pkr',
            'description': f'Monthly sponsorship for child ID: {sponsorship.child_id}',
            'metadata': {
                'type': SPONSORSHIP_PAYMENT,
                'sponsorshipId': str(sponsorship.id),
                'childId': str(sponsorship.child_id),
                'sponsorName': sponsorship.sponsor_name,
                'sponsorEmail': sponsorship.sponsor_email,
            },
            'receipt_email': sponsorship.sponsor_email,
        }
        intent = self._call('sponsorship intent creation', stripe.PaymentIntent.create, **params, **options)
        logger.info(f'Stripe sponsorship intent created: {_get(intent, "id")} for sponsorship {sponsorship.id}')
        return PaymentIntentResult(
            client_secret=_get(intent, 'client_secret'),
            external_id=_get(intent, 'id'),
            base_currency_equivalent=sponsorship.monthly_amount,
        )

    def create_event_donation_intent(self, event_donation) -> PaymentIntentResult:
        options = self._request_options()
        event = event_donation.event
        params = {
            'amount': to_minor_units(event_donation.amount),
            'currency': 'pkr',
            'description': f'Event donation: {event.title if event else event_donation.event_id}',
            'metadata': {
                'type': EVENT_DONATION_PAYMENT,
                'eventDonationId': str(event_donation.id),
                'eventId': str(event_donation.event_id),
                'donorName': event_donation.donor_name,
                'donorEmail': event_donation.donor_email,
            },
            'receipt_email': event_donation.donor_email,
        }
        intent = self._call('event donation intent creation', stripe.PaymentIntent.create, **params, **options)
        logger.info(f'Stripe event donation intent created: {_get(intent, "id")} for event donation {event_donation.id}')
        return PaymentIntentResult(
            client_secret=_get(intent, 'client_secret'),
            external_id=_get(intent, 'id'),
            base_currency_equivalent=event_donation.amount,
        )

    def retrieve_status(self, external_id: str) -> PaymentStatus:
        if is_payment_intent_id(external_id):
            return self._retrieve_payment_intent(external_id)
        if is_checkout_session_id(external_id):
            return self._retrieve_checkout_session(external_id)
        raise ValidationError('Invalid payment identifier')

    def _retrieve_payment_intent(self, payment_intent_id):
        options = self._request_options()
        intent = self._call(
            'payment intent retrieval', stripe.PaymentIntent.retrieve,
            payment_intent_id, expand=['latest_charge'], **options
        )
        return payment_intent_status(intent)

    def _retrieve_checkout_session(self, session_id):
        options = self._request_options()
        session = self._call('checkout session retrieval', stripe.checkout.Session.retrieve, session_id, **options)
        return checkout_session_status(session)

    def retrieve_receipt_url(self, payment_intent_id: str) -> Optional[str]:
        return self._retrieve_payment_intent(payment_intent_id).receipt_url

    def construct_event(self, payload: bytes, signature: Optional[str]) -> WebhookEvent:
        if not self.webhook_secret:
            raise WebhookSignatureInvalid('STRIPE_WEBHOOK_SECRET must be set for webhook verification')
        if not isinstance(payload, (bytes, bytearray)):
            # Means something parsed the request body before the webhook view read it
            raise WebhookSignatureInvalid(
                f'Webhook payload must be raw bytes, received {type(payload).__name__}. '
                f'The request body was consumed before reaching the webhook handler.'
            )
        if not payload:
            raise WebhookSignatureInvalid('Empty webhook payload')
        if not signature:
            raise WebhookSignatureInvalid('Missing Stripe-Signature header')
        try:
            event = stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except ValueError as e:
            raise WebhookSignatureInvalid('Invalid webhook payload') from e
        except SignatureVerificationError as e:
            raise WebhookSignatureInvalid() from e
        data = _get(event, 'data')
        return WebhookEvent(id=_get(event, 'id'), type=_get(event, 'type', ''), object=_get(data, 'object'))


def _receipt_url_from_charge(charge):
    # latest_charge is only an object when expanded
    if charge is None or isinstance(charge, str):
        return None
    return _get(charge, 'receipt_url')


def payment_intent_status(intent) -> PaymentStatus:
    status = _get(intent, 'status', '')
    return PaymentStatus(
        external_id=_get(intent, 'id'),
        kind='payment_intent',
        status=status,
        succeeded=status == 'succeeded',
        metadata=_as_dict(_get(intent, 'metadata')),
        amount=_get(intent, 'amount'),
        currency=_get(intent, 'currency'),
        payment_intent_id=_get(intent, 'id'),
        receipt_url=_receipt_url_from_charge(_get(intent, 'latest_charge')),
    )


def checkout_session_status(session) -> PaymentStatus:
    payment_status = _get(session, 'payment_status', '')
    payment_intent = _get(session, 'payment_intent')
    if payment_intent is not None and not isinstance(payment_intent, str):
        payment_intent = _get(payment_intent, 'id')
    return PaymentStatus(
        external_id=_get(session, 'id'),
        kind='checkout_session',
        status=payment_status,
        succeeded=payment_status == 'paid',
        metadata=_as_dict(_get(session, 'metadata')),
        amount=_get(session, 'amount_total'),
        currency=_get(session, 'currency'),
        payment_intent_id=payment_intent,
    )
