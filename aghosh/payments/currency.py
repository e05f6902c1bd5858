"""
Currency table and base-currency conversion

Amounts are converted server-side into the organisation's base currency
(PKR). Rounding is half-up to a whole unit, so the same request always
yields the same stored amount.
"""
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Dict, List

from aghosh.payments.errors import ValidationError


@dataclass(frozen=True)
class CurrencyTable:
    base_currency: str
    rates: Dict[str, float]
    minimum_amounts: Dict[str, float]
    maximum_amount: float
    last_updated: str
    supported: List[str] = field(default_factory=list)
    default_minimum: float = 5

    @classmethod
    def from_config(cls, config):
        rates = dict(config.get('EXCHANGE_RATES', {}))
        return cls(
            base_currency=config.get('BASE_CURRENCY', 'pkr'),
            rates=rates,
            minimum_amounts=dict(config.get('MINIMUM_DONATION_AMOUNTS', {})),
            maximum_amount=config.get('MAXIMUM_DONATION_AMOUNT', 100000),
            last_updated=config.get('EXCHANGE_RATES_UPDATED', ''),
            supported=list(config.get('SUPPORTED_CURRENCIES') or rates.keys()),
            default_minimum=config.get('DEFAULT_MINIMUM_DONATION', 5),
        )

    def is_supported(self, currency):
        return bool(currency) and currency.lower() in self.supported

    def minimum_for(self, currency):
        return self.minimum_amounts.get(currency.lower(), self.default_minimum)

    def validate(self, amount, currency):
        """Raise ValidationError unless ``amount`` in ``currency`` may be charged"""
        if not self.is_supported(currency):
            raise ValidationError('Unsupported currency', errors={'currency': ['Unsupported currency']})
        amount = to_decimal(amount)
        if not amount.is_finite() or amount <= 0:
            raise ValidationError('Amount must be positive', errors={'amount': ['Amount must be positive']})
        minimum = self.minimum_for(currency)
        if amount < Decimal(str(minimum)):
            raise ValidationError(f'Minimum donation in {currency.upper()} is {minimum}')
        if amount > Decimal(str(self.maximum_amount)):
            raise ValidationError(
                f'Maximum donation is {self.maximum_amount} {currency.upper()}. '
                f'For larger donations, please contact us.'
            )
        return amount

    def to_base(self, amount, currency):
        """Base-currency equivalent of ``amount`` rounded half-up to a whole unit"""
        rate = Decimal(str(self.rates.get(currency.lower(), 1)))
        return int((to_decimal(amount) * rate).quantize(Decimal('1'), rounding=ROUND_HALF_UP))

    def as_dict(self):
        return {
            'rates': self.rates,
            'baseCurrency': self.base_currency,
            'lastUpdated': self.last_updated,
            'supportedCurrencies': self.supported,
            'minimumAmounts': self.minimum_amounts,
            'maximumAmount': self.maximum_amount,
        }


def to_decimal(value):
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError('Invalid amount', errors={'amount': ['Not a valid number']})


def to_minor_units(amount):
    """Amount in the smallest currency unit (two decimals) as Stripe expects it"""
    return int((to_decimal(amount) * 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP))
