"""Monetary value handling: rounding, currency tagging and tax rate normalisation."""
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union

CENTS = Decimal('0.01')
# Stored precision of tax rates (Numeric(6, 4))
RATE_PLACES = Decimal('0.0001')
ZERO = Decimal('0.00')

SUPPORTED_CURRENCIES = ('RWF', 'USD', 'EUR')

CURRENCY_SYMBOLS = {
    'RWF': 'RWF',
    'USD': '$',
    'EUR': '€',
}

# Currencies printed without decimal places
WHOLE_UNIT_CURRENCIES = {'RWF'}

Number = Union[int, float, Decimal, str]


def to_decimal(value: Number) -> Decimal:
    """
    Convert a number to Decimal without float artefacts.

    Floats go through str() so 0.1 becomes Decimal('0.1') rather than
    Decimal('0.1000000000000000055511151231257827...').

    Raises:
        ValueError: if the value is not numeric.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f'Invalid amount: {value!r}')
    try:
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValueError(f'Invalid amount: {value!r}')


def to_money(value: Number) -> Decimal:
    """Round an amount to 2 decimals, half-up (1.005 -> 1.01)."""
    return to_decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def normalize_tax_rate(rate: Number) -> Decimal:
    """
    Validate a tax rate expressed as a fraction (0.18 for 18%).

    Rates finer than 4 decimals are rounded half-up to the stored precision
    (0.12345 -> 0.1235), so totals are always computed from the rate kept.

    Raises:
        ValueError: if the rate is not finite, negative or above 1.
    """
    value = to_decimal(rate)
    if not value.is_finite():
        raise ValueError(f'Invalid tax rate: {rate!r}')
    if value.as_tuple().exponent < -4:
        value = value.quantize(RATE_PLACES, rounding=ROUND_HALF_UP)
    if value < 0 or value > 1:
        raise ValueError('Tax rate must be a fraction between 0 and 1')
    return value


def tax_rate_from_percent(percent: Number) -> Decimal:
    """Convert a percentage (18) to the fraction used for storage (0.18)."""
    return normalize_tax_rate(to_decimal(percent) / Decimal(100))


def tax_rate_to_percent(rate: Number) -> Decimal:
    """Convert a stored fraction (0.18) back to a percentage (18)."""
    return (to_decimal(rate) * Decimal(100)).normalize()


def normalize_currency(code: str) -> str:
    """Upper-case a currency code and check it is supported."""
    normalized = (code or '').strip().upper()
    if normalized not in SUPPORTED_CURRENCIES:
        raise ValueError(
            f"Unsupported currency '{code}'. Use one of: {', '.join(SUPPORTED_CURRENCIES)}"
        )
    return normalized


@dataclass(frozen=True)
class Money:
    """An amount tagged with its currency. Amounts are always held at 2 decimals."""

    amount: Decimal
    currency: str = 'USD'

    def __post_init__(self):
        object.__setattr__(self, 'amount', to_money(self.amount))
        object.__setattr__(self, 'currency', normalize_currency(self.currency))

    def __add__(self, other):
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other)
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other):
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other)
        return Money(self.amount - other.amount, self.currency)

    def _check_currency(self, other):
        if other.currency != self.currency:
            raise ValueError(f'Cannot combine {self.currency} and {other.currency} amounts')

    def format(self) -> str:
        """
        Render for documents and exports.

        Examples:
            Money(1234.5, 'USD').format() -> "$ 1,234.50"
            Money(1234.5, 'RWF').format() -> "RWF 1,235"
        """
        symbol = CURRENCY_SYMBOLS[self.currency]
        if self.currency in WHOLE_UNIT_CURRENCIES:
            whole = self.amount.quantize(Decimal('1'), rounding=ROUND_HALF_UP)
            return f"{symbol} {whole:,}"
        return f"{symbol} {self.amount:,.2f}"

    def __str__(self):
        return self.format()


def format_money(value, currency: str = 'USD') -> str:
    """Format an amount for display; returns "-" when the amount is missing or invalid."""
    if value is None or value == "":
        return "-"
    try:
        return Money(to_decimal(value), currency or 'USD').format()
    except ValueError:
        return "-"
