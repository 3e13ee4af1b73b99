"""Quotation totals: line totals, subtotal, tax, discount and grand total."""
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Mapping, Any, Union

from qms.utils.money import to_decimal, to_money, ZERO

Number = Union[int, float, Decimal, str]


@dataclass(frozen=True)
class QuotationTotals:
    """Derived amounts of a quotation. All values rounded to 2 decimals."""

    subtotal: Decimal
    tax_amount: Decimal
    discount: Decimal
    total: Decimal


def _item_value(item: Any, *names: str):
    """Read quantity/unit price from a mapping or an object (DTO, ORM row)."""
    for name in names:
        if isinstance(item, Mapping):
            if name in item:
                return item[name]
        elif hasattr(item, name):
            return getattr(item, name)
    raise KeyError(f"Line item is missing '{names[0]}'")


def line_total(quantity: Number, unit_price: Number) -> Decimal:
    """quantity * unit_price, rounded to 2 decimals (the amount stored on a line item)."""
    return to_money(to_decimal(quantity) * to_decimal(unit_price))


def compute_subtotal(items: Iterable[Any]) -> Decimal:
    """Sum of quantity * unit_price over the items, rounded once."""
    subtotal = ZERO
    for item in items:
        quantity = _item_value(item, 'quantity', 'qty')
        unit_price = _item_value(item, 'unit_price', 'unitPrice', 'price')
        subtotal += to_decimal(quantity) * to_decimal(unit_price)
    return to_money(subtotal)


def compute_totals(items: Iterable[Any], tax_rate: Number, discount: Number = 0) -> QuotationTotals:
    """
    Compute quotation totals.

    Args:
        items: line items exposing quantity and unit price
        tax_rate: fraction applied to the subtotal (0.18 for 18%)
        discount: absolute amount subtracted from subtotal + tax

    Returns:
        QuotationTotals where
            subtotal   = sum(quantity * unit_price)
            tax_amount = round(subtotal * tax_rate, 2)
            total      = round(subtotal + tax_amount - discount, 2)

    An empty item list gives a total of -discount; negative totals are
    returned as-is.

    Example:
        compute_totals([{'quantity': 1, 'unit_price': 8000}], Decimal('0.18'), 500)
        -> subtotal 8000.00, tax 1440.00, total 8940.00
    """
    subtotal = compute_subtotal(items)
    discount_value = to_money(discount or 0)
    tax_amount = to_money(subtotal * to_decimal(tax_rate or 0))
    total = to_money(subtotal + tax_amount - discount_value)

    return QuotationTotals(
        subtotal=subtotal,
        tax_amount=tax_amount,
        discount=discount_value,
        total=total,
    )
