"""
Consumption tax derivation for purchase request lines.

Prices on the source documents are tax-inclusive. The accounting system
wants the tax-inclusive amount of each line split into a net price and a
tax amount:

    amount_inc_tax = floor(unit_price_inc_tax * quantity)
    net_price      = floor(amount_inc_tax / (1 + TAX_RATE))
    tax_amount     = amount_inc_tax - net_price

All flooring is toward negative infinity. The tax amount is always the
remainder, so ``net_price + tax_amount == amount_inc_tax`` holds exactly.

Arithmetic is done in Decimal on the shortest decimal form of the inputs.
Binary floats get ``1100 / 1.1`` wrong (999.999...), which would floor to
999 instead of 1000.
"""

from decimal import ROUND_FLOOR, Decimal
from typing import Iterable, NamedTuple, Union

Number = Union[int, float, Decimal, str]

# Japanese standard consumption tax rate. Fixed, not a setting.
TAX_RATE = Decimal("0.10")
TAX_DIVISOR = 1 + TAX_RATE


class LineAmounts(NamedTuple):
    """Derived yen amounts for one line."""
    amount_inc_tax: int
    net_price: int
    tax_amount: int


def _to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        return Decimal(int(value))
    # repr() of a float is its shortest round-trip form: 0.33 -> "0.33"
    return Decimal(repr(value)) if isinstance(value, float) else Decimal(value)


def _floor(value: Decimal) -> int:
    return int(value.to_integral_value(rounding=ROUND_FLOOR))


def calculate_amount_inc_tax(unit_price_inc_tax: Number, quantity: Number) -> int:
    """Tax-inclusive line amount: the product, floored."""
    return _floor(_to_decimal(unit_price_inc_tax) * _to_decimal(quantity))


def calculate_net_price(amount_inc_tax: Number) -> int:
    """Tax-exclusive part of a tax-inclusive amount, floored."""
    return _floor(_to_decimal(amount_inc_tax) / TAX_DIVISOR)


def split_tax(amount_inc_tax: int) -> tuple[int, int]:
    """Split a tax-inclusive amount into ``(net_price, tax_amount)``."""
    net_price = calculate_net_price(amount_inc_tax)
    return net_price, amount_inc_tax - net_price


def derive(unit_price_inc_tax: Number, quantity: Number) -> LineAmounts:
    """Compute all derived amounts for one line."""
    amount = calculate_amount_inc_tax(unit_price_inc_tax, quantity)
    net_price, tax_amount = split_tax(amount)
    return LineAmounts(amount, net_price, tax_amount)


def calculate_total(amounts: Iterable[int]) -> int:
    """
    Document total from already-floored line amounts.

    Summing floored lines differs from flooring the summed products, so
    callers must pass ``amount_inc_tax`` values, not raw products.
    """
    return sum(amounts, 0)
