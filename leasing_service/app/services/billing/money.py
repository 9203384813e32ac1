"""Integer minor-unit money helpers.

Amounts are always ``int`` cents. Intermediate products (percent growth,
quantity x unit price) are carried as ``Decimal`` and rounded exactly once.
"""
from decimal import Decimal, ROUND_HALF_UP, localcontext
from typing import Iterable, Optional, Union

Number = Union[int, Decimal, str]

# enough headroom for (1 + p)^k over a few decades of escalations
_PRECISION = 50


def to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(value)


def round_half_away(value: Decimal) -> int:
    """Round to the nearest integer, ties away from zero."""
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        # ROUND_HALF_UP in decimal rounds ties away from zero for both signs
        return int(to_decimal(value).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def multiply_cents(quantity: Number, unit_price_cents: int) -> int:
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return round_half_away(to_decimal(quantity) * Decimal(unit_price_cents))


def compound_cents(base_cents: int, percent: Number, periods: int) -> int:
    """``round(base * (1 + percent/100) ** periods)`` with a single rounding."""
    if periods <= 0:
        return base_cents
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        factor = Decimal(1) + to_decimal(percent) / Decimal(100)
        return round_half_away(Decimal(base_cents) * (factor ** periods))


def sum_cents(amounts: Iterable[Optional[int]]) -> int:
    """Sum amounts, treating ``None`` (unconfirmed metered items) as 0."""
    return sum(a for a in amounts if a is not None)


def is_whole(value: Number) -> bool:
    d = to_decimal(value)
    return d == d.to_integral_value()
