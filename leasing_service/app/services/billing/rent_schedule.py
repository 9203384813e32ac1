from ...enum.leasing_enum import RentIncreaseType
from .exceptions import ConfigurationError
from .lease_terms import increase_type, interval_cycles
from .money import compound_cents, round_half_away, to_decimal


def escalations_elapsed(lease, period_index: int) -> int:
    """How many rent increases have applied by ``period_index``."""
    if period_index < 0:
        raise ConfigurationError("Period index cannot be negative")
    return period_index // interval_cycles(lease)


def rent_for_period(lease, period_index: int) -> int:
    """Rent in cents effective for the zero-based billing period ``period_index``.

    - none: base rent, always.
    - fixed: base + k * value, where k is the number of elapsed intervals.
    - percent: base * (1 + value/100) ** k, compounded on the increased rent
      and rounded once at the end.
    """
    base = lease.base_rent_cents
    if base is None or base < 0:
        raise ConfigurationError("Base rent must be non-negative")

    kind = increase_type(lease)
    if kind == RentIncreaseType.none:
        return base

    k = escalations_elapsed(lease, period_index)
    value = to_decimal(lease.rent_increase_value or 0)
    if value < 0:
        raise ConfigurationError("Rent increase value must be non-negative")

    if kind == RentIncreaseType.fixed:
        return base + k * round_half_away(value)

    return compound_cents(base, value, k)
