"""Validation of lease billing terms.

Any lease that reaches the billing engine goes through :func:`validate_lease_terms`
first; a failure is a :class:`ConfigurationError` scoped to that lease only.
"""
from ...enum.leasing_enum import ChargeMode, LeaseStatus, RentIncreaseType
from .exceptions import ConfigurationError
from .money import is_whole, to_decimal


def increase_type(lease) -> RentIncreaseType:
    raw = lease.rent_increase_type or RentIncreaseType.none.value
    try:
        return RentIncreaseType(raw)
    except ValueError:
        raise ConfigurationError(f"Unknown rent increase type: {raw}")


def interval_cycles(lease) -> int:
    """Number of billing cycles between two rent increases."""
    interval = lease.rent_increase_interval_months
    cycle = lease.billing_cycle_months
    if not interval or interval < 1:
        raise ConfigurationError(
            "Rent increase interval must be at least one month")
    if interval % cycle:
        raise ConfigurationError(
            f"Rent increase interval ({interval} months) must be a multiple "
            f"of the billing cycle ({cycle} months)")
    return interval // cycle


BILLABLE_STATUSES = (LeaseStatus.active, LeaseStatus.ended, LeaseStatus.terminated)


def billing_end_date(lease):
    """Exclusive bound for period starts: ``end_date``, or the termination
    date when a lease was stopped before it could be clipped."""
    if lease.terminated_at and lease.terminated_at < lease.end_date:
        return lease.terminated_at
    return lease.end_date


def validate_charge_terms(charge):
    if not charge.billing_cycle_months or charge.billing_cycle_months < 1:
        raise ConfigurationError(
            f"Charge '{charge.name}' billing cycle must be a positive number of months")

    try:
        mode = ChargeMode(charge.mode)
    except ValueError:
        raise ConfigurationError(f"Charge '{charge.name}' has unknown mode {charge.mode}")

    if mode == ChargeMode.fixed:
        if charge.fixed_amount_cents is None or charge.fixed_amount_cents < 0:
            raise ConfigurationError(
                f"Fixed charge '{charge.name}' needs a non-negative amount")
    else:
        if charge.unit_price_cents is None or charge.unit_price_cents < 0:
            raise ConfigurationError(
                f"Metered charge '{charge.name}' needs a non-negative unit price")


def validate_lease_terms(lease):
    if lease.start_date is None or lease.end_date is None:
        raise ConfigurationError("Lease start and end dates are required")
    if lease.start_date >= lease.end_date:
        raise ConfigurationError("Lease start date must be before end date")
    if not lease.billing_cycle_months or lease.billing_cycle_months < 1:
        raise ConfigurationError(
            "Billing cycle must be a positive number of months")
    if lease.base_rent_cents is None or lease.base_rent_cents < 0:
        raise ConfigurationError("Base rent must be non-negative")
    if (lease.deposit_cents or 0) < 0:
        raise ConfigurationError("Deposit must be non-negative")

    kind = increase_type(lease)
    if kind != RentIncreaseType.none:
        value = to_decimal(lease.rent_increase_value or 0)
        if value < 0:
            raise ConfigurationError("Rent increase value must be non-negative")
        if kind == RentIncreaseType.fixed and not is_whole(value):
            raise ConfigurationError(
                "Fixed rent increase must be a whole number of cents")
        interval_cycles(lease)

    for charge in lease.charges:
        validate_charge_terms(charge)
