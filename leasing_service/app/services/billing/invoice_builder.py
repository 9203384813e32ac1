from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, Iterable, Optional
from uuid import UUID

from shared.core.config import settings
from ...enum.billing_enum import InvoiceItemKind, InvoiceItemStatus, InvoiceStatus
from ...enum.leasing_enum import ChargeMode
from ...models.billing.invoices import Invoice, InvoiceItem
from .charge_resolver import charges_due_in_period, resolve_charge_items
from .exceptions import ConfigurationError, DuplicatePeriodError
from .lease_terms import validate_lease_terms
from .money import sum_cents
from .periods import period_bounds, period_index_for
from .rent_schedule import rent_for_period

RENT_ITEM_NAME = "Rent"
DEPOSIT_ITEM_NAME = "Deposit"


def recompute_total(invoice) -> int:
    """Keep ``total_amount_cents`` equal to the sum of known item amounts."""
    invoice.total_amount_cents = sum_cents(i.amount_cents for i in invoice.items)
    return invoice.total_amount_cents


def due_date_for(period_start: date, grace_period_days: Optional[int] = None) -> date:
    if grace_period_days is None:
        grace_period_days = settings.BILLING_GRACE_PERIOD_DAYS
    return period_start + timedelta(days=grace_period_days)


def build_invoice(lease, period_start: date, *,
                  existing_period_starts: Iterable[date] = (),
                  previous_readings: Optional[Dict[UUID, Decimal]] = None,
                  grace_period_days: Optional[int] = None) -> Invoice:
    """Assemble an unsaved DRAFT invoice for one billing period of ``lease``.

    Nothing is written; the caller adds the result to a session. Raises
    ``DuplicatePeriodError`` when ``period_start`` is already billed and
    ``ConfigurationError`` when the lease terms cannot be billed.
    """
    if period_start in set(existing_period_starts):
        raise DuplicatePeriodError(lease.id, period_start)

    validate_lease_terms(lease)

    cycle = lease.billing_cycle_months
    try:
        index = period_index_for(lease.start_date, cycle, period_start)
    except ValueError as e:
        raise ConfigurationError(str(e))
    if period_start >= lease.end_date:
        raise ConfigurationError(
            f"Period {period_start} starts on or after lease end {lease.end_date}")

    _, period_end = period_bounds(lease.start_date, lease.end_date, cycle, index)

    items = [InvoiceItem(
        name=RENT_ITEM_NAME,
        kind=InvoiceItemKind.rent.value,
        mode=ChargeMode.fixed.value,
        status=InvoiceItemStatus.confirmed.value,
        amount_cents=rent_for_period(lease, index),
    )]

    # deposits are billed once, with the first period
    if period_start == lease.start_date and lease.deposit_cents:
        items.append(InvoiceItem(
            name=DEPOSIT_ITEM_NAME,
            kind=InvoiceItemKind.deposit.value,
            mode=None,
            status=InvoiceItemStatus.confirmed.value,
            amount_cents=lease.deposit_cents,
        ))

    items.extend(resolve_charge_items(
        charges_due_in_period(lease, period_start), previous_readings))

    for position, item in enumerate(items):
        item.position = position

    invoice = Invoice(
        org_id=lease.org_id,
        lease_id=lease.id,
        period_start=period_start,
        period_end=period_end,
        due_date=due_date_for(period_start, grace_period_days),
        status=InvoiceStatus.draft.value,
        items=items,
    )
    recompute_total(invoice)
    return invoice
