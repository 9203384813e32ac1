from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from ...enum.billing_enum import InvoiceItemKind, InvoiceItemStatus
from ...enum.leasing_enum import ChargeMode
from ...models.billing.invoices import InvoiceItem
from .exceptions import ConfigurationError
from .periods import period_index_for


def months_since_lease_start(lease, period_start: date) -> int:
    try:
        index = period_index_for(
            lease.start_date, lease.billing_cycle_months, period_start)
    except ValueError as e:
        raise ConfigurationError(str(e))
    return index * lease.billing_cycle_months


def is_charge_due(charge, months_elapsed: int) -> bool:
    if not charge.is_active:
        return False
    cycle = charge.billing_cycle_months or 1
    return months_elapsed % cycle == 0


def charges_due_in_period(lease, period_start: date) -> list:
    """Active charges whose own cycle lands on ``period_start``.

    A charge billed every 3 months on a monthly lease is due at months 0, 3,
    6, ...; other periods skip it entirely (no partial billing).
    """
    months_elapsed = months_since_lease_start(lease, period_start)
    return [c for c in lease.charges if is_charge_due(c, months_elapsed)]


def resolve_charge_items(charges: list,
                         previous_readings: Optional[Dict[UUID, Decimal]] = None) -> List[InvoiceItem]:
    """Turn due charges into unsaved invoice items.

    Fixed charges are confirmed on creation. Metered charges become
    placeholders waiting for a meter reading, with ``meter_start`` carried
    over from the charge's previous ``meter_end`` (0 on the first period,
    ``None`` while the previous reading is still pending).
    """
    previous_readings = previous_readings or {}
    items = []
    for charge in charges:
        if ChargeMode(charge.mode) == ChargeMode.fixed:
            items.append(InvoiceItem(
                lease_charge_id=charge.id,
                name=charge.name,
                kind=InvoiceItemKind.charge.value,
                mode=ChargeMode.fixed.value,
                status=InvoiceItemStatus.confirmed.value,
                amount_cents=charge.fixed_amount_cents,
            ))
        else:
            items.append(InvoiceItem(
                lease_charge_id=charge.id,
                name=charge.name,
                kind=InvoiceItemKind.charge.value,
                mode=ChargeMode.metered.value,
                status=InvoiceItemStatus.pending_reading.value,
                amount_cents=None,
                unit_price_cents=charge.unit_price_cents,
                unit_name=charge.unit_name,
                meter_start=previous_readings.get(charge.id, Decimal(0)),
            ))
    return items
