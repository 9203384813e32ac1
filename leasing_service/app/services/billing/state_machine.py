"""Invoice and invoice-item transitions.

::

    draft --confirm--> issued --pay--> paid
      |                  |
      +------void--------+----void---> void

Every transition validates first and mutates after, so a rejected call
leaves the objects untouched. Each accepted invoice transition appends a
status-history row; nothing is ever deleted.
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from ...enum.billing_enum import InvoiceItemStatus, InvoiceStatus
from ...enum.leasing_enum import ChargeMode
from ...models.billing.invoices import InvoiceStatusHistory
from .exceptions import InvalidReadingError, InvalidTransitionError, PendingItemsError
from .invoice_builder import recompute_total
from .money import Number, multiply_cents, to_decimal

ALLOWED_TRANSITIONS = {
    InvoiceStatus.draft: {InvoiceStatus.issued, InvoiceStatus.void},
    InvoiceStatus.issued: {InvoiceStatus.paid, InvoiceStatus.void},
    InvoiceStatus.paid: set(),
    InvoiceStatus.void: set(),
}


def _utcnow():
    return datetime.now(timezone.utc)


def _transition(invoice, target: InvoiceStatus, now: Optional[datetime], actor: Optional[str]):
    current = InvoiceStatus(invoice.status)
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransitionError(
            f"Invoice cannot move from {current.value} to {target.value}")

    invoice.status = target.value
    invoice.history.append(InvoiceStatusHistory(
        sequence=len(invoice.history),
        from_status=current.value,
        to_status=target.value,
        changed_at=now or _utcnow(),
        changed_by=actor,
    ))


def confirm_reading(item, meter_end: Number, meter_start: Optional[Number] = None,
                    now: Optional[datetime] = None):
    """Confirm a metered item from its meter readings.

    ``meter_start`` defaults to the value carried over when the item was
    built; an item built while the previous reading was pending has none and
    needs it supplied. The amount is ``round(quantity * unit_price)`` and the parent
    invoice total is recomputed. Confirmed items are immutable.
    """
    if item.mode != ChargeMode.metered.value:
        raise InvalidReadingError("Only metered items take meter readings")
    if item.status != InvoiceItemStatus.pending_reading.value:
        raise InvalidReadingError("Item reading is already confirmed")
    if item.unit_price_cents is None:
        raise InvalidReadingError("Item has no unit price")

    invoice = item.invoice
    if invoice is not None and invoice.status != InvoiceStatus.draft.value:
        raise InvalidTransitionError(
            f"Cannot confirm readings on a {invoice.status} invoice")

    if meter_start is None:
        meter_start = item.meter_start
    if meter_start is None:
        raise InvalidReadingError(
            "meter_start is unknown until the previous reading is confirmed; supply it explicitly")
    start = to_decimal(meter_start)
    end = to_decimal(meter_end)
    if start < 0 or end < 0:
        raise InvalidReadingError("Meter readings must be non-negative")
    if end < start:
        raise InvalidReadingError(
            f"meter_end ({end}) must be greater than or equal to meter_start ({start})")

    quantity: Decimal = end - start
    item.meter_start = start
    item.meter_end = end
    item.quantity = quantity
    item.amount_cents = multiply_cents(quantity, item.unit_price_cents)
    item.status = InvoiceItemStatus.confirmed.value
    item.confirmed_at = now or _utcnow()

    if invoice is not None:
        recompute_total(invoice)
    return item


def pending_items(invoice) -> list:
    return [i for i in invoice.items
            if i.status == InvoiceItemStatus.pending_reading.value]


def confirm_invoice(invoice, now: Optional[datetime] = None, actor: Optional[str] = None):
    """draft -> issued. Every item must be confirmed; the total is frozen."""
    if invoice.status != InvoiceStatus.draft.value:
        raise InvalidTransitionError(
            f"Only draft invoices can be confirmed (status: {invoice.status})")
    pending = pending_items(invoice)
    if pending:
        names = ", ".join(i.name for i in pending)
        raise PendingItemsError(f"Invoice has items waiting for a reading: {names}")

    recompute_total(invoice)
    _transition(invoice, InvoiceStatus.issued, now, actor)
    invoice.issued_at = now or _utcnow()
    return invoice


def mark_paid(invoice, now: Optional[datetime] = None, actor: Optional[str] = None):
    """issued (overdue included) -> paid."""
    _transition(invoice, InvoiceStatus.paid, now, actor)
    invoice.paid_at = now or _utcnow()
    return invoice


def void_invoice(invoice, now: Optional[datetime] = None, actor: Optional[str] = None):
    """draft|issued -> void. Paid invoices stay as history."""
    _transition(invoice, InvoiceStatus.void, now, actor)
    invoice.voided_at = now or _utcnow()
    return invoice
