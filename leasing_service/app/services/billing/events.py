"""Domain events written to the ``billing_events`` outbox.

Events are added to the caller's session so they commit (or roll back)
together with the change that produced them. Delivery is the notifier's job.
"""
import logging
from datetime import date, datetime
from typing import Optional, Union
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ...enum.billing_enum import BillingEventType, InvoiceItemStatus, InvoiceStatus
from ...models.billing.billing_events import BillingEvent
from ...models.billing.invoices import Invoice
from .periods import as_date

logger = logging.getLogger(__name__)


def record_event(db: Session, event_type: BillingEventType, org_id: UUID,
                 entity_type: str, entity_id: UUID, payload: Optional[dict] = None) -> BillingEvent:
    event = BillingEvent(
        org_id=org_id,
        event_type=event_type.value,
        entity_type=entity_type,
        entity_id=entity_id,
        payload=payload or {},
    )
    db.add(event)
    return event


def invoice_payload(invoice) -> dict:
    return {
        "invoice_id": str(invoice.id),
        "lease_id": str(invoice.lease_id),
        "period_start": invoice.period_start.isoformat(),
        "period_end": invoice.period_end.isoformat(),
        "due_date": invoice.due_date.isoformat(),
        "total_amount_cents": invoice.total_amount_cents,
    }


def record_invoice_created(db: Session, invoice):
    """InvoiceCreated for the invoice plus ItemPendingReading per metered placeholder.

    ``invoice`` must be flushed so ids exist.
    """
    record_event(db, BillingEventType.invoice_created, invoice.org_id,
                 "Invoice", invoice.id, invoice_payload(invoice))
    for item in invoice.items:
        if item.status == InvoiceItemStatus.pending_reading.value:
            record_event(db, BillingEventType.item_pending_reading, invoice.org_id,
                         "InvoiceItem", item.id, {
                             "invoice_id": str(invoice.id),
                             "item_id": str(item.id),
                             "name": item.name,
                             "unit_name": item.unit_name,
                             "meter_start": str(item.meter_start) if item.meter_start is not None else None,
                         })


def record_invoice_issued(db: Session, invoice):
    record_event(db, BillingEventType.invoice_issued, invoice.org_id,
                 "Invoice", invoice.id, invoice_payload(invoice))


def emit_overdue_events(db: Session, now: Union[date, datetime], org_id: Optional[UUID] = None) -> int:
    """Write one InvoiceOverdue event per issued invoice newly past due.

    Safe to run repeatedly: invoices that already have the event are skipped.
    """
    already_notified = (
        select(BillingEvent.entity_id)
        .where(BillingEvent.event_type == BillingEventType.invoice_overdue.value)
    )
    query = db.query(Invoice).filter(
        Invoice.status == InvoiceStatus.issued.value,
        Invoice.due_date < as_date(now),
        Invoice.id.not_in(already_notified),
    )
    if org_id:
        query = query.filter(Invoice.org_id == org_id)

    count = 0
    for invoice in query.all():
        record_event(db, BillingEventType.invoice_overdue, invoice.org_id,
                     "Invoice", invoice.id, invoice_payload(invoice))
        count += 1

    db.commit()
    if count:
        logger.info(f"Recorded {count} InvoiceOverdue event(s)")
    return count
