import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional, Set
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from ...enum.billing_enum import InvoiceItemStatus, InvoiceStatus
from ...enum.leasing_enum import ChargeMode
from ...models.billing.invoices import Invoice, InvoiceItem
from ...models.leasing.leases import Lease
from ...schemas.billing.invoices_schemas import InvoiceOut, InvoicesRequest, InvoicesResponse
from ...services.billing import events, state_machine
from ...services.billing.exceptions import BillingError, DuplicatePeriodError, InvalidTransitionError, NotFoundError
from ...services.billing.invoice_builder import build_invoice
from ...services.billing.overdue import compute_display_status
from ...services.billing.periods import as_date

logger = logging.getLogger(__name__)


# ----------------------------------------------------------------------
# READ
# ----------------------------------------------------------------------

def invoice_to_out(invoice: Invoice, now) -> InvoiceOut:
    out = InvoiceOut.model_validate(invoice)
    out.display_status = compute_display_status(invoice, now)
    return out


def build_invoices_filters(org_id: UUID, params: InvoicesRequest, now):
    filters = [Invoice.org_id == org_id]
    today = as_date(now)

    if params.lease_id:
        filters.append(Invoice.lease_id == params.lease_id)

    if params.status and params.status.lower() != "all":
        status = params.status.lower()
        # filters follow the displayed status, so issued excludes overdue
        if status == InvoiceStatus.overdue.value:
            filters.append(Invoice.status == InvoiceStatus.issued.value)
            filters.append(Invoice.due_date < today)
        elif status == InvoiceStatus.issued.value:
            filters.append(Invoice.status == InvoiceStatus.issued.value)
            filters.append(Invoice.due_date >= today)
        else:
            filters.append(Invoice.status == status)

    return filters


def get_invoices(db: Session, org_id: UUID, params: InvoicesRequest, now) -> InvoicesResponse:
    filters = build_invoices_filters(org_id, params, now)
    base_query = db.query(Invoice).filter(*filters)
    total = base_query.with_entities(func.count(Invoice.id)).scalar()

    invoices = (
        base_query
        .options(selectinload(Invoice.items), selectinload(Invoice.history))
        .order_by(Invoice.period_start.desc(), Invoice.created_at.desc())
        .offset(params.skip)
        .limit(params.limit)
        .all()
    )

    return InvoicesResponse(
        invoices=[invoice_to_out(i, now) for i in invoices],
        total=total
    )


def get_invoice(db: Session, org_id: UUID, invoice_id: UUID, for_update: bool = False) -> Invoice:
    query = db.query(Invoice).filter(
        Invoice.id == invoice_id,
        Invoice.org_id == org_id
    )
    if for_update:
        query = query.with_for_update()
    invoice = query.first()
    if not invoice:
        raise NotFoundError("Invoice not found")
    return invoice


def get_invoice_item(invoice: Invoice, item_id: UUID) -> InvoiceItem:
    for item in invoice.items:
        if item.id == item_id:
            return item
    raise NotFoundError("Invoice item not found")


# ----------------------------------------------------------------------
# LEASE BILLING STATE
# ----------------------------------------------------------------------

def live_period_starts(db: Session, lease_id: UUID) -> Set[date]:
    rows = db.query(Invoice.period_start).filter(
        Invoice.lease_id == lease_id,
        Invoice.status != InvoiceStatus.void.value
    ).all()
    return {r.period_start for r in rows}


def last_materialized_period_end(db: Session, lease_id: UUID) -> Optional[date]:
    """End of the latest billed period, voided invoices included."""
    return db.query(func.max(Invoice.period_end)).filter(
        Invoice.lease_id == lease_id
    ).scalar()


def previous_readings(db: Session, lease_id: UUID, before: date) -> Dict[UUID, Optional[Decimal]]:
    """Carried ``meter_start`` per metered charge for a period starting at ``before``.

    The value is the ``meter_end`` of the charge's latest item before that
    period, or ``None`` while that item still waits for its reading.
    """
    rows = (
        db.query(InvoiceItem.lease_charge_id, InvoiceItem.status, InvoiceItem.meter_end)
        .join(Invoice, InvoiceItem.invoice_id == Invoice.id)
        .filter(
            Invoice.lease_id == lease_id,
            Invoice.status != InvoiceStatus.void.value,
            Invoice.period_start < before,
            InvoiceItem.lease_charge_id.isnot(None),
            InvoiceItem.mode == ChargeMode.metered.value,
        )
        .order_by(Invoice.period_start.asc())
        .all()
    )
    readings = {}
    # ascending order: later periods overwrite earlier ones
    for r in rows:
        confirmed = r.status == InvoiceItemStatus.confirmed.value
        readings[r.lease_charge_id] = r.meter_end if confirmed else None
    return readings


def resolve_meter_start(db: Session, invoice: Invoice, item: InvoiceItem) -> Optional[Decimal]:
    """``meter_start`` for an item built while the previous reading was pending."""
    if item.meter_start is not None or item.lease_charge_id is None:
        return item.meter_start
    return previous_readings(db, invoice.lease_id, invoice.period_start).get(item.lease_charge_id)


# ----------------------------------------------------------------------
# WRITE
# ----------------------------------------------------------------------

def persist_invoice(db: Session, invoice: Invoice) -> Invoice:
    """Insert a built invoice with its creation events in one transaction.

    A concurrent insert for the same (lease, period) trips the unique index
    and surfaces as ``DuplicatePeriodError``.
    """
    db.add(invoice)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise DuplicatePeriodError(invoice.lease_id, invoice.period_start)

    events.record_invoice_created(db, invoice)
    db.commit()
    db.refresh(invoice)
    return invoice


def build_and_persist(db: Session, lease: Lease, period_start: date) -> Invoice:
    invoice = build_invoice(
        lease,
        period_start,
        existing_period_starts=live_period_starts(db, lease.id),
        previous_readings=previous_readings(db, lease.id, period_start),
    )
    return persist_invoice(db, invoice)


def _commit_or_rollback(db: Session, action):
    try:
        result = action()
        db.commit()
    except BillingError:
        db.rollback()
        raise
    return result


def confirm_reading(db: Session, org_id: UUID, invoice_id: UUID, item_id: UUID,
                    meter_end: Decimal, meter_start: Optional[Decimal] = None,
                    now: Optional[datetime] = None) -> Invoice:
    invoice = get_invoice(db, org_id, invoice_id, for_update=True)
    item = get_invoice_item(invoice, item_id)
    if meter_start is None:
        meter_start = resolve_meter_start(db, invoice, item)
    _commit_or_rollback(db, lambda: state_machine.confirm_reading(
        item, meter_end, meter_start, now=now))
    db.refresh(invoice)
    return invoice


def confirm_invoice(db: Session, org_id: UUID, invoice_id: UUID,
                    now: Optional[datetime] = None, actor: Optional[str] = None) -> Invoice:
    invoice = get_invoice(db, org_id, invoice_id, for_update=True)

    def action():
        state_machine.confirm_invoice(invoice, now=now, actor=actor)
        events.record_invoice_issued(db, invoice)

    _commit_or_rollback(db, action)
    db.refresh(invoice)
    return invoice


def mark_paid(db: Session, org_id: UUID, invoice_id: UUID,
              now: Optional[datetime] = None, actor: Optional[str] = None) -> Invoice:
    invoice = get_invoice(db, org_id, invoice_id, for_update=True)
    _commit_or_rollback(db, lambda: state_machine.mark_paid(
        invoice, now=now, actor=actor))
    db.refresh(invoice)
    return invoice


def void_invoice(db: Session, org_id: UUID, invoice_id: UUID,
                 now: Optional[datetime] = None, actor: Optional[str] = None) -> Invoice:
    invoice = get_invoice(db, org_id, invoice_id, for_update=True)
    _commit_or_rollback(db, lambda: state_machine.void_invoice(
        invoice, now=now, actor=actor))
    db.refresh(invoice)
    return invoice


def rebuild_invoice(db: Session, org_id: UUID, invoice_id: UUID) -> Invoice:
    """Build a fresh draft for the period of a voided invoice."""
    voided = get_invoice(db, org_id, invoice_id)
    if voided.status != InvoiceStatus.void.value:
        raise InvalidTransitionError("Only voided invoices can be rebuilt")

    lease = db.query(Lease).filter(Lease.id == voided.lease_id).first()
    if not lease:
        raise NotFoundError("Lease not found")

    invoice = build_and_persist(db, lease, voided.period_start)
    logger.info(
        f"Rebuilt invoice {voided.id} as {invoice.id} for period {invoice.period_start}")
    return invoice


def list_invoices_for_lease(db: Session, lease_id: UUID) -> List[Invoice]:
    return (
        db.query(Invoice)
        .filter(Invoice.lease_id == lease_id)
        .order_by(Invoice.period_start.asc(), Invoice.created_at.asc())
        .all()
    )
