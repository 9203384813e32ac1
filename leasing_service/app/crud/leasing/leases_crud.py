import logging
from datetime import date
from typing import List, Optional
from uuid import UUID

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session, selectinload

from ...enum.leasing_enum import LeaseStatus
from ...models.leasing.lease_charges import LeaseCharge
from ...models.billing.invoices import Invoice
from ...models.leasing.leases import Lease
from ...schemas.leasing.leases_schemas import LeaseCreate
from ...services.billing.exceptions import ConfigurationError, InvalidTransitionError, NotFoundError
from ...services.billing.lease_terms import validate_lease_terms

logger = logging.getLogger(__name__)


def get_lease(db: Session, org_id: UUID, lease_id: UUID) -> Lease:
    lease = db.query(Lease).filter(
        Lease.id == lease_id,
        Lease.org_id == org_id
    ).first()
    if not lease:
        raise NotFoundError("Lease not found")
    return lease


def get_billable_lease_ids(db: Session, org_id: Optional[UUID] = None) -> List[UUID]:
    """Active leases, plus ended or terminated ones with periods still unbilled."""
    last_period_end = (
        select(func.max(Invoice.period_end))
        .where(Invoice.lease_id == Lease.id)
        .correlate(Lease)
        .scalar_subquery()
    )
    closed = [LeaseStatus.ended.value, LeaseStatus.terminated.value]
    query = db.query(Lease.id).filter(or_(
        Lease.status == LeaseStatus.active.value,
        and_(
            Lease.status.in_(closed),
            or_(last_period_end.is_(None), last_period_end < Lease.end_date),
            or_(Lease.terminated_at.is_(None), Lease.terminated_at > Lease.start_date)
        )
    ))
    if org_id:
        query = query.filter(Lease.org_id == org_id)
    return [r.id for r in query.order_by(Lease.created_at.asc()).all()]


def get_lease_for_billing(db: Session, lease_id: UUID) -> Optional[Lease]:
    return (
        db.query(Lease)
        .options(selectinload(Lease.charges))
        .filter(Lease.id == lease_id)
        .first()
    )


def create_lease(db: Session, org_id: UUID, payload: LeaseCreate) -> Lease:
    data = payload.model_dump(exclude={"charges", "activate"})
    data["rent_increase_type"] = payload.rent_increase_type.value
    lease = Lease(
        org_id=org_id,
        status=(LeaseStatus.active if payload.activate else LeaseStatus.draft).value,
        **data
    )
    for position, charge in enumerate(payload.charges):
        charge_data = charge.model_dump()
        charge_data["mode"] = charge.mode.value
        lease.charges.append(LeaseCharge(position=position, **charge_data))

    validate_lease_terms(lease)

    db.add(lease)
    db.commit()
    db.refresh(lease)
    return lease


def _check_status(lease: Lease, allowed_from: set, target: LeaseStatus):
    if LeaseStatus(lease.status) not in allowed_from:
        raise InvalidTransitionError(
            f"Lease cannot move from {lease.status} to {target.value}")


def _change_status(db: Session, lease: Lease, allowed_from: set, target: LeaseStatus) -> Lease:
    _check_status(lease, allowed_from, target)
    lease.status = target.value
    db.commit()
    db.refresh(lease)
    logger.info(f"Lease {lease.id} is now {target.value}")
    return lease


def activate_lease(db: Session, org_id: UUID, lease_id: UUID) -> Lease:
    lease = get_lease(db, org_id, lease_id)
    validate_lease_terms(lease)
    return _change_status(db, lease, {LeaseStatus.draft}, LeaseStatus.active)


def end_lease(db: Session, org_id: UUID, lease_id: UUID, ended_on: Optional[date] = None) -> Lease:
    """Close an active lease. With ``ended_on`` before ``end_date`` the term is
    cut short there; periods starting earlier are still billed by the next run."""
    lease = get_lease(db, org_id, lease_id)
    _check_status(lease, {LeaseStatus.active}, LeaseStatus.ended)
    if ended_on is not None:
        if ended_on <= lease.start_date:
            raise ConfigurationError("End date must be after the lease start")
        if ended_on < lease.end_date:
            lease.end_date = ended_on
    return _change_status(db, lease, {LeaseStatus.active}, LeaseStatus.ended)


def terminate_lease(db: Session, org_id: UUID, lease_id: UUID, terminated_on: date) -> Lease:
    """Stop billing early. Periods starting on or after ``terminated_on`` are
    never generated; earlier ones still unbilled are picked up by the next run. A draft
    lease is billed for nothing."""
    lease = get_lease(db, org_id, lease_id)
    allowed_from = {LeaseStatus.draft, LeaseStatus.active}
    _check_status(lease, allowed_from, LeaseStatus.terminated)
    if terminated_on < lease.start_date:
        raise ConfigurationError("Termination date is before the lease start")

    if LeaseStatus(lease.status) == LeaseStatus.draft:
        # never took effect, so nothing is owed
        terminated_on = lease.start_date
    if lease.start_date < terminated_on < lease.end_date:
        lease.end_date = terminated_on
    lease.terminated_at = terminated_on
    return _change_status(db, lease, allowed_from, LeaseStatus.terminated)
