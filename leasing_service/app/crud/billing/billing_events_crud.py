from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from ...models.billing.billing_events import BillingEvent
from ...services.billing.exceptions import NotFoundError


def get_events(db: Session, org_id: UUID, pending_only: bool = True,
               event_type: Optional[str] = None, limit: int = 100) -> List[BillingEvent]:
    query = db.query(BillingEvent).filter(BillingEvent.org_id == org_id)
    if pending_only:
        query = query.filter(BillingEvent.dispatched_at.is_(None))
    if event_type:
        query = query.filter(BillingEvent.event_type == event_type)
    return query.order_by(BillingEvent.created_at.asc()).limit(limit).all()


def mark_dispatched(db: Session, org_id: UUID, event_id: UUID, now: datetime) -> BillingEvent:
    event = db.query(BillingEvent).filter(
        BillingEvent.id == event_id,
        BillingEvent.org_id == org_id
    ).first()
    if not event:
        raise NotFoundError("Billing event not found")

    if event.dispatched_at is None:
        event.dispatched_at = now
        db.commit()
        db.refresh(event)
    return event
