from datetime import datetime
from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shared.core.auth import require_permission, validate_current_token
from shared.core.database import get_leasing_db as get_db, get_leasing_session_factory
from shared.core.schemas import UserToken
from shared.helpers.json_response_helper import success_response
from shared.utils.app_status_code import AppStatusCode
from ...core.clock import get_now
from ...crud.billing import billing_events_crud as events_crud
from ...schemas.billing.invoices_schemas import BillingEventOut
from ...services.billing.billing_run import run_billing

router = APIRouter(
    prefix="/api/billing",
    tags=["billing"],
    dependencies=[Depends(validate_current_token)]
)


@router.post("/run")
def run_billing_for_org(
    now: datetime = Depends(get_now),
    session_factory=Depends(get_leasing_session_factory),
    current_user: UserToken = Depends(require_permission("billing.manage"))):
    report = run_billing(now, org_id=current_user.org_id,
                         session_factory=session_factory)
    return success_response(report, message="Billing run completed",
                            status_code=AppStatusCode.OPERATION_SUCCESSFUL)


@router.get("/events")
def get_billing_events(
    pending_only: bool = True,
    event_type: Optional[str] = None,
    limit: int = 100,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(require_permission("billing.read"))):
    events = events_crud.get_events(
        db, current_user.org_id, pending_only, event_type, limit)
    return success_response([BillingEventOut.model_validate(e) for e in events])


@router.post("/events/{event_id}/dispatched")
def mark_event_dispatched(
    event_id: UUID,
    now: datetime = Depends(get_now),
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(require_permission("billing.manage"))):
    event = events_crud.mark_dispatched(db, current_user.org_id, event_id, now)
    return success_response(BillingEventOut.model_validate(event),
                            status_code=AppStatusCode.UPDATED_SUCCESSFULLY)
