from datetime import datetime
from uuid import UUID
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shared.core.auth import require_permission, validate_current_token
from shared.core.database import get_leasing_db as get_db
from shared.core.schemas import UserToken
from shared.helpers.json_response_helper import success_response
from shared.utils.app_status_code import AppStatusCode
from ...core.clock import get_now
from ...crud.leasing import leases_crud as crud
from ...schemas.leasing.leases_schemas import LeaseCreate, LeaseOut, LeaseTerminateRequest

router = APIRouter(
    prefix="/api/leases",
    tags=["leases"],
    dependencies=[Depends(validate_current_token)]
)


@router.post("/")
def create_lease(
    lease: LeaseCreate,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(require_permission("lease.write"))):
    db_lease = crud.create_lease(db, current_user.org_id, lease)
    return success_response(LeaseOut.model_validate(db_lease),
                            status_code=AppStatusCode.CREATED_SUCCESSFULLY)


@router.get("/{lease_id}")
def get_lease(
    lease_id: UUID,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(require_permission("lease.read"))):
    return success_response(LeaseOut.model_validate(
        crud.get_lease(db, current_user.org_id, lease_id)))


@router.post("/{lease_id}/activate")
def activate_lease(
    lease_id: UUID,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(require_permission("lease.write"))):
    return success_response(LeaseOut.model_validate(
        crud.activate_lease(db, current_user.org_id, lease_id)),
        status_code=AppStatusCode.UPDATED_SUCCESSFULLY)


@router.post("/{lease_id}/end")
def end_lease(
    lease_id: UUID,
    now: datetime = Depends(get_now),
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(require_permission("lease.write"))):
    return success_response(LeaseOut.model_validate(
        crud.end_lease(db, current_user.org_id, lease_id, ended_on=now.date())),
        status_code=AppStatusCode.UPDATED_SUCCESSFULLY)


@router.post("/{lease_id}/terminate")
def terminate_lease(
    lease_id: UUID,
    payload: LeaseTerminateRequest,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(require_permission("lease.write"))):
    return success_response(LeaseOut.model_validate(
        crud.terminate_lease(db, current_user.org_id, lease_id, payload.terminated_on)),
        status_code=AppStatusCode.UPDATED_SUCCESSFULLY)
