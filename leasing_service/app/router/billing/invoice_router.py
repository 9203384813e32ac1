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
from ...crud.billing import invoices_crud as crud
from ...schemas.billing.invoices_schemas import ConfirmReadingRequest, InvoicesRequest

router = APIRouter(
    prefix="/api/invoices",
    tags=["invoices"],
    dependencies=[Depends(validate_current_token)]
)


#-----------------------------------------------------------------
@router.get("/all")
def get_invoices(
    params: InvoicesRequest = Depends(),
    now: datetime = Depends(get_now),
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(require_permission("billing.read"))):
    return success_response(crud.get_invoices(db, current_user.org_id, params, now))


@router.get("/{invoice_id}")
def get_invoice(
    invoice_id: UUID,
    now: datetime = Depends(get_now),
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(require_permission("billing.read"))):
    invoice = crud.get_invoice(db, current_user.org_id, invoice_id)
    return success_response(crud.invoice_to_out(invoice, now))


@router.post("/{invoice_id}/items/{item_id}/confirm-reading")
def confirm_reading(
    invoice_id: UUID,
    item_id: UUID,
    payload: ConfirmReadingRequest,
    now: datetime = Depends(get_now),
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(require_permission("billing.manage"))):
    invoice = crud.confirm_reading(
        db, current_user.org_id, invoice_id, item_id,
        meter_end=payload.meter_end, meter_start=payload.meter_start, now=now)
    return success_response(crud.invoice_to_out(invoice, now),
                            message="Reading confirmed",
                            status_code=AppStatusCode.UPDATED_SUCCESSFULLY)


@router.post("/{invoice_id}/confirm")
def confirm_invoice(
    invoice_id: UUID,
    now: datetime = Depends(get_now),
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(require_permission("billing.manage"))):
    invoice = crud.confirm_invoice(
        db, current_user.org_id, invoice_id, now=now, actor=current_user.user_id)
    return success_response(crud.invoice_to_out(invoice, now),
                            message="Invoice issued",
                            status_code=AppStatusCode.UPDATED_SUCCESSFULLY)


@router.post("/{invoice_id}/pay")
def mark_paid(
    invoice_id: UUID,
    now: datetime = Depends(get_now),
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(require_permission("billing.manage"))):
    invoice = crud.mark_paid(
        db, current_user.org_id, invoice_id, now=now, actor=current_user.user_id)
    return success_response(crud.invoice_to_out(invoice, now),
                            message="Invoice paid",
                            status_code=AppStatusCode.UPDATED_SUCCESSFULLY)


@router.post("/{invoice_id}/void")
def void_invoice(
    invoice_id: UUID,
    now: datetime = Depends(get_now),
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(require_permission("billing.manage"))):
    invoice = crud.void_invoice(
        db, current_user.org_id, invoice_id, now=now, actor=current_user.user_id)
    return success_response(crud.invoice_to_out(invoice, now),
                            message="Invoice voided",
                            status_code=AppStatusCode.UPDATED_SUCCESSFULLY)


@router.post("/{invoice_id}/rebuild")
def rebuild_invoice(
    invoice_id: UUID,
    now: datetime = Depends(get_now),
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(require_permission("billing.manage"))):
    invoice = crud.rebuild_invoice(db, current_user.org_id, invoice_id)
    return success_response(crud.invoice_to_out(invoice, now),
                            message="Invoice rebuilt",
                            status_code=AppStatusCode.CREATED_SUCCESSFULLY)
