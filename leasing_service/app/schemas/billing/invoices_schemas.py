from datetime import date, datetime
from decimal import Decimal
from uuid import UUID
from pydantic import BaseModel, Field
from typing import List, Optional
from shared.core.schemas import CommonQueryParams


class InvoiceItemOut(BaseModel):
    id: UUID
    lease_charge_id: Optional[UUID] = None
    position: int
    name: str
    kind: str
    mode: Optional[str] = None
    status: str
    amount_cents: Optional[int] = None
    unit_price_cents: Optional[int] = None
    unit_name: Optional[str] = None
    meter_start: Optional[Decimal] = None
    meter_end: Optional[Decimal] = None
    quantity: Optional[Decimal] = None
    confirmed_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class InvoiceStatusHistoryOut(BaseModel):
    sequence: int
    from_status: Optional[str] = None
    to_status: str
    changed_at: datetime
    changed_by: Optional[str] = None

    model_config = {"from_attributes": True}


class InvoiceOut(BaseModel):
    id: UUID
    org_id: UUID
    lease_id: UUID
    period_start: date
    period_end: date
    due_date: date
    status: str
    display_status: Optional[str] = None
    total_amount_cents: int
    issued_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    voided_at: Optional[datetime] = None
    items: List[InvoiceItemOut] = []
    history: List[InvoiceStatusHistoryOut] = []

    model_config = {"from_attributes": True}


class InvoicesRequest(CommonQueryParams):
    # draft|issued|paid|void|overdue (overdue is derived)
    status: Optional[str] = None
    lease_id: Optional[UUID] = None


class InvoicesResponse(BaseModel):
    invoices: List[InvoiceOut]
    total: int

    model_config = {"from_attributes": True}


class ConfirmReadingRequest(BaseModel):
    meter_end: Decimal = Field(ge=0)
    meter_start: Optional[Decimal] = Field(default=None, ge=0)


class BillingEventOut(BaseModel):
    id: UUID
    org_id: UUID
    event_type: str
    entity_type: str
    entity_id: UUID
    payload: Optional[dict] = None
    created_at: Optional[datetime] = None
    dispatched_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
