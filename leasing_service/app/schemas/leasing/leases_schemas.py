from datetime import date, datetime
from decimal import Decimal
from uuid import UUID
from pydantic import BaseModel, Field, model_validator
from typing import List, Optional

from ...enum.leasing_enum import ChargeMode, RentIncreaseType


class LeaseChargeCreate(BaseModel):
    name: str
    mode: ChargeMode
    fixed_amount_cents: Optional[int] = Field(default=None, ge=0)
    unit_price_cents: Optional[int] = Field(default=None, ge=0)
    unit_name: Optional[str] = None
    billing_cycle_months: int = Field(default=1, ge=1)
    is_active: bool = True

    @model_validator(mode="after")
    def check_mode_fields(self):
        if self.mode == ChargeMode.fixed and self.fixed_amount_cents is None:
            raise ValueError("fixed_amount_cents is required for fixed charges")
        if self.mode == ChargeMode.metered and self.unit_price_cents is None:
            raise ValueError("unit_price_cents is required for metered charges")
        return self


class LeaseChargeOut(BaseModel):
    id: UUID
    name: str
    mode: str
    fixed_amount_cents: Optional[int] = None
    unit_price_cents: Optional[int] = None
    unit_name: Optional[str] = None
    billing_cycle_months: int
    is_active: bool

    model_config = {"from_attributes": True}


class LeaseCreate(BaseModel):
    room_id: Optional[UUID] = None
    tenant_id: Optional[UUID] = None
    start_date: date
    end_date: date
    billing_cycle_months: int = Field(default=1, ge=1)
    base_rent_cents: int = Field(ge=0)
    deposit_cents: int = Field(default=0, ge=0)
    rent_increase_type: RentIncreaseType = RentIncreaseType.none
    rent_increase_value: Decimal = Field(default=Decimal(0), ge=0)
    rent_increase_interval_months: int = Field(default=12, ge=1)
    activate: bool = True
    charges: List[LeaseChargeCreate] = []


class LeaseTerminateRequest(BaseModel):
    terminated_on: date


class LeaseOut(BaseModel):
    id: UUID
    org_id: UUID
    room_id: Optional[UUID] = None
    tenant_id: Optional[UUID] = None
    start_date: date
    end_date: date
    billing_cycle_months: int
    base_rent_cents: int
    deposit_cents: int
    rent_increase_type: str
    rent_increase_value: Decimal
    rent_increase_interval_months: int
    status: str
    terminated_at: Optional[date] = None
    created_at: Optional[datetime] = None
    charges: List[LeaseChargeOut] = []

    model_config = {"from_attributes": True}
