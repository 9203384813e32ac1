from datetime import date, datetime
from uuid import UUID
from pydantic import BaseModel
from typing import List, Optional


class LeaseBillingResult(BaseModel):
    lease_id: UUID
    created_invoice_ids: List[UUID] = []
    skipped_periods: List[date] = []
    error: Optional[str] = None
    error_code: Optional[str] = None


class BillingRunReport(BaseModel):
    run_at: datetime
    created: int = 0
    skipped: int = 0
    errored: int = 0
    leases: List[LeaseBillingResult] = []

    @property
    def created_invoice_ids(self) -> List[UUID]:
        return [i for r in self.leases for i in r.created_invoice_ids]
