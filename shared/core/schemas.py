from pydantic import BaseModel
from typing import Generic, List, Optional, TypeVar
from uuid import UUID

# Shared properties
T = TypeVar("T")


class UserToken(BaseModel):
    user_id: str
    org_id: UUID
    name: Optional[str] = None
    account_type: Optional[str] = None
    # permission keys granted through the caller's roles, e.g. "billing.manage"
    permissions: List[str] = []
    exp: Optional[int] = None


class CommonQueryParams(BaseModel):
    search: Optional[str] = None
    skip: Optional[int] = 0
    limit: Optional[int] = 100


class JsonOutResult(BaseModel, Generic[T]):
    data: Optional[T] = None
    status: str
    status_code: str
    message: str
