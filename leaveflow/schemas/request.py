"""
Schemas shared by leave and overtime workflow endpoints
"""
from datetime import datetime
from decimal import Decimal
from typing import Generic, List, Optional, TypeVar
from pydantic import BaseModel, Field, ConfigDict
from leaveflow.models.request_action import ApprovalAction, RequestKind, RequestStatus
from leaveflow.schemas.user import UserRef

T = TypeVar("T")


class ActionRequest(BaseModel):
    """Body for approve / reject / cancel"""
    comments: Optional[str] = Field(None, max_length=1000, description="Optional comments")
    override: bool = Field(False, description="HR only: approve past the remaining allocation")


class RequestActionOut(BaseModel):
    id: int
    request_kind: RequestKind
    request_id: int
    action: ApprovalAction
    from_status: Optional[RequestStatus] = None
    to_status: RequestStatus
    actor_id: int
    actor: Optional[UserRef] = None
    comments: Optional[str] = None
    acted_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PageResponse(BaseModel, Generic[T]):
    """Paginated listing; total counts the whole filtered set"""
    items: List[T]
    total: int
    page: Optional[int] = None
    limit: Optional[int] = None
    total_pages: int


class HistoryStatsResponse(BaseModel):
    total: int
    pending: int
    approved: int
    rejected: int
    cancelled: int
    # leave
    total_days_requested: Optional[Decimal] = None
    total_days_approved: Optional[Decimal] = None
    # overtime
    total_hours_requested: Optional[Decimal] = None
    total_hours_approved: Optional[Decimal] = None


class RequestActionCreate(ActionRequest):
    """Generic transition body for /requests/{kind}/{id}/actions"""
    action: ApprovalAction = Field(..., description="APPROVE, REJECT or CANCEL")


class PendingCountResponse(BaseModel):
    leave: int
    overtime: int
