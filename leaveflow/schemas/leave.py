"""
Leave request schemas
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict
from leaveflow.models.leave import LeaveSession
from leaveflow.models.request_action import RequestStatus
from leaveflow.schemas.user import UserRef


class LeaveRequestCreate(BaseModel):
    """Schema for applying leave"""
    leave_type_id: int = Field(..., description="Leave type ID")
    start_date: date = Field(..., description="First day of leave")
    end_date: date = Field(..., description="Last day of leave (inclusive)")
    session: LeaveSession = Field(default=LeaveSession.FULL_DAY, description="FULL_DAY, MORNING or AFTERNOON")
    reason: Optional[str] = Field(None, max_length=1000, description="Reason for leave")


class LeaveRequestUpdate(BaseModel):
    """Requester edit while the request waits for the manager"""
    leave_type_id: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    session: Optional[LeaveSession] = None
    reason: Optional[str] = Field(None, max_length=1000)


class LeaveTypeRef(BaseModel):
    id: int
    name: str

    model_config = ConfigDict(from_attributes=True)


class LeaveRequestOut(BaseModel):
    id: int
    user_id: int
    user: Optional[UserRef] = None
    leave_type_id: int
    leave_type: Optional[LeaveTypeRef] = None
    start_date: date
    end_date: date
    session: LeaveSession
    reason: Optional[str] = None
    status: RequestStatus
    days: Decimal
    balance_override: bool
    reserved_balance_id: Optional[int] = None
    reserved_days: Optional[Decimal] = None
    manager_action_by_id: Optional[int] = None
    manager_action_at: Optional[datetime] = None
    manager_comments: Optional[str] = None
    hr_action_by_id: Optional[int] = None
    hr_action_at: Optional[datetime] = None
    hr_comments: Optional[str] = None
    cancelled_by_id: Optional[int] = None
    cancelled_at: Optional[datetime] = None
    cancellation_comments: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
