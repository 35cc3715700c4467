"""
Overtime request schemas
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict
from leaveflow.models.request_action import RequestStatus
from leaveflow.schemas.user import UserRef


class OvertimeRequestCreate(BaseModel):
    start_time: datetime = Field(..., description="Overtime start")
    end_time: datetime = Field(..., description="Overtime end")
    reason: Optional[str] = Field(None, max_length=1000)


class OvertimeRequestUpdate(BaseModel):
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    reason: Optional[str] = Field(None, max_length=1000)


class OvertimeRequestOut(BaseModel):
    id: int
    user_id: int
    user: Optional[UserRef] = None
    start_time: datetime
    end_time: datetime
    duration_hours: Decimal
    reason: Optional[str] = None
    status: RequestStatus
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
