"""
Leave type schemas
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict

LEAVE_TYPE_NAME_PATTERN = r"^[A-Z_]+$"


class LeaveTypeCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=50, pattern=LEAVE_TYPE_NAME_PATTERN, description="Uppercase letters and underscores, e.g. VACATION")
    default_allocated_days: Decimal = Field(..., ge=0, le=365, description="Default annual allocation")
    tracks_balance: bool = Field(default=True, description="Approvals reserve days on the balance ledger")
    carries_forward: bool = Field(default=False, description="Unused days roll over on yearly renewal")
    balance_leave_type_id: Optional[int] = Field(None, description="Charge approvals to this leave type's balance")


class LeaveTypeUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=50, pattern=LEAVE_TYPE_NAME_PATTERN)
    default_allocated_days: Optional[Decimal] = Field(None, ge=0, le=365)
    tracks_balance: Optional[bool] = None
    carries_forward: Optional[bool] = None
    balance_leave_type_id: Optional[int] = None  # explicit null clears the redirect


class LeaveTypeOut(BaseModel):
    id: int
    name: str
    default_allocated_days: Decimal
    tracks_balance: bool
    carries_forward: bool
    balance_leave_type_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
