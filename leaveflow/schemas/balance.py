"""
Balance ledger schemas
"""
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, Field, ConfigDict
from leaveflow.schemas.leave import LeaveTypeRef
from leaveflow.schemas.user import UserRef


class BalanceOut(BaseModel):
    id: int
    user_id: int
    user: Optional[UserRef] = None
    leave_type_id: int
    leave_type: Optional[LeaveTypeRef] = None
    year: int
    allocated_days: Decimal
    used_days: Decimal
    remaining_days: Decimal

    model_config = ConfigDict(from_attributes=True)


class BalanceListResponse(BaseModel):
    year: int
    items: List[BalanceOut]


class BalanceAdjustRequest(BaseModel):
    """Direct HR correction of a balance row"""
    allocated_days: Optional[Decimal] = Field(None, ge=0, le=365)
    used_days: Optional[Decimal] = Field(None, ge=0)
    comments: Optional[str] = Field(None, max_length=500)


class BalanceBulkUpdateItem(BaseModel):
    balance_id: int
    allocated_days: Optional[Decimal] = Field(None, ge=0, le=365)
    used_days: Optional[Decimal] = Field(None, ge=0)


class BalanceBulkUpdateRequest(BaseModel):
    """Several corrections applied together; one bad row rejects the batch"""
    updates: List[BalanceBulkUpdateItem] = Field(..., min_length=1)
    comments: Optional[str] = Field(None, max_length=500)


class BalanceRenewRequest(BaseModel):
    year: int = Field(..., ge=2000, le=2100, description="Year to open balances for")


class BalanceRenewResponse(BaseModel):
    year: int
    users_renewed: int
    balances_created: int
    rollover_days: Decimal


class LeaveTypeSummary(BaseModel):
    leave_type_id: int
    leave_type: str
    allocated_days: Decimal
    used_days: Decimal
    remaining_days: Decimal


class BalanceSummaryResponse(BaseModel):
    year: int
    total_employees: int
    total_allocated: Decimal
    total_used: Decimal
    leave_types: List[LeaveTypeSummary]
