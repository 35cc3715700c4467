"""
User schemas
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field, field_validator, ConfigDict
from leaveflow.models.user import Role


class UserCreate(BaseModel):
    """Schema for creating a user"""
    employee_id: str = Field(..., min_length=1, max_length=50, description="Employee ID code (unique)")
    name: str = Field(..., min_length=1, description="Full name")
    email: Optional[str] = Field(None, description="Email address (unique)")
    password: Optional[str] = Field(None, description="Initial password (optional)")
    role: Role = Field(default=Role.USER, description="User role")
    department_id: Optional[int] = Field(None, description="Department ID")
    approver_id: Optional[int] = Field(None, description="Manager reviewing this user's requests")
    active: bool = Field(default=True, description="User active status")

    @field_validator("password", mode="before")
    @classmethod
    def validate_password(cls, v):
        """Normalize and validate password"""
        if v is None:
            return None

        v = v.strip()
        if not v:
            return None

        if len(v) < 6:
            raise ValueError("Password must be at least 6 characters")

        if len(v.encode("utf-8")) > 72:
            raise ValueError("Password cannot be longer than 72 bytes when encoded as UTF-8")

        return v


class UserUpdate(BaseModel):
    """Schema for updating a user (HR/ADMIN only)"""
    name: Optional[str] = Field(None, min_length=1, description="Full name")
    email: Optional[str] = Field(None, description="Email address")
    role: Optional[Role] = Field(None, description="User role")
    department_id: Optional[int] = Field(None, description="Department ID")
    approver_id: Optional[int] = Field(None, description="Manager reviewing this user's requests")
    active: Optional[bool] = Field(None, description="User active status")


class UserRef(BaseModel):
    """Minimal user reference embedded in request output"""
    id: int
    employee_id: str
    name: str

    model_config = ConfigDict(from_attributes=True)


class UserOut(BaseModel):
    id: int
    employee_id: str
    name: str
    email: Optional[str] = None
    role: Role
    department_id: Optional[int] = None
    approver_id: Optional[int] = None
    approver: Optional[UserRef] = None
    active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserStatsResponse(BaseModel):
    """Profile summary: request counts plus the year's balance totals"""
    user_id: int
    year: int
    total_leave_requests: int
    total_overtime_requests: int
    pending_requests: int
    approved_requests: int
    current_year_leave_allocated: Decimal
    current_year_leave_used: Decimal
