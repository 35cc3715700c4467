"""
Leave models
"""
from sqlalchemy import (
    Column,
    Integer,
    Date,
    DateTime,
    ForeignKey,
    String,
    Text,
    Numeric,
    Enum as SQLEnum,
    Boolean,
    UniqueConstraint,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import relationship
import enum
from leaveflow.db.base import Base
from leaveflow.models.request_action import RequestStatus
from leaveflow.utils.datetime_utils import now_utc


class LeaveSession(str, enum.Enum):
    FULL_DAY = "FULL_DAY"
    MORNING = "MORNING"
    AFTERNOON = "AFTERNOON"


class LeaveType(Base):
    """Leave category reference data (e.g. VACATION, SICK) with its default annual allocation."""
    __tablename__ = "leave_types"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), unique=True, nullable=False, index=True)
    default_allocated_days = Column(Numeric(6, 2), nullable=False, default=0)
    tracks_balance = Column(Boolean, nullable=False, default=True)  # False for unpaid-style leave
    carries_forward = Column(Boolean, nullable=False, default=False)  # unused days roll over on renewal
    # Approvals are charged to this type's balance instead (EMERGENCY -> VACATION)
    balance_leave_type_id = Column(Integer, ForeignKey("leave_types.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    balance_leave_type = relationship("LeaveType", remote_side=[id])

    @property
    def charged_leave_type(self) -> "LeaveType":
        """Leave type whose balance row absorbs approvals of this type."""
        return self.balance_leave_type or self


class LeaveBalance(Base):
    """
    One row per (user_id, leave_type_id, year).
    remaining = allocated_days - used_days; used_days <= allocated_days is checked at approval time.
    """
    __tablename__ = "leave_balances"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    leave_type_id = Column(Integer, ForeignKey("leave_types.id"), nullable=False, index=True)
    year = Column(Integer, nullable=False, index=True)
    allocated_days = Column(Numeric(6, 2), nullable=False, default=0)
    used_days = Column(Numeric(6, 2), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    user = relationship("User")
    leave_type = relationship("LeaveType")

    __table_args__ = (
        UniqueConstraint("user_id", "leave_type_id", "year", name="uq_leave_balances_user_type_year"),
        CheckConstraint("allocated_days >= 0", name="check_allocated_days_non_negative"),
        CheckConstraint("used_days >= 0", name="check_used_days_non_negative"),
    )

    @property
    def remaining_days(self):
        return self.allocated_days - self.used_days


class LeaveRequest(Base):
    __tablename__ = "leave_requests"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    leave_type_id = Column(Integer, ForeignKey("leave_types.id"), nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    session = Column(SQLEnum(LeaveSession), nullable=False, default=LeaveSession.FULL_DAY)
    reason = Column(Text, nullable=True)
    status = Column(SQLEnum(RequestStatus), nullable=False, default=RequestStatus.PENDING_MANAGER)
    days = Column(Numeric(6, 2), nullable=False)  # supports 0.5; amount reserved on approval
    balance_override = Column(Boolean, nullable=False, default=False)  # HR approved past allocation
    # What HR approval took from the ledger; cancel releases exactly this
    reserved_balance_id = Column(Integer, ForeignKey("leave_balances.id", ondelete="SET NULL"), nullable=True)
    reserved_days = Column(Numeric(6, 2), nullable=True)

    manager_action_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    manager_action_at = Column(DateTime(timezone=True), nullable=True)
    manager_comments = Column(Text, nullable=True)
    hr_action_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    hr_action_at = Column(DateTime(timezone=True), nullable=True)
    hr_comments = Column(Text, nullable=True)
    cancelled_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancellation_comments = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    # Relationships
    user = relationship("User", foreign_keys=[user_id])
    leave_type = relationship("LeaveType")
    reserved_balance = relationship("LeaveBalance")
    manager_action_by = relationship("User", foreign_keys=[manager_action_by_id])
    hr_action_by = relationship("User", foreign_keys=[hr_action_by_id])
    cancelled_by = relationship("User", foreign_keys=[cancelled_by_id])

    __table_args__ = (
        Index("ix_leave_requests_user_status", "user_id", "status"),
        Index("ix_leave_requests_status_created", "status", "created_at"),
        CheckConstraint("start_date <= end_date", name="check_start_date_le_end_date"),
    )
