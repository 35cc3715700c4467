"""
Overtime request model
"""
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from sqlalchemy import Column, Integer, DateTime, ForeignKey, Text, Enum as SQLEnum, Index, CheckConstraint
from sqlalchemy.orm import relationship
from leaveflow.db.base import Base
from leaveflow.models.request_action import RequestStatus
from leaveflow.utils.datetime_utils import ensure_utc, now_utc


class OvertimeRequest(Base):
    __tablename__ = "overtime_requests"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    reason = Column(Text, nullable=True)
    status = Column(SQLEnum(RequestStatus), nullable=False, default=RequestStatus.PENDING_MANAGER)

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

    user = relationship("User", foreign_keys=[user_id])
    manager_action_by = relationship("User", foreign_keys=[manager_action_by_id])
    hr_action_by = relationship("User", foreign_keys=[hr_action_by_id])
    cancelled_by = relationship("User", foreign_keys=[cancelled_by_id])

    __table_args__ = (
        Index("ix_overtime_requests_user_status", "user_id", "status"),
        CheckConstraint("start_time < end_time", name="check_start_time_lt_end_time"),
    )

    @property
    def duration_hours(self) -> Decimal:
        """Length of the overtime window in hours, rounded to 2 places."""
        return overtime_hours(self.start_time, self.end_time)


def overtime_hours(start_time: datetime, end_time: datetime) -> Decimal:
    seconds = (ensure_utc(end_time) - ensure_utc(start_time)).total_seconds()
    return (Decimal(str(seconds)) / Decimal("3600")).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
