"""
Shared request enums and the approval trail model
"""
from sqlalchemy import Column, Integer, DateTime, ForeignKey, Text, Index, Enum as SQLEnum
from sqlalchemy.orm import relationship
import enum
from leaveflow.db.base import Base
from leaveflow.utils.datetime_utils import now_utc


class RequestStatus(str, enum.Enum):
    PENDING_MANAGER = "PENDING_MANAGER"
    PENDING_HR = "PENDING_HR"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


PENDING_STATUSES = (RequestStatus.PENDING_MANAGER, RequestStatus.PENDING_HR)


class RequestKind(str, enum.Enum):
    LEAVE = "LEAVE"
    OVERTIME = "OVERTIME"


class ApprovalAction(str, enum.Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    CANCEL = "CANCEL"


class RequestAction(Base):
    """Append-only trail: one row per lifecycle event of a leave or overtime request."""
    __tablename__ = "request_actions"

    id = Column(Integer, primary_key=True, index=True)
    request_kind = Column(SQLEnum(RequestKind), nullable=False)
    request_id = Column(Integer, nullable=False)
    action = Column(SQLEnum(ApprovalAction), nullable=False)
    from_status = Column(SQLEnum(RequestStatus), nullable=True)  # None for CREATE
    to_status = Column(SQLEnum(RequestStatus), nullable=False)
    actor_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    comments = Column(Text, nullable=True)
    acted_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)

    actor = relationship("User", foreign_keys=[actor_id])

    __table_args__ = (
        Index("ix_request_actions_kind_request", "request_kind", "request_id"),
    )
