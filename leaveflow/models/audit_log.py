"""
Audit log model
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON
from leaveflow.db.base import Base
from leaveflow.utils.datetime_utils import now_utc


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    actor_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)  # None for system bootstrap
    action = Column(String, nullable=False)  # e.g. "CREATE", "UPDATE", "BALANCE_ADJUST", "BALANCE_OVERRIDE"
    entity_type = Column(String, nullable=False)  # e.g. "department", "leave_type", "leave_balances"
    entity_id = Column(Integer, nullable=True)
    meta_json = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
