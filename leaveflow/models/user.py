"""
User model
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
import enum
from leaveflow.db.base import Base
from leaveflow.utils.datetime_utils import now_utc


class Role(str, enum.Enum):
    USER = "USER"
    MANAGER = "MANAGER"
    HR = "HR"
    ADMIN = "ADMIN"


# Roles that act at the HR stage and administer reference data
HR_ROLES = (Role.HR, Role.ADMIN)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=True, index=True)
    password_hash = Column(String, nullable=True)
    role = Column(SQLEnum(Role), nullable=False, default=Role.USER)
    department_id = Column(Integer, ForeignKey("departments.id", ondelete="SET NULL"), nullable=True, index=True)
    # Manager reviewing this user's requests at the first approval stage
    approver_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    # Relationships
    department = relationship("Department", back_populates="members")
    approver = relationship("User", remote_side=[id], back_populates="reports")
    reports = relationship("User", back_populates="approver")
