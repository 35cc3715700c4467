"""
Department model
"""
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship
from leaveflow.db.base import Base
from leaveflow.utils.datetime_utils import now_utc


class Department(Base):
    __tablename__ = "departments"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    members = relationship("User", back_populates="department")

    @property
    def member_count(self) -> int:
        return len(self.members)
