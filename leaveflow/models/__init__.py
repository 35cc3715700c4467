"""
Database models
"""
from leaveflow.models.department import Department
from leaveflow.models.user import User, Role, HR_ROLES
from leaveflow.models.audit_log import AuditLog
from leaveflow.models.request_action import (
    RequestAction,
    RequestStatus,
    RequestKind,
    ApprovalAction,
    PENDING_STATUSES,
)
from leaveflow.models.leave import LeaveType, LeaveBalance, LeaveRequest, LeaveSession
from leaveflow.models.overtime import OvertimeRequest

__all__ = [
    "Department",
    "User",
    "Role",
    "HR_ROLES",
    "AuditLog",
    "RequestAction",
    "RequestStatus",
    "RequestKind",
    "ApprovalAction",
    "PENDING_STATUSES",
    "LeaveType",
    "LeaveBalance",
    "LeaveRequest",
    "LeaveSession",
    "OvertimeRequest",
]
