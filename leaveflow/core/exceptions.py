"""
Typed workflow errors.

Each error is an expected outcome of a workflow/ledger operation. The API layer
maps them to JSON responses through ``workflow_exception_handler``.
"""
from typing import Any, Dict, Optional


class WorkflowError(Exception):
    status_code: int = 400
    error_code: str = "WORKFLOW_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details
        super().__init__(self.message)


class InvalidRange(WorkflowError):
    """End before start (dates or times), or a non-positive day amount."""
    status_code = 400
    error_code = "INVALID_RANGE"


class InsufficientBalance(WorkflowError):
    """Reservation would push used days above the allocation without override."""
    status_code = 409
    error_code = "INSUFFICIENT_BALANCE"


class Forbidden(WorkflowError):
    """Actor lacks authority for the requested transition or read."""
    status_code = 403
    error_code = "FORBIDDEN"

    def __init__(self, message: str = "You are not authorized to process this request", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class InvalidTransition(WorkflowError):
    """Request is not in a status that permits the action (includes lost races)."""
    status_code = 409
    error_code = "INVALID_TRANSITION"


class NotFound(WorkflowError):
    status_code = 404
    error_code = "NOT_FOUND"
