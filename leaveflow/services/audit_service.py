"""
Audit logging service
"""
from sqlalchemy.orm import Session
from leaveflow.models.audit_log import AuditLog
from leaveflow.utils.json_serializer import sanitize_for_json
from typing import Optional, Dict, Any


def log_audit(
    db: Session,
    actor_id: Optional[int],
    action: str,
    entity_type: str,
    entity_id: Optional[int] = None,
    meta: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """
    Add an audit log entry to the current transaction

    The caller commits; a rollback of the surrounding operation discards the entry too.

    Args:
        db: Database session
        actor_id: ID of the user performing the action (None for system bootstrap)
        action: Action type (e.g., "CREATE", "UPDATE", "DELETE", "BALANCE_OVERRIDE")
        entity_type: Type of entity (e.g., "department", "leave_type", "leave_balances")
        entity_id: ID of the affected entity (optional)
        meta: Additional metadata as dictionary (optional)

    Returns:
        Pending AuditLog instance
    """
    safe_meta = sanitize_for_json(meta) if meta is not None else None

    audit_log = AuditLog(
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        meta_json=safe_meta,
    )
    db.add(audit_log)
    db.flush()
    return audit_log
