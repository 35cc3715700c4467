"""
Leave type service - reference data for leave categories
"""
import logging
from decimal import Decimal
from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from typing import List, Optional
from leaveflow.models.leave import LeaveType, LeaveBalance, LeaveRequest
from leaveflow.schemas.leave_type import LeaveTypeCreate, LeaveTypeUpdate
from leaveflow.services.audit_service import log_audit

logger = logging.getLogger(__name__)

# name -> (default_allocated_days, tracks_balance, carries_forward)
DEFAULT_LEAVE_TYPES = {
    "VACATION": (Decimal("15"), True, True),
    "SICK": (Decimal("10"), True, False),
    "MANDATORY": (Decimal("5"), True, False),
    "UNPAID": (Decimal("0"), False, False),
    "MATERNITY": (Decimal("105"), True, False),
    "PATERNITY": (Decimal("7"), True, False),
    "EMERGENCY": (Decimal("5"), True, False),
    "BEREAVEMENT": (Decimal("3"), True, False),
}

# leave type -> leave type whose balance its approvals are charged to
DEFAULT_BALANCE_REDIRECTS = {
    "EMERGENCY": "VACATION",
}


def list_leave_types(db: Session) -> List[LeaveType]:
    return db.query(LeaveType).order_by(LeaveType.name.asc()).all()


def get_leave_type(db: Session, leave_type_id: int) -> Optional[LeaveType]:
    return db.query(LeaveType).filter(LeaveType.id == leave_type_id).first()


def _get_or_404(db: Session, leave_type_id: int) -> LeaveType:
    leave_type = get_leave_type(db, leave_type_id)
    if not leave_type:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Leave type with id {leave_type_id} not found"
        )
    return leave_type


def _ensure_unique_name(db: Session, name: str, exclude_id: Optional[int] = None) -> None:
    query = db.query(LeaveType.id).filter(LeaveType.name == name)
    if exclude_id is not None:
        query = query.filter(LeaveType.id != exclude_id)
    if query.first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Leave type '{name}' already exists"
        )


def _validate_balance_leave_type(db: Session, target_id: int, leave_type: Optional[LeaveType] = None) -> None:
    """
    A redirect must point at another existing, balance-tracking type that does
    not itself redirect. A type other types charge to cannot redirect.
    """
    target = get_leave_type(db, target_id)
    if not target:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Balance leave type with id {target_id} not found"
        )
    if leave_type is not None and target.id == leave_type.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A leave type cannot be charged to itself"
        )
    if target.balance_leave_type_id is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Leave type '{target.name}' is itself charged to another type"
        )
    if not target.tracks_balance:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Leave type '{target.name}' does not track a balance"
        )
    if leave_type is not None:
        _ensure_not_charged_to(db, leave_type)


def _charged_from(db: Session, leave_type_id: int) -> List[str]:
    """Names of leave types whose approvals are charged to leave_type_id."""
    return [
        name for (name,) in db.query(LeaveType.name)
        .filter(LeaveType.balance_leave_type_id == leave_type_id)
        .order_by(LeaveType.name)
        .all()
    ]


def _ensure_not_charged_to(db: Session, leave_type: LeaveType) -> None:
    charged_from = _charged_from(db, leave_type.id)
    if charged_from:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Leave types {', '.join(charged_from)} are charged to '{leave_type.name}'"
        )


def create_leave_type(db: Session, data: LeaveTypeCreate, actor_id: int) -> LeaveType:
    _ensure_unique_name(db, data.name)
    if data.balance_leave_type_id is not None:
        _validate_balance_leave_type(db, data.balance_leave_type_id)

    leave_type = LeaveType(
        name=data.name,
        default_allocated_days=data.default_allocated_days,
        tracks_balance=data.tracks_balance,
        carries_forward=data.carries_forward,
        balance_leave_type_id=data.balance_leave_type_id,
    )
    db.add(leave_type)
    db.flush()

    log_audit(
        db=db,
        actor_id=actor_id,
        action="CREATE",
        entity_type="leave_type",
        entity_id=leave_type.id,
        meta=data.model_dump()
    )
    db.commit()
    db.refresh(leave_type)
    return leave_type


def update_leave_type(db: Session, leave_type_id: int, data: LeaveTypeUpdate, actor_id: int) -> LeaveType:
    """
    Update a leave type. Existing balance rows keep their allocation; the new default
    applies to rows created afterwards.
    Requests already approved keep the balance they were charged to.
    """
    leave_type = _get_or_404(db, leave_type_id)
    update_dict = data.model_dump(exclude_unset=True)

    if update_dict.get("name") is not None:
        _ensure_unique_name(db, update_dict["name"], exclude_id=leave_type_id)
    if update_dict.get("balance_leave_type_id") is not None:
        _validate_balance_leave_type(db, update_dict["balance_leave_type_id"], leave_type)
    if update_dict.get("tracks_balance") is False:
        _ensure_not_charged_to(db, leave_type)

    before = {field: getattr(leave_type, field) for field in update_dict}
    for field, value in update_dict.items():
        if value is not None or field == "balance_leave_type_id":
            setattr(leave_type, field, value)

    log_audit(
        db=db,
        actor_id=actor_id,
        action="UPDATE",
        entity_type="leave_type",
        entity_id=leave_type.id,
        meta={"before": before, "after": update_dict}
    )
    db.commit()
    db.refresh(leave_type)
    return leave_type


def delete_leave_type(db: Session, leave_type_id: int, actor_id: int) -> None:
    """
    Delete a leave type

    Raises:
        HTTPException: not found, or still referenced by requests, balances or
            other leave types charged to it
    """
    leave_type = _get_or_404(db, leave_type_id)

    _ensure_not_charged_to(db, leave_type)

    in_use = (
        db.query(LeaveRequest.id).filter(LeaveRequest.leave_type_id == leave_type_id).first()
        or db.query(LeaveBalance.id).filter(LeaveBalance.leave_type_id == leave_type_id).first()
    )
    if in_use:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Leave type '{leave_type.name}' is in use and cannot be deleted"
        )

    log_audit(
        db=db,
        actor_id=actor_id,
        action="DELETE",
        entity_type="leave_type",
        entity_id=leave_type.id,
        meta={"name": leave_type.name}
    )
    db.delete(leave_type)
    db.commit()


def ensure_default_leave_types(db: Session) -> int:
    """Insert missing default leave types. Returns the number created."""
    existing = {name for (name,) in db.query(LeaveType.name).all()}
    created = []
    for name, (days, tracks_balance, carries_forward) in DEFAULT_LEAVE_TYPES.items():
        if name in existing:
            continue
        db.add(LeaveType(
            name=name,
            default_allocated_days=days,
            tracks_balance=tracks_balance,
            carries_forward=carries_forward,
        ))
        created.append(name)
    if not created:
        return 0

    db.flush()
    by_name = {lt.name: lt for lt in db.query(LeaveType).all()}
    for name, target in DEFAULT_BALANCE_REDIRECTS.items():
        if name in created and target in by_name:
            by_name[name].balance_leave_type_id = by_name[target].id
    db.commit()
    logger.info("default leave types created: count=%s", len(created))
    return len(created)
