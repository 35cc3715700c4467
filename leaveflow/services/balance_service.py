"""
Balance ledger - allocated vs used days per (user, leave type, year).

- Rows are created lazily, seeded with the leave type's default allocation.
- reserve_usage / release_usage run inside the caller's transaction (no commit).
- Usage may only exceed the allocation when HR approves with an explicit override.
"""
import logging
from decimal import Decimal
from typing import Dict, List, Optional, Any

from sqlalchemy import case, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from leaveflow.core.exceptions import InsufficientBalance, InvalidRange, NotFound
from leaveflow.models.leave import LeaveBalance, LeaveType
from leaveflow.models.user import User
from leaveflow.services.audit_service import log_audit

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def _get_balance_row(
    db: Session,
    user_id: int,
    leave_type_id: int,
    year: int,
) -> Optional[LeaveBalance]:
    return (
        db.query(LeaveBalance)
        .filter(
            LeaveBalance.user_id == user_id,
            LeaveBalance.leave_type_id == leave_type_id,
            LeaveBalance.year == year,
        )
        .first()
    )


def get_or_create_balance(
    db: Session,
    user_id: int,
    leave_type_id: int,
    year: int,
) -> LeaveBalance:
    """
    Return the balance row for (user, leave type, year), creating it on first use.

    Idempotent: a second call for the same key returns the same row.
    The insert runs in a savepoint; losing a race on the unique key re-reads
    the row the other transaction created.

    Raises:
        NotFound: unknown user or leave type
    """
    balance = _get_balance_row(db, user_id, leave_type_id, year)
    if balance:
        return balance

    if not db.query(User.id).filter(User.id == user_id).first():
        raise NotFound(f"User with id {user_id} not found")
    leave_type = db.query(LeaveType).filter(LeaveType.id == leave_type_id).first()
    if not leave_type:
        raise NotFound(f"Leave type with id {leave_type_id} not found")

    balance = LeaveBalance(
        user_id=user_id,
        leave_type_id=leave_type_id,
        year=year,
        allocated_days=leave_type.default_allocated_days,
        used_days=ZERO,
    )
    try:
        with db.begin_nested():
            db.add(balance)
    except IntegrityError:
        # A concurrent transaction inserted the same key first
        balance = _get_balance_row(db, user_id, leave_type_id, year)
        if balance is None:
            raise
        logger.info(
            "balance row already created concurrently: user_id=%s leave_type_id=%s year=%s",
            user_id, leave_type_id, year,
        )
        return balance
    logger.info(
        "balance row created: user_id=%s leave_type_id=%s year=%s allocated=%s",
        user_id, leave_type_id, year, balance.allocated_days,
    )
    return balance


def available_days(db: Session, user_id: int, leave_type: LeaveType, year: int) -> Decimal:
    """Remaining days for (user, leave type, year) without creating the row."""
    balance = _get_balance_row(db, user_id, leave_type.id, year)
    if balance is None:
        return Decimal(str(leave_type.default_allocated_days))
    return Decimal(str(balance.remaining_days))


def check_available(db: Session, user_id: int, leave_type: LeaveType, year: int, days: Decimal) -> None:
    """
    Refuse a submission that the charged balance could not cover today.

    Read-only. Leave types that do not track a balance always pass.

    Raises:
        InsufficientBalance: days exceed the remaining balance
    """
    if not leave_type.tracks_balance:
        return
    charged = leave_type.charged_leave_type
    remaining = available_days(db, user_id, charged, year)
    if Decimal(str(days)) > remaining:
        raise InsufficientBalance(
            "Insufficient leave balance",
            details={
                "requested_days": days,
                "remaining_days": remaining,
                "leave_type": charged.name,
                "year": year,
            },
        )


def reserve_usage(
    db: Session,
    balance: LeaveBalance,
    days: Decimal,
    override: bool = False,
) -> LeaveBalance:
    """
    Add days to used_days.

    Runs as one guarded UPDATE so two reservations against the same row cannot
    lose an update. Without override the UPDATE only matches while
    used_days + days <= allocated_days.

    Raises:
        InvalidRange: days is not positive
        InsufficientBalance: allocation would be exceeded and override is False
    """
    days = Decimal(str(days))
    if days <= ZERO:
        raise InvalidRange("Days to reserve must be positive", details={"days": days})

    query = db.query(LeaveBalance).filter(LeaveBalance.id == balance.id)
    if not override:
        query = query.filter(LeaveBalance.used_days + days <= LeaveBalance.allocated_days)
    updated = query.update(
        {LeaveBalance.used_days: LeaveBalance.used_days + days},
        synchronize_session=False,
    )
    if updated != 1:
        db.refresh(balance)
        raise InsufficientBalance(
            "Insufficient leave balance",
            details={
                "requested_days": days,
                "remaining_days": balance.remaining_days,
                "balance_id": balance.id,
            },
        )

    db.refresh(balance)
    if balance.used_days > balance.allocated_days:
        logger.warning(
            "balance exceeded by override: balance_id=%s user_id=%s used=%s allocated=%s",
            balance.id, balance.user_id, balance.used_days, balance.allocated_days,
        )
    return balance


def release_usage(db: Session, balance: LeaveBalance, days: Decimal) -> LeaveBalance:
    """
    Subtract days from used_days, floored at zero.

    Raises:
        InvalidRange: days is not positive
    """
    days = Decimal(str(days))
    if days <= ZERO:
        raise InvalidRange("Days to release must be positive", details={"days": days})

    remaining_used = LeaveBalance.used_days - days
    db.query(LeaveBalance).filter(LeaveBalance.id == balance.id).update(
        {LeaveBalance.used_days: case((remaining_used < 0, 0), else_=remaining_used)},
        synchronize_session=False,
    )
    db.refresh(balance)
    return balance


def list_balances(db: Session, user_id: int, year: int) -> List[LeaveBalance]:
    """A user's balances for the year, one per leave type (rows created as needed)."""
    leave_types = db.query(LeaveType).order_by(LeaveType.name).all()
    rows = [get_or_create_balance(db, user_id, lt.id, year) for lt in leave_types]
    db.commit()
    for row in rows:
        db.refresh(row)
    return rows


def summarize(db: Session, year: int) -> Dict[str, Any]:
    """
    Aggregate allocated / used / remaining per leave type for the year.

    Read-only; leave types without any balance rows are reported with zeros.
    """
    totals = {
        leave_type_id: (allocated, used)
        for leave_type_id, allocated, used in db.query(
            LeaveBalance.leave_type_id,
            func.coalesce(func.sum(LeaveBalance.allocated_days), 0),
            func.coalesce(func.sum(LeaveBalance.used_days), 0),
        )
        .filter(LeaveBalance.year == year)
        .group_by(LeaveBalance.leave_type_id)
        .all()
    }

    items = []
    total_allocated = ZERO
    total_used = ZERO
    for leave_type in db.query(LeaveType).order_by(LeaveType.name).all():
        allocated, used = totals.get(leave_type.id, (ZERO, ZERO))
        allocated = Decimal(str(allocated))
        used = Decimal(str(used))
        total_allocated += allocated
        total_used += used
        items.append({
            "leave_type_id": leave_type.id,
            "leave_type": leave_type.name,
            "allocated_days": allocated,
            "used_days": used,
            "remaining_days": allocated - used,
        })

    total_employees = (
        db.query(func.count(func.distinct(LeaveBalance.user_id)))
        .filter(LeaveBalance.year == year)
        .scalar()
    ) or 0

    return {
        "year": year,
        "total_employees": total_employees,
        "total_allocated": total_allocated,
        "total_used": total_used,
        "leave_types": items,
    }


def employee_balances(db: Session, year: int) -> List[LeaveBalance]:
    """Every balance row of the year with user and leave type loaded."""
    return (
        db.query(LeaveBalance)
        .options(joinedload(LeaveBalance.user), joinedload(LeaveBalance.leave_type))
        .filter(LeaveBalance.year == year)
        .order_by(LeaveBalance.user_id, LeaveBalance.leave_type_id)
        .all()
    )


def get_balance(db: Session, balance_id: int) -> LeaveBalance:
    balance = db.query(LeaveBalance).filter(LeaveBalance.id == balance_id).first()
    if not balance:
        raise NotFound(f"Balance with id {balance_id} not found")
    return balance


def _validated_changes(
    allocated_days: Optional[Decimal],
    used_days: Optional[Decimal],
    balance_id: Optional[int] = None,
) -> Dict[str, Decimal]:
    changes = {}
    for field, value in (("allocated_days", allocated_days), ("used_days", used_days)):
        if value is None:
            continue
        value = Decimal(str(value))
        if value < ZERO:
            details = {field: value}
            if balance_id is not None:
                details["balance_id"] = balance_id
            raise InvalidRange(f"{field} cannot be negative", details=details)
        changes[field] = value
    return changes


def _apply_changes(
    db: Session,
    balance: LeaveBalance,
    changes: Dict[str, Decimal],
    actor_id: int,
    comments: Optional[str],
) -> None:
    """Write changes onto the row and audit before/after. No commit."""
    before = {"allocated_days": balance.allocated_days, "used_days": balance.used_days}
    for field, value in changes.items():
        setattr(balance, field, value)
    log_audit(
        db=db,
        actor_id=actor_id,
        action="BALANCE_ADJUST",
        entity_type="leave_balances",
        entity_id=balance.id,
        meta={
            "before": before,
            "after": {"allocated_days": balance.allocated_days, "used_days": balance.used_days},
            "comments": comments,
        },
    )


def adjust_balance(
    db: Session,
    balance_id: int,
    actor_id: int,
    allocated_days: Optional[Decimal] = None,
    used_days: Optional[Decimal] = None,
    comments: Optional[str] = None,
) -> LeaveBalance:
    """
    Direct HR correction of a balance row (audited).

    Raises:
        NotFound: unknown balance
        InvalidRange: negative values
    """
    balance = get_balance(db, balance_id)
    changes = _validated_changes(allocated_days, used_days)

    try:
        _apply_changes(db, balance, changes, actor_id, comments)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(balance)
    logger.info(
        "balance adjusted: balance_id=%s actor_id=%s allocated=%s used=%s",
        balance.id, actor_id, balance.allocated_days, balance.used_days,
    )
    return balance


def bulk_update_balances(
    db: Session,
    updates: List[Dict[str, Any]],
    actor_id: int,
    comments: Optional[str] = None,
) -> List[LeaveBalance]:
    """
    Apply several HR corrections in one transaction; all rows change or none do.

    Each update is a dict with balance_id and optional allocated_days / used_days.
    Every row gets its own BALANCE_ADJUST audit entry.

    Raises:
        InvalidRange: empty batch, a balance listed twice, or negative values
        NotFound: unknown balance id
    """
    if not updates:
        raise InvalidRange("At least one balance update is required")

    ids = [item["balance_id"] for item in updates]
    duplicates = sorted({balance_id for balance_id in ids if ids.count(balance_id) > 1})
    if duplicates:
        raise InvalidRange("Each balance may appear only once", details={"balance_ids": duplicates})

    rows = {row.id: row for row in db.query(LeaveBalance).filter(LeaveBalance.id.in_(ids)).all()}
    missing = [balance_id for balance_id in ids if balance_id not in rows]
    if missing:
        raise NotFound(f"Balance with id {missing[0]} not found", details={"balance_ids": missing})

    planned = [
        (rows[item["balance_id"]], _validated_changes(
            item.get("allocated_days"), item.get("used_days"), item["balance_id"],
        ))
        for item in updates
    ]

    try:
        for balance, changes in planned:
            _apply_changes(db, balance, changes, actor_id, comments)
        db.commit()
    except Exception:
        db.rollback()
        raise

    updated = []
    for balance, _ in planned:
        db.refresh(balance)
        updated.append(balance)
    logger.info("balances bulk updated: count=%s actor_id=%s", len(updated), actor_id)
    return updated


def year_totals(db: Session, user_id: int, year: int) -> Dict[str, Decimal]:
    """Allocated and used days summed over a user's existing rows for the year. Read-only."""
    allocated, used = (
        db.query(
            func.coalesce(func.sum(LeaveBalance.allocated_days), 0),
            func.coalesce(func.sum(LeaveBalance.used_days), 0),
        )
        .filter(LeaveBalance.user_id == user_id, LeaveBalance.year == year)
        .one()
    )
    return {"allocated_days": Decimal(str(allocated)), "used_days": Decimal(str(used))}


def renew_balances(db: Session, new_year: int, actor_id: int) -> Dict[str, Any]:
    """
    Open balances for new_year for every active user and leave type.

    allocated = default_allocated_days, plus the unused remainder of new_year - 1
    for leave types that carry forward. Existing new-year rows get the new
    allocation but keep their used_days.
    """
    users = db.query(User).filter(User.active == True).order_by(User.id).all()
    leave_types = db.query(LeaveType).order_by(LeaveType.id).all()

    users_renewed = 0
    balances_created = 0
    rollover_total = ZERO

    try:
        for user in users:
            for leave_type in leave_types:
                allocated = Decimal(str(leave_type.default_allocated_days))
                if leave_type.carries_forward:
                    previous = _get_balance_row(db, user.id, leave_type.id, new_year - 1)
                    if previous and previous.remaining_days > ZERO:
                        rollover = Decimal(str(previous.remaining_days))
                        allocated += rollover
                        rollover_total += rollover

                row = _get_balance_row(db, user.id, leave_type.id, new_year)
                if row:
                    row.allocated_days = allocated
                else:
                    db.add(LeaveBalance(
                        user_id=user.id,
                        leave_type_id=leave_type.id,
                        year=new_year,
                        allocated_days=allocated,
                        used_days=ZERO,
                    ))
                    balances_created += 1
            users_renewed += 1

        log_audit(
            db=db,
            actor_id=actor_id,
            action="BALANCE_RENEW",
            entity_type="leave_balances",
            meta={
                "year": new_year,
                "users_renewed": users_renewed,
                "balances_created": balances_created,
                "rollover_days": rollover_total,
            },
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        "balances renewed: year=%s users=%s created=%s rollover_days=%s",
        new_year, users_renewed, balances_created, rollover_total,
    )
    return {
        "year": new_year,
        "users_renewed": users_renewed,
        "balances_created": balances_created,
        "rollover_days": rollover_total,
    }
