"""
Role-scoped listings of leave and overtime requests.

Pending queue:
- MANAGER: PENDING_MANAGER requests of users whose approver is the manager
- HR / ADMIN: every PENDING_HR request except their own
- USER: their own requests, any status

History:
- USER: own requests; MANAGER: own + direct reports; HR / ADMIN: all
"""
import math
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session, joinedload

from leaveflow.core.config import settings
from leaveflow.core.exceptions import InvalidRange
from leaveflow.models.leave import LeaveRequest, LeaveSession
from leaveflow.models.overtime import OvertimeRequest, overtime_hours
from leaveflow.models.request_action import PENDING_STATUSES, RequestKind, RequestStatus
from leaveflow.models.user import HR_ROLES, Role, User
from leaveflow.services import balance_service
from leaveflow.services.workflow_service import KIND_MODELS
from leaveflow.utils.datetime_utils import UTC

ZERO = Decimal("0")


@dataclass
class HistoryFilters:
    statuses: List[RequestStatus] = field(default_factory=list)
    leave_type_ids: List[int] = field(default_factory=list)  # leave only
    sessions: List[LeaveSession] = field(default_factory=list)  # leave only
    user_ids: List[int] = field(default_factory=list)
    department_ids: List[int] = field(default_factory=list)
    date_from: Optional[date] = None
    date_to: Optional[date] = None


def _base_query(db: Session, kind: RequestKind) -> Query:
    model = KIND_MODELS[kind]
    return db.query(model).join(User, model.user_id == User.id)


def _scope_history(query: Query, model, actor: User) -> Query:
    if actor.role in HR_ROLES:
        return query
    if actor.role == Role.MANAGER:
        return query.filter(or_(model.user_id == actor.id, User.approver_id == actor.id))
    return query.filter(model.user_id == actor.id)


def _apply_filters(query: Query, model, kind: RequestKind, filters: HistoryFilters) -> Query:
    if filters.date_from and filters.date_to and filters.date_to < filters.date_from:
        raise InvalidRange("date_to cannot be before date_from")

    if filters.statuses:
        query = query.filter(model.status.in_(filters.statuses))
    if filters.user_ids:
        query = query.filter(model.user_id.in_(filters.user_ids))
    if filters.department_ids:
        query = query.filter(User.department_id.in_(filters.department_ids))

    if kind == RequestKind.LEAVE:
        if filters.leave_type_ids:
            query = query.filter(LeaveRequest.leave_type_id.in_(filters.leave_type_ids))
        if filters.sessions:
            query = query.filter(LeaveRequest.session.in_(filters.sessions))
        if filters.date_from:
            query = query.filter(LeaveRequest.start_date >= filters.date_from)
        if filters.date_to:
            query = query.filter(LeaveRequest.end_date <= filters.date_to)
    else:
        # Overtime window: compare whole UTC days
        if filters.date_from:
            query = query.filter(model.start_time >= datetime.combine(filters.date_from, time.min, tzinfo=UTC))
        if filters.date_to:
            next_day = datetime.combine(filters.date_to + timedelta(days=1), time.min, tzinfo=UTC)
            query = query.filter(model.end_time < next_day)
    return query


def _paginate(query: Query, model, page: Optional[int], limit: Optional[int]) -> Dict[str, Any]:
    """
    Slice an ordered query. total is counted from the same filtered query.

    With neither page nor limit every row is returned.
    """
    if page is not None and page < 1:
        raise InvalidRange("page must be >= 1")
    if limit is not None and limit < 1:
        raise InvalidRange("limit must be >= 1")

    total = query.order_by(None).count()
    ordered = query.options(joinedload(model.user)).order_by(model.created_at.desc(), model.id.desc())

    if page is None and limit is None:
        items = ordered.all()
        return {
            "items": items,
            "total": total,
            "page": None,
            "limit": None,
            "total_pages": 1 if total else 0,
        }

    page = page or 1
    limit = min(limit or settings.DEFAULT_PAGE_LIMIT, settings.MAX_PAGE_LIMIT)
    items = ordered.offset((page - 1) * limit).limit(limit).all()
    return {
        "items": items,
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": math.ceil(total / limit) if total else 0,
    }


def list_pending(
    db: Session,
    actor: User,
    kind: RequestKind,
    page: Optional[int] = None,
    limit: Optional[int] = None,
) -> Dict[str, Any]:
    """Requests waiting on actor (own requests for plain users)."""
    model = KIND_MODELS[kind]
    query = _base_query(db, kind)

    if actor.role == Role.MANAGER:
        query = query.filter(
            model.status == RequestStatus.PENDING_MANAGER,
            User.approver_id == actor.id,
        )
    elif actor.role in HR_ROLES:
        query = query.filter(model.status == RequestStatus.PENDING_HR, model.user_id != actor.id)
    else:
        query = query.filter(model.user_id == actor.id)

    return _paginate(query, model, page, limit)


def list_history(
    db: Session,
    actor: User,
    kind: RequestKind,
    filters: Optional[HistoryFilters] = None,
    page: Optional[int] = None,
    limit: Optional[int] = None,
) -> Dict[str, Any]:
    model = KIND_MODELS[kind]
    query = _scope_history(_base_query(db, kind), model, actor)
    query = _apply_filters(query, model, kind, filters or HistoryFilters())
    return _paginate(query, model, page, limit)


def history_stats(
    db: Session,
    actor: User,
    kind: RequestKind,
    filters: Optional[HistoryFilters] = None,
) -> Dict[str, Any]:
    """
    Status counts over actor's history scope, narrowed by the history filters.

    Leave adds requested / approved day totals; overtime adds hour totals.
    """
    model = KIND_MODELS[kind]
    query = _scope_history(_base_query(db, kind), model, actor)
    query = _apply_filters(query, model, kind, filters or HistoryFilters())
    counts = dict(
        query.with_entities(model.status, func.count(model.id)).group_by(model.status).all()
    )

    stats: Dict[str, Any] = {
        "total": sum(counts.values()),
        "pending": sum(counts.get(s, 0) for s in PENDING_STATUSES),
        "approved": counts.get(RequestStatus.APPROVED, 0),
        "rejected": counts.get(RequestStatus.REJECTED, 0),
        "cancelled": counts.get(RequestStatus.CANCELLED, 0),
    }

    if kind == RequestKind.LEAVE:
        days = dict(
            query.with_entities(model.status, func.coalesce(func.sum(model.days), 0))
            .group_by(model.status)
            .all()
        )
        stats["total_days_requested"] = sum((Decimal(str(v)) for v in days.values()), ZERO)
        stats["total_days_approved"] = Decimal(str(days.get(RequestStatus.APPROVED, 0)))
    else:
        # Hours are summed per row
        requested = ZERO
        approved = ZERO
        for status, start_time, end_time in query.with_entities(
            model.status, model.start_time, model.end_time
        ).all():
            hours = overtime_hours(start_time, end_time)
            requested += hours
            if status == RequestStatus.APPROVED:
                approved += hours
        stats["total_hours_requested"] = requested
        stats["total_hours_approved"] = approved
    return stats


def user_stats(db: Session, user: User, year: int) -> Dict[str, Any]:
    """Profile summary: request counts over all time plus the year's balance totals."""
    leave_counts = dict(
        db.query(LeaveRequest.status, func.count(LeaveRequest.id))
        .filter(LeaveRequest.user_id == user.id)
        .group_by(LeaveRequest.status)
        .all()
    )
    overtime_counts = dict(
        db.query(OvertimeRequest.status, func.count(OvertimeRequest.id))
        .filter(OvertimeRequest.user_id == user.id)
        .group_by(OvertimeRequest.status)
        .all()
    )
    totals = balance_service.year_totals(db, user.id, year)

    def _count(statuses) -> int:
        return sum(leave_counts.get(s, 0) + overtime_counts.get(s, 0) for s in statuses)

    return {
        "user_id": user.id,
        "year": year,
        "total_leave_requests": sum(leave_counts.values()),
        "total_overtime_requests": sum(overtime_counts.values()),
        "pending_requests": _count(PENDING_STATUSES),
        "approved_requests": _count([RequestStatus.APPROVED]),
        "current_year_leave_allocated": totals["allocated_days"],
        "current_year_leave_used": totals["used_days"],
    }
