"""
Two-stage approval workflow for leave and overtime requests.

Lifecycle:
    PENDING_MANAGER --approve (assigned MANAGER)--> PENDING_HR --approve (HR/ADMIN)--> APPROVED
    PENDING_MANAGER / PENDING_HR --reject--> REJECTED
    PENDING_MANAGER / PENDING_HR --cancel (requester)--> CANCELLED
    APPROVED --cancel (HR/ADMIN)--> CANCELLED (leave: the reserved days are released)

Every transition is a single transaction: the conditional status UPDATE, the
ledger mutation, the trail row and any audit row commit together or not at all.
"""
import logging
from datetime import date, datetime
from typing import Dict, List, Optional, Tuple, Type, Union

from sqlalchemy.orm import Session

from leaveflow.core.exceptions import Forbidden, InvalidRange, InvalidTransition, NotFound
from leaveflow.models.leave import LeaveRequest, LeaveSession, LeaveType
from leaveflow.models.overtime import OvertimeRequest
from leaveflow.models.request_action import (
    ApprovalAction,
    RequestAction,
    RequestKind,
    RequestStatus,
)
from leaveflow.models.user import HR_ROLES, Role, User
from leaveflow.services import balance_service
from leaveflow.services.audit_service import log_audit
from leaveflow.services.day_count import calculate_leave_days
from leaveflow.utils.datetime_utils import ensure_utc, now_utc

logger = logging.getLogger(__name__)

AnyRequest = Union[LeaveRequest, OvertimeRequest]

KIND_MODELS: Dict[RequestKind, Type] = {
    RequestKind.LEAVE: LeaveRequest,
    RequestKind.OVERTIME: OvertimeRequest,
}

# Who may perform a transition
MANAGER_STAGE = "manager"    # MANAGER assigned as the requester's approver
HR_STAGE = "hr"              # HR or ADMIN
REQUESTER = "requester"      # the user who filed the request

TRANSITIONS: Dict[Tuple[RequestStatus, ApprovalAction], Tuple[RequestStatus, str]] = {
    (RequestStatus.PENDING_MANAGER, ApprovalAction.APPROVE): (RequestStatus.PENDING_HR, MANAGER_STAGE),
    (RequestStatus.PENDING_MANAGER, ApprovalAction.REJECT): (RequestStatus.REJECTED, MANAGER_STAGE),
    (RequestStatus.PENDING_MANAGER, ApprovalAction.CANCEL): (RequestStatus.CANCELLED, REQUESTER),
    (RequestStatus.PENDING_HR, ApprovalAction.APPROVE): (RequestStatus.APPROVED, HR_STAGE),
    (RequestStatus.PENDING_HR, ApprovalAction.REJECT): (RequestStatus.REJECTED, HR_STAGE),
    (RequestStatus.PENDING_HR, ApprovalAction.CANCEL): (RequestStatus.CANCELLED, REQUESTER),
    (RequestStatus.APPROVED, ApprovalAction.CANCEL): (RequestStatus.CANCELLED, HR_STAGE),
}


def authorize_transition(actor: User, requester: User, rule: str, action: ApprovalAction) -> None:
    """
    Check that actor may perform action under the stage rule.

    Raises:
        Forbidden: actor lacks authority (including approving/rejecting own request)
    """
    if action in (ApprovalAction.APPROVE, ApprovalAction.REJECT) and actor.id == requester.id:
        raise Forbidden("You cannot approve or reject your own request")

    if rule == MANAGER_STAGE:
        if actor.role == Role.MANAGER and requester.approver_id == actor.id:
            return
        raise Forbidden("Only the assigned approving manager can act on this request")

    if rule == HR_STAGE:
        if actor.role in HR_ROLES:
            return
        raise Forbidden("Only HR can act on this request at this stage")

    if rule == REQUESTER:
        if actor.id == requester.id:
            return
        raise Forbidden("Only the requester can cancel a pending request")

    raise Forbidden()


def _get_request_row(db: Session, kind: RequestKind, request_id: int) -> AnyRequest:
    model = KIND_MODELS[kind]
    request = db.query(model).filter(model.id == request_id).first()
    if not request:
        raise NotFound(f"{kind.value.capitalize()} request with id {request_id} not found")
    return request


def _add_trail(
    db: Session,
    kind: RequestKind,
    request_id: int,
    action: ApprovalAction,
    from_status: Optional[RequestStatus],
    to_status: RequestStatus,
    actor_id: int,
    comments: Optional[str],
    acted_at: datetime,
) -> RequestAction:
    row = RequestAction(
        request_kind=kind,
        request_id=request_id,
        action=action,
        from_status=from_status,
        to_status=to_status,
        actor_id=actor_id,
        comments=comments,
        acted_at=acted_at,
    )
    db.add(row)
    return row


def _stage_values(model, rule: str, action: ApprovalAction, actor: User, comments: Optional[str], acted_at: datetime) -> Dict:
    """Audit columns written by a transition."""
    if action == ApprovalAction.CANCEL:
        return {
            model.cancelled_by_id: actor.id,
            model.cancelled_at: acted_at,
            model.cancellation_comments: comments,
        }
    if rule == MANAGER_STAGE:
        return {
            model.manager_action_by_id: actor.id,
            model.manager_action_at: acted_at,
            model.manager_comments: comments,
        }
    return {
        model.hr_action_by_id: actor.id,
        model.hr_action_at: acted_at,
        model.hr_comments: comments,
    }


def _apply_ledger(
    db: Session,
    leave_request: LeaveRequest,
    from_status: RequestStatus,
    to_status: RequestStatus,
    actor: User,
    override: bool,
) -> Dict:
    """
    Reserve on final approval, release on cancel-after-approval.

    Approval charges the leave type's charged balance and returns the request
    columns recording what was taken. Cancel releases exactly that record,
    whatever the leave type's settings are by then.
    """
    if to_status == RequestStatus.APPROVED:
        leave_type = leave_request.leave_type
        if not leave_type.tracks_balance:
            return {}
        charged = leave_type.charged_leave_type
        year = leave_request.start_date.year
        balance = balance_service.get_or_create_balance(db, leave_request.user_id, charged.id, year)
        balance_service.reserve_usage(db, balance, leave_request.days, override=override)

        values = {
            LeaveRequest.reserved_balance_id: balance.id,
            LeaveRequest.reserved_days: leave_request.days,
        }
        if override and balance.used_days > balance.allocated_days:
            logger.warning(
                "leave approved with balance override: leave_request_id=%s user_id=%s actor_id=%s "
                "days=%s used=%s allocated=%s",
                leave_request.id, leave_request.user_id, actor.id,
                leave_request.days, balance.used_days, balance.allocated_days,
            )
            log_audit(
                db=db,
                actor_id=actor.id,
                action="BALANCE_OVERRIDE",
                entity_type="leave_requests",
                entity_id=leave_request.id,
                meta={
                    "user_id": leave_request.user_id,
                    "leave_type": charged.name,
                    "year": year,
                    "days": leave_request.days,
                    "used_days": balance.used_days,
                    "allocated_days": balance.allocated_days,
                },
            )
            values[LeaveRequest.balance_override] = True
        return values

    if from_status == RequestStatus.APPROVED and to_status == RequestStatus.CANCELLED:
        # Stored values, not the possibly stale ORM copy
        reserved_balance_id, reserved_days = (
            db.query(LeaveRequest.reserved_balance_id, LeaveRequest.reserved_days)
            .filter(LeaveRequest.id == leave_request.id)
            .one()
        )
        if reserved_balance_id is not None and reserved_days:
            balance = balance_service.get_balance(db, reserved_balance_id)
            balance_service.release_usage(db, balance, reserved_days)
    return {}


def act_on_request(
    db: Session,
    actor: User,
    kind: RequestKind,
    request_id: int,
    action: ApprovalAction,
    comments: Optional[str] = None,
    override: bool = False,
) -> AnyRequest:
    """
    Approve, reject or cancel a leave or overtime request.

    override is only honoured on the HR approval of a leave request.

    Raises:
        NotFound: unknown request
        InvalidTransition: action not allowed from the current status, or the
            status changed underneath (a concurrent action won)
        Forbidden: actor lacks authority
        InsufficientBalance: HR approval would exceed the allocation without override
    """
    if action not in (ApprovalAction.APPROVE, ApprovalAction.REJECT, ApprovalAction.CANCEL):
        raise InvalidTransition(f"Unsupported action {action.value}")

    model = KIND_MODELS[kind]
    request = _get_request_row(db, kind, request_id)
    from_status = request.status

    transition = TRANSITIONS.get((from_status, action))
    if transition is None:
        raise InvalidTransition(
            f"Cannot {action.value.lower()} a request with status {from_status.value}",
            details={"request_id": request_id, "status": from_status, "action": action},
        )
    to_status, rule = transition

    authorize_transition(actor, request.user, rule, action)

    acted_at = now_utc()
    values = {model.status: to_status, model.updated_at: acted_at}
    values.update(_stage_values(model, rule, action, actor, comments, acted_at))

    try:
        updated = (
            db.query(model)
            .filter(model.id == request.id, model.status == from_status)
            .update(values, synchronize_session=False)
        )
        if updated != 1:
            raise InvalidTransition(
                "Request was already processed by another action",
                details={"request_id": request_id, "expected_status": from_status},
            )

        if kind == RequestKind.LEAVE:
            ledger_values = _apply_ledger(
                db, request, from_status, to_status, actor,
                override=override and rule == HR_STAGE and action == ApprovalAction.APPROVE,
            )
            if ledger_values:
                db.query(model).filter(model.id == request.id).update(
                    ledger_values, synchronize_session=False
                )

        _add_trail(db, kind, request.id, action, from_status, to_status, actor.id, comments, acted_at)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(request)
    logger.info(
        "%s status transition: request_id=%s before=%s after=%s action=%s actor_id=%s",
        kind.value.lower(), request.id, from_status.value, to_status.value,
        action.value.lower(), actor.id,
    )
    return request


def create_leave_request(
    db: Session,
    actor: User,
    leave_type_id: int,
    start_date: date,
    end_date: date,
    session: LeaveSession = LeaveSession.FULL_DAY,
    reason: Optional[str] = None,
) -> LeaveRequest:
    """
    File a leave request for actor (status PENDING_MANAGER).

    Raises:
        NotFound: unknown leave type
        InvalidRange: end_date before start_date
        InsufficientBalance: days exceed the remaining balance of the charged leave type
    """
    leave_type = db.query(LeaveType).filter(LeaveType.id == leave_type_id).first()
    if not leave_type:
        raise NotFound(f"Leave type with id {leave_type_id} not found")

    days = calculate_leave_days(start_date, end_date, session)
    balance_service.check_available(db, actor.id, leave_type, start_date.year, days)
    created_at = now_utc()

    leave_request = LeaveRequest(
        user_id=actor.id,
        leave_type_id=leave_type.id,
        start_date=start_date,
        end_date=end_date,
        session=session,
        reason=reason,
        status=RequestStatus.PENDING_MANAGER,
        days=days,
        balance_override=False,
        created_at=created_at,
        updated_at=created_at,
    )
    try:
        db.add(leave_request)
        db.flush()
        _add_trail(
            db, RequestKind.LEAVE, leave_request.id, ApprovalAction.CREATE,
            None, RequestStatus.PENDING_MANAGER, actor.id, reason, created_at,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(leave_request)
    logger.info(
        "leave request created: request_id=%s user_id=%s leave_type=%s days=%s session=%s",
        leave_request.id, actor.id, leave_type.name, days, session.value,
    )
    return leave_request


def _validate_time_range(start_time: datetime, end_time: datetime) -> None:
    if ensure_utc(end_time) <= ensure_utc(start_time):
        raise InvalidRange(
            "end_time must be after start_time",
            details={"start_time": start_time, "end_time": end_time},
        )


def create_overtime_request(
    db: Session,
    actor: User,
    start_time: datetime,
    end_time: datetime,
    reason: Optional[str] = None,
) -> OvertimeRequest:
    """
    File an overtime request for actor (status PENDING_MANAGER). No ledger effect.

    Raises:
        InvalidRange: end_time not after start_time
    """
    _validate_time_range(start_time, end_time)
    created_at = now_utc()

    overtime = OvertimeRequest(
        user_id=actor.id,
        start_time=ensure_utc(start_time),
        end_time=ensure_utc(end_time),
        reason=reason,
        status=RequestStatus.PENDING_MANAGER,
        created_at=created_at,
        updated_at=created_at,
    )
    try:
        db.add(overtime)
        db.flush()
        _add_trail(
            db, RequestKind.OVERTIME, overtime.id, ApprovalAction.CREATE,
            None, RequestStatus.PENDING_MANAGER, actor.id, reason, created_at,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(overtime)
    logger.info("overtime request created: request_id=%s user_id=%s", overtime.id, actor.id)
    return overtime


def _ensure_editable(request: AnyRequest, actor: User) -> None:
    if request.user_id != actor.id:
        raise Forbidden("Only the requester can edit this request")
    if request.status != RequestStatus.PENDING_MANAGER:
        raise InvalidTransition(
            f"Cannot edit a request with status {request.status.value}",
            details={"request_id": request.id, "status": request.status},
        )


def _commit_update(db: Session, kind: RequestKind, request: AnyRequest, model, values: Dict, actor: User) -> AnyRequest:
    acted_at = now_utc()
    values[model.updated_at] = acted_at
    try:
        updated = (
            db.query(model)
            .filter(model.id == request.id, model.status == RequestStatus.PENDING_MANAGER)
            .update(values, synchronize_session=False)
        )
        if updated != 1:
            raise InvalidTransition(
                "Request was already processed by another action",
                details={"request_id": request.id},
            )
        _add_trail(
            db, kind, request.id, ApprovalAction.UPDATE,
            RequestStatus.PENDING_MANAGER, RequestStatus.PENDING_MANAGER, actor.id, None, acted_at,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(request)
    logger.info("%s request updated: request_id=%s user_id=%s", kind.value.lower(), request.id, actor.id)
    return request


def update_leave_request(
    db: Session,
    actor: User,
    request_id: int,
    leave_type_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    session: Optional[LeaveSession] = None,
    reason: Optional[str] = None,
) -> LeaveRequest:
    """
    Requester edit while the request waits for the manager; days are recomputed.

    Raises:
        NotFound, Forbidden, InvalidTransition, InvalidRange, InsufficientBalance
    """
    leave_request = _get_request_row(db, RequestKind.LEAVE, request_id)
    _ensure_editable(leave_request, actor)

    leave_type = leave_request.leave_type
    if leave_type_id is not None and leave_type_id != leave_request.leave_type_id:
        leave_type = db.query(LeaveType).filter(LeaveType.id == leave_type_id).first()
        if not leave_type:
            raise NotFound(f"Leave type with id {leave_type_id} not found")

    new_start = start_date or leave_request.start_date
    new_end = end_date or leave_request.end_date
    new_session = session or leave_request.session
    days = calculate_leave_days(new_start, new_end, new_session)
    balance_service.check_available(db, actor.id, leave_type, new_start.year, days)

    values = {
        LeaveRequest.leave_type_id: leave_type.id,
        LeaveRequest.start_date: new_start,
        LeaveRequest.end_date: new_end,
        LeaveRequest.session: new_session,
        LeaveRequest.days: days,
    }
    if reason is not None:
        values[LeaveRequest.reason] = reason
    return _commit_update(db, RequestKind.LEAVE, leave_request, LeaveRequest, values, actor)


def update_overtime_request(
    db: Session,
    actor: User,
    request_id: int,
    start_time: Optional[datetime] = None,
    end_time: Optional[datetime] = None,
    reason: Optional[str] = None,
) -> OvertimeRequest:
    overtime = _get_request_row(db, RequestKind.OVERTIME, request_id)
    _ensure_editable(overtime, actor)

    new_start = start_time or overtime.start_time
    new_end = end_time or overtime.end_time
    _validate_time_range(new_start, new_end)

    values = {
        OvertimeRequest.start_time: ensure_utc(new_start),
        OvertimeRequest.end_time: ensure_utc(new_end),
    }
    if reason is not None:
        values[OvertimeRequest.reason] = reason
    return _commit_update(db, RequestKind.OVERTIME, overtime, OvertimeRequest, values, actor)


def can_view_request(actor: User, request: AnyRequest) -> bool:
    """Requester, the requester's assigned approver, HR and ADMIN may view a request."""
    if actor.role in HR_ROLES:
        return True
    if request.user_id == actor.id:
        return True
    return request.user is not None and request.user.approver_id == actor.id


def get_request(db: Session, actor: User, kind: RequestKind, request_id: int) -> AnyRequest:
    """
    Raises:
        NotFound: unknown request
        Forbidden: actor may not view it
    """
    request = _get_request_row(db, kind, request_id)
    if not can_view_request(actor, request):
        raise Forbidden("You are not authorized to view this request")
    return request


def get_request_trail(db: Session, actor: User, kind: RequestKind, request_id: int) -> List[RequestAction]:
    """Trail rows of a request, oldest first."""
    get_request(db, actor, kind, request_id)
    return (
        db.query(RequestAction)
        .filter(RequestAction.request_kind == kind, RequestAction.request_id == request_id)
        .order_by(RequestAction.acted_at.asc(), RequestAction.id.asc())
        .all()
    )
