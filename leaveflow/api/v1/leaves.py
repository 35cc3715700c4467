"""
Leave request endpoints
"""
from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from leaveflow.core.deps import get_db, get_current_user
from leaveflow.models.leave import LeaveSession
from leaveflow.models.request_action import ApprovalAction, RequestKind, RequestStatus
from leaveflow.models.user import User
from leaveflow.schemas.leave import LeaveRequestCreate, LeaveRequestUpdate, LeaveRequestOut
from leaveflow.schemas.request import ActionRequest, HistoryStatsResponse, PageResponse, RequestActionOut
from leaveflow.services import request_query_service as queries
from leaveflow.services.request_query_service import HistoryFilters
from leaveflow.services.workflow_service import (
    act_on_request,
    create_leave_request,
    get_request,
    get_request_trail,
    update_leave_request,
)

router = APIRouter()


def _page(result: dict) -> PageResponse[LeaveRequestOut]:
    return PageResponse[LeaveRequestOut](
        items=[LeaveRequestOut.model_validate(r) for r in result["items"]],
        total=result["total"],
        page=result["page"],
        limit=result["limit"],
        total_pages=result["total_pages"],
    )


@router.post("", response_model=LeaveRequestOut, status_code=201)
async def create_leave_endpoint(
    leave_data: LeaveRequestCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Apply for leave (creates a PENDING_MANAGER request)

    Any authenticated user applies for themselves. The day count is computed from
    the date range and session; MORNING/AFTERNOON on a single day counts 0.5.
    """
    return create_leave_request(
        db,
        current_user,
        leave_type_id=leave_data.leave_type_id,
        start_date=leave_data.start_date,
        end_date=leave_data.end_date,
        session=leave_data.session,
        reason=leave_data.reason,
    )


@router.get("/pending", response_model=PageResponse[LeaveRequestOut])
async def list_pending_leaves(
    page: Optional[int] = Query(None, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Requests waiting on the caller

    - MANAGER: PENDING_MANAGER requests of direct reports
    - HR/ADMIN: all PENDING_HR requests except their own
    - USER: own requests
    """
    return _page(queries.list_pending(db, current_user, RequestKind.LEAVE, page=page, limit=limit))


def leave_history_filters(
    status: Optional[List[RequestStatus]] = Query(None),
    leave_type_id: Optional[List[int]] = Query(None),
    session: Optional[List[LeaveSession]] = Query(None),
    user_id: Optional[List[int]] = Query(None),
    department_id: Optional[List[int]] = Query(None),
    date_from: Optional[date] = Query(None, alias="from", description="start_date >= from (YYYY-MM-DD)"),
    date_to: Optional[date] = Query(None, alias="to", description="end_date <= to (YYYY-MM-DD)"),
) -> HistoryFilters:
    return HistoryFilters(
        statuses=status or [],
        leave_type_ids=leave_type_id or [],
        sessions=session or [],
        user_ids=user_id or [],
        department_ids=department_id or [],
        date_from=date_from,
        date_to=date_to,
    )


@router.get("/history", response_model=PageResponse[LeaveRequestOut])
async def list_leave_history(
    filters: HistoryFilters = Depends(leave_history_filters),
    page: Optional[int] = Query(None, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Leave history scoped by role (USER: own, MANAGER: own + reports, HR/ADMIN: all)"""
    return _page(queries.list_history(db, current_user, RequestKind.LEAVE, filters, page=page, limit=limit))


@router.get("/history/stats", response_model=HistoryStatsResponse)
async def leave_history_stats(
    filters: HistoryFilters = Depends(leave_history_filters),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Status counts and day totals over the same scope and filters as /history"""
    return queries.history_stats(db, current_user, RequestKind.LEAVE, filters)


@router.get("/{request_id}", response_model=LeaveRequestOut)
async def get_leave_endpoint(
    request_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return get_request(db, current_user, RequestKind.LEAVE, request_id)


@router.patch("/{request_id}", response_model=LeaveRequestOut)
async def update_leave_endpoint(
    request_id: int,
    leave_data: LeaveRequestUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Edit own request while it is PENDING_MANAGER (days are recomputed)"""
    return update_leave_request(db, current_user, request_id, **leave_data.model_dump(exclude_unset=True))


@router.get("/{request_id}/trail", response_model=List[RequestActionOut])
async def leave_trail_endpoint(
    request_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return get_request_trail(db, current_user, RequestKind.LEAVE, request_id)


@router.post("/{request_id}/approve", response_model=LeaveRequestOut)
async def approve_leave_endpoint(
    request_id: int,
    action_data: Optional[ActionRequest] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Approve a leave request

    - PENDING_MANAGER -> PENDING_HR by the requester's assigned MANAGER
    - PENDING_HR -> APPROVED by HR/ADMIN; reserves the days on the balance ledger.
      override=true lets HR approve past the remaining allocation.
    """
    action_data = action_data or ActionRequest()
    return act_on_request(
        db, current_user, RequestKind.LEAVE, request_id, ApprovalAction.APPROVE,
        comments=action_data.comments, override=action_data.override,
    )


@router.post("/{request_id}/reject", response_model=LeaveRequestOut)
async def reject_leave_endpoint(
    request_id: int,
    action_data: Optional[ActionRequest] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    action_data = action_data or ActionRequest()
    return act_on_request(
        db, current_user, RequestKind.LEAVE, request_id, ApprovalAction.REJECT,
        comments=action_data.comments,
    )


@router.post("/{request_id}/cancel", response_model=LeaveRequestOut)
async def cancel_leave_endpoint(
    request_id: int,
    action_data: Optional[ActionRequest] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Cancel a leave request

    Requester while pending; HR/ADMIN after approval (the reserved days are released).
    """
    action_data = action_data or ActionRequest()
    return act_on_request(
        db, current_user, RequestKind.LEAVE, request_id, ApprovalAction.CANCEL,
        comments=action_data.comments,
    )
