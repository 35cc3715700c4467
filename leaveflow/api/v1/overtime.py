"""
Overtime request endpoints
"""
from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from leaveflow.core.deps import get_db, get_current_user
from leaveflow.models.request_action import ApprovalAction, RequestKind, RequestStatus
from leaveflow.models.user import User
from leaveflow.schemas.overtime import OvertimeRequestCreate, OvertimeRequestUpdate, OvertimeRequestOut
from leaveflow.schemas.request import ActionRequest, HistoryStatsResponse, PageResponse, RequestActionOut
from leaveflow.services import request_query_service as queries
from leaveflow.services.request_query_service import HistoryFilters
from leaveflow.services.workflow_service import (
    act_on_request,
    create_overtime_request,
    get_request,
    get_request_trail,
    update_overtime_request,
)

router = APIRouter()


def _page(result: dict) -> PageResponse[OvertimeRequestOut]:
    return PageResponse[OvertimeRequestOut](
        items=[OvertimeRequestOut.model_validate(r) for r in result["items"]],
        total=result["total"],
        page=result["page"],
        limit=result["limit"],
        total_pages=result["total_pages"],
    )


@router.post("", response_model=OvertimeRequestOut, status_code=201)
async def create_overtime_endpoint(
    data: OvertimeRequestCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """File overtime (creates a PENDING_MANAGER request, no balance effect)"""
    return create_overtime_request(db, current_user, data.start_time, data.end_time, reason=data.reason)


@router.get("/pending", response_model=PageResponse[OvertimeRequestOut])
async def list_pending_overtime(
    page: Optional[int] = Query(None, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return _page(queries.list_pending(db, current_user, RequestKind.OVERTIME, page=page, limit=limit))


def overtime_history_filters(
    status: Optional[List[RequestStatus]] = Query(None),
    user_id: Optional[List[int]] = Query(None),
    department_id: Optional[List[int]] = Query(None),
    date_from: Optional[date] = Query(None, alias="from"),
    date_to: Optional[date] = Query(None, alias="to"),
) -> HistoryFilters:
    return HistoryFilters(
        statuses=status or [],
        user_ids=user_id or [],
        department_ids=department_id or [],
        date_from=date_from,
        date_to=date_to,
    )


@router.get("/history", response_model=PageResponse[OvertimeRequestOut])
async def list_overtime_history(
    filters: HistoryFilters = Depends(overtime_history_filters),
    page: Optional[int] = Query(None, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return _page(queries.list_history(db, current_user, RequestKind.OVERTIME, filters, page=page, limit=limit))


@router.get("/history/stats", response_model=HistoryStatsResponse)
async def overtime_history_stats(
    filters: HistoryFilters = Depends(overtime_history_filters),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Status counts and hour totals over the same scope and filters as /history"""
    return queries.history_stats(db, current_user, RequestKind.OVERTIME, filters)


@router.get("/{request_id}", response_model=OvertimeRequestOut)
async def get_overtime_endpoint(
    request_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return get_request(db, current_user, RequestKind.OVERTIME, request_id)


@router.patch("/{request_id}", response_model=OvertimeRequestOut)
async def update_overtime_endpoint(
    request_id: int,
    data: OvertimeRequestUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return update_overtime_request(db, current_user, request_id, **data.model_dump(exclude_unset=True))


@router.get("/{request_id}/trail", response_model=List[RequestActionOut])
async def overtime_trail_endpoint(
    request_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return get_request_trail(db, current_user, RequestKind.OVERTIME, request_id)


@router.post("/{request_id}/approve", response_model=OvertimeRequestOut)
async def approve_overtime_endpoint(
    request_id: int,
    action_data: Optional[ActionRequest] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    action_data = action_data or ActionRequest()
    return act_on_request(
        db, current_user, RequestKind.OVERTIME, request_id, ApprovalAction.APPROVE,
        comments=action_data.comments,
    )


@router.post("/{request_id}/reject", response_model=OvertimeRequestOut)
async def reject_overtime_endpoint(
    request_id: int,
    action_data: Optional[ActionRequest] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    action_data = action_data or ActionRequest()
    return act_on_request(
        db, current_user, RequestKind.OVERTIME, request_id, ApprovalAction.REJECT,
        comments=action_data.comments,
    )


@router.post("/{request_id}/cancel", response_model=OvertimeRequestOut)
async def cancel_overtime_endpoint(
    request_id: int,
    action_data: Optional[ActionRequest] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    action_data = action_data or ActionRequest()
    return act_on_request(
        db, current_user, RequestKind.OVERTIME, request_id, ApprovalAction.CANCEL,
        comments=action_data.comments,
    )
