"""
Kind-agnostic workflow endpoints (leave and overtime)
"""
from typing import List, Union
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from leaveflow.core.deps import get_db, get_current_user
from leaveflow.models.request_action import RequestKind
from leaveflow.models.user import User
from leaveflow.schemas.leave import LeaveRequestOut
from leaveflow.schemas.overtime import OvertimeRequestOut
from leaveflow.schemas.request import PendingCountResponse, RequestActionCreate, RequestActionOut
from leaveflow.services import request_query_service as queries
from leaveflow.services.workflow_service import act_on_request, get_request_trail

router = APIRouter()

OUT_SCHEMAS = {
    RequestKind.LEAVE: LeaveRequestOut,
    RequestKind.OVERTIME: OvertimeRequestOut,
}


@router.get("/pending/count", response_model=PendingCountResponse)
async def pending_count(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Number of requests waiting on the caller, per kind"""
    return PendingCountResponse(
        leave=queries.list_pending(db, current_user, RequestKind.LEAVE, page=1, limit=1)["total"],
        overtime=queries.list_pending(db, current_user, RequestKind.OVERTIME, page=1, limit=1)["total"],
    )


@router.post("/{kind}/{request_id}/actions", response_model=Union[LeaveRequestOut, OvertimeRequestOut])
async def act_on_request_endpoint(
    kind: RequestKind,
    request_id: int,
    data: RequestActionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Apply APPROVE / REJECT / CANCEL to a request

    Errors: 404 unknown request, 403 actor lacks authority, 409 status does not
    allow the action or balance is insufficient.
    """
    request = act_on_request(
        db, current_user, kind, request_id, data.action,
        comments=data.comments, override=data.override,
    )
    return OUT_SCHEMAS[kind].model_validate(request)


@router.get("/{kind}/{request_id}/trail", response_model=List[RequestActionOut])
async def request_trail_endpoint(
    kind: RequestKind,
    request_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return get_request_trail(db, current_user, kind, request_id)
