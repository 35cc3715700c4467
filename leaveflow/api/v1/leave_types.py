"""
Leave type endpoints (read: any user, write: ADMIN)
"""
from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from leaveflow.core.deps import get_db, get_current_user, require_roles
from leaveflow.models.user import Role, User
from leaveflow.schemas.leave_type import LeaveTypeCreate, LeaveTypeUpdate, LeaveTypeOut
from leaveflow.services.leave_type_service import (
    list_leave_types,
    create_leave_type,
    update_leave_type,
    delete_leave_type,
)

router = APIRouter()


@router.get("", response_model=List[LeaveTypeOut])
async def list_leave_types_endpoint(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return list_leave_types(db)


@router.post("", response_model=LeaveTypeOut, status_code=201)
async def create_leave_type_endpoint(
    data: LeaveTypeCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(Role.ADMIN))
):
    return create_leave_type(db, data, current_user.id)


@router.patch("/{leave_type_id}", response_model=LeaveTypeOut)
async def update_leave_type_endpoint(
    leave_type_id: int,
    data: LeaveTypeUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(Role.ADMIN))
):
    return update_leave_type(db, leave_type_id, data, current_user.id)


@router.delete("/{leave_type_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_leave_type_endpoint(
    leave_type_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(Role.ADMIN))
):
    """Delete a leave type not referenced by any request or balance"""
    delete_leave_type(db, leave_type_id, current_user.id)
