"""
User management endpoints
"""
from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from leaveflow.core.deps import get_db, get_current_user, require_roles
from leaveflow.models.user import User, Role, HR_ROLES
from leaveflow.schemas.auth import PasswordChangeRequest
from leaveflow.schemas.user import UserCreate, UserUpdate, UserOut, UserRef, UserStatsResponse
from leaveflow.services.request_query_service import user_stats
from leaveflow.services.user_service import (
    create_user,
    list_users,
    list_approvers,
    get_user,
    update_user,
    change_password,
)

router = APIRouter()


@router.post("", response_model=UserOut, status_code=201)
async def create_user_endpoint(
    user_data: UserCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(Role.HR))
):
    """Create a new user (HR/Admin only)"""
    return create_user(db, user_data, current_user)


@router.get("/me", response_model=UserOut)
async def get_me(current_user: User = Depends(get_current_user)):
    """Current user's profile"""
    return current_user


def _stats_year(year: Optional[int]) -> int:
    return year if year is not None else date.today().year


@router.get("/me/stats", response_model=UserStatsResponse)
async def my_stats(
    year: Optional[int] = Query(None, ge=2000, le=2100, description="Balance year (defaults to current)"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Current user's request counts and leave totals"""
    return user_stats(db, current_user, _stats_year(year))


@router.post("/me/password", status_code=status.HTTP_204_NO_CONTENT)
async def change_my_password(
    data: PasswordChangeRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    change_password(db, current_user, data.current_password, data.new_password)


@router.get("/approvers", response_model=List[UserRef])
async def list_approvers_endpoint(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(Role.HR))
):
    """Active managers that can be assigned as approvers"""
    return list_approvers(db)


@router.get("", response_model=List[UserOut])
async def list_users_endpoint(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    role: Optional[Role] = Query(None),
    department_id: Optional[int] = Query(None),
    active_only: Optional[bool] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(Role.HR))
):
    """List users (HR/Admin only)"""
    return list_users(db, skip=skip, limit=limit, role=role, department_id=department_id, active_only=active_only)


@router.get("/{user_id}", response_model=UserOut)
async def get_user_endpoint(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Get a user by ID (self or HR/Admin)"""
    if current_user.id != user_id and current_user.role not in HR_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only view your own profile"
        )
    user = get_user(db, user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User with id {user_id} not found"
        )
    return user


@router.patch("/{user_id}", response_model=UserOut)
async def update_user_endpoint(
    user_id: int,
    user_data: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(Role.HR))
):
    """Update a user: role, department, approver, active flag (HR/Admin only)"""
    return update_user(db, user_id, user_data, current_user)


@router.get("/{user_id}/stats", response_model=UserStatsResponse)
async def user_stats_endpoint(
    user_id: int,
    year: Optional[int] = Query(None, ge=2000, le=2100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """A user's request counts and leave totals (self or HR/Admin)"""
    if current_user.id != user_id and current_user.role not in HR_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only view your own stats"
        )
    user = get_user(db, user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User with id {user_id} not found"
        )
    return user_stats(db, user, _stats_year(year))
