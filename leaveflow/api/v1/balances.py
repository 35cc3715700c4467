"""
Leave balance endpoints
"""
from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from leaveflow.core.deps import get_db, get_current_user, require_roles
from leaveflow.models.user import User, Role, HR_ROLES
from leaveflow.schemas.balance import (
    BalanceOut,
    BalanceListResponse,
    BalanceAdjustRequest,
    BalanceBulkUpdateRequest,
    BalanceRenewRequest,
    BalanceRenewResponse,
    BalanceSummaryResponse,
)
from leaveflow.services import balance_service

router = APIRouter()


def _year(year: Optional[int]) -> int:
    return year if year is not None else date.today().year


@router.get("/me", response_model=BalanceListResponse)
async def my_balances(
    year: Optional[int] = Query(None, ge=2000, le=2100, description="Calendar year (defaults to current)"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Current user's balances for the year, one per leave type"""
    year = _year(year)
    return BalanceListResponse(year=year, items=balance_service.list_balances(db, current_user.id, year))


@router.get("/users/{user_id}", response_model=BalanceListResponse)
async def user_balances(
    user_id: int,
    year: Optional[int] = Query(None, ge=2000, le=2100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """A user's balances (self or HR/Admin)"""
    if current_user.id != user_id and current_user.role not in HR_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only view your own balances"
        )
    year = _year(year)
    return BalanceListResponse(year=year, items=balance_service.list_balances(db, user_id, year))


@router.get("/summary", response_model=BalanceSummaryResponse)
async def balance_summary(
    year: Optional[int] = Query(None, ge=2000, le=2100),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(Role.HR))
):
    """Allocated / used / remaining per leave type across all users"""
    return balance_service.summarize(db, _year(year))


@router.get("", response_model=List[BalanceOut])
async def list_employee_balances(
    year: Optional[int] = Query(None, ge=2000, le=2100),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(Role.HR))
):
    """Every balance row of the year (HR/Admin)"""
    return balance_service.employee_balances(db, _year(year))


@router.patch("/{balance_id}", response_model=BalanceOut)
async def adjust_balance_endpoint(
    balance_id: int,
    data: BalanceAdjustRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(Role.HR))
):
    """Correct a balance row directly (audited)"""
    return balance_service.adjust_balance(
        db,
        balance_id,
        current_user.id,
        allocated_days=data.allocated_days,
        used_days=data.used_days,
        comments=data.comments,
    )


@router.post("/bulk", response_model=List[BalanceOut])
async def bulk_update_balances_endpoint(
    data: BalanceBulkUpdateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(Role.HR))
):
    """Correct several balance rows in one transaction (each row audited)"""
    return balance_service.bulk_update_balances(
        db,
        [item.model_dump(exclude_unset=True) for item in data.updates],
        current_user.id,
        comments=data.comments,
    )


@router.post("/renew", response_model=BalanceRenewResponse)
async def renew_balances_endpoint(
    data: BalanceRenewRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(Role.HR))
):
    """
    Open balances for a new year

    Allocation is the leave type default plus, for carry-forward types, the
    unused remainder of the previous year.
    """
    return balance_service.renew_balances(db, data.year, current_user.id)
