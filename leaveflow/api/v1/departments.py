"""
Department management endpoints (HR/Admin)
"""
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from leaveflow.core.deps import get_db, require_roles
from leaveflow.models.user import Role, User
from leaveflow.schemas.department import DepartmentCreate, DepartmentUpdate, DepartmentOut
from leaveflow.services.department_service import (
    create_department,
    list_departments,
    get_department,
    update_department,
    delete_department,
)

router = APIRouter()


@router.post("", response_model=DepartmentOut, status_code=201)
async def create_department_endpoint(
    department_data: DepartmentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(Role.HR))
):
    """Create a new department"""
    return create_department(db, department_data, current_user.id)


@router.get("", response_model=List[DepartmentOut])
async def list_departments_endpoint(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(Role.HR))
):
    return list_departments(db, skip=skip, limit=limit)


@router.get("/{department_id}", response_model=DepartmentOut)
async def get_department_endpoint(
    department_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(Role.HR))
):
    department = get_department(db, department_id)
    if not department:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Department with id {department_id} not found"
        )
    return department


@router.patch("/{department_id}", response_model=DepartmentOut)
async def update_department_endpoint(
    department_id: int,
    department_data: DepartmentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(Role.HR))
):
    return update_department(db, department_id, department_data, current_user.id)


@router.delete("/{department_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_department_endpoint(
    department_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(Role.HR))
):
    """Delete a department with no assigned users"""
    delete_department(db, department_id, current_user.id)
