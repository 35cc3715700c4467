"""
Department service - business logic for department management
"""
from sqlalchemy.orm import Session
from sqlalchemy import func
from fastapi import HTTPException, status
from typing import List, Optional
from leaveflow.models.department import Department
from leaveflow.models.user import User
from leaveflow.schemas.department import DepartmentCreate, DepartmentUpdate
from leaveflow.services.audit_service import log_audit


def _ensure_unique_name(db: Session, name: str, exclude_id: Optional[int] = None) -> None:
    # Case-insensitive
    query = db.query(Department).filter(func.lower(Department.name) == func.lower(name))
    if exclude_id is not None:
        query = query.filter(Department.id != exclude_id)
    if query.first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Department with name '{name}' already exists"
        )


def create_department(
    db: Session,
    department_data: DepartmentCreate,
    actor_id: int
) -> Department:
    """
    Create a new department

    Args:
        db: Database session
        department_data: Department creation data
        actor_id: ID of the user creating the department

    Returns:
        Created Department instance

    Raises:
        HTTPException: If department name already exists
    """
    name = department_data.name.strip()
    _ensure_unique_name(db, name)

    department = Department(name=name)
    db.add(department)
    db.flush()

    log_audit(
        db=db,
        actor_id=actor_id,
        action="CREATE",
        entity_type="department",
        entity_id=department.id,
        meta={"name": department.name}
    )
    db.commit()
    db.refresh(department)
    return department


def member_count(db: Session, department_id: int) -> int:
    return db.query(func.count(User.id)).filter(User.department_id == department_id).scalar() or 0


def list_departments(db: Session, skip: int = 0, limit: int = 100) -> List[Department]:
    return db.query(Department).order_by(Department.name.asc()).offset(skip).limit(limit).all()


def get_department(db: Session, department_id: int) -> Optional[Department]:
    """Get a department by ID"""
    return db.query(Department).filter(Department.id == department_id).first()


def _get_or_404(db: Session, department_id: int) -> Department:
    department = get_department(db, department_id)
    if not department:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Department with id {department_id} not found"
        )
    return department


def update_department(
    db: Session,
    department_id: int,
    department_data: DepartmentUpdate,
    actor_id: int
) -> Department:
    """
    Update a department

    Raises:
        HTTPException: If department not found or name conflict
    """
    department = _get_or_404(db, department_id)
    before = department.name

    if department_data.name is not None:
        name = department_data.name.strip()
        _ensure_unique_name(db, name, exclude_id=department_id)
        department.name = name

    log_audit(
        db=db,
        actor_id=actor_id,
        action="UPDATE",
        entity_type="department",
        entity_id=department.id,
        meta={"before": {"name": before}, "after": {"name": department.name}}
    )
    db.commit()
    db.refresh(department)
    return department


def delete_department(db: Session, department_id: int, actor_id: int) -> None:
    """
    Delete a department

    Raises:
        HTTPException: not found, or users still assigned
    """
    department = _get_or_404(db, department_id)

    members = member_count(db, department_id)
    if members:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot delete department with {members} assigned user(s)"
        )

    log_audit(
        db=db,
        actor_id=actor_id,
        action="DELETE",
        entity_type="department",
        entity_id=department.id,
        meta={"name": department.name}
    )
    db.delete(department)
    db.commit()
