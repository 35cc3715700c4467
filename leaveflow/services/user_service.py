"""
User service - business logic for user management
"""
import logging
from sqlalchemy.orm import Session, joinedload
from sqlalchemy import func
from fastapi import HTTPException, status
from typing import List, Optional
from leaveflow.models.user import User, Role
from leaveflow.models.department import Department
from leaveflow.schemas.user import UserCreate, UserUpdate
from leaveflow.core.security import hash_password, verify_password, validate_password
from leaveflow.services.audit_service import log_audit

logger = logging.getLogger(__name__)

# Upper bound on approver chain walks
MAX_CHAIN_DEPTH = 20


def get_approver_chain_ids(db: Session, user_id: int) -> List[int]:
    """
    Upward chain of approver IDs for a user (user -> approver -> approver's approver ...)

    Stops at the first user without an approver, at a repeated id, or after MAX_CHAIN_DEPTH hops.
    """
    chain = []
    current_id = user_id
    depth = 0

    while current_id and depth < MAX_CHAIN_DEPTH:
        depth += 1
        row = db.query(User.approver_id).filter(User.id == current_id).first()
        if not row or not row.approver_id or row.approver_id in chain:
            break
        chain.append(row.approver_id)
        current_id = row.approver_id

    return chain


def _validate_approver(db: Session, user_id: Optional[int], approver_id: int) -> User:
    """
    Approver must be an active MANAGER, not the user, and must not report (directly or
    indirectly) to the user.
    """
    if user_id is not None and approver_id == user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User cannot be their own approver"
        )

    approver = db.query(User).filter(User.id == approver_id).first()
    if not approver:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Approver with id {approver_id} not found"
        )
    if not approver.active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Approver with id {approver_id} is inactive"
        )
    if approver.role != Role.MANAGER:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Approver must have the MANAGER role"
        )

    if user_id is not None and user_id in get_approver_chain_ids(db, approver_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Approver assignment would create a cycle in the reporting chain"
        )
    return approver


def _validate_department(db: Session, department_id: int) -> None:
    if not db.query(Department.id).filter(Department.id == department_id).first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Department with id {department_id} not found"
        )


def _check_unique(db: Session, employee_id: Optional[str], email: Optional[str], exclude_id: Optional[int] = None) -> None:
    if employee_id is not None:
        query = db.query(User.id).filter(User.employee_id == employee_id)
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        if query.first():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"User with employee_id '{employee_id}' already exists"
            )
    if email:
        query = db.query(User.id).filter(func.lower(User.email) == email.lower())
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        if query.first():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"User with email '{email}' already exists"
            )


def create_user(db: Session, user_data: UserCreate, actor: User) -> User:
    """
    Create a new user

    Raises:
        HTTPException: duplicate employee_id/email, unknown department, invalid approver,
            or HR assigning the ADMIN role
    """
    _check_unique(db, user_data.employee_id, user_data.email)

    if user_data.role == Role.ADMIN and actor.role != Role.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only ADMIN can assign the ADMIN role"
        )
    if user_data.department_id is not None:
        _validate_department(db, user_data.department_id)
    if user_data.approver_id is not None:
        _validate_approver(db, None, user_data.approver_id)

    user = User(
        employee_id=user_data.employee_id,
        name=user_data.name,
        email=user_data.email,
        password_hash=hash_password(user_data.password) if user_data.password else None,
        role=user_data.role,
        department_id=user_data.department_id,
        approver_id=user_data.approver_id,
        active=user_data.active,
    )
    db.add(user)
    db.flush()

    log_audit(
        db=db,
        actor_id=actor.id,
        action="CREATE",
        entity_type="user",
        entity_id=user.id,
        meta={
            "employee_id": user.employee_id,
            "role": user.role,
            "department_id": user.department_id,
            "approver_id": user.approver_id,
        }
    )
    db.commit()
    db.refresh(user)
    logger.info("user created: user_id=%s employee_id=%s role=%s", user.id, user.employee_id, user.role.value)
    return user


def list_users(
    db: Session,
    skip: int = 0,
    limit: int = 100,
    role: Optional[Role] = None,
    department_id: Optional[int] = None,
    active_only: Optional[bool] = None
) -> List[User]:
    """List users with optional filtering"""
    query = db.query(User).options(joinedload(User.approver))

    if role is not None:
        query = query.filter(User.role == role)
    if department_id is not None:
        query = query.filter(User.department_id == department_id)
    if active_only is not None:
        query = query.filter(User.active == active_only)

    return query.order_by(User.name.asc(), User.id.asc()).offset(skip).limit(limit).all()


def list_approvers(db: Session) -> List[User]:
    """Active MANAGER users that can be assigned as approvers"""
    return (
        db.query(User)
        .filter(User.role == Role.MANAGER, User.active == True)
        .order_by(User.name.asc())
        .all()
    )


def get_user(db: Session, user_id: int) -> Optional[User]:
    """Get a user by ID"""
    return (
        db.query(User)
        .options(joinedload(User.approver))
        .filter(User.id == user_id)
        .first()
    )


def update_user(db: Session, user_id: int, user_data: UserUpdate, actor: User) -> User:
    """
    Update a user (HR/ADMIN)

    Raises:
        HTTPException: user not found or validation failure
    """
    user = get_user(db, user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User with id {user_id} not found"
        )

    update_dict = user_data.model_dump(exclude_unset=True)

    if "email" in update_dict:
        _check_unique(db, None, update_dict["email"], exclude_id=user_id)
    if update_dict.get("role") == Role.ADMIN and actor.role != Role.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only ADMIN can assign the ADMIN role"
        )
    if update_dict.get("department_id") is not None:
        _validate_department(db, update_dict["department_id"])
    if update_dict.get("approver_id") is not None:
        _validate_approver(db, user_id, update_dict["approver_id"])

    before = {field: getattr(user, field) for field in update_dict}
    for field, value in update_dict.items():
        setattr(user, field, value)

    log_audit(
        db=db,
        actor_id=actor.id,
        action="UPDATE",
        entity_type="user",
        entity_id=user.id,
        meta={"before": before, "after": update_dict}
    )
    db.commit()
    db.refresh(user)
    return user


def change_password(db: Session, user: User, current_password: str, new_password: str) -> User:
    """
    Change the caller's own password

    Raises:
        HTTPException: current password wrong or new password invalid
    """
    if not user.password_hash or not verify_password(current_password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Current password is incorrect"
        )
    try:
        new_password = validate_password(new_password)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    user.password_hash = hash_password(new_password)
    log_audit(
        db=db,
        actor_id=user.id,
        action="UPDATE",
        entity_type="user",
        entity_id=user.id,
        meta={"action": "password_change"}
    )
    db.commit()
    db.refresh(user)
    return user
