"""
Authentication endpoints
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from leaveflow.core.deps import get_db
from leaveflow.core.security import verify_password, create_access_token
from leaveflow.models.user import User
from leaveflow.schemas.auth import LoginRequest, TokenResponse
from leaveflow.services.audit_service import log_audit

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/login", response_model=TokenResponse)
async def login(
    login_data: LoginRequest,
    db: Session = Depends(get_db)
):
    """
    Authenticate user and return JWT token

    Validates employee_id and password, rejects inactive users.
    """
    user = db.query(User).filter(User.employee_id == login_data.employee_id).first()

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid employee ID or password"
        )

    if not user.active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive"
        )

    if user.password_hash is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No password set for this account"
        )

    if not verify_password(login_data.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid employee ID or password"
        )

    # JWT 'sub' claim must be a string
    token_data = {
        "sub": str(user.id),
        "employee_id": user.employee_id,
        "role": user.role.value,
    }
    access_token = create_access_token(data=token_data)

    log_audit(
        db=db,
        actor_id=user.id,
        action="AUTH_LOGIN_SUCCESS",
        entity_type="auth",
        meta={"employee_id": user.employee_id, "role": user.role}
    )
    db.commit()
    logger.info("login: user_id=%s role=%s", user.id, user.role.value)

    return TokenResponse(access_token=access_token, token_type="bearer")
