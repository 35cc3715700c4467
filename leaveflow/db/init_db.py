"""
Database initialization - initial admin and default leave types
"""
import logging
from sqlalchemy.orm import Session
from leaveflow.core.config import settings
from leaveflow.core.security import hash_password
from leaveflow.models.user import User, Role
from leaveflow.services.leave_type_service import ensure_default_leave_types

logger = logging.getLogger(__name__)


def ensure_initial_admin(db: Session) -> bool:
    """Create the initial ADMIN user when no admin exists. Returns True if created."""
    admin_exists = db.query(User.id).filter(
        (User.employee_id == settings.INITIAL_ADMIN_EMPLOYEE_ID) |
        (User.role == Role.ADMIN)
    ).first()
    if admin_exists:
        logger.info("Admin user already exists, skipping initial bootstrap")
        return False

    db.add(User(
        employee_id=settings.INITIAL_ADMIN_EMPLOYEE_ID,
        name="System Administrator",
        role=Role.ADMIN,
        password_hash=hash_password(settings.INITIAL_ADMIN_PASSWORD),
        active=True,
    ))
    db.commit()
    logger.info("Initial admin user created: employee_id=%s", settings.INITIAL_ADMIN_EMPLOYEE_ID)
    logger.info("Password: [set via INITIAL_ADMIN_PASSWORD environment variable]")
    return True


def init_db(db: Session) -> None:
    """Idempotent: safe to run on every startup."""
    ensure_default_leave_types(db)
    ensure_initial_admin(db)
