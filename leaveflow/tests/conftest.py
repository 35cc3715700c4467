"""
Pytest configuration and fixtures
"""
import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-leaveflow-tests")
os.environ.setdefault("APP_ENV", "local")

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from sqlalchemy.engine import Engine
from leaveflow.main import app
from leaveflow.db.base import Base
from leaveflow.core.deps import get_db
from leaveflow.core.security import hash_password, create_access_token
from leaveflow.models import Department, User, Role, LeaveType


# Use in-memory SQLite for testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# Enable foreign keys for SQLite
@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

TEST_PASSWORD = "secret123"


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db):
    """Test client fixture with database override"""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_user(db: Session, employee_id: str, role: Role, department=None, approver=None, **kwargs) -> User:
    user = User(
        employee_id=employee_id,
        name=kwargs.pop("name", employee_id.title()),
        email=kwargs.pop("email", f"{employee_id.lower()}@example.com"),
        role=role,
        department_id=department.id if department else None,
        approver_id=approver.id if approver else None,
        password_hash=hash_password(TEST_PASSWORD),
        active=kwargs.pop("active", True),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_headers(user: User) -> dict:
    token = create_access_token({"sub": str(user.id), "employee_id": user.employee_id, "role": user.role.value})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def department(db: Session):
    dept = Department(name="Engineering")
    db.add(dept)
    db.commit()
    db.refresh(dept)
    return dept


@pytest.fixture
def other_department(db: Session):
    dept = Department(name="Finance")
    db.add(dept)
    db.commit()
    db.refresh(dept)
    return dept


@pytest.fixture
def admin(db: Session, department):
    return make_user(db, "ADMIN1", Role.ADMIN, department)


@pytest.fixture
def hr(db: Session, department):
    return make_user(db, "HR1", Role.HR, department)


@pytest.fixture
def manager(db: Session, department):
    return make_user(db, "MGR1", Role.MANAGER, department)


@pytest.fixture
def other_manager(db: Session, other_department):
    return make_user(db, "MGR2", Role.MANAGER, other_department)


@pytest.fixture
def employee(db: Session, department, manager):
    """USER whose approver is `manager`"""
    return make_user(db, "EMP1", Role.USER, department, approver=manager)


@pytest.fixture
def other_employee(db: Session, other_department, other_manager):
    """USER whose approver is `other_manager`"""
    return make_user(db, "EMP2", Role.USER, other_department, approver=other_manager)


@pytest.fixture
def vacation(db: Session):
    leave_type = LeaveType(
        name="VACATION",
        default_allocated_days=Decimal("15"),
        tracks_balance=True,
        carries_forward=True,
    )
    db.add(leave_type)
    db.commit()
    db.refresh(leave_type)
    return leave_type


@pytest.fixture
def sick(db: Session):
    leave_type = LeaveType(name="SICK", default_allocated_days=Decimal("2"), tracks_balance=True, carries_forward=False)
    db.add(leave_type)
    db.commit()
    db.refresh(leave_type)
    return leave_type


@pytest.fixture
def unpaid(db: Session):
    leave_type = LeaveType(name="UNPAID", default_allocated_days=Decimal("0"), tracks_balance=False, carries_forward=False)
    db.add(leave_type)
    db.commit()
    db.refresh(leave_type)
    return leave_type


@pytest.fixture
def headers():
    """Bearer headers for a user"""
    return auth_headers


@pytest.fixture
def user_factory(db: Session):
    def _make(employee_id: str, role: Role, department=None, approver=None, **kwargs) -> User:
        return make_user(db, employee_id, role, department, approver, **kwargs)
    return _make
