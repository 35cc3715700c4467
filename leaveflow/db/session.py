"""
Database session management
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from leaveflow.core.config import settings
from leaveflow.db.base import Base
import leaveflow.models  # noqa: F401  (registers tables on Base.metadata)

if settings.DATABASE_URL.startswith("sqlite"):
    engine = create_engine(
        settings.DATABASE_URL,
        connect_args={"check_same_thread": False},
        echo=False,
    )
    # Create all tables automatically on startup for SQLite
    Base.metadata.create_all(bind=engine)
else:
    engine = create_engine(
        settings.DATABASE_URL,
        pool_pre_ping=True,
        echo=False
    )

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
