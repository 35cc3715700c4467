"""
leaveflow - Leave & Overtime Approval Backend
"""
import logging
from urllib.parse import urlparse, urlunparse

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import OperationalError

from leaveflow.api.router import api_router
from leaveflow.core.config import settings
from leaveflow.core.errors import (
    http_exception_handler,
    workflow_exception_handler,
    validation_exception_handler,
    generic_exception_handler,
)
from leaveflow.core.exceptions import WorkflowError
from leaveflow.core.logging import setup_logging
from leaveflow.db.init_db import init_db
from leaveflow.db.session import SessionLocal

# Setup logging first
setup_logging()
logger = logging.getLogger(__name__)


def _mask_database_url(url: str) -> str:
    """Mask password in DATABASE_URL for safe logging; show full path for sqlite."""
    parsed = urlparse(url)
    if parsed.scheme.startswith("sqlite"):
        return url
    if parsed.password:
        netloc = f"{parsed.username}:****@{parsed.hostname or ''}"
        if parsed.port:
            netloc += f":{parsed.port}"
        return urlunparse(parsed._replace(netloc=netloc))
    return url


app = FastAPI(
    title="leaveflow",
    description="Leave and overtime requests with two-stage approval and balance tracking",
    version=settings.VERSION or "1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register exception handlers
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(WorkflowError, workflow_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

# Include all API routes under /api/v1
app.include_router(api_router, prefix="/api/v1")


@app.on_event("startup")
def startup_log_config() -> None:
    """Log DATABASE_URL at startup so it can be verified against Alembic."""
    logger.info("DATABASE_URL (app): %s", _mask_database_url(settings.DATABASE_URL))


@app.on_event("startup")
def bootstrap_reference_data() -> None:
    """Create the initial admin user and default leave types when missing."""
    db = SessionLocal()
    try:
        init_db(db)
    except OperationalError as e:
        db.rollback()
        # Tables not created yet (run alembic upgrade head)
        logger.warning("Database not ready, skipping initial bootstrap: %s", e)
    finally:
        db.close()
