"""
Health check endpoint
"""
from fastapi import APIRouter
from leaveflow.core.config import settings

router = APIRouter()


@router.get("/health")
async def health_check():
    """
    Health check endpoint

    Returns service status and version.
    """
    return {
        "status": "ok",
        "service": "leaveflow",
        "version": settings.VERSION or "dev",
    }
