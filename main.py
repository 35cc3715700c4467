"""
Entry point for `uvicorn main:app`
"""
from leaveflow.main import app  # noqa: F401
