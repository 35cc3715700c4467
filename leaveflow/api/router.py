"""
Main API router
"""
from fastapi import APIRouter

from leaveflow.api.v1 import (
    health,
    auth,
    users,
    departments,
    leave_types,
    leaves,
    overtime,
    requests,
    balances,
)

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(auth.router, prefix="/auth", tags=["authentication"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(departments.router, prefix="/departments", tags=["departments"])
api_router.include_router(leave_types.router, prefix="/leave-types", tags=["leave-types"])
api_router.include_router(leaves.router, prefix="/leaves", tags=["leaves"])
api_router.include_router(overtime.router, prefix="/overtime", tags=["overtime"])
api_router.include_router(requests.router, prefix="/requests", tags=["requests"])
api_router.include_router(balances.router, prefix="/balances", tags=["balances"])
