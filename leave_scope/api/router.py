"""
Main API router
"""
from fastapi import APIRouter

from leave_scope.api.v1 import (
    health,
    access,
    leaves,
    coverage,
)

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(access.router, prefix="/access", tags=["access"])
api_router.include_router(leaves.router, prefix="/leaves", tags=["leaves"])
api_router.include_router(coverage.router, prefix="/coverage", tags=["coverage"])
