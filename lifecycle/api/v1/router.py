"""API v1 router aggregation.

Includes all endpoint modules with consistent prefix and tags. Routes get
the lifecycle service and the admin check from lifecycle.api.v1.dependencies.
"""

from fastapi import APIRouter

from lifecycle.api.v1.endpoints import erasure, export, health

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(erasure.router, prefix="/erasure-jobs", tags=["erasure"])
api_router.include_router(export.router, prefix="/subjects", tags=["export"])
