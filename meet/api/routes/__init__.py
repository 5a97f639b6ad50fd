"""API Routes Package

Aggregates route handlers into a single router mounted under the configured
REST prefix (default /api/v1).
"""

from fastapi import APIRouter

from .meets import router as meets_router


def build_api_router(prefix: str = "/api/v1") -> APIRouter:
    api_router = APIRouter(prefix=prefix.rstrip("/"))
    api_router.include_router(meets_router, prefix="/meets", tags=["meets"])
    return api_router


__all__ = ["build_api_router"]
