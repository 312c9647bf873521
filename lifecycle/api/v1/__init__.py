"""API v1."""

from lifecycle.api.v1.router import api_router

__all__ = ["api_router"]
