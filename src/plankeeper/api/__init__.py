# src/plankeeper/api/__init__.py
"""HTTP API for PlanKeeper Stage."""

from .endpoints import auth_router, users_router

__all__ = ["auth_router", "users_router"]
