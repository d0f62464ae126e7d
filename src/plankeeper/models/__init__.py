# src/plankeeper/models/__init__.py
"""SQLAlchemy models for the PlanKeeper application."""

from .auth_challenge import AuthChallenge
from .user import User

__all__ = ["AuthChallenge", "User"]
