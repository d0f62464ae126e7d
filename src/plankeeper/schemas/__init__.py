# src/plankeeper/schemas/__init__.py
"""Pydantic request and response schemas."""

from .auth import LoginResponse, NonceResponse, WalletLoginRequest
from .user import CurrentUserResponse

__all__ = ["CurrentUserResponse", "LoginResponse", "NonceResponse", "WalletLoginRequest"]
