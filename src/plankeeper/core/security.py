"""JWT helpers for wallet sessions."""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from plankeeper.core.settings import settings
from plankeeper.db.time import utcnow


def create_access_token(
    subject: str,
    *,
    issued_at: datetime | None = None,
    extra_claims: dict[str, Any] | None = None,
) -> tuple[str, datetime]:
    """Create a signed JWT for ``subject``.

    Returns:
        Tuple of (encoded_token, expires_at).
    """
    now = issued_at or utcnow()
    expire = now + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode: dict[str, Any] = {"sub": subject, "iat": now, "exp": expire}
    if extra_claims:
        to_encode.update(extra_claims)
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt, expire


def decode_access_token(token: str) -> str:
    """Validate ``token`` and return its subject.

    Raises:
        JWTError: If the token is malformed, forged, expired or has no subject.
    """
    payload = jwt.decode(
        token,
        settings.secret_key,
        algorithms=[settings.jwt_algorithm],
    )
    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        raise JWTError("Token has no subject")
    return subject
