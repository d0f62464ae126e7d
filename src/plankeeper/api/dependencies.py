"""Shared API dependencies for authentication and common functionality."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from plankeeper.core.security import decode_access_token
from plankeeper.db.session import get_db
from plankeeper.models import User
from plankeeper.services.challenge_store import ChallengeStore
from plankeeper.services.store_factory import build_challenge_store
from plankeeper.services.user_service import get_user_by_wallet
from plankeeper.services.wallet_auth import WalletAuthService

# HTTP Bearer scheme for JWT authentication; missing headers are reported as 401 below
bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def _credentials_exception() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_challenge_store(db: SessionDep) -> ChallengeStore:
    """Return the configured challenge store for this request."""
    return build_challenge_store(db)


ChallengeStoreDep = Annotated[ChallengeStore, Depends(get_challenge_store)]


def get_wallet_auth_service(store: ChallengeStoreDep) -> WalletAuthService:
    """Return a login coordinator bound to the request's challenge store."""
    return WalletAuthService(store)


WalletAuthDep = Annotated[WalletAuthService, Depends(get_wallet_auth_service)]


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    db: SessionDep,
) -> User:
    """Get the current authenticated user from the bearer JWT.

    Raises:
        HTTPException: If the token is missing, invalid, expired or unknown.
    """
    if credentials is None or not credentials.credentials:
        raise _credentials_exception()
    try:
        wallet = decode_access_token(credentials.credentials)
    except JWTError as err:
        raise _credentials_exception() from err

    user = get_user_by_wallet(db, wallet)
    if user is None:
        raise _credentials_exception()
    return user


# Type alias for current user dependency
CurrentUserDep = Annotated[User, Depends(get_current_user)]
