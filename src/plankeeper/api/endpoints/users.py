"""Account endpoints for authenticated wallets."""

from __future__ import annotations

from fastapi import APIRouter

from plankeeper.api.dependencies import CurrentUserDep
from plankeeper.db.time import from_db
from plankeeper.schemas.user import CurrentUserResponse

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=CurrentUserResponse)
async def read_current_user(current_user: CurrentUserDep) -> CurrentUserResponse:
    """Return the account bound to the bearer token."""
    return CurrentUserResponse(
        id=current_user.id,
        wallet_address=current_user.wallet_address,
        created_at=from_db(current_user.created_at),
        last_login_at=(
            from_db(current_user.last_login_at) if current_user.last_login_at else None
        ),
    )
