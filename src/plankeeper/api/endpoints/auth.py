# src/plankeeper/api/endpoints/auth.py
"""Wallet authentication endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from plankeeper.api.dependencies import SessionDep, WalletAuthDep
from plankeeper.core.errors import AuthError, InvalidWalletError, ReplayOrExpired
from plankeeper.core.logging_config import short_wallet
from plankeeper.schemas.auth import LoginResponse, NonceResponse, WalletLoginRequest
from plankeeper.services.user_service import record_login

router = APIRouter(prefix="/auth", tags=["authentication"])
logger = logging.getLogger(__name__)

AUTH_FAILED_DETAIL = "Authentication failed"


def _log_rejection(wallet: str, err: AuthError) -> None:
    if isinstance(err, ReplayOrExpired):
        logger.warning(
            "Wallet login rejected for %s: %s (%s)",
            short_wallet(wallet),
            err.reason,
            err.cause.reason,
        )
    else:
        logger.info("Wallet login rejected for %s: %s", short_wallet(wallet), err.reason)


@router.get(
    "/nonce/{wallet}",
    summary="Issue a single-use login challenge for a wallet",
    response_model=NonceResponse,
)
async def issue_nonce(wallet: str, auth_service: WalletAuthDep) -> NonceResponse:
    """Issue a new challenge, invalidating any earlier one for the wallet."""
    try:
        challenge = auth_service.issue_nonce(wallet)
    except InvalidWalletError as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(err),
        ) from err
    return NonceResponse(nonce=challenge.value)


@router.post(
    "/web3-login",
    summary="Authenticate with a signed wallet challenge",
    status_code=status.HTTP_200_OK,
    response_model=LoginResponse,
)
async def web3_login(
    payload: WalletLoginRequest,
    db: SessionDep,
    auth_service: WalletAuthDep,
) -> LoginResponse:
    """Exchange a signed challenge for a bearer token.

    Every failure cause yields the same 401 response.
    """
    try:
        session = auth_service.authenticate(payload.wallet_address, payload.signature)
    except AuthError as err:
        _log_rejection(payload.wallet_address, err)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=AUTH_FAILED_DETAIL,
            headers={"WWW-Authenticate": "Bearer"},
        ) from err

    user = record_login(db, session.wallet)
    return LoginResponse(
        access_token=session.access_token,
        token_type=session.token_type,
        expires_at=session.expires_at,
        wallet_address=session.wallet,
        user_id=user.id,
    )
