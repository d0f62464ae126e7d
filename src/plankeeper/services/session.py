"""Session issuance for wallets that completed the challenge handshake."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from plankeeper.core.security import create_access_token
from plankeeper.services.challenge_store import Challenge, ChallengeState


@dataclass(frozen=True)
class IssuedSession:
    """Bearer credential minted for a confirmed wallet."""

    wallet: str
    access_token: str
    expires_at: datetime
    token_type: str = "bearer"


class SessionIssuer:
    """Mints JWTs whose subject is the wallet address.

    Only a consumed challenge is accepted as input, so a session can only come
    out of a login that won the consumption step.
    """

    def mint(self, receipt: Challenge) -> IssuedSession:
        if receipt.state is not ChallengeState.CONSUMED:
            raise ValueError("Sessions can only be minted from a consumed challenge")
        token, expires_at = create_access_token(receipt.wallet)
        return IssuedSession(wallet=receipt.wallet, access_token=token, expires_at=expires_at)
