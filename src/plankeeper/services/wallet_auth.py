"""Wallet challenge-response login.

A login is accepted only when all of these hold, in order:

1. the wallet has a live pending challenge,
2. the signature verifies over the challenge bytes exactly as issued,
3. this request wins ``try_consume`` for that challenge.

A bad signature leaves the challenge pending so the client can retry against
the same nonce. Losing step 3 fails the login even though the signature was
valid; the session issuer is never reached without the consumption receipt.
"""

from __future__ import annotations

import logging

from plankeeper.core.errors import (
    ChallengeError,
    InvalidSignature,
    InvalidWalletError,
    NoPendingChallenge,
    ReplayOrExpired,
)
from plankeeper.core.logging_config import short_wallet
from plankeeper.services.challenge_store import Challenge, ChallengeStore
from plankeeper.services.session import IssuedSession, SessionIssuer
from plankeeper.services.signature import SignatureVerifier, normalize_wallet

logger = logging.getLogger(__name__)


class WalletAuthService:
    """Coordinates nonce issuance, signature checks and session minting."""

    def __init__(
        self,
        store: ChallengeStore,
        verifier: SignatureVerifier | None = None,
        issuer: SessionIssuer | None = None,
    ) -> None:
        self.store = store
        self.verifier = verifier or SignatureVerifier()
        self.issuer = issuer or SessionIssuer()

    def issue_nonce(self, wallet: str) -> Challenge:
        """Issue a fresh challenge for ``wallet``, superseding any earlier one.

        Raises:
            InvalidWalletError: If ``wallet`` is not a hex-encoded public key.
        """
        canonical = normalize_wallet(wallet)
        challenge = self.store.issue(canonical)
        logger.debug("Issued login challenge for wallet %s", short_wallet(canonical))
        return challenge

    def authenticate(self, wallet: str, signature: str) -> IssuedSession:
        """Verify a signed challenge and mint a session for ``wallet``.

        Raises:
            AuthError: Any failure. Callers should not distinguish subclasses
                in client-facing responses.
        """
        try:
            canonical = normalize_wallet(wallet)
        except InvalidWalletError as err:
            raise InvalidSignature("malformed wallet") from err

        challenge = self.store.get_pending(canonical)
        if challenge is None:
            raise NoPendingChallenge(f"no pending challenge for {short_wallet(canonical)}")

        if not self.verifier.verify(canonical, challenge.message, signature):
            raise InvalidSignature(f"signature rejected for {short_wallet(canonical)}")

        try:
            receipt = self.store.try_consume(canonical, challenge.value)
        except ChallengeError as err:
            raise ReplayOrExpired(err) from err

        session = self.issuer.mint(receipt)
        logger.info("Wallet %s authenticated", short_wallet(canonical))
        return session


__all__ = ["WalletAuthService"]
