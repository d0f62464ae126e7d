"""Error taxonomy for wallet challenge-response authentication.

Two layers exist. ``ChallengeError`` subclasses are raised by challenge stores
and describe why a consumption attempt was refused. ``AuthError`` subclasses are
raised by the login coordinator; the HTTP layer collapses all of them into a
single 401 so callers cannot tell the causes apart.
"""

from __future__ import annotations


class ChallengeError(Exception):
    """Base class for challenge store refusals."""

    reason = "challenge_error"

    def __init__(self, wallet: str, message: str | None = None) -> None:
        self.wallet = wallet
        super().__init__(message or f"{self.reason} for wallet {wallet}")


class ChallengeNotFound(ChallengeError):
    """No challenge is recorded for the wallet."""

    reason = "not_found"


class ChallengeMismatch(ChallengeError):
    """The submitted value is not the wallet's current challenge."""

    reason = "mismatch"


class ChallengeExpired(ChallengeError):
    """The wallet's challenge is past its expiry."""

    reason = "expired"


class ChallengeAlreadyConsumed(ChallengeError):
    """The wallet's challenge was already used for a login."""

    reason = "already_consumed"


class InvalidWalletError(ValueError):
    """Raised when a wallet string is not a hex-encoded Ed25519 public key."""


class AuthError(Exception):
    """Base class for failed wallet logins."""

    reason = "auth_error"


class NoPendingChallenge(AuthError):
    """The wallet has no live challenge to sign."""

    reason = "no_pending_challenge"


class InvalidSignature(AuthError):
    """The signature, wallet or signature encoding did not verify."""

    reason = "invalid_signature"


class ReplayOrExpired(AuthError):
    """A valid signature lost the consumption step."""

    reason = "replay_or_expired"

    def __init__(self, cause: ChallengeError) -> None:
        self.cause = cause
        super().__init__(f"challenge could not be consumed: {cause.reason}")


__all__ = [
    "AuthError",
    "ChallengeAlreadyConsumed",
    "ChallengeError",
    "ChallengeExpired",
    "ChallengeMismatch",
    "ChallengeNotFound",
    "InvalidSignature",
    "InvalidWalletError",
    "NoPendingChallenge",
    "ReplayOrExpired",
]
