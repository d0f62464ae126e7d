# src/plankeeper/services/__init__.py
"""Business logic services for the PlanKeeper application."""

from .challenge_store import (
    Challenge,
    ChallengeState,
    ChallengeStore,
    MemoryChallengeStore,
    SqlChallengeStore,
)
from .redis_store import RedisChallengeStore
from .session import IssuedSession, SessionIssuer
from .signature import SignatureVerifier
from .wallet_auth import WalletAuthService

__all__ = [
    "Challenge",
    "ChallengeState",
    "ChallengeStore",
    "IssuedSession",
    "MemoryChallengeStore",
    "RedisChallengeStore",
    "SessionIssuer",
    "SignatureVerifier",
    "SqlChallengeStore",
    "WalletAuthService",
]
