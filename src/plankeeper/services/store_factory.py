"""Selection of the configured challenge store backend."""

from __future__ import annotations

from threading import Lock

from sqlalchemy.orm import Session

from plankeeper.core.settings import settings
from plankeeper.services.challenge_store import (
    ChallengeStore,
    MemoryChallengeStore,
    SqlChallengeStore,
)
from plankeeper.services.redis_store import RedisChallengeStore, create_redis_challenge_store

_memory_store: MemoryChallengeStore | None = None
_redis_store: RedisChallengeStore | None = None
_FACTORY_LOCK = Lock()


def get_memory_store() -> MemoryChallengeStore:
    """Return the process-wide in-memory store."""
    global _memory_store
    with _FACTORY_LOCK:
        if _memory_store is None:
            _memory_store = MemoryChallengeStore()
        return _memory_store


def get_redis_store() -> RedisChallengeStore:
    """Return the process-wide Redis store."""
    global _redis_store
    with _FACTORY_LOCK:
        if _redis_store is None:
            _redis_store = create_redis_challenge_store()
        return _redis_store


def build_challenge_store(db: Session | None, backend: str | None = None) -> ChallengeStore:
    """Return a store for ``backend`` (defaults to ``CHALLENGE_STORE_BACKEND``).

    The database backend is bound to ``db`` and must be rebuilt per session.
    """
    selected = backend or settings.challenge_store_backend
    if selected == "memory":
        return get_memory_store()
    if selected == "redis":
        return get_redis_store()
    if selected == "database":
        if db is None:
            raise ValueError("The database challenge store needs a session")
        return SqlChallengeStore(db)
    raise ValueError(f"Unknown challenge store backend: {selected}")


def reset_stores() -> None:
    """Drop cached process-wide stores."""
    global _memory_store, _redis_store
    with _FACTORY_LOCK:
        _memory_store = None
        _redis_store = None


__all__ = [
    "build_challenge_store",
    "get_memory_store",
    "get_redis_store",
    "reset_stores",
]
