"""Single-use login challenges keyed by wallet.

A store keeps at most one challenge per wallet. ``issue`` overwrites whatever
the wallet had before, which is how older nonces are invalidated.
``try_consume`` is the only way a challenge changes state, and it must let
exactly one caller win when several race on the same value.
"""

from __future__ import annotations

import enum
import secrets
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import datetime, timedelta

from sqlalchemy import delete, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from plankeeper.core.errors import (
    ChallengeAlreadyConsumed,
    ChallengeError,
    ChallengeExpired,
    ChallengeMismatch,
    ChallengeNotFound,
)
from plankeeper.core.settings import settings
from plankeeper.db.time import from_db, to_db, utcnow
from plankeeper.models.auth_challenge import (
    CHALLENGE_STATE_CONSUMED,
    CHALLENGE_STATE_PENDING,
    AuthChallenge,
)

CHALLENGE_VALUE_BYTES = 32

Clock = Callable[[], datetime]


class ChallengeState(str, enum.Enum):
    """Lifecycle states of a challenge."""

    PENDING = CHALLENGE_STATE_PENDING
    CONSUMED = CHALLENGE_STATE_CONSUMED


@dataclass(frozen=True)
class Challenge:
    """A nonce issued to a wallet."""

    wallet: str
    value: str
    issued_at: datetime
    expires_at: datetime
    state: ChallengeState = ChallengeState.PENDING
    consumed_at: datetime | None = None

    @property
    def message(self) -> bytes:
        """Bytes the client is expected to sign."""
        return self.value.encode("utf-8")

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def is_live(self, now: datetime) -> bool:
        return self.state is ChallengeState.PENDING and not self.is_expired(now)


def generate_challenge_value() -> str:
    """Return a fresh 256-bit nonce, hex encoded."""
    return secrets.token_hex(CHALLENGE_VALUE_BYTES)


def same_value(stored: str, candidate: str) -> bool:
    """Constant-time comparison of two challenge values."""
    return secrets.compare_digest(stored.encode("utf-8"), candidate.encode("utf-8"))


def diagnose_refusal(
    record: Challenge | None, wallet: str, value: str, now: datetime
) -> ChallengeError:
    """Pick the error describing why ``value`` cannot consume ``record``.

    Order: not found, expired, mismatch, already consumed.
    """
    if record is None:
        return ChallengeNotFound(wallet)
    if record.is_expired(now):
        return ChallengeExpired(wallet)
    if not same_value(record.value, value):
        return ChallengeMismatch(wallet)
    return ChallengeAlreadyConsumed(wallet)


class ChallengeStore(ABC):
    """Owner of per-wallet challenge state."""

    def __init__(self, clock: Clock | None = None, ttl_seconds: int | None = None) -> None:
        self._clock = clock or utcnow
        self.ttl = timedelta(
            seconds=ttl_seconds if ttl_seconds is not None else settings.challenge_ttl_seconds
        )

    def now(self) -> datetime:
        return self._clock()

    def _new_challenge(self, wallet: str) -> Challenge:
        issued_at = self.now()
        return Challenge(
            wallet=wallet,
            value=generate_challenge_value(),
            issued_at=issued_at,
            expires_at=issued_at + self.ttl,
        )

    @abstractmethod
    def issue(self, wallet: str) -> Challenge:
        """Store a new pending challenge for ``wallet``, replacing any prior one."""

    @abstractmethod
    def get_pending(self, wallet: str) -> Challenge | None:
        """Return the live pending challenge for ``wallet`` without consuming it."""

    @abstractmethod
    def try_consume(self, wallet: str, value: str) -> Challenge:
        """Atomically mark the wallet's pending challenge consumed.

        Returns:
            The consumed challenge.

        Raises:
            ChallengeError: If no live pending challenge with ``value`` exists.
        """

    @abstractmethod
    def purge_expired(self) -> int:
        """Delete expired challenges and return how many were removed."""


class MemoryChallengeStore(ChallengeStore):
    """Process-local store for tests and single-worker deployments.

    Each wallet gets its own lock. Locks are dropped together with the record
    they guard, so the registry does not outgrow the set of live wallets.
    """

    def __init__(self, clock: Clock | None = None, ttl_seconds: int | None = None) -> None:
        super().__init__(clock=clock, ttl_seconds=ttl_seconds)
        self._records: dict[str, Challenge] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, wallet: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(wallet)
            if lock is None:
                lock = self._locks[wallet] = threading.Lock()
            return lock

    @contextmanager
    def _wallet_lock(self, wallet: str) -> Iterator[None]:
        # A lock may be unregistered while a caller waits on it; such a
        # caller retries with the lock that is registered now.
        while True:
            lock = self._lock_for(wallet)
            lock.acquire()
            with self._registry_lock:
                registered = self._locks.get(wallet) is lock
            if registered:
                break
            lock.release()
        try:
            yield
        finally:
            lock.release()

    def _forget(self, wallet: str) -> None:
        """Drop the wallet's record and lock. Caller holds the wallet lock."""
        self._records.pop(wallet, None)
        with self._registry_lock:
            self._locks.pop(wallet, None)

    def issue(self, wallet: str) -> Challenge:
        challenge = self._new_challenge(wallet)
        with self._wallet_lock(wallet):
            self._records[wallet] = challenge
        return challenge

    def get_pending(self, wallet: str) -> Challenge | None:
        record = self._records.get(wallet)
        if record is None or not record.is_live(self.now()):
            return None
        return record

    def try_consume(self, wallet: str, value: str) -> Challenge:
        with self._wallet_lock(wallet):
            now = self.now()
            record = self._records.get(wallet)
            if (
                record is None
                or not record.is_live(now)
                or not same_value(record.value, value)
            ):
                if record is None:
                    self._forget(wallet)
                raise diagnose_refusal(record, wallet, value, now)
            consumed = replace(record, state=ChallengeState.CONSUMED, consumed_at=now)
            self._records[wallet] = consumed
            return consumed

    def purge_expired(self) -> int:
        now = self.now()
        removed = 0
        with self._registry_lock:
            wallets = set(self._records) | set(self._locks)
        for wallet in wallets:
            with self._wallet_lock(wallet):
                record = self._records.get(wallet)
                if record is None or record.is_expired(now):
                    if record is not None:
                        removed += 1
                    self._forget(wallet)
        return removed

    def clear(self) -> None:
        """Forget every challenge."""
        with self._registry_lock:
            wallets = set(self._records) | set(self._locks)
        for wallet in wallets:
            with self._wallet_lock(wallet):
                self._forget(wallet)


_UPSERT_INSERTS = {"sqlite": sqlite.insert, "postgresql": postgresql.insert}


def _to_challenge(row: AuthChallenge) -> Challenge:
    return Challenge(
        wallet=row.wallet,
        value=row.value,
        issued_at=from_db(row.issued_at),
        expires_at=from_db(row.expires_at),
        state=ChallengeState(row.state),
        consumed_at=from_db(row.consumed_at) if row.consumed_at is not None else None,
    )


class SqlChallengeStore(ChallengeStore):
    """Challenge store backed by the ``auth_challenges`` table.

    Runs on SQLite and PostgreSQL only: ``issue`` is an ``ON CONFLICT`` upsert
    and ``try_consume`` relies on ``UPDATE .. RETURNING``.

    Each mutating call commits its own transaction, so a consumed challenge
    stays consumed even if the surrounding request fails afterwards.
    """

    def __init__(
        self,
        db: Session,
        clock: Clock | None = None,
        ttl_seconds: int | None = None,
    ) -> None:
        super().__init__(clock=clock, ttl_seconds=ttl_seconds)
        dialect = db.get_bind().dialect.name
        if dialect not in _UPSERT_INSERTS:
            raise ValueError(f"Unsupported database for the challenge store: {dialect}")
        self.db = db
        self._insert = _UPSERT_INSERTS[dialect]

    def _load(self, wallet: str) -> Challenge | None:
        row = self.db.execute(
            select(AuthChallenge)
            .where(AuthChallenge.wallet == wallet)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        return _to_challenge(row) if row is not None else None

    def issue(self, wallet: str) -> Challenge:
        challenge = self._new_challenge(wallet)
        values = {
            "wallet": wallet,
            "value": challenge.value,
            "state": CHALLENGE_STATE_PENDING,
            "issued_at": to_db(challenge.issued_at),
            "expires_at": to_db(challenge.expires_at),
            "consumed_at": None,
        }
        stmt = self._insert(AuthChallenge).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[AuthChallenge.wallet],
            set_={key: stmt.excluded[key] for key in values if key != "wallet"},
        )
        try:
            self.db.execute(stmt)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return challenge

    def get_pending(self, wallet: str) -> Challenge | None:
        record = self._load(wallet)
        if record is None or not record.is_live(self.now()):
            return None
        return record

    def try_consume(self, wallet: str, value: str) -> Challenge:
        now = self.now()
        stmt = (
            update(AuthChallenge)
            .where(
                AuthChallenge.wallet == wallet,
                AuthChallenge.value == value,
                AuthChallenge.state == CHALLENGE_STATE_PENDING,
                AuthChallenge.expires_at >= to_db(now),
            )
            .values(state=CHALLENGE_STATE_CONSUMED, consumed_at=to_db(now))
            .returning(AuthChallenge.issued_at, AuthChallenge.expires_at)
            .execution_options(synchronize_session=False)
        )
        try:
            won = self.db.execute(stmt).first()
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        if won is not None:
            return Challenge(
                wallet=wallet,
                value=value,
                issued_at=from_db(won.issued_at),
                expires_at=from_db(won.expires_at),
                state=ChallengeState.CONSUMED,
                consumed_at=now,
            )
        raise diagnose_refusal(self._load(wallet), wallet, value, now)

    def purge_expired(self) -> int:
        stmt = delete(AuthChallenge).where(AuthChallenge.expires_at < to_db(self.now()))
        try:
            result = self.db.execute(stmt.execution_options(synchronize_session=False))
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return result.rowcount or 0


__all__ = [
    "Challenge",
    "ChallengeState",
    "ChallengeStore",
    "MemoryChallengeStore",
    "SqlChallengeStore",
    "diagnose_refusal",
    "generate_challenge_value",
    "same_value",
]
