"""Tests for the expired challenge purge worker."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import pytest
from sqlalchemy.orm import Session

from plankeeper.services.challenge_store import MemoryChallengeStore, SqlChallengeStore
from plankeeper.services.purge import ChallengePurgeWorker
from tests.helpers import FrozenClock


async def _wait_until(condition: Callable[[], bool], timeout: float = 5.0) -> None:
    async def poll() -> None:
        while not condition():
            await asyncio.sleep(0.02)

    await asyncio.wait_for(poll(), timeout=timeout)


@pytest.mark.asyncio
async def test_purge_once_runs_callable() -> None:
    clock = FrozenClock()
    store = MemoryChallengeStore(clock=clock, ttl_seconds=60)
    store.issue("ab" * 32)
    store.issue("cd" * 32)
    clock.advance(61)

    worker = ChallengePurgeWorker(purge=store.purge_expired, interval_seconds=60)

    assert await worker.purge_once() == 2
    assert await worker.purge_once() == 0


@pytest.mark.asyncio
async def test_worker_loops_until_stopped() -> None:
    calls: list[int] = []

    def purge() -> int:
        calls.append(1)
        return 0

    worker = ChallengePurgeWorker(purge=purge, interval_seconds=0.1)
    await worker.start()
    try:
        await _wait_until(lambda: len(calls) >= 2)
    finally:
        await worker.stop()

    stopped_at = len(calls)
    await asyncio.sleep(0.3)
    assert len(calls) == stopped_at


@pytest.mark.asyncio
async def test_worker_survives_failed_pass() -> None:
    attempts: list[int] = []

    def purge() -> int:
        attempts.append(1)
        if len(attempts) == 1:
            raise RuntimeError("store unavailable")
        return 0

    worker = ChallengePurgeWorker(purge=purge, interval_seconds=0.1)
    await worker.start()
    try:
        await _wait_until(lambda: len(attempts) >= 2)
    finally:
        await worker.stop()


def test_sql_purge_removes_only_expired_rows(db_session: Session) -> None:
    clock = FrozenClock()
    store = SqlChallengeStore(db_session, clock=clock, ttl_seconds=60)
    stale = store.issue("ab" * 32)
    clock.advance(30)
    consumed = store.issue("cd" * 32)
    store.try_consume("cd" * 32, consumed.value)
    clock.advance(31)

    assert stale.is_expired(clock())
    assert store.purge_expired() == 1
    assert store.purge_expired() == 0
