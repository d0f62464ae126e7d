"""Tests for the Redis challenge store."""

from __future__ import annotations

import os
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime
from unittest.mock import MagicMock

import fakeredis
import pytest

from plankeeper.core.errors import (
    ChallengeAlreadyConsumed,
    ChallengeExpired,
    ChallengeMismatch,
    ChallengeNotFound,
)
from plankeeper.services.challenge_store import ChallengeState
from plankeeper.services.redis_store import CONSUME_SCRIPT, KEY_PREFIX, RedisChallengeStore
from tests.helpers import FrozenClock

WALLET = "12" * 32


@pytest.fixture()
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture()
def redis_client() -> MagicMock:
    client = MagicMock()
    client.register_script.return_value = MagicMock(name="consume_script")
    return client


@pytest.fixture()
def store(redis_client: MagicMock, clock: FrozenClock) -> RedisChallengeStore:
    return RedisChallengeStore(redis_client, clock=clock, ttl_seconds=300, retention_seconds=60)


def test_registers_consume_script(redis_client: MagicMock, store: RedisChallengeStore) -> None:
    redis_client.register_script.assert_called_once_with(CONSUME_SCRIPT)


def test_issue_replaces_hash_atomically(
    redis_client: MagicMock, store: RedisChallengeStore, clock: FrozenClock
) -> None:
    pipe = redis_client.pipeline.return_value

    challenge = store.issue(WALLET)

    key = f"{KEY_PREFIX}{WALLET}"
    redis_client.pipeline.assert_called_once_with(transaction=True)
    pipe.delete.assert_called_once_with(key)
    mapping = pipe.hset.call_args.kwargs["mapping"]
    assert mapping["value"] == challenge.value
    assert mapping["state"] == "pending"
    assert float(mapping["expires_at"]) == challenge.expires_at.timestamp()
    pipe.expireat.assert_called_once_with(key, int(challenge.expires_at.timestamp()) + 61)
    pipe.execute.assert_called_once_with()


def test_get_pending_parses_hash(
    redis_client: MagicMock, store: RedisChallengeStore, clock: FrozenClock
) -> None:
    issued = clock()
    redis_client.hgetall.return_value = {
        "value": "aa" * 32,
        "issued_at": repr(issued.timestamp()),
        "expires_at": repr(issued.timestamp() + 300),
        "state": "pending",
    }

    challenge = store.get_pending(WALLET)

    assert challenge is not None
    assert challenge.value == "aa" * 32
    assert challenge.issued_at == issued
    assert challenge.state is ChallengeState.PENDING


def test_get_pending_ignores_consumed_or_missing(
    redis_client: MagicMock, store: RedisChallengeStore, clock: FrozenClock
) -> None:
    redis_client.hgetall.return_value = {}
    assert store.get_pending(WALLET) is None

    now = clock().timestamp()
    redis_client.hgetall.return_value = {
        "value": "aa" * 32,
        "issued_at": repr(now),
        "expires_at": repr(now + 300),
        "state": "consumed",
        "consumed_at": repr(now),
    }
    assert store.get_pending(WALLET) is None


def test_try_consume_success(
    redis_client: MagicMock, store: RedisChallengeStore, clock: FrozenClock
) -> None:
    script = redis_client.register_script.return_value
    now = clock().timestamp()
    script.return_value = ["ok", repr(now - 5), repr(now + 295)]

    receipt = store.try_consume(WALLET, "aa" * 32)

    script.assert_called_once_with(keys=[f"{KEY_PREFIX}{WALLET}"], args=["aa" * 32, repr(now)])
    assert receipt.state is ChallengeState.CONSUMED
    assert receipt.consumed_at == clock()
    assert receipt.expires_at.timestamp() == pytest.approx(now + 295)


@pytest.mark.parametrize(
    ("status", "error"),
    [
        ("not_found", ChallengeNotFound),
        ("expired", ChallengeExpired),
        ("mismatch", ChallengeMismatch),
        ("already_consumed", ChallengeAlreadyConsumed),
        (b"already_consumed", ChallengeAlreadyConsumed),
    ],
)
def test_try_consume_refusals(
    redis_client: MagicMock, store: RedisChallengeStore, status: str | bytes, error: type
) -> None:
    redis_client.register_script.return_value.return_value = [status]

    with pytest.raises(error):
        store.try_consume(WALLET, "aa" * 32)


def test_purge_is_left_to_key_expiry(store: RedisChallengeStore) -> None:
    assert store.purge_expired() == 0


@pytest.mark.skipif(not os.getenv("TEST_REDIS_URL"), reason="TEST_REDIS_URL not set")
def test_live_redis_single_winner() -> None:
    import redis

    client = redis.from_url(os.environ["TEST_REDIS_URL"], decode_responses=True)
    live_store = RedisChallengeStore(client, ttl_seconds=30, retention_seconds=5)
    wallet = os.urandom(32).hex()
    try:
        challenge = live_store.issue(wallet)
        assert live_store.get_pending(wallet) == challenge

        def attempt() -> bool:
            try:
                live_store.try_consume(wallet, challenge.value)
            except ChallengeAlreadyConsumed:
                return False
            return True

        with ThreadPoolExecutor(max_workers=6) as pool:
            outcomes = list(pool.map(lambda _: attempt(), range(6)))

        assert outcomes.count(True) == 1
        assert live_store.get_pending(wallet) is None

        newer = live_store.issue(wallet)
        with pytest.raises(ChallengeMismatch):
            live_store.try_consume(wallet, challenge.value)
        assert live_store.try_consume(wallet, newer.value).value == newer.value
    finally:
        client.delete(RedisChallengeStore.key(wallet))


@pytest.mark.parametrize("decode_responses", [True, False])
def test_consume_script_lifecycle(decode_responses: bool) -> None:
    # Key expiry runs on the server's wall clock, so start the store clock at now.
    clock = FrozenClock(start=datetime.now(UTC).replace(microsecond=0))
    client = fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=decode_responses)
    fake_store = RedisChallengeStore(client, clock=clock, ttl_seconds=300, retention_seconds=60)

    with pytest.raises(ChallengeNotFound):
        fake_store.try_consume(WALLET, "aa" * 32)

    challenge = fake_store.issue(WALLET)
    assert fake_store.get_pending(WALLET) == challenge

    with pytest.raises(ChallengeMismatch):
        fake_store.try_consume(WALLET, "aa" * 32)
    assert fake_store.get_pending(WALLET) == challenge

    clock.advance(300)
    receipt = fake_store.try_consume(WALLET, challenge.value)
    assert receipt.state is ChallengeState.CONSUMED
    assert receipt.issued_at == challenge.issued_at
    assert receipt.expires_at == challenge.expires_at
    assert fake_store.get_pending(WALLET) is None

    stored_state = client.hget(RedisChallengeStore.key(WALLET), "state")
    assert stored_state in ("consumed", b"consumed")

    with pytest.raises(ChallengeAlreadyConsumed):
        fake_store.try_consume(WALLET, challenge.value)
    with pytest.raises(ChallengeMismatch):
        fake_store.try_consume(WALLET, "aa" * 32)

    clock.advance(1)
    with pytest.raises(ChallengeExpired):
        fake_store.try_consume(WALLET, challenge.value)


def test_consume_script_reissue_supersedes() -> None:
    clock = FrozenClock(start=datetime.now(UTC).replace(microsecond=0))
    client = fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)
    fake_store = RedisChallengeStore(client, clock=clock, ttl_seconds=300, retention_seconds=60)

    first = fake_store.issue(WALLET)
    fake_store.try_consume(WALLET, first.value)
    second = fake_store.issue(WALLET)

    with pytest.raises(ChallengeMismatch):
        fake_store.try_consume(WALLET, first.value)
    assert fake_store.try_consume(WALLET, second.value).value == second.value
    assert client.ttl(RedisChallengeStore.key(WALLET)) > 300
