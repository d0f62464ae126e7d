"""Redis-backed challenge store for multi-process deployments."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

import redis

from plankeeper.core.errors import (
    ChallengeAlreadyConsumed,
    ChallengeError,
    ChallengeExpired,
    ChallengeMismatch,
    ChallengeNotFound,
)
from plankeeper.core.settings import settings
from plankeeper.services.challenge_store import (
    Challenge,
    ChallengeState,
    ChallengeStore,
    Clock,
)

KEY_PREFIX = "auth:challenge:"

# KEYS[1] = challenge hash, ARGV[1] = candidate value, ARGV[2] = now (epoch seconds).
# Runs atomically on the server, so only one caller can flip a pending record.
CONSUME_SCRIPT = """
local record = redis.call('HMGET', KEYS[1], 'value', 'expires_at', 'state', 'issued_at')
if not record[1] then
  return {'not_found'}
end
if tonumber(ARGV[2]) > tonumber(record[2]) then
  return {'expired'}
end
if record[1] ~= ARGV[1] then
  return {'mismatch'}
end
if record[3] ~= 'pending' then
  return {'already_consumed'}
end
redis.call('HSET', KEYS[1], 'state', 'consumed', 'consumed_at', ARGV[2])
return {'ok', record[4], record[2]}
"""

_REFUSALS: dict[str, type[ChallengeError]] = {
    ChallengeNotFound.reason: ChallengeNotFound,
    ChallengeExpired.reason: ChallengeExpired,
    ChallengeMismatch.reason: ChallengeMismatch,
    ChallengeAlreadyConsumed.reason: ChallengeAlreadyConsumed,
}


def _to_epoch(value: datetime) -> str:
    return repr(value.timestamp())


def _from_epoch(value: Any) -> datetime:
    return datetime.fromtimestamp(float(value), tz=UTC)


def _as_str(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


class RedisChallengeStore(ChallengeStore):
    """Keeps one hash per wallet; consumption runs as a Lua script.

    Keys expire on their own ``retention_seconds`` after the challenge does,
    so ``purge_expired`` has nothing to do.
    """

    def __init__(
        self,
        client: Any,
        clock: Clock | None = None,
        ttl_seconds: int | None = None,
        retention_seconds: int | None = None,
    ) -> None:
        super().__init__(clock=clock, ttl_seconds=ttl_seconds)
        self._redis = client
        self.retention_seconds = (
            retention_seconds
            if retention_seconds is not None
            else settings.challenge_retention_seconds
        )
        self._consume = client.register_script(CONSUME_SCRIPT)

    @staticmethod
    def key(wallet: str) -> str:
        return f"{KEY_PREFIX}{wallet}"

    def issue(self, wallet: str) -> Challenge:
        challenge = self._new_challenge(wallet)
        key = self.key(wallet)
        pipe = self._redis.pipeline(transaction=True)
        pipe.delete(key)
        pipe.hset(
            key,
            mapping={
                "value": challenge.value,
                "issued_at": _to_epoch(challenge.issued_at),
                "expires_at": _to_epoch(challenge.expires_at),
                "state": ChallengeState.PENDING.value,
            },
        )
        pipe.expireat(key, int(challenge.expires_at.timestamp()) + self.retention_seconds + 1)
        pipe.execute()
        return challenge

    def get_pending(self, wallet: str) -> Challenge | None:
        raw = self._redis.hgetall(self.key(wallet))
        if not raw:
            return None
        data = {_as_str(k): _as_str(v) for k, v in raw.items()}
        record = Challenge(
            wallet=wallet,
            value=data["value"],
            issued_at=_from_epoch(data["issued_at"]),
            expires_at=_from_epoch(data["expires_at"]),
            state=ChallengeState(data.get("state", ChallengeState.PENDING.value)),
            consumed_at=_from_epoch(data["consumed_at"]) if "consumed_at" in data else None,
        )
        if not record.is_live(self.now()):
            return None
        return record

    def try_consume(self, wallet: str, value: str) -> Challenge:
        now = self.now()
        result = self._consume(keys=[self.key(wallet)], args=[value, _to_epoch(now)])
        status = _as_str(result[0])
        if status == "ok":
            return Challenge(
                wallet=wallet,
                value=value,
                issued_at=_from_epoch(_as_str(result[1])),
                expires_at=_from_epoch(_as_str(result[2])),
                state=ChallengeState.CONSUMED,
                consumed_at=now,
            )
        error_cls = _REFUSALS.get(status, ChallengeAlreadyConsumed)
        raise error_cls(wallet)

    def purge_expired(self) -> int:
        return 0


def create_redis_challenge_store() -> RedisChallengeStore:
    """Build a store from the configured ``REDIS_URL``."""
    client = redis.from_url(settings.redis_url, decode_responses=True)  # type: ignore[no-untyped-call]
    return RedisChallengeStore(client)


__all__ = ["CONSUME_SCRIPT", "KEY_PREFIX", "RedisChallengeStore", "create_redis_challenge_store"]
