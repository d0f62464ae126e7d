# tests/helpers.py
"""Shared helpers for wallet authentication tests."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from nacl.signing import SigningKey


class FrozenClock:
    """Manually advanced clock usable wherever a store expects ``clock``."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current = self.current + timedelta(seconds=seconds)


def wallet_of(signing_key: SigningKey) -> str:
    """Return the hex wallet address for ``signing_key``."""
    return signing_key.verify_key.encode().hex()


def sign_hex(signing_key: SigningKey, nonce: str) -> str:
    """Sign the UTF-8 bytes of ``nonce`` and return the hex signature."""
    return signing_key.sign(nonce.encode("utf-8")).signature.hex()
