"""Logging setup for the service process."""

from __future__ import annotations

import logging

from plankeeper.core.settings import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Apply the configured log level to the root logger.

    Safe to call more than once; handlers installed by the ASGI server are kept.
    """
    resolved = getattr(logging, (level or settings.log_level).upper(), logging.INFO)
    logging.basicConfig(level=resolved, format=LOG_FORMAT)
    logging.getLogger("plankeeper").setLevel(resolved)


def short_wallet(wallet: str) -> str:
    """Return a truncated wallet for log lines."""
    if len(wallet) <= 12:
        return wallet
    return f"{wallet[:6]}..{wallet[-4:]}"
