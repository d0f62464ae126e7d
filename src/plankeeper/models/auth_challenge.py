# src/plankeeper/models/auth_challenge.py
"""Persistent storage for wallet login challenges."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from plankeeper.db.session import Base

CHALLENGE_STATE_PENDING = "pending"
CHALLENGE_STATE_CONSUMED = "consumed"


class AuthChallenge(Base):
    """Current challenge for a wallet.

    One row per wallet; re-issuing overwrites the row. Timestamps are naive UTC.
    """

    __tablename__ = "auth_challenges"

    wallet: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    state: Mapped[str] = mapped_column(
        String(16), nullable=False, default=CHALLENGE_STATE_PENDING
    )
    issued_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    consumed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    __table_args__ = (Index("ix_auth_challenges_expires_at", "expires_at"),)
