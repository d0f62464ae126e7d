# src/plankeeper/models/user.py
"""SQLAlchemy model for wallet-backed user accounts."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from plankeeper.db.session import Base
from plankeeper.db.time import to_db, utcnow


def _now() -> datetime:
    return to_db(utcnow())


class User(Base):
    """Account keyed by the hex-encoded Ed25519 public key of its wallet."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    wallet_address: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_now)
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
