"""Helpers for wallet-backed user accounts."""
from __future__ import annotations

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from plankeeper.db.time import to_db, utcnow
from plankeeper.models.user import User

__all__ = [
    "get_user_by_wallet",
    "record_login",
]


def get_user_by_wallet(db: Session, wallet: str) -> User | None:
    """Return the account owned by ``wallet`` if one exists."""
    return db.query(User).filter(User.wallet_address == wallet).first()


def record_login(db: Session, wallet: str) -> User:
    """Create the wallet's account on first login and stamp ``last_login_at``."""
    now = to_db(utcnow())
    user = get_user_by_wallet(db, wallet)
    if user is None:
        user = User(wallet_address=wallet, created_at=now, last_login_at=now)
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            # Another login for the same wallet created the row first.
            db.rollback()
            user = get_user_by_wallet(db, wallet)
            if user is None:
                raise
        else:
            db.refresh(user)
            return user

    user.last_login_at = now
    db.commit()
    db.refresh(user)
    return user
