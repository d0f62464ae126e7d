# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Generator, Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from nacl.signing import SigningKey
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "plankeeper-test-secret")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("CHALLENGE_PURGE_ENABLED", "false")

from plankeeper.db.session import Base, build_engine, create_tables, drop_tables
from plankeeper.db.session import get_db as app_get_session
from plankeeper.main import app as fastapi_app
from plankeeper.services.store_factory import reset_stores
from tests.helpers import wallet_of

TEST_DB_URL = "sqlite://"


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = build_engine(TEST_DB_URL, poolclass=StaticPool, echo=False)
    create_tables(bind=engine)
    try:
        yield engine
    finally:
        drop_tables(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()

        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture(autouse=True)
def fresh_process_stores() -> Iterator[None]:
    reset_stores()
    yield
    reset_stores()


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def signing_key() -> SigningKey:
    """Keypair for the primary test wallet."""
    return SigningKey.generate()


@pytest.fixture()
def other_signing_key() -> SigningKey:
    """Keypair for a second, unrelated wallet."""
    return SigningKey.generate()


@pytest.fixture()
def wallet(signing_key: SigningKey) -> str:
    return wallet_of(signing_key)


@pytest.fixture()
def other_wallet(other_signing_key: SigningKey) -> str:
    return wallet_of(other_signing_key)
