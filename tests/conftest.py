"""
Pytest configuration and fixtures for balance_ledger tests.

Database tests run against TEST_DATABASE_URL when it is set (PostgreSQL is
required for the concurrency tests) and against a temporary SQLite file
otherwise.
"""

import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import delete, select

from balance_ledger.accounts import AccountStore
from balance_ledger.db import Base, build_engine, build_session_factory
from balance_ledger.main import app, get_db, get_ledger_service
from balance_ledger.models import Account, TransactionRecord
from balance_ledger.service import LedgerService
from balance_ledger.transactions import IdempotencyStore


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture(scope="session")
def engine(tmp_path_factory):
    """Engine with a freshly created schema for the whole test session."""
    url = os.getenv("TEST_DATABASE_URL", "").strip()
    if not url:
        url = f"sqlite+pysqlite:///{tmp_path_factory.mktemp('ledger') / 'ledger.db'}"
    engine = build_engine(url, pool_size=20, max_overflow=10)
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    """Session factory bound to empty tables."""
    with engine.begin() as conn:
        conn.execute(delete(TransactionRecord))
        conn.execute(delete(Account))
    return build_session_factory(engine)


@pytest.fixture()
def db(session_factory):
    """A session for direct store tests; rolled back afterwards."""
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


# ============================================================================
# Ledger Fixtures
# ============================================================================


@pytest.fixture()
def account_store():
    return AccountStore()


@pytest.fixture()
def idempotency_store():
    return IdempotencyStore()


@pytest.fixture()
def ledger_service(session_factory):
    return LedgerService(session_factory)


@pytest.fixture()
def account_factory(session_factory):
    """Factory for creating accounts with a given id and balance (minor units)."""

    def create_account(account_id, balance=0):
        with session_factory() as session:
            with session.begin():
                session.add(Account(id=account_id, balance=balance))
        return account_id

    return create_account


@pytest.fixture()
def balance_of(session_factory):
    """Read the committed balance of an account."""

    def read_balance(account_id):
        with session_factory() as session:
            return session.scalar(select(Account.balance).where(Account.id == account_id))

    return read_balance


@pytest.fixture()
def transaction_ids(session_factory):
    """List committed transaction ids, optionally for one account."""

    def list_ids(account_id=None):
        query = select(TransactionRecord.transaction_id)
        if account_id is not None:
            query = query.where(TransactionRecord.account_id == account_id)
        with session_factory() as session:
            return sorted(session.scalars(query).all())

    return list_ids


# ============================================================================
# HTTP Fixtures
# ============================================================================


@pytest.fixture()
def client(session_factory, ledger_service):
    """TestClient with the ledger and readiness check bound to the test database."""

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_ledger_service] = lambda: ledger_service
    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
