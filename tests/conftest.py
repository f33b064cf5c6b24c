"""
tests/conftest.py -- Shared test fixtures for the gBridge core.

This module provides:
  - engine: an isolated in-memory SQLite engine with the full schema
  - key_store / device_store: repositories bound to that engine
  - alice / issued_key: one user holding one freshly issued access password
  - store_error(): a SQLAlchemy error whose text must never reach callers

Plain sqlite:///:memory: is enough here: SQLAlchemy serves it from a
SingletonThreadPool, so every connect() in the test thread sees the same
database. Tests that need real cross-thread access build a file-backed
database under tmp_path instead.

Every fixture is function-scoped so tests never see each other's rows.
"""

from __future__ import annotations

from collections.abc import Generator
from datetime import datetime

import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError

from auth.models import AccessKey, User
from auth.store import AccessKeyStore
from core.database import create_db_engine, init_db
from devices.store import DeviceStore

# Issuance time shared by the fixtures. Naive UTC, like the DateTime columns.
ISSUED_AT = datetime(2026, 10, 19, 12, 0, 0)

ALICE_EMAIL = "alice@example.com"
ALICE_PASSWORD = "482913"
ALICE_GOOGLE_KEY = "gk-3f9c0e7a1b2d4e5f"

# Leaks if an InternalError ever forwards driver text.
DRIVER_SECRET_TEXT = "access denied for user 'gbridge'@'10.0.0.5'"


def store_error() -> OperationalError:
    return OperationalError("SELECT 1", {}, Exception(DRIVER_SECRET_TEXT))


# ---------------------------------------------------------------------------
# Store fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    eng = create_db_engine("sqlite:///:memory:")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def key_store(engine: Engine) -> AccessKeyStore:
    return AccessKeyStore(engine)


@pytest.fixture
def device_store(engine: Engine) -> DeviceStore:
    return DeviceStore(engine)


@pytest.fixture
def alice(key_store: AccessKeyStore) -> int:
    """User ID of alice@example.com."""
    return key_store.create_user(User(email=ALICE_EMAIL))


@pytest.fixture
def issued_key(key_store: AccessKeyStore, alice: int) -> AccessKey:
    """An unused access password issued to alice at ISSUED_AT."""
    key = AccessKey(
        user_id=alice,
        password=ALICE_PASSWORD,
        google_key=ALICE_GOOGLE_KEY,
        generated_at=ISSUED_AT,
    )
    key.id = key_store.create_access_key(key)
    return key
