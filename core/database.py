"""
core/database.py -- Shared SQLAlchemy engine and schema metadata.

Every table of the bridge lives in one relational database: access keys join
users, devices join device types, traits join trait types. The repositories in
auth/store.py and devices/store.py each own their tables but register them on
the shared `metadata` below, so a single create_all() builds the whole schema.

One Engine (and therefore one connection pool) is created per process and
injected into every store. Nothing here caches rows.

Usage:
    engine = open_engine("sqlite:///gbridge.db")
    keys = AccessKeyStore(engine)
    devices = DeviceStore(engine)

Layer rule: core/ is the kernel. It may not import from auth/ or devices/ at
module load; init_db() imports the stores lazily so their tables register.
"""

from __future__ import annotations

import logging

from sqlalchemy import MetaData, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from core.errors import InternalError

logger = logging.getLogger("gbridge.db")

metadata = MetaData()


# ---------------------------------------------------------------------------
# SQLite connection tuning
# ---------------------------------------------------------------------------


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode and foreign key enforcement.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool. WAL lets readers proceed while the guarded
    activation UPDATE holds the write lock.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")
    dbapi_conn.execute("PRAGMA foreign_keys=ON")


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


def create_db_engine(db_url: str) -> Engine:
    """Build the process-wide Engine for db_url.

    SQLite needs check_same_thread=False because request handlers run in a
    thread pool and share pooled connections.
    """
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_sqlite_pragmas)
    return engine


def init_db(engine: Engine) -> None:
    """Create any missing tables. Idempotent."""
    # Table definitions register themselves on import.
    import auth.store  # noqa: F401
    import devices.store  # noqa: F401

    metadata.create_all(engine)


def open_engine(db_url: str) -> Engine:
    """Create the engine and schema, converting any store failure to InternalError.

    The credentials inside db_url never reach the caller or the log; only the
    driver's exception is logged for operators.
    """
    try:
        engine = create_db_engine(db_url)
        init_db(engine)
    except SQLAlchemyError as exc:
        logger.exception("Could not open the bridge database")
        raise InternalError() from exc
    return engine
