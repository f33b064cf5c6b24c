"""
auth/store.py -- SQLAlchemy Core persistence layer for users and access keys.

Pattern: Repository + Data Mapper (same as devices/store.py).
AccessKeyStore is the repository; _row_to_user / _row_to_access_key are the
mappers. auth/accesskeys.py never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  Lookups are exact matches. Email and access password are compared as
  stored, with no case folding or trimming.

  mark_key_used() is a guarded UPDATE: it only matches a row that is still
  unused and not older than the caller's cutoff. The affected-row count
  tells the caller whether it won. Two concurrent activations of the same
  record can never both report success.

Table and column names follow the original MySQL schema (user,
google_accesskey, password_used, generated_at, ...) so an existing
deployment can point DB_URL at its database unchanged.

Layer rule: no imports from devices/.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Table, select
from sqlalchemy.engine import Engine

from auth.models import AccessKey, User
from core.database import metadata

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_users = Table(
    "user",
    metadata,
    Column("user_id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
)

_access_keys = Table(
    "google_accesskey",
    metadata,
    Column("accesskey_id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("user.user_id"), nullable=False),
    Column("password", String(255), nullable=False),  # one-time access password
    Column("password_used", Boolean, nullable=False, server_default="0"),
    Column("generated_at", DateTime, nullable=False),  # naive UTC
    Column("used_at", DateTime),  # NULL until activation
    Column("google_key", String(255), nullable=False, unique=True),  # long-lived platform key
)

# Access key row joined with its owner. Inner join: a key without a user is
# unreachable by design (user_id is NOT NULL with a foreign key).
_key_with_user = select(
    _access_keys,
    _users.c.email,
).select_from(_access_keys.join(_users, _access_keys.c.user_id == _users.c.user_id))


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class AccessKeyStore:
    """Repository for User and AccessKey entities.

    Usage:
        store = AccessKeyStore(engine)
        uid = store.create_user(User(email="alice@example.com"))
        found = store.get_key_by_email_and_password("alice@example.com", "123456")
        store.close()

    Methods raise sqlalchemy.exc.SQLAlchemyError on store failure. Converting
    that into InternalError is the caller's job (auth/accesskeys.py).
    """

    def __init__(self, engine: Engine) -> None:
        self.engine: Engine = engine

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> int:
        """Insert a user and return its assigned ID.

        Raises sqlalchemy.exc.IntegrityError if the email already exists.
        """
        with self.engine.connect() as conn:
            result = conn.execute(_users.insert().values(email=user.email))
            conn.commit()
            return result.inserted_primary_key[0]

    def get_user_by_email(self, email: str) -> User | None:
        """Look up a user by exact email. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    # ------------------------------------------------------------------
    # Access keys
    # ------------------------------------------------------------------

    def create_access_key(self, key: AccessKey) -> int:
        """Persist an access key issued elsewhere and return its record ID.

        The password and google_key are taken as given; this store does not
        generate secrets. Raises sqlalchemy.exc.IntegrityError if google_key
        is already in use.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _access_keys.insert().values(
                    user_id=key.user_id,
                    password=key.password,
                    password_used=key.password_used,
                    generated_at=key.generated_at,
                    used_at=key.used_at,
                    google_key=key.google_key,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_key(self, accesskey_id: int) -> AccessKey | None:
        """Fetch a single access key record by ID. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_access_keys.select().where(_access_keys.c.accesskey_id == accesskey_id)).fetchone()
        return _row_to_access_key(row) if row is not None else None

    def get_key_by_email_and_password(self, email: str, password: str) -> tuple[AccessKey, User] | None:
        """Look up the access key matching an (email, access password) pair.

        Returns (key, owner) or None. If several records match (a user
        generated the same password twice), the newest one wins.
        """
        stmt = (
            _key_with_user.where((_users.c.email == email) & (_access_keys.c.password == password))
            .order_by(_access_keys.c.generated_at.desc(), _access_keys.c.accesskey_id.desc())
            .limit(1)
        )
        with self.engine.connect() as conn:
            row = conn.execute(stmt).fetchone()
        return _row_to_key_and_user(row) if row is not None else None

    def get_key_by_google_key(self, google_key: str) -> tuple[AccessKey, User] | None:
        """Look up the access key carrying a platform key. Returns (key, owner) or None."""
        stmt = _key_with_user.where(_access_keys.c.google_key == google_key)
        with self.engine.connect() as conn:
            row = conn.execute(stmt).fetchone()
        return _row_to_key_and_user(row) if row is not None else None

    def mark_key_used(self, accesskey_id: int, used_at: datetime, issued_after: datetime) -> bool:
        """Consume an access key in a single guarded UPDATE.

        Matches only when the record is still unused and was generated at or
        after issued_after (the expiry cutoff). Returns True if this call
        consumed the key, False if the record is missing, already used, or
        expired by the time the write ran.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _access_keys.update()
                .where(
                    (_access_keys.c.accesskey_id == accesskey_id)
                    & (_access_keys.c.password_used.is_(False))
                    & (_access_keys.c.generated_at >= issued_after)
                )
                .values(password_used=True, used_at=used_at)
            )
            conn.commit()
        return result.rowcount == 1

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(id=row.user_id, email=row.email)


def _row_to_access_key(row) -> AccessKey:
    return AccessKey(
        id=row.accesskey_id,
        user_id=row.user_id,
        password=row.password,
        password_used=bool(row.password_used),
        generated_at=row.generated_at,
        used_at=row.used_at,
        google_key=row.google_key,
    )


def _row_to_key_and_user(row) -> tuple[AccessKey, User]:
    return _row_to_access_key(row), User(id=row.user_id, email=row.email)
