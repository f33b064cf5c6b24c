"""
auth/models.py -- Domain dataclasses for identities and access keys.

Pattern: Data class (pure data container, zero logic). Stores do the SQL,
auth/accesskeys.py does the rules.

Layer rule: no imports from devices/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class User:
    """The account that owns devices and access keys.

    email is unique and is the lookup key the platform presents during
    linking, together with the access password.
    """

    email: str
    id: int | None = None


@dataclass
class AccessKey:
    """One issued access password and the platform key minted alongside it.

    Lifecycle:
    - Created at issuance (outside this repository) with password_used=False.
    - Consumed exactly once by activate_access_key(): password_used becomes
      True and used_at is stamped.
    - Never deleted here, never consumed a second time.

    google_key is the long-lived credential the platform sends on every
    request after linking. It is set at issuance and never changes.

    Timestamps are naive UTC datetimes.
    """

    user_id: int
    password: str  # the one-time access password
    google_key: str  # long-lived platform key, unique
    generated_at: datetime
    password_used: bool = False
    used_at: datetime | None = None
    id: int | None = None


@dataclass
class ValidatedAccessKey:
    """Result of a successful access password check."""

    accesskey_id: int
    google_key: str


@dataclass
class ResolvedIdentity:
    """Owner of an activated platform key."""

    accesskey_id: int
    user_id: int
    email: str
