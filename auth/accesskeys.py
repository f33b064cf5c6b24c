"""
auth/accesskeys.py -- Access password validation, activation, and platform key exchange.

Linking (once per access password):
    validate_access_password()  -- is this (email, password) pair usable?
    activate_access_key()       -- consume it, exactly once
    link_account()              -- both of the above, returning the platform key

Every later platform request:
    resolve_platform_key()      -- which user does this platform key belong to?

Rules:
  Expiry: an access password is rejected when now - generated_at is strictly
      greater than the TTL (Settings.access_password_ttl_seconds, 3600 by
      default). A password exactly TTL seconds old is still accepted.

  Single use: validation is a plain read, so two requests can both pass it.
      Only the guarded UPDATE in AccessKeyStore.mark_key_used() decides who
      consumes the key. The loser gets AlreadyUsed. The guard also re-checks
      expiry, so a password that expires between the two calls is not consumed.

  Errors: rejections raise the AccessKeyRejection subclasses from core/errors.
      Any SQLAlchemyError is logged here and re-raised as InternalError with a
      generic message. Secrets are never logged.

Layer rule: no imports from devices/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import SQLAlchemyError

from auth.models import ResolvedIdentity, ValidatedAccessKey
from auth.store import AccessKeyStore
from core.config import get_settings
from core.errors import AlreadyUsed, Expired, InternalError, KeyNotActivated, KeyNotFound, NotFound

logger = logging.getLogger("gbridge.auth")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _utcnow() -> datetime:
    """Current UTC time as a naive datetime, matching the DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _resolve_clock(now: datetime | None, ttl_seconds: int | None) -> tuple[datetime, int]:
    if now is None:
        now = _utcnow()
    elif now.tzinfo is not None:
        now = now.astimezone(timezone.utc).replace(tzinfo=None)
    if ttl_seconds is None:
        ttl_seconds = get_settings().access_password_ttl_seconds
    return now, ttl_seconds


# ---------------------------------------------------------------------------
# Linking
# ---------------------------------------------------------------------------


def validate_access_password(
    store: AccessKeyStore,
    email: str,
    password: str,
    now: datetime | None = None,
    ttl_seconds: int | None = None,
) -> ValidatedAccessKey:
    """Check an (email, access password) pair. Read-only.

    Rejections are checked in order and the first match wins:
      NotFound    -- no key for this email/password (wrong email, wrong
                     password, or a password that was replaced; callers are
                     not told which)
      Expired     -- older than ttl_seconds
      AlreadyUsed -- consumed before

    Returns the record ID and the platform key that was issued with it.
    """
    now, ttl_seconds = _resolve_clock(now, ttl_seconds)
    try:
        found = store.get_key_by_email_and_password(email, password)
    except SQLAlchemyError as exc:
        logger.exception("Access password lookup failed")
        raise InternalError() from exc

    if found is None:
        logger.info("Access password rejected: no matching key")
        raise NotFound()
    key, _user = found
    if (now - key.generated_at).total_seconds() > ttl_seconds:
        logger.info("Access password rejected: key %d expired", key.id)
        raise Expired()
    if key.password_used:
        logger.info("Access password rejected: key %d already used", key.id)
        raise AlreadyUsed()

    return ValidatedAccessKey(accesskey_id=key.id, google_key=key.google_key)


def activate_access_key(
    store: AccessKeyStore,
    accesskey_id: int,
    now: datetime | None = None,
    ttl_seconds: int | None = None,
) -> None:
    """Mark an access key as used and stamp the activation time.

    Call after validate_access_password() succeeded for the same record. The
    write itself re-checks the used flag and the expiry cutoff, so a
    concurrent activation that got there first makes this one raise
    AlreadyUsed instead of silently succeeding twice. A key that expired
    since validation raises Expired; an unknown ID raises NotFound.
    """
    now, ttl_seconds = _resolve_clock(now, ttl_seconds)
    issued_after = now - timedelta(seconds=ttl_seconds)
    try:
        consumed = store.mark_key_used(accesskey_id, used_at=now, issued_after=issued_after)
    except SQLAlchemyError as exc:
        logger.exception("Activating access key %d failed", accesskey_id)
        raise InternalError() from exc

    if not consumed:
        _raise_activation_rejection(store, accesskey_id)
    logger.info("Access key %d activated", accesskey_id)


def _raise_activation_rejection(store: AccessKeyStore, accesskey_id: int) -> None:
    """Explain why the guarded UPDATE matched no row.

    The state was already decided by the write; this read only picks the
    error to report.
    """
    try:
        key = store.get_key(accesskey_id)
    except SQLAlchemyError as exc:
        logger.exception("Reading access key %d after a lost activation failed", accesskey_id)
        raise InternalError() from exc

    if key is None:
        logger.warning("Activation of unknown access key %d", accesskey_id)
        raise NotFound()
    if key.password_used:
        logger.warning("Access key %d was consumed by a concurrent request", accesskey_id)
        raise AlreadyUsed()
    logger.info("Access key %d expired before activation", accesskey_id)
    raise Expired()


def link_account(
    store: AccessKeyStore,
    email: str,
    password: str,
    now: datetime | None = None,
    ttl_seconds: int | None = None,
) -> str:
    """Validate and consume an access password. Returns the platform key.

    This is the whole linking handshake: the platform presents the password
    once and stores the returned key for later requests.
    """
    now, ttl_seconds = _resolve_clock(now, ttl_seconds)
    validated = validate_access_password(store, email, password, now=now, ttl_seconds=ttl_seconds)
    activate_access_key(store, validated.accesskey_id, now=now, ttl_seconds=ttl_seconds)
    return validated.google_key


# ---------------------------------------------------------------------------
# Platform key exchange
# ---------------------------------------------------------------------------


def resolve_platform_key(store: AccessKeyStore, google_key: str) -> ResolvedIdentity:
    """Return the owner of an activated platform key. Read-only.

    Rejections, in order:
      KeyNotFound     -- no record carries this key
      KeyNotActivated -- the linking handshake was never completed
    """
    try:
        found = store.get_key_by_google_key(google_key)
    except SQLAlchemyError as exc:
        logger.exception("Platform key lookup failed")
        raise InternalError() from exc

    if found is None:
        logger.info("Platform key rejected: unknown key")
        raise KeyNotFound()
    key, user = found
    if not key.password_used:
        logger.info("Platform key rejected: key %d not activated", key.id)
        raise KeyNotActivated()

    return ResolvedIdentity(accesskey_id=key.id, user_id=user.id, email=user.email)
