"""
core/errors.py -- Closed error taxonomy for the bridge core.

Every component returns a typed result or raises one of these. No SQLAlchemy
exception crosses a component boundary: stores raise SQLAlchemyError, the
component catches it, logs it, and raises InternalError instead.

Two families:
  AccessKeyRejection -- expected, user-actionable outcomes. Each kind carries
      its own message so the surrounding layer can tell the user to create a
      new access password, or that the key was already used.
  InternalError -- store/infrastructure failure. Its message is generic and
      never contains driver text; operators read the log instead.

`code` is a stable machine-readable tag for the HTTP layer to map.
"""


class BridgeError(Exception):
    """Base class for every error the bridge core raises."""

    code = "bridge_error"
    message = "Bridge error."

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class AccessKeyRejection(BridgeError):
    """An expected refusal of an access password or platform key."""


# Linking (one-time access password)


class NotFound(AccessKeyRejection):
    code = "not_found"
    message = "Invalid Email or Access Password! Create a new one in your account dashboard."


class Expired(AccessKeyRejection):
    code = "expired"
    message = "This access password has expired! Create a new one in your account dashboard."


class AlreadyUsed(AccessKeyRejection):
    code = "already_used"
    message = "This access password has been used before! Create a new one in your account dashboard."


# Platform key exchange


class KeyNotFound(AccessKeyRejection):
    code = "key_not_found"
    message = "Unknown/invalid key!"


class KeyNotActivated(AccessKeyRejection):
    code = "key_not_activated"
    message = "The key hasn't been activated before!"


class InternalError(BridgeError):
    """Store failure. The message is fixed; never pass driver text in."""

    code = "internal_error"
    message = "Internal Database Error!"

    def __init__(self) -> None:
        super().__init__()
