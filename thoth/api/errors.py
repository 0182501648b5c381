"""
Client error taxonomy.

Every error carries a user_message that is safe to show as-is; transport
details stay in the exception chain and the logs.
"""

from typing import Dict, Optional


class ThothError(Exception):
    """Base class for all client errors."""

    default_message = "Something went wrong. Please try again."

    def __init__(self, user_message: Optional[str] = None):
        self.user_message = user_message or self.default_message
        super().__init__(self.user_message)


class ValidationError(ThothError):
    """Input rejected before any network call."""

    default_message = "Please correct the highlighted fields."

    def __init__(self, field_errors: Dict[str, str]):
        self.field_errors = dict(field_errors)
        super().__init__(next(iter(self.field_errors.values()), None))


class AuthenticationError(ThothError):
    """Credentials rejected by POST /token."""

    default_message = "Invalid username or password"


class SessionExpiredError(ThothError):
    """An authenticated call was rejected with 401."""

    default_message = "Your session has expired. Please log in again."


class TransientError(ThothError):
    """Timeout, connectivity loss or a 5xx; safe to retry."""

    default_message = "Failed to send message. Please try again."

    def __init__(self, user_message: Optional[str] = None, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(user_message)


class BackendError(ThothError):
    """Any other non-success response (duplicate username, missing fields, ...)."""

    def __init__(self, status_code: int, user_message: Optional[str] = None):
        self.status_code = status_code
        super().__init__(user_message)


class InvalidTokenError(ThothError):
    """A structured token could not be decoded."""

    default_message = "Your session is invalid. Please log in again."


class NoActiveThreadError(ThothError):
    """A message was sent before any thread was selected."""

    default_message = "No active chat thread."
