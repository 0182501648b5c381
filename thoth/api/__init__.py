"""API module - backend HTTP client and error taxonomy."""

from .errors import (
    ThothError,
    ValidationError,
    AuthenticationError,
    SessionExpiredError,
    TransientError,
    BackendError,
    InvalidTokenError,
    NoActiveThreadError,
)
from .client import BackendClient

__all__ = [
    'ThothError', 'ValidationError', 'AuthenticationError', 'SessionExpiredError',
    'TransientError', 'BackendError', 'InvalidTokenError', 'NoActiveThreadError',
    'BackendClient',
]
