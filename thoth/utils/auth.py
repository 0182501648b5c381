"""
Authentication utilities - client-side token inspection.

The client never holds the signing key, so claims are read without
signature verification; the backend remains the authority on validity.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional
from jose import JWTError, jwt

from ..api.errors import InvalidTokenError
from ..models import TokenData


def is_structured_token(token: str) -> bool:
    """Whether the token claims to be a JWT (and must therefore decode)."""
    return "." in token


def decode_access_token(token: str) -> TokenData:
    """
    Read the claims of a bearer token.

    Opaque tokens (no '.') carry no client-visible claims and yield an
    empty TokenData that never expires locally.

    Args:
        token: Bearer token string

    Returns:
        TokenData: Decoded claims

    Raises:
        InvalidTokenError: If a structured token cannot be decoded
    """
    if not token or not token.strip():
        raise InvalidTokenError()

    if not is_structured_token(token):
        return TokenData()

    try:
        claims: Dict[str, Any] = jwt.get_unverified_claims(token)
    except JWTError as e:
        raise InvalidTokenError() from e

    return TokenData(
        expires_at=_parse_exp(claims.get("exp")),
        subject=_optional_str(claims.get("sub")),
        username=_optional_str(claims.get("username")),
        role=claims.get("role") if isinstance(claims.get("role"), int) else None,
    )


def _parse_exp(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    # bool is an int subclass but never a timestamp
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidTokenError()
    try:
        return datetime.fromtimestamp(value, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as e:
        raise InvalidTokenError() from e


def _optional_str(value: Any) -> Optional[str]:
    return str(value) if value is not None else None


def bearer_headers(token: str) -> Dict[str, str]:
    """Authorization header for an authenticated backend call."""
    return {"Authorization": f"Bearer {token}"}
