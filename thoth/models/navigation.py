"""
Navigation Models - Outcomes of evaluating a route against the session.
"""

from enum import Enum
from typing import Optional, Union
from pydantic import BaseModel


class AuthState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
    EXPIRED = "expired"


class RedirectReason(str, Enum):
    EXPIRED = "expired"
    INVALID_TOKEN = "invalid_token"


class TokenVerdict(str, Enum):
    MISSING = "missing"
    VALID = "valid"
    EXPIRED = "expired"
    INVALID = "invalid"


class Allow(BaseModel):
    kind: str = "allow"


class RedirectToLogin(BaseModel):
    kind: str = "redirect_to_login"
    return_path: Optional[str] = None
    reason: Optional[RedirectReason] = None


class RedirectToHome(BaseModel):
    kind: str = "redirect_to_home"
    target: str = "/dashboard"


NavigationDecision = Union[Allow, RedirectToLogin, RedirectToHome]
