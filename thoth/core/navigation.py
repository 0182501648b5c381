"""
Route gating - pure decision logic.

Nothing here touches storage or the network; SessionGuard applies the side
effects that a decision implies.
"""

from datetime import datetime
from typing import NamedTuple, Optional, Tuple
from urllib.parse import parse_qs, urlsplit

from ..api.errors import InvalidTokenError
from ..config import Settings
from ..models import (
    Allow,
    NavigationDecision,
    RedirectReason,
    RedirectToHome,
    RedirectToLogin,
    TokenData,
    TokenVerdict,
)
from ..utils.auth import decode_access_token


class Evaluation(NamedTuple):
    decision: NavigationDecision
    verdict: TokenVerdict
    claims: Optional[TokenData]


def is_root_relative(path: Optional[str]) -> bool:
    """True for '/chat' style paths; False for anything that could leave the origin."""
    if not path or not path.startswith("/"):
        return False
    if path.startswith("//") or "\\" in path:
        return False
    parts = urlsplit(path)
    return not parts.scheme and not parts.netloc


def split_path(path: str) -> Tuple[str, Optional[str]]:
    """Split '/login?redirect=/chat' into ('/login', '/chat')."""
    parts = urlsplit(path)
    carried = parse_qs(parts.query).get("redirect")
    return parts.path or "/", carried[0] if carried else None


def is_static_asset(path: str, config: Settings) -> bool:
    if any(path == prefix or path.startswith(prefix + "/") for prefix in config.static_prefixes):
        return True
    return "." in path.rsplit("/", 1)[-1]


def is_public(path: str, config: Settings) -> bool:
    return path in config.public_paths or is_static_asset(path, config)


def resolve_destination(return_path: Optional[str], config: Settings) -> str:
    """Where to land after authenticating."""
    if is_root_relative(return_path):
        return return_path
    return config.default_landing_path


def classify_token(token: Optional[str], now: datetime) -> Tuple[TokenVerdict, Optional[TokenData]]:
    if not token:
        return TokenVerdict.MISSING, None
    try:
        claims = decode_access_token(token)
    except InvalidTokenError:
        return TokenVerdict.INVALID, None
    if claims.is_expired(now):
        return TokenVerdict.EXPIRED, claims
    return TokenVerdict.VALID, claims


def evaluate_navigation(
    path: str,
    token: Optional[str],
    now: datetime,
    config: Settings,
    return_path: Optional[str] = None,
) -> Evaluation:
    """
    Decide whether path is reachable with token at time now.

    Args:
        path: Requested path, optionally with a query string
        token: Stored bearer token, if any
        now: Current time (timezone-aware)
        config: Settings carrying the route table
        return_path: Path carried through the login flow, overrides ?redirect=

    Returns:
        Evaluation: The decision plus the token verdict that produced it
    """
    pathname, carried = split_path(path)
    if return_path is None:
        return_path = carried

    verdict, claims = classify_token(token, now)

    if is_public(pathname, config):
        if pathname in config.auth_form_paths and verdict == TokenVerdict.VALID:
            return Evaluation(
                RedirectToHome(target=resolve_destination(return_path, config)), verdict, claims
            )
        return Evaluation(Allow(), verdict, claims)

    if verdict == TokenVerdict.VALID:
        return Evaluation(Allow(), verdict, claims)

    # Keep the query string of the original request
    login_return = path if is_root_relative(path) else pathname

    reason = None
    if verdict == TokenVerdict.EXPIRED:
        reason = RedirectReason.EXPIRED
    elif verdict == TokenVerdict.INVALID:
        reason = RedirectReason.INVALID_TOKEN

    return Evaluation(RedirectToLogin(return_path=login_return, reason=reason), verdict, claims)
