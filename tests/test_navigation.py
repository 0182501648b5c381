"""
Unit tests for route gating decisions.
"""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from thoth.core.navigation import (
    evaluate_navigation,
    is_root_relative,
    resolve_destination,
    split_path,
)
from thoth.models import Allow, RedirectReason, RedirectToHome, RedirectToLogin, TokenVerdict


def now():
    return datetime.now(timezone.utc)


class TestRootRelative:
    """Tests for return-path safety."""

    @pytest.mark.parametrize("path", ["/", "/chat", "/chat?thread=1", "/a/b/c"])
    def test_accepts_root_relative(self, path):
        assert is_root_relative(path) is True

    @pytest.mark.parametrize("path", [
        None, "", "chat", "https://evil.example/chat", "//evil.example", "/\\evil.example",
        "javascript:alert(1)",
    ])
    def test_rejects_everything_else(self, path):
        assert is_root_relative(path) is False

    def test_resolve_destination_falls_back_to_landing(self, config):
        assert resolve_destination("/chat", config) == "/chat"
        assert resolve_destination("https://evil.example", config) == "/dashboard"
        assert resolve_destination(None, config) == "/dashboard"

    def test_split_path_reads_redirect_parameter(self):
        assert split_path("/login?redirect=/chat") == ("/login", "/chat")
        assert split_path("/chat") == ("/chat", None)


class TestProtectedPaths:
    """Tests for paths that need a session."""

    @pytest.mark.parametrize("path", ["/", "/chat", "/dashboard", "/settings/profile"])
    def test_no_token_redirects_with_return_path(self, config, path):
        result = evaluate_navigation(path, None, now(), config)
        assert result.decision == RedirectToLogin(return_path=path)
        assert result.verdict == TokenVerdict.MISSING

    def test_query_string_is_kept_in_return_path(self, config):
        result = evaluate_navigation("/chat?thread=abc", None, now(), config)
        assert result.decision.return_path == "/chat?thread=abc"

    def test_valid_token_allows(self, config, jwt_factory):
        result = evaluate_navigation("/chat", jwt_factory(), now(), config)
        assert isinstance(result.decision, Allow)
        assert result.verdict == TokenVerdict.VALID
        assert result.claims.username == "alice"

    def test_opaque_token_allows(self, config):
        result = evaluate_navigation("/chat", "tok123", now(), config)
        assert isinstance(result.decision, Allow)

    def test_jwt_without_expiry_never_expires(self, config, jwt_factory):
        token = jwt_factory(expires_in=None)
        result = evaluate_navigation("/chat", token, now() + timedelta(days=3650), config)
        assert isinstance(result.decision, Allow)

    def test_expired_token_redirects_with_reason(self, config, jwt_factory):
        token = jwt_factory(expires_in=timedelta(minutes=-1))
        result = evaluate_navigation("/chat", token, now(), config)
        assert result.decision == RedirectToLogin(return_path="/chat", reason=RedirectReason.EXPIRED)
        assert result.verdict == TokenVerdict.EXPIRED

    def test_expiry_is_inclusive(self, config):
        exp = 1_900_000_000
        token = jwt.encode({"sub": "1", "exp": exp}, "k", algorithm="HS256")
        at_expiry = datetime.fromtimestamp(exp, tz=timezone.utc)
        result = evaluate_navigation("/chat", token, at_expiry, config)
        assert result.verdict == TokenVerdict.EXPIRED

    @pytest.mark.parametrize("token", ["abc.def.ghi", "a.b", "not.a.jwt.at.all"])
    def test_malformed_token_redirects_with_invalid_token(self, config, token):
        result = evaluate_navigation("/chat", token, now(), config)
        assert result.decision == RedirectToLogin(
            return_path="/chat", reason=RedirectReason.INVALID_TOKEN
        )
        assert result.verdict == TokenVerdict.INVALID

    def test_non_numeric_expiry_is_malformed(self, config):
        token = jwt.encode({"sub": "1", "exp": "soon"}, "k", algorithm="HS256")
        result = evaluate_navigation("/chat", token, now(), config)
        assert result.decision.reason == RedirectReason.INVALID_TOKEN


class TestPublicPaths:
    """Tests for paths reachable without a session."""

    @pytest.mark.parametrize("path", [
        "/login", "/register", "/forgot-password", "/_next/static/app.js",
        "/favicon.ico", "/manifest.json", "/icons/icon-192.png", "/api/chat",
    ])
    def test_allowed_without_token(self, config, path):
        result = evaluate_navigation(path, None, now(), config)
        assert isinstance(result.decision, Allow)

    @pytest.mark.parametrize("path", ["/login", "/register"])
    def test_auth_forms_bounce_authenticated_users_home(self, config, jwt_factory, path):
        result = evaluate_navigation(path, jwt_factory(), now(), config)
        assert result.decision == RedirectToHome(target="/dashboard")

    def test_auth_form_honors_carried_return_path(self, config, jwt_factory):
        result = evaluate_navigation("/login?redirect=/chat", jwt_factory(), now(), config)
        assert result.decision == RedirectToHome(target="/chat")

    def test_explicit_return_path_overrides_query(self, config, jwt_factory):
        result = evaluate_navigation(
            "/login?redirect=/chat", jwt_factory(), now(), config, return_path="/settings"
        )
        assert result.decision.target == "/settings"

    def test_external_return_path_is_ignored(self, config, jwt_factory):
        result = evaluate_navigation(
            "/login", jwt_factory(), now(), config, return_path="https://evil.example/"
        )
        assert result.decision == RedirectToHome(target="/dashboard")

    def test_forgot_password_stays_reachable_when_signed_in(self, config, jwt_factory):
        result = evaluate_navigation("/forgot-password", jwt_factory(), now(), config)
        assert isinstance(result.decision, Allow)

    def test_auth_form_with_expired_token_is_shown(self, config, jwt_factory):
        token = jwt_factory(expires_in=timedelta(minutes=-5))
        result = evaluate_navigation("/login", token, now(), config)
        assert isinstance(result.decision, Allow)
        assert result.verdict == TokenVerdict.EXPIRED
