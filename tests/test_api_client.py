"""
Tests for the backend API client.
httpx is mocked; no network access happens.
"""

import pytest
import httpx
from unittest.mock import AsyncMock, MagicMock, patch

from thoth.api import (
    AuthenticationError,
    BackendClient,
    BackendError,
    SessionExpiredError,
    TransientError,
)
from thoth.api.client import OFFLINE_MESSAGE, SERVER_ERROR_MESSAGE, TIMEOUT_MESSAGE
from thoth.models import QueryRequest


def make_response(status_code=200, payload=None, text=""):
    mock_response = MagicMock()
    mock_response.status_code = status_code
    if isinstance(payload, Exception):
        mock_response.json.side_effect = payload
    else:
        mock_response.json.return_value = payload
    mock_response.text = text
    return mock_response


def patched_client(response=None, error=None):
    """Patch httpx.AsyncClient; returns (patcher, instance)."""
    patcher = patch("httpx.AsyncClient")
    mock_client = patcher.start()
    mock_instance = AsyncMock()
    if error is not None:
        mock_instance.request.side_effect = error
    else:
        mock_instance.request.return_value = response
    mock_instance.__aenter__ = AsyncMock(return_value=mock_instance)
    mock_instance.__aexit__ = AsyncMock(return_value=False)
    mock_client.return_value = mock_instance
    return patcher, mock_client, mock_instance


@pytest.fixture
def client(config):
    return BackendClient(config)


class TestLogin:
    """Tests for the /token exchange."""

    @pytest.mark.asyncio
    async def test_login_posts_form(self, client):
        patcher, mock_client, mock_instance = patched_client(
            make_response(200, {"access_token": "tok123", "token_type": "bearer"})
        )
        try:
            token = await client.login("alice", "validpass")
        finally:
            patcher.stop()

        assert token.access_token == "tok123"
        args, kwargs = mock_instance.request.call_args
        assert args == ("POST", "http://testserver/token")
        assert kwargs["data"] == {"username": "alice", "password": "validpass", "grant_type": "password"}
        assert kwargs["json"] is None
        assert "Authorization" not in kwargs["headers"]
        assert mock_client.call_args.kwargs["timeout"] == 10.0

    @pytest.mark.asyncio
    async def test_login_401_is_bad_credentials(self, client):
        patcher, _, _ = patched_client(make_response(401, {"detail": "Incorrect username or password"}))
        try:
            with pytest.raises(AuthenticationError) as exc_info:
                await client.login("alice", "wrong")
        finally:
            patcher.stop()
        assert exc_info.value.user_message == "Invalid username or password"

    @pytest.mark.asyncio
    async def test_login_without_token_in_body(self, client):
        patcher, _, _ = patched_client(make_response(200, {"access_token": "", "token_type": "bearer"}))
        try:
            with pytest.raises(AuthenticationError):
                await client.login("alice", "validpass")
        finally:
            patcher.stop()


class TestAuthenticatedCalls:
    """Tests for calls that carry the bearer token."""

    @pytest.mark.asyncio
    async def test_query_sends_bearer_and_cookie(self, client):
        patcher, mock_client, mock_instance = patched_client(
            make_response(200, {"response": "Hi there", "query": "Hello", "chat_id": "chat-1", "queryId": 9})
        )
        request = QueryRequest(query="Hello", chat_id="chat-1")
        try:
            result = await client.query("tok123", request)
        finally:
            patcher.stop()

        assert result.response == "Hi there"
        assert result.query_id == 9
        args, kwargs = mock_instance.request.call_args
        assert args == ("POST", "http://testserver/query")
        assert kwargs["headers"]["Authorization"] == "Bearer tok123"
        assert kwargs["json"]["chat_id"] == "chat-1"
        assert mock_client.call_args.kwargs["cookies"] == {"access_token": "tok123"}

    @pytest.mark.asyncio
    async def test_query_401_is_session_expiry(self, client):
        patcher, _, _ = patched_client(make_response(401, {"detail": "Could not validate credentials"}))
        try:
            with pytest.raises(SessionExpiredError):
                await client.query("tok123", QueryRequest(query="Hello", chat_id="chat-1"))
        finally:
            patcher.stop()

    @pytest.mark.asyncio
    async def test_get_profile(self, client):
        patcher, _, mock_instance = patched_client(
            make_response(200, {"userId": 7, "username": "alice", "role": 1, "phone_number": None})
        )
        try:
            profile = await client.get_profile("tok123")
        finally:
            patcher.stop()

        assert profile.user_id == 7
        assert mock_instance.request.call_args.args == ("GET", "http://testserver/profile")

    @pytest.mark.asyncio
    async def test_delete_user_quotes_username(self, client):
        patcher, _, mock_instance = patched_client(make_response(200, {"message": "deleted"}))
        try:
            await client.delete_user("a b", "tok123")
        finally:
            patcher.stop()
        assert mock_instance.request.call_args.args == ("DELETE", "http://testserver/user/a%20b")


class TestErrorMapping:
    """Tests for transport and status error mapping."""

    @pytest.mark.asyncio
    async def test_timeout(self, client):
        patcher, _, _ = patched_client(error=httpx.ReadTimeout("timed out"))
        try:
            with pytest.raises(TransientError) as exc_info:
                await client.get_profile("tok123")
        finally:
            patcher.stop()
        assert exc_info.value.user_message == TIMEOUT_MESSAGE

    @pytest.mark.asyncio
    async def test_offline(self, client):
        patcher, _, _ = patched_client(error=httpx.ConnectError("connection refused"))
        try:
            with pytest.raises(TransientError) as exc_info:
                await client.get_profile("tok123")
        finally:
            patcher.stop()
        assert exc_info.value.user_message == OFFLINE_MESSAGE

    @pytest.mark.asyncio
    async def test_server_error(self, client):
        patcher, _, _ = patched_client(make_response(503, {"detail": "maintenance"}))
        try:
            with pytest.raises(TransientError) as exc_info:
                await client.get_profile("tok123")
        finally:
            patcher.stop()
        assert exc_info.value.user_message == SERVER_ERROR_MESSAGE
        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_client_error_carries_detail(self, client):
        patcher, _, _ = patched_client(make_response(400, {"detail": "Username already registered"}))
        try:
            with pytest.raises(BackendError) as exc_info:
                await client.register("alice", "validpass")
        finally:
            patcher.stop()
        assert exc_info.value.status_code == 400
        assert exc_info.value.user_message == "Username already registered"

    @pytest.mark.asyncio
    async def test_client_error_without_body(self, client):
        patcher, _, _ = patched_client(make_response(404, ValueError("no json")))
        try:
            with pytest.raises(BackendError) as exc_info:
                await client.get_profile("tok123")
        finally:
            patcher.stop()
        assert exc_info.value.user_message

    @pytest.mark.asyncio
    async def test_non_json_success_body(self, client):
        patcher, _, _ = patched_client(make_response(200, ValueError("no json"), text="<html>"))
        try:
            with pytest.raises(TransientError):
                await client.get_profile("tok123")
        finally:
            patcher.stop()

    @pytest.mark.asyncio
    async def test_malformed_success_body(self, client):
        patcher, _, _ = patched_client(make_response(200, {"unexpected": True}))
        try:
            with pytest.raises(TransientError):
                await client.query("tok123", QueryRequest(query="Hello", chat_id="chat-1"))
        finally:
            patcher.stop()
