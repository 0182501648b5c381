"""
Backend API client.
Talks to the Thoth backend over HTTP and maps every failure onto the
client error taxonomy.
"""

import httpx
import logging
import time
from typing import Any, Dict, Optional, Type, TypeVar
from urllib.parse import quote

from pydantic import BaseModel, ValidationError as PydanticValidationError

from ..config import Settings
from ..core.logging_config import filter_sensitive_data, truncate_large_data
from ..models import Profile, QueryRequest, QueryResponse, RegisterResponse, Token, UserCreate
from ..utils.auth import bearer_headers
from .errors import (
    AuthenticationError,
    BackendError,
    SessionExpiredError,
    ThothError,
    TransientError,
)

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = "Request timed out. Please check your connection and try again."
OFFLINE_MESSAGE = "You are offline. Please check your internet connection."
SERVER_ERROR_MESSAGE = "The server is having trouble right now. Please try again."
TOKEN_COOKIE = "access_token"

ModelT = TypeVar("ModelT", bound=BaseModel)


def _parse(model: Type[ModelT], data: Any) -> ModelT:
    """Validate a response body, treating a malformed one like a server fault."""
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        logger.error(f"Malformed {model.__name__} from backend: {e}")
        raise TransientError(SERVER_ERROR_MESSAGE) from e


def _error_detail(resp: httpx.Response) -> Optional[str]:
    """Extract a human-readable reason from an error body."""
    try:
        payload = resp.json()
    except ValueError:
        return None
    if isinstance(payload, dict):
        for key in ("detail", "message", "error", "error_description"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
    return None


class BackendClient:
    """
    Async client for the Thoth backend.

    A fresh httpx.AsyncClient is opened per call so no connection state
    outlives a request.
    """

    def __init__(self, config: Settings):
        self.base_url = config.api_base_url.rstrip("/")
        self.timeout = config.request_timeout
        self.login_timeout = config.login_timeout
        self.log_requests = config.log_api_requests

    async def register(
        self,
        username: str,
        password: str,
        phone_number: Optional[str] = None,
        role: int = 1,
    ) -> RegisterResponse:
        """POST /register. A 400 (duplicate username/phone) raises BackendError."""
        payload = UserCreate(
            username=username, password=password, phone_number=phone_number, role=role
        ).model_dump(exclude_none=True)
        data = await self._request("POST", "/register", json=payload, timeout=self.timeout)
        return _parse(RegisterResponse, data)

    async def login(self, username: str, password: str) -> Token:
        """
        Exchange credentials for a bearer token (OAuth2 password flow).

        Raises:
            AuthenticationError: On 401
        """
        form = {"username": username, "password": password, "grant_type": "password"}
        data = await self._request(
            "POST", "/token", data=form, timeout=self.login_timeout, authenticated=False
        )
        token = _parse(Token, data)
        if not token.access_token:
            raise AuthenticationError("Authentication failed. Please try again.")
        return token

    async def query(self, token: str, request: QueryRequest) -> QueryResponse:
        """POST /query on behalf of the signed-in user."""
        data = await self._request(
            "POST", "/query", json=request.model_dump(), token=token, timeout=self.timeout
        )
        if not data:
            raise TransientError("No response data received from server")
        return _parse(QueryResponse, data)

    async def get_profile(self, token: str) -> Profile:
        """GET /profile."""
        data = await self._request("GET", "/profile", token=token, timeout=self.timeout)
        return _parse(Profile, data)

    async def delete_user(self, username: str, token: str) -> Dict[str, Any]:
        """DELETE /user/{username}."""
        return await self._request(
            "DELETE", f"/user/{quote(username, safe='')}", token=token, timeout=self.timeout
        )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, str]] = None,
        token: Optional[str] = None,
        timeout: float,
        authenticated: bool = True,
    ) -> Any:
        """Send one request and return the decoded JSON body."""
        start_time = time.time()
        url = f"{self.base_url}{path}"
        headers = {"Accept": "application/json"}
        cookies = None
        if token:
            headers.update(bearer_headers(token))
            cookies = {TOKEN_COOKIE: token}

        if self.log_requests and logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                f"API request {method} {url}",
                extra={"extra_fields": {
                    "method": method,
                    "url": url,
                    "body": filter_sensitive_data(json if json is not None else data),
                }}
            )

        try:
            async with httpx.AsyncClient(timeout=timeout, cookies=cookies) as client:
                resp = await client.request(method, url, json=json, data=data, headers=headers)
        except httpx.TimeoutException as e:
            self._log_failure(method, url, start_time, e)
            raise TransientError(TIMEOUT_MESSAGE) from e
        except httpx.TransportError as e:
            self._log_failure(method, url, start_time, e)
            raise TransientError(OFFLINE_MESSAGE) from e

        duration_ms = (time.time() - start_time) * 1000
        if self.log_requests:
            logger.info(
                f"API {method} {path} -> {resp.status_code}",
                extra={"extra_fields": {
                    "method": method,
                    "path": path,
                    "status_code": resp.status_code,
                    "duration_ms": round(duration_ms, 2),
                }}
            )

        if resp.status_code >= 400:
            raise self._map_error(resp, authenticated)

        try:
            return resp.json()
        except ValueError as e:
            logger.error(f"Non-JSON response from {path}: {truncate_large_data(resp.text, 500)}")
            raise TransientError(SERVER_ERROR_MESSAGE, status_code=resp.status_code) from e

    @staticmethod
    def _map_error(resp: httpx.Response, authenticated: bool) -> ThothError:
        status_code = resp.status_code
        detail = _error_detail(resp)
        logger.warning(
            f"API error response: status={status_code}",
            extra={"extra_fields": {"status_code": status_code, "detail": detail}}
        )

        if status_code == 401:
            if authenticated:
                return SessionExpiredError()
            return AuthenticationError()
        if status_code >= 500:
            return TransientError(SERVER_ERROR_MESSAGE, status_code=status_code)
        return BackendError(status_code, detail)

    @staticmethod
    def _log_failure(method: str, url: str, start_time: float, error: Exception) -> None:
        duration_ms = (time.time() - start_time) * 1000
        logger.error(
            f"API {method} {url} failed: {type(error).__name__}",
            extra={"extra_fields": {
                "method": method,
                "url": url,
                "duration_ms": round(duration_ms, 2),
                "error": str(error),
            }}
        )
