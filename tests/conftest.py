"""
Shared test fixtures and configuration.
"""

import os
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest
from jose import jwt

# Set test environment variables before importing client modules
os.environ.setdefault("API_BASE_URL", "http://testserver")
os.environ.setdefault("LOG_FILE_ENABLED", "false")
os.environ.setdefault("LOCAL_STORAGE_PATH", "/tmp/thoth_test_data")

from thoth.api import BackendClient
from thoth.config import Settings
from thoth.core import ChatSession, Notifier, SessionGuard
from thoth.models import Token
from thoth.storage import MemoryStorage, StorageEventChannel, TokenStore

TEST_SIGNING_KEY = "test-signing-key"


def make_token(expires_in=timedelta(hours=1), **claims) -> str:
    """Mint a JWT the way the backend would; expires_in=None omits exp."""
    payload = {"sub": "1", "username": "alice", **claims}
    if expires_in is not None:
        payload["exp"] = int((datetime.now(timezone.utc) + expires_in).timestamp())
    return jwt.encode(payload, TEST_SIGNING_KEY, algorithm="HS256")


@pytest.fixture
def config():
    return Settings(
        api_base_url="http://testserver",
        fetch_profile_on_login=False,
        log_file_enabled=False,
    )


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def backend():
    mock = AsyncMock(spec=BackendClient)
    mock.login.return_value = Token(access_token="tok123", token_type="bearer")
    return mock


@pytest.fixture
def token_store(storage):
    return TokenStore(storage, channel=StorageEventChannel(), tab_id="tab-test")


@pytest.fixture
def guard(backend, token_store, config):
    return SessionGuard(backend, token_store, config)


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def chat(backend, guard, config, notifier):
    return ChatSession(backend, guard, config, notifier=notifier)


@pytest.fixture
def jwt_factory():
    return make_token
