"""
Token Store - durable home of the bearer token and cached identity.
"""

import json
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from ..models import Identity
from .events import StorageEventChannel
from .interface import StorageInterface

logger = logging.getLogger(__name__)

TOKEN_KEY = "access_token"
COOKIE_KEY = "cookie.access_token"
IDENTITY_KEY = "identity"


class TokenStore:
    """
    Persists the session for one tab.

    The token is written twice: as a plain entry and as a cookie record with
    a max-age, so server-rendered route checks can read it without a round
    trip. Every write is announced on the channel.
    """

    def __init__(
        self,
        storage: StorageInterface,
        channel: Optional[StorageEventChannel] = None,
        tab_id: Optional[str] = None,
        cookie_max_age_days: int = 7,
    ):
        self.storage = storage
        self.channel = channel
        self.tab_id = tab_id or uuid.uuid4().hex[:12]
        self.cookie_max_age = timedelta(days=cookie_max_age_days)

    async def load_token(self) -> Optional[str]:
        """Return the stored token, falling back to an unexpired cookie record."""
        token = await self.storage.get(TOKEN_KEY)
        if token:
            return token
        return await self.load_cookie()

    async def load_cookie(self) -> Optional[str]:
        raw = await self.storage.get(COOKIE_KEY)
        if not raw:
            return None
        try:
            record = json.loads(raw)
            expires = datetime.fromisoformat(record["expires"])
            value = record["value"]
        except (ValueError, KeyError, TypeError):
            logger.warning("Discarding unreadable token cookie record")
            await self.storage.delete(COOKIE_KEY)
            return None
        if datetime.now(timezone.utc) >= expires:
            await self.storage.delete(COOKIE_KEY)
            return None
        return value

    async def save_token(self, token: str) -> None:
        expires = datetime.now(timezone.utc) + self.cookie_max_age
        await self.storage.set(TOKEN_KEY, token)
        await self.storage.set(COOKIE_KEY, json.dumps({
            "value": token,
            "path": "/",
            "expires": expires.isoformat(),
            "same_site": "Strict",
        }))
        await self._announce(TOKEN_KEY)

    async def load_identity(self) -> Optional[Identity]:
        raw = await self.storage.get(IDENTITY_KEY)
        if not raw:
            return None
        try:
            return Identity.model_validate_json(raw)
        except PydanticValidationError:
            logger.warning("Discarding unreadable cached identity")
            await self.storage.delete(IDENTITY_KEY)
            return None

    async def save_identity(self, identity: Identity) -> None:
        await self.storage.set(IDENTITY_KEY, identity.model_dump_json())

    async def clear(self) -> None:
        """Remove token, cookie record and identity."""
        await self.storage.delete(TOKEN_KEY)
        await self.storage.delete(COOKIE_KEY)
        await self.storage.delete(IDENTITY_KEY)
        await self._announce(TOKEN_KEY)

    async def _announce(self, key: str) -> None:
        if self.channel is not None:
            await self.channel.publish(key, origin=self.tab_id)
