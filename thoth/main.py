"""
Thoth client - application shell.

Wires configuration, logging, storage, the backend client, the session
guard and the chat session together, and plays the part of the router:
every navigation goes through the guard, and entering the chat view makes
sure a thread exists.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from .api import BackendClient, SessionExpiredError
from .config import Settings, settings as default_settings
from .core import ChatSession, Notifier, SessionGuard, setup_logging
from .models import (
    Allow,
    ChatMessage,
    NavigationDecision,
    RedirectReason,
    RedirectToHome,
    RedirectToLogin,
    RegistrationResult,
)
from .storage import LocalStorage, StorageEventChannel, StorageInterface, TokenStore

logger = logging.getLogger(__name__)


class ThothClient:
    """
    One running client (one browser tab, in PWA terms).
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        storage: Optional[StorageInterface] = None,
        backend: Optional[BackendClient] = None,
        channel: Optional[StorageEventChannel] = None,
        tab_id: Optional[str] = None,
    ):
        self.config = config or default_settings
        self.storage = storage or LocalStorage(self.config.local_storage_path)
        self.backend = backend or BackendClient(self.config)
        self.channel = channel
        self.notifier = Notifier(
            history_size=self.config.notification_history_size,
            ttl_seconds=self.config.notification_ttl_seconds,
        )
        self.token_store = TokenStore(
            self.storage,
            channel=channel,
            tab_id=tab_id,
            cookie_max_age_days=self.config.cookie_max_age_days,
        )
        self.guard = SessionGuard(self.backend, self.token_store, self.config)
        self.chat = ChatSession(self.backend, self.guard, self.config, notifier=self.notifier)
        self.location: str = self.config.login_path
        self.login_reason: Optional[RedirectReason] = None

        if channel is not None:
            channel.subscribe(self.token_store.tab_id, self._on_storage_event)

    @property
    def tab_id(self) -> str:
        return self.token_store.tab_id

    async def start(self, initial_path: Optional[str] = None) -> str:
        """Restore any persisted session and land on the first view."""
        await self.guard.restore()
        return await self.navigate(initial_path or self.config.chat_path)

    async def close(self) -> None:
        if self.channel is not None:
            self.channel.unsubscribe(self.tab_id)

    async def navigate(self, path: str, return_path: Optional[str] = None) -> str:
        """
        Go to path, following whatever redirect the guard decides.

        Returns:
            str: The location actually shown
        """
        decision = await self.guard.evaluate(path, return_path=return_path)
        return self._apply(decision, path)

    async def login(self, username: str, password: str, return_path: Optional[str] = None) -> str:
        destination = await self.guard.login(username, password, return_path=return_path)
        return await self.navigate(destination)

    async def register(
        self,
        username: str,
        password: str,
        confirm_password: Optional[str] = None,
        phone_number: Optional[str] = None,
        return_path: Optional[str] = None,
    ) -> RegistrationResult:
        result = await self.guard.register(
            username,
            password,
            confirm_password=confirm_password,
            phone_number=phone_number,
            return_path=return_path,
        )
        if result.logged_in and result.destination:
            await self.navigate(result.destination)
        else:
            self.notifier.success(result.message)
            self.location = self.config.login_path
        return result

    async def logout(self) -> str:
        self.location = await self.guard.logout()
        self.login_reason = None
        self.chat.reset()
        return self.location

    def new_chat(self) -> str:
        return self.chat.create_thread()

    def switch_thread(self, thread_id: str) -> None:
        self.chat.switch_thread(thread_id)

    async def send(self, text: str) -> Optional[ChatMessage]:
        """Send text in the active thread; an expired session redirects to login."""
        try:
            return await self.chat.send_message(text)
        except SessionExpiredError:
            await self.navigate(self.location)
            return None

    async def retry(self, message_id: str) -> Optional[ChatMessage]:
        try:
            return await self.chat.retry(message_id)
        except SessionExpiredError:
            await self.navigate(self.location)
            return None

    def _apply(self, decision: NavigationDecision, requested: str) -> str:
        if isinstance(decision, RedirectToLogin):
            self.login_reason = decision.reason
            self.location = self.config.login_path
            if decision.reason is not None:
                logger.info(f"Redirected to login ({decision.reason.value}) from {requested}")
        elif isinstance(decision, RedirectToHome):
            self.location = decision.target
        elif isinstance(decision, Allow):
            self.location = requested

        if not self.guard.is_authenticated:
            self.chat.reset()
        if self.location.split("?", 1)[0] == self.config.chat_path and self.guard.is_authenticated:
            self.chat.ensure_thread()
        return self.location

    async def _on_storage_event(self, key: str) -> None:
        shown = self.guard.last_path or self.location
        previous = self.guard.identity
        decision = await self.guard.on_storage_change(key)
        current = self.guard.identity
        if previous is not None and (current is None or current.username != previous.username):
            # Signed out, or signed in as someone else, in another tab
            self.chat.reset()
        if decision is not None:
            self._apply(decision, shown)


def create_client(config: Optional[Settings] = None, **kwargs) -> ThothClient:
    """Build a client from settings (environment / .env by default)."""
    return ThothClient(config=config, **kwargs)


@asynccontextmanager
async def client_lifespan(config: Optional[Settings] = None, **kwargs) -> AsyncIterator[ThothClient]:
    """Configure logging, start a client, and tear it down on exit."""
    config = config or default_settings
    setup_logging(config)
    client = create_client(config, **kwargs)
    logger.info(f"Starting {config.app_name} client v{config.app_version}")
    logger.info(f"Backend: {config.api_base_url}")
    await client.start()
    try:
        yield client
    finally:
        await client.close()
        logger.info(f"Shutting down {config.app_name} client")
