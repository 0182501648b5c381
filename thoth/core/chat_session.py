"""
Chat Session - threads, the per-thread message log and the send lifecycle.

A user message is appended as pending before its request leaves, then moves
to delivered (the reply is appended, keyed to it) or failed (an error is
attached, no reply). Only an explicit retry takes a failed message back to
pending. Several sends may be in flight at once; replies are matched to the
message that asked, not to arrival order.
"""

import asyncio
import logging
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Set

from ..api.errors import NoActiveThreadError, SessionExpiredError, ThothError
from ..config import Settings
from ..models import Author, ChatMessage, ChatThread, MessageStatus, QueryOptions, QueryRequest
from ..models.chat import utc_now
from .notifications import Notifier
from .session_guard import SessionGuard

if TYPE_CHECKING:
    from ..api.client import BackendClient

logger = logging.getLogger(__name__)

SEND_FAILED_MESSAGE = "Failed to send message. Please try again."


def new_thread_id() -> str:
    return f"chat-{uuid.uuid4()}"


def new_message_id(author: Author) -> str:
    prefix = "msg" if author == Author.USER else "ai"
    return f"{prefix}-{uuid.uuid4().hex}"


def derive_title(messages: List[ChatMessage], max_length: int = 50, default: str = "New Chat") -> str:
    """
    Label a thread by its first user message.

    Args:
        messages: The thread's messages in order
        max_length: Longest title returned, ellipsis included
        default: Title of a thread without user messages

    Returns:
        str: The title
    """
    for message in messages:
        if message.author == Author.USER:
            text = " ".join(message.text.split())
            if not text:
                continue
            if len(text) <= max_length:
                return text
            return text[:max(max_length - 3, 1)].rstrip() + "..."
    return default


def default_query_options(config: Settings) -> QueryOptions:
    return QueryOptions(
        model=config.query_model,
        max_tokens=config.query_max_tokens,
        temperature=config.query_temperature,
    )


class ChatSession:
    """
    Owns every thread and message for one signed-in client.
    """

    def __init__(
        self,
        backend: "BackendClient",
        guard: SessionGuard,
        config: Settings,
        notifier: Optional[Notifier] = None,
        options: Optional[QueryOptions] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._backend = backend
        self._guard = guard
        self._config = config
        self._notifier = notifier or Notifier()
        self.options = options or default_query_options(config)
        self._clock = clock

        self._threads: Dict[str, ChatThread] = {}
        self._messages: Dict[str, List[ChatMessage]] = {}
        self._by_id: Dict[str, ChatMessage] = {}
        self._active_thread_id: Optional[str] = None
        self._in_flight: Set[str] = set()

    @property
    def active_thread_id(self) -> Optional[str]:
        return self._active_thread_id

    @property
    def threads(self) -> List[ChatThread]:
        """Threads, most recently active first."""
        ordered = sorted(self._threads.values(), key=lambda t: t.last_activity_at, reverse=True)
        return [t.model_copy() for t in ordered]

    def messages(self, thread_id: Optional[str] = None) -> List[ChatMessage]:
        """Message log of thread_id (default: the active thread)."""
        thread_id = thread_id or self._active_thread_id
        if thread_id is None:
            return []
        return [m.model_copy() for m in self._messages.get(thread_id, [])]

    def get_message(self, message_id: str) -> ChatMessage:
        return self._by_id[message_id].model_copy()

    def thread_title(self, thread_id: Optional[str] = None) -> str:
        thread_id = thread_id or self._active_thread_id
        return derive_title(
            self._messages.get(thread_id, []),
            max_length=self._config.title_max_length,
            default=self._config.default_title,
        )

    def is_in_flight(self, message_id: str) -> bool:
        return message_id in self._in_flight

    def create_thread(self) -> str:
        """Start an empty thread and make it active."""
        thread_id = new_thread_id()
        while thread_id in self._threads:
            thread_id = new_thread_id()
        now = self._clock()
        self._threads[thread_id] = ChatThread(
            id=thread_id,
            title=self._config.default_title,
            created_at=now,
            last_activity_at=now,
        )
        self._messages[thread_id] = []
        self._active_thread_id = thread_id
        logger.info(f"Created chat thread {thread_id}")
        return thread_id

    def ensure_thread(self) -> str:
        """Active thread id, creating the first thread on first entry."""
        if self._active_thread_id is None:
            return self.create_thread()
        return self._active_thread_id

    def switch_thread(self, thread_id: str) -> None:
        """
        Make thread_id active.

        Raises:
            KeyError: If no such thread exists
        """
        if thread_id not in self._threads:
            raise KeyError(f"Unknown chat thread: {thread_id}")
        logger.debug(f"Switching to thread {thread_id}")
        self._active_thread_id = thread_id

    def reset(self) -> None:
        """Forget every thread and message; used when the session ends."""
        if self._threads or self._in_flight:
            logger.info(f"Clearing {len(self._threads)} chat thread(s)")
        self._threads.clear()
        self._messages.clear()
        self._by_id.clear()
        self._in_flight.clear()
        self._active_thread_id = None

    def stop_generation(self) -> None:
        """Placeholder: replies are not streamed, so there is nothing to abort here."""
        logger.debug("Stop generation requested")

    async def send_message(self, text: str) -> Optional[ChatMessage]:
        """
        Append text to the active thread and ask the backend for a reply.

        Args:
            text: Message body; blank text is ignored

        Returns:
            Optional[ChatMessage]: The user message in its final state, or None
            for blank text

        Raises:
            NoActiveThreadError: If no thread is active
            SessionExpiredError: If the backend rejected the session
        """
        if not text or not text.strip():
            return None
        if self._active_thread_id is None:
            logger.error("No active chat thread")
            raise NoActiveThreadError()

        message = ChatMessage(
            id=new_message_id(Author.USER),
            author=Author.USER,
            text=text,
            thread_id=self._active_thread_id,
            created_at=self._clock(),
            status=MessageStatus.PENDING,
        )
        self._append(message)
        await self._dispatch(message)
        return message.model_copy()

    async def retry(self, message_id: str) -> ChatMessage:
        """
        Send a failed message again, in its original thread.

        Raises:
            KeyError: Unknown message id
            ValueError: The message is not a failed user message, or a retry
                of it is already running
        """
        message = self._by_id[message_id]
        if message.author != Author.USER:
            raise ValueError("Only user messages can be retried")
        if message_id in self._in_flight or message.status != MessageStatus.FAILED:
            raise ValueError(
                f"Message {message_id} is {message.status.value}; only failed messages can be retried"
            )

        logger.info(f"Retrying message {message_id}")
        message.status = MessageStatus.PENDING
        message.error = None
        await self._dispatch(message)
        return message.model_copy()

    async def _dispatch(self, message: ChatMessage) -> None:
        """Run one request for message and settle its status."""
        token = self._guard.bearer_token
        self._in_flight.add(message.id)
        try:
            if token is None:
                raise SessionExpiredError()
            request = QueryRequest.build(message.text, message.thread_id, self.options)
            response = await self._backend.query(token, request)
        except SessionExpiredError as e:
            self._fail(message, e.user_message)
            self._notifier.warning(e.user_message)
            if token is not None:
                await self._guard.expire(token=token)
            raise
        except ThothError as e:
            logger.warning(f"Message {message.id} failed: {e.user_message}")
            self._fail(message, e.user_message)
            self._notifier.error(SEND_FAILED_MESSAGE)
            return
        except asyncio.CancelledError:
            self._fail(message, "Sending was cancelled.")
            raise
        except Exception:
            logger.exception(f"Unexpected error while sending message {message.id}")
            self._fail(message, SEND_FAILED_MESSAGE)
            self._notifier.error(SEND_FAILED_MESSAGE)
            raise
        finally:
            self._in_flight.discard(message.id)

        if self._by_id.get(message.id) is not message:
            # Session ended while the request was out
            logger.debug(f"Dropping reply to discarded message {message.id}")
            return

        message.status = MessageStatus.DELIVERED
        message.error = None
        message.query_id = response.query_id
        self._append(ChatMessage(
            id=new_message_id(Author.ASSISTANT),
            author=Author.ASSISTANT,
            text=response.response,
            thread_id=message.thread_id,
            created_at=self._clock(),
            status=MessageStatus.DELIVERED,
            reply_to=message.id,
            query_id=response.query_id,
        ))
        logger.debug(f"Message {message.id} delivered in thread {message.thread_id}")

    def _fail(self, message: ChatMessage, reason: str) -> None:
        message.status = MessageStatus.FAILED
        message.error = reason or SEND_FAILED_MESSAGE

    def _append(self, message: ChatMessage) -> None:
        log = self._messages[message.thread_id]
        log.append(message)
        self._by_id[message.id] = message

        thread = self._threads[message.thread_id]
        thread.last_activity_at = message.created_at
        thread.message_count = len(log)
        thread.title = self.thread_title(message.thread_id)
