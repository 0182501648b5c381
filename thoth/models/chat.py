"""
Chat Models - Threads, messages and the /query wire structures.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Author(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class MessageStatus(str, Enum):
    """Lifecycle of a message; see ChatSession for the transitions."""
    PENDING = "pending"
    SENT = "sent"
    DELIVERED = "delivered"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (MessageStatus.SENT, MessageStatus.DELIVERED)


class ChatMessage(BaseModel):
    """A single entry in a thread's message log."""
    id: str
    author: Author
    text: str
    thread_id: str
    created_at: datetime = Field(default_factory=utc_now)
    status: MessageStatus = MessageStatus.PENDING
    error: Optional[str] = None  # only set while status is FAILED
    reply_to: Optional[str] = None  # assistant messages: originating user message id
    query_id: Optional[int] = None


class ChatThread(BaseModel):
    """Chat thread metadata."""
    id: str
    title: str = "New Chat"  # Recomputed from the thread's messages
    created_at: datetime = Field(default_factory=utc_now)
    last_activity_at: datetime = Field(default_factory=utc_now)
    message_count: int = 0


class QueryOptions(BaseModel):
    """Model parameters sent with every query."""
    model: str = "gpt-3.5-turbo"
    max_tokens: int = Field(default=1024, gt=0)
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)


class QueryRequest(BaseModel):
    """Request body of POST /query."""
    query: str
    chat_id: str
    model: str = "gpt-3.5-turbo"
    max_tokens: int = 1024
    temperature: float = 0.7

    @classmethod
    def build(cls, text: str, chat_id: str, options: QueryOptions) -> "QueryRequest":
        return cls(query=text, chat_id=chat_id, **options.model_dump())


class QueryResponse(BaseModel):
    """Response of POST /query."""
    response: str
    query: str = ""
    chat_id: Optional[str] = None
    query_id: Optional[int] = Field(default=None, alias="queryId")

    class Config:
        populate_by_name = True
