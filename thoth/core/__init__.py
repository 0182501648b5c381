"""Core module - session guard, chat session and their supporting pieces."""

from .logging_config import setup_logging, get_logger
from .notifications import Notifier, Notification, NotificationLevel
from .navigation import evaluate_navigation, is_root_relative, resolve_destination
from .session_guard import SessionGuard
from .chat_session import ChatSession, derive_title

__all__ = [
    'setup_logging', 'get_logger',
    'Notifier', 'Notification', 'NotificationLevel',
    'evaluate_navigation', 'is_root_relative', 'resolve_destination',
    'SessionGuard',
    'ChatSession', 'derive_title',
]
