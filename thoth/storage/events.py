"""
Cross-tab storage events.

Several client instances ("tabs") may share one storage backend. A write by
one tab is announced on the channel and delivered to every other tab, the
way a browser fires the `storage` event everywhere except in the writer.
"""

import logging
from typing import Awaitable, Callable, List, Tuple

logger = logging.getLogger(__name__)

StorageListener = Callable[[str], Awaitable[None]]


class StorageEventChannel:
    """Single channel over which storage changes are broadcast."""

    def __init__(self):
        self._subscribers: List[Tuple[str, StorageListener]] = []

    def subscribe(self, tab_id: str, listener: StorageListener) -> None:
        self._subscribers.append((tab_id, listener))

    def unsubscribe(self, tab_id: str) -> None:
        self._subscribers = [(t, l) for t, l in self._subscribers if t != tab_id]

    async def publish(self, key: str, origin: str) -> None:
        """Deliver a change of key to every tab except origin, one at a time."""
        for tab_id, listener in list(self._subscribers):
            if tab_id == origin:
                continue
            logger.debug(f"Storage change of {key!r} from tab {origin} delivered to tab {tab_id}")
            await listener(key)
