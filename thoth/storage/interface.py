"""
Storage Interface - Abstract base class for client-side key/value stores.
Mirrors what a browser offers (localStorage): string values under string keys.
"""

from abc import ABC, abstractmethod
from typing import List, Optional


class StorageInterface(ABC):
    """
    Contract for durable or in-process client storage.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """
        Read the value stored under key.

        Returns:
            Optional[str]: The value, or None if the key is absent
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """
        Remove key.

        Returns:
            bool: True if the key existed
        """
        pass

    @abstractmethod
    async def keys(self) -> List[str]:
        """List all stored keys."""
        pass
