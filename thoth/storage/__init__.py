"""Storage module - client-side persistence of the session."""

from .interface import StorageInterface
from .local_storage import LocalStorage, MemoryStorage
from .events import StorageEventChannel
from .token_store import TokenStore

__all__ = ['StorageInterface', 'LocalStorage', 'MemoryStorage', 'StorageEventChannel', 'TokenStore']
