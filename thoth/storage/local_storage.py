"""
Local Filesystem Storage Implementation.
Keeps each key in its own file so the session survives a restart.
"""

import re
import aiofiles
from pathlib import Path
from typing import Dict, List, Optional
from .interface import StorageInterface

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")
_SUFFIX = ".value"


class LocalStorage(StorageInterface):
    """
    Durable storage rooted at a base directory.
    """

    def __init__(self, base_dir: str = "./data"):
        """
        Args:
            base_dir: Directory holding one file per key
        """
        self.base_dir = Path(base_dir).resolve()
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _get_full_path(self, key: str) -> Path:
        """Map a key to its file, rejecting anything that could escape base_dir."""
        if not _KEY_PATTERN.match(key) or key.startswith("."):
            raise ValueError(f"Invalid storage key: {key!r}")
        full_path = (self.base_dir / f"{key}{_SUFFIX}").resolve()
        if full_path.parent != self.base_dir:
            raise ValueError(f"Invalid storage key: {key!r} - path traversal detected")
        return full_path

    async def get(self, key: str) -> Optional[str]:
        full_path = self._get_full_path(key)
        if not full_path.exists():
            return None
        async with aiofiles.open(full_path, 'r', encoding='utf-8') as f:
            return await f.read()

    async def set(self, key: str, value: str) -> None:
        full_path = self._get_full_path(key)
        tmp_path = full_path.with_name(full_path.name + ".tmp")
        async with aiofiles.open(tmp_path, 'w', encoding='utf-8') as f:
            await f.write(value)
        # Readers never observe a half-written value
        tmp_path.replace(full_path)

    async def delete(self, key: str) -> bool:
        full_path = self._get_full_path(key)
        if not full_path.exists():
            return False
        full_path.unlink()
        return True

    async def keys(self) -> List[str]:
        return sorted(p.name[:-len(_SUFFIX)] for p in self.base_dir.glob(f"*{_SUFFIX}"))


class MemoryStorage(StorageInterface):
    """
    In-process storage; contents vanish with the process.
    """

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    async def keys(self) -> List[str]:
        return sorted(self._data)
