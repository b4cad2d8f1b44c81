"""
Key-Value Store Providers

Small persistence capability for user preferences. The web client keeps its
preference for the session while the native client persists it across
launches; here the two behaviours are two implementations of one interface,
chosen once when the application is composed.
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Abstract base class for string key-value persistence"""

    @abstractmethod
    async def get_item(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    async def set_item(self, key: str, value: str) -> None:
        pass


class MemoryKeyValueStore(KeyValueStore):
    """Process-lifetime storage"""

    def __init__(self):
        self._items: Dict[str, str] = {}

    async def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self._items[key] = value


class FileKeyValueStore(KeyValueStore):
    """JSON file on disk, rewritten on every change"""

    def __init__(self, path: str):
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        with self.path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        return data if isinstance(data, dict) else {}

    def _write(self, items: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with tmp.open("w", encoding="utf-8") as f:
            json.dump(items, f, indent=2, sort_keys=True)
        tmp.replace(self.path)

    async def get_item(self, key: str) -> Optional[str]:
        async with self._lock:
            items = await asyncio.to_thread(self._read)
        return items.get(key)

    async def set_item(self, key: str, value: str) -> None:
        async with self._lock:
            items = await asyncio.to_thread(self._read)
            items[key] = value
            await asyncio.to_thread(self._write, items)
