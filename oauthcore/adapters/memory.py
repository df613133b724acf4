"""In-memory storage adapter for development, tests and single-process use."""

from __future__ import annotations

import asyncio

from collections.abc import Iterable

from .base import StorageAdapter


class MemoryStorageAdapter(StorageAdapter):
    """Dict-backed storage guarded by an asyncio.Lock.

    Values are lost when the process exits.
    """

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})
        self._lock = asyncio.Lock()

    async def set_item(self, key: str, value: str) -> None:
        async with self._lock:
            self._data[key] = value

    async def get_item(self, key: str) -> str | None:
        async with self._lock:
            return self._data.get(key)

    async def remove_item(self, key: str) -> None:
        async with self._lock:
            self._data.pop(key, None)

    async def remove_items(self, keys: Iterable[str]) -> None:
        async with self._lock:
            for key in keys:
                self._data.pop(key, None)

    async def clear(self) -> None:
        async with self._lock:
            self._data.clear()

    def snapshot(self) -> dict[str, str]:
        """Return a copy of everything stored."""
        return dict(self._data)
