"""In-memory secure storage."""

from __future__ import annotations

import asyncio


class MemorySecureStorage:
    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._items: dict[str, str] = {}

    async def get_item(self, key: str) -> str | None:
        async with self._lock:
            return self._items.get(key)

    async def set_item(self, key: str, value: str) -> None:
        async with self._lock:
            self._items[key] = value

    async def remove_item(self, key: str) -> None:
        async with self._lock:
            self._items.pop(key, None)

    async def keys(self) -> list[str]:
        async with self._lock:
            return sorted(self._items)
