"""Encrypted key-value storage interface."""

from __future__ import annotations

from typing import Protocol


class SecureStorage(Protocol):
    async def get_item(self, key: str) -> str | None:
        ...

    async def set_item(self, key: str, value: str) -> None:
        ...

    async def remove_item(self, key: str) -> None:
        ...
