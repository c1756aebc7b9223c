"""Encrypted file-backed secure storage."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path

from signin_client.exceptions import StorageUnavailable
from signin_client.security import decrypt_value, encrypt_value

logger = logging.getLogger(__name__)


class EncryptedFileStorage:
    """
    Key-value storage kept in a single JSON file.

    Every value is sealed with AES-GCM under ``key`` and bound to its entry
    name, so a value copied to another entry fails to decrypt. The file is
    rewritten atomically on each change.
    """

    def __init__(self, path: str | os.PathLike[str], key: bytes) -> None:
        self._path = Path(path).expanduser()
        self._key = key
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _read_entries(self) -> dict[str, str]:
        try:
            if not self._path.exists():
                return {}
            with open(self._path, "r", encoding="utf-8") as f:
                entries = json.load(f)
        except json.JSONDecodeError as exc:
            raise StorageUnavailable(f"Credential file is corrupted: {exc}") from exc
        except OSError as exc:
            raise StorageUnavailable(f"Cannot read credential file: {exc}") from exc

        if not isinstance(entries, dict):
            raise StorageUnavailable("Invalid credential file format")
        for key, value in entries.items():
            if not isinstance(value, str):
                raise StorageUnavailable(f"Invalid credential file entry: {key}")
        return entries

    def _write_entries(self, entries: dict[str, str]) -> None:
        """Persist entries atomically. Caller must hold lock."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(dir=self._path.parent, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(entries, f, indent=2)
                os.chmod(temp_path, 0o600)
                os.replace(temp_path, self._path)
            except Exception:
                if os.path.exists(temp_path):
                    os.unlink(temp_path)
                raise
        except OSError as exc:
            raise StorageUnavailable(f"Cannot write credential file: {exc}") from exc

        logger.debug("Persisted %d entries to %s", len(entries), self._path)

    async def get_item(self, key: str) -> str | None:
        async with self._lock:
            value = self._read_entries().get(key)
        if value is None:
            return None
        return decrypt_value(value, self._key, aad=key)

    async def set_item(self, key: str, value: str) -> None:
        sealed = encrypt_value(value, self._key, aad=key)
        async with self._lock:
            entries = self._read_entries()
            entries[key] = sealed
            self._write_entries(entries)

    async def remove_item(self, key: str) -> None:
        async with self._lock:
            entries = self._read_entries()
            if key not in entries:
                return
            del entries[key]
            self._write_entries(entries)
