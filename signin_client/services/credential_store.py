"""Credential store: the persisted credential bundle."""

from __future__ import annotations

import asyncio
import json
import logging

from signin_client.constants import (
    CREDENTIAL_KEYS,
    STORAGE_KEY_ACCESS_TOKEN,
    STORAGE_KEY_AUTH_SOURCE,
    STORAGE_KEY_REFRESH_TOKEN,
    STORAGE_KEY_USER,
)
from signin_client.exceptions import InvalidCredential, StorageUnavailable
from signin_client.interfaces.secure_storage import SecureStorage
from signin_client.schemas import CredentialBundle, TokenPair

logger = logging.getLogger(__name__)


class CredentialStore:
    """
    Persists the credential bundle as four storage entries.

    All reads and writes go through one lock, so a load never sees a bundle
    that is half old and half new. Every save and clear bumps ``generation``;
    ``replace_tokens`` uses it to drop refresh results that arrive after the
    bundle they were derived from was replaced or cleared.
    """

    def __init__(self, storage: SecureStorage) -> None:
        self._storage = storage
        self._lock = asyncio.Lock()
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    async def save(self, bundle: CredentialBundle) -> None:
        _require_complete(bundle)
        async with self._lock:
            try:
                await self._write(bundle)
            finally:
                self._generation += 1
        logger.info("Credential bundle saved (source=%s)", bundle.auth_source.value)

    async def load(self) -> CredentialBundle | None:
        async with self._lock:
            return await self._read()

    async def load_with_generation(self) -> tuple[CredentialBundle | None, int]:
        async with self._lock:
            return await self._read(), self._generation

    async def access_token(self) -> str | None:
        bundle = await self.load()
        return bundle.access_token if bundle else None

    async def clear(self) -> None:
        async with self._lock:
            try:
                await self._remove_all()
            finally:
                self._generation += 1
        logger.info("Credential bundle cleared")

    async def replace_tokens(self, tokens: TokenPair, *, expected_generation: int) -> bool:
        """
        Swap the token pair of the stored bundle, keeping profile and source.

        Returns False without writing when the store changed since
        ``expected_generation`` was read, or when no bundle is stored.
        """
        async with self._lock:
            if self._generation != expected_generation:
                logger.info(
                    "Credential bundle changed during refresh (generation %d -> %d), "
                    "dropping new tokens",
                    expected_generation,
                    self._generation,
                )
                return False
            current = await self._read()
            if current is None:
                logger.warning("No credential bundle to update with refreshed tokens")
                return False
            try:
                await self._write(current.with_tokens(tokens))
            except StorageUnavailable:
                # _write dropped the partial bundle; put the previous one back
                try:
                    await self._write(current)
                except StorageUnavailable as exc:
                    logger.error("Failed to restore credential bundle: %s", exc.message)
                raise
            finally:
                self._generation += 1
            return True

    async def _read(self) -> CredentialBundle | None:
        """Caller must hold lock."""
        values: dict[str, str | None] = {}
        try:
            for key in CREDENTIAL_KEYS:
                values[key] = await self._storage.get_item(key)
        except StorageUnavailable as exc:
            logger.error("Credential storage unreadable, treating as logged out: %s", exc.message)
            return None

        missing = [key for key, value in values.items() if not value]
        if len(missing) == len(CREDENTIAL_KEYS):
            logger.debug("No credential bundle stored")
            return None
        if missing:
            logger.warning("Credential bundle incomplete, missing: %s", ", ".join(missing))
            return None

        try:
            user = json.loads(values[STORAGE_KEY_USER])
            return CredentialBundle(
                user=user,
                auth_source=values[STORAGE_KEY_AUTH_SOURCE],
                access_token=values[STORAGE_KEY_ACCESS_TOKEN],
                refresh_token=values[STORAGE_KEY_REFRESH_TOKEN],
            )
        except ValueError as exc:
            logger.warning("Credential bundle malformed: %s", exc)
            return None

    async def _write(self, bundle: CredentialBundle) -> None:
        """Caller must hold lock."""
        values = {
            STORAGE_KEY_USER: json.dumps(bundle.user),
            STORAGE_KEY_AUTH_SOURCE: bundle.auth_source.value,
            STORAGE_KEY_ACCESS_TOKEN: bundle.access_token,
            STORAGE_KEY_REFRESH_TOKEN: bundle.refresh_token,
        }
        try:
            for key, value in values.items():
                await self._storage.set_item(key, value)
        except StorageUnavailable as exc:
            logger.error("Failed to save credential bundle: %s", exc.message)
            try:
                await self._remove_all()
            except StorageUnavailable as cleanup_exc:
                logger.error(
                    "Failed to remove partial credential bundle: %s", cleanup_exc.message
                )
            raise

    async def _remove_all(self) -> None:
        """Remove every entry, even if some removals fail. Caller must hold lock."""
        first_error: StorageUnavailable | None = None
        for key in CREDENTIAL_KEYS:
            try:
                await self._storage.remove_item(key)
            except StorageUnavailable as exc:
                logger.error("Failed to remove %s: %s", key, exc.message)
                first_error = first_error or exc
        if first_error is not None:
            raise first_error


def _require_complete(bundle: CredentialBundle) -> None:
    missing = [
        name
        for name, value in (
            ("user", bundle.user),
            ("auth_source", bundle.auth_source),
            ("access_token", bundle.access_token),
            ("refresh_token", bundle.refresh_token),
        )
        if not value
    ]
    if missing:
        raise InvalidCredential(f"Credential bundle missing: {', '.join(missing)}")
