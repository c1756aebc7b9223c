"""Fakes shared by the test modules."""

from __future__ import annotations

from typing import Awaitable, Callable

from signin_client.constants import (
    STORAGE_KEY_ACCESS_TOKEN,
    STORAGE_KEY_AUTH_SOURCE,
    STORAGE_KEY_REFRESH_TOKEN,
    STORAGE_KEY_USER,
)
from signin_client.exceptions import StorageUnavailable
from signin_client.interfaces.backend_client import ApiRequest, ApiResponse
from signin_client.schemas import AuthSource, CredentialBundle
from signin_client.services.credential_store import CredentialStore
from signin_client.services.request_pipeline import AuthenticatedRequestPipeline
from signin_client.services.token_refresh import TokenRefreshCoordinator
from signin_client.stores.memory_store import MemorySecureStorage

Handler = Callable[[ApiRequest], Awaitable[ApiResponse]]

PROFILE = {"id": 7, "name": "Alice", "email": "alice@gmail.com"}


def make_bundle(access_token: str = "A1", refresh_token: str = "R1") -> CredentialBundle:
    return CredentialBundle(
        user=PROFILE,
        auth_source=AuthSource.FORM,
        access_token=access_token,
        refresh_token=refresh_token,
    )


class FakeBackend:
    """Routes requests by path to async handlers and records everything sent."""

    def __init__(self) -> None:
        self.requests: list[ApiRequest] = []
        self._routes: dict[str, Handler] = {}

    def route(self, path: str, handler: Handler) -> None:
        self._routes[path] = handler

    def reply(self, path: str, status_code: int, body: object = None) -> None:
        async def handler(request: ApiRequest) -> ApiResponse:
            return ApiResponse(status_code=status_code, body=body)

        self._routes[path] = handler

    def calls_to(self, path: str) -> list[ApiRequest]:
        return [request for request in self.requests if request.path == path]

    async def send(self, request: ApiRequest) -> ApiResponse:
        self.requests.append(request)
        handler = self._routes.get(request.path)
        if handler is None:
            return ApiResponse(status_code=404, body={"message": "Not found"})
        return await handler(request)


class FlakyStorage(MemorySecureStorage):
    """Memory storage whose reads, writes or removals can be made to fail."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_reads = False
        self.fail_writes_after: int | None = None
        self.fail_removals = False
        self.fail_once_keys: set[str] = set()
        self._writes = 0

    async def get_item(self, key: str) -> str | None:
        if self.fail_reads:
            raise StorageUnavailable("disk unreadable")
        return await super().get_item(key)

    async def set_item(self, key: str, value: str) -> None:
        if key in self.fail_once_keys:
            self.fail_once_keys.discard(key)
            raise StorageUnavailable("disk full")
        if self.fail_writes_after is not None and self._writes >= self.fail_writes_after:
            raise StorageUnavailable("disk full")
        self._writes += 1
        await super().set_item(key, value)

    async def remove_item(self, key: str) -> None:
        if self.fail_removals:
            raise StorageUnavailable("disk read-only")
        await super().remove_item(key)


def build_pipeline(
    backend: FakeBackend,
    storage: MemorySecureStorage | None = None,
    timeout: float = 1.0,
) -> tuple[CredentialStore, TokenRefreshCoordinator, AuthenticatedRequestPipeline]:
    credentials = CredentialStore(storage or MemorySecureStorage())
    refresh = TokenRefreshCoordinator(backend, credentials, timeout=timeout)
    pipeline = AuthenticatedRequestPipeline(backend, credentials, refresh)
    return credentials, refresh, pipeline


async def store_raw(storage: MemorySecureStorage, **items: str) -> None:
    keys = {
        "user": STORAGE_KEY_USER,
        "auth_source": STORAGE_KEY_AUTH_SOURCE,
        "access_token": STORAGE_KEY_ACCESS_TOKEN,
        "refresh_token": STORAGE_KEY_REFRESH_TOKEN,
    }
    for name, value in items.items():
        await storage.set_item(keys[name], value)
