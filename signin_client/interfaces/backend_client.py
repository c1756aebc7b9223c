"""Backend client interface and the request/response values it exchanges."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Protocol

from signin_client.constants import AUTHORIZATION_HEADER, HTTP_OK


@dataclass(frozen=True)
class ApiRequest:
    method: str
    path: str
    json: dict[str, Any] | None = None
    headers: dict[str, str] = field(default_factory=dict)
    # Set once the request has been through a refresh-and-retry cycle
    retried: bool = False

    def with_bearer(self, token: str) -> ApiRequest:
        headers = dict(self.headers)
        headers[AUTHORIZATION_HEADER] = f"Bearer {token}"
        return replace(self, headers=headers)

    def mark_retried(self) -> ApiRequest:
        return replace(self, retried=True)

    @property
    def bearer_token(self) -> str | None:
        value = self.headers.get(AUTHORIZATION_HEADER)
        if not value or not value.startswith("Bearer "):
            return None
        return value[len("Bearer "):]


@dataclass(frozen=True)
class ApiResponse:
    status_code: int
    body: Any = None

    @property
    def ok(self) -> bool:
        return self.status_code == HTTP_OK

    def message(self) -> str | None:
        """Error or status message the backend put in the body, if any."""
        if isinstance(self.body, dict):
            message = self.body.get("message")
            if isinstance(message, str) and message:
                return message
        return None


class BackendClient(Protocol):
    async def send(self, request: ApiRequest) -> ApiResponse:
        ...
