"""HTTP backend client."""

from __future__ import annotations

import logging

import httpx

from signin_client.config import AuthConfig
from signin_client.exceptions import BackendUnavailable
from signin_client.interfaces.backend_client import ApiRequest, ApiResponse

logger = logging.getLogger(__name__)


class HttpBackendClient:
    def __init__(
        self,
        base_url: str = AuthConfig.API_BASE_URL,
        timeout: float = AuthConfig.REQUEST_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def send(self, request: ApiRequest) -> ApiResponse:
        try:
            response = await self._client.request(
                request.method,
                request.path,
                json=request.json,
                headers=request.headers,
            )
        except httpx.HTTPError as exc:
            logger.error("%s %s failed: %s", request.method, request.path, exc)
            raise BackendUnavailable(f"API connection error: {exc}") from exc

        try:
            body = response.json()
        except ValueError:
            logger.debug(
                "%s %s returned a non-JSON body (status %d)",
                request.method,
                request.path,
                response.status_code,
            )
            body = None

        logger.info("%s %s -> %d", request.method, request.path, response.status_code)
        return ApiResponse(status_code=response.status_code, body=body)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> HttpBackendClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
