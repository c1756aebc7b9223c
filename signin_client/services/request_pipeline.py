"""Authenticated request pipeline."""

from __future__ import annotations

import logging
from typing import Any

from signin_client.constants import HTTP_UNAUTHORIZED
from signin_client.exceptions import AuthorizationExpired, RefreshFailed
from signin_client.interfaces.backend_client import ApiRequest, ApiResponse, BackendClient
from signin_client.services.credential_store import CredentialStore
from signin_client.services.token_refresh import TokenRefreshCoordinator

logger = logging.getLogger(__name__)


class AuthenticatedRequestPipeline:
    """
    Sends requests with the stored bearer token and heals one token expiry.

    A 401 on a fresh request triggers a shared refresh and a single resend
    carrying the token that refresh produced. Anything else, including a
    second 401, goes back to the caller.
    """

    def __init__(
        self,
        backend: BackendClient,
        credential_store: CredentialStore,
        refresh_coordinator: TokenRefreshCoordinator,
    ) -> None:
        self._backend = backend
        self._credentials = credential_store
        self._refresh = refresh_coordinator

    async def send(self, request: ApiRequest) -> ApiResponse:
        access_token = await self._credentials.access_token()
        outgoing = request.with_bearer(access_token) if access_token else request

        response = await self._backend.send(outgoing)
        if response.status_code != HTTP_UNAUTHORIZED:
            return response

        if request.retried:
            raise AuthorizationExpired(
                f"{request.method} {request.path} rejected after token refresh",
                response=response,
            )

        logger.info("%s %s returned 401, refreshing token", request.method, request.path)
        outcome = await self._refresh.refresh()
        if not outcome.succeeded:
            raise RefreshFailed(outcome.reason or "Token refresh failed", response=response)

        retry = request.mark_retried().with_bearer(outcome.access_token)
        response = await self._backend.send(retry)
        if response.status_code == HTTP_UNAUTHORIZED:
            raise AuthorizationExpired(
                f"{request.method} {request.path} rejected after token refresh",
                response=response,
            )
        return response

    async def post(self, path: str, payload: dict[str, Any] | None = None) -> ApiResponse:
        return await self.send(ApiRequest(method="POST", path=path, json=payload))
