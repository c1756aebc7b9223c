"""Single-flight refresh of the access/refresh token pair."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from pydantic import ValidationError

from signin_client.config import AuthConfig
from signin_client.constants import ENDPOINT_REFRESH_TOKEN
from signin_client.exceptions import AuthException
from signin_client.interfaces.backend_client import ApiRequest, BackendClient
from signin_client.schemas import TokenPair
from signin_client.services.credential_store import CredentialStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RefreshOutcome:
    access_token: str | None = None
    reason: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.access_token is not None


class TokenRefreshCoordinator:
    """
    Exchanges the stored refresh token for a new pair, once per wave of callers.

    The first caller creates the refresh task; callers arriving while it runs
    await the same task and get the same outcome. The task is forgotten only
    from its done-callback, i.e. after it has resolved, so the next refresh
    always starts a new exchange.
    """

    def __init__(
        self,
        backend: BackendClient,
        credential_store: CredentialStore,
        timeout: float = AuthConfig.REFRESH_TIMEOUT_SECONDS,
    ) -> None:
        self._backend = backend
        self._credentials = credential_store
        self._timeout = timeout
        self._inflight: asyncio.Task[RefreshOutcome] | None = None

    @property
    def in_flight(self) -> bool:
        return self._inflight is not None

    async def refresh(self) -> RefreshOutcome:
        task = self._inflight
        if task is None:
            task = asyncio.get_running_loop().create_task(self._run_bounded())
            task.add_done_callback(self._teardown)
            self._inflight = task
            logger.info("Token refresh started")
        else:
            logger.debug("Joining in-flight token refresh")
        # A cancelled waiter must not cancel the refresh other callers share
        return await asyncio.shield(task)

    def _teardown(self, task: asyncio.Task[RefreshOutcome]) -> None:
        if self._inflight is task:
            self._inflight = None

    async def _run_bounded(self) -> RefreshOutcome:
        """Run the exchange, store reads and writes included, under one deadline."""
        try:
            return await asyncio.wait_for(self._run(), timeout=self._timeout)
        except asyncio.TimeoutError:
            return _failed(f"Refresh timed out after {self._timeout}s")
        except Exception as exc:
            logger.exception("Token refresh failed unexpectedly")
            return RefreshOutcome(reason=f"Refresh error: {exc!r}")

    async def _run(self) -> RefreshOutcome:
        bundle, generation = await self._credentials.load_with_generation()
        if bundle is None:
            return _failed("No refresh token stored")

        request = ApiRequest(
            method="POST",
            path=ENDPOINT_REFRESH_TOKEN,
            json={"refreshToken": bundle.refresh_token},
        )
        try:
            response = await self._backend.send(request)
        except AuthException as exc:
            return _failed(f"Refresh request failed: {exc.message}")

        if not response.ok:
            return _failed(f"Refresh rejected with status {response.status_code}")

        try:
            tokens = TokenPair.model_validate(response.body)
        except ValidationError:
            return _failed("Refresh response malformed")

        try:
            committed = await self._credentials.replace_tokens(
                tokens, expected_generation=generation
            )
        except AuthException as exc:
            return _failed(f"Could not store refreshed tokens: {exc.message}")
        if not committed:
            return _failed("Credentials changed while refreshing")

        logger.info("Token refresh succeeded")
        return RefreshOutcome(access_token=tokens.access_token)


def _failed(reason: str) -> RefreshOutcome:
    logger.warning("Token refresh failed: %s", reason)
    return RefreshOutcome(reason=reason)
