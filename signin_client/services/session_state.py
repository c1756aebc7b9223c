"""Session state machine gating which screens the UI may mount."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from signin_client.schemas import SessionState
from signin_client.services.credential_store import CredentialStore

logger = logging.getLogger(__name__)

SessionListener = Callable[[SessionState], None]


class SessionStateMachine:
    """
    Loading -> Authenticated | Unauthenticated.

    ``start()`` performs the single initial store read; after it completes
    ``is_loading`` stays False for the life of the object. ``login()`` and
    ``logout()`` move between the two settled states.
    """

    def __init__(self, credential_store: CredentialStore) -> None:
        self._credentials = credential_store
        self._state = SessionState(is_loading=True, is_authenticated=False)
        self._listeners: list[SessionListener] = []
        self._start_task: asyncio.Task[SessionState] | None = None
        self._changed_while_loading = False

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_loading(self) -> bool:
        return self._state.is_loading

    @property
    def is_authenticated(self) -> bool:
        return self._state.is_authenticated

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def start(self) -> SessionState:
        if self._start_task is None:
            self._start_task = asyncio.get_running_loop().create_task(self._initial_load())
        return await asyncio.shield(self._start_task)

    async def _initial_load(self) -> SessionState:
        # load() already maps storage failures to "no bundle"
        try:
            bundle = await self._credentials.load()
            authenticated = bool(bundle and bundle.access_token)
        except Exception:
            logger.exception("Initial credential read failed, starting signed out")
            authenticated = False

        if self._changed_while_loading:
            authenticated = self._state.is_authenticated
        self._set(SessionState(is_loading=False, is_authenticated=authenticated))
        logger.info("Session settled: authenticated=%s", authenticated)
        return self._state

    def login(self) -> None:
        """Mark the session authenticated. The bundle must already be saved."""
        self._transition(True)

    async def logout(self) -> None:
        """Clear stored credentials and mark the session unauthenticated.

        The flag flips even when clearing fails; the storage error is re-raised.
        """
        try:
            await self._credentials.clear()
        finally:
            self._transition(False)

    def _transition(self, authenticated: bool) -> None:
        if self._state.is_loading:
            self._changed_while_loading = True
        self._set(self._state.model_copy(update={"is_authenticated": authenticated}))
        logger.info("Session authenticated=%s", authenticated)

    def _set(self, state: SessionState) -> None:
        if state == self._state:
            return
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("Session listener failed")
