"""Auth operations driven by the UI layer."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

from pydantic import ValidationError

from signin_client.constants import (
    ENDPOINT_FORGOT_PASSWORD,
    ENDPOINT_GOOGLE_LOGIN,
    ENDPOINT_LOGIN,
    ENDPOINT_LOGOUT,
    ENDPOINT_REGISTER,
    ENDPOINT_RESET_PASSWORD,
    MSG_FORGOT_FAILED,
    MSG_FORGOT_SENT,
    MSG_GENERIC_ERROR,
    MSG_GOOGLE_FAILED,
    MSG_INVALID_INPUT,
    MSG_LOGIN_SUCCESS,
    MSG_LOGOUT_FAILED,
    MSG_LOGOUT_SUCCESS,
    MSG_NO_USER,
    MSG_REGISTER_FAILED,
    MSG_REGISTER_SUCCESS,
    MSG_REQUEST_UNAVAILABLE,
    MSG_RESET_FAILED,
    MSG_RESET_SUCCESS,
    MSG_RESET_TOKEN_MISSING,
)
from signin_client.exceptions import (
    AuthException,
    BackendRejected,
    RefreshFailed,
    StorageUnavailable,
    UserCancelled,
)
from signin_client.interfaces.backend_client import ApiRequest, ApiResponse
from signin_client.interfaces.oauth_provider import OAuthProvider
from signin_client.schemas import (
    AuthResult,
    AuthSource,
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    SessionResponse,
)
from signin_client.services.credential_store import CredentialStore
from signin_client.services.oauth_service import OAuthConfig
from signin_client.services.request_pipeline import AuthenticatedRequestPipeline
from signin_client.services.session_state import SessionStateMachine

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(
        self,
        pipeline: AuthenticatedRequestPipeline,
        credential_store: CredentialStore,
        session: SessionStateMachine,
        oauth_provider: OAuthProvider,
        oauth_config: OAuthConfig | None = None,
    ) -> None:
        self._pipeline = pipeline
        self._credentials = credential_store
        self._session = session
        self._oauth = oauth_provider
        self._oauth_config = oauth_config

    async def login_user(self, email: str, password: str) -> AuthResult:
        try:
            payload = LoginRequest(email=email, password=password)
        except ValidationError:
            return AuthResult(success=False, message=MSG_INVALID_INPUT)
        return await self._open_session(
            ENDPOINT_LOGIN,
            payload.model_dump(),
            AuthSource.FORM,
            success_message=MSG_LOGIN_SUCCESS,
            failure_message=MSG_GENERIC_ERROR,
        )

    async def register_user(self, name: str, email: str, password: str) -> AuthResult:
        try:
            payload = RegisterRequest(name=name, email=email, password=password)
        except ValidationError:
            return AuthResult(success=False, message=MSG_INVALID_INPUT)
        return await self._open_session(
            ENDPOINT_REGISTER,
            payload.model_dump(),
            AuthSource.FORM,
            success_message=MSG_REGISTER_SUCCESS,
            failure_message=MSG_REGISTER_FAILED,
        )

    async def google_login(self) -> AuthResult:
        try:
            config = self._oauth_config or OAuthConfig.from_env()
            oauth_tokens = await self._oauth.authorize(config)
        except UserCancelled:
            logger.info("Google sign-in cancelled by user")
            return AuthResult(success=False, silent=True)
        except AuthException as exc:
            logger.error("Google authorization failed: %s", exc.message)
            return AuthResult(success=False, message=MSG_GOOGLE_FAILED)

        return await self._open_session(
            ENDPOINT_GOOGLE_LOGIN,
            {"idToken": oauth_tokens.id_token, "accessToken": oauth_tokens.access_token},
            AuthSource.GOOGLE,
            success_message=MSG_LOGIN_SUCCESS,
            failure_message=MSG_GOOGLE_FAILED,
        )

    async def forgot_password(self, email: str) -> AuthResult:
        try:
            payload = ForgotPasswordRequest(email=email)
        except ValidationError:
            return AuthResult(success=False, message=MSG_INVALID_INPUT)

        try:
            response = await self._pipeline.post(ENDPOINT_FORGOT_PASSWORD, payload.model_dump())
        except AuthException as exc:
            logger.error("Forgot-password request failed: %s", exc.message)
            return AuthResult(success=False, message=MSG_REQUEST_UNAVAILABLE)

        if not response.ok:
            return AuthResult(success=False, message=response.message() or MSG_FORGOT_FAILED)
        logger.info("Password reset e-mail requested")
        return AuthResult(success=True, message=MSG_FORGOT_SENT)

    async def reset_password(self, token: str, password: str) -> AuthResult:
        if not token or not token.strip():
            return AuthResult(success=False, message=MSG_RESET_TOKEN_MISSING)
        try:
            payload = ResetPasswordRequest(password=password)
        except ValidationError:
            return AuthResult(success=False, message=MSG_INVALID_INPUT)

        path = ENDPOINT_RESET_PASSWORD.format(token=quote(token.strip(), safe=""))
        try:
            response = await self._pipeline.post(path, payload.model_dump())
        except AuthException as exc:
            logger.error("Reset-password request failed: %s", exc.message)
            return AuthResult(success=False, message=_failure_message(exc, MSG_RESET_FAILED))

        if not response.ok:
            return AuthResult(success=False, message=response.message() or MSG_RESET_FAILED)

        if self._session.is_authenticated or await self._credentials.load() is not None:
            # Tokens issued before the password change must not stay usable
            logger.info("Password reset while signed in, ending session")
            try:
                await self._session.logout()
            except StorageUnavailable as exc:
                logger.error("Could not clear credentials after reset: %s", exc.message)
        return AuthResult(success=True, message=MSG_RESET_SUCCESS)

    async def logout_user(self) -> AuthResult:
        bundle = await self._credentials.load()
        if bundle is None:
            return AuthResult(success=False, message=MSG_NO_USER)

        try:
            response = await self._pipeline.post(
                ENDPOINT_LOGOUT, {"refreshToken": bundle.refresh_token}
            )
            if not response.ok:
                logger.warning("Backend logout returned %d", response.status_code)
        except AuthException as exc:
            logger.warning("Backend logout failed, clearing local session anyway: %s", exc.message)

        try:
            await self._session.logout()
        except StorageUnavailable as exc:
            logger.error("Failed to clear credentials on logout: %s", exc.message)
            return AuthResult(success=False, message=MSG_LOGOUT_FAILED)
        return AuthResult(success=True, message=MSG_LOGOUT_SUCCESS)

    async def authenticated_request(
        self, method: str, path: str, payload: dict[str, Any] | None = None
    ) -> ApiResponse:
        """Send an app request; an unrecoverable refresh ends the session."""
        try:
            return await self._pipeline.send(ApiRequest(method=method, path=path, json=payload))
        except RefreshFailed:
            logger.warning("Session expired, forcing logout")
            try:
                await self._session.logout()
            except StorageUnavailable as exc:
                logger.error("Failed to clear credentials after expiry: %s", exc.message)
            raise

    async def _open_session(
        self,
        path: str,
        payload: dict[str, Any],
        auth_source: AuthSource,
        success_message: str,
        failure_message: str,
    ) -> AuthResult:
        try:
            response = await self._pipeline.post(path, payload)
            if not response.ok:
                raise BackendRejected(
                    f"{path} returned {response.status_code}",
                    status_code=response.status_code,
                    response=response,
                )
            try:
                session = SessionResponse.model_validate(response.body)
            except ValidationError as exc:
                raise BackendRejected(f"{path} returned a malformed body") from exc
            await self._credentials.save(session.to_bundle(auth_source))
        except AuthException as exc:
            logger.error("%s failed: %s", path, exc.message)
            return AuthResult(success=False, message=_failure_message(exc, failure_message))

        self._session.login()
        logger.info("Signed in via %s", auth_source.value)
        return AuthResult(success=True, message=success_message, data=response.body)


def _failure_message(exc: AuthException, default: str) -> str:
    """Prefer the backend's own message when the failure carries a response."""
    if exc.response is not None:
        return exc.response.message() or default
    return default
