"""Wiring of the sign-in client object graph."""

from __future__ import annotations

from dataclasses import dataclass

from signin_client.config import AuthConfig
from signin_client.interfaces.backend_client import BackendClient
from signin_client.interfaces.oauth_provider import OAuthProvider
from signin_client.interfaces.secure_storage import SecureStorage
from signin_client.security import load_storage_key
from signin_client.services.auth_service import AuthService
from signin_client.services.backend_client import HttpBackendClient
from signin_client.services.credential_store import CredentialStore
from signin_client.services.oauth_service import GoogleOAuthService, OAuthConfig, OpenAuthorization
from signin_client.services.request_pipeline import AuthenticatedRequestPipeline
from signin_client.services.session_state import SessionStateMachine
from signin_client.services.token_refresh import TokenRefreshCoordinator
from signin_client.stores.file_store import EncryptedFileStorage
from signin_client.stores.memory_store import MemorySecureStorage


@dataclass
class AuthClient:
    backend: BackendClient
    credentials: CredentialStore
    refresh: TokenRefreshCoordinator
    pipeline: AuthenticatedRequestPipeline
    session: SessionStateMachine
    auth_service: AuthService

    async def aclose(self) -> None:
        close = getattr(self.backend, "aclose", None)
        if close is not None:
            await close()


def get_secure_storage() -> SecureStorage:
    """Get credential storage based on AUTH_STORE config."""
    if AuthConfig.AUTH_STORE == "memory":
        return MemorySecureStorage()
    return EncryptedFileStorage(AuthConfig.CREDENTIALS_FILE, load_storage_key())


def build_auth_client(
    open_authorization: OpenAuthorization | None = None,
    *,
    storage: SecureStorage | None = None,
    backend: BackendClient | None = None,
    oauth_provider: OAuthProvider | None = None,
    oauth_config: OAuthConfig | None = None,
) -> AuthClient:
    """
    Build every collaborator and pass them to each other explicitly.

    Either ``open_authorization`` (the user agent hook for Google sign-in) or a
    ready ``oauth_provider`` must be given.
    """
    if oauth_provider is None:
        if open_authorization is None:
            raise ValueError("open_authorization or oauth_provider is required")
        oauth_provider = GoogleOAuthService(open_authorization)

    backend = backend or HttpBackendClient()
    credentials = CredentialStore(storage or get_secure_storage())
    refresh = TokenRefreshCoordinator(backend, credentials)
    pipeline = AuthenticatedRequestPipeline(backend, credentials, refresh)
    session = SessionStateMachine(credentials)
    auth_service = AuthService(
        pipeline=pipeline,
        credential_store=credentials,
        session=session,
        oauth_provider=oauth_provider,
        oauth_config=oauth_config,
    )
    return AuthClient(
        backend=backend,
        credentials=credentials,
        refresh=refresh,
        pipeline=pipeline,
        session=session,
        auth_service=auth_service,
    )
