"""Google OAuth service (authorization code flow with PKCE)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable
from urllib.parse import parse_qs, urlencode, urlsplit

import httpx

from signin_client.config import AuthConfig
from signin_client.exceptions import AuthException, UserCancelled
from signin_client.interfaces.oauth_provider import OAuthTokens
from signin_client.security import code_challenge, generate_code_verifier, generate_state

logger = logging.getLogger(__name__)

# Opens the authorization URL in the user agent and resolves with the
# redirect URL it lands on, or None when the user closes the flow.
OpenAuthorization = Callable[[str], Awaitable[str | None]]


@dataclass(frozen=True)
class OAuthConfig:
    issuer: str
    client_id: str
    redirect_url: str
    scopes: tuple[str, ...] = ("openid", "profile", "email")
    use_pkce: bool = True
    authorization_endpoint: str = AuthConfig.GOOGLE_AUTHORIZATION_ENDPOINT
    token_endpoint: str = AuthConfig.GOOGLE_TOKEN_ENDPOINT

    @classmethod
    def from_env(cls) -> OAuthConfig:
        if not AuthConfig.GOOGLE_CLIENT_ID or not AuthConfig.GOOGLE_REDIRECT_URL:
            raise AuthException("Google OAuth not configured", status_code=500)
        return cls(
            issuer=AuthConfig.GOOGLE_ISSUER,
            client_id=AuthConfig.GOOGLE_CLIENT_ID,
            redirect_url=AuthConfig.GOOGLE_REDIRECT_URL,
            scopes=tuple(AuthConfig.GOOGLE_SCOPES.split()),
            use_pkce=AuthConfig.GOOGLE_USE_PKCE,
        )


@dataclass(frozen=True)
class AuthorizationRequest:
    url: str
    state: str
    code_verifier: str | None


class GoogleOAuthService:
    def __init__(
        self,
        open_authorization: OpenAuthorization,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._open_authorization = open_authorization
        self._transport = transport

    def build_authorization_request(self, config: OAuthConfig) -> AuthorizationRequest:
        state = generate_state()
        params = {
            "client_id": config.client_id,
            "redirect_uri": config.redirect_url,
            "response_type": "code",
            "scope": " ".join(config.scopes),
            "state": state,
            "prompt": "select_account",
        }
        verifier = None
        if config.use_pkce:
            verifier = generate_code_verifier()
            params["code_challenge"] = code_challenge(verifier)
            params["code_challenge_method"] = "S256"
        return AuthorizationRequest(
            url=f"{config.authorization_endpoint}?{urlencode(params)}",
            state=state,
            code_verifier=verifier,
        )

    async def authorize(self, config: OAuthConfig) -> OAuthTokens:
        request = self.build_authorization_request(config)
        redirect = await self._open_authorization(request.url)
        if redirect is None:
            raise UserCancelled()

        params = parse_qs(urlsplit(redirect).query)
        error = _first(params, "error")
        if error == "access_denied":
            raise UserCancelled()
        if error:
            raise AuthException(f"Google authorization failed: {error}", status_code=400)
        if _first(params, "state") != request.state:
            raise AuthException("Invalid OAuth state parameter", status_code=400)
        code = _first(params, "code")
        if not code:
            raise AuthException("Google redirect missing authorization code", status_code=400)

        return await self._exchange_code(config, code, request.code_verifier)

    async def _exchange_code(
        self, config: OAuthConfig, code: str, code_verifier: str | None
    ) -> OAuthTokens:
        token_payload = {
            "code": code,
            "client_id": config.client_id,
            "redirect_uri": config.redirect_url,
            "grant_type": "authorization_code",
        }
        if code_verifier:
            token_payload["code_verifier"] = code_verifier

        try:
            async with httpx.AsyncClient(timeout=10, transport=self._transport) as client:
                token_response = await client.post(
                    config.token_endpoint,
                    data=token_payload,
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                )
        except httpx.HTTPError as exc:
            raise AuthException(f"Google token endpoint unreachable: {exc}", status_code=503) from exc

        if token_response.status_code != 200:
            logger.error("Google code exchange failed with %d", token_response.status_code)
            raise AuthException("Failed to exchange Google code", status_code=400)
        try:
            token_data = token_response.json()
        except ValueError as exc:
            raise AuthException("Google token response malformed", status_code=400) from exc

        id_token = token_data.get("id_token") if isinstance(token_data, dict) else None
        access_token = token_data.get("access_token") if isinstance(token_data, dict) else None
        if not id_token or not access_token:
            raise AuthException("Google token missing id or access token", status_code=400)
        return OAuthTokens(id_token=id_token, access_token=access_token)


def _first(params: dict[str, list[str]], name: str) -> str | None:
    values = params.get(name)
    return values[0] if values else None
