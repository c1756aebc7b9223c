"""OAuth provider interface."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from signin_client.services.oauth_service import OAuthConfig


@dataclass(frozen=True)
class OAuthTokens:
    id_token: str
    access_token: str


class OAuthProvider(Protocol):
    async def authorize(self, config: OAuthConfig) -> OAuthTokens:
        """Run the handshake; raises UserCancelled when the user backs out."""
        ...
