"""
Sign-in client.

Encrypted credential storage, bearer-token request pipeline with single-flight
refresh, session state and the email/Google auth operations built on them.
"""

from signin_client.dependencies import AuthClient, build_auth_client
from signin_client.schemas import AuthResult, AuthSource, CredentialBundle, SessionState

__all__ = [
    "AuthClient",
    "AuthResult",
    "AuthSource",
    "CredentialBundle",
    "SessionState",
    "build_auth_client",
]
