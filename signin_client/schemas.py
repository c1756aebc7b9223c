"""Sign-in client schemas."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class AuthSource(str, Enum):
    FORM = "form"
    GOOGLE = "google"


class TokenPair(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    access_token: str = Field(alias="accessToken", min_length=1)
    refresh_token: str = Field(alias="refreshToken", min_length=1)


class CredentialBundle(BaseModel):
    """Profile, auth source and token pair, persisted as one unit."""

    model_config = ConfigDict(frozen=True)

    user: dict[str, Any]
    auth_source: AuthSource
    access_token: str
    refresh_token: str

    def with_tokens(self, tokens: TokenPair) -> CredentialBundle:
        return self.model_copy(
            update={
                "access_token": tokens.access_token,
                "refresh_token": tokens.refresh_token,
            }
        )


class SessionResponse(BaseModel):
    """Success body of /login, /register and /google-login."""

    tokens: TokenPair
    user: dict[str, Any] = Field(min_length=1)

    def to_bundle(self, auth_source: AuthSource) -> CredentialBundle:
        return CredentialBundle(
            user=self.user,
            auth_source=auth_source,
            access_token=self.tokens.access_token,
            refresh_token=self.tokens.refresh_token,
        )


class SessionState(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_loading: bool = True
    is_authenticated: bool = False


class AuthResult(BaseModel):
    success: bool
    message: str | None = None
    silent: bool = False
    data: dict[str, Any] | None = None


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=128)


class RegisterRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(min_length=6, max_length=128)


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    password: str = Field(min_length=8, max_length=128)
