"""Sign-in client configuration management."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env file before reading config
env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path, override=True)
else:
    load_dotenv(override=True)


def _parse_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


_DEFAULT_STATE_DIR = Path(os.path.expanduser("~")) / ".signin-client"


@dataclass(frozen=True)
class AuthConfig:
    """Configuration values for the sign-in client."""

    API_BASE_URL: str = os.getenv("API_BASE_URL", "http://localhost:3000")
    REQUEST_TIMEOUT_SECONDS: float = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "10"))
    REFRESH_TIMEOUT_SECONDS: float = float(os.getenv("REFRESH_TIMEOUT_SECONDS", "10"))

    # Credential storage: "file" (encrypted on disk) or "memory" (testing)
    AUTH_STORE: str = os.getenv("AUTH_STORE", "file")
    CREDENTIALS_FILE: str = os.getenv(
        "CREDENTIALS_FILE", str(_DEFAULT_STATE_DIR / "credentials.json")
    )
    CREDENTIALS_KEY: str | None = os.getenv("CREDENTIALS_KEY")
    CREDENTIALS_KEY_FILE: str = os.getenv(
        "CREDENTIALS_KEY_FILE", str(_DEFAULT_STATE_DIR / "credentials.key")
    )

    GOOGLE_ISSUER: str = os.getenv("GOOGLE_ISSUER", "https://accounts.google.com")
    GOOGLE_CLIENT_ID: str | None = os.getenv("GOOGLE_CLIENT_ID")
    GOOGLE_REDIRECT_URL: str | None = os.getenv("GOOGLE_REDIRECT_URL")
    GOOGLE_SCOPES: str = os.getenv("GOOGLE_SCOPES", "openid profile email")
    GOOGLE_USE_PKCE: bool = _parse_bool(os.getenv("GOOGLE_USE_PKCE"), True)
    GOOGLE_AUTHORIZATION_ENDPOINT: str = os.getenv(
        "GOOGLE_AUTHORIZATION_ENDPOINT", "https://accounts.google.com/o/oauth2/v2/auth"
    )
    GOOGLE_TOKEN_ENDPOINT: str = os.getenv(
        "GOOGLE_TOKEN_ENDPOINT", "https://oauth2.googleapis.com/token"
    )

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_JSON: bool = _parse_bool(os.getenv("LOG_JSON"), False)
