"""Security utilities: at-rest encryption of stored values and PKCE."""

from __future__ import annotations

import base64
import hashlib
import logging
import os
import secrets
from pathlib import Path

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from signin_client.config import AuthConfig
from signin_client.exceptions import StorageUnavailable

logger = logging.getLogger(__name__)

_PREFIX = "enc:v1:"
_NONCE_SIZE = 12
KEY_SIZE = 32


def encrypt_value(plaintext: str, key: bytes, *, aad: str) -> str:
    """Seal a value with AES-256-GCM, binding it to ``aad``."""
    nonce = os.urandom(_NONCE_SIZE)
    ct = AESGCM(key).encrypt(nonce, plaintext.encode("utf-8"), aad.encode("utf-8"))
    return (
        _PREFIX
        + base64.b64encode(nonce).decode("ascii")
        + ":"
        + base64.b64encode(ct).decode("ascii")
    )


def decrypt_value(value: str, key: bytes, *, aad: str) -> str:
    """Open a value sealed by :func:`encrypt_value`.

    Raises:
        StorageUnavailable: the value is malformed, was sealed under another key,
            or was moved to another entry.
    """
    if not value.startswith(_PREFIX):
        raise StorageUnavailable("Stored value is not encrypted")
    parts = value[len(_PREFIX):].split(":", 1)
    if len(parts) != 2:
        raise StorageUnavailable("Corrupted encrypted value")
    try:
        nonce = base64.b64decode(parts[0], validate=True)
        ct = base64.b64decode(parts[1], validate=True)
    except ValueError as exc:
        raise StorageUnavailable("Corrupted encrypted value (base64)") from exc
    if len(nonce) != _NONCE_SIZE:
        raise StorageUnavailable("Corrupted encrypted value (nonce)")
    try:
        plaintext = AESGCM(key).decrypt(nonce, ct, aad.encode("utf-8"))
    except InvalidTag as exc:
        raise StorageUnavailable("Encrypted value failed authentication") from exc
    return plaintext.decode("utf-8")


def _decode_key(raw: str) -> bytes:
    try:
        key = base64.b64decode(raw.strip(), validate=True)
    except ValueError as exc:
        raise StorageUnavailable("CREDENTIALS_KEY must be valid base64") from exc
    if len(key) != KEY_SIZE:
        raise StorageUnavailable("CREDENTIALS_KEY must decode to exactly 32 bytes")
    return key


def load_storage_key(
    raw_key: str | None = AuthConfig.CREDENTIALS_KEY,
    key_file: str = AuthConfig.CREDENTIALS_KEY_FILE,
) -> bytes:
    """
    Return the 32-byte storage key.

    Sources, in order: ``raw_key`` (base64), then ``key_file`` (base64 text).
    When neither exists a new key is generated and written to ``key_file``
    with owner-only permissions.
    """
    if raw_key:
        return _decode_key(raw_key)

    key_path = Path(key_file).expanduser()
    try:
        if key_path.is_file():
            return _decode_key(key_path.read_text(encoding="utf-8"))

        key_path.parent.mkdir(parents=True, exist_ok=True)
        key = AESGCM.generate_key(bit_length=KEY_SIZE * 8)
        fd = os.open(key_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(base64.b64encode(key).decode("ascii"))
    except OSError as exc:
        raise StorageUnavailable(f"Cannot read or create storage key: {exc}") from exc

    logger.info("Generated new credential storage key at %s", key_path)
    return key


def generate_code_verifier() -> str:
    """PKCE code verifier (RFC 7636), 64 URL-safe characters."""
    return secrets.token_urlsafe(48)


def code_challenge(verifier: str) -> str:
    """S256 code challenge for a PKCE verifier."""
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


def generate_state() -> str:
    return secrets.token_urlsafe(24)
