"""Sign-in client exceptions."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from signin_client.interfaces.backend_client import ApiResponse


class AuthException(Exception):
    """Base auth exception with HTTP status and the backend response, if any."""

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        response: ApiResponse | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response = response


class InvalidCredential(AuthException):
    """A credential bundle with a missing or empty field was handed to the store."""


class StorageUnavailable(AuthException):
    """Encrypted storage could not be read or written."""

    def __init__(self, message: str, response: ApiResponse | None = None):
        super().__init__(message, status_code=500, response=response)


class AuthorizationExpired(AuthException):
    """A request was rejected with 401 and may not be retried again."""

    def __init__(self, message: str, response: ApiResponse | None = None):
        super().__init__(message, status_code=401, response=response)


class RefreshFailed(AuthException):
    """The refresh token could not be exchanged for a new token pair."""

    def __init__(self, message: str, response: ApiResponse | None = None):
        super().__init__(message, status_code=401, response=response)


class BackendRejected(AuthException):
    """The backend answered with an error status or an unusable body."""


class BackendUnavailable(AuthException):
    """The backend could not be reached."""

    def __init__(self, message: str, response: ApiResponse | None = None):
        super().__init__(message, status_code=503, response=response)


class UserCancelled(AuthException):
    """The user cancelled the OAuth handshake."""

    def __init__(self, message: str = "User cancelled flow"):
        super().__init__(message, status_code=499)
