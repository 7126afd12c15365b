"""Custom exception hierarchy for quvo."""

from __future__ import annotations


class QuvoError(Exception):
    """Base exception for all quvo errors."""


class QuvoConfigError(QuvoError):
    """Invalid or missing configuration."""


class QuvoStorageError(QuvoError):
    """Durable key/value storage could not be read or written."""


class QuvoTransportError(QuvoError):
    """HTTP-level failure (network, timeout, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class QuvoRequestFailedError(QuvoTransportError):
    """The backend answered with a non-2xx status.

    A 401 only surfaces here after the single re-login and retry has
    already been spent.
    """

    def __init__(self, message: str, *, status_code: int, endpoint: str = "") -> None:
        super().__init__(message, status_code=status_code, endpoint=endpoint)


class QuvoAuthenticationError(QuvoError):
    """Login failed or the login response was malformed."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class QuvoPermissionDeniedError(QuvoError):
    """The caller's role is not allowed to perform a mutating operation."""

    def __init__(self, message: str, *, role: str = "", action: str = "") -> None:
        self.role = role
        self.action = action
        super().__init__(message)
