"""Exception types raised by vctags."""

from __future__ import annotations

from typing import Optional


class VcTagsError(Exception):
    """Base class for every vctags error."""

    pass


class ConfigError(VcTagsError):
    """Raised when the plugin configuration is invalid or incomplete."""

    pass


class APIError(VcTagsError):
    """Raised when a remote vSphere call fails.

    The message always starts with the operation name so logs show which
    call failed.
    """

    def __init__(
        self,
        operation: str,
        message: str,
        *,
        status_code: Optional[int] = None,
        error_type: Optional[str] = None,
    ) -> None:
        self.operation = operation
        self.message = message
        self.status_code = status_code
        self.error_type = error_type
        super().__init__(f"{operation}: {message}")


class NotAuthenticatedError(APIError):
    """The remote side no longer honors the session (HTTP 401)."""


class PermissionDeniedError(APIError):
    """The session is valid but lacks the privilege for this call (HTTP 403)."""


class NotFoundError(APIError):
    """The requested remote object does not exist (HTTP 404)."""


class SessionError(VcTagsError):
    """Raised when a management or tagging session cannot be opened."""

    pass


class NotVCenterError(SessionError):
    """Raised when the endpoint answers but does not look like a vCenter."""

    pass


class QueryError(VcTagsError):
    """Raised when fetching inventory, categories or tags fails."""

    pass


class CancelledError(VcTagsError):
    """Raised at a call boundary once the context has been cancelled."""

    pass


class DeadlineExceededError(VcTagsError):
    """Raised at a call boundary once the refresh budget is spent."""

    pass


class LineProtocolError(VcTagsError):
    """Raised for lines that are not valid Influx line protocol."""

    pass


__all__ = [
    "APIError",
    "CancelledError",
    "ConfigError",
    "DeadlineExceededError",
    "LineProtocolError",
    "NotAuthenticatedError",
    "NotFoundError",
    "NotVCenterError",
    "PermissionDeniedError",
    "QueryError",
    "SessionError",
    "VcTagsError",
]
