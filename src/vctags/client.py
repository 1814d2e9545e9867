"""HTTP transport bound to one vCenter endpoint."""

from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from .config import Endpoint
from .context import Context
from .errors import APIError, NotAuthenticatedError, NotFoundError, PermissionDeniedError

_STATUS_ERRORS: dict[int, type[APIError]] = {
    401: NotAuthenticatedError,
    403: PermissionDeniedError,
    404: NotFoundError,
}


def _error_message(exc: Exception, response: Any) -> str:
    """Extract the most useful server message from an error response."""
    error_msg = str(exc)
    try:
        error_body = response.json()
    except (ValueError, AttributeError):
        return error_msg  # Response wasn't JSON
    if not isinstance(error_body, dict):
        return error_msg

    # Legacy /rest endpoints wrap the error under "value"
    value = error_body.get("value")
    if isinstance(value, dict) and "messages" in value:
        error_body = value
    messages = error_body.get("messages")
    if isinstance(messages, list):
        texts = [m.get("default_message") for m in messages if isinstance(m, dict)]
        texts = [text for text in texts if isinstance(text, str) and text]
        if texts:
            return f"{error_msg}\nServer message: {'; '.join(texts)}"
    if "message" in error_body:
        return f"{error_msg}\nServer message: {error_body['message']}"
    if "error" in error_body:
        return f"{error_msg}\nServer error: {error_body['error']}"
    if "detail" in error_body:
        return f"{error_msg}\nDetails: {error_body['detail']}"
    return error_msg


def _error_type(response: Any) -> Optional[str]:
    """Return the vSphere error type, e.g. ``UNABLE_TO_ALLOCATE_RESOURCE``."""
    try:
        error_body = response.json()
    except (ValueError, AttributeError):
        return None
    if not isinstance(error_body, dict):
        return None
    error_type = error_body.get("error_type")
    if isinstance(error_type, str):
        return error_type.upper()
    # Legacy /rest endpoints name the error "com.vmware.vapi.std.errors.<type>"
    legacy_type = error_body.get("type")
    if isinstance(legacy_type, str):
        return legacy_type.rsplit(".", 1)[-1].upper()
    return None


class VCenter:
    """Transport for the vCenter REST APIs.

    Owns a single :class:`requests.Session` so both the management and the
    tagging session share connections and TLS settings.
    """

    def __init__(
        self,
        endpoint: Endpoint,
        *,
        default_timeout: float = 20,
        http: Optional[requests.Session] = None,
    ) -> None:
        """Create a transport for ``endpoint``.

        Parameters
        ----------
        endpoint
            Target vCenter and credentials.
        default_timeout
            Request timeout in seconds used when the context has no deadline.
        http
            Optional requests session, mostly useful for tests.
        """
        self.endpoint = endpoint
        self.default_timeout = default_timeout
        self._logger = logging.getLogger(__name__)
        self._http = http or self._build_http(endpoint)

    @staticmethod
    def _build_http(endpoint: Endpoint) -> requests.Session:
        http = requests.Session()
        if endpoint.insecure_skip_verify:
            http.verify = False
        elif endpoint.tls_ca:
            http.verify = endpoint.tls_ca
        return http

    def request(
        self,
        method: str,
        path: str,
        *,
        ctx: Context,
        operation: str,
        params: Optional[dict[str, Any]] = None,
        json: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
        auth: Optional[tuple[str, str]] = None,
    ) -> Any:
        """Send a request to the vCenter and return its parsed JSON body.

        Parameters
        ----------
        method
            HTTP method (GET, POST, DELETE).
        path
            Endpoint path starting with ``/api`` or ``/rest``.
        ctx
            Cancellation context; its remaining budget bounds the request.
        operation
            Human readable operation name used to prefix errors.
        params
            Query parameters for the request.
        json
            JSON payload for the request.
        headers
            Extra headers, typically the session token.
        auth
            Basic auth credentials, only used to log in.

        Returns
        -------
        Any
            Parsed JSON payload, or None if the response is empty.

        Raises
        ------
        APIError
            On HTTP errors, transport failures or a non-JSON body.
        """
        ctx.check(operation)
        timeout = ctx.remaining()
        if timeout is None:
            timeout = self.default_timeout

        if not path.startswith("/"):
            path = "/" + path
        url = f"{self.endpoint.base_url}{path}"

        response = None
        try:
            response = self._http.request(
                method,
                url,
                params=params,
                json=json,
                headers=headers,
                auth=auth,
                timeout=timeout,
            )
            response.raise_for_status()
        except requests.HTTPError as exc:
            status = getattr(response, "status_code", None)
            error_cls = _STATUS_ERRORS.get(status, APIError) if status is not None else APIError
            error_msg = _error_message(exc, response)
            self._logger.debug("Request failed for %s %s: %s", method, url, error_msg)
            raise error_cls(operation, error_msg, status_code=status, error_type=_error_type(response)) from exc
        except requests.RequestException as exc:
            self._logger.debug("Request failed for %s %s: %s", method, url, exc)
            raise APIError(operation, str(exc)) from exc

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise APIError(operation, "response was not JSON") from exc

    def close(self) -> None:
        """Release pooled connections."""
        self._http.close()


__all__ = ["VCenter"]
