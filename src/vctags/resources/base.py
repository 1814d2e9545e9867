"""Base resource helpers."""

from __future__ import annotations

from typing import Any, Optional, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from ..context import Context
    from ..sessions import Session


class Resource:
    """Shared helpers for resource classes bound to one session."""

    def __init__(self, session: "Session") -> None:
        self._session = session

    @property
    def _logger(self):
        return self._session._logger

    def _request(
        self,
        method: str,
        path: str,
        *,
        ctx: "Context",
        operation: str,
        params: Optional[dict[str, Any]] = None,
        json: Optional[dict[str, Any]] = None,
    ) -> Any:
        return self._session.request(method, path, ctx=ctx, operation=operation, params=params, json=json)

    def _get(
        self,
        path: str,
        *,
        ctx: "Context",
        operation: str,
        params: Optional[dict[str, Any]] = None,
    ) -> Any:
        return self._request("GET", path, ctx=ctx, operation=operation, params=params)

    def _post(
        self,
        path: str,
        *,
        ctx: "Context",
        operation: str,
        params: Optional[dict[str, Any]] = None,
        json: Optional[dict[str, Any]] = None,
    ) -> Any:
        return self._request("POST", path, ctx=ctx, operation=operation, params=params, json=json)
