"""Management and tagging sessions against a vCenter.

vCenter exposes inventory through the automation API (``/api``) and tags
through the CIS endpoint (``/rest/com/vmware/cis``). Each needs its own
authenticated session; the tagging one is opened over the transport of an
already valid management session. Handles are never repaired: a stale one is
dropped and a new one logged in.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Union

from .client import VCenter
from .context import Context
from .errors import (
    APIError,
    NotAuthenticatedError,
    NotVCenterError,
    PermissionDeniedError,
    SessionError,
)

logger = logging.getLogger(__name__)

SESSION_HEADER = "vmware-api-session-id"
LOGOUT_TIMEOUT = 10.0


class ManagementSession:
    """Automation API session used for inventory queries."""

    LOGIN_PATH = "/api/session"

    def __init__(self, client: VCenter, session_id: str) -> None:
        self.client = client
        self.session_id = session_id
        self._logger = logger

    @classmethod
    def login(cls, client: VCenter, ctx: Context) -> ManagementSession:
        """Authenticate with the endpoint credentials and return a new handle."""
        endpoint = client.endpoint
        try:
            token = client.request(
                "POST",
                cls.LOGIN_PATH,
                ctx=ctx,
                operation="login management session",
                auth=(endpoint.username, endpoint.password),
            )
        except APIError as exc:
            raise SessionError(str(exc)) from exc
        if not isinstance(token, str) or not token:
            raise NotVCenterError(f"login management session: endpoint {endpoint.base_url} does not look like a vCenter")
        return cls(client, token)

    def request(self, method: str, path: str, *, ctx: Context, operation: str, **kwargs: Any) -> Any:
        headers = {SESSION_HEADER: self.session_id}
        return self.client.request(method, path, ctx=ctx, operation=operation, headers=headers, **kwargs)

    def is_active(self, ctx: Context) -> bool:
        """Probe whether the remote side still honors this session."""
        self.request("GET", self.LOGIN_PATH, ctx=ctx, operation="check management session")
        return True

    def logout(self, ctx: Context) -> None:
        self.request("DELETE", self.LOGIN_PATH, ctx=ctx, operation="logout management session")


class TaggingSession:
    """CIS session used for tag and category queries."""

    LOGIN_PATH = "/rest/com/vmware/cis/session"

    def __init__(self, management: ManagementSession, session_id: str) -> None:
        self.client = management.client
        self.session_id = session_id
        self._logger = logger

    @classmethod
    def login(cls, management: ManagementSession, ctx: Context) -> TaggingSession:
        """Open a tagging session over a valid management session's transport."""
        endpoint = management.client.endpoint
        try:
            payload = management.client.request(
                "POST",
                cls.LOGIN_PATH,
                ctx=ctx,
                operation="login tagging session",
                auth=(endpoint.username, endpoint.password),
            )
        except APIError as exc:
            raise SessionError(str(exc)) from exc
        token = payload.get("value") if isinstance(payload, dict) else None
        if not isinstance(token, str) or not token:
            raise SessionError("login tagging session: response did not contain a session id")
        return cls(management, token)

    def request(self, method: str, path: str, *, ctx: Context, operation: str, **kwargs: Any) -> Any:
        """Send a request and unwrap the ``{"value": ...}`` envelope."""
        headers = {SESSION_HEADER: self.session_id}
        payload = self.client.request(method, path, ctx=ctx, operation=operation, headers=headers, **kwargs)
        if isinstance(payload, dict) and "value" in payload:
            return payload["value"]
        return payload

    def is_active(self, ctx: Context) -> bool:
        """Probe whether the remote side still honors this session."""
        self.request("POST", self.LOGIN_PATH, ctx=ctx, operation="check tagging session", params={"~action": "get"})
        return True

    def logout(self, ctx: Context) -> None:
        self.request("DELETE", self.LOGIN_PATH, ctx=ctx, operation="logout tagging session")


Session = Union[ManagementSession, TaggingSession]


class SessionManager:
    """Keeps one management and one tagging session open on demand."""

    def __init__(self, client: VCenter) -> None:
        self.client = client
        self.management: Optional[ManagementSession] = None
        self.tagging: Optional[TaggingSession] = None
        self._logger = logger

    def ensure_sessions(self, ctx: Context) -> None:
        """Reuse live sessions, replacing any that are missing or stale.

        Raises
        ------
        SessionError
            When either session cannot be opened. A management failure skips
            the tagging session entirely.
        """
        if not self.is_active(self.management, ctx):
            stale = (self.tagging, self.management)
            self.management = None
            self.tagging = None
            for session in stale:
                self._discard(session, ctx)
            self._logger.debug("Opening vCenter management session to %s", self.client.endpoint.base_url)
            self.management = ManagementSession.login(self.client, ctx)

        if not self.is_active(self.tagging, ctx):
            stale_tagging, self.tagging = self.tagging, None
            self._discard(stale_tagging, ctx)
            self._logger.debug("Opening vCenter tagging session to %s", self.client.endpoint.base_url)
            self.tagging = TaggingSession.login(self.management, ctx)

    def is_active(self, session: Optional[Session], ctx: Context) -> bool:
        """Best-effort liveness probe.

        A permission error from the probe itself means the credentials are
        narrowly scoped, not that the session is gone.
        """
        if session is None:
            return False
        try:
            return session.is_active(ctx)
        except PermissionDeniedError:
            return True
        except NotAuthenticatedError:
            return False
        except APIError as exc:
            self._logger.debug("Session probe failed, reopening: %s", exc)
            return False

    def _discard(self, session: Optional[Session], ctx: Context) -> None:
        """Best-effort logout of a handle that is about to be replaced."""
        if session is None:
            return
        try:
            session.logout(ctx)
        except APIError as exc:
            self._logger.debug("Ignoring logout failure for replaced session: %s", exc)

    def drop_tagging(self) -> None:
        """Forget the tagging session so the next cycle logs in again."""
        self.tagging = None

    def close(self, ctx: Optional[Context] = None) -> None:
        """Log out of both sessions, ignoring any failure."""
        if ctx is None:
            ctx = Context().with_timeout(LOGOUT_TIMEOUT)
        for session in (self.tagging, self.management):
            if session is None:
                continue
            try:
                session.logout(ctx)
            except Exception as exc:  # noqa: BLE001 - logout must never block shutdown
                self._logger.debug("Ignoring logout failure: %s", exc)
        self.tagging = None
        self.management = None


__all__ = [
    "LOGOUT_TIMEOUT",
    "ManagementSession",
    "SESSION_HEADER",
    "SessionManager",
    "TaggingSession",
]
