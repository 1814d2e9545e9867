import logging
import sys
import unittest
from pathlib import Path

import requests

# Ensure src/ is on sys.path so we can import the package without installation
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from vctags.client import VCenter  # noqa: E402
from vctags.config import parse_url  # noqa: E402
from vctags.context import Context  # noqa: E402
from vctags.errors import (  # noqa: E402
    APIError,
    CancelledError,
    DeadlineExceededError,
    NotAuthenticatedError,
    NotFoundError,
    PermissionDeniedError,
)


logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stdout,
    force=True,
)


class FakeResponse:
    def __init__(self, *, content=b"{}", json_payload=None, json_error=False, status_code=200):
        self.content = content
        self.status_code = status_code
        self._json_payload = json_payload
        self._json_error = json_error

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")

    def json(self):
        if self._json_error:
            raise ValueError("bad json")
        return self._json_payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def request(self, method, url, params=None, json=None, headers=None, auth=None, timeout=None):
        self.calls.append((method, url, params, json, headers, auth, timeout))
        if self.error is not None:
            raise self.error
        return self.response


def _client(session, **kwargs):
    endpoint = parse_url("vc.example.com:8443", "user", "pass", **kwargs)
    return VCenter(endpoint, http=session)


class ClientTests(unittest.TestCase):
    def test_request_builds_url_from_base(self):
        session = FakeSession(FakeResponse(json_payload={"ok": True}))
        client = _client(session)
        result = client.request("GET", "api/vcenter/vm", ctx=Context(), operation="list")
        self.assertEqual(result, {"ok": True})
        method, url, params, json, headers, auth, timeout = session.calls[0]
        self.assertEqual(method, "GET")
        self.assertEqual(url, "https://vc.example.com:8443/api/vcenter/vm")
        self.assertIsNone(params)
        self.assertIsNone(json)
        self.assertEqual(timeout, client.default_timeout)

    def test_request_passes_headers_auth_and_payload(self):
        session = FakeSession(FakeResponse(json_payload=[]))
        client = _client(session)
        client.request(
            "POST",
            "/rest/x",
            ctx=Context(),
            operation="x",
            params={"~action": "get"},
            json={"a": 1},
            headers={"vmware-api-session-id": "tok"},
            auth=("u", "p"),
        )
        _, _, params, json, headers, auth, _ = session.calls[0]
        self.assertEqual(params, {"~action": "get"})
        self.assertEqual(json, {"a": 1})
        self.assertEqual(headers, {"vmware-api-session-id": "tok"})
        self.assertEqual(auth, ("u", "p"))

    def test_request_timeout_comes_from_context_deadline(self):
        session = FakeSession(FakeResponse(json_payload={}))
        client = _client(session)
        client.request("GET", "/api/x", ctx=Context().with_timeout(5), operation="x")
        timeout = session.calls[0][6]
        self.assertGreater(timeout, 0)
        self.assertLessEqual(timeout, 5)

    def test_request_empty_body_returns_none(self):
        session = FakeSession(FakeResponse(content=b""))
        self.assertIsNone(_client(session).request("DELETE", "/api/session", ctx=Context(), operation="logout"))

    def test_request_non_json_raises(self):
        session = FakeSession(FakeResponse(content=b"<html>", json_error=True))
        with self.assertRaises(APIError) as caught:
            _client(session).request("GET", "/api/x", ctx=Context(), operation="list things")
        self.assertTrue(str(caught.exception).startswith("list things:"))

    def test_http_errors_map_to_status_classes(self):
        cases = {
            401: NotAuthenticatedError,
            403: PermissionDeniedError,
            404: NotFoundError,
            500: APIError,
        }
        for status, error_cls in cases.items():
            with self.subTest(status=status):
                session = FakeSession(FakeResponse(json_payload={}, status_code=status))
                with self.assertRaises(error_cls) as caught:
                    _client(session).request("GET", "/api/x", ctx=Context(), operation="probe")
                self.assertEqual(caught.exception.status_code, status)
                self.assertEqual(caught.exception.operation, "probe")

    def test_http_error_extracts_vsphere_messages(self):
        payload = {"error_type": "UNAUTHENTICATED", "messages": [{"default_message": "Session expired"}]}
        session = FakeSession(FakeResponse(json_payload=payload, status_code=401))
        with self.assertRaises(NotAuthenticatedError) as caught:
            _client(session).request("GET", "/api/x", ctx=Context(), operation="probe")
        self.assertIn("Session expired", str(caught.exception))
        self.assertEqual(caught.exception.error_type, "UNAUTHENTICATED")

    def test_http_error_extracts_legacy_rest_messages(self):
        payload = {"type": "com.vmware.vapi.std.errors.unauthorized", "value": {"messages": [{"default_message": "No privilege"}]}}
        session = FakeSession(FakeResponse(json_payload=payload, status_code=403))
        with self.assertRaises(PermissionDeniedError) as caught:
            _client(session).request("GET", "/rest/x", ctx=Context(), operation="probe")
        self.assertIn("No privilege", str(caught.exception))
        self.assertEqual(caught.exception.error_type, "UNAUTHORIZED")

    def test_http_error_uses_message_and_detail_fields(self):
        for payload, expected in (({"message": "boom"}, "boom"), ({"detail": "nope"}, "nope"), ({"error": "bad"}, "bad")):
            with self.subTest(payload=payload):
                session = FakeSession(FakeResponse(json_payload=payload, status_code=500))
                with self.assertRaises(APIError) as caught:
                    _client(session).request("GET", "/api/x", ctx=Context(), operation="op")
                self.assertIn(expected, str(caught.exception))

    def test_http_error_with_bad_json_body(self):
        session = FakeSession(FakeResponse(json_error=True, status_code=503))
        with self.assertRaises(APIError) as caught:
            _client(session).request("GET", "/api/x", ctx=Context(), operation="op")
        self.assertEqual(caught.exception.status_code, 503)
        self.assertIsNone(caught.exception.error_type)

    def test_transport_error_becomes_api_error(self):
        session = FakeSession(error=requests.ConnectionError("refused"))
        with self.assertRaises(APIError) as caught:
            _client(session).request("GET", "/api/x", ctx=Context(), operation="connect")
        self.assertIn("refused", str(caught.exception))
        self.assertIsNone(caught.exception.status_code)

    def test_cancelled_context_skips_the_call(self):
        session = FakeSession(FakeResponse(json_payload={}))
        ctx = Context()
        ctx.cancel()
        with self.assertRaises(CancelledError):
            _client(session).request("GET", "/api/x", ctx=ctx, operation="op")
        self.assertEqual(session.calls, [])

    def test_expired_context_skips_the_call(self):
        session = FakeSession(FakeResponse(json_payload={}))
        with self.assertRaises(DeadlineExceededError):
            _client(session).request("GET", "/api/x", ctx=Context().with_timeout(0), operation="op")
        self.assertEqual(session.calls, [])

    def test_default_http_session_tls_settings(self):
        insecure = VCenter(parse_url("vc.example.com", "u", "p", insecure_skip_verify=True))
        self.assertFalse(insecure._http.verify)
        with_ca = VCenter(parse_url("vc.example.com", "u", "p", tls_ca="/etc/ca.pem"))
        self.assertEqual(with_ca._http.verify, "/etc/ca.pem")
        default = VCenter(parse_url("vc.example.com", "u", "p"))
        self.assertTrue(default._http.verify)


if __name__ == "__main__":
    unittest.main()
