"""Tests for the client and its transports.

The client is the front desk: it stamps each outgoing form with the
house defaults (user agent, standard headers, protocol version), hands
it to a courier (transport), and writes what happened in the log book.
"""

import io
import urllib.error
import urllib.request
from email.message import Message
from typing import Any

import pytest

from stream_http.client import Client, RawResponse, UrllibTransport, WsgiTransport
from stream_http.config import DEFAULT_TIMEOUT, DEFAULT_USER_AGENT, ClientConfig
from stream_http.errors import InvalidArgumentError, TransportError, UnexpectedTypeError
from stream_http.logging import LogLevel
from stream_http.request import Request

STATUS_OK = 200
STATUS_CREATED = 201
STATUS_NOT_FOUND = 404
SHORT_TIMEOUT = 1.5


class RecordingTransport:
    """Transport double that remembers what it was asked to send."""

    def __init__(self, response: RawResponse | None = None) -> None:
        """Reply with *response* (200, empty body by default)."""
        self.response = response or RawResponse(status=STATUS_OK)
        self.sent: list[tuple[Request, float]] = []

    def send(self, request: Request, *, timeout: float = DEFAULT_TIMEOUT) -> RawResponse:
        """Record the call and return the canned response."""
        self.sent.append((request, timeout))
        return self.response


class FailingTransport:
    """Transport double that can never connect."""

    def send(self, request: Request, *, timeout: float = DEFAULT_TIMEOUT) -> RawResponse:
        """Always raise a TransportError."""
        msg = f"connection refused for {request.request_target} after {timeout}s"
        raise TransportError(msg)


def _echo_app(environ: dict[str, Any], start_response: Any) -> list[bytes]:
    """Tiny WSGI app that echoes the request line and selected headers."""
    body = environ["wsgi.input"].read(int(environ.get("CONTENT_LENGTH") or 0))
    lines = [
        f"{environ['REQUEST_METHOD']} {environ['PATH_INFO']}?{environ['QUERY_STRING']}",
        f"host={environ.get('HTTP_HOST', '')}",
        f"agent={environ.get('HTTP_USER_AGENT', '')}",
        f"type={environ.get('CONTENT_TYPE', '')}",
        f"protocol={environ['SERVER_PROTOCOL']}",
    ]
    start_response("201 Created", [("Content-Type", "text/plain"), ("X-Echo", "1")])
    return ["\n".join(lines).encode(), b"\n", body]


# ---------------------------------------------------------------------------
# Cycle 1: RawResponse
# ---------------------------------------------------------------------------


class TestRawResponse:
    """Verify the unparsed response carrier."""

    def test_header_lookup_is_case_insensitive(self) -> None:
        """header() finds the first matching pair in any case."""
        response = RawResponse(status=STATUS_OK, headers=(("Content-Type", "text/plain"),))
        assert response.header("content-type") == "text/plain"
        assert response.header("X-Missing") is None


# ---------------------------------------------------------------------------
# Cycle 2: Client preparation and logging
# ---------------------------------------------------------------------------


class TestClient:
    """Verify defaults, dispatch and logging."""

    def test_default_transport_is_urllib(self) -> None:
        """Without a transport, the client talks over the network."""
        assert isinstance(Client()._transport, UrllibTransport)

    def test_send_passes_timeout(self) -> None:
        """The configured timeout reaches the transport."""
        transport = RecordingTransport()
        client = Client(transport, config=ClientConfig(timeout=SHORT_TIMEOUT))
        client.send(Request("https://example.com/"))
        assert transport.sent[0][1] == SHORT_TIMEOUT

    def test_user_agent_added_when_missing(self) -> None:
        """Requests without a User-Agent get the configured one."""
        transport = RecordingTransport()
        Client(transport).send(Request("https://example.com/"))
        sent, _ = transport.sent[0]
        assert sent.get_header("User-Agent") == [DEFAULT_USER_AGENT]

    def test_caller_headers_win(self) -> None:
        """Headers the caller set are never overwritten."""
        transport = RecordingTransport()
        config = ClientConfig(default_headers=(("Accept", "application/json"), ("X-Team", "core")))
        request = Request("https://example.com/", headers={"User-Agent": "mine", "accept": "*/*"})
        Client(transport, config=config).send(request)
        sent, _ = transport.sent[0]
        assert sent.get_header("user-agent") == ["mine"]
        assert sent.get_header("accept") == ["*/*"]
        assert sent.get_header("x-team") == ["core"]

    def test_send_does_not_modify_caller_request(self) -> None:
        """Preparation derives a new request; the caller's is untouched."""
        request = Request("https://example.com/")
        Client(RecordingTransport()).send(request)
        assert not request.has_header("User-Agent")

    def test_protocol_version_default_applied(self) -> None:
        """A request left at 1.1 adopts the configured version."""
        transport = RecordingTransport()
        config = ClientConfig(protocol_version="1.0")
        Client(transport, config=config).send(Request("https://example.com/"))
        assert transport.sent[0][0].protocol_version == "1.0"

    def test_explicit_protocol_version_kept(self) -> None:
        """A request that chose its own version keeps it."""
        transport = RecordingTransport()
        request = Request("https://example.com/").with_protocol_version("2")
        Client(transport, config=ClientConfig(protocol_version="1.0")).send(request)
        assert transport.sent[0][0].protocol_version == "2"

    def test_send_requires_request(self) -> None:
        """Only Request objects can be sent."""
        with pytest.raises(UnexpectedTypeError):
            Client(RecordingTransport()).send("https://example.com/")  # type: ignore[arg-type]

    def test_send_logs_debug_and_info(self) -> None:
        """A successful dispatch logs before and after, with HTTP facts as fields."""
        client = Client(RecordingTransport())
        client.send(Request("https://example.com/a?b=c", "GET"))
        levels = [e.level for e in client.logger.entries]
        assert levels == [LogLevel.DEBUG, LogLevel.INFO]
        sending, info = client.logger.entries
        assert (sending.method, sending.target, sending.status) == ("GET", "/a?b=c", None)
        assert (info.method, info.target, info.status) == ("GET", "/a?b=c", STATUS_OK)
        assert info.source == "client"
        assert str(info) == "[INFO] client GET /a?b=c -> 200: response received"

    def test_log_filters_by_method_and_status(self) -> None:
        """Entries can be selected by the request method and response status."""
        transport = RecordingTransport(RawResponse(status=STATUS_NOT_FOUND))
        client = Client(transport)
        client.send(Request("https://example.com/gone", "DELETE"))
        transport.response = RawResponse(status=STATUS_OK)
        client.send(Request("https://example.com/here", "GET"))
        missing = client.logger.filter(method="delete", status=STATUS_NOT_FOUND)
        assert [e.target for e in missing] == ["/gone"]
        assert [e.target for e in client.logger.filter(status=STATUS_OK)] == ["/here"]

    def test_transport_failure_is_logged_and_raised(self) -> None:
        """A transport error is logged at ERROR and propagates."""
        client = Client(FailingTransport())
        with pytest.raises(TransportError):
            client.send(Request("https://example.com/"))
        errors = client.logger.filter(min_level=LogLevel.ERROR)
        assert len(errors) == 1
        assert "connection refused" in errors[0].message
        assert errors[0].method == "POST"
        assert errors[0].status is None

    def test_request_builds_and_sends(self) -> None:
        """request() turns plain arguments into a Request."""
        transport = RecordingTransport()
        Client(transport).request(
            "https://example.com/items",
            method="put",
            headers={"Content-Type": "text/plain"},
            content="hi",
        )
        sent, _ = transport.sent[0]
        assert sent.method == "PUT"
        assert sent.request_target == "/items"
        assert sent.get_header_line("content-type") == "text/plain"
        assert sent.body.read() == b"hi"

    def test_request_defaults_to_get(self) -> None:
        """request() uses GET when no method is given."""
        transport = RecordingTransport()
        Client(transport).request("https://example.com/")
        assert transport.sent[0][0].method == "GET"


# ---------------------------------------------------------------------------
# Cycle 3: WsgiTransport
# ---------------------------------------------------------------------------


class TestWsgiTransport:
    """Verify in-process dispatch into a WSGI application."""

    def test_round_trip(self) -> None:
        """Method, target, headers and body reach the app; the reply comes back."""
        client = Client(WsgiTransport(_echo_app))
        response = client.request(
            "http://example.com:8080/echo?x=1",
            method="POST",
            headers={"Content-Type": "text/plain"},
            content=b"payload",
        )
        assert response.status == STATUS_CREATED
        assert response.header("x-echo") == "1"
        text = response.body.decode()
        assert "POST /echo?x=1" in text
        assert "host=example.com:8080" in text
        assert f"agent={DEFAULT_USER_AGENT}" in text
        assert "type=text/plain" in text
        assert "protocol=HTTP/1.1" in text
        assert text.endswith("payload")

    def test_body_is_rewound_before_sending(self) -> None:
        """A body stream left at its end is still sent whole."""
        stream = io.BytesIO()
        stream.write(b"late write")
        request = Request("http://example.com/", body=stream)
        response = WsgiTransport(_echo_app).send(request)
        assert response.body.endswith(b"late write")

    def test_app_that_never_starts_response(self) -> None:
        """An app that skips start_response is a transport failure."""

        def silent_app(environ: dict[str, Any], start_response: Any) -> list[bytes]:  # noqa: ARG001
            return []

        with pytest.raises(TransportError):
            WsgiTransport(silent_app).send(Request("http://example.com/"))


# ---------------------------------------------------------------------------
# Cycle 4: UrllibTransport
# ---------------------------------------------------------------------------


class _FakeResponse(io.BytesIO):
    """Stand-in for the object urlopen returns."""

    def __init__(self, status: int, body: bytes, headers: dict[str, str]) -> None:
        super().__init__(body)
        self.status = status
        self.headers = Message()
        for name, value in headers.items():
            self.headers[name] = value


class TestUrllibTransport:
    """Verify the urllib-backed transport without touching the network."""

    def test_builds_urllib_request(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """URL, method, headers, body and timeout are passed to urlopen."""
        captured: dict[str, Any] = {}

        def fake_urlopen(req: urllib.request.Request, timeout: float) -> _FakeResponse:
            captured["request"] = req
            captured["timeout"] = timeout
            return _FakeResponse(STATUS_OK, b"ok", {"Content-Type": "text/plain"})

        monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)
        request = (
            Request("https://example.com:8443/a?b=c", "PATCH", body=b"data")
            .with_header("X-Tags", ["one", "two"])
        )
        response = UrllibTransport().send(request, timeout=SHORT_TIMEOUT)

        sent = captured["request"]
        assert sent.full_url == "https://example.com:8443/a?b=c"
        assert sent.get_method() == "PATCH"
        assert sent.data == b"data"
        assert sent.get_header("X-tags") == "one,two"
        assert captured["timeout"] == SHORT_TIMEOUT
        assert response.status == STATUS_OK
        assert response.body == b"ok"
        assert response.header("content-type") == "text/plain"

    def test_http_error_status_is_a_response(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """404 and friends come back as RawResponse, not exceptions."""

        def fake_urlopen(req: urllib.request.Request, timeout: float) -> _FakeResponse:  # noqa: ARG001
            raise urllib.error.HTTPError(
                req.full_url, STATUS_NOT_FOUND, "Not Found", Message(), io.BytesIO(b"missing")
            )

        monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)
        response = UrllibTransport().send(Request("http://example.com/gone", "GET"))
        assert response.status == STATUS_NOT_FOUND
        assert response.body == b"missing"

    def test_connection_failure_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Errors with no response become TransportError."""

        def fake_urlopen(req: urllib.request.Request, timeout: float) -> _FakeResponse:  # noqa: ARG001
            raise urllib.error.URLError("connection refused")

        monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)
        with pytest.raises(TransportError, match="connection refused"):
            UrllibTransport().send(Request("http://example.com/"))

    def test_request_without_host(self) -> None:
        """A host-less request cannot be sent over the network."""
        with pytest.raises(InvalidArgumentError):
            UrllibTransport().send(Request("/relative"))
