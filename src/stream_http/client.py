"""Client and transports: hand a finished request to something that sends it.

The request and URI objects never touch the network.  A **transport**
does: it consumes a finished ``Request`` (method, target, headers,
protocol version, body) and returns a ``RawResponse``, the status,
header pairs and body bytes exactly as received.  Nothing here parses
the response further.

Two transports ship with the package:

- ``UrllibTransport`` sends over the network with ``urllib.request``.
- ``WsgiTransport`` calls a WSGI application in-process, which makes it
  possible to exercise a client against a local app without sockets.

``Client`` sits in front of a transport.  It applies its
``ClientConfig`` (user agent, default headers, protocol version,
timeout) and records every dispatch in its ``Logger``.
"""

import io
import sys
import urllib.error
import urllib.request
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Protocol
from urllib.parse import unquote

from stream_http.config import DEFAULT_TIMEOUT, ClientConfig
from stream_http.errors import InvalidArgumentError, TransportError, UnexpectedTypeError
from stream_http.logging import Logger, LogLevel
from stream_http.request import HeaderValue, HttpMethod, ProtocolVersion, Request
from stream_http.stream import Stream
from stream_http.uri import Scheme

_LOG_SOURCE = "client"

WsgiApp = Callable[[dict[str, Any], Callable[..., Any]], Iterable[bytes]]


@dataclass(frozen=True)
class RawResponse:
    """What a transport got back, unparsed.

    Attributes:
        status: Numeric status code (e.g. 200).
        headers: ``(name, value)`` pairs in the order received.
        body: The complete response body.

    """

    status: int
    headers: tuple[tuple[str, str], ...] = ()
    body: bytes = b""

    def header(self, name: str) -> str | None:
        """Return the first value of header *name* (case-insensitive)."""
        wanted = name.lower()
        for key, value in self.headers:
            if key.lower() == wanted:
                return value
        return None


class Transport(Protocol):
    """Anything that can put a request on the wire."""

    def send(self, request: Request, *, timeout: float = DEFAULT_TIMEOUT) -> RawResponse:
        """Send *request* and return the raw response."""
        ...


def _read_body(request: Request) -> bytes:
    """Return the whole body, rewinding the stream first when possible."""
    body = request.body
    seek = getattr(body, "seek", None)
    if seek is not None:
        seek(0)
    return body.read()


def _host_header(request: Request) -> str:
    """Return ``host[:port]`` for the request URI."""
    uri = request.uri
    if not uri.host:
        msg = f"Cannot send a request without a host: {uri}"
        raise InvalidArgumentError(msg)
    if uri.port is None:
        return uri.host
    return f"{uri.host}:{uri.port}"


class UrllibTransport:
    """Send requests over the network with ``urllib.request``."""

    def send(self, request: Request, *, timeout: float = DEFAULT_TIMEOUT) -> RawResponse:
        """Send *request*; HTTP error statuses come back as responses.

        Raises:
            InvalidArgumentError: If the request URI has no host.
            TransportError: If no response could be obtained at all.

        """
        scheme = request.uri.scheme or Scheme.HTTP
        url = f"{scheme}://{_host_header(request)}{request.request_target}"
        data = _read_body(request) or None
        outgoing = urllib.request.Request(url, data=data, method=request.method)
        for name, values in request.headers.items():
            outgoing.add_header(name, ",".join(values))
        try:
            with urllib.request.urlopen(outgoing, timeout=timeout) as response:  # noqa: S310
                return RawResponse(
                    status=response.status,
                    headers=tuple(response.headers.items()),
                    body=response.read(),
                )
        except urllib.error.HTTPError as e:
            with e:
                return RawResponse(status=e.code, headers=tuple(e.headers.items()), body=e.read())
        except (urllib.error.URLError, OSError) as e:
            msg = f"Failed to send {request.method} {url}: {e}"
            raise TransportError(msg) from e


class WsgiTransport:
    """Dispatch requests into a WSGI application in the same process."""

    def __init__(self, app: WsgiApp) -> None:
        """Wrap the WSGI callable *app*."""
        self._app = app

    def _environ(self, request: Request, body: bytes) -> dict[str, Any]:
        """Build the PEP 3333 environment for *request*."""
        uri = request.uri
        path, _, query = request.request_target.partition("?")
        environ: dict[str, Any] = {
            "REQUEST_METHOD": request.method,
            "SCRIPT_NAME": "",
            "PATH_INFO": unquote(path, encoding="latin-1"),
            "QUERY_STRING": query,
            "SERVER_NAME": uri.host or "localhost",
            "SERVER_PORT": str(uri.effective_port or Scheme.HTTP.default_port),
            "SERVER_PROTOCOL": f"HTTP/{request.protocol_version}",
            "CONTENT_LENGTH": str(len(body)),
            "wsgi.version": (1, 0),
            "wsgi.url_scheme": uri.scheme or Scheme.HTTP.value,
            "wsgi.input": io.BytesIO(body),
            "wsgi.errors": sys.stderr,
            "wsgi.multithread": False,
            "wsgi.multiprocess": False,
            "wsgi.run_once": False,
        }
        if uri.host:
            environ["HTTP_HOST"] = _host_header(request)
        for name, values in request.headers.items():
            key = name.upper().replace("-", "_")
            if key not in {"CONTENT_TYPE", "CONTENT_LENGTH"}:
                key = f"HTTP_{key}"
            environ[key] = ",".join(values)
        return environ

    def send(self, request: Request, *, timeout: float = DEFAULT_TIMEOUT) -> RawResponse:  # noqa: ARG002
        """Call the application with *request* and collect its response.

        Raises:
            TransportError: If the application never starts a response.

        """
        body = _read_body(request)
        chunks: list[bytes] = []
        started: dict[str, Any] = {}

        def start_response(
            status: str,
            headers: list[tuple[str, str]],
            exc_info: object = None,  # noqa: ARG001
        ) -> Callable[[bytes], object]:
            started["status"] = int(status.split(" ", 1)[0])
            started["headers"] = tuple(headers)
            return chunks.append

        result = self._app(self._environ(request, body), start_response)
        try:
            chunks.extend(result)
        finally:
            close = getattr(result, "close", None)
            if close is not None:
                close()

        if "status" not in started:
            msg = f"Application did not start a response for {request.request_target}"
            raise TransportError(msg)
        return RawResponse(
            status=started["status"],
            headers=started["headers"],
            body=b"".join(chunks),
        )


class Client:
    """Send requests through a transport with shared settings and logging.

    Args:
        transport: Where requests go; defaults to ``UrllibTransport``.
        config: Settings applied to every request; defaults to ``ClientConfig()``.
        logger: Log receiving one entry per dispatch event.

    """

    def __init__(
        self,
        transport: Transport | None = None,
        *,
        config: ClientConfig | None = None,
        logger: Logger | None = None,
    ) -> None:
        """Create a client around *transport*."""
        self._transport: Transport = transport if transport is not None else UrllibTransport()
        self._config = config if config is not None else ClientConfig()
        self._logger = logger if logger is not None else Logger()

    @property
    def config(self) -> ClientConfig:
        """Return the client settings."""
        return self._config

    @property
    def logger(self) -> Logger:
        """Return the client log."""
        return self._logger

    def prepare(self, request: Request) -> Request:
        """Return *request* with the configured defaults applied.

        Headers the caller already set always win.  The configured
        protocol version only replaces the request default (``1.1``).
        """
        if not request.has_header("user-agent"):
            request = request.with_header("User-Agent", self._config.user_agent)
        for name, value in self._config.default_headers:
            if not request.has_header(name):
                request = request.with_header(name, value)
        if (
            request.protocol_version == ProtocolVersion.HTTP_1_1
            and self._config.protocol_version != request.protocol_version
        ):
            request = request.with_protocol_version(self._config.protocol_version)
        return request

    def send(self, request: Request) -> RawResponse:
        """Prepare *request* and hand it to the transport.

        Raises:
            UnexpectedTypeError: If *request* is not a ``Request``.
            TransportError: If the transport fails (logged at ERROR).

        """
        if not isinstance(request, Request):
            raise UnexpectedTypeError(request, "Request")
        prepared = self.prepare(request)
        method = prepared.method
        target = prepared.request_target
        self._logger.log(
            LogLevel.DEBUG,
            f"sending to {prepared.uri}",
            source=_LOG_SOURCE,
            method=method,
            target=target,
        )
        try:
            response = self._transport.send(prepared, timeout=self._config.timeout)
        except TransportError as e:
            self._logger.log(
                LogLevel.ERROR,
                f"transport failed: {e}",
                source=_LOG_SOURCE,
                method=method,
                target=target,
            )
            raise
        self._logger.log(
            LogLevel.INFO,
            "response received",
            source=_LOG_SOURCE,
            method=method,
            target=target,
            status=response.status,
        )
        return response

    def request(
        self,
        url: str,
        method: str = HttpMethod.GET,
        headers: Mapping[str, HeaderValue] | None = None,
        content: Stream | bytes | str | None = None,
    ) -> RawResponse:
        """Build a request from plain arguments and send it.

        Args:
            url: Absolute URL to call.
            method: HTTP method (any case).
            headers: Header name to a string or list of strings.
            content: Body as a stream, bytes or text.

        """
        return self.send(Request(url, method, content, headers))
