"""Client-side HTTP request value object.

A request is everything a transport needs to put bytes on the wire:

    POST /orders?draft=1 HTTP/1.1       <- method, request target, version
    Host: shop.example.com              <- headers (name -> ordered values)
    Accept: text/html, application/json
                                        <- blank line
    {"item": 42}                        <- body stream

``Request`` never changes after construction.  Each ``with_*`` method
copies the receiver, replaces one thing, and returns the copy.  The copy
shares untouched parts with the original (the ``Uri``, the body stream,
the header value tuples).  None of those are ever mutated, so sharing is
safe.

Header names are matched case-insensitively and stored lower-cased;
values keep their order and are only joined when rendered as a line.
"""

import copy
import re
from collections.abc import Mapping, Sequence
from enum import StrEnum

from stream_http.errors import (
    InvalidArgumentError,
    UnexpectedTypeError,
    UnsupportedMethodError,
)
from stream_http.stream import Stream, create_stream
from stream_http.uri import Uri, parse_uri

_WHITESPACE = re.compile(r"\s")

HeaderValue = str | Sequence[str]


class HttpMethod(StrEnum):
    """The request methods this client may send."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"


class ProtocolVersion(StrEnum):
    """HTTP protocol versions, exactly those matching ``^(1\\.[01]|2)$``."""

    HTTP_1_0 = "1.0"
    HTTP_1_1 = "1.1"
    HTTP_2 = "2"


def _check_method(method: object) -> HttpMethod:
    """Validate *method* case-insensitively and return its canonical member.

    Raises:
        UnexpectedTypeError: If *method* is not a string.
        UnsupportedMethodError: If *method* is not an ``HttpMethod``.

    """
    if not isinstance(method, str):
        raise UnexpectedTypeError(method, "string")
    try:
        return HttpMethod(method.upper())
    except ValueError:
        raise UnsupportedMethodError(method, [m.value for m in HttpMethod]) from None


def _create_uri(uri: object) -> Uri:
    if isinstance(uri, Uri):
        return uri
    if isinstance(uri, str):
        return parse_uri(uri)
    if uri is None:
        return Uri()
    msg = "Invalid argument, must be null, string, or a Uri instance"
    raise InvalidArgumentError(msg)


def _header_key(name: object) -> str:
    if not isinstance(name, str):
        raise UnexpectedTypeError(name, "string")
    return name.lower()


def _header_values(value: object) -> tuple[str, ...]:
    """Return *value* as a tuple of strings.

    Raises:
        InvalidArgumentError: If *value* is not a string or a non-empty
            list/tuple of strings.

    """
    if isinstance(value, str):
        return (value,)
    if isinstance(value, list | tuple) and value and all(isinstance(v, str) for v in value):
        return tuple(value)
    msg = "Invalid header value, must be a string or array of strings"
    raise InvalidArgumentError(msg)


class Request:
    """An immutable outbound HTTP request.

    Args:
        uri: A ``Uri``, URI text to parse, or None for the empty URI ``/``.
        method: One of ``HttpMethod``, in any case.  Stored upper-case.
        body: A stream, ``bytes``/``str`` content, or None for an empty
            temp stream.
        headers: Header name to a string or list of strings.

    Raises:
        UnexpectedTypeError: If *method* is not a string.
        UnsupportedMethodError: If *method* is not an allowed method.
        InvalidArgumentError: If *uri* has the wrong type, *headers* is
            not a mapping, or a header value is malformed.

    """

    def __init__(
        self,
        uri: Uri | str | None = None,
        method: str = HttpMethod.POST,
        body: Stream | bytes | str | None = None,
        headers: Mapping[str, HeaderValue] | None = None,
    ) -> None:
        """Validate the parts and build the request."""
        self._method = _check_method(method)
        self._uri = _create_uri(uri)
        self._body = create_stream(body)
        self._headers: dict[str, tuple[str, ...]] = {}
        if headers is None:
            headers = {}
        if not isinstance(headers, Mapping):
            msg = "Invalid headers, must be a mapping of header name to value(s)"
            raise InvalidArgumentError(msg)
        for name, value in headers.items():
            key = _header_key(name)
            if not key:
                msg = "Header name can not be empty"
                raise InvalidArgumentError(msg)
            self._headers[key] = self._headers.get(key, ()) + _header_values(value)
        self._protocol_version = ProtocolVersion.HTTP_1_1
        self._request_target: str | None = None

    def __repr__(self) -> str:
        """Return ``Request(method, uri)`` for debugging."""
        return f"Request({self._method.value!r}, {str(self._uri)!r})"

    # -- Protocol version ----------------------------------------------------

    @property
    def protocol_version(self) -> str:
        """Return the HTTP version (``1.0``, ``1.1`` or ``2``)."""
        return self._protocol_version.value

    def with_protocol_version(self, version: str) -> "Request":
        """Return a copy speaking HTTP *version*.

        Raises:
            InvalidArgumentError: If *version* is empty, not a string, or
                not one of ``1.0``, ``1.1``, ``2``.

        """
        if version is None or version == "":
            msg = "HTTP protocol version can not be empty"
            raise InvalidArgumentError(msg)
        if not isinstance(version, str):
            msg = (
                "Unsupported HTTP protocol version; must be a string, "
                f"{type(version).__name__} given"
            )
            raise InvalidArgumentError(msg)
        try:
            protocol_version = ProtocolVersion(version)
        except ValueError:
            msg = f'Unsupported HTTP protocol version "{version}" provided'
            raise InvalidArgumentError(msg) from None
        clone = copy.copy(self)
        clone._protocol_version = protocol_version
        return clone

    # -- Headers -------------------------------------------------------------

    @property
    def headers(self) -> dict[str, list[str]]:
        """Return a copy of all headers, keyed by lower-cased name."""
        return {name: list(values) for name, values in self._headers.items()}

    def has_header(self, name: str) -> bool:
        """Return True if header *name* exists (case-insensitive)."""
        return _header_key(name) in self._headers

    def get_header(self, name: str) -> list[str]:
        """Return the values of header *name*, or ``[]`` if it is absent."""
        return list(self._headers.get(_header_key(name), ()))

    def get_header_line(self, name: str) -> str:
        """Return the values of header *name* joined with ``,``."""
        return ",".join(self._headers.get(_header_key(name), ()))

    def with_header(self, name: str, value: HeaderValue) -> "Request":
        """Return a copy where header *name* holds exactly *value*.

        Any existing values under the same (case-insensitive) name are
        replaced, not appended to.

        Raises:
            UnexpectedTypeError: If *name* is not a string.
            InvalidArgumentError: If *name* is empty or *value* is not a
                string or list of strings.

        """
        key = _header_key(name)
        if not key:
            msg = "Header name can not be empty"
            raise InvalidArgumentError(msg)
        values = _header_values(value)
        clone = copy.copy(self)
        clone._headers = {**self._headers, key: values}
        return clone

    def with_added_header(self, name: str, value: HeaderValue) -> "Request":
        """Return a copy with *value* appended to header *name*.

        Behaves exactly like ``with_header`` when the header is absent.

        Raises:
            UnexpectedTypeError: If *name* is not a string.
            InvalidArgumentError: If *value* is not a string or list of
                strings.

        """
        values = _header_values(value)
        if not self.has_header(name):
            return self.with_header(name, values)
        key = _header_key(name)
        clone = copy.copy(self)
        clone._headers = {**self._headers, key: self._headers[key] + values}
        return clone

    def without_header(self, name: str) -> "Request":
        """Return a copy with header *name* removed entirely."""
        clone = copy.copy(self)
        if not self.has_header(name):
            return clone
        key = _header_key(name)
        clone._headers = {k: v for k, v in self._headers.items() if k != key}
        return clone

    # -- Body ----------------------------------------------------------------

    @property
    def body(self) -> Stream:
        """Return the body stream (shared, never copied)."""
        return self._body

    def with_body(self, body: Stream) -> "Request":
        """Return a copy whose body is the stream *body*.

        Raises:
            UnexpectedTypeError: If *body* is not readable and writable.

        """
        if not isinstance(body, Stream):
            raise UnexpectedTypeError(body, "Stream")
        clone = copy.copy(self)
        clone._body = body
        return clone

    # -- Request target ------------------------------------------------------

    @property
    def request_target(self) -> str:
        """Return the target for the request line.

        An explicit override wins.  Otherwise it is the URI path plus
        ``?query`` when there is one, or ``/`` when both are empty.
        """
        if self._request_target is not None:
            return self._request_target
        target = self._uri.path
        if self._uri.query:
            target += f"?{self._uri.query}"
        return target or "/"

    def with_request_target(self, request_target: str) -> "Request":
        """Return a copy with an explicit request target (e.g. ``*``).

        Raises:
            UnexpectedTypeError: If *request_target* is not a string.
            InvalidArgumentError: If *request_target* contains whitespace.

        """
        if not isinstance(request_target, str):
            raise UnexpectedTypeError(request_target, "string")
        if _WHITESPACE.search(request_target):
            msg = "Invalid request target provided, cannot contain whitespace"
            raise InvalidArgumentError(msg)
        clone = copy.copy(self)
        clone._request_target = request_target
        return clone

    # -- Method --------------------------------------------------------------

    @property
    def method(self) -> str:
        """Return the upper-case request method."""
        return self._method.value

    def with_method(self, method: str) -> "Request":
        """Return a copy using *method* (validated like the constructor)."""
        clone = copy.copy(self)
        clone._method = _check_method(method)
        return clone

    # -- URI -----------------------------------------------------------------

    @property
    def uri(self) -> Uri:
        """Return the request URI."""
        return self._uri

    def with_uri(self, uri: Uri, preserve_host: bool = False) -> "Request":  # noqa: FBT001, FBT002
        """Return a copy targeting *uri*.

        The ``Host`` header follows the new URI (``host[:port]``) unless
        *preserve_host* is set and a ``Host`` header already exists.  A
        URI without a host leaves the headers alone.

        Raises:
            UnexpectedTypeError: If *uri* is not a ``Uri``.

        """
        if not isinstance(uri, Uri):
            raise UnexpectedTypeError(uri, "Uri")
        clone = copy.copy(self)
        clone._uri = uri
        if preserve_host and self.has_header("host"):
            return clone
        if not uri.host:
            return clone
        host = uri.host
        if uri.port is not None:
            host += f":{uri.port}"
        clone._headers = {**self._headers, "host": (host,)}
        return clone
