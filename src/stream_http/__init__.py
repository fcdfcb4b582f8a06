"""Immutable HTTP request and URI values, plus a thin client to send them.

Re-exports public symbols so callers can write::

    from stream_http import Request, Uri

The Flask echo service in ``stream_http.web`` is NOT re-exported here
because it needs the optional ``web`` extra.
"""

from stream_http.client import Client, RawResponse, Transport, UrllibTransport, WsgiTransport
from stream_http.config import ClientConfig
from stream_http.errors import (
    InvalidArgumentError,
    MalformedUriError,
    StreamHttpError,
    TransportError,
    UnexpectedTypeError,
    UnsupportedMethodError,
    UnsupportedSchemeError,
)
from stream_http.logging import LogEntry, Logger, LogLevel
from stream_http.request import HttpMethod, ProtocolVersion, Request
from stream_http.stream import Stream, create_stream, temp_stream
from stream_http.uri import Scheme, Uri, compose_uri, parse_uri

__all__ = [
    "Client",
    "ClientConfig",
    "HttpMethod",
    "InvalidArgumentError",
    "LogEntry",
    "LogLevel",
    "Logger",
    "MalformedUriError",
    "ProtocolVersion",
    "RawResponse",
    "Request",
    "Scheme",
    "Stream",
    "StreamHttpError",
    "Transport",
    "TransportError",
    "UnexpectedTypeError",
    "UnsupportedMethodError",
    "UnsupportedSchemeError",
    "Uri",
    "UrllibTransport",
    "WsgiTransport",
    "compose_uri",
    "create_stream",
    "parse_uri",
    "temp_stream",
]
