"""URI value object: parse text into components and serialize them back.

A URI such as ``https://user:pw@example.com:8443/a/b?key=value#top``
breaks down into:

    scheme      https
    user_info   user:pw
    host        example.com
    port        8443
    path        /a/b
    query       key=value
    fragment    top

``Uri`` is a frozen dataclass holding those pieces.  Nothing ever mutates
it: each ``with_*`` method returns a new instance with one field
replaced (or ``self`` when the value does not change).  The serialized
string is computed lazily, at most once per instance.  A derived
instance is a fresh object, so it never inherits its parent's cached
string.

Only ``http`` and ``https`` are accepted as schemes.  An empty scheme
means the URI is scheme-relative (``//example.com/path``).
"""

import html
import re
from dataclasses import dataclass, replace
from enum import StrEnum
from functools import cached_property
from urllib.parse import parse_qsl, urlsplit

from stream_http.errors import (
    InvalidArgumentError,
    MalformedUriError,
    UnexpectedTypeError,
    UnsupportedSchemeError,
)

MIN_PORT = 1
MAX_PORT = 65535

# [user_info@]host[:port], where host may be a bracketed IPv6 literal.
_AUTHORITY_PATTERN = re.compile(
    r"^(?:(?P<user_info>.*)@)?(?P<host>\[[^\]]*\]|[^:\[\]]*)(?::(?P<port>[0-9]*))?$"
)
_SCHEME_SUFFIX = re.compile(r":(//)?$")
# Characters that would end the authority or be read as another part of it.
_AUTHORITY_DELIMITERS = re.compile(r"[/?#@\[\]\s]")
_IPV6_LITERAL = re.compile(r"^\[[0-9A-Za-z:.%]+\]$")


class Scheme(StrEnum):
    """The URI schemes a request may use."""

    HTTP = "http"
    HTTPS = "https"

    @property
    def default_port(self) -> int:
        """Return the well-known TCP port for this scheme."""
        return _DEFAULT_PORTS[self]


_DEFAULT_PORTS: dict[Scheme, int] = {
    Scheme.HTTP: 80,
    Scheme.HTTPS: 443,
}


def _check_scheme(scheme: str) -> str:
    """Normalize *scheme* and verify it is allowed.

    Trailing ``:`` or ``://`` are dropped and the result is lower-cased.
    The empty string is returned unchanged (scheme-relative).

    Raises:
        UnsupportedSchemeError: If the scheme is not in ``Scheme``.

    """
    normalized = _SCHEME_SUFFIX.sub("", scheme.lower())
    if not normalized:
        return ""
    try:
        return Scheme(normalized).value
    except ValueError:
        raise UnsupportedSchemeError(normalized, [s.value for s in Scheme]) from None


def _check_port(port: int | None) -> None:
    if port is not None and not MIN_PORT <= port <= MAX_PORT:
        msg = f'Invalid TCP/UDP port "{port}"'
        raise InvalidArgumentError(msg)


def _check_path(path: str) -> None:
    if "?" in path:
        msg = "Invalid path provided, must not contain a query string"
        raise InvalidArgumentError(msg)
    if "#" in path:
        msg = "Invalid path provided, must not contain a URI fragment"
        raise InvalidArgumentError(msg)


def _normalize_path(path: str) -> str:
    """Return *path* rooted at ``/`` (an empty path becomes ``/``)."""
    if not path.startswith("/"):
        return f"/{path}"
    return path


def _check_user_info_part(part: str) -> None:
    if _AUTHORITY_DELIMITERS.search(part):
        msg = f'Invalid user info "{part}", must not contain "/?#@[]" or whitespace'
        raise InvalidArgumentError(msg)


def _check_host(host: str) -> None:
    """Verify *host* is a bracketed IPv6 literal or a plain name.

    Raises:
        InvalidArgumentError: If *host* contains authority delimiters,
            whitespace, or a ``:`` outside brackets.

    """
    if host.startswith("["):
        if _IPV6_LITERAL.match(host) is None:
            msg = f'Invalid IPv6 host "{host}"'
            raise InvalidArgumentError(msg)
        return
    if ":" in host or _AUTHORITY_DELIMITERS.search(host):
        msg = f'Invalid host "{host}", must not contain ":/?#@[]" or whitespace'
        raise InvalidArgumentError(msg)


def compose_uri(
    scheme: str,
    authority: str,
    path: str,
    query: str | None,
    fragment: str | None,
) -> str:
    """Assemble URI text from already-validated components.

    A scheme-relative URI with an authority is written as
    ``//authority/path`` so that it parses back to the same components.
    A path starting with ``//`` gets an explicit empty authority in front
    when there is no host, otherwise its first segment would read back
    as one.
    """
    uri = ""
    if scheme:
        uri += f"{scheme}:"
    path = _normalize_path(path)
    if authority or path.startswith("//"):
        uri += f"//{authority}"
    uri += path
    if query is not None:
        uri += f"?{query}"
    if fragment is not None:
        uri += f"#{fragment}"
    return uri


@dataclass(frozen=True)
class Uri:
    """An immutable URI.

    ``Uri()`` is the empty URI ``/``.  Build one from text with
    ``Uri.parse`` (or ``parse_uri``), then derive variations with the
    ``with_*`` methods.

    Attributes:
        scheme: ``"http"``, ``"https"`` or ``""`` (scheme-relative).
        user_info: ``user`` or ``user:password``, if any.
        host: Host name with its original case, if any.
        port: Explicit port in [1, 65535]; ``None`` means the scheme default.
        path: Always starts with ``/`` when non-empty.
        query: Raw query string without the leading ``?``.
        fragment: Fragment without the leading ``#``.

    """

    scheme: str = ""
    user_info: str | None = None
    host: str | None = None
    port: int | None = None
    path: str = "/"
    query: str | None = None
    fragment: str | None = None

    def __post_init__(self) -> None:
        """Reject component combinations no parse could produce."""
        if self.scheme and self.scheme not in Scheme.__members__.values():
            raise UnsupportedSchemeError(self.scheme, [s.value for s in Scheme])
        _check_port(self.port)
        _check_path(self.path)
        if self.path and not self.path.startswith("/"):
            msg = f'Invalid path "{self.path}", must start with "/"'
            raise InvalidArgumentError(msg)

    @classmethod
    def parse(cls, text: str = "") -> "Uri":
        """Parse *text* into a ``Uri`` (see ``parse_uri``)."""
        return parse_uri(text)

    # -- Derived views -------------------------------------------------------

    @property
    def authority(self) -> str:
        """Return ``[user_info@]host[:port]``, or ``""`` when there is no host."""
        if not self.host:
            return ""
        authority = self.host
        if self.user_info is not None:
            authority = f"{self.user_info}@{authority}"
        if self.port is not None:
            authority += f":{self.port}"
        return authority

    @property
    def query_params(self) -> dict[str, str]:
        """Return the query decomposed into a fresh key/value dict.

        HTML entities are decoded first (``&amp;`` becomes ``&``) so that
        already-escaped input splits correctly, then the usual form
        decoding applies.  Blank values are kept; for a repeated key the
        last value wins.
        """
        if self.query is None:
            return {}
        return dict(parse_qsl(html.unescape(self.query), keep_blank_values=True))

    @property
    def default_port(self) -> int | None:
        """Return the scheme's well-known port, or None when scheme-relative."""
        if not self.scheme:
            return None
        return Scheme(self.scheme).default_port

    @property
    def effective_port(self) -> int | None:
        """Return the explicit port, falling back to the scheme default."""
        return self.port if self.port is not None else self.default_port

    @cached_property
    def _serialized(self) -> str:
        return compose_uri(self.scheme, self.authority, self.path, self.query, self.fragment)

    def __str__(self) -> str:
        """Return the canonical text form, cached on first use."""
        return self._serialized

    # -- Derivations ---------------------------------------------------------

    def with_scheme(self, scheme: str) -> "Uri":
        """Return a copy with *scheme* (``""`` makes it scheme-relative).

        Raises:
            UnexpectedTypeError: If *scheme* is not a string.
            UnsupportedSchemeError: If *scheme* is not ``http``/``https``.

        """
        if not isinstance(scheme, str):
            raise UnexpectedTypeError(scheme, "string")
        scheme = _check_scheme(scheme)
        if scheme == self.scheme:
            return self
        return replace(self, scheme=scheme)

    def with_user_info(self, user: str, password: str | None = None) -> "Uri":
        """Return a copy with user info ``user[:password]``.

        An empty *user* removes the user info entirely.

        Raises:
            UnexpectedTypeError: If *user* or *password* is not a string.
            InvalidArgumentError: If either part contains ``/?#@[]`` or
                whitespace.

        """
        if not isinstance(user, str):
            raise UnexpectedTypeError(user, "string")
        if password is not None and not isinstance(password, str):
            raise UnexpectedTypeError(password, "string")
        _check_user_info_part(user)
        user_info: str | None = user or None
        if user_info is not None and password is not None:
            _check_user_info_part(password)
            user_info = f"{user}:{password}"
        if user_info == self.user_info:
            return self
        return replace(self, user_info=user_info)

    def with_host(self, host: str) -> "Uri":
        """Return a copy with *host* (``""`` removes the host).

        Raises:
            UnexpectedTypeError: If *host* is not a string.
            InvalidArgumentError: If *host* is not a valid host name or
                IPv6 literal, or is empty while a scheme is set.

        """
        if not isinstance(host, str):
            raise UnexpectedTypeError(host, "string")
        if not host and self.scheme:
            msg = f'Cannot remove the host from a "{self.scheme}" URI'
            raise InvalidArgumentError(msg)
        if host:
            _check_host(host)
        new_host = host or None
        if new_host == self.host:
            return self
        return replace(self, host=new_host)

    def with_port(self, port: int | None) -> "Uri":
        """Return a copy with *port* (``None`` means the scheme default).

        Raises:
            UnexpectedTypeError: If *port* is neither None nor an int.
            InvalidArgumentError: If *port* is outside [1, 65535].

        """
        if port is not None and (isinstance(port, bool) or not isinstance(port, int)):
            raise UnexpectedTypeError(port, "null or integer")
        _check_port(port)
        if port == self.port:
            return self
        return replace(self, port=port)

    def with_path(self, path: str) -> "Uri":
        """Return a copy with *path*, rooted at ``/`` if it is relative.

        The empty path is stored as ``/``, the form it serializes to.

        Raises:
            UnexpectedTypeError: If *path* is not a string.
            InvalidArgumentError: If *path* contains ``?`` or ``#``.

        """
        if not isinstance(path, str):
            raise UnexpectedTypeError(path, "string")
        _check_path(path)
        path = _normalize_path(path)
        if path == self.path:
            return self
        return replace(self, path=path)

    def with_query(self, query: str) -> "Uri":
        """Return a copy with the raw *query* string.

        One leading ``?`` is dropped; an empty string removes the query.
        ``query_params`` is recomputed from the new raw string.

        Raises:
            UnexpectedTypeError: If *query* is not a string.
            InvalidArgumentError: If *query* contains ``#``.

        """
        if not isinstance(query, str):
            raise UnexpectedTypeError(query, "string")
        if "#" in query:
            msg = "Query string must not include a URI fragment"
            raise InvalidArgumentError(msg)
        new_query = query.removeprefix("?") or None
        if new_query == self.query:
            return self
        return replace(self, query=new_query)

    def with_fragment(self, fragment: str) -> "Uri":
        """Return a copy with *fragment* (one leading ``#`` is dropped).

        Raises:
            UnexpectedTypeError: If *fragment* is not a string.

        """
        if not isinstance(fragment, str):
            raise UnexpectedTypeError(fragment, "string")
        new_fragment = fragment.removeprefix("#") or None
        if new_fragment == self.fragment:
            return self
        return replace(self, fragment=new_fragment)


def _split_authority(text: str, netloc: str) -> tuple[str | None, str, int | None]:
    """Split *netloc* into (user_info, host, port).

    Raises:
        MalformedUriError: If the authority has no host or a bad port.

    """
    match = _AUTHORITY_PATTERN.match(netloc)
    if match is None or not match.group("host"):
        raise MalformedUriError(text, "invalid authority")
    port_text = match.group("port")
    port: int | None = None
    if port_text:
        port = int(port_text)
        if not MIN_PORT <= port <= MAX_PORT:
            raise MalformedUriError(text, f"port {port} out of range")
    return match.group("user_info") or None, match.group("host"), port


def parse_uri(text: str = "") -> Uri:
    """Parse *text* into a ``Uri``.

    Args:
        text: Absolute (``https://host/path``), scheme-relative
            (``//host/path``) or path-only (``/path?query``) URI text.
            The empty string yields ``Uri()``.

    Returns:
        The parsed URI.

    Raises:
        UnexpectedTypeError: If *text* is not a string.
        MalformedUriError: If *text* cannot be split into components.
        UnsupportedSchemeError: If the scheme is not ``http``/``https``.

    """
    if not isinstance(text, str):
        raise UnexpectedTypeError(text, "string")
    try:
        parts = urlsplit(text)
    except ValueError as e:
        raise MalformedUriError(text, str(e)) from e

    scheme = _check_scheme(parts.scheme)
    user_info: str | None = None
    host: str | None = None
    port: int | None = None
    if parts.netloc:
        user_info, host, port = _split_authority(text, parts.netloc)
    elif scheme:
        raise MalformedUriError(text, "missing host")

    return Uri(
        scheme=scheme,
        user_info=user_info,
        host=host,
        port=port,
        path=_normalize_path(parts.path),
        query=parts.query or None,
        fragment=parts.fragment or None,
    )
