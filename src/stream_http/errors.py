"""Error kinds raised by the request and URI value objects.

Every error here describes a caller-input violation.  Nothing is retried
and nothing is recovered internally: an operation either returns a brand
new value or raises before building one, so a failure never leaves a
half-updated object behind.

The hierarchy is small and closed:

- **InvalidArgumentError**: shape and range violations (bad port,
  reserved characters in a path, whitespace in a request target).
- **UnexpectedTypeError**: the runtime type is wrong (a method that is
  not a string).
- **UnsupportedMethodError** / **UnsupportedSchemeError**: the type is
  right but the value is outside an allow-list.
- **MalformedUriError**: the text cannot be split into URI components.

``TransportError`` sits beside them for the client layer: it is raised
when a transport cannot produce any response at all.
"""

from collections.abc import Iterable


class StreamHttpError(Exception):
    """Root of every error raised by this package."""


class InvalidArgumentError(StreamHttpError, ValueError):
    """Raise when an argument has the wrong shape or is out of range."""


def _type_name(value: object) -> str:
    """Return a readable type name for *value* (``None`` reads as ``NoneType``)."""
    return type(value).__name__


class UnexpectedTypeError(InvalidArgumentError, TypeError):
    """Raise when an argument is not of the expected type.

    Attributes:
        value_type: Type name of the rejected value.
        expected: Human-readable name of the expected type.

    """

    def __init__(self, value: object, expected: str) -> None:
        """Build the error from the offending value and the expected type name."""
        self.value_type = _type_name(value)
        self.expected = expected
        super().__init__(f'Expected argument of type "{expected}", "{self.value_type}" given')


class UnsupportedMethodError(InvalidArgumentError):
    """Raise when an HTTP method is a string but not an allowed one."""

    def __init__(self, method: str, allowed: Iterable[str]) -> None:
        """Record the rejected method and the allowed set."""
        self.method = method
        self.allowed = tuple(allowed)
        super().__init__(
            f'Unsupported HTTP method "{method}", must be one of ({", ".join(self.allowed)})'
        )


class UnsupportedSchemeError(InvalidArgumentError):
    """Raise when a URI scheme is outside the allow-list."""

    def __init__(self, scheme: str, allowed: Iterable[str]) -> None:
        """Record the rejected scheme and the allowed set."""
        self.scheme = scheme
        self.allowed = tuple(allowed)
        super().__init__(
            f'Unsupported scheme "{scheme}", must be in the following list '
            f"({', '.join(self.allowed)})"
        )


class MalformedUriError(InvalidArgumentError):
    """Raise when source text cannot be decomposed into URI parts."""

    def __init__(self, uri: str, reason: str = "") -> None:
        """Record the offending text and, optionally, why it was rejected."""
        self.uri = uri
        message = f'The source URI string "{uri}" appears to be malformed'
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class TransportError(StreamHttpError):
    """Raise when a transport cannot deliver a request or read a response."""
