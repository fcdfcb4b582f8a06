"""Client configuration.

``ClientConfig`` gathers the knobs a ``Client`` applies to every request
it sends: the network timeout, the ``User-Agent`` it announces, the HTTP
version it speaks, and any headers that should ride along by default.

Settings can come from the process environment so deployments can tune
a client without code changes:

    STREAM_HTTP_TIMEOUT            seconds, e.g. ``2.5``
    STREAM_HTTP_USER_AGENT         e.g. ``billing-sync/3.1``
    STREAM_HTTP_PROTOCOL_VERSION   ``1.0``, ``1.1`` or ``2``
"""

import math
import os
from collections.abc import Mapping
from dataclasses import dataclass

from stream_http.errors import InvalidArgumentError
from stream_http.request import ProtocolVersion

DEFAULT_TIMEOUT = 30.0
DEFAULT_USER_AGENT = "stream-http/0.1"

ENV_TIMEOUT = "STREAM_HTTP_TIMEOUT"
ENV_USER_AGENT = "STREAM_HTTP_USER_AGENT"
ENV_PROTOCOL_VERSION = "STREAM_HTTP_PROTOCOL_VERSION"


@dataclass(frozen=True)
class ClientConfig:
    """Settings a ``Client`` applies when sending.

    Attributes:
        timeout: Seconds to wait for the transport before giving up.
        user_agent: ``User-Agent`` value added when a request has none.
        protocol_version: HTTP version for requests left at the default.
        default_headers: ``(name, value)`` pairs added when absent.

    """

    timeout: float = DEFAULT_TIMEOUT
    user_agent: str = DEFAULT_USER_AGENT
    protocol_version: str = ProtocolVersion.HTTP_1_1
    default_headers: tuple[tuple[str, str], ...] = ()

    def __post_init__(self) -> None:
        """Validate the timeout and protocol version."""
        if not math.isfinite(self.timeout) or self.timeout <= 0:
            msg = f"Timeout must be a positive finite number, got {self.timeout}"
            raise InvalidArgumentError(msg)
        if self.protocol_version not in {v.value for v in ProtocolVersion}:
            msg = f'Unsupported HTTP protocol version "{self.protocol_version}" provided'
            raise InvalidArgumentError(msg)

    @classmethod
    def from_environment(cls, environ: Mapping[str, str] | None = None) -> "ClientConfig":
        """Build a config from ``STREAM_HTTP_*`` variables.

        Args:
            environ: Variables to read; defaults to ``os.environ``.
                Missing variables keep their defaults.

        Raises:
            InvalidArgumentError: If a variable holds an invalid value.

        """
        env = os.environ if environ is None else environ
        timeout = DEFAULT_TIMEOUT
        raw_timeout = env.get(ENV_TIMEOUT)
        if raw_timeout:
            try:
                timeout = float(raw_timeout)
            except ValueError:
                msg = f'{ENV_TIMEOUT} must be a number, got "{raw_timeout}"'
                raise InvalidArgumentError(msg) from None
            if not math.isfinite(timeout):
                msg = f'{ENV_TIMEOUT} must be finite, got "{raw_timeout}"'
                raise InvalidArgumentError(msg)
        return cls(
            timeout=timeout,
            user_agent=env.get(ENV_USER_AGENT) or DEFAULT_USER_AGENT,
            protocol_version=env.get(ENV_PROTOCOL_VERSION) or ProtocolVersion.HTTP_1_1,
        )
