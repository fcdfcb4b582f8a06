"""In-memory record of what a client sent and what came back.

Each dispatch leaves ``LogEntry`` records behind: one when
the request goes out, one when a status comes back, one when the
transport fails.  The HTTP facts (method, request target, status) are
fields of the entry rather than words in its message, so a caller can
ask "which DELETEs came back 404?" without parsing text.

- **LogLevel**: severity, ordered so ``min_level`` filtering works.
- **LogEntry**: one dispatch event.
- **Logger**: append-only buffer with structured filtering.
"""

from dataclasses import dataclass
from enum import IntEnum


class LogLevel(IntEnum):
    """Severity of a dispatch event."""

    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3


@dataclass(frozen=True)
class LogEntry:
    """A single dispatch event.

    Attributes:
        level: Severity of the event.
        message: Short description (``"sending"``, ``"response"``...).
        source: Component that recorded it, normally ``"client"``.
        method: HTTP method of the request, upper-case.
        target: Request target (``/path?query``) of the request.
        status: Response status, or None when no response was received.

    """

    level: LogLevel
    message: str
    source: str
    method: str = ""
    target: str = ""
    status: int | None = None

    def __str__(self) -> str:
        """Format as ``[LEVEL] source METHOD target -> status: message``."""
        line = f"[{self.level.name}] {self.source}"
        if self.method:
            line += f" {self.method} {self.target}".rstrip()
        if self.status is not None:
            line += f" -> {self.status}"
        return f"{line}: {self.message}"


class Logger:
    """Append-only buffer of ``LogEntry`` records."""

    def __init__(self) -> None:
        """Create an empty log."""
        self._entries: list[LogEntry] = []

    @property
    def entries(self) -> list[LogEntry]:
        """Return a copy of every entry, oldest first."""
        return list(self._entries)

    def log(  # noqa: PLR0913
        self,
        level: LogLevel,
        message: str,
        *,
        source: str,
        method: str = "",
        target: str = "",
        status: int | None = None,
    ) -> LogEntry:
        """Record an event and return the stored entry.

        *method* is stored upper-case so filtering does not depend on
        how the caller spelled it.
        """
        entry = LogEntry(
            level=level,
            message=message,
            source=source,
            method=method.upper(),
            target=target,
            status=status,
        )
        self._entries.append(entry)
        return entry

    def filter(
        self,
        *,
        min_level: LogLevel | None = None,
        source: str | None = None,
        method: str | None = None,
        status: int | None = None,
    ) -> list[LogEntry]:
        """Return the entries matching every given criterion.

        Args:
            min_level: Keep entries at or above this severity.
            source: Keep entries recorded by this component.
            method: Keep entries for this HTTP method (any case).
            status: Keep entries whose response had this status.

        """
        wanted_method = method.upper() if method is not None else None
        return [
            e
            for e in self._entries
            if (min_level is None or e.level >= min_level)
            and (source is None or e.source == source)
            and (wanted_method is None or e.method == wanted_method)
            and (status is None or e.status == status)
        ]

    def clear(self) -> None:
        """Drop every entry."""
        self._entries.clear()
