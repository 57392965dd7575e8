"""Data models for ELEMENT API requests, responses and socket events."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar


__all__ = [
    "EVENT_CHANNELS",
    "EventMessage",
    "Page",
    "QueryOptions",
    "RateLimitState",
    "ResourceType",
    "SocketState",
    "SortDirection",
]

T = TypeVar("T")


class SortDirection(str, Enum):
    """Sort direction accepted by list endpoints."""

    ASC = "asc"
    DESC = "desc"


class ResourceType(str, Enum):
    """Resources that can be streamed over the event socket."""

    READINGS = "readings"
    PACKETS = "packets"


class SocketState(Enum):
    """Event socket connection states."""

    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"  # Terminal, a new socket must be created to resume


# Socket event tag -> emitted channel name
EVENT_CHANNELS: dict[str, str] = {
    "reading_added": "readings",
    "packet_added": "packets",
}


@dataclass(frozen=True)
class QueryOptions:
    """Query options for list endpoints.

    Every field is optional. Fields left as None are not sent.

    Attributes:
        limit: Maximum number of items per page (the server caps this at 100).
        retrieve_after_id: Continuation cursor returned by a previous page.
        sort: Field to sort by.
        sort_direction: Sort direction.
        filter: Filter expression in the server's query syntax.
        with_profile: Whether to include the device profile in results.
    """

    limit: int | None = None
    retrieve_after_id: str | None = None
    sort: str | None = None
    sort_direction: SortDirection | str | None = None
    filter: str | None = None
    with_profile: bool | None = None


@dataclass
class Page(Generic[T]):
    """One page of a list response.

    Attributes:
        body: Items on this page.
        retrieve_after_id: Cursor for the next page, None on the last page.
    """

    body: T
    retrieve_after_id: str | None = None

    @property
    def has_more(self) -> bool:
        """Check if the server reported another page."""
        return self.retrieve_after_id is not None


@dataclass
class RateLimitState:
    """Rate-limit counters observed from the server.

    Attributes:
        remaining: Requests left in the current window.
        reset_ms: Milliseconds until the window resets.
    """

    remaining: int
    reset_ms: int


@dataclass
class EventMessage:
    """A decoded event frame from the socket.

    Attributes:
        event: Raw event tag (e.g. "reading_added").
        body: Event payload.
    """

    event: str
    body: dict[str, Any] = field(default_factory=dict)

    @property
    def channel(self) -> str:
        """Get the channel name this event is emitted on."""
        return EVENT_CHANNELS[self.event]
