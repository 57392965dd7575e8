"""Parsing utilities for ELEMENT API requests and responses.

This module converts between the library's data models and the wire formats
used by the REST API and the event socket:
- Query options to query string parameters
- List response envelopes to pages
- Raw socket frames to event messages
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Any

from pyelementiot.const import PONG_FRAME
from pyelementiot.models import EVENT_CHANNELS, EventMessage, Page, QueryOptions


__all__ = [
    "build_params",
    "parse_event_message",
    "parse_page",
]

_LOGGER = logging.getLogger(__name__)

# QueryOptions attribute -> wire parameter name
_PARAM_NAMES = (
    ("limit", "limit"),
    ("retrieve_after_id", "retrieve_after"),
    ("sort", "sort"),
    ("sort_direction", "sort_direction"),
    ("filter", "filter"),
    ("with_profile", "with_profile"),
)


def _to_wire(value: Any) -> str | int:
    """Convert an option value to a type the query string accepts."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, int):
        return value
    return str(value)


def build_params(options: QueryOptions | None) -> dict[str, str | int]:
    """Build query string parameters from query options.

    Only options that are set are included. No defaults are applied here;
    the paginator decides the page size.

    Args:
        options: Query options, or None for no parameters.

    Returns:
        Mapping of wire parameter names to values.
    """
    if options is None:
        return {}

    params: dict[str, str | int] = {}
    for attr, wire_name in _PARAM_NAMES:
        value = getattr(options, attr)
        if value is not None:
            params[wire_name] = _to_wire(value)
    return params


def parse_page(data: dict[str, Any] | None) -> Page[list[Any]]:
    """Parse a list response envelope.

    Args:
        data: Raw response in format {"body": [...], "retrieve_after_id": str}.

    Returns:
        Page with the body items and the next-page cursor (None if absent, null or empty).
    """
    if not data:
        return Page(body=[])

    body = data.get("body")
    if body is None:
        body = []

    return Page(body=body, retrieve_after_id=data.get("retrieve_after_id") or None)


def parse_event_message(raw: str | bytes) -> EventMessage | None:
    """Decode one inbound socket frame.

    Frames are either the literal text "pong" or a JSON array whose first element
    has the shape {"event": "reading_added" | "packet_added", "body": {...}}.

    Malformed frames and unknown events are logged and dropped, never raised.

    Args:
        raw: Frame payload as text or UTF-8 bytes.

    Returns:
        EventMessage if the frame carries a known event, None otherwise.
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError:
            _LOGGER.debug("Dropping socket frame that is not valid UTF-8")
            return None

    if raw == PONG_FRAME:
        return None

    try:
        data = json.loads(raw)
    except ValueError:
        _LOGGER.debug("Dropping socket frame with invalid JSON: %.120s", raw)
        return None

    if not isinstance(data, list) or not data or not isinstance(data[0], dict):
        _LOGGER.debug("Dropping socket frame with unexpected shape: %.120s", raw)
        return None

    event = data[0].get("event")
    if event not in EVENT_CHANNELS:
        _LOGGER.debug("Dropping socket frame with unknown event %r", event)
        return None

    body = data[0].get("body") or {}
    if not isinstance(body, dict):
        _LOGGER.debug("Dropping %s event with non-object body", event)
        return None

    return EventMessage(event=event, body=dict(body))
