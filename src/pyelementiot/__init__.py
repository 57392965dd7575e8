"""Python client library for the ELEMENT IoT platform.

This package provides an async client for the ELEMENT REST API and its
push-based event socket.

The library is organized into layers:
1. **API Layer** (pyelementiot.api): Authenticated, rate-limited HTTP requests
2. **Pagination** (pyelementiot.pagination): Cursor walks in accumulate or streamed mode
3. **Client Layer** (pyelementiot.client): One method per resource operation
4. **Event Socket** (pyelementiot.websocket): Live readings and packets with heartbeat

Example:
    REST usage:

    ```python
    from pyelementiot import ElementClient, QueryOptions

    async with ElementClient(api_key="secret") as client:
        tags = await client.get_tags()
        readings = await client.get_readings_by_tag_id(
            tags[0]["id"], QueryOptions(sort="measured_at", sort_direction="desc")
        )
    ```

    Live events:

    ```python
    from pyelementiot import ElementSocket

    socket = ElementSocket(api_key="secret", resource_type="packets")
    socket.add_listener("packets", lambda packet: print(packet["id"]))

    async with socket:
        await asyncio.sleep(600)
    ```
"""

from __future__ import annotations

from pyelementiot.api import ElementAPI
from pyelementiot.client import ElementClient
from pyelementiot.exceptions import ConfigurationError, ElementError
from pyelementiot.models import (
    EventMessage,
    Page,
    QueryOptions,
    RateLimitState,
    ResourceType,
    SocketState,
    SortDirection,
)
from pyelementiot.pagination import Paginator
from pyelementiot.parsers import build_params, parse_event_message, parse_page
from pyelementiot.ratelimit import RateLimitGovernor
from pyelementiot.websocket import ElementSocket


__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "ElementAPI",
    "ElementClient",
    "ElementError",
    "ElementSocket",
    "EventMessage",
    "Page",
    "Paginator",
    "QueryOptions",
    "RateLimitGovernor",
    "RateLimitState",
    "ResourceType",
    "SocketState",
    "SortDirection",
    "__version__",
    "build_params",
    "parse_event_message",
    "parse_page",
]
