"""High-level REST client for ELEMENT IoT resources.

This module provides one method per resource operation, built on the
authenticated request pipeline and the paginator.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from aiohttp import ClientSession  # noqa: TC002 - Used at runtime for the session argument

from pyelementiot.api import ElementAPI
from pyelementiot.pagination import Paginator
from pyelementiot.ratelimit import RateLimitGovernor


if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from types import TracebackType

    from pyelementiot.models import QueryOptions, RateLimitState


class ElementClient:
    """REST client for the ELEMENT IoT platform.

    Collection methods fetch a single page when called with ``limit <= 100`` and
    walk every page otherwise. Errors from the pipeline are raised unchanged.

    Example:
        Basic usage with automatic session management:

        ```python
        from pyelementiot import ElementClient, QueryOptions

        async with ElementClient(api_key="secret") as client:
            devices = await client.get_devices()

            # First 10 readings only (single request)
            readings = await client.get_readings(
                devices[0]["id"], QueryOptions(limit=10, sort="measured_at")
            )
        ```

        Streaming a large history with backpressure:

        ```python
        async def on_chunk(chunk: list[dict]) -> None:
            await database.insert_many(chunk)

        async with ElementClient(api_key="secret") as client:
            await client.get_readings_chunked("device-id", on_chunk)
        ```

    Attributes:
        api: Low-level ElementAPI instance for HTTP communication.
    """

    def __init__(
        self,
        api_key: str,
        service_url: str | None = None,
        *,
        session: ClientSession | None = None,
        logger: Callable[[str], None] | None = None,
        rate_limit_remaining: int | None = None,
        rate_limit_reset: int | None = None,
        max_rate_limit_wait: float | None = None,
        request_timeout: float | None = None,
    ) -> None:
        """Initialize the ELEMENT client.

        Args:
            api_key: ELEMENT API key.
            service_url: Base URL for the API. Must use http or https. Defaults to
                the ELEMENT production API.
            session: Optional aiohttp ClientSession. If not provided, one will be
                created when entering the context manager.
            logger: Optional callback receiving operational messages. Defaults to
                the module logger at DEBUG level.
            rate_limit_remaining: Initial requests remaining (default 50).
            rate_limit_reset: Initial reset delay in milliseconds (default 5000).
            max_rate_limit_wait: Optional ceiling in seconds for a single rate-limit
                wait. None waits as long as the server asks.
            request_timeout: Optional total timeout per request in seconds.

        Raises:
            ConfigurationError: If the API key is empty or the URL scheme is invalid.
        """
        governor = RateLimitGovernor(
            remaining=rate_limit_remaining,
            reset_ms=rate_limit_reset,
            max_wait=max_rate_limit_wait,
            logger=logger,
        )
        self._api = ElementAPI(
            api_key,
            service_url,
            session=session,
            governor=governor,
            logger=logger,
            request_timeout=request_timeout,
        )
        self._paginator = Paginator(self._api.get_page)

    @property
    def api(self) -> ElementAPI:
        """Get the underlying API client.

        This provides direct access to the request pipeline for endpoints
        without a dedicated method.
        """
        return self._api

    @property
    def paginator(self) -> Paginator:
        """Get the paginator bound to this client's pipeline."""
        return self._paginator

    @property
    def rate_limit(self) -> RateLimitState:
        """Get the last observed rate-limit state."""
        return self._api.governor.state

    async def __aenter__(self) -> ElementClient:
        """Enter the context manager.

        Returns:
            Self for use in async with statements.
        """
        await self._api.__aenter__()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit the context manager and close any session this client created."""
        await self._api.__aexit__(exc_type, exc_val, exc_tb)

    # -------------------------------------------------------------------------
    # Devices
    # -------------------------------------------------------------------------

    async def get_device(self, device_id: str) -> dict[str, Any]:
        """Get a device.

        Returns:
            Response envelope in format {"body": {device}}.
        """
        return await self._api.request("GET", f"devices/{device_id}")

    async def find_device_by_dev_eui(self, dev_eui: str) -> dict[str, Any]:
        """Find devices by LoRaWAN DevEUI.

        Returns:
            Response envelope in format {"body": [{device}, ...]}.
        """
        return await self._api.request("GET", f"devices/by-eui/{dev_eui}")

    async def get_devices(self, options: QueryOptions | None = None) -> list[dict[str, Any]]:
        """Get all devices visible to the API key."""
        return await self._paginator.fetch("devices", options)

    async def create_device(self, name: str, tag_id: str) -> dict[str, Any]:
        """Create a device inside a tag.

        Args:
            name: Device name.
            tag_id: Tag (folder) the device is created in.

        Returns:
            Response envelope in format {"body": {device}}.
        """
        payload = {"device": {"name": name, "tags": [{"id": tag_id}]}}
        return await self._api.request("POST", "devices", json_data=payload)

    async def delete_device(self, device_id: str) -> dict[str, Any] | None:
        """Delete a device."""
        return await self._api.request("DELETE", f"devices/{device_id}")

    # -------------------------------------------------------------------------
    # Device interfaces and actions
    # -------------------------------------------------------------------------

    async def add_interface_to_device(self, device_id: str, interface: dict[str, Any]) -> dict[str, Any]:
        """Add an interface (e.g. LoRaWAN keys) to a device.

        Args:
            device_id: Device identifier.
            interface: Interface definition as expected by the API.

        Returns:
            Response envelope with the created interface.
        """
        return await self._api.request(
            "POST",
            f"devices/{device_id}/interfaces",
            json_data={"interface": interface},
        )

    async def delete_interface(self, device_id: str, interface_id: str) -> dict[str, Any] | None:
        """Delete an interface from a device."""
        return await self._api.request("DELETE", f"devices/{device_id}/interfaces/{interface_id}")

    async def list_interfaces(self, device_id: str) -> dict[str, Any]:
        """List the interfaces of a device.

        Returns:
            Response envelope in format {"body": [{interface}, ...]}.
        """
        return await self._api.request("GET", f"devices/{device_id}/interfaces")

    async def create_action(self, device_id: str, request: dict[str, Any]) -> dict[str, Any]:
        """Queue a downlink frame for a device."""
        return await self._api.request(
            "POST",
            f"devices/{device_id}/actions/send_down_frame",
            json_data=request,
        )

    async def create_action_on_interface(
        self,
        device_id: str,
        interface_id: str,
        request: dict[str, Any],
    ) -> dict[str, Any]:
        """Queue a downlink frame on a specific device interface."""
        return await self._api.request(
            "POST",
            f"devices/{device_id}/interfaces/{interface_id}/actions/send_down_frame",
            json_data=request,
        )

    async def get_action(self, device_id: str, action_id: str) -> dict[str, Any]:
        """Get the status of a previously created action."""
        return await self._api.request("GET", f"devices/{device_id}/actions/{action_id}")

    # -------------------------------------------------------------------------
    # Tags
    # -------------------------------------------------------------------------

    async def get_tag(self, tag_id: str) -> dict[str, Any]:
        """Get a tag.

        Returns:
            The tag object (unwrapped from the response envelope).
        """
        data = await self._api.request("GET", f"tags/{tag_id}")
        return data["body"]

    async def get_tags(self, options: QueryOptions | None = None) -> list[dict[str, Any]]:
        """Get all tags."""
        return await self._paginator.fetch("tags", options)

    async def create_tag(self, name: str, opts: dict[str, Any] | None = None) -> dict[str, Any]:
        """Create a tag.

        Args:
            name: Tag name.
            opts: Optional extra tag attributes (e.g. parent_id, description).

        Returns:
            Response envelope in format {"body": {tag}}.
        """
        payload = {"tag": {"name": name, **(opts or {})}}
        return await self._api.request("POST", "tags", json_data=payload)

    async def create_tag_path(self, name: str) -> dict[str, Any]:
        """Create a tag path, creating missing parents (like ``mkdir -p``).

        Args:
            name: Slash-separated tag path.

        Returns:
            Response envelope in format {"body": {tag}}.
        """
        return await self._api.request("POST", "tags/mkdir", json_data={"name": name})

    async def delete_tag(self, tag_id: str) -> dict[str, Any] | None:
        """Delete a tag."""
        return await self._api.request("DELETE", f"tags/{tag_id}")

    async def get_devices_by_tag_id(
        self,
        tag_id: str,
        options: QueryOptions | None = None,
    ) -> list[dict[str, Any]]:
        """Get all devices in a tag."""
        return await self._paginator.fetch(f"tags/{tag_id}/devices", options)

    # -------------------------------------------------------------------------
    # Readings
    # -------------------------------------------------------------------------

    async def get_readings(self, device_id: str, options: QueryOptions | None = None) -> list[dict[str, Any]]:
        """Get readings of a device."""
        return await self._paginator.fetch(f"devices/{device_id}/readings", options)

    async def get_readings_by_tag_id(
        self,
        tag_id: str,
        options: QueryOptions | None = None,
    ) -> list[dict[str, Any]]:
        """Get readings of all devices in a tag."""
        return await self._paginator.fetch(f"tags/{tag_id}/readings", options)

    async def get_readings_chunked(
        self,
        device_id: str,
        on_chunk: Callable[[list[dict[str, Any]]], Awaitable[None]],
        options: QueryOptions | None = None,
    ) -> None:
        """Stream all readings of a device page by page.

        Args:
            device_id: Device identifier.
            on_chunk: Coroutine awaited with each non-empty page before the next is fetched.
            options: Optional query options.
        """
        await self._paginator.stream(f"devices/{device_id}/readings", on_chunk, options)

    async def update_readings(self, data: dict[str, Any]) -> dict[str, Any]:
        """Merge data into existing readings.

        Returns:
            Update summary (unwrapped from the response envelope).
        """
        response = await self._api.request("PATCH", "readings", json_data=data)
        return response["body"]

    async def update_readings_by_device(self, data: dict[str, Any], device_id: str) -> dict[str, Any]:
        """Merge data into existing readings of one device.

        Returns:
            Update summary (unwrapped from the response envelope).
        """
        response = await self._api.request("PATCH", f"devices/{device_id}/readings", json_data=data)
        return response["body"]

    # -------------------------------------------------------------------------
    # Packets
    # -------------------------------------------------------------------------

    async def get_packets(self, device_id: str, options: QueryOptions | None = None) -> list[dict[str, Any]]:
        """Get raw packets of a device."""
        return await self._paginator.fetch(f"devices/{device_id}/packets", options)

    async def get_packets_by_tag_id(
        self,
        tag_id: str,
        options: QueryOptions | None = None,
    ) -> list[dict[str, Any]]:
        """Get raw packets of all devices in a tag."""
        return await self._paginator.fetch(f"tags/{tag_id}/packets", options)

    async def get_packets_chunked(
        self,
        device_id: str,
        on_chunk: Callable[[list[dict[str, Any]]], Awaitable[None]],
        options: QueryOptions | None = None,
    ) -> None:
        """Stream all raw packets of a device page by page.

        Args:
            device_id: Device identifier.
            on_chunk: Coroutine awaited with each non-empty page before the next is fetched.
            options: Optional query options.
        """
        await self._paginator.stream(f"devices/{device_id}/packets", on_chunk, options)
