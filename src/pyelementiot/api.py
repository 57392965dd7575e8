"""Low-level API client for ELEMENT IoT REST endpoints.

This module is the only path through which REST calls leave the process. Every
request gets the API key injected as a query credential and passes the
rate-limit gate; every response updates the rate-limit state.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import TYPE_CHECKING, Any
from urllib.parse import urlsplit

from aiohttp import ClientError, ClientResponseError, ClientSession, ClientTimeout

from pyelementiot.const import API_PREFIX, AUTH_PARAM, DEFAULT_BASE_URL, REST_SCHEMES
from pyelementiot.exceptions import ConfigurationError
from pyelementiot.parsers import parse_page
from pyelementiot.ratelimit import RateLimitGovernor


if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from types import TracebackType

    from pyelementiot.models import Page

_LOGGER = logging.getLogger(__name__)


def validate_api_key(api_key: str | None) -> str:
    """Validate that an API key was given.

    Raises:
        ConfigurationError: If the key is missing or empty.
    """
    if not api_key:
        msg = "Missing api key"
        raise ConfigurationError(msg, option="api_key", value=api_key)
    return api_key


def validate_service_url(service_url: str, schemes: tuple[str, ...]) -> str:
    """Validate a service URL scheme and strip any trailing slash.

    Raises:
        ConfigurationError: If the URL scheme is not one of the allowed schemes.
    """
    scheme = urlsplit(service_url).scheme.lower()
    if scheme not in schemes:
        allowed = " or ".join(f"{s}://" for s in schemes)
        msg = f"serviceUrl must start with {allowed}"
        raise ConfigurationError(msg, option="service_url", value=service_url)
    return service_url.rstrip("/")


class ElementAPI:
    """Authenticated request pipeline for the ELEMENT REST API.

    Applies, in order, to every request/response pair:
    1. Inject ``auth=<api_key>`` into the query string, overwriting any caller value
    2. Wait on the rate-limit governor
    3. Feed the response headers back into the governor

    Transport errors and non-2xx responses are raised unchanged
    (``aiohttp.ClientResponseError``, ``aiohttp.ClientError``, ``TimeoutError``).
    Nothing is retried.

    Example:
        ```python
        from pyelementiot.api import ElementAPI

        async with ElementAPI(api_key="secret") as api:
            data = await api.request("GET", "devices/1234")
            page = await api.get_page("devices", {"limit": 100})
        ```

    Attributes:
        base_url: Base URL for the API (without trailing slash).
    """

    def __init__(
        self,
        api_key: str,
        service_url: str | None = None,
        *,
        session: ClientSession | None = None,
        governor: RateLimitGovernor | None = None,
        logger: Callable[[str], None] | None = None,
        request_timeout: float | None = None,
    ) -> None:
        """Initialize the API client.

        Args:
            api_key: ELEMENT API key.
            service_url: Base URL for the API. Defaults to the ELEMENT production API.
            session: Optional aiohttp ClientSession. If not provided, one will be
                created when entering the context manager.
            governor: Optional pre-configured RateLimitGovernor.
            logger: Optional callback for operational messages.
            request_timeout: Optional total timeout per request in seconds. None
                (the default) waits indefinitely.

        Raises:
            ConfigurationError: If the API key is empty or the URL scheme is invalid.
        """
        self._api_key = validate_api_key(api_key)
        self.base_url = validate_service_url(DEFAULT_BASE_URL if service_url is None else service_url, REST_SCHEMES)

        self._session = session
        self._owns_session = session is None
        self._governor = governor if governor is not None else RateLimitGovernor(logger=logger)
        self._timeout = ClientTimeout(total=request_timeout)

    @property
    def governor(self) -> RateLimitGovernor:
        """Get the rate-limit governor shared by all requests."""
        return self._governor

    async def __aenter__(self) -> ElementAPI:
        """Enter the context manager.

        Creates a session if one wasn't provided during initialization.

        Returns:
            Self for use in async with statements.
        """
        if self._session is None:
            self._session = ClientSession()
            self._owns_session = True
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit the context manager.

        Closes session if it was created by this client.

        Args:
            exc_type: Exception type if an exception occurred.
            exc_val: Exception value if an exception occurred.
            exc_tb: Exception traceback if an exception occurred.
        """
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    def url_for(self, path: str) -> str:
        """Build the absolute URL for an API path such as ``devices/1234``."""
        return f"{self.base_url}/{API_PREFIX}/{path.lstrip('/')}"

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str | int] | None = None,
        json_data: Any = None,
    ) -> Any:
        """Make an authenticated API request.

        Args:
            method: HTTP method (GET, POST, PATCH, DELETE).
            path: API path below ``/api/v1/`` (e.g., "devices/1234").
            params: Optional query parameters. Any ``auth`` value is replaced.
            json_data: Optional JSON data for request body.

        Returns:
            Decoded JSON response, or None if the response has no JSON content.

        Raises:
            RuntimeError: If session is not initialized or is closed.
            ClientResponseError: If the server returns a non-2xx status.
            ClientError: If connection fails.
            TimeoutError: If a configured request timeout expires.
        """
        if self._session is None:
            msg = "Session not initialized. Use 'async with' or provide a session."
            raise RuntimeError(msg)

        if self._session.closed:
            msg = "Session is closed. Cannot make request."
            raise RuntimeError(msg)

        query: dict[str, str | int] = dict(params or {})
        query[AUTH_PARAM] = self._api_key

        await self._governor.gate()

        url = self.url_for(path)
        try:
            async with self._session.request(
                method,
                url,
                params=query,
                json=json_data,
                timeout=self._timeout,
            ) as response:
                self._governor.observe(response.headers)
                response.raise_for_status()

                if response.status == HTTPStatus.NO_CONTENT:
                    return None
                # Substring match to handle charset parameters
                if "application/json" not in response.content_type:
                    return None
                return await response.json()

        except TimeoutError:
            _LOGGER.exception("Request to %s %s timed out", method, path)
            raise

        except ClientResponseError as err:
            _LOGGER.warning("Request to %s %s failed: HTTP %d", method, path, err.status)
            raise

        except ClientError:
            _LOGGER.exception("Connection error for %s %s", method, path)
            raise

    async def get_page(self, path: str, params: Mapping[str, str | int] | None = None) -> Page[list[Any]]:
        """Fetch one page of a list endpoint.

        Args:
            path: API path of the list endpoint.
            params: Query parameters (limit, cursor, sort, ...).

        Returns:
            Page with the body items and the next-page cursor.
        """
        data = await self.request("GET", path, params=params)
        return parse_page(data)
