"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import AsyncMock, MagicMock

import pytest
from aiohttp import ClientSession


if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Callable

    from aiohttp.test_utils import TestClient


TEST_API_KEY = "test-api-key"


@pytest.fixture
def api_key() -> str:
    """Get the API key used by test clients."""
    return TEST_API_KEY


@pytest.fixture
def service_url() -> Callable[..., str]:
    """Get a helper building the base URL of an aiohttp test server.

    Returns:
        Function taking a TestClient and a scheme ("http" or "ws").
    """

    def _service_url(client: TestClient, scheme: str = "http") -> str:
        url = str(client.make_url("")).rstrip("/")
        return scheme + url[len("http") :]

    return _service_url


@pytest.fixture
async def mock_session() -> AsyncGenerator[ClientSession]:
    """Create a mock aiohttp ClientSession.

    Yields:
        Mock ClientSession for testing.
    """
    session = AsyncMock(spec=ClientSession)
    session.closed = False

    async def mock_close() -> None:
        session.closed = True

    session.close = mock_close

    yield session

    if not session.closed:
        await session.close()


@pytest.fixture
def mock_ws() -> MagicMock:
    """Create a mock aiohttp ClientWebSocketResponse.

    Returns:
        Mock websocket with awaitable ping, pong and close.
    """
    ws = MagicMock()
    ws.closed = False
    ws.ping = AsyncMock()
    ws.pong = AsyncMock()
    ws.close = AsyncMock()
    return ws
