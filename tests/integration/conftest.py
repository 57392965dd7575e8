"""Pytest configuration and fixtures for integration tests."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
from dotenv import load_dotenv

from pyelementiot.const import DEFAULT_BASE_URL, DEFAULT_SOCKET_URL


if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from pyelementiot import ElementClient


# Load .env file from project root
env_path = Path(__file__).parents[2] / ".env"
load_dotenv(env_path)


@pytest.fixture(scope="session")
def integration_config() -> dict[str, str]:
    """Load integration test configuration from environment.

    Tests using this fixture are skipped when ELEMENT_API_KEY is not set.

    Returns:
        Dictionary with API key and service URLs.
    """
    api_key = os.getenv("ELEMENT_API_KEY")
    if not api_key:
        pytest.skip("ELEMENT_API_KEY not set; create a .env file to run integration tests")

    return {
        "api_key": api_key,
        "service_url": os.getenv("ELEMENT_SERVICE_URL", DEFAULT_BASE_URL),
        "socket_url": os.getenv("ELEMENT_SOCKET_URL", DEFAULT_SOCKET_URL),
    }


@pytest.fixture(scope="session")
def test_tag_id() -> str | None:
    """Get test tag ID from environment if available.

    Returns:
        Tag ID for testing, or None to use the first listed tag.
    """
    return os.getenv("ELEMENT_TEST_TAG_ID")


@pytest.fixture
async def integration_client(integration_config: dict[str, str]) -> AsyncGenerator[ElementClient]:
    """Create a client against the real API."""
    from pyelementiot import ElementClient

    async with ElementClient(integration_config["api_key"], integration_config["service_url"]) as client:
        yield client


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for integration tests."""
    config.addinivalue_line("markers", "integration: Integration tests requiring real API access")


@pytest.fixture(autouse=True)
async def rate_limit_delay(request: pytest.FixtureRequest) -> AsyncGenerator[None]:
    """Pause after each integration test so the suite stays under the API rate limit."""
    yield
    if "integration" in request.keywords:
        await asyncio.sleep(1.0)
