"""Tests for ElementClient using pytest-aiohttp."""

from __future__ import annotations

from http import HTTPStatus
from typing import TYPE_CHECKING, Any
from unittest.mock import MagicMock

import pytest
from aiohttp import ClientResponseError, web

from pyelementiot.client import ElementClient
from pyelementiot.exceptions import ConfigurationError
from pyelementiot.models import QueryOptions, RateLimitState


if TYPE_CHECKING:
    from collections.abc import Callable

    from aiohttp.test_utils import TestClient
    from aiohttp.web import Application


# cursor -> (page body, next cursor)
THREE_PAGES: dict[str | None, tuple[list[dict[str, Any]], str | None]] = {
    None: ([{"id": 1}, {"id": 2}], "c1"),
    "c1": ([], "c2"),
    "c2": ([{"id": 3}], None),
}

LIST_PATHS = (
    "/api/v1/devices",
    "/api/v1/tags",
    "/api/v1/tags/t1/devices",
    "/api/v1/tags/t1/readings",
    "/api/v1/tags/t1/packets",
    "/api/v1/devices/d1/readings",
    "/api/v1/devices/d1/packets",
)


@pytest.fixture
def app() -> Application:
    """Create a test application imitating the ELEMENT API."""
    app = web.Application()
    app["requests"] = []

    async def handler(request: web.Request) -> web.Response:
        """Serve paginated lists, echo everything else."""
        payload = await request.json() if request.can_read_body else None
        app["requests"].append((request.method, request.path, dict(request.query), payload))
        headers = {"x-ratelimit-remaining": "30", "x-ratelimit-reset": "2000"}

        if request.path == "/api/v1/devices/broken":
            return web.json_response({"error": "boom"}, status=HTTPStatus.INTERNAL_SERVER_ERROR)

        if request.method == "GET" and request.path in LIST_PATHS:
            body, cursor = THREE_PAGES[request.query.get("retrieve_after")]
            data: dict[str, Any] = {"body": body}
            if cursor is not None:
                data["retrieve_after_id"] = cursor
            return web.json_response(data, headers=headers)

        if request.method == "DELETE":
            return web.Response(status=HTTPStatus.NO_CONTENT, headers=headers)

        return web.json_response(
            {"body": {"method": request.method, "path": request.path, "json": payload}},
            headers=headers,
        )

    app.router.add_route("*", "/api/v1/{tail:.*}", handler)
    return app


@pytest.fixture
async def client(
    aiohttp_client: Callable[..., TestClient],
    app: Application,
    api_key: str,
    service_url: Callable[..., str],
) -> ElementClient:
    """Create an ElementClient bound to the test server."""
    test_client = await aiohttp_client(app)
    return ElementClient(api_key, service_url(test_client), session=test_client.session)


class TestElementClientInit:
    """Test client construction."""

    def test_missing_api_key(self) -> None:
        """Test that an empty key fails before any network activity."""
        with pytest.raises(ConfigurationError):
            ElementClient("")

    def test_invalid_service_url(self) -> None:
        """Test that a non-HTTP service URL fails."""
        with pytest.raises(ConfigurationError):
            ElementClient("key", "wss://element-iot.com")

    def test_rate_limit_defaults(self) -> None:
        """Test default initial rate-limit state."""
        client = ElementClient("key")

        assert client.rate_limit == RateLimitState(remaining=50, reset_ms=5000)
        assert client.api.base_url == "https://element-iot.com"

    def test_rate_limit_options(self) -> None:
        """Test caller-supplied rate-limit options."""
        client = ElementClient("key", rate_limit_remaining=20, rate_limit_reset=1000, max_rate_limit_wait=5.0)

        assert client.rate_limit == RateLimitState(remaining=20, reset_ms=1000)
        assert client.api.governor.max_wait == 5.0

    async def test_context_manager_owns_session(self) -> None:
        """Test that the client creates and closes its own session."""
        client = ElementClient("key")

        async with client as entered:
            assert entered is client
            session = client.api._session
            assert session is not None

        assert session.closed


class TestElementClientCollections:
    """Test collection methods and the pagination split."""

    async def test_get_devices_walks_all_pages(self, client: ElementClient, app: Application, api_key: str) -> None:
        """Test that get_devices without a limit collects every page."""
        devices = await client.get_devices()

        assert devices == [{"id": 1}, {"id": 2}, {"id": 3}]
        assert len(app["requests"]) == 3
        assert [query.get("retrieve_after") for _, _, query, _ in app["requests"]] == [None, "c1", "c2"]
        assert all(query["auth"] == api_key for _, _, query, _ in app["requests"])
        assert all(query["limit"] == "100" for _, _, query, _ in app["requests"])

    async def test_small_limit_is_single_request(self, client: ElementClient, app: Application) -> None:
        """Test that limit=50 issues one request even when a cursor is returned."""
        devices = await client.get_devices(QueryOptions(limit=50))

        assert devices == [{"id": 1}, {"id": 2}]
        assert len(app["requests"]) == 1
        assert app["requests"][0][2]["limit"] == "50"

    async def test_query_options_on_wire(self, client: ElementClient, app: Application) -> None:
        """Test that query options are sent with their wire names."""
        await client.get_readings(
            "d1",
            QueryOptions(limit=10, sort="measured_at", sort_direction="desc", filter="a=1", with_profile=True),
        )

        _, path, query, _ = app["requests"][0]
        assert path == "/api/v1/devices/d1/readings"
        assert query == {
            "limit": "10",
            "sort": "measured_at",
            "sort_direction": "desc",
            "filter": "a=1",
            "with_profile": "true",
            "auth": "test-api-key",
        }

    @pytest.mark.parametrize(
        ("method", "args", "path"),
        [
            ("get_devices", (), "/api/v1/devices"),
            ("get_tags", (), "/api/v1/tags"),
            ("get_devices_by_tag_id", ("t1",), "/api/v1/tags/t1/devices"),
            ("get_readings", ("d1",), "/api/v1/devices/d1/readings"),
            ("get_readings_by_tag_id", ("t1",), "/api/v1/tags/t1/readings"),
            ("get_packets", ("d1",), "/api/v1/devices/d1/packets"),
            ("get_packets_by_tag_id", ("t1",), "/api/v1/tags/t1/packets"),
        ],
    )
    async def test_collection_paths(
        self,
        client: ElementClient,
        app: Application,
        method: str,
        args: tuple[str, ...],
        path: str,
    ) -> None:
        """Test that every collection method walks its endpoint."""
        items = await getattr(client, method)(*args)

        assert items == [{"id": 1}, {"id": 2}, {"id": 3}]
        assert {request[1] for request in app["requests"]} == {path}

    @pytest.mark.parametrize(
        ("method", "path"),
        [
            ("get_readings_chunked", "/api/v1/devices/d1/readings"),
            ("get_packets_chunked", "/api/v1/devices/d1/packets"),
        ],
    )
    async def test_chunked_methods(self, client: ElementClient, app: Application, method: str, path: str) -> None:
        """Test that chunked methods deliver each non-empty page."""
        chunks: list[list[dict[str, Any]]] = []

        async def on_chunk(chunk: list[dict[str, Any]]) -> None:
            chunks.append(chunk)

        result = await getattr(client, method)("d1", on_chunk)

        assert result is None
        assert chunks == [[{"id": 1}, {"id": 2}], [{"id": 3}]]
        assert len(app["requests"]) == 3
        assert {request[1] for request in app["requests"]} == {path}

    async def test_chunked_resumes_from_cursor(self, client: ElementClient, app: Application) -> None:
        """Test that a caller cursor seeds the streamed walk."""
        chunks: list[list[dict[str, Any]]] = []

        async def on_chunk(chunk: list[dict[str, Any]]) -> None:
            chunks.append(chunk)

        await client.get_readings_chunked("d1", on_chunk, QueryOptions(retrieve_after_id="c1"))

        assert chunks == [[{"id": 3}]]
        assert len(app["requests"]) == 2


class TestElementClientResources:
    """Test single-request resource methods."""

    @pytest.mark.parametrize(
        ("method", "args", "http_method", "path", "payload"),
        [
            ("get_device", ("d1",), "GET", "/api/v1/devices/d1", None),
            ("find_device_by_dev_eui", ("0011223344556677",), "GET", "/api/v1/devices/by-eui/0011223344556677", None),
            (
                "create_device",
                ("sensor", "t1"),
                "POST",
                "/api/v1/devices",
                {"device": {"name": "sensor", "tags": [{"id": "t1"}]}},
            ),
            (
                "add_interface_to_device",
                ("d1", {"type": "lora"}),
                "POST",
                "/api/v1/devices/d1/interfaces",
                {"interface": {"type": "lora"}},
            ),
            ("list_interfaces", ("d1",), "GET", "/api/v1/devices/d1/interfaces", None),
            (
                "create_action",
                ("d1", {"payload": "00"}),
                "POST",
                "/api/v1/devices/d1/actions/send_down_frame",
                {"payload": "00"},
            ),
            (
                "create_action_on_interface",
                ("d1", "i1", {"payload": "01"}),
                "POST",
                "/api/v1/devices/d1/interfaces/i1/actions/send_down_frame",
                {"payload": "01"},
            ),
            ("get_action", ("d1", "a1"), "GET", "/api/v1/devices/d1/actions/a1", None),
            ("create_tag", ("plant",), "POST", "/api/v1/tags", {"tag": {"name": "plant"}}),
            (
                "create_tag",
                ("plant", {"parent_id": "t0", "description": "hall"}),
                "POST",
                "/api/v1/tags",
                {"tag": {"name": "plant", "parent_id": "t0", "description": "hall"}},
            ),
            ("create_tag_path", ("site/hall/room",), "POST", "/api/v1/tags/mkdir", {"name": "site/hall/room"}),
        ],
    )
    async def test_envelope_methods(
        self,
        client: ElementClient,
        app: Application,
        method: str,
        args: tuple[Any, ...],
        http_method: str,
        path: str,
        payload: dict[str, Any] | None,
    ) -> None:
        """Test that each method issues exactly one request to its endpoint."""
        response = await getattr(client, method)(*args)

        assert response == {"body": {"method": http_method, "path": path, "json": payload}}
        assert len(app["requests"]) == 1

    @pytest.mark.parametrize(
        ("method", "args", "path"),
        [
            ("delete_device", ("d1",), "/api/v1/devices/d1"),
            ("delete_interface", ("d1", "i1"), "/api/v1/devices/d1/interfaces/i1"),
            ("delete_tag", ("t1",), "/api/v1/tags/t1"),
        ],
    )
    async def test_delete_methods(
        self,
        client: ElementClient,
        app: Application,
        method: str,
        args: tuple[str, ...],
        path: str,
    ) -> None:
        """Test that delete methods target their endpoint."""
        assert await getattr(client, method)(*args) is None
        assert app["requests"][0][:2] == ("DELETE", path)

    async def test_get_tag_unwraps_body(self, client: ElementClient) -> None:
        """Test that get_tag returns the tag without the envelope."""
        tag = await client.get_tag("t1")

        assert tag == {"method": "GET", "path": "/api/v1/tags/t1", "json": None}

    async def test_update_readings(self, client: ElementClient) -> None:
        """Test merging readings across devices."""
        result = await client.update_readings({"filter": "x", "data": {"a": 1}})

        assert result == {"method": "PATCH", "path": "/api/v1/readings", "json": {"filter": "x", "data": {"a": 1}}}

    async def test_update_readings_by_device(self, client: ElementClient) -> None:
        """Test merging readings of one device."""
        result = await client.update_readings_by_device({"data": {"a": 1}}, "d1")

        assert result["method"] == "PATCH"
        assert result["path"] == "/api/v1/devices/d1/readings"

    async def test_errors_propagate(self, client: ElementClient) -> None:
        """Test that server errors surface unchanged."""
        with pytest.raises(ClientResponseError) as exc_info:
            await client.get_device("broken")

        assert exc_info.value.status == HTTPStatus.INTERNAL_SERVER_ERROR

    async def test_rate_limit_updated(self, client: ElementClient) -> None:
        """Test that responses update the client's rate-limit state."""
        await client.get_device("d1")

        assert client.rate_limit == RateLimitState(remaining=30, reset_ms=2000)


class TestElementClientLogger:
    """Test the pluggable logger callback."""

    async def test_logger_receives_rate_limit_messages(
        self,
        aiohttp_client: Callable[..., TestClient],
        app: Application,
        service_url: Callable[..., str],
    ) -> None:
        """Test that rate-limit messages go to the caller's logger."""
        test_client = await aiohttp_client(app)
        logger = MagicMock()
        client = ElementClient("key", service_url(test_client), session=test_client.session, logger=logger)

        await client.get_device("d1")

        logger.assert_any_call("Rate limit remaining 30")
        logger.assert_any_call("Rate limit reset 2000")
