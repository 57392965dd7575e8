"""Cursor pagination over ELEMENT list endpoints.

List responses carry a ``retrieve_after_id`` cursor while more pages exist. The
walk always proceeds one page at a time: page N+1 is never requested before
page N has been returned and (in streamed mode) consumed.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import TYPE_CHECKING, Any

from pyelementiot.const import MAX_PAGE_LIMIT
from pyelementiot.models import Page, QueryOptions
from pyelementiot.parsers import build_params


if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable, Mapping

    PageFetcher = Callable[[str, Mapping[str, str | int]], Awaitable[Page[list[Any]]]]
    ChunkCallback = Callable[[list[Any]], Awaitable[None]]

_LOGGER = logging.getLogger(__name__)


class Paginator:
    """Walk a cursor-paginated endpoint in accumulate or streamed mode.

    Example:
        ```python
        paginator = Paginator(api.get_page)

        # Accumulate every page
        readings = await paginator.collect("devices/1234/readings")

        # Stream pages with backpressure
        async def on_chunk(chunk: list[dict]) -> None:
            await store(chunk)

        await paginator.stream("devices/1234/readings", on_chunk)
        ```
    """

    def __init__(self, fetch_page: PageFetcher, page_limit: int = MAX_PAGE_LIMIT) -> None:
        """Initialize the paginator.

        Args:
            fetch_page: Coroutine fetching one page for (path, params).
            page_limit: Page size used when the caller sets no limit.
        """
        self._fetch_page = fetch_page
        self._page_limit = page_limit

    def _page_options(self, options: QueryOptions, cursor: str | None) -> QueryOptions:
        limit = options.limit if options.limit is not None else self._page_limit
        return dataclasses.replace(options, limit=limit, retrieve_after_id=cursor)

    async def pages(self, path: str, options: QueryOptions | None = None) -> AsyncIterator[Page[list[Any]]]:
        """Yield pages until the server stops returning a cursor.

        A cursor in ``options`` resumes a previous walk. Pages with an empty body
        are still yielded if they carry a cursor.

        Args:
            path: API path of the list endpoint.
            options: Optional query options.

        Yields:
            Each page in server order.
        """
        options = options or QueryOptions()
        cursor = options.retrieve_after_id
        page_number = 0

        while True:
            params = build_params(self._page_options(options, cursor))
            page = await self._fetch_page(path, params)
            page_number += 1
            _LOGGER.debug("Fetched page %d of %s (%d items)", page_number, path, len(page.body))

            yield page

            if page.retrieve_after_id is None:
                break
            cursor = page.retrieve_after_id

    async def collect(self, path: str, options: QueryOptions | None = None) -> list[Any]:
        """Fetch every page and concatenate the bodies in page order.

        Args:
            path: API path of the list endpoint.
            options: Optional query options.

        Returns:
            All items from all pages.

        Raises:
            ClientError: If any page request fails. Items already fetched are discarded.
        """
        values: list[Any] = []
        async for page in self.pages(path, options):
            values.extend(page.body)
        return values

    async def stream(
        self,
        path: str,
        on_chunk: ChunkCallback,
        options: QueryOptions | None = None,
    ) -> None:
        """Deliver each non-empty page to a callback.

        The callback is awaited before the next page is requested, so a slow
        consumer slows the walk down. Empty pages are skipped.

        Args:
            path: API path of the list endpoint.
            on_chunk: Coroutine called with each non-empty page body.
            options: Optional query options.

        Raises:
            ClientError: If any page request fails. Chunks already delivered stay delivered.
        """
        async for page in self.pages(path, options):
            if page.body:
                await on_chunk(page.body)

    async def fetch(self, path: str, options: QueryOptions | None = None) -> list[Any]:
        """Fetch a collection, using a single request when the caller asks for one page.

        With a non-zero ``limit`` of at most 100, exactly one request is issued
        and any returned cursor is ignored. Otherwise every page is collected.

        Args:
            path: API path of the list endpoint.
            options: Optional query options.

        Returns:
            Items from the single page or from all pages.
        """
        if options is not None and options.limit and options.limit <= MAX_PAGE_LIMIT:
            page = await self._fetch_page(path, build_params(options))
            return list(page.body)
        return await self.collect(path, options)
