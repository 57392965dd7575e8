"""Rate-limit governor driven by server rate-limit headers."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from pyelementiot.const import (
    DEFAULT_RATE_LIMIT_REMAINING,
    DEFAULT_RATE_LIMIT_RESET_MS,
    FALLBACK_RATE_LIMIT_REMAINING,
    FALLBACK_RATE_LIMIT_RESET_MS,
    HEADER_RATE_LIMIT_REMAINING,
    HEADER_RATE_LIMIT_RESET,
    RATE_LIMIT_THRESHOLD,
    RATE_LIMIT_WAIT_MULTIPLIER,
)
from pyelementiot.models import RateLimitState


if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

_LOGGER = logging.getLogger(__name__)


def _parse_header(headers: Mapping[str, str], name: str, fallback: int) -> int:
    """Read an integer header, using the fallback when missing or invalid."""
    value = headers.get(name)
    if value is None:
        return fallback
    try:
        return int(value)
    except (TypeError, ValueError):
        _LOGGER.debug("Ignoring invalid %s header: %r", name, value)
        return fallback


class RateLimitGovernor:
    """Delay outgoing requests when the server reports few requests left.

    The governor holds the last observed (remaining, reset) pair. Every response
    overwrites it through observe(). Before every request, gate() sleeps for twice
    the reset delay when remaining is at or below the threshold. The doubling
    absorbs clock skew between client and server windows.

    State is shared by all requests on one client and is not locked. Concurrent
    responses simply overwrite each other; the limit is advisory.

    Example:
        governor = RateLimitGovernor(remaining=50, reset_ms=5000)

        await governor.gate()
        async with session.get(url) as response:
            governor.observe(response.headers)

    Attributes:
        max_wait: Optional ceiling on a single wait in seconds (None waits as long
            as the server asks).
    """

    def __init__(
        self,
        remaining: int | None = None,
        reset_ms: int | None = None,
        *,
        max_wait: float | None = None,
        logger: Callable[[str], None] | None = None,
    ) -> None:
        """Initialize the governor.

        Args:
            remaining: Initial requests remaining. Falsy values use the default (50).
            reset_ms: Initial reset delay in milliseconds. Falsy values use the default (5000).
            max_wait: Optional ceiling on a single wait, in seconds.
            logger: Optional callback for rate-limit messages.
        """
        self._state = RateLimitState(
            remaining=remaining or DEFAULT_RATE_LIMIT_REMAINING,
            reset_ms=reset_ms or DEFAULT_RATE_LIMIT_RESET_MS,
        )
        self.max_wait = max_wait
        self._log = logger if logger is not None else _LOGGER.debug

    @property
    def state(self) -> RateLimitState:
        """Get a snapshot of the current rate-limit state."""
        return RateLimitState(remaining=self._state.remaining, reset_ms=self._state.reset_ms)

    @property
    def is_limited(self) -> bool:
        """Check if the next request will be delayed."""
        return self._state.remaining <= RATE_LIMIT_THRESHOLD

    def observe(self, headers: Mapping[str, str]) -> None:
        """Update state from response headers.

        Missing headers fall back to a conservative (5, 5000 ms) rather than
        keeping stale values.

        Args:
            headers: Response headers (case-insensitive mapping from aiohttp).
        """
        remaining = _parse_header(headers, HEADER_RATE_LIMIT_REMAINING, FALLBACK_RATE_LIMIT_REMAINING)
        reset_ms = _parse_header(headers, HEADER_RATE_LIMIT_RESET, FALLBACK_RATE_LIMIT_RESET_MS)

        self._log(f"Rate limit remaining {remaining}")
        self._log(f"Rate limit reset {reset_ms}")

        self._state.remaining = remaining
        self._state.reset_ms = reset_ms

    def wait_time(self) -> float:
        """Calculate the delay the next request would get.

        Returns:
            Delay in seconds, 0.0 when not limited.
        """
        if not self.is_limited:
            return 0.0

        delay = self._state.reset_ms * RATE_LIMIT_WAIT_MULTIPLIER / 1000
        if self.max_wait is not None:
            delay = min(delay, self.max_wait)
        return max(delay, 0.0)

    async def gate(self) -> None:
        """Wait before a request if the rate limit is nearly exhausted.

        This never fails and never rejects, it only delays.
        """
        delay = self.wait_time()
        if delay <= 0:
            return

        self._log(f"Rate limit reset in {self._state.reset_ms}")
        _LOGGER.debug("Rate limited, waiting %.2fs before request", delay)
        await asyncio.sleep(delay)
