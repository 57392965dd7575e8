"""Monitor live readings of a tag over the event socket.

This example demonstrates:
- Subscribing to readings of all devices in a tag
- Listener registration for open, close and error events
- Stopping cleanly when the connection closes
"""

import asyncio
import logging
import sys

from pyelementiot import ElementSocket


logging.basicConfig(level=logging.DEBUG, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")


async def main(tag_id: str) -> None:
    """Print readings until the socket closes or Ctrl+C is pressed."""
    closed = asyncio.Event()

    def on_reading(reading: dict) -> None:
        print(f"[{reading.get('measured_at')}] device {reading.get('device_id')}: {reading.get('data')}")

    def on_error(err: BaseException) -> None:
        print(f"Socket error: {err}")

    socket = ElementSocket(api_key="your-api-key", resource_type="readings", tag_id=tag_id)
    socket.add_listener("open", lambda: print("Socket open, waiting for readings..."))
    socket.add_listener("close", closed.set)
    socket.add_listener("error", on_error)
    socket.add_listener("readings", on_reading)

    async with socket:
        await closed.wait()

    # No automatic reconnect; a new ElementSocket is needed to resume
    print("Socket closed")


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("Usage: python monitor_socket.py <tag-id>")
        sys.exit(1)
    try:
        asyncio.run(main(sys.argv[1]))
    except KeyboardInterrupt:
        print("\nStopped")
