"""Export all readings of a device page by page.

This example demonstrates:
- Streaming pagination with an async chunk callback
- Backpressure: the next page is fetched only after the chunk is written
- Logging of rate-limit state through the logger callback
"""

import asyncio
import json
import logging
import sys
from pathlib import Path

from pyelementiot import ElementClient, QueryOptions


logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
_LOGGER = logging.getLogger("stream_readings")


async def main(device_id: str, output: Path) -> None:
    """Write every reading of a device as JSON lines."""
    written = 0

    with output.open("w", encoding="utf-8") as handle:

        async def on_chunk(chunk: list[dict]) -> None:
            nonlocal written
            for reading in chunk:
                handle.write(json.dumps(reading) + "\n")
            written += len(chunk)
            print(f"Wrote {written} reading(s)")

        async with ElementClient(api_key="your-api-key", logger=_LOGGER.info) as client:
            await client.get_readings_chunked(device_id, on_chunk, QueryOptions(sort="measured_at"))

    print(f"\nDone: {written} reading(s) in {output}")


if __name__ == "__main__":
    if len(sys.argv) != 3:
        print("Usage: python stream_readings.py <device-id> <output.jsonl>")
        sys.exit(1)
    asyncio.run(main(sys.argv[1], Path(sys.argv[2])))
