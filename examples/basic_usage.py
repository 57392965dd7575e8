"""Basic usage example for pyelementiot library."""

import asyncio

from pyelementiot import ElementClient, QueryOptions, SortDirection


async def main() -> None:
    """Demonstrate basic usage of pyelementiot."""
    async with ElementClient(api_key="your-api-key") as client:
        print("Connected to ELEMENT API")

        # Walks every page of the device list
        devices = await client.get_devices()
        print(f"Found {len(devices)} device(s)")

        for device in devices[:5]:
            print(f"\nDevice: {device['name']}")
            print(f"  ID: {device['id']}")

            # A limit of 100 or less is served by a single request
            readings = await client.get_readings(
                device["id"],
                QueryOptions(limit=5, sort="measured_at", sort_direction=SortDirection.DESC),
            )
            for reading in readings:
                print(f"  {reading['measured_at']}: {reading['data']}")

        state = client.rate_limit
        print(f"\nRate limit remaining: {state.remaining} (reset in {state.reset_ms} ms)")


if __name__ == "__main__":
    asyncio.run(main())
