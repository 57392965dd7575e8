"""Example showing one application-managed session shared by REST and socket clients."""

import asyncio

from aiohttp import ClientSession

from pyelementiot import ElementClient, ElementSocket


async def main() -> None:
    """Demonstrate session injection for applications that own their HTTP session."""
    async with ClientSession() as session:
        print("Using application-managed aiohttp session")

        # Client will use the provided session instead of creating its own
        client = ElementClient(api_key="your-api-key", session=session)

        async with client:
            tags = await client.get_tags()
            print(f"Found {len(tags)} tag(s) using injected session")

        if not tags:
            return

        # The socket shares the same connection pool
        socket = ElementSocket(
            api_key="your-api-key",
            resource_type="packets",
            tag_id=tags[0]["id"],
            session=session,
        )
        socket.add_listener("packets", lambda packet: print(f"Packet {packet['id']}"))

        async with socket:
            await asyncio.sleep(30)

        # Session remains open after both clients exit
        print(f"\nClients closed, session still open: {not session.closed}")


if __name__ == "__main__":
    asyncio.run(main())
