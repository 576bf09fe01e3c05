from __future__ import annotations

import asyncio
import sys

from mcp import ClientSession
from mcp.client.streamable_http import streamablehttp_client


BASE_URL = "http://127.0.0.1:9000/mcp"


async def main() -> None:
    server = sys.argv[1] if len(sys.argv) > 1 else "github"
    url = f"{BASE_URL}/{server}/"
    async with streamablehttp_client(url) as (read_stream, write_stream, _):
        async with ClientSession(read_stream, write_stream) as session:
            await session.initialize()
            tools_result = await session.list_tools()
            print(f"Available tools on {server}:")
            for tool in tools_result.tools:
                print(f"- {tool.name}: {tool.description}")


if __name__ == "__main__":
    asyncio.run(main())
