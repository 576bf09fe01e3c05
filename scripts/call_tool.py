from __future__ import annotations

import asyncio
import json
import sys
from typing import Any, Dict

from mcp import ClientSession
from mcp.client.streamable_http import streamablehttp_client


BASE_URL = "http://127.0.0.1:9000/mcp"


async def main() -> None:
    if len(sys.argv) < 4:
        print("Usage: python scripts/call_tool.py <server> <tool_name> '<json-args>'")
        raise SystemExit(1)

    server, tool_name, raw_args = sys.argv[1], sys.argv[2], sys.argv[3]

    try:
        params: Dict[str, Any] = json.loads(raw_args)
    except json.JSONDecodeError as exc:
        print("Failed to parse JSON arguments")
        print(repr(exc))
        raise SystemExit(1)

    async with streamablehttp_client(f"{BASE_URL}/{server}/") as (read_stream, write_stream, _):
        async with ClientSession(read_stream, write_stream) as session:
            await session.initialize()
            result = await session.call_tool(tool_name, params)
            status = "error" if result.isError else "ok"
            print(f"Tool call result ({status}):")
            for block in result.content:
                print(getattr(block, "text", block))


if __name__ == "__main__":
    asyncio.run(main())
