from __future__ import annotations

import asyncio
import os
import sys

import httpx


BASE_URL = os.getenv("MCP_BASE_URL", "http://127.0.0.1:9000")


async def main() -> int:
    headers = {}
    token = os.getenv("MCP_SERVER_TOKEN", "").strip()
    if token:
        headers["Authorization"] = f"Bearer {token}"

    async with httpx.AsyncClient(base_url=BASE_URL, headers=headers, timeout=10.0) as client:
        print(f"Checking {BASE_URL}/health ...")
        health = await client.get("/health")
        health.raise_for_status()
        print(health.json())

        print("Fetching discovery ...")
        discovery = (await client.get("/mcp/discovery")).json()
        for server in discovery.get("servers", []):
            print(f" - {server['name']}: {server['tool_count']} tools ({server['endpoint']})")
        if discovery.get("hash_mismatch"):
            print(f"Tools hash mismatch: {discovery['tools_hash']} != {discovery['pinned_hash']}")
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
