"""
Command line entry point.

    mcp-toolservers github                     # stdio
    mcp-toolservers github fetch --transport http
    mcp-toolservers --transport http           # servers from config `server.servers`
    mcp-toolservers --list
"""
from __future__ import annotations

import argparse
import asyncio
import sys
from typing import List, Optional

import uvicorn

from .config import load_config, load_settings, resolve_config_path
from .errors import ConfigurationError, RegistryError
from .observability import setup_logger
from .servers import available_servers, create_server
from .transport import run_stdio


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mcp-toolservers",
        description="Run MCP tool servers over stdio or streamable HTTP.",
    )
    parser.add_argument("servers", nargs="*", help="Server name(s); stdio accepts exactly one")
    parser.add_argument("--transport", choices=["stdio", "http"], default="stdio")
    parser.add_argument("--config", help="Path to a YAML config file")
    parser.add_argument("--list", action="store_true", help="List available servers and exit")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.list:
        for name in available_servers():
            print(name)
        return 0

    try:
        config_path = resolve_config_path(args.config)
        config = load_config(config_path) if config_path else {}
        settings = load_settings(config=config)
        setup_logger(settings.log_level)

        names = args.servers or settings.servers
        if not names:
            raise ConfigurationError("No server given (pass a name or set server.servers in the config)")
        if args.transport == "stdio" and len(names) != 1:
            raise ConfigurationError("The stdio transport serves exactly one server")

        tool_servers = [create_server(name, settings) for name in names]
    except (ConfigurationError, RegistryError, FileNotFoundError, ValueError) as e:
        print(f"Failed to start MCP server: {e}", file=sys.stderr)
        return 1

    try:
        if args.transport == "stdio":
            asyncio.run(run_stdio(tool_servers[0]))
        else:
            from .http_app import create_app

            app = create_app(tool_servers, settings)
            base = f"http://{settings.host}:{settings.port}"
            print(f"Starting MCP tool servers on {base}", file=sys.stderr)
            for tool_server in tool_servers:
                print(f"MCP endpoint: {base}/mcp/{tool_server.name}/", file=sys.stderr)
            print(f"Discovery endpoint: {base}/mcp/discovery", file=sys.stderr)
            print(f"Healthcheck: {base}/health", file=sys.stderr)
            uvicorn.run(
                app,
                host=settings.host,
                port=settings.port,
                log_level=settings.log_level.lower(),
                server_header=False,
            )
    except KeyboardInterrupt:
        print("\nServer shutdown requested...", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
