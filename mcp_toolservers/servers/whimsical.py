"""Whimsical board and diagram tools."""
from __future__ import annotations

from typing import Any, Dict, Optional

from ..config import ServerSettings
from ..errors import ConfigurationError
from ..server import ToolServer

BOARD_ID = {"type": "string", "description": "Board ID"}


class WhimsicalServer(ToolServer):
    """Whimsical boards and diagrams. WHIMSICAL_API_KEY is checked at construction."""

    name = "whimsical"
    version = "0.1.0"
    service = "Whimsical"
    base_url = "https://api.whimsical.com/api/v1"

    def __init__(self, settings: Optional[ServerSettings] = None, *, transport=None) -> None:
        settings = settings or ServerSettings()
        self.api_key = settings.get_env("WHIMSICAL_API_KEY")
        if not self.api_key:
            raise ConfigurationError("WHIMSICAL_API_KEY is not set")
        super().__init__(settings, transport=transport)

    def default_headers(self) -> Dict[str, str]:
        headers = super().default_headers()
        headers["Authorization"] = f"Bearer {self.api_key}"
        headers["Accept"] = "application/json"
        return headers

    def register_tools(self) -> None:
        self.add_tool(
            "list_whimsical_boards",
            "List all Whimsical boards",
            {"type": "object", "properties": {}, "required": []},
            self.list_boards,
        )
        self.add_tool(
            "fetch_whimsical_board",
            "Fetch a Whimsical board by ID",
            {"type": "object", "properties": {"board_id": BOARD_ID}, "required": ["board_id"]},
            self.fetch_board,
        )
        self.add_tool(
            "create_whimsical_board",
            "Create a new Whimsical board",
            {
                "type": "object",
                "properties": {"name": {"type": "string", "description": "Board name"}},
                "required": ["name"],
            },
            self.create_board,
        )
        self.add_tool(
            "create_whimsical_diagram",
            "Create a new diagram on a board",
            {
                "type": "object",
                "properties": {
                    "type": {"type": "string", "description": "Diagram type"},
                    "template": {"type": "string", "description": "Template name"},
                    "initial_nodes": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "properties": {"name": {"type": "string"}, "parent": {"type": "string"}},
                        },
                    },
                },
                "required": ["type"],
            },
            self.create_diagram,
        )
        self.add_tool(
            "update_whimsical_diagram",
            "Update nodes on a Whimsical board",
            {
                "type": "object",
                "properties": {
                    "board_id": BOARD_ID,
                    "updates": {"type": "array", "items": {"type": "object"}},
                },
                "required": ["board_id", "updates"],
            },
            self.update_diagram,
        )

    async def list_boards(self, args: Dict[str, Any]) -> Any:
        return await self.client.get("/boards")

    async def fetch_board(self, args: Dict[str, Any]) -> Any:
        return await self.client.get(f"/boards/{args['board_id']}")

    async def create_board(self, args: Dict[str, Any]) -> Any:
        return await self.client.post("/boards", json={"name": args["name"]})

    async def create_diagram(self, args: Dict[str, Any]) -> Any:
        payload = {"type": args["type"]}
        if args.get("template"):
            payload["template"] = args["template"]
        if args.get("initial_nodes"):
            payload["initialNodes"] = args["initial_nodes"]
        return await self.client.post("/diagrams", json=payload)

    async def update_diagram(self, args: Dict[str, Any]) -> Any:
        return await self.client.patch(f"/boards/{args['board_id']}/nodes", json=args["updates"])
