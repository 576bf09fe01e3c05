"""Vercel project listing."""
from __future__ import annotations

from typing import Any, Dict, Optional

from ..config import ServerSettings
from ..server import ToolServer


class VercelServer(ToolServer):
    name = "vercel"
    version = "0.1.0"
    service = "Vercel"
    base_url = "https://api.vercel.com"

    def __init__(self, settings: Optional[ServerSettings] = None, *, transport=None) -> None:
        settings = settings or ServerSettings()
        self.token = settings.get_env("VERCEL_API_TOKEN")
        super().__init__(settings, transport=transport)

    def default_headers(self) -> Dict[str, str]:
        headers = super().default_headers()
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def register_tools(self) -> None:
        self.add_tool(
            "list_projects",
            "List Vercel projects for the authenticated user.",
            {
                "type": "object",
                "properties": {
                    "limit": {"type": "integer", "description": "Maximum number of projects", "minimum": 1, "maximum": 100},
                    "team_id": {"type": "string", "description": "Team to list projects for"},
                },
                "required": [],
            },
            self.list_projects,
        )

    async def list_projects(self, args: Dict[str, Any]) -> Any:
        self.require_credential(self.token, "VERCEL_API_TOKEN")
        return await self.client.get(
            "/v9/projects",
            params={"limit": args.get("limit"), "teamId": args.get("team_id")},
        )
