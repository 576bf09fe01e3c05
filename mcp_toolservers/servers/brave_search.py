"""Brave Search web search and query suggestion tools."""
from __future__ import annotations

from typing import Any, Dict, Optional

from ..config import ServerSettings
from ..server import ToolServer

MAX_RESULTS = 20


class BraveSearchServer(ToolServer):
    """Web search and query suggestions via the Brave Search API."""

    name = "brave_search"
    version = "0.1.0"
    service = "Brave Search"
    base_url = "https://api.search.brave.com/res/v1"

    def __init__(self, settings: Optional[ServerSettings] = None, *, transport=None) -> None:
        settings = settings or ServerSettings()
        self.api_key = settings.get_env("BRAVE_SEARCH_API_KEY", "BRAVE_API_KEY")
        super().__init__(settings, transport=transport)
        if not self.api_key:
            self.logger.warning(
                "BRAVE_SEARCH_API_KEY is not set; search calls will be rejected",
                extra={"server": self.name},
            )

    def default_headers(self) -> Dict[str, str]:
        headers = super().default_headers()
        headers["Accept"] = "application/json"
        if self.api_key:
            headers["X-Subscription-Token"] = self.api_key
        return headers

    def register_tools(self) -> None:
        self.add_tool(
            "search",
            "Search the web using Brave Search",
            {
                "type": "object",
                "properties": {
                    "query": {"type": "string", "minLength": 1, "description": "Search query"},
                    "count": {
                        "type": "integer",
                        "description": f"Number of results to return (max {MAX_RESULTS})",
                        "minimum": 1,
                        "default": 10,
                    },
                },
                "required": ["query"],
            },
            self.search,
        )
        self.add_tool(
            "get_suggestions",
            "Get search suggestions for a query",
            {
                "type": "object",
                "properties": {
                    "query": {"type": "string", "minLength": 1, "description": "Partial search query"},
                },
                "required": ["query"],
            },
            self.get_suggestions,
        )

    async def search(self, args: Dict[str, Any]) -> Any:
        self.require_credential(self.api_key, "BRAVE_SEARCH_API_KEY")
        count = min(int(args.get("count") or 10), MAX_RESULTS)
        return await self.client.get("/web/search", params={"q": args["query"], "count": count})

    async def get_suggestions(self, args: Dict[str, Any]) -> Any:
        self.require_credential(self.api_key, "BRAVE_SEARCH_API_KEY")
        return await self.client.get("/suggest/search", params={"q": args["query"]})
