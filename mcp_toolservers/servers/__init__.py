"""Concrete tool servers, addressable by name."""
from __future__ import annotations

from typing import Callable, Dict, List, Optional

import httpx

from ..config import ServerSettings
from ..errors import ConfigurationError
from ..server import ToolServer
from .brave_search import BraveSearchServer
from .fetch import FetchServer
from .filesystem import FilesystemServer
from .github import GitHubServer
from .mindmap import MindmapServer
from .technical_docs import TechnicalDocsServer
from .vercel import VercelServer
from .whimsical import WhimsicalServer

SERVER_FACTORIES: Dict[str, Callable[..., ToolServer]] = {
    "github": GitHubServer,
    "brave_search": BraveSearchServer,
    "fetch": FetchServer,
    "filesystem": FilesystemServer,
    "vercel": VercelServer,
    "whimsical": WhimsicalServer,
    "mindmap": MindmapServer,
    "technical_docs": TechnicalDocsServer,
}


def available_servers() -> List[str]:
    return sorted(SERVER_FACTORIES)


def create_server(
    name: str,
    settings: Optional[ServerSettings] = None,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ToolServer:
    key = name.strip().lower().replace("-", "_")
    factory = SERVER_FACTORIES.get(key)
    if factory is None:
        raise ConfigurationError(
            f"Unknown server {name!r}; available: {', '.join(available_servers())}"
        )
    return factory(settings, transport=transport)


__all__ = [
    "SERVER_FACTORIES",
    "available_servers",
    "create_server",
    "BraveSearchServer",
    "FetchServer",
    "FilesystemServer",
    "GitHubServer",
    "MindmapServer",
    "TechnicalDocsServer",
    "VercelServer",
    "WhimsicalServer",
]
