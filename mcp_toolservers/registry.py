"""Handler registry: tool name -> async handler."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List

from .errors import MethodNotFoundError, RegistryError

ToolHandler = Callable[[Dict[str, Any]], Awaitable[Any]]


@dataclass(frozen=True)
class HandlerEntry:
    tool_name: str
    handler: ToolHandler


class HandlerRegistry:
    """
    Built once at server construction, read-only afterwards.

    Duplicate names and registration after sealing are programmer errors and
    raise RegistryError instead of surfacing to callers.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, HandlerEntry] = {}
        self._sealed = False

    def register(self, name: str, handler: ToolHandler) -> HandlerEntry:
        if self._sealed:
            raise RegistryError(f"Cannot register handler '{name}': registry is sealed")
        if name in self._entries:
            raise RegistryError(f"Handler already registered: {name}")
        if not callable(handler):
            raise RegistryError(f"Handler for '{name}' is not callable")
        entry = HandlerEntry(tool_name=name, handler=handler)
        self._entries[name] = entry
        return entry

    def seal(self) -> None:
        self._sealed = True

    def resolve(self, name: str) -> HandlerEntry:
        entry = self._entries.get(name)
        if entry is None:
            raise MethodNotFoundError(name)
        return entry

    def names(self) -> List[str]:
        return list(self._entries.keys())

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)
