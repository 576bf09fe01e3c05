"""Tool descriptors and the per-server capability catalog."""
from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional

from mcp import types

from .errors import RegistryError


@dataclass(frozen=True)
class ToolDescriptor:
    """Name, description and input schema of one tool. Never mutated after creation."""

    name: str
    description: str
    _schema: Dict[str, Any] = field(repr=False)

    @classmethod
    def create(
        cls,
        name: str,
        description: str,
        input_schema: Optional[Mapping[str, Any]] = None,
    ) -> "ToolDescriptor":
        if not name or not name.strip():
            raise RegistryError("Tool name must be a non-empty string")
        schema = copy.deepcopy(dict(input_schema or {}))
        schema.setdefault("type", "object")
        schema.setdefault("properties", {})
        return cls(name=name, description=description, _schema=schema)

    @property
    def input_schema(self) -> Dict[str, Any]:
        """Deep copy of the declared schema."""
        return copy.deepcopy(self._schema)

    @property
    def properties(self) -> Mapping[str, Any]:
        return self._schema.get("properties") or {}

    @property
    def required(self) -> List[str]:
        return list(self._schema.get("required") or [])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }

    def to_mcp_tool(self) -> types.Tool:
        return types.Tool(
            name=self.name,
            description=self.description,
            inputSchema=self.input_schema,
        )


class CapabilityCatalog:
    """Ordered collection of tool descriptors with unique names."""

    def __init__(self) -> None:
        self._descriptors: Dict[str, ToolDescriptor] = {}
        self._sealed = False

    def add(self, descriptor: ToolDescriptor) -> None:
        if self._sealed:
            raise RegistryError(
                f"Cannot add tool '{descriptor.name}': catalog is sealed after server construction"
            )
        if descriptor.name in self._descriptors:
            raise RegistryError(f"Duplicate tool name in catalog: {descriptor.name}")
        self._descriptors[descriptor.name] = descriptor

    def seal(self) -> None:
        self._sealed = True

    @property
    def sealed(self) -> bool:
        return self._sealed

    def get(self, name: str) -> Optional[ToolDescriptor]:
        return self._descriptors.get(name)

    def list_tools(self) -> List[ToolDescriptor]:
        return list(self._descriptors.values())

    def names(self) -> List[str]:
        return list(self._descriptors.keys())

    def to_dicts(self) -> List[Dict[str, Any]]:
        return [descriptor.to_dict() for descriptor in self._descriptors.values()]

    def to_mcp_tools(self) -> List[types.Tool]:
        return [descriptor.to_mcp_tool() for descriptor in self._descriptors.values()]

    def __contains__(self, name: object) -> bool:
        return name in self._descriptors

    def __iter__(self) -> Iterator[ToolDescriptor]:
        return iter(list(self._descriptors.values()))

    def __len__(self) -> int:
        return len(self._descriptors)
