"""
Mindmaps kept in server memory, exportable as JSON, Markdown or Mermaid.

Maps live for the lifetime of the server process. Node ids are assigned by the
server (`root`, `node_1`, `node_2`, ...) and are stable across updates, so
callers address nodes by the ids returned from `create_mindmap`.
"""
from __future__ import annotations

import copy
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from ..config import ServerSettings
from ..envelope import render_json
from ..errors import InvalidParamsError
from ..server import ToolServer

EXPORT_FORMATS = ["json", "markdown", "mermaid"]

# Section names only; nodes are created empty
TEMPLATES: Dict[str, List[str]] = {
    "blank": [],
    "swot": ["Strengths", "Weaknesses", "Opportunities", "Threats"],
}

NODE_LIST: Dict[str, Any] = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {
            "name": {"type": "string"},
            "parent": {"type": "string", "description": "Parent node id (defaults to root)"},
        },
        "required": ["name"],
    },
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _node(node_id: str, name: str) -> Dict[str, Any]:
    return {"id": node_id, "name": name, "children": []}


def _node_name(raw: Any, where: str) -> str:
    if not isinstance(raw, str) or not raw.strip():
        raise InvalidParamsError(f"{where} needs a non-empty name")
    return raw.strip()


def _index(root: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    nodes: Dict[str, Dict[str, Any]] = {}
    stack = [root]
    while stack:
        node = stack.pop()
        nodes[node["id"]] = node
        stack.extend(node["children"])
    return nodes


def _mermaid_label(name: str) -> str:
    # Parentheses and newlines end a Mermaid node shape
    return " ".join(name.split()).replace("(", "[").replace(")", "]")


def to_markdown(mindmap: Mapping[str, Any]) -> str:
    lines = [f"# {mindmap['title']}", ""]

    def walk(node: Mapping[str, Any], level: int) -> None:
        lines.append(f"{'  ' * level}- {node['name']}")
        for child in node["children"]:
            walk(child, level + 1)

    walk(mindmap["root"], 0)
    return "\n".join(lines) + "\n"


def to_mermaid(mindmap: Mapping[str, Any]) -> str:
    root = mindmap["root"]
    lines = ["mindmap", f"  root(({_mermaid_label(root['name'])}))"]

    def walk(node: Mapping[str, Any], depth: int) -> None:
        for child in node["children"]:
            lines.append(f"{'  ' * depth}{child['id']}({_mermaid_label(child['name'])})")
            walk(child, depth + 1)

    walk(root, 2)
    return "\n".join(lines) + "\n"


class MindmapServer(ToolServer):
    name = "mindmap"
    version = "0.1.0"

    def __init__(self, settings: Optional[ServerSettings] = None, *, transport=None) -> None:
        self.mindmaps: Dict[str, Dict[str, Any]] = {}
        super().__init__(settings, transport=transport)

    def register_tools(self) -> None:
        self.add_tool(
            "create_mindmap",
            "Create a new mindmap, blank or from a small template",
            {
                "type": "object",
                "properties": {
                    "title": {"type": "string", "minLength": 1, "description": "Title of the mindmap"},
                    "template": {
                        "type": "string",
                        "description": "Starting structure",
                        "enum": list(TEMPLATES),
                        "default": "blank",
                    },
                    "root_node": {"type": "string", "description": "Name of the root node (defaults to the title)"},
                    "initial_nodes": {
                        **NODE_LIST,
                        "description": "Nodes to add after the template, in order; "
                        "a parent may be any node created earlier in this list",
                    },
                },
                "required": ["title"],
            },
            self.create_mindmap,
        )
        self.add_tool(
            "update_mindmap",
            "Update an existing mindmap by renaming, adding or removing nodes",
            {
                "type": "object",
                "properties": {
                    "mindmap_id": {"type": "string", "minLength": 1, "description": "ID of the mindmap to update"},
                    "update_nodes": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "properties": {"id": {"type": "string"}, "name": {"type": "string"}},
                            "required": ["id", "name"],
                        },
                        "description": "Nodes to rename",
                    },
                    "add_nodes": {**NODE_LIST, "description": "Nodes to add"},
                    "remove_nodes": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "IDs of nodes to remove, with their subtrees",
                    },
                },
                "required": ["mindmap_id"],
            },
            self.update_mindmap,
        )
        self.add_tool(
            "export_mindmap",
            "Export a mindmap as JSON, Markdown or a Mermaid diagram",
            {
                "type": "object",
                "properties": {
                    "mindmap_id": {"type": "string", "minLength": 1, "description": "ID of the mindmap to export"},
                    "format": {"type": "string", "description": "Export format", "enum": EXPORT_FORMATS},
                },
                "required": ["mindmap_id", "format"],
            },
            self.export_mindmap,
        )

    def get_mindmap(self, mindmap_id: str) -> Dict[str, Any]:
        mindmap = self.mindmaps.get(mindmap_id)
        if mindmap is None:
            raise InvalidParamsError(f"Mindmap not found: {mindmap_id}")
        return mindmap

    def _add_nodes(self, mindmap: Dict[str, Any], nodes: Any, label: str) -> None:
        index = _index(mindmap["root"])
        for position, raw in enumerate(nodes or []):
            if not isinstance(raw, Mapping):
                raise InvalidParamsError(f"{label} {position} must be an object")
            name = _node_name(raw.get("name"), f"{label} {position}")
            parent_id = raw.get("parent") or "root"
            parent = index.get(parent_id)
            if parent is None:
                raise InvalidParamsError(f"Unknown parent node: {parent_id}")
            mindmap["next_node"] += 1
            node = _node(f"node_{mindmap['next_node']}", name)
            parent["children"].append(node)
            index[node["id"]] = node

    @staticmethod
    def _snapshot(mindmap: Mapping[str, Any]) -> Dict[str, Any]:
        structure = {key: value for key, value in mindmap.items() if key != "next_node"}
        return {
            "mindmap_id": mindmap["id"],
            "title": mindmap["title"],
            "structure": copy.deepcopy(structure),
            "mermaid_diagram": to_mermaid(mindmap),
        }

    async def create_mindmap(self, args: Dict[str, Any]) -> Any:
        title = args["title"].strip()
        root_name = (args.get("root_node") or "").strip() or title
        now = _now()
        mindmap: Dict[str, Any] = {
            "id": f"mm_{uuid.uuid4().hex[:12]}",
            "title": title,
            "created": now,
            "updated": now,
            "root": _node("root", root_name),
            "next_node": 0,
        }
        template = [{"name": section} for section in TEMPLATES[args["template"]]]
        self._add_nodes(mindmap, template, "Template node")
        self._add_nodes(mindmap, args.get("initial_nodes"), "Initial node")

        self.mindmaps[mindmap["id"]] = mindmap
        self.logger.info(f"Created mindmap {mindmap['id']}", extra={"server": self.name})
        return self._snapshot(mindmap)

    async def update_mindmap(self, args: Dict[str, Any]) -> Any:
        current = self.get_mindmap(args["mindmap_id"])
        # Changes apply to a copy so a bad entry leaves the stored map untouched
        mindmap = copy.deepcopy(current)
        index = _index(mindmap["root"])

        for position, raw in enumerate(args.get("update_nodes") or []):
            if not isinstance(raw, Mapping):
                raise InvalidParamsError(f"Node update {position} must be an object")
            node = index.get(raw.get("id"))
            if node is None:
                raise InvalidParamsError(f"Unknown node: {raw.get('id')}")
            node["name"] = _node_name(raw.get("name"), f"Node update {position}")

        self._add_nodes(mindmap, args.get("add_nodes"), "New node")

        for node_id in args.get("remove_nodes") or []:
            if node_id == "root":
                raise InvalidParamsError("The root node cannot be removed")
            parents = {child["id"]: node for node in _index(mindmap["root"]).values() for child in node["children"]}
            parent = parents.get(node_id)
            if parent is None:
                raise InvalidParamsError(f"Unknown node: {node_id}")
            parent["children"] = [child for child in parent["children"] if child["id"] != node_id]

        mindmap["updated"] = _now()
        self.mindmaps[mindmap["id"]] = mindmap
        return self._snapshot(mindmap)

    async def export_mindmap(self, args: Dict[str, Any]) -> Any:
        mindmap = self.get_mindmap(args["mindmap_id"])
        fmt = args["format"]
        if fmt == "markdown":
            return to_markdown(mindmap)
        if fmt == "mermaid":
            return to_mermaid(mindmap)
        return render_json(self._snapshot(mindmap)["structure"])
