"""Mermaid source for architecture, sequence and Gantt diagrams."""
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from ..errors import InvalidParamsError
from ..server import ToolServer

DIRECTIONS = ["TB", "BT", "LR", "RL"]
SEQUENCE_ARROWS = ["->", "-->", "->>", "-->>", "-x", "--x", "-)", "--)"]
PARTICIPANT_TYPES = ["participant", "actor"]


def _text(value: Any) -> str:
    return " ".join(str(value).split())


def _entries(args: Dict[str, Any], field: str, label: str, required: List[str]) -> List[Mapping[str, Any]]:
    """Non-empty list of objects, each carrying the `required` keys."""
    items = args.get(field) or []
    if not items:
        raise InvalidParamsError(f"{label} are required")
    for position, item in enumerate(items):
        if not isinstance(item, Mapping):
            raise InvalidParamsError(f"{label} entry {position} must be an object")
        for key in required:
            if item.get(key) in (None, ""):
                raise InvalidParamsError(f"{label} entry {position} needs '{key}'")
    return items


def _flowchart_node(component: Mapping[str, Any]) -> str:
    label = _text(component["name"])
    if component.get("description"):
        label += "<br/>" + _text(component["description"])
    return f'{component["id"]}["{label.replace(chr(34), "#quot;")}"]'


class TechnicalDocsServer(ToolServer):
    """Stateless generators; every tool returns `{"mermaid_code": ...}`."""

    name = "technical_docs"
    version = "0.1.0"

    def register_tools(self) -> None:
        self.add_tool(
            "generate_architecture_diagram",
            "Generate an architecture flowchart from components and their relationships",
            {
                "type": "object",
                "properties": {
                    "diagram_type": {
                        "type": "string",
                        "description": "Mermaid flowchart keyword",
                        "enum": ["flowchart", "graph"],
                        "default": "flowchart",
                    },
                    "direction": {
                        "type": "string",
                        "description": "Direction of the flowchart",
                        "enum": DIRECTIONS,
                        "default": "TB",
                    },
                    "components": {
                        "type": "array",
                        "description": "Components; type 'subgraph' groups nested components",
                        "items": {
                            "type": "object",
                            "properties": {
                                "id": {"type": "string"},
                                "name": {"type": "string"},
                                "type": {"type": "string"},
                                "description": {"type": "string"},
                                "components": {"type": "array", "items": {"type": "object"}},
                            },
                            "required": ["id", "name"],
                        },
                    },
                    "relationships": {
                        "type": "array",
                        "description": "Edges between component ids",
                        "items": {
                            "type": "object",
                            "properties": {
                                "from": {"type": "string"},
                                "to": {"type": "string"},
                                "label": {"type": "string"},
                            },
                            "required": ["from", "to"],
                        },
                    },
                },
                "required": ["components"],
            },
            self.generate_architecture_diagram,
        )
        self.add_tool(
            "generate_sequence_diagram",
            "Generate a sequence diagram for interactions between participants",
            {
                "type": "object",
                "properties": {
                    "participants": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "properties": {
                                "id": {"type": "string"},
                                "name": {"type": "string"},
                                "type": {"type": "string", "enum": PARTICIPANT_TYPES},
                            },
                            "required": ["id", "name"],
                        },
                    },
                    "interactions": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "properties": {
                                "from": {"type": "string"},
                                "to": {"type": "string"},
                                "message": {"type": "string"},
                                "type": {"type": "string", "enum": SEQUENCE_ARROWS, "description": "Arrow (default ->>)"},
                            },
                            "required": ["from", "to", "message"],
                        },
                    },
                },
                "required": ["participants", "interactions"],
            },
            self.generate_sequence_diagram,
        )
        self.add_tool(
            "generate_gantt_chart",
            "Generate a Gantt chart for a project timeline",
            {
                "type": "object",
                "properties": {
                    "title": {"type": "string", "description": "Title of the Gantt chart"},
                    "date_format": {"type": "string", "description": "Input date format", "default": "YYYY-MM-DD"},
                    "sections": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "properties": {
                                "name": {"type": "string"},
                                "tasks": {
                                    "type": "array",
                                    "items": {
                                        "type": "object",
                                        "properties": {
                                            "name": {"type": "string"},
                                            "id": {"type": "string"},
                                            "start": {"type": "string"},
                                            "end": {"type": "string"},
                                            "duration": {"type": "string", "description": "e.g. 3d"},
                                            "dependencies": {"type": "array", "items": {"type": "string"}},
                                        },
                                        "required": ["name"],
                                    },
                                },
                            },
                            "required": ["name", "tasks"],
                        },
                    },
                },
                "required": ["sections"],
            },
            self.generate_gantt_chart,
        )

    async def generate_architecture_diagram(self, args: Dict[str, Any]) -> Any:
        components = _entries(args, "components", "Components", ["id", "name"])
        relationships = args.get("relationships") or []
        lines = [f"{args['diagram_type']} {args['direction']}"]

        for component in components:
            if component.get("type") == "subgraph":
                lines.append(f'    subgraph {component["id"]}["{_text(component["name"])}"]')
                children = _entries(component, "components", f"Subgraph {component['id']} components", ["id", "name"])
                lines.extend(f"        {_flowchart_node(child)}" for child in children)
                lines.append("    end")
            else:
                lines.append(f"    {_flowchart_node(component)}")

        for position, rel in enumerate(relationships):
            if not isinstance(rel, Mapping) or not rel.get("from") or not rel.get("to"):
                raise InvalidParamsError(f"Relationships entry {position} needs 'from' and 'to'")
            label = f"|{_text(rel['label'])}|" if rel.get("label") else ""
            lines.append(f"    {rel['from']} -->{label} {rel['to']}")

        return {"mermaid_code": "\n".join(lines) + "\n"}

    async def generate_sequence_diagram(self, args: Dict[str, Any]) -> Any:
        participants = _entries(args, "participants", "Participants", ["id", "name"])
        interactions = _entries(args, "interactions", "Interactions", ["from", "to", "message"])
        known = {p["id"] for p in participants}
        lines = ["sequenceDiagram"]

        for participant in participants:
            kind = participant.get("type") or "participant"
            if kind not in PARTICIPANT_TYPES:
                raise InvalidParamsError(f"Invalid participant type: {kind!r}")
            lines.append(f"    {kind} {participant['id']} as {_text(participant['name'])}")

        for interaction in interactions:
            for end in (interaction["from"], interaction["to"]):
                if end not in known:
                    raise InvalidParamsError(f"Unknown participant: {end}")
            arrow = interaction.get("type") or "->>"
            if arrow not in SEQUENCE_ARROWS:
                raise InvalidParamsError(f"Invalid arrow type: {arrow!r}")
            lines.append(f"    {interaction['from']}{arrow}{interaction['to']}: {_text(interaction['message'])}")

        return {"mermaid_code": "\n".join(lines) + "\n"}

    async def generate_gantt_chart(self, args: Dict[str, Any]) -> Any:
        sections = _entries(args, "sections", "Sections", ["name"])
        lines = ["gantt"]
        if args.get("title"):
            lines.append(f"    title {_text(args['title'])}")
        lines.append(f"    dateFormat {args['date_format']}")

        for section in sections:
            lines.append(f"    section {_text(section['name'])}")
            for task in _entries(section, "tasks", f"Section {section['name']} tasks", ["name"]):
                lines.append(f"    {self._gantt_task(task)}")

        return {"mermaid_code": "\n".join(lines) + "\n"}

    @staticmethod
    def _gantt_task(task: Mapping[str, Any]) -> str:
        """`Name :id, after a b, 3d` - Mermaid ends the task name at the first colon."""
        parts: List[str] = []
        if task.get("id"):
            parts.append(str(task["id"]))
        dependencies: Optional[List[Any]] = task.get("dependencies")
        if dependencies:
            parts.append("after " + " ".join(str(dep) for dep in dependencies))
        elif task.get("start"):
            parts.append(str(task["start"]))
        if task.get("end"):
            parts.append(str(task["end"]))
        elif task.get("duration"):
            parts.append(str(task["duration"]))
        name = _text(task["name"]).replace(":", " ")
        return f"{name} :{', '.join(parts)}"
