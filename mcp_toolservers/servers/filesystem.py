"""Local filesystem tools confined to the directories in FILESYSTEM_BASE_DIRS."""
from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..config import ServerSettings
from ..errors import InternalToolError, InvalidParamsError
from ..server import ToolServer


def parse_base_dirs(raw: str) -> List[Path]:
    """FILESYSTEM_BASE_DIRS: comma-separated, empty means the working directory."""
    dirs = [part.strip() for part in (raw or "").split(",") if part.strip()]
    if not dirs:
        dirs = [os.getcwd()]
    return [Path(d).expanduser().resolve() for d in dirs]


class FilesystemServer(ToolServer):
    """Read, write and list files below a fixed set of base directories."""

    name = "filesystem"
    version = "0.1.0"

    def __init__(self, settings: Optional[ServerSettings] = None, *, transport=None) -> None:
        settings = settings or ServerSettings()
        self.base_dirs = parse_base_dirs(settings.get_env("FILESYSTEM_BASE_DIRS"))
        super().__init__(settings, transport=transport)
        self.logger.info(
            f"Allowed directories: {', '.join(str(d) for d in self.base_dirs)}",
            extra={"server": self.name},
        )

    def register_tools(self) -> None:
        self.add_tool(
            "read_file",
            "Read a file from the filesystem",
            {
                "type": "object",
                "properties": {"path": {"type": "string", "minLength": 1, "description": "Path to the file"}},
                "required": ["path"],
            },
            self.read_file,
        )
        self.add_tool(
            "write_file",
            "Write data to a file in the filesystem",
            {
                "type": "object",
                "properties": {
                    "path": {"type": "string", "minLength": 1, "description": "Path to the file"},
                    "content": {"type": "string", "description": "Content to write to the file"},
                },
                "required": ["path", "content"],
            },
            self.write_file,
        )
        self.add_tool(
            "list_files",
            "List files in a directory",
            {
                "type": "object",
                "properties": {
                    "directory": {"type": "string", "description": "Directory path"},
                    "recursive": {
                        "type": "boolean",
                        "description": "Whether to list files recursively",
                        "default": False,
                    },
                },
                "required": ["directory"],
            },
            self.list_files,
        )

    def validate_path(self, requested: str) -> Path:
        """
        Resolve `requested` (symlinks and `..` included) and ensure it lies
        inside one of the base directories. Relative paths are taken relative
        to the first base directory.
        """
        try:
            candidate = Path(requested).expanduser()
            if not candidate.is_absolute():
                candidate = self.base_dirs[0] / candidate
            resolved = candidate.resolve()
        except (ValueError, RuntimeError) as exc:
            # NUL bytes, unresolvable ~user
            raise InvalidParamsError(f"Invalid path: {requested!r}") from exc
        for base in self.base_dirs:
            if resolved == base or resolved.is_relative_to(base):
                return resolved
        raise InvalidParamsError(
            f"Access denied: {requested} is outside the allowed directories"
        )

    async def read_file(self, args: Dict[str, Any]) -> str:
        path = self.validate_path(args["path"])
        try:
            return await asyncio.to_thread(path.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise InternalToolError(f"Error reading file: {exc}") from exc

    async def write_file(self, args: Dict[str, Any]) -> str:
        path = self.validate_path(args["path"])
        content = args["content"]

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")

        try:
            await asyncio.to_thread(_write)
        except OSError as exc:
            raise InternalToolError(f"Error writing file: {exc}") from exc
        return f"Successfully wrote to {path}"

    async def list_files(self, args: Dict[str, Any]) -> List[Dict[str, Any]]:
        directory = self.validate_path(args["directory"])
        recursive = bool(args.get("recursive"))

        def _list() -> List[Dict[str, Any]]:
            entries = directory.rglob("*") if recursive else directory.iterdir()
            listing = []
            for entry in sorted(entries):
                listing.append(
                    {
                        "name": entry.name,
                        "path": str(entry.relative_to(directory)),
                        "type": "directory" if entry.is_dir() else "file",
                        "size": entry.stat().st_size if entry.is_file() else None,
                    }
                )
            return listing

        try:
            return await asyncio.to_thread(_list)
        except OSError as exc:
            raise InternalToolError(f"Error listing files: {exc}") from exc
