"""MCP tool servers sharing one dispatch, validation and error layer."""
from .errors import (
    ConfigurationError,
    InternalToolError,
    InvalidParamsError,
    MethodNotFoundError,
    RegistryError,
    ToolError,
    UnauthorizedError,
    UpstreamError,
)
from .server import ToolServer

__version__ = "0.2.0"

__all__ = [
    "ConfigurationError",
    "InternalToolError",
    "InvalidParamsError",
    "MethodNotFoundError",
    "RegistryError",
    "ToolError",
    "ToolServer",
    "UnauthorizedError",
    "UpstreamError",
]
