from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

CONFIG_ENV_VAR = "MCP_TOOLSERVERS_CONFIG"
UNKNOWN_TOOL_POLICIES = ("envelope", "fault")


def load_config(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"MCP toolservers config not found at {path}")
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError("Config root must be a mapping")
    return data


@dataclass(frozen=True)
class ServerSettings:
    """
    Settings read once at startup and passed into every server constructor.

    `env` holds the environment snapshot credentials are resolved from; servers
    never read os.environ themselves.
    """

    log_level: str = "INFO"
    unknown_tool_policy: str = "envelope"
    http_timeout: float = 30.0
    connect_timeout: float = 5.0
    host: str = "127.0.0.1"
    port: int = 9000
    servers: List[str] = field(default_factory=list)
    env: Mapping[str, str] = field(default_factory=dict)

    def get_env(self, *names: str) -> str:
        """First non-empty value among `names`, stripped; "" if none is set."""
        for name in names:
            value = str(self.env.get(name, "") or "").strip()
            if value:
                return value
        return ""


def load_settings(
    env: Optional[Mapping[str, str]] = None,
    config: Optional[Mapping[str, Any]] = None,
) -> ServerSettings:
    source_env: Dict[str, str] = dict(os.environ if env is None else env)
    cfg: Dict[str, Any] = dict(config or {})
    server_cfg = cfg.get("server", {}) or {}

    policy = str(
        source_env.get("MCP_UNKNOWN_TOOL_POLICY") or server_cfg.get("unknown_tool_policy", "envelope")
    ).strip().lower()
    if policy not in UNKNOWN_TOOL_POLICIES:
        raise ValueError(
            f"unknown_tool_policy must be one of {UNKNOWN_TOOL_POLICIES}, got {policy!r}"
        )

    servers = server_cfg.get("servers") or []
    if isinstance(servers, str):
        servers = [s.strip() for s in servers.split(",") if s.strip()]

    return ServerSettings(
        log_level=str(source_env.get("MCP_LOG_LEVEL") or server_cfg.get("log_level", "INFO")).upper(),
        unknown_tool_policy=policy,
        http_timeout=float(source_env.get("MCP_HTTP_TIMEOUT") or server_cfg.get("http_timeout", 30.0)),
        connect_timeout=float(server_cfg.get("connect_timeout", 5.0)),
        host=str(source_env.get("MCP_SERVER_HOST") or server_cfg.get("host", "127.0.0.1")),
        port=int(source_env.get("MCP_SERVER_PORT") or server_cfg.get("port", 9000)),
        servers=[str(s) for s in servers],
        env=source_env,
    )


def resolve_config_path(cli_path: Optional[str], env: Optional[Mapping[str, str]] = None) -> Optional[Path]:
    source_env = os.environ if env is None else env
    raw = cli_path or str(source_env.get(CONFIG_ENV_VAR, "") or "").strip()
    return Path(raw) if raw else None
