"""
Environment helpers - production mode detection and flag parsing.
"""
from __future__ import annotations

import os
from typing import Mapping, Optional


def is_production_env(env: Optional[Mapping[str, str]] = None) -> bool:
    """
    True if ENVIRONMENT, APP_ENV or NODE_ENV equals "production"
    (case-insensitive, stripped).
    """
    source = os.environ if env is None else env
    for name in ("ENVIRONMENT", "APP_ENV", "NODE_ENV"):
        if str(source.get(name, "")).strip().lower() == "production":
            return True
    return False


def env_flag(env: Mapping[str, str], name: str, default: str = "0") -> bool:
    value = str(env.get(name, default)).strip().lower()
    return value not in {"0", "false", "no", "off", ""}
