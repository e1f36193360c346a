"""Typed accessor for the engine configuration.

EngineConfig follows the domain-config pattern: build a ConfigManager, load
the merged configuration once, and expose the sections the engine reads
through properties with safe fallbacks.

Example:
    >>> cfg = EngineConfig(workspace_root=Path("/srv/puppet"))
    >>> cfg.batch_size
    16
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from .manager import ConfigManager


class EngineConfig:
    """Engine settings (compile pipeline, hiera keys, logging).

    Args:
        workspace_root: Workspace directory whose ``.hieraedit/config`` layer
            is merged over the bundled defaults.
        config: Pre-loaded configuration mapping; skips loading when given.
    """

    def __init__(
        self,
        workspace_root: Optional[Path] = None,
        *,
        config: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._mgr = ConfigManager(workspace_root=workspace_root)
        self._full_config = config if config is not None else self._mgr.load_config(validate=True)

    def get_section(self, key: str) -> Dict[str, Any]:
        section = self._full_config.get(key, {}) or {}
        return section if isinstance(section, dict) else {}

    @property
    def raw(self) -> Dict[str, Any]:
        return self._full_config

    @property
    def batch_size(self) -> int:
        return int(self.get_section("compile").get("batch_size", 16))

    @property
    def workers(self) -> int:
        configured = int(self.get_section("compile").get("workers", 0) or 0)
        if configured > 0:
            return configured
        return max((os.cpu_count() or 1) - 1, 1)

    @property
    def compile_command(self) -> List[str]:
        return [str(p) for p in self.get_section("compile").get("command", []) or []]

    @property
    def index_command(self) -> List[str]:
        return [str(p) for p in self.get_section("compile").get("index_command", []) or []]

    @property
    def timeout_seconds(self) -> float:
        return float(self.get_section("compile").get("timeout_seconds", 300))

    @property
    def classes_key(self) -> str:
        return str(self.get_section("hiera").get("classes_key", "classes"))

    @property
    def resources_key(self) -> str:
        return str(self.get_section("hiera").get("resources_key", "resources"))

    @property
    def log_level(self) -> str:
        return str(self.get_section("logging").get("level", "WARNING")).upper()


__all__ = ["EngineConfig"]
