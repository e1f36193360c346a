"""hieraedit configuration system.

Usage:
    from hieraedit.core.config import ConfigManager, EngineConfig

    manager = ConfigManager(workspace_root=Path("/srv/puppet"))
    config = manager.load_config()

    engine = EngineConfig(workspace_root=Path("/srv/puppet"))
    engine.batch_size
"""
from __future__ import annotations

from .engine import EngineConfig
from .manager import ConfigManager

__all__ = ["ConfigManager", "EngineConfig"]
