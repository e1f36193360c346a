"""I/O utilities for writing test fixtures.

All functions create parent directories automatically if they don't exist.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml


def write_yaml(path: Path, data: Any, *, sort_keys: bool = True) -> None:
    """Write data to a YAML file, creating parent directories if needed.

    Examples:
        >>> write_yaml(Path("data/common.yaml"), {"ntp::servers": ["a"]})
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    content = yaml.safe_dump(data, default_flow_style=False, sort_keys=sort_keys, allow_unicode=True)
    path.write_text(content, encoding="utf-8")


def write_json(path: Path, data: Any, *, indent: int = 2) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=indent, sort_keys=True), encoding="utf-8")


def write_text(path: Path, content: str) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def write_config(workspace_root: Path, data: dict[str, Any], *, filename: str = "engine.yaml") -> Path:
    """Write a workspace configuration layer to ``.hieraedit/config/``."""
    path = Path(workspace_root) / ".hieraedit" / "config" / filename
    write_yaml(path, data)
    return path


__all__ = ["write_config", "write_json", "write_text", "write_yaml"]
