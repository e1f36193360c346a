"""Shared CLI utilities: workspace/environment opening and value parsing."""
from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path
from typing import Any

import yaml

from hieraedit.core.environment import Environment
from hieraedit.core.exceptions import ConfigError
from hieraedit.core.workspace import Workspace

WORKSPACE_ENV = "HIERAEDIT_WORKSPACE"


def get_workspace_root(args: argparse.Namespace) -> Path:
    """Workspace from ``--workspace``, then ``$HIERAEDIT_WORKSPACE``, then cwd."""
    if getattr(args, "workspace", None):
        return Path(args.workspace).resolve()
    env_root = os.environ.get(WORKSPACE_ENV)
    if env_root:
        return Path(env_root).resolve()
    return Path.cwd()


def open_workspace(args: argparse.Namespace) -> Workspace:
    cache_dir = getattr(args, "cache_dir", None)
    workspace = Workspace.open(get_workspace_root(args), Path(cache_dir) if cache_dir else None)
    if not getattr(args, "verbose", False):
        logging.getLogger("hieraedit").setLevel(workspace.config.log_level)
    return workspace


def open_environment(args: argparse.Namespace) -> tuple[Workspace, Environment]:
    workspace = open_workspace(args)
    return workspace, workspace.environment(args.environment)


def parse_value(text: str) -> Any:
    """Parse a command-line value as a YAML scalar/flow value.

    ``42`` -> 42, ``true`` -> True, ``[a, b]`` -> list, anything else a string.
    """
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Cannot parse value {text!r}: {exc}") from exc


__all__ = ["WORKSPACE_ENV", "get_workspace_root", "open_environment", "open_workspace", "parse_value"]
