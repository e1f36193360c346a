"""I/O utilities for hieraedit.

This package provides safe, atomic file operations:
- Core: atomic writes, directory management, text I/O
- JSON: artifact and index reads
- YAML: data file and hierarchy document reads/writes
"""
from __future__ import annotations

from .core import (
    PathLike,
    atomic_write,
    ensure_directory,
    ensure_parent_dir,
    read_text,
)
from .json import read_json
from .yaml import read_yaml, write_yaml

__all__ = [
    # core
    "PathLike",
    "ensure_parent_dir",
    "ensure_directory",
    "atomic_write",
    "read_text",
    # json
    "read_json",
    # yaml
    "read_yaml",
    "write_yaml",
]
