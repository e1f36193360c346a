"""Common CLI argument registration utilities."""
from __future__ import annotations

import argparse


def add_json_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON",
    )


def add_workspace_flags(parser: argparse.ArgumentParser) -> None:
    """Add --workspace and --cache-dir.

    Args:
        parser: ArgumentParser to add the flags to
    """
    parser.add_argument(
        "--workspace",
        "-w",
        type=str,
        help="Workspace directory (default: $HIERAEDIT_WORKSPACE or the current directory)",
    )
    parser.add_argument(
        "--cache-dir",
        type=str,
        help="Cache directory for the modules index and compiled artifacts",
    )


def add_environment_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--env",
        "-e",
        dest="environment",
        default="production",
        help="Environment name (default: production)",
    )


def add_certname_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("certname", help="Node certname (e.g., web1.example.com)")


def add_level_arg(parser: argparse.ArgumentParser, required: bool = True) -> None:
    """Add --level (hierarchy level index, 0 = highest priority)."""
    parser.add_argument(
        "--level",
        "-l",
        type=int,
        required=required,
        help="Hierarchy level index (0 = highest priority)",
    )


def add_standard_flags(parser: argparse.ArgumentParser) -> None:
    """Flags shared by every command: workspace, environment and --json."""
    add_workspace_flags(parser)
    add_environment_arg(parser)
    add_json_flag(parser)


__all__ = [
    "add_certname_arg",
    "add_environment_arg",
    "add_json_flag",
    "add_level_arg",
    "add_standard_flags",
    "add_workspace_flags",
]
