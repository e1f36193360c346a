"""
hieraedit env classes command.

SUMMARY: List classes and defined types of an environment
"""

from __future__ import annotations

import argparse

from hieraedit.cli import OutputFormatter, add_standard_flags, open_environment

SUMMARY = "List classes and defined types of an environment"


def register_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "search",
        nargs="?",
        default="",
        help="Only show definitions whose name, description or file contains this text",
    )
    add_standard_flags(parser)


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    workspace, env = open_environment(args)
    try:
        if args.search:
            found = env.index.search(args.search)
            if formatter.json_mode:
                formatter.json_output({"definitions": found})
            else:
                for info in found:
                    formatter.text(f"{info['name']}  ({info['file']})")
            return 0

        index = env.index.dump()
        if formatter.json_mode:
            formatter.json_output(index)
            return 0
        formatter.text("Classes:")
        for name in index["classes"]:
            formatter.text(f"  {name}")
        formatter.text("Defined types:")
        for name in index["types"]:
            formatter.text(f"  {name}")
        return 0
    finally:
        workspace.close()
