"""
hieraedit node lookup command.

SUMMARY: Look up a key in the node's hierarchy
"""

from __future__ import annotations

import argparse

from hieraedit.cli import OutputFormatter, add_certname_arg, add_standard_flags, open_environment
from hieraedit.core.node import to_jsonable

SUMMARY = "Look up a key in the node's hierarchy"


def register_args(parser: argparse.ArgumentParser) -> None:
    add_certname_arg(parser)
    parser.add_argument("key", help="Hierarchy key (e.g., ntp::servers)")
    add_standard_flags(parser)


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    workspace, env = open_environment(args)
    try:
        context = env.node(args.certname)
        found, value, level = context.lookup(args.key)
        if formatter.json_mode:
            formatter.json_output({"key": args.key, "found": found, "value": to_jsonable(value), "level": level})
        elif found:
            entry = context.hierarchy.get(level)
            formatter.text(f"{args.key} = {to_jsonable(value)!r}  (level {level}: {entry.path})")
        else:
            formatter.text(f"{args.key} is not defined for {args.certname}")
        return 0 if found else 1
    finally:
        workspace.close()
