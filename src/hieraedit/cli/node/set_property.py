"""
hieraedit node set-property command.

SUMMARY: Set or remove a class parameter (or plain key) on one hierarchy level

Values are parsed as YAML (``42``, ``true``, ``[a, b]``); string values are
encrypted when the level has eyaml settings, unless ``--plain`` is given.
"""

from __future__ import annotations

import argparse

from hieraedit.cli import (
    OutputFormatter,
    add_certname_arg,
    add_level_arg,
    add_standard_flags,
    open_environment,
    parse_value,
)

SUMMARY = "Set or remove a class parameter (or plain key) on one hierarchy level"


def register_args(parser: argparse.ArgumentParser) -> None:
    add_certname_arg(parser)
    parser.add_argument("key", help="Parameter name (with --class) or full hierarchy key")
    parser.add_argument("value", nargs="?", help="New value (YAML syntax); omit with --remove")
    parser.add_argument("--class", dest="class_name", help="Class owning the parameter")
    add_level_arg(parser)
    parser.add_argument("--remove", action="store_true", help="Remove the key instead of setting it")
    parser.add_argument("--plain", action="store_true", help="Never encrypt the value")
    add_standard_flags(parser)


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    if not args.remove and args.value is None:
        formatter.error(ValueError("A value is required unless --remove is given"))
        return 1

    workspace, env = open_environment(args)
    try:
        context = env.node(args.certname)
        key = f"{args.class_name}::{args.key}" if args.class_name else args.key

        if args.remove:
            if args.class_name:
                changed = context.remove_class_property(args.class_name, args.level, args.key)
            else:
                changed = context.remove_property(args.level, args.key)
            message = f"Removed {key}" if changed else f"{key} is not set on level {args.level}"
            formatter.success({"key": key, "level": args.level, "changed": changed}, message)
            return 0

        value = parse_value(args.value)
        if args.class_name:
            context.set_class_property(args.class_name, args.level, args.key, value, encrypt=not args.plain)
        else:
            context.set_property(args.level, args.key, value, encrypt=not args.plain)
        path = context.hierarchy.get(args.level).file_path
        formatter.success({"key": key, "level": args.level, "changed": True, "file": str(path)}, f"Set {key} in {path}")
        return 0
    finally:
        workspace.close()
