"""
hieraedit node assign-class command.

SUMMARY: Add a class to the node's class list on one hierarchy level
"""

from __future__ import annotations

import argparse

from hieraedit.cli import OutputFormatter, add_certname_arg, add_level_arg, add_standard_flags, open_environment

SUMMARY = "Add a class to the node's class list on one hierarchy level"


def register_args(parser: argparse.ArgumentParser) -> None:
    add_certname_arg(parser)
    parser.add_argument("class_name", help="Class name")
    add_level_arg(parser)
    parser.add_argument("--key", help="Class list key (default: hiera.classes_key)")
    add_standard_flags(parser)


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    workspace, env = open_environment(args)
    try:
        context = env.node(args.certname)
        changed = context.assign_class(args.class_name, args.level, key=args.key)
        path = context.hierarchy.get(args.level).file_path
        message = (
            f"Assigned {args.class_name} in {path}"
            if changed
            else f"{args.class_name} is already assigned in {path}"
        )
        formatter.success({"class": args.class_name, "level": args.level, "changed": changed, "file": str(path)}, message)
        return 0
    finally:
        workspace.close()
