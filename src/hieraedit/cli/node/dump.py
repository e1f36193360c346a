"""
hieraedit node dump command.

SUMMARY: Resolve the classes and resources assigned to a node
"""

from __future__ import annotations

import argparse

from hieraedit.cli import OutputFormatter, add_certname_arg, add_standard_flags, open_environment

SUMMARY = "Resolve the classes and resources assigned to a node"


def register_args(parser: argparse.ArgumentParser) -> None:
    add_certname_arg(parser)
    add_standard_flags(parser)


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    workspace, env = open_environment(args)
    try:
        context = env.node(args.certname)
        context.include_assigned_classes()
        payload = context.dump()
        if formatter.json_mode:
            formatter.json_output(payload)
            return 0

        formatter.text(f"{payload['certname']} ({payload['environment']})")
        formatter.text("Classes:")
        for name, entry in sorted(payload["classes"].items()):
            source = entry["options"].get("hiera_include")
            formatter.text(f"  {name}" + (f"  [from {source}]" if source else ""))
        formatter.text("Resources:")
        for type_name, entry in sorted(payload["resources"].items()):
            for title, instance in sorted(entry["titles"].items()):
                formatter.text(f"  {type_name}['{title}']  [level {instance['hierarchy']}]")
        return 0
    finally:
        workspace.close()
