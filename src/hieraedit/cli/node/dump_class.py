"""
hieraedit node dump-class command.

SUMMARY: Resolve a class for a node and show its properties
"""

from __future__ import annotations

import argparse

from hieraedit.cli import OutputFormatter, add_certname_arg, add_standard_flags, open_environment
from hieraedit.core.ast.nodes import format_value

SUMMARY = "Resolve a class for a node and show its properties"


def register_args(parser: argparse.ArgumentParser) -> None:
    add_certname_arg(parser)
    parser.add_argument("class_name", help="Class name (e.g., ntp::server)")
    add_standard_flags(parser)


def print_payload(formatter: OutputFormatter, payload: dict) -> None:
    """Text rendering shared by dump-class and dump-resource."""
    formatter.text(payload["name"] + (f"['{payload['title']}']" if "title" in payload else ""))
    for name in payload["fields"] + payload["definedFields"]:
        if name in payload["errors"]:
            formatter.text_kv(name, f"<error: {payload['errors'][name]['message']}>")
            continue
        value = format_value(payload["values"].get(name))
        level = payload["modified"].get(name)
        suffix = f"  [level {level}]" if level is not None else ""
        formatter.text_kv(name, f"{value}{suffix}")
    for hint in payload["hints"]:
        formatter.text(f"  ! {hint['message']}")


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    workspace, env = open_environment(args)
    try:
        context = env.node(args.certname)
        payload = context.dump_class(args.class_name)
        if formatter.json_mode:
            formatter.json_output(payload)
        else:
            print_payload(formatter, payload)
        return 0
    finally:
        workspace.close()
