"""
hieraedit node dump-resource command.

SUMMARY: Resolve a defined type instance declared in hierarchy data
"""

from __future__ import annotations

import argparse

from hieraedit.cli import OutputFormatter, add_certname_arg, add_standard_flags, open_environment
from hieraedit.core.exceptions import CompilationError

from .dump_class import print_payload

SUMMARY = "Resolve a defined type instance declared in hierarchy data"


def register_args(parser: argparse.ArgumentParser) -> None:
    add_certname_arg(parser)
    parser.add_argument("type_name", help="Defined type name (e.g., apache::vhost)")
    parser.add_argument("title", help="Resource title")
    add_standard_flags(parser)


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    workspace, env = open_environment(args)
    try:
        context = env.node(args.certname)
        payload = context.dump_resource(args.type_name, args.title)
        if payload is None:
            raise CompilationError(
                f"No resource {args.type_name}['{args.title}'] for node {args.certname}",
                context={"type": args.type_name, "title": args.title},
            )
        if formatter.json_mode:
            formatter.json_output(payload)
        else:
            print_payload(formatter, payload)
        return 0
    finally:
        workspace.close()
