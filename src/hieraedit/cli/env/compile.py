"""
hieraedit env compile command.

SUMMARY: Refresh the modules index and compile stale artifacts

Runs the configured index command when ``modules.json`` is older than the
modules tree, then compiles every stale class, defined type and function in
batches on a worker pool.
"""

from __future__ import annotations

import argparse
import sys

from hieraedit.cli import OutputFormatter, add_standard_flags, open_environment

SUMMARY = "Refresh the modules index and compile stale artifacts"


def register_args(parser: argparse.ArgumentParser) -> None:
    add_standard_flags(parser)
    parser.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Do not report progress on stderr",
    )


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    workspace, env = open_environment(args)
    try:
        def progress(done: int, total: int) -> None:
            if not args.quiet and not formatter.json_mode:
                print(f"Compiled {done}/{total} batches", file=sys.stderr)

        report = env.init(progress)
        data = {"environment": env.name, **report.to_dict()}
        if report.succeeded:
            formatter.success(data, f"Compiled {report.jobs} definitions in {report.batches} batches")
            return 0

        formatter.success(
            data,
            f"{len(report.failed)} of {report.batches} batches failed",
            status="partial",
        )
        for result in report.failed:
            formatter.text_kv(", ".join(j.name for j in result.jobs), result.error or "missing artifacts")
        return 1
    finally:
        workspace.close()
