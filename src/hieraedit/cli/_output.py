"""Unified CLI output formatting utilities.

Every command prints through ``OutputFormatter`` so ``--json`` switches all
of them between text and JSON output.
"""
from __future__ import annotations

import json
import sys
from typing import Any, Dict, Optional

from hieraedit.core.exceptions import HieraEditError


class OutputFormatter:
    """Unified output formatter for CLI commands."""

    def __init__(self, json_mode: bool = False, indent: int = 2):
        self.json_mode = json_mode
        self.indent = indent

    def success(
        self,
        data: Dict[str, Any],
        message: str,
        *,
        status: str = "success",
    ) -> None:
        """Output success result.

        Args:
            data: Result data dictionary
            message: Human-readable success message (used in text mode)
            status: Status string for JSON output
        """
        if self.json_mode:
            output = {"status": status, **data}
            print(json.dumps(output, indent=self.indent, default=str))
        else:
            print(message)

    def error(self, error: Exception, message: Optional[str] = None) -> None:
        """Output error result to stderr.

        ``HieraEditError`` instances are rendered with ``to_json_error()``.
        """
        msg = message or str(error)
        if self.json_mode:
            if isinstance(error, HieraEditError):
                output = {"error": error.to_json_error()}
            else:
                output = {"error": {"message": msg, "code": type(error).__name__, "context": {}}}
            print(json.dumps(output, indent=self.indent, default=str), file=sys.stderr)
        else:
            print(f"Error: {msg}", file=sys.stderr)

    def json_output(self, data: Any) -> None:
        print(json.dumps(data, indent=self.indent, default=str))

    def text(self, message: str) -> None:
        print(message)

    def text_kv(self, key: str, value: Any, prefix: str = "  ") -> None:
        if not self.json_mode:
            print(f"{prefix}{key}: {value}")


def format_json(data: Any, indent: int = 2) -> str:
    return json.dumps(data, indent=indent, default=str)


__all__ = ["OutputFormatter", "format_json"]
