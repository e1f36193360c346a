"""
hieraedit CLI package.

Provides the command-line interface with auto-discovery of commands
from subfolders (env/, node/).

Framework utilities for building CLI commands:
- _output: Output formatting (JSON/text modes)
- _args: Common argument registration helpers
- _utils: Workspace opening and value parsing
"""
from ._args import (
    add_certname_arg,
    add_environment_arg,
    add_json_flag,
    add_level_arg,
    add_standard_flags,
    add_workspace_flags,
)
from ._output import OutputFormatter, format_json
from ._utils import get_workspace_root, open_environment, open_workspace, parse_value

__all__ = [
    # Output formatting
    "OutputFormatter",
    "format_json",
    # Argument helpers
    "add_certname_arg",
    "add_environment_arg",
    "add_json_flag",
    "add_level_arg",
    "add_standard_flags",
    "add_workspace_flags",
    # Utilities
    "get_workspace_root",
    "open_environment",
    "open_workspace",
    "parse_value",
]
