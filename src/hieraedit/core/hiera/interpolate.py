"""``%{...}`` interpolation of hierarchy paths."""
from __future__ import annotations

import re
from typing import Any, Mapping

INTERPOLATION = re.compile(r"%\{:{0,2}([^}]+)\}")


def traverse(root: Mapping[str, Any], dotted: str) -> Any:
    """Follow ``a.b.c`` through nested mappings; None on any missing segment."""
    value: Any = root
    for segment in dotted.strip().split("."):
        if not isinstance(value, Mapping) or segment not in value:
            return None
        value = value[segment]
    return value


def _render(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def interpolate(template: str, root: Mapping[str, Any]) -> str:
    """Replace every ``%{[::]a.b}`` reference in ``template``.

    Missing references render as an empty string.

    Example:
        >>> interpolate("nodes/%{::trusted.certname}", {"trusted": {"certname": "web1"}})
        'nodes/web1'
    """
    return INTERPOLATION.sub(lambda m: _render(traverse(root, m.group(1))), template)


__all__ = ["INTERPOLATION", "interpolate", "traverse"]
