from __future__ import annotations

from typing import Any, Dict, Mapping, Optional


class HieraEditError(Exception):
    """Base exception for hieraedit."""

    context: Dict[str, Any]

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        if context is not None:
            # Store a shallow copy to avoid accidental mutation.
            self.context = dict(context)
        else:
            self.context = {}

    def to_json_error(self) -> Dict[str, Any]:
        """Return a JSON-serializable error payload."""
        return {
            "message": str(self),
            "code": self.__class__.__name__,
            "context": self.context,
        }


class ParseError(HieraEditError):
    """Raised when a compiled artifact is unreadable or has the wrong shape."""


class CompilationError(HieraEditError):
    """Raised when a class, defined type or function fails to resolve."""


class ResolveError(HieraEditError):
    """Raised while evaluating an expression (``fail()``, unsupported syntax).

    ``node`` is the expression that raised, kept for diagnostics.
    """

    def __init__(
        self,
        node: Any,
        message: str = "",
        *,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        ctx = dict(context or {})
        if node is not None:
            ctx.setdefault("node", type(node).__name__)
        super().__init__(message, context=ctx)
        self.node = node


class WorkspaceError(HieraEditError):
    """Setup or I/O failure at the workspace/environment boundary."""

    def __init__(
        self,
        title: str,
        message: str,
        *,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        ctx = dict(context or {})
        ctx["title"] = title
        super().__init__(message, context=ctx)
        self.title = title
        self.message = message


class NoSuchEnvironmentError(WorkspaceError, LookupError):
    """Raised when an environment directory does not exist."""

    def __init__(self, name: str, *, context: Mapping[str, Any] | None = None) -> None:
        WorkspaceError.__init__(
            self, "No such environment", f"Environment '{name}' does not exist", context=context
        )
        LookupError.__init__(self, f"Environment '{name}' does not exist")
        self.name = name


class HierarchyError(HieraEditError, ValueError):
    """Raised for invalid hierarchy levels or misconfigured encryption."""

    def __init__(
        self,
        message: str = "",
        *,
        level: Optional[int] = None,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        ctx = dict(context or {})
        if level is not None:
            ctx["level"] = level
        HieraEditError.__init__(self, message, context=ctx)
        ValueError.__init__(self, message)
        self.level = level


class ConfigError(HieraEditError, ValueError):
    """Raised when the engine configuration fails validation."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        HieraEditError.__init__(self, message, context=context)
        ValueError.__init__(self, message)


__all__ = [
    "HieraEditError",
    "ParseError",
    "CompilationError",
    "ResolveError",
    "WorkspaceError",
    "NoSuchEnvironmentError",
    "HierarchyError",
    "ConfigError",
]
