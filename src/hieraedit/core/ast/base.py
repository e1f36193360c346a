"""Shared building blocks of the expression model.

- ``ExpressionNode``: base class with the memoized ``resolve(scope, resolver)``
- ``ReturnSignal``: non-error control transfer raised by ``return``
- ``Resolver``: capability the tree calls back into
- ``Scope``: variable container (class bodies, function calls)
- ``ResolvedProperty`` / ``TypeDescriptor`` / ``VariablePresence``: result types
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from .definitions import ClassDefinition, DefinedTypeDefinition, ResolvedFunction


class ResolveState(enum.Enum):
    UNRESOLVED = "unresolved"
    RESOLVING = "resolving"
    RESOLVED = "resolved"
    FAILED = "failed"


class ReturnSignal(BaseException):
    """Raised by ``return`` to leave the enclosing function or class body.

    Derives from ``BaseException`` so ``except Exception`` error capture never
    swallows it.
    """

    def __init__(self, value: Any = None) -> None:
        super().__init__("return")
        self.value = value


class _DefaultMarker:
    """The ``default`` literal (selector / case fallback)."""

    _instance: _DefaultMarker | None = None

    def __new__(cls) -> _DefaultMarker:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "default"


DEFAULT = _DefaultMarker()


@dataclass(frozen=True)
class VariablePresence:
    """Where a global variable comes from.

    ``exists`` is False for a missing variable; ``level`` is the hierarchy
    level index when the value comes from a data file, else None.
    """

    exists: bool
    level: int | None = None

    @classmethod
    def missing(cls) -> VariablePresence:
        return cls(False, None)

    @classmethod
    def unknown_level(cls) -> VariablePresence:
        return cls(True, None)

    @classmethod
    def at(cls, level: int) -> VariablePresence:
        return cls(True, level)

    @property
    def is_missing(self) -> bool:
        return not self.exists

    @property
    def from_hierarchy(self) -> bool:
        return self.exists and self.level is not None


@dataclass
class TypeDescriptor:
    """Resolved type expression such as ``Optional[Enum['a', 'b']]``."""

    name: str
    args: list[Any] = field(default_factory=list)

    def with_args(self, args: list[Any]) -> TypeDescriptor:
        return TypeDescriptor(self.name, list(self.args) + list(args))

    def dump(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "args": [a.dump() if isinstance(a, TypeDescriptor) else a for a in self.args],
        }

    def __str__(self) -> str:
        if not self.args:
            return self.name
        inner = ", ".join(
            str(a) if isinstance(a, TypeDescriptor) else repr(a) for a in self.args
        )
        return f"{self.name}[{inner}]"


@dataclass
class ResolvedProperty:
    """A class/defined-type property after resolution.

    ``has_value`` distinguishes an explicit ``undef`` (value None) from a
    property that never received a value. ``hierarchy`` is the level index
    that overrode the value, if any.
    """

    type: TypeDescriptor | None = None
    value: Any = None
    has_value: bool = False
    error: BaseException | None = None
    hints: list[dict[str, Any]] | None = None
    hierarchy: int | None = None

    def set_value(self, value: Any) -> None:
        self.value = value
        self.has_value = True

    def add_hint(self, kind: str, message: str) -> None:
        if self.hints is None:
            self.hints = []
        self.hints.append({"kind": kind, "message": message})

    @property
    def has_type(self) -> bool:
        return self.type is not None

    @property
    def has_error(self) -> bool:
        return self.error is not None

    @property
    def has_hints(self) -> bool:
        return bool(self.hints)


class Resolver(Protocol):
    """Capability the expression tree calls back into.

    Repeated ``resolve_class`` / ``resolve_function`` calls with the same
    name return the same cached instance without repeating artifact I/O.
    """

    @property
    def node_name(self) -> str: ...

    def resolve_class(self, name: str, public: bool = False) -> ClassDefinition: ...

    def resolve_defined_type(
        self, name: str, title: str, properties: dict[str, Any], *, hierarchy: int | None = None
    ) -> DefinedTypeDefinition | None: ...

    def resolve_function(self, name: str) -> ResolvedFunction | None: ...

    def get_global_variable(self, name: str) -> Any: ...

    def has_global_variable(self, name: str) -> VariablePresence: ...

    def register_hiera_source(self, kind: str, key: str, level: int) -> None: ...


class Scope:
    """Variable container consulted by ``$name`` lookups.

    ``parent_scope`` is the inherited class scope (classes) or None.
    """

    parent_scope: Scope | None = None

    def lookup(self, name: str) -> tuple[bool, Any]:
        raise NotImplementedError

    def assign(self, name: str, value: Any) -> None:
        raise NotImplementedError


class LocalScope(Scope):
    """Plain dictionary scope used for function calls."""

    def __init__(self, variables: dict[str, Any] | None = None) -> None:
        self.variables: dict[str, Any] = dict(variables or {})
        self.parent_scope = None

    def lookup(self, name: str) -> tuple[bool, Any]:
        if name in self.variables:
            return True, self.variables[name]
        return False, None

    def assign(self, name: str, value: Any) -> None:
        self.variables[name] = value


class ExpressionNode:
    """Base class of every node in a parsed artifact.

    Each node owns a resolution cell. ``resolve`` evaluates a node at most
    once: a resolved node returns its cached value, a failed node re-raises
    its error, and a node asked to resolve while it is already resolving
    returns its current (possibly None) value instead of recursing.
    ``ReturnSignal`` leaves the cell unresolved and propagates.
    """

    def __init__(self) -> None:
        self._state = ResolveState.UNRESOLVED
        self._value: Any = None
        self._error: Exception | None = None

    @property
    def state(self) -> ResolveState:
        return self._state

    @property
    def resolved(self) -> bool:
        return self._state is ResolveState.RESOLVED

    def resolve(self, scope: Scope, resolver: Resolver) -> Any:
        if self._state is ResolveState.RESOLVED:
            return self._value
        if self._state is ResolveState.RESOLVING:
            return self._value
        if self._state is ResolveState.FAILED:
            assert self._error is not None
            raise self._error

        self._state = ResolveState.RESOLVING
        try:
            value = self._evaluate(scope, resolver)
        except ReturnSignal:
            self._state = ResolveState.UNRESOLVED
            raise
        except Exception as exc:
            self._state = ResolveState.FAILED
            self._error = exc
            raise
        self._value = value
        self._state = ResolveState.RESOLVED
        return value

    def _evaluate(self, scope: Scope, resolver: Resolver) -> Any:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__}>"


__all__ = [
    "DEFAULT",
    "ExpressionNode",
    "LocalScope",
    "ResolveState",
    "ResolvedProperty",
    "Resolver",
    "ReturnSignal",
    "Scope",
    "TypeDescriptor",
    "VariablePresence",
]
