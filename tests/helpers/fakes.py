"""In-memory resolver for expression-level tests."""
from __future__ import annotations

from typing import Any

from hieraedit.core.ast import (
    ClassDefinition,
    LocalScope,
    ResolvedFunction,
    Scope,
    VariablePresence,
    parse,
    parse_definition,
)
from hieraedit.core.exceptions import CompilationError


class FakeResolver:
    """Globals, hierarchy keys and class/function artifacts held in dicts.

    ``hierarchy`` maps a key to ``(level, value)``.
    """

    node_name = "test.example.com"

    def __init__(
        self,
        globals_: dict[str, Any] | None = None,
        *,
        hierarchy: dict[str, tuple[int, Any]] | None = None,
        classes: dict[str, Any] | None = None,
        functions: dict[str, Any] | None = None,
    ) -> None:
        self.globals = dict(globals_ or {})
        self.hierarchy = dict(hierarchy or {})
        self.class_artifacts = dict(classes or {})
        self.function_artifacts = dict(functions or {})
        self.resolved: dict[str, ClassDefinition] = {}
        self.declared: list[tuple[str, str, dict[str, Any], int | None]] = []
        self.hiera_sources: list[tuple[str, str, int]] = []

    def resolve_class(self, name: str, public: bool = False) -> ClassDefinition:
        name = name.lstrip(":")
        clazz = self.resolved.get(name)
        if clazz is None:
            artifact = self.class_artifacts.get(name)
            if artifact is None:
                raise CompilationError(f"No such class info: {name}")
            clazz = parse_definition(artifact, ClassDefinition, name)
            self.resolved[name] = clazz
            clazz.resolve(clazz, self)
        if public:
            clazz.mark_public()
        return clazz

    def resolve_defined_type(self, name, title, properties, *, hierarchy=None):
        self.declared.append((name, title, dict(properties), hierarchy))
        return None

    def resolve_function(self, name: str) -> ResolvedFunction | None:
        artifact = self.function_artifacts.get(name)
        if artifact is None:
            return None
        return ResolvedFunction(name, artifact, parse)

    def get_global_variable(self, name: str) -> Any:
        if name in self.globals:
            return self.globals[name]
        if name in self.hierarchy:
            return self.hierarchy[name][1]
        return None

    def has_global_variable(self, name: str) -> VariablePresence:
        if name in self.globals:
            return VariablePresence.unknown_level()
        if name in self.hierarchy:
            return VariablePresence.at(self.hierarchy[name][0])
        return VariablePresence.missing()

    def register_hiera_source(self, kind: str, key: str, level: int) -> None:
        self.hiera_sources.append((kind, key, level))


def evaluate(pn: Any, resolver: FakeResolver | None = None, scope: Scope | None = None) -> Any:
    """Parse ``pn`` and resolve it in a fresh local scope."""
    return parse(pn).resolve(scope if scope is not None else LocalScope(), resolver or FakeResolver())


__all__ = ["FakeResolver", "evaluate"]
