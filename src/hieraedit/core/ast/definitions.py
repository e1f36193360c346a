"""Class, defined type, node and function definitions."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Sequence

from hieraedit.core.exceptions import ParseError, ResolveError

from .base import DEFAULT, ExpressionNode, LocalScope, ResolvedProperty, Resolver, ReturnSignal, Scope
from .nodes import HashNode, statement_list, run_statements

logger = logging.getLogger(__name__)


@dataclass
class Parameter:
    name: str
    type_expr: ExpressionNode | None = None
    default: ExpressionNode | None = None


def parse_parameters(node: ExpressionNode | None) -> list[Parameter]:
    """Read ``params`` (``{"#": [name, {"#": ["type", T, "value", V]}, ...]}``)."""
    if not isinstance(node, HashNode):
        return []
    params: list[Parameter] = []
    for name, spec in node.entries.items():
        if isinstance(spec, HashNode):
            params.append(Parameter(name, spec.get("type"), spec.get("value")))
        else:
            params.append(Parameter(name))
    return params


def _meta(kind: str, args: Sequence[ExpressionNode]) -> HashNode:
    if not args or not isinstance(args[0], HashNode):
        raise ValueError(f"{kind} expects a map argument")
    return args[0]


class ClassDefinition(ExpressionNode, Scope):
    """A resolvable class; the definition itself is the scope of its body.

    Resolution order: parent class, parameters (hierarchy override
    ``<class>::<param>`` first, then the default expression), body
    statements. A parameter error lands on its ``ResolvedProperty``; a body
    error becomes a class hint and stops the remaining statements.
    """

    kind = "class"

    def __init__(self, args: Sequence[ExpressionNode]) -> None:
        ExpressionNode.__init__(self)
        meta = _meta(self.kind, args)
        self.name: str = str(meta.literal("name", ""))
        self.parent_name: str | None = meta.literal("parent")
        self.params = parse_parameters(meta.get("params"))
        self.body = statement_list(meta.get("body"))

        self.resolved_properties: dict[str, ResolvedProperty] = {}
        self.hints: list[dict[str, Any]] = []
        self.options: dict[str, Any] = {}
        self.public = False
        self.parent: ClassDefinition | None = None
        self.parent_scope: Scope | None = None

    def mark_public(self) -> None:
        self.public = True

    def set_option(self, key: str, value: Any) -> None:
        self.options[key] = value

    def add_hint(self, kind: str, message: str) -> None:
        self.hints.append({"kind": kind, "message": message})

    def get_resolved_property(self, name: str) -> ResolvedProperty | None:
        return self.resolved_properties.get(name)

    def override_key(self, param: str) -> str:
        return f"{self.name}::{param}"

    # ---------- Scope ----------

    def lookup(self, name: str) -> tuple[bool, Any]:
        prop = self.resolved_properties.get(name)
        if prop is not None and prop.has_value:
            return True, prop.value
        return False, None

    def assign(self, name: str, value: Any) -> None:
        prop = self.resolved_properties.get(name)
        if prop is None:
            prop = ResolvedProperty()
            self.resolved_properties[name] = prop
        prop.set_value(value)

    # ---------- resolution ----------

    def _evaluate(self, scope: Scope, resolver: Resolver) -> Any:
        if self.parent_name:
            self.parent = resolver.resolve_class(self.parent_name)
            self.parent_scope = self.parent

        for param in self.params:
            self._resolve_parameter(param, resolver)

        self._resolve_body(resolver)
        return self

    def _parameter_override(self, param: Parameter, resolver: Resolver) -> tuple[bool, Any, int | None]:
        key = self.override_key(param.name)
        presence = resolver.has_global_variable(key)
        if presence.from_hierarchy:
            return True, resolver.get_global_variable(key), presence.level
        return False, None, None

    def _resolve_parameter(self, param: Parameter, resolver: Resolver) -> None:
        prop = ResolvedProperty()
        self.resolved_properties[param.name] = prop
        try:
            if param.type_expr is not None:
                prop.type = param.type_expr.resolve(self, resolver)
            found, value, level = self._parameter_override(param, resolver)
            if found:
                prop.set_value(value)
                prop.hierarchy = level
            elif param.default is not None:
                prop.set_value(param.default.resolve(self, resolver))
        except ReturnSignal:
            logger.debug("Property %s of %s used return outside a function", param.name, self.name)
            prop.error = ResolveError(None, f"return is not allowed in the value of parameter {param.name}")
        except Exception as exc:
            logger.debug("Property %s of %s failed: %s", param.name, self.name, exc)
            prop.error = exc

    def _resolve_body(self, resolver: Resolver) -> None:
        try:
            run_statements(self.body, self, resolver)
        except ReturnSignal:
            return
        except Exception as exc:
            logger.info("Failed to resolve body of %s %s: %s", self.kind, self.name, exc)
            self.add_hint("error", f"Failed to resolve class body: {exc}")

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class DefinedTypeDefinition(ClassDefinition):
    """A defined type instance, resolved per ``(name, title)``.

    Declared properties replace parameter defaults; ``$title`` and ``$name``
    are bound to the instance title.
    """

    kind = "define"

    def __init__(self, args: Sequence[ExpressionNode]) -> None:
        super().__init__(args)
        self.title: str = ""
        self.overrides: dict[str, Any] = {}
        self.hierarchy: int | None = None

    def bind(self, title: str, properties: dict[str, Any] | None = None, *, hierarchy: int | None = None) -> None:
        self.title = title
        self.overrides = dict(properties or {})
        self.hierarchy = hierarchy

    def lookup(self, name: str) -> tuple[bool, Any]:
        if name in ("title", "name") and name not in self.resolved_properties:
            return True, self.title
        return super().lookup(name)

    def _parameter_override(self, param: Parameter, resolver: Resolver) -> tuple[bool, Any, int | None]:
        if param.name in self.overrides:
            return True, self.overrides[param.name], self.hierarchy
        return False, None, None

    def _resolve_body(self, resolver: Resolver) -> None:
        try:
            run_statements(self.body, self, resolver)
        except ReturnSignal:
            return
        except Exception as exc:
            logger.info("Failed to resolve body of %s['%s']: %s", self.name, self.title, exc)
            self.add_hint("error", f"Failed to resolve resource body: {exc}")


class FunctionDefinition(ExpressionNode):
    """A Puppet-language function; ``apply`` binds positional arguments."""

    kind = "function"

    def __init__(self, args: Sequence[ExpressionNode]) -> None:
        super().__init__()
        meta = _meta(self.kind, args)
        self.name: str = str(meta.literal("name", ""))
        self.params = parse_parameters(meta.get("params"))
        self.body = statement_list(meta.get("body"))

    def apply(self, args: Sequence[Any], resolver: Resolver) -> Any:
        if len(args) > len(self.params):
            raise ResolveError(
                self,
                f"Function {self.name} expects at most {len(self.params)} arguments, got {len(args)}",
            )

        scope = LocalScope()
        for index, param in enumerate(self.params):
            if index < len(args):
                scope.assign(param.name, args[index])
            elif param.default is not None:
                scope.assign(param.name, param.default.resolve(scope, resolver))
            else:
                raise ResolveError(self, f"Function {self.name} expects a value for parameter '{param.name}'")

        try:
            return run_statements(self.body, scope, resolver)
        except ReturnSignal as signal:
            return signal.value

    def _evaluate(self, scope: Scope, resolver: Resolver) -> Any:
        return self

    def __repr__(self) -> str:
        return f"<FunctionDefinition {self.name}>"


class NodeDefinition(ExpressionNode):
    """``node <matches> { ... }`` of a site manifest.

    Evaluating the statement only yields the definition; the site
    evaluation ranks every definition against the node names and runs the
    body of the best one.
    """

    kind = "node"

    def __init__(self, args: Sequence[ExpressionNode]) -> None:
        super().__init__()
        meta = _meta(self.kind, args)
        self.matches = statement_list(meta.get("matches"))
        self.body = statement_list(meta.get("body"))

    def rank(self, names: Sequence[str], scope: Scope, resolver: Resolver) -> int | None:
        """Best match of ``names`` (lower wins) or None.

        An exact name ranks by its position in ``names``, then any regexp
        match, then ``default``.
        """
        best: int | None = None
        for match in self.matches:
            value = match.resolve(scope, resolver)
            if value is DEFAULT:
                rank = len(names) + 1
            elif isinstance(value, re.Pattern):
                rank = len(names) if any(value.search(name) for name in names) else None
            else:
                text = str(value).lower()
                rank = names.index(text) if text in names else None
            if rank is not None and (best is None or rank < best):
                best = rank
        return best

    def _evaluate(self, scope: Scope, resolver: Resolver) -> Any:
        return self

    def __repr__(self) -> str:
        return f"<NodeDefinition {len(self.matches)} matches>"


class ResolvedFunction:
    """A function bound to its artifact data.

    Every call parses a fresh tree so memoized node values never leak from
    one call into the next.
    """

    def __init__(self, name: str, data: Any, parse: Callable[[Any], ExpressionNode]) -> None:
        self.name = name
        self._data = data
        self._parse = parse

    def definition(self) -> FunctionDefinition:
        node = self._parse(self._data)
        if not isinstance(node, FunctionDefinition):
            raise ParseError(f"Artifact of {self.name} is not a function", context={"function": self.name})
        return node

    def call(self, args: Sequence[Any], resolver: Resolver) -> Any:
        return self.definition().apply(args, resolver)

    def __repr__(self) -> str:
        return f"<ResolvedFunction {self.name}>"


__all__ = [
    "ClassDefinition",
    "DefinedTypeDefinition",
    "FunctionDefinition",
    "NodeDefinition",
    "Parameter",
    "ResolvedFunction",
    "parse_parameters",
]
