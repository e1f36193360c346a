"""Resolver capability handed to expression trees of one node."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any

from hieraedit.core.ast.base import VariablePresence

if TYPE_CHECKING:
    from hieraedit.core.ast.definitions import ClassDefinition, DefinedTypeDefinition, ResolvedFunction

    from .context import NodeResolutionContext


class NodeResolver:
    """Adapter from the ``Resolver`` protocol to a ``NodeResolutionContext``."""

    def __init__(self, context: NodeResolutionContext) -> None:
        self._context = context

    @property
    def node_name(self) -> str:
        return self._context.certname

    def resolve_class(self, name: str, public: bool = False) -> ClassDefinition:
        return self._context.resolve_class(name, public=public)

    def resolve_defined_type(
        self, name: str, title: str, properties: dict[str, Any], *, hierarchy: int | None = None
    ) -> DefinedTypeDefinition | None:
        return self._context.resolve_defined_type(name, title, properties, hierarchy=hierarchy)

    def resolve_function(self, name: str) -> ResolvedFunction | None:
        return self._context.resolve_function(name)

    def get_global_variable(self, name: str) -> Any:
        return self._context.get_global(name)

    def has_global_variable(self, name: str) -> VariablePresence:
        return self._context.has_global(name)

    def register_hiera_source(self, kind: str, key: str, level: int) -> None:
        self._context.register_hiera_source(kind, key, level)


__all__ = ["NodeResolver"]
