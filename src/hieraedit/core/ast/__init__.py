"""Expression model for compiled (PN) manifests.

Artifacts are parsed into a tree of ``ExpressionNode`` objects whose
``resolve(scope, resolver)`` is memoized per node.
"""
from __future__ import annotations

from .base import (
    DEFAULT,
    ExpressionNode,
    LocalScope,
    ResolvedProperty,
    ResolveState,
    Resolver,
    ReturnSignal,
    Scope,
    TypeDescriptor,
    VariablePresence,
)
from .definitions import ClassDefinition, DefinedTypeDefinition, FunctionDefinition, NodeDefinition, ResolvedFunction
from .parser import ArtifactParser, parse, parse_definition

__all__ = [
    "DEFAULT",
    "ArtifactParser",
    "ClassDefinition",
    "DefinedTypeDefinition",
    "ExpressionNode",
    "FunctionDefinition",
    "LocalScope",
    "NodeDefinition",
    "ResolveState",
    "ResolvedFunction",
    "ResolvedProperty",
    "Resolver",
    "ReturnSignal",
    "Scope",
    "TypeDescriptor",
    "VariablePresence",
    "parse",
    "parse_definition",
]
