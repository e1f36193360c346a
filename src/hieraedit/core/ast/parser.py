"""PN artifact parser.

Artifact JSON shapes:
- ``{"^": [tag, arg...]}``: call-like node, dispatched on ``tag``
- ``{"#": [k1, v1, ...]}``: map with literal keys
- JSON array: list node
- anything else: primitive

Unknown tags become ``Unsupported`` nodes that fail only when resolved.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Sequence

from hieraedit.core.exceptions import ParseError

from .base import ExpressionNode
from .definitions import ClassDefinition, DefinedTypeDefinition, FunctionDefinition, NodeDefinition
from .nodes import (
    Access,
    ArrayLiteral,
    Assignment,
    BinaryOperator,
    Block,
    Call,
    Case,
    Concat,
    Default,
    HashLiteral,
    HashNode,
    If,
    KeyedEntry,
    ListNode,
    Negate,
    Nop,
    Not,
    Paren,
    Primitive,
    QualifiedName,
    Regexp,
    Relationship,
    ResourceDeclaration,
    Return,
    Selector,
    SplatHash,
    StringSegment,
    TypeReference,
    Unless,
    Unsupported,
    Variable,
)

logger = logging.getLogger(__name__)

NodeFactory = Callable[[Sequence[ExpressionNode]], ExpressionNode]


def _binary(op: str) -> NodeFactory:
    return lambda args: BinaryOperator(op, args)


def _relationship(op: str) -> NodeFactory:
    return lambda args: Relationship(op, args)


def _minus(args: Sequence[ExpressionNode]) -> ExpressionNode:
    if len(args) == 1:
        return Negate(args)
    return BinaryOperator("-", args)


CALLS: dict[str, NodeFactory] = {
    "block": Block,
    "class": ClassDefinition,
    "define": DefinedTypeDefinition,
    "function": FunctionDefinition,
    "node": NodeDefinition,
    "=": Assignment,
    "var": Variable,
    "qr": TypeReference,
    "qn": QualifiedName,
    "access": Access,
    "call": Call,
    "invoke": Call,
    "if": If,
    "unless": Unless,
    "?": Selector,
    "=>": KeyedEntry,
    "+>": KeyedEntry,
    "case": Case,
    "default": Default,
    "concat": Concat,
    "str": StringSegment,
    "array": ArrayLiteral,
    "hash": HashLiteral,
    "splat-hash": SplatHash,
    "regexp": Regexp,
    "paren": Paren,
    "resource": ResourceDeclaration,
    "return": Return,
    "nop": Nop,
    "!": Not,
    "-": _minus,
    "and": _binary("and"),
    "or": _binary("or"),
}

for _op in ("==", "!=", "<", ">", "<=", ">=", "+", "*", "/", "%", "<<", ">>", "in", "=~", "!~"):
    CALLS[_op] = _binary(_op)

for _op in ("->", "~>", "<-", "<~"):
    CALLS[_op] = _relationship(_op)


class ArtifactParser:
    """Turns artifact JSON into a fresh expression tree."""

    def __init__(self, calls: dict[str, NodeFactory] | None = None) -> None:
        self.calls = dict(calls or CALLS)

    def parse(self, obj: Any) -> ExpressionNode:
        if isinstance(obj, dict):
            if "^" in obj:
                return self._parse_call(obj["^"])
            if "#" in obj:
                return self._parse_hash(obj["#"])
        if isinstance(obj, list):
            return ListNode([self.parse(item) for item in obj])
        return Primitive(obj)

    def _parse_call(self, call: Any) -> ExpressionNode:
        if not isinstance(call, list) or not call:
            raise ParseError(f"Malformed call node: {call!r}")
        tag = call[0]
        raw_args = call[1:]
        factory = self.calls.get(tag) if isinstance(tag, str) else None
        if factory is None:
            logger.debug("Unsupported kind of call: %s", tag)
            return Unsupported(str(tag), raw_args)

        args = [self.parse(arg) for arg in raw_args]
        try:
            return factory(args)
        except (IndexError, ValueError, TypeError) as exc:
            raise ParseError(f"Malformed '{tag}' node: {exc}", context={"tag": tag}) from exc

    def _parse_hash(self, items: Any) -> HashNode:
        if not isinstance(items, list) or len(items) % 2 != 0:
            raise ParseError("Malformed map node: expected an even-length list")
        entries: dict[str, ExpressionNode] = {}
        for i in range(0, len(items), 2):
            entries[str(items[i])] = self.parse(items[i + 1])
        return HashNode(entries)


def parse(obj: Any) -> ExpressionNode:
    return ArtifactParser().parse(obj)


def find_definition(node: ExpressionNode, kind: type) -> ExpressionNode | None:
    """Return ``node`` or the first top-level statement of type ``kind``.

    A manifest holding more than one statement is a ``block``; the
    definition is looked up among its statements. The match is exact so a
    class lookup never picks up a defined type.
    """
    if type(node) is kind:
        return node
    if isinstance(node, (Block, ListNode)):
        statements = node.statements if isinstance(node, Block) else node.entries
        for statement in statements:
            if type(statement) is kind:
                return statement
    return None


def parse_definition(obj: Any, kind: type, name: str) -> Any:
    """Parse an artifact and return its definition of ``kind``.

    Raises:
        ParseError: when the artifact holds no such definition.
    """
    node = find_definition(parse(obj), kind)
    if node is None:
        raise ParseError(
            f"Artifact of {name} holds no {kind.__name__}",
            context={"name": name, "expected": kind.__name__},
        )
    return node


__all__ = ["ArtifactParser", "CALLS", "find_definition", "parse", "parse_definition"]
