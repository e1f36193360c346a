"""Expression and statement variants of the PN artifact tree."""
from __future__ import annotations

import logging
import operator
import re
from typing import Any, Callable, Iterable, Sequence

from hieraedit.core.exceptions import CompilationError, ResolveError

from .base import (
    DEFAULT,
    ExpressionNode,
    Resolver,
    ReturnSignal,
    Scope,
    TypeDescriptor,
    VariablePresence,
)

logger = logging.getLogger(__name__)


# ---------- value helpers ----------

def is_truthy(value: Any) -> bool:
    """Only ``undef`` and ``false`` are falsy."""
    return value is not None and value is not False


def format_value(value: Any, *, nested: bool = False) -> str:
    """Render a resolved value the way string interpolation does."""
    if value is None:
        return ""
    if value is True:
        return "true"
    if value is False:
        return "false"
    if isinstance(value, str):
        return f"'{value}'" if nested else value
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(format_value(v, nested=True) for v in value) + "]"
    if isinstance(value, dict):
        inner = ", ".join(
            f"{format_value(k, nested=True)} => {format_value(v, nested=True)}"
            for k, v in value.items()
        )
        return "{" + inner + "}"
    if isinstance(value, re.Pattern):
        return f"/{value.pattern}/"
    return str(value)


def values_equal(left: Any, right: Any) -> bool:
    """Equality with case-insensitive string comparison."""
    if isinstance(left, str) and isinstance(right, str):
        return left.casefold() == right.casefold()
    if isinstance(left, list) and isinstance(right, list):
        return len(left) == len(right) and all(values_equal(a, b) for a, b in zip(left, right))
    if isinstance(left, dict) and isinstance(right, dict):
        if set(left.keys()) != set(right.keys()):
            return False
        return all(values_equal(left[k], right[k]) for k in left)
    if isinstance(left, bool) or isinstance(right, bool):
        return left is right
    return left == right


_TYPE_CHECKS: dict[str, Callable[[Any], bool]] = {
    "Any": lambda v: True,
    "Undef": lambda v: v is None,
    "String": lambda v: isinstance(v, str),
    "Integer": lambda v: isinstance(v, int) and not isinstance(v, bool),
    "Float": lambda v: isinstance(v, float),
    "Numeric": lambda v: isinstance(v, (int, float)) and not isinstance(v, bool),
    "Boolean": lambda v: isinstance(v, bool),
    "Array": lambda v: isinstance(v, list),
    "Hash": lambda v: isinstance(v, dict),
    "Scalar": lambda v: isinstance(v, (str, int, float, bool)),
}


def matches_type(value: Any, descriptor: TypeDescriptor) -> bool:
    if descriptor.name == "Optional":
        return value is None or not descriptor.args or _matches(value, descriptor.args[0])
    if descriptor.name == "Variant":
        return any(_matches(value, a) for a in descriptor.args)
    if descriptor.name == "Enum":
        return isinstance(value, str) and value in descriptor.args
    check = _TYPE_CHECKS.get(descriptor.name)
    return bool(check and check(value))


def _matches(value: Any, option: Any) -> bool:
    if isinstance(option, TypeDescriptor):
        return matches_type(value, option)
    if isinstance(option, re.Pattern):
        return isinstance(value, str) and option.search(value) is not None
    return values_equal(value, option)


def case_matches(value: Any, option: Any) -> bool:
    """Selector/case option test (``default`` is handled by the caller)."""
    return _matches(value, option)


def run_statements(statements: Iterable[ExpressionNode], scope: Scope, resolver: Resolver) -> Any:
    """Evaluate statements in order and return the last value."""
    result = None
    for statement in statements:
        result = statement.resolve(scope, resolver)
    return result


def statement_list(node: ExpressionNode | None) -> list[ExpressionNode]:
    if node is None:
        return []
    if isinstance(node, ListNode):
        return list(node.entries)
    if isinstance(node, Block):
        return list(node.statements)
    return [node]


# ---------- structural nodes ----------

class Primitive(ExpressionNode):
    def __init__(self, value: Any) -> None:
        super().__init__()
        self.value = value

    def _evaluate(self, scope: Scope, resolver: Resolver) -> Any:
        return self.value

    def __repr__(self) -> str:
        return f"<Primitive {self.value!r}>"


class ListNode(ExpressionNode):
    def __init__(self, entries: Sequence[ExpressionNode]) -> None:
        super().__init__()
        self.entries = list(entries)

    def _evaluate(self, scope: Scope, resolver: Resolver) -> Any:
        return [e.resolve(scope, resolver) for e in self.entries]


class HashNode(ExpressionNode):
    """``{"#": [k1, v1, ...]}`` map with literal keys."""

    def __init__(self, entries: dict[str, ExpressionNode]) -> None:
        super().__init__()
        self.entries = dict(entries)

    def get(self, key: str) -> ExpressionNode | None:
        return self.entries.get(key)

    def literal(self, key: str, default: Any = None) -> Any:
        node = self.entries.get(key)
        if isinstance(node, Primitive):
            return node.value
        return default

    def _evaluate(self, scope: Scope, resolver: Resolver) -> Any:
        return {k: v.resolve(scope, resolver) for k, v in self.entries.items()}


class ArrayLiteral(ExpressionNode):
    def __init__(self, args: Sequence[ExpressionNode]) -> None:
        super().__init__()
        self.entries = list(args)

    def _evaluate(self, scope: Scope, resolver: Resolver) -> Any:
        return [e.resolve(scope, resolver) for e in self.entries]


class KeyedEntry(ExpressionNode):
    """``key => value`` pair (hash literal, selector option, attribute)."""

    def __init__(self, args: Sequence[ExpressionNode]) -> None:
        super().__init__()
        self.key = args[0]
        self.value = args[1]

    @property
    def literal_key(self) -> Any:
        return self.key.value if isinstance(self.key, Primitive) else None

    def _evaluate(self, scope: Scope, resolver: Resolver) -> Any:
        return self.key.resolve(scope, resolver), self.value.resolve(scope, resolver)


class HashLiteral(ExpressionNode):
    def __init__(self, args: Sequence[ExpressionNode]) -> None:
        super().__init__()
        self.entries = list(args)

    def _evaluate(self, scope: Scope, resolver: Resolver) -> Any:
        result: dict[Any, Any] = {}
        for entry in self.entries:
            key, value = entry.resolve(scope, resolver)
            result[key] = value
        return result


class SplatHash(ExpressionNode):
    """``* => $hash`` inside a resource body."""

    def __init__(self, args: Sequence[ExpressionNode]) -> None:
        super().__init__()
        self.expr = args[0]

    def _evaluate(self, scope: Scope, resolver: Resolver) -> Any:
        value = self.expr.resolve(scope, resolver)
        return value if isinstance(value, dict) else {}


class Block(ExpressionNode):
    def __init__(self, args: Sequence[ExpressionNode]) -> None:
        super().__init__()
        self.statements = list(args)

    def _evaluate(self, scope: Scope, resolver: Resolver) -> Any:
        return run_statements(self.statements, scope, resolver)


class Nop(ExpressionNode):
    def __init__(self, args: Sequence[ExpressionNode] = ()) -> None:
        super().__init__()

    def _evaluate(self, scope: Scope, resolver: Resolver) -> Any:
        return None


class Default(ExpressionNode):
    def __init__(self, args: Sequence[ExpressionNode] = ()) -> None:
        super().__init__()

    def _evaluate(self, scope: Scope, resolver: Resolver) -> Any:
        return DEFAULT


class Unsupported(ExpressionNode):
    """Tag without a variant; fails only when resolved."""

    def __init__(self, tag: str, args: Sequence[Any]) -> None:
        super().__init__()
        self.tag = tag
        self.args = list(args)

    def _evaluate(self, scope: Scope, resolver: Resolver) -> Any:
        raise ResolveError(self, f"Unsupported expression: {self.tag}", context={"tag": self.tag})

    def __repr__(self) -> str:
        return f"<Unsupported {self.tag!r}>"


# ---------- names ----------

class TypeReference(ExpressionNode):
    def __init__(self, args: Sequence[ExpressionNode]) -> None:
        super().__init__()
        first = args[0]
        self.name = str(first.value if isinstance(first, Primitive) else first)

    def _evaluate(self, scope: Scope, resolver: Resolver) -> Any:
        return TypeDescriptor(self.name)


class QualifiedName(ExpressionNode):
    def __init__(self, args: Sequence[ExpressionNode]) -> None:
        super().__init__()
        first = args[0]
        self.name = str(first.value if isinstance(first, Primitive) else first)

    def _evaluate(self, scope: Scope, resolver: Resolver) -> Any:
        return self.name


class Regexp(ExpressionNode):
    def __init__(self, args: Sequence[ExpressionNode]) -> None:
        super().__init__()
        first = args[0]
        pattern = str(first.value if isinstance(first, Primitive) else first)
        if pattern.startswith("/") and pattern.endswith("/") and len(pattern) >= 2:
            pattern = pattern[1:-1]
        self.pattern = pattern

    def _evaluate(self, scope: Scope, resolver: Resolver) -> Any:
        try:
            return re.compile(self.pattern)
        except re.error as exc:
            raise ResolveError(self, f"Invalid regular expression /{self.pattern}/: {exc}") from exc


class Variable(ExpressionNode):
    """``$name`` lookup.

    ``$::x`` reads a global, ``$a::b::x`` reads property ``x`` of class
    ``a::b`` (falling back to the global of that name), and ``$x`` walks the
    current scope, its inherited parent scopes, then globals.
    """

    def __init__(self, args: Sequence[ExpressionNode]) -> None:
        super().__init__()
        first = args[0]
        self.name = str(first.value if isinstance(first, Primitive) else first)

    def _evaluate(self, scope: Scope, resolver: Resolver) -> Any:
        found, value = self._lookup(scope, resolver)
        return value if found else None

    def presence(self, scope: Scope, resolver: Resolver) -> VariablePresence:
        found, _ = self._lookup_local(scope, resolver)
        if found:
            return VariablePresence.unknown_level()
        return resolver.has_global_variable(self.global_name)

    @property
    def global_name(self) -> str:
        return self.name[2:] if self.name.startswith("::") else self.name

    def _lookup_local(self, scope: Scope, resolver: Resolver) -> tuple[bool, Any]:
        name = self.name
        if name.startswith("::"):
            return False, None

        if "::" in name:
            class_name, _, prop = name.rpartition("::")
            try:
                clazz = resolver.resolve_class(class_name)
            except CompilationError:
                return False, None
            return clazz.lookup(prop)

        current: Scope | None = scope
        while current is not None:
            found, value = current.lookup(name)
            if found:
                return True, value
            current = current.parent_scope
        return False, None

    def _lookup(self, scope: Scope, resolver: Resolver) -> tuple[bool, Any]:
        found, value = self._lookup_local(scope, resolver)
        if found:
            return True, value
        if resolver.has_global_variable(self.global_name).is_missing:
            return False, None
        return True, resolver.get_global_variable(self.global_name)

    def __repr__(self) -> str:
        return f"<Variable ${self.name}>"


class Assignment(ExpressionNode):
    def __init__(self, args: Sequence[ExpressionNode]) -> None:
        super().__init__()
        self.target = args[0]
        self.value = args[1]

    def _evaluate(self, scope: Scope, resolver: Resolver) -> Any:
        if not isinstance(self.target, Variable):
            raise ResolveError(self, "Only variables can be assigned")
        value = self.value.resolve(scope, resolver)
        scope.assign(self.target.name, value)
        return value


# ---------- access / calls ----------

class Access(ExpressionNode):
    """``left[keys...]``: parametrises types, indexes hashes/arrays/strings."""

    def __init__(self, args: Sequence[ExpressionNode]) -> None:
        super().__init__()
        self.left = args[0]
        self.keys = list(args[1:])

    def _evaluate(self, scope: Scope, resolver: Resolver) -> Any:
        left = self.left.resolve(scope, resolver)
        keys = [k.resolve(scope, resolver) for k in self.keys]

        if isinstance(left, TypeDescriptor):
            return left.with_args(keys)
        if left is None:
            return None
        if isinstance(left, dict):
            if len(keys) != 1:
                raise ResolveError(self, "Hash access takes exactly one key")
            return left.get(keys[0])
        if isinstance(left, (list, str)):
            return self._index(left, keys)
        raise ResolveError(self, f"Operator '[]' is not applicable to {type(left).__name__}")

    def _index(self, left: list | str, keys: list[Any]) -> Any:
        if not keys or not all(isinstance(k, int) and not isinstance(k, bool) for k in keys):
            raise ResolveError(self, "Index must be an integer")
        start = keys[0]
        if len(keys) == 1:
            try:
                return left[start]
            except IndexError:
                return None
        count = keys[1]
        if start < 0:
            start += len(left)
        end = len(left) if count < 0 else start + count
        return left[start:end]


class Call(ExpressionNode):
    """Function call: built-in first, then a Puppet function from the index."""

    def __init__(self, args: Sequence[ExpressionNode]) -> None:
        super().__init__()
        meta = args[0]
        if not isinstance(meta, HashNode):
            raise ValueError("call expects a map argument")
        self.functor = meta.get("functor")
        args_node = meta.get("args")
        self.args: list[ExpressionNode] = list(args_node.entries) if isinstance(args_node, ListNode) else []

    @property
    def function_name(self) -> str:
        if isinstance(self.functor, (QualifiedName, TypeReference)):
            return self.functor.name
        if isinstance(self.functor, Primitive):
            return str(self.functor.value)
        return ""

    def _evaluate(self, scope: Scope, resolver: Resolver) -> Any:
        from .builtins import get_builtin

        name = self.function_name
        builtin = get_builtin(name)
        if builtin is not None:
            return builtin(self, scope, resolver, self.args)

        function = resolver.resolve_function(name)
        if function is None:
            raise ResolveError(self, f"Unknown function: {name}", context={"function": name})
        values = [a.resolve(scope, resolver) for a in self.args]
        return function.call(values, resolver)


# ---------- control flow ----------

class If(ExpressionNode):
    negate = False

    def __init__(self, args: Sequence[ExpressionNode]) -> None:
        super().__init__()
        meta = args[0]
        if not isinstance(meta, HashNode):
            raise ValueError("if expects a map argument")
        self.test = meta.get("test")
        self.then_branch = statement_list(meta.get("then"))
        self.else_branch = statement_list(meta.get("else"))

    def _evaluate(self, scope: Scope, resolver: Resolver) -> Any:
        condition = is_truthy(self.test.resolve(scope, resolver)) if self.test else False
        if self.negate:
            condition = not condition
        branch = self.then_branch if condition else self.else_branch
        return run_statements(branch, scope, resolver)


class Unless(If):
    negate = True


class Selector(ExpressionNode):
    """``$x ? { 'a' => 1, default => 2 }``"""

    def __init__(self, args: Sequence[ExpressionNode]) -> None:
        super().__init__()
        self.left = args[0]
        options = args[1] if len(args) > 1 else None
        self.options: list[ExpressionNode] = (
            list(options.entries) if isinstance(options, ListNode) else list(args[1:])
        )

    def _evaluate(self, scope: Scope, resolver: Resolver) -> Any:
        value = self.left.resolve(scope, resolver)
        fallback: ExpressionNode | None = None
        for option in self.options:
            if not isinstance(option, KeyedEntry):
                continue
            match = option.key.resolve(scope, resolver)
            if match is DEFAULT:
                fallback = option.value
                continue
            if case_matches(value, match):
                return option.value.resolve(scope, resolver)
        if fallback is not None:
            return fallback.resolve(scope, resolver)
        raise ResolveError(self, f"No matching entry for selector value '{format_value(value)}'")


class Case(ExpressionNode):
    def __init__(self, args: Sequence[ExpressionNode]) -> None:
        super().__init__()
        self.test = args[0]
        options = args[1] if len(args) > 1 else None
        self.options: list[HashNode] = [
            o for o in (options.entries if isinstance(options, ListNode) else []) if isinstance(o, HashNode)
        ]

    def _evaluate(self, scope: Scope, resolver: Resolver) -> Any:
        value = self.test.resolve(scope, resolver)
        fallback: list[ExpressionNode] | None = None
        for option in self.options:
            whens = statement_list(option.get("when"))
            body = statement_list(option.get("then"))
            for when in whens:
                match = when.resolve(scope, resolver)
                if match is DEFAULT:
                    fallback = body
                    continue
                if case_matches(value, match):
                    return run_statements(body, scope, resolver)
        if fallback is not None:
            return run_statements(fallback, scope, resolver)
        return None


class Return(ExpressionNode):
    def __init__(self, args: Sequence[ExpressionNode] = ()) -> None:
        super().__init__()
        self.value = args[0] if args else None

    def _evaluate(self, scope: Scope, resolver: Resolver) -> Any:
        value = self.value.resolve(scope, resolver) if self.value is not None else None
        raise ReturnSignal(value)


class Paren(ExpressionNode):
    def __init__(self, args: Sequence[ExpressionNode]) -> None:
        super().__init__()
        self.expr = args[0]

    def _evaluate(self, scope: Scope, resolver: Resolver) -> Any:
        return self.expr.resolve(scope, resolver)


# ---------- strings ----------

class Concat(ExpressionNode):
    def __init__(self, args: Sequence[ExpressionNode]) -> None:
        super().__init__()
        self.parts = list(args)

    def _evaluate(self, scope: Scope, resolver: Resolver) -> Any:
        return "".join(format_value(p.resolve(scope, resolver)) for p in self.parts)


class StringSegment(ExpressionNode):
    """``${expr}`` segment inside a double-quoted string."""

    def __init__(self, args: Sequence[ExpressionNode]) -> None:
        super().__init__()
        self.expr = args[0]

    def _evaluate(self, scope: Scope, resolver: Resolver) -> Any:
        return format_value(self.expr.resolve(scope, resolver))


# ---------- operators ----------

def _compare(op: Callable[[Any, Any], bool]) -> Callable[[Any, Any], Any]:
    def apply(left: Any, right: Any) -> Any:
        if isinstance(left, str) and isinstance(right, str):
            return op(left.casefold(), right.casefold())
        return op(left, right)
    return apply


def _add(left: Any, right: Any) -> Any:
    if isinstance(left, list):
        return left + (right if isinstance(right, list) else [right])
    if isinstance(left, dict) and isinstance(right, dict):
        return {**left, **right}
    return left + right


def _subtract(left: Any, right: Any) -> Any:
    if isinstance(left, list):
        drop = right if isinstance(right, list) else [right]
        return [v for v in left if not any(values_equal(v, d) for d in drop)]
    if isinstance(left, dict):
        drop = right.keys() if isinstance(right, dict) else (right if isinstance(right, list) else [right])
        return {k: v for k, v in left.items() if k not in drop}
    return left - right


def _divide(left: Any, right: Any) -> Any:
    if isinstance(left, int) and isinstance(right, int):
        return int(left / right)
    return left / right


def _append(left: Any, right: Any) -> Any:
    if isinstance(left, list):
        return left + [right]
    return left << right


def _contains(left: Any, right: Any) -> bool:
    if isinstance(right, str):
        if isinstance(left, re.Pattern):
            return left.search(right) is not None
        return isinstance(left, str) and left.casefold() in right.casefold()
    if isinstance(right, dict):
        return any(_matches(k, left) for k in right)
    if isinstance(right, list):
        return any(_matches(v, left) for v in right)
    return False


def _regex_match(left: Any, right: Any) -> bool:
    if isinstance(right, TypeDescriptor):
        return matches_type(left, right)
    pattern = right if isinstance(right, re.Pattern) else re.compile(str(right))
    return isinstance(left, str) and pattern.search(left) is not None


_BINARY: dict[str, Callable[[Any, Any], Any]] = {
    "==": values_equal,
    "!=": lambda a, b: not values_equal(a, b),
    "<": _compare(operator.lt),
    ">": _compare(operator.gt),
    "<=": _compare(operator.le),
    ">=": _compare(operator.ge),
    "+": _add,
    "-": _subtract,
    "*": operator.mul,
    "/": _divide,
    "%": operator.mod,
    "<<": _append,
    ">>": operator.rshift,
    "in": _contains,
    "=~": _regex_match,
    "!~": lambda a, b: not _regex_match(a, b),
}

BINARY_OPERATORS = frozenset(_BINARY) | {"and", "or"}


class BinaryOperator(ExpressionNode):
    def __init__(self, op: str, args: Sequence[ExpressionNode]) -> None:
        super().__init__()
        self.op = op
        self.left = args[0]
        self.right = args[1]

    def _evaluate(self, scope: Scope, resolver: Resolver) -> Any:
        left = self.left.resolve(scope, resolver)
        if self.op == "and":
            return is_truthy(left) and is_truthy(self.right.resolve(scope, resolver))
        if self.op == "or":
            return is_truthy(left) or is_truthy(self.right.resolve(scope, resolver))

        right = self.right.resolve(scope, resolver)
        try:
            return _BINARY[self.op](left, right)
        except (TypeError, ValueError, ZeroDivisionError, re.error) as exc:
            raise ResolveError(
                self,
                f"Operator '{self.op}' failed for {format_value(left)!r} and {format_value(right)!r}: {exc}",
            ) from exc

    def __repr__(self) -> str:
        return f"<BinaryOperator {self.op}>"


class Not(ExpressionNode):
    def __init__(self, args: Sequence[ExpressionNode]) -> None:
        super().__init__()
        self.expr = args[0]

    def _evaluate(self, scope: Scope, resolver: Resolver) -> Any:
        return not is_truthy(self.expr.resolve(scope, resolver))


class Negate(ExpressionNode):
    def __init__(self, args: Sequence[ExpressionNode]) -> None:
        super().__init__()
        self.expr = args[0]

    def _evaluate(self, scope: Scope, resolver: Resolver) -> Any:
        value = self.expr.resolve(scope, resolver)
        if not isinstance(value, (int, float)) or isinstance(value, bool):
            raise ResolveError(self, f"Cannot negate {format_value(value)!r}")
        return -value


# ---------- resources ----------

class Relationship(ExpressionNode):
    """``a -> b`` / ``a ~> b``: both sides are evaluated for side effects."""

    def __init__(self, op: str, args: Sequence[ExpressionNode]) -> None:
        super().__init__()
        self.op = op
        self.left = args[0]
        self.right = args[1]

    def _evaluate(self, scope: Scope, resolver: Resolver) -> Any:
        self.left.resolve(scope, resolver)
        self.right.resolve(scope, resolver)
        return None


class ResourceBody:
    def __init__(self, node: HashNode) -> None:
        self.title = node.get("title")
        ops = node.get("ops")
        self.ops: list[ExpressionNode] = list(ops.entries) if isinstance(ops, ListNode) else []

    def properties(self, scope: Scope, resolver: Resolver) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for op in self.ops:
            if isinstance(op, KeyedEntry):
                name = op.literal_key
                if name is None:
                    name = op.key.resolve(scope, resolver)
                result[str(name)] = op.value.resolve(scope, resolver)
            elif isinstance(op, SplatHash):
                result.update(op.resolve(scope, resolver))
        return result


class ResourceDeclaration(ExpressionNode):
    """``type { 'title': attr => value }``.

    ``class { 'x': }`` resolves class ``x``; any other type is declared as a
    defined-type instance through the resolver (unknown types are ignored).
    """

    def __init__(self, args: Sequence[ExpressionNode]) -> None:
        super().__init__()
        meta = args[0]
        if not isinstance(meta, HashNode):
            raise ValueError("resource expects a map argument")
        self.type_node = meta.get("type")
        bodies = meta.get("bodies")
        self.bodies = [
            ResourceBody(b) for b in (bodies.entries if isinstance(bodies, ListNode) else []) if isinstance(b, HashNode)
        ]

    def _type_name(self, scope: Scope, resolver: Resolver) -> str:
        if isinstance(self.type_node, (QualifiedName, TypeReference)):
            return self.type_node.name.lower()
        return str(self.type_node.resolve(scope, resolver) if self.type_node else "").lower()

    def _evaluate(self, scope: Scope, resolver: Resolver) -> Any:
        type_name = self._type_name(scope, resolver)
        for body in self.bodies:
            titles = body.title.resolve(scope, resolver) if body.title is not None else None
            if not isinstance(titles, list):
                titles = [titles]
            properties = body.properties(scope, resolver)
            for title in titles:
                if type_name == "class":
                    resolver.resolve_class(str(title), public=True)
                    continue
                try:
                    resolver.resolve_defined_type(type_name, str(title), properties)
                except CompilationError as exc:
                    logger.warning("Failed to declare %s['%s']: %s", type_name, title, exc)
        return None


__all__ = [
    "Access",
    "ArrayLiteral",
    "Assignment",
    "BINARY_OPERATORS",
    "BinaryOperator",
    "Block",
    "Call",
    "Case",
    "Concat",
    "Default",
    "HashLiteral",
    "HashNode",
    "If",
    "KeyedEntry",
    "ListNode",
    "Negate",
    "Nop",
    "Not",
    "Paren",
    "Primitive",
    "QualifiedName",
    "Regexp",
    "Relationship",
    "ResourceDeclaration",
    "Return",
    "Selector",
    "SplatHash",
    "StringSegment",
    "TypeReference",
    "Unless",
    "Unsupported",
    "Variable",
    "case_matches",
    "format_value",
    "is_truthy",
    "matches_type",
    "run_statements",
    "statement_list",
    "values_equal",
]
