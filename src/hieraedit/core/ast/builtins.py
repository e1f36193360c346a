"""Built-in functions evaluated directly against the resolver.

Each built-in receives the calling node, the current scope, the resolver and
the raw (unresolved) argument nodes, and resolves what it needs.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Sequence

from hieraedit.core.exceptions import CompilationError, ResolveError

from .base import ExpressionNode, Resolver, ReturnSignal, Scope, TypeDescriptor
from .nodes import Variable, format_value

logger = logging.getLogger(__name__)

BuiltinFunction = Callable[[ExpressionNode, Scope, Resolver, Sequence[ExpressionNode]], Any]

_BUILTINS: dict[str, BuiltinFunction] = {}


def builtin(*names: str) -> Callable[[BuiltinFunction], BuiltinFunction]:
    def register(fn: BuiltinFunction) -> BuiltinFunction:
        for name in names:
            _BUILTINS[name] = fn
        return fn
    return register


def get_builtin(name: str) -> BuiltinFunction | None:
    return _BUILTINS.get(name)


def builtin_names() -> list[str]:
    return sorted(_BUILTINS)


def _resolve_all(args: Sequence[ExpressionNode], scope: Scope, resolver: Resolver) -> list[Any]:
    return [a.resolve(scope, resolver) for a in args]


def _flatten(values: Sequence[Any]) -> list[Any]:
    out: list[Any] = []
    for value in values:
        if isinstance(value, list):
            out.extend(_flatten(value))
        else:
            out.append(value)
    return out


def _class_name(value: Any) -> str | None:
    """``'foo'`` or ``Class['foo']`` -> ``foo``."""
    if isinstance(value, TypeDescriptor):
        if value.name.lower() == "class" and value.args:
            return str(value.args[0])
        return None
    if value is None:
        return None
    return str(value)


# ---------- logging ----------

def _log_at(level: int) -> BuiltinFunction:
    def log(caller: ExpressionNode, scope: Scope, resolver: Resolver, args: Sequence[ExpressionNode]) -> Any:
        message = " ".join(format_value(v) for v in _resolve_all(args, scope, resolver))
        logger.log(level, "[%s] %s", resolver.node_name, message)
        return None
    return log


for _name, _level in (
    ("emerg", logging.CRITICAL),
    ("crit", logging.CRITICAL),
    ("alert", logging.CRITICAL),
    ("err", logging.ERROR),
    ("warning", logging.WARNING),
    ("notice", logging.INFO),
    ("info", logging.INFO),
    ("debug", logging.DEBUG),
):
    _BUILTINS[_name] = _log_at(_level)


# ---------- no-ops ----------

@builtin("create_resources", "ensure_packages", "ensure_resource", "realize", "tag")
def _noop(caller: ExpressionNode, scope: Scope, resolver: Resolver, args: Sequence[ExpressionNode]) -> Any:
    return None


@builtin("template", "epp", "inline_template", "inline_epp")
def _template(caller: ExpressionNode, scope: Scope, resolver: Resolver, args: Sequence[ExpressionNode]) -> Any:
    # Templates are not rendered.
    return ""


# ---------- control ----------

@builtin("fail")
def _fail(caller: ExpressionNode, scope: Scope, resolver: Resolver, args: Sequence[ExpressionNode]) -> Any:
    message = " ".join(format_value(v) for v in _resolve_all(args, scope, resolver))
    raise ResolveError(caller, message)


@builtin("return")
def _return(caller: ExpressionNode, scope: Scope, resolver: Resolver, args: Sequence[ExpressionNode]) -> Any:
    raise ReturnSignal(args[0].resolve(scope, resolver) if args else None)


# ---------- classes ----------

@builtin("include", "require", "contain")
def _include(caller: ExpressionNode, scope: Scope, resolver: Resolver, args: Sequence[ExpressionNode]) -> Any:
    for value in _flatten(_resolve_all(args, scope, resolver)):
        name = _class_name(value)
        if name:
            resolver.resolve_class(name, public=True)
    return None


@builtin("defined")
def _defined(caller: ExpressionNode, scope: Scope, resolver: Resolver, args: Sequence[ExpressionNode]) -> Any:
    for arg in args:
        if isinstance(arg, Variable):
            if not arg.presence(scope, resolver).is_missing:
                return True
            continue

        value = arg.resolve(scope, resolver)
        if isinstance(value, str) and value.startswith("$"):
            if not resolver.has_global_variable(value.lstrip("$")).is_missing:
                return True
            continue

        name = _class_name(value)
        if not name:
            continue
        try:
            resolver.resolve_class(name)
            return True
        except CompilationError:
            if resolver.resolve_function(name) is not None:
                return True
    return False


# ---------- hierarchy ----------

@builtin("lookup", "hiera")
def _lookup(caller: ExpressionNode, scope: Scope, resolver: Resolver, args: Sequence[ExpressionNode]) -> Any:
    if not args:
        raise ResolveError(caller, "lookup() expects a key")
    key = str(args[0].resolve(scope, resolver))
    if not resolver.has_global_variable(key).is_missing:
        return resolver.get_global_variable(key)

    # hiera(key, default) / lookup(key, type, merge, default)
    default_index = 1 if _called_as(caller, "hiera") else 3
    if len(args) > default_index:
        return args[default_index].resolve(scope, resolver)
    raise ResolveError(caller, f"Function lookup() did not find a value for the name '{key}'")


def _called_as(caller: ExpressionNode, name: str) -> bool:
    return getattr(caller, "function_name", None) == name


@builtin("hiera_include")
def _hiera_include(caller: ExpressionNode, scope: Scope, resolver: Resolver, args: Sequence[ExpressionNode]) -> Any:
    if not args:
        return None
    key = str(args[0].resolve(scope, resolver))
    presence = resolver.has_global_variable(key)
    if presence.is_missing:
        return None
    if presence.level is not None:
        resolver.register_hiera_source("hiera_include", key, presence.level)

    classes = resolver.get_global_variable(key)
    if not isinstance(classes, list):
        return None
    for class_name in classes:
        try:
            resolved = resolver.resolve_class(str(class_name), public=True)
        except CompilationError as exc:
            logger.warning("Failed to resolve class %s from hiera_include('%s'): %s", class_name, key, exc)
            continue
        resolved.set_option("hiera_include", key)
    return None


@builtin("hiera_resources")
def _hiera_resources(caller: ExpressionNode, scope: Scope, resolver: Resolver, args: Sequence[ExpressionNode]) -> Any:
    if not args:
        return None
    key = str(args[0].resolve(scope, resolver))
    presence = resolver.has_global_variable(key)
    if presence.is_missing:
        return None
    if presence.level is not None:
        resolver.register_hiera_source("hiera_resources", key, presence.level)

    resources = resolver.get_global_variable(key)
    if not isinstance(resources, dict):
        return None
    for type_name, titles in resources.items():
        if not isinstance(titles, dict):
            continue
        for title, properties in titles.items():
            try:
                instance = resolver.resolve_defined_type(
                    str(type_name), str(title), dict(properties or {}), hierarchy=presence.level
                )
            except CompilationError as exc:
                logger.warning("Failed to declare %s['%s'] from hiera_resources('%s'): %s", type_name, title, key, exc)
                continue
            if instance is not None:
                instance.set_option("hiera_resources", key)
    return None


__all__ = ["BuiltinFunction", "builtin", "builtin_names", "get_builtin"]
