"""JSON payloads describing resolved classes, resources and nodes."""
from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

from hieraedit.core.ast import DEFAULT, ClassDefinition, DefinedTypeDefinition, TypeDescriptor
from hieraedit.core.hiera import EncryptedValue

if TYPE_CHECKING:
    from hieraedit.core.hiera import CompiledHierarchy
    from hieraedit.core.modules.index import DefinitionInfo

    from .context import NodeResolutionContext


def to_jsonable(value: Any) -> Any:
    """Convert resolved values into plain JSON types."""
    if isinstance(value, TypeDescriptor):
        return {"type": value.name, "data": value.dump()}
    if isinstance(value, EncryptedValue):
        return value.dump()
    if isinstance(value, re.Pattern):
        return f"/{value.pattern}/"
    if value is DEFAULT:
        return "default"
    if isinstance(value, ClassDefinition):
        return f"Class['{value.name}']"
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


def _dump_error(error: BaseException) -> dict[str, Any]:
    return {"message": str(error), "code": type(error).__name__}


def dump_class(
    clazz: ClassDefinition,
    info: DefinitionInfo | None,
    hierarchy: CompiledHierarchy,
) -> dict[str, Any]:
    """Describe one resolved class or defined type instance.

    ``requiredFields`` are parameters with neither a default expression nor
    a default recorded in the modules index.
    """
    defaults = set(info.defaults) if info is not None else set()
    params = {p.name for p in clazz.params}

    values: dict[str, Any] = {}
    types: dict[str, Any] = {}
    errors: dict[str, Any] = {}
    property_hints: dict[str, Any] = {}
    modified: dict[str, int] = {}
    encrypted: list[str] = []

    for name, prop in clazz.resolved_properties.items():
        if prop.has_value:
            values[name] = to_jsonable(prop.value)
            if isinstance(prop.value, EncryptedValue):
                encrypted.append(name)
        if prop.has_type:
            types[name] = to_jsonable(prop.type)
        if prop.has_error:
            errors[name] = _dump_error(prop.error)
        if prop.has_hints:
            property_hints[name] = list(prop.hints)
        if prop.hierarchy is not None:
            modified[name] = prop.hierarchy

    payload: dict[str, Any] = {
        "name": clazz.name,
        "values": values,
        "types": types,
        "errors": errors,
        "propertyHints": property_hints,
        "hints": list(clazz.hints),
        "fields": [p.name for p in clazz.params],
        "definedFields": [n for n in clazz.resolved_properties if n not in params],
        "requiredFields": [
            p.name for p in clazz.params if p.default is None and p.name not in defaults
        ],
        "modified": modified,
        "encrypted": encrypted,
        "options": dict(clazz.options),
        "hierarchy": hierarchy.dump(),
        "classInfo": info.dump() if info is not None else None,
    }
    if clazz.parent is not None:
        payload["parent"] = clazz.parent.name
    if isinstance(clazz, DefinedTypeDefinition):
        payload["title"] = clazz.title
        payload["definedIn"] = clazz.hierarchy
    return payload


def dump_node(context: NodeResolutionContext) -> dict[str, Any]:
    """Summary of everything resolved so far for a node."""
    classes: dict[str, Any] = {}
    for clazz in context.resolved_classes():
        if not clazz.public:
            continue
        info = context.index.find_class(clazz.name)
        classes[clazz.name] = {
            "classInfo": info.dump() if info is not None else None,
            "options": dict(clazz.options),
            "hints": list(clazz.hints),
        }

    resources: dict[str, Any] = {}
    for instance in context.resolved_resources():
        entry = resources.get(instance.name)
        if entry is None:
            info = context.index.find_defined_type(instance.name)
            entry = {"definedType": info.dump() if info is not None else None, "titles": {}}
            resources[instance.name] = entry
        entry["titles"][instance.title] = {
            "options": dict(instance.options),
            "hierarchy": instance.hierarchy,
        }

    return {
        "certname": context.certname,
        "environment": context.environment,
        "facts": to_jsonable(context.facts),
        "trusted": dict(context.identity),
        "hierarchy": context.hierarchy.dump(),
        "classes": classes,
        "resources": resources,
        "hieraSources": context.hiera_sources,
        "siteVariables": to_jsonable(context.site_variables),
    }


__all__ = ["dump_class", "dump_node", "to_jsonable"]
