"""Per-node resolution context.

Holds a node's facts and compiled hierarchy, caches resolved classes,
defined type instances and functions, and implements the write operations
that edit hierarchy data for the node.
"""
from __future__ import annotations

import copy
import logging
import threading
from collections import defaultdict
from pathlib import Path
from typing import Any, Mapping, Sequence

from hieraedit.core.ast import (
    ArtifactParser,
    ClassDefinition,
    DefinedTypeDefinition,
    LocalScope,
    ResolvedFunction,
    VariablePresence,
    parse_definition,
)
from hieraedit.core.exceptions import CompilationError, ParseError
from hieraedit.core.hiera import CompiledHierarchy, DataFileRegistry, Hierarchy
from hieraedit.core.modules import ModulesIndex, normalize_name
from hieraedit.core.modules.index import DefinitionInfo
from hieraedit.core.utils.io import read_json

from . import dump as dumper
from .cache import SingleFlightCache
from .identity import identity_facts
from .resolver import NodeResolver
from .site import SiteManifests

logger = logging.getLogger(__name__)

SPECIAL_GLOBALS = ("facts", "trusted", "environment")


class NodeResolutionContext:
    """Everything needed to resolve Puppet code for one certname."""

    def __init__(
        self,
        certname: str,
        *,
        index: ModulesIndex,
        hierarchy: Hierarchy,
        environment: str = "production",
        facts: Mapping[str, Any] | None = None,
        global_variables: Mapping[str, Any] | None = None,
        base_dir: Path | None = None,
        classes_key: str = "classes",
        resources_key: str = "resources",
        files: DataFileRegistry | None = None,
        manifests: Sequence[tuple[str, Path]] | None = None,
    ) -> None:
        self.certname = certname
        self.index = index
        self.environment = environment
        self.global_variables = dict(global_variables or {})
        self.classes_key = classes_key
        self.resources_key = resources_key
        self.identity = identity_facts(certname)
        self.resolver = NodeResolver(self)
        self.files = files if files is not None else DataFileRegistry()

        self._hierarchy_template = hierarchy
        self._base_dir = base_dir
        self._parser = ArtifactParser()
        self._site = SiteManifests(manifests or (), self._parser.parse)
        self._site_scope: LocalScope | None = None
        self._lock = threading.Lock()

        self._classes: SingleFlightCache[str, ClassDefinition] = SingleFlightCache("classes")
        self._resources: SingleFlightCache[tuple[str, str], DefinedTypeDefinition] = SingleFlightCache("resources")
        self._type_artifacts: SingleFlightCache[str, Any] = SingleFlightCache("defined types")
        self._functions: SingleFlightCache[str, ResolvedFunction] = SingleFlightCache("functions")
        self._hiera_sources: dict[str, dict[str, int]] = defaultdict(dict)

        self.facts: dict[str, Any] = {}
        self.hierarchy: CompiledHierarchy = CompiledHierarchy([])
        self.set_facts(facts or {})

    # ---------- facts & hierarchy ----------

    def set_facts(self, facts: Mapping[str, Any]) -> None:
        """Replace the node facts, recompile the hierarchy and drop caches."""
        self.facts = dict(facts)
        self.hierarchy = self._hierarchy_template.compile(self._interpolation_root(), self._base_dir, self.files)
        self.invalidate()

    def _interpolation_root(self) -> dict[str, Any]:
        root = dict(self.facts)
        root.update(
            {
                "facts": dict(self.facts),
                "trusted": dict(self.identity),
                "environment": self.environment,
            }
        )
        return root

    def _site_lookup(self, key: str) -> tuple[bool, Any]:
        scope = self._site_scope
        if scope is None:
            return False, None
        return scope.lookup(key)

    def has_global(self, name: str) -> VariablePresence:
        key = normalize_name(name)
        if key in SPECIAL_GLOBALS or key in self.identity or key in self.facts or key in self.global_variables:
            return VariablePresence.unknown_level()
        if self._site_lookup(key)[0]:
            return VariablePresence.unknown_level()
        level = self.hierarchy.level_of(key)
        if level is not None:
            return VariablePresence.at(level)
        return VariablePresence.missing()

    def get_global(self, name: str) -> Any:
        """Identity beats facts, then environment globals, site variables and
        finally the hierarchy."""
        key = normalize_name(name)
        if key == "facts":
            return dict(self.facts)
        if key == "trusted":
            return dict(self.identity)
        if key == "environment":
            return self.environment
        for source in (self.identity, self.facts, self.global_variables):
            if key in source:
                return source[key]
        found, value = self._site_lookup(key)
        if found:
            return value
        _, value, _ = self.hierarchy.lookup(key)
        return value

    @property
    def site_variables(self) -> dict[str, Any]:
        scope = self._site_scope
        return dict(scope.variables) if scope is not None else {}

    def ensure_manifests(self) -> None:
        """Evaluate the site manifests once; a no-op until ``invalidate``.

        Raises:
            CompilationError: a manifest artifact is missing, corrupt or fails
                to evaluate. The next call tries again.
        """
        with self._lock:
            if self._site_scope is not None:
                return
            scope = self._site_scope = LocalScope()
        if not self._site.manifests:
            return
        logger.info("Compiling manifests (for node %s)", self.certname)
        try:
            self._site.evaluate(scope, self.certname, self.resolver)
        except BaseException:
            with self._lock:
                if self._site_scope is scope:
                    self._site_scope = None
            raise

    def lookup(self, key: str) -> tuple[bool, Any, int | None]:
        """Hierarchy-only lookup: ``(found, value, level)``."""
        return self.hierarchy.lookup(normalize_name(key))

    def register_hiera_source(self, kind: str, key: str, level: int) -> None:
        with self._lock:
            self._hiera_sources[kind][key] = level

    @property
    def hiera_sources(self) -> dict[str, dict[str, int]]:
        with self._lock:
            return {kind: dict(keys) for kind, keys in self._hiera_sources.items()}

    # ---------- resolution ----------

    def _read_artifact(self, info: DefinitionInfo) -> Any:
        path = self.index.artifact_path(info)
        try:
            return read_json(path)
        except FileNotFoundError as exc:
            raise ParseError(
                f"No compiled artifact for {info.kind} {info.name}; run compile first",
                context={"artifact": str(path)},
            ) from exc
        except (OSError, ValueError) as exc:
            # ValueError covers invalid JSON and undecodable bytes
            raise ParseError(f"Corrupt artifact {path}: {exc}", context={"artifact": str(path)}) from exc

    def resolve_class(self, name: str, public: bool = False) -> ClassDefinition:
        """Return the resolved class ``name``, compiling it on first use.

        Raises:
            CompilationError: unknown class, unreadable artifact or a failure
                outside the error capture of parameters and body.
        """
        name = normalize_name(name)
        self.ensure_manifests()
        clazz = self._classes.get_or_load(name, lambda register: self._load_class(name, register))
        if public:
            clazz.mark_public()
        return clazz

    def _load_class(self, name: str, register) -> ClassDefinition:
        logger.info("Compiling class %s (for node %s)", name, self.certname)
        info = self.index.find_class(name)
        if info is None:
            raise CompilationError(f"No such class info: {name}", context={"class": name})
        try:
            clazz = parse_definition(self._read_artifact(info), ClassDefinition, name)
        except ParseError as exc:
            raise CompilationError(f"Failed to load class {name}: {exc}", context={"class": name}) from exc

        register(clazz)
        try:
            clazz.resolve(clazz, self.resolver)
        except CompilationError:
            raise
        except Exception as exc:
            raise CompilationError(f"Failed to resolve class {name}: {exc}", context={"class": name}) from exc
        return clazz

    def _defined_type_artifact(self, name: str) -> Any:
        def load(register) -> Any:
            info = self.index.find_defined_type(name)
            if info is None:
                raise CompilationError(f"No such defined type: {name}", context={"type": name})
            return self._read_artifact(info)

        try:
            return self._type_artifacts.get_or_load(name, load)
        except ParseError as exc:
            raise CompilationError(f"Failed to load defined type {name}: {exc}", context={"type": name}) from exc

    def resolve_defined_type(
        self,
        name: str,
        title: str,
        properties: Mapping[str, Any] | None = None,
        *,
        hierarchy: int | None = None,
    ) -> DefinedTypeDefinition | None:
        """Declare and resolve ``name[title]``; None for an unknown type.

        The artifact is read once per type but every title gets its own
        fresh tree, so instances never share memoized values.
        """
        name = normalize_name(name)
        if self.index.find_defined_type(name) is None:
            logger.debug("No such defined type %s (declared as %s['%s'])", name, name, title)
            return None
        self.ensure_manifests()

        def load(register) -> DefinedTypeDefinition:
            logger.info("Compiling %s['%s'] (for node %s)", name, title, self.certname)
            data = self._defined_type_artifact(name)
            try:
                instance = parse_definition(data, DefinedTypeDefinition, name)
            except ParseError as exc:
                raise CompilationError(f"Failed to load defined type {name}: {exc}", context={"type": name}) from exc
            instance.bind(title, dict(properties or {}), hierarchy=hierarchy)
            register(instance)
            try:
                instance.resolve(instance, self.resolver)
            except CompilationError:
                raise
            except Exception as exc:
                raise CompilationError(
                    f"Failed to resolve {name}['{title}']: {exc}", context={"type": name, "title": title}
                ) from exc
            return instance

        return self._resources.get_or_load((name, title), load)

    def resolve_function(self, name: str) -> ResolvedFunction | None:
        """Return a callable Puppet-language function, or None when unknown."""
        name = normalize_name(name)
        info = self.index.find_function(name)
        if info is None or not info.is_puppet:
            return None

        def load(register) -> ResolvedFunction:
            try:
                function = ResolvedFunction(name, self._read_artifact(info), self._parser.parse)
                function.definition()
            except ParseError as exc:
                raise CompilationError(f"Failed to load function {name}: {exc}", context={"function": name}) from exc
            return function

        return self._functions.get_or_load(name, load)

    def resolve_resource(self, type_name: str, title: str) -> DefinedTypeDefinition | None:
        """Return ``type[title]``, declaring it from the resources key if needed."""
        type_name = normalize_name(type_name)
        instance = self._resources.get((type_name, title))
        if instance is not None:
            return instance
        presence = self.has_global(self.resources_key)
        resources = self.get_global(self.resources_key) if presence.exists else None
        if not isinstance(resources, dict):
            return None
        titles = resources.get(type_name)
        if not isinstance(titles, dict) or title not in titles:
            return None
        instance = self.resolve_defined_type(type_name, title, dict(titles[title] or {}), hierarchy=presence.level)
        if instance is not None:
            instance.set_option("hiera_resources", self.resources_key)
        return instance

    def include_assigned_classes(self) -> None:
        """Evaluate ``hiera_include`` of the classes key and ``hiera_resources``
        of the resources key, as a node manifest would."""
        self.ensure_manifests()
        for function, key in (("hiera_include", self.classes_key), ("hiera_resources", self.resources_key)):
            call = self._parser.parse(
                {"^": ["call", {"#": ["functor", {"^": ["qn", function]}, "args", [key]]}]}
            )
            call.resolve(LocalScope(), self.resolver)

    def is_class_resolved(self, name: str) -> bool:
        return normalize_name(name) in self._classes

    def resolved_classes(self) -> list[ClassDefinition]:
        return list(self._classes.values())

    def resolved_resources(self) -> list[DefinedTypeDefinition]:
        return list(self._resources.values())

    # ---------- invalidation ----------

    def invalidate_class(self, name: str) -> None:
        """Drop ``name`` and, transitively, the parent classes it resolved."""
        clazz = self._classes.evict(normalize_name(name))
        while clazz is not None and clazz.parent is not None:
            parent = clazz.parent
            clazz = self._classes.evict(parent.name)

    def invalidate_resource(self, type_name: str, title: str) -> None:
        self._resources.evict((normalize_name(type_name), title))

    def invalidate(self) -> None:
        self._classes.clear()
        self._resources.clear()
        self._type_artifacts.clear()
        self._functions.clear()
        with self._lock:
            self._hiera_sources.clear()
            self._site_scope = None

    # ---------- writes: plain keys ----------

    def set_property(self, level: int, key: str, value: Any, *, encrypt: bool = True) -> None:
        self.hierarchy.assign(level, key, value, encrypt=encrypt)
        self.invalidate()

    def remove_property(self, level: int, key: str) -> bool:
        removed = self.hierarchy.remove(level, key)
        if removed:
            self.invalidate()
        return removed

    # ---------- writes: classes ----------

    def _require_class(self, name: str) -> str:
        name = normalize_name(name)
        if self.index.find_class(name) is None:
            raise CompilationError(f"No such class info: {name}", context={"class": name})
        return name

    def assign_class(self, class_name: str, level: int, *, key: str | None = None) -> bool:
        """Add ``class_name`` to the classes list on ``level``."""
        class_name = self._require_class(class_name)
        key = key or self.classes_key
        file = self.hierarchy.get(level).locate()
        classes = list(file.get(key) or []) if file is not None else []
        if class_name in classes:
            return False
        classes.append(class_name)
        self.hierarchy.assign(level, key, classes, encrypt=False)
        return True

    def remove_class(self, class_name: str, level: int, *, key: str | None = None) -> bool:
        class_name = normalize_name(class_name)
        key = key or self.classes_key
        file = self.hierarchy.get(level).locate()
        if file is None:
            return False
        classes = file.get(key)
        if not isinstance(classes, list) or class_name not in classes:
            return False
        self.hierarchy.assign(level, key, [c for c in classes if c != class_name], encrypt=False)
        self.invalidate_class(class_name)
        return True

    def set_class_property(
        self, class_name: str, level: int, prop: str, value: Any, *, encrypt: bool = True
    ) -> None:
        class_name = self._require_class(class_name)
        self.hierarchy.assign(level, f"{class_name}::{prop}", value, encrypt=encrypt)
        self.invalidate_class(class_name)

    def remove_class_property(self, class_name: str, level: int, prop: str) -> bool:
        class_name = normalize_name(class_name)
        removed = self.hierarchy.remove(level, f"{class_name}::{prop}")
        if removed:
            self.invalidate_class(class_name)
        return removed

    def has_class_property(self, class_name: str, prop: str) -> bool:
        return self.has_global(f"{normalize_name(class_name)}::{prop}").from_hierarchy

    # ---------- writes: resources ----------

    def _resources_at(self, level: int, key: str) -> dict[str, Any]:
        file = self.hierarchy.get(level).locate()
        resources = file.get(key) if file is not None else None
        return copy.deepcopy(resources) if isinstance(resources, dict) else {}

    def create_resource(self, type_name: str, title: str, level: int, *, key: str | None = None) -> bool:
        type_name = normalize_name(type_name)
        if self.index.find_defined_type(type_name) is None:
            raise CompilationError(f"No such defined type: {type_name}", context={"type": type_name})
        key = key or self.resources_key
        resources = self._resources_at(level, key)
        titles = resources.setdefault(type_name, {})
        if not isinstance(titles, dict) or title in titles:
            return False
        titles[title] = {}
        self.hierarchy.assign(level, key, resources, encrypt=False)
        return True

    def remove_resource(self, type_name: str, title: str, level: int, *, key: str | None = None) -> bool:
        type_name = normalize_name(type_name)
        key = key or self.resources_key
        resources = self._resources_at(level, key)
        titles = resources.get(type_name)
        if not isinstance(titles, dict) or title not in titles:
            return False
        del titles[title]
        if not titles:
            del resources[type_name]
        self.hierarchy.assign(level, key, resources, encrypt=False)
        self.invalidate_resource(type_name, title)
        return True

    def rename_resource(
        self, type_name: str, title: str, new_title: str, level: int, *, key: str | None = None
    ) -> bool:
        """Move the properties of ``type[title]`` to ``type[new_title]`` on ``level``.

        Returns False when ``title`` is not declared there or ``new_title``
        already is.
        """
        type_name = normalize_name(type_name)
        key = key or self.resources_key
        resources = self._resources_at(level, key)
        titles = resources.get(type_name)
        if not isinstance(titles, dict) or title not in titles or new_title in titles:
            return False
        titles[new_title] = titles.pop(title)
        self.hierarchy.assign(level, key, resources, encrypt=False)
        self.invalidate_resource(type_name, title)
        self.invalidate_resource(type_name, new_title)
        return True

    def remove_resources(self, type_name: str, level: int, *, key: str | None = None) -> list[str]:
        """Drop every title of ``type_name`` on ``level``; returns the removed titles."""
        type_name = normalize_name(type_name)
        key = key or self.resources_key
        resources = self._resources_at(level, key)
        titles = resources.pop(type_name, None)
        if not isinstance(titles, dict):
            return []
        self.hierarchy.assign(level, key, resources, encrypt=False)
        for cached_type, cached_title in list(self._resources.keys()):
            if cached_type == type_name:
                self.invalidate_resource(cached_type, cached_title)
        return sorted(titles)

    def remove_all_resources(self, level: int, *, key: str | None = None) -> bool:
        """Delete the whole resources key from ``level``."""
        key = key or self.resources_key
        removed = self.hierarchy.remove(level, key)
        if removed:
            self._resources.clear()
        return removed

    def set_resource_property(
        self,
        type_name: str,
        title: str,
        level: int,
        prop: str,
        value: Any,
        *,
        key: str | None = None,
        encrypt: bool = True,
    ) -> bool:
        """Set ``prop`` of ``type[title]`` on ``level``; ``title`` itself is read-only."""
        if prop == "title":
            return False
        type_name = normalize_name(type_name)
        key = key or self.resources_key
        entry = self.hierarchy.get(level)
        if encrypt and entry.encryption is not None and isinstance(value, str):
            value = entry.encrypt(value)
        resources = self._resources_at(level, key)
        titles = resources.setdefault(type_name, {})
        properties = titles.get(title)
        if not isinstance(properties, dict):
            properties = {}
            titles[title] = properties
        properties[prop] = value
        self.hierarchy.assign(level, key, resources, encrypt=False)
        self.invalidate_resource(type_name, title)
        return True

    def remove_resource_property(
        self, type_name: str, title: str, level: int, prop: str, *, key: str | None = None
    ) -> bool:
        type_name = normalize_name(type_name)
        key = key or self.resources_key
        resources = self._resources_at(level, key)
        properties = (resources.get(type_name) or {}).get(title)
        if not isinstance(properties, dict) or prop not in properties:
            return False
        del properties[prop]
        self.hierarchy.assign(level, key, resources, encrypt=False)
        self.invalidate_resource(type_name, title)
        return True

    # ---------- dumps ----------

    def dump_class(self, name: str) -> dict[str, Any]:
        clazz = self.resolve_class(name, public=True)
        info = self.index.find_class(clazz.name or normalize_name(name))
        return dumper.dump_class(clazz, info, self.hierarchy)

    def dump_resource(self, type_name: str, title: str) -> dict[str, Any] | None:
        instance = self.resolve_resource(type_name, title)
        if instance is None:
            return None
        info = self.index.find_defined_type(normalize_name(type_name))
        return dumper.dump_class(instance, info, self.hierarchy)

    def dump(self) -> dict[str, Any]:
        self.ensure_manifests()
        return dumper.dump_node(self)

    def __repr__(self) -> str:
        return f"<NodeResolutionContext {self.certname}>"


__all__ = ["NodeResolutionContext", "SPECIAL_GLOBALS"]
