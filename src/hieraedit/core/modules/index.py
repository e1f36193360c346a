"""Modules index (``modules.json``): definition name -> source file metadata.

The index is produced by an external documentation tool and lists
``puppet_classes``, ``defined_types`` and ``puppet_functions``. Each entry
carries ``name`` and ``file`` (relative to the modules root) and optionally
``defaults``, ``inherits``, ``source`` and a ``docstring`` whose
``@option editor`` tags become editor options.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Iterator

from hieraedit.core.exceptions import ParseError
from hieraedit.core.utils.io import read_json

logger = logging.getLogger(__name__)

EDITOR_OPTION = "editor"


def normalize_name(name: str) -> str:
    """Strip a leading ``::`` from a qualified name."""
    return name[2:] if name.startswith("::") else name


@dataclass
class DefinitionInfo:
    """Common metadata of a class, defined type or function."""

    name: str
    file: str
    raw: dict[str, Any] = field(default_factory=dict, repr=False)
    description: str = ""
    options: dict[str, Any] = field(default_factory=dict)
    tags: dict[str, dict[str, str]] = field(default_factory=dict)

    kind = "definition"
    artifact_dir = "obj"

    @classmethod
    def from_entry(cls, entry: dict[str, Any]) -> DefinitionInfo:
        if not isinstance(entry, dict) or "name" not in entry or "file" not in entry:
            raise ParseError(f"Invalid {cls.kind} entry in modules index: {entry!r}")
        info = cls(name=normalize_name(str(entry["name"])), file=str(entry["file"]), raw=dict(entry))
        info._read_docstring(entry.get("docstring"))
        return info

    def _read_docstring(self, docstring: Any) -> None:
        if not isinstance(docstring, dict):
            return
        self.description = str(docstring.get("text") or "")
        for tag in docstring.get("tags") or []:
            tag_name = tag.get("tag_name")
            name = tag.get("name")
            if tag_name == "option" and name == EDITOR_OPTION:
                self.options[str(tag.get("opt_name"))] = tag.get("opt_text")
            text = tag.get("text")
            if text and tag_name:
                self.tags.setdefault(str(tag_name), {})[str(name)] = str(text)

    @property
    def defaults(self) -> list[str]:
        return list((self.raw.get("defaults") or {}).keys())

    @property
    def inherits(self) -> str | None:
        value = self.raw.get("inherits")
        return normalize_name(str(value)) if value else None

    @property
    def source(self) -> str | None:
        return self.raw.get("source")

    def dump(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "file": self.file,
            "defaults": self.defaults,
            "inherits": self.inherits,
            "description": self.description,
            "options": dict(self.options),
            "tags": {k: dict(v) for k, v in self.tags.items()},
        }


class ClassInfo(DefinitionInfo):
    kind = "class"


class DefinedTypeInfo(DefinitionInfo):
    kind = "defined type"


class FunctionInfo(DefinitionInfo):
    kind = "function"
    artifact_dir = "func"

    @property
    def type(self) -> str:
        return str(self.raw.get("type") or "puppet")

    @property
    def is_puppet(self) -> bool:
        return self.type == "puppet"

    def dump(self) -> dict[str, Any]:
        data = super().dump()
        data.pop("defaults", None)
        data["type"] = self.type
        return data


class ModulesIndex:
    """Read-only catalogue of the definitions under one modules root."""

    def __init__(
        self,
        modules_root: Path,
        cache_dir: Path,
        classes: Iterable[ClassInfo] = (),
        defined_types: Iterable[DefinedTypeInfo] = (),
        functions: Iterable[FunctionInfo] = (),
    ) -> None:
        self.modules_root = Path(modules_root)
        self.cache_dir = Path(cache_dir)
        self.classes = {c.name: c for c in classes}
        self.defined_types = {t.name: t for t in defined_types}
        self.functions = {f.name: f for f in functions}

    @classmethod
    def empty(cls, modules_root: Path, cache_dir: Path) -> ModulesIndex:
        return cls(modules_root, cache_dir)

    @classmethod
    def from_data(cls, data: Any, modules_root: Path, cache_dir: Path) -> ModulesIndex:
        if not isinstance(data, dict):
            raise ParseError("Modules index must be a JSON object")
        return cls(
            modules_root,
            cache_dir,
            classes=[ClassInfo.from_entry(e) for e in data.get("puppet_classes") or []],
            defined_types=[DefinedTypeInfo.from_entry(e) for e in data.get("defined_types") or []],
            functions=[FunctionInfo.from_entry(e) for e in data.get("puppet_functions") or []],
        )

    @classmethod
    def load(cls, path: Path, modules_root: Path, cache_dir: Path) -> ModulesIndex:
        """Load ``modules.json``; an empty index when it does not exist.

        Raises:
            ParseError: when the file is not valid JSON or malformed.
        """
        path = Path(path)
        if not path.is_file():
            logger.info("No modules index at %s", path)
            return cls.empty(modules_root, cache_dir)
        try:
            data = read_json(path)
        except (OSError, ValueError) as exc:
            raise ParseError(f"Cannot read modules index {path}: {exc}", context={"path": str(path)}) from exc
        return cls.from_data(data, modules_root, cache_dir)

    # ---------- lookups ----------

    def find_class(self, name: str) -> ClassInfo | None:
        return self.classes.get(normalize_name(name))

    def find_defined_type(self, name: str) -> DefinedTypeInfo | None:
        return self.defined_types.get(normalize_name(name))

    def find_function(self, name: str) -> FunctionInfo | None:
        return self.functions.get(normalize_name(name))

    def definitions(self) -> Iterator[DefinitionInfo]:
        yield from self.classes.values()
        yield from self.defined_types.values()
        yield from self.functions.values()

    # ---------- paths ----------

    def artifact_path(self, info: DefinitionInfo) -> Path:
        return self.cache_dir / info.artifact_dir / f"{info.file}.o"

    def source_path(self, info: DefinitionInfo) -> Path:
        return self.modules_root / info.file

    def search(self, text: str) -> list[dict[str, Any]]:
        """Classes and defined types whose name, description or file mention ``text``."""
        found = [
            info.dump()
            for info in list(self.classes.values()) + list(self.defined_types.values())
            if text in info.name or text in info.description or text in info.file
        ]
        return sorted(found, key=lambda d: d["name"])

    def dump(self) -> dict[str, Any]:
        return {
            "classes": {n: c.dump() for n, c in sorted(self.classes.items())},
            "types": {n: t.dump() for n, t in sorted(self.defined_types.items())},
        }


__all__ = [
    "ClassInfo",
    "DefinedTypeInfo",
    "DefinitionInfo",
    "FunctionInfo",
    "ModulesIndex",
    "normalize_name",
]
