"""Hierarchy document (``hiera.yaml``) parsing and per-node compilation.

Version 3 (default) and version 5 documents are supported:

- v3: ``hierarchy`` is a list of path templates without extension, the
  default datadir comes from ``yaml.datadir`` / ``eyaml.datadir`` and pkcs7
  keys from the ``eyaml`` block
- v5: ``hierarchy`` entries are mappings with ``name``, ``path`` or
  ``paths``, ``datadir`` and ``options``; defaults come from ``defaults``

Legacy ``:key`` names are normalised by stripping the colon.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from hieraedit.core.exceptions import HierarchyError

from .compiled import CompiledHierarchy, CompiledHierarchyEntry
from .datafile import DataFileRegistry
from .eyaml import EncryptionSettings
from .interpolate import INTERPOLATION, interpolate

logger = logging.getLogger(__name__)

DEFAULT_DATADIR = "data"
DEFAULT_PATHS = ("nodes/%{::trusted.certname}.yaml", "common.yaml")
EYAML_LOOKUP_KEY = "eyaml_lookup_key"


def strip_colons(value: Any) -> Any:
    """Recursively strip a leading ``:`` from mapping keys."""
    if isinstance(value, dict):
        return {
            (k[1:] if isinstance(k, str) and k.startswith(":") else k): strip_colons(v)
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [strip_colons(v) for v in value]
    return value


@dataclass
class HierarchyEntry:
    path: str
    name: str | None = None
    datadir: str | None = None
    encryption: EncryptionSettings | None = None
    options: dict[str, Any] = field(default_factory=dict)

    def dump(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "path": self.path,
            "datadir": self.datadir,
            "options": dict(self.options),
            "eyaml": self.encryption is not None,
        }


@dataclass
class Hierarchy:
    entries: list[HierarchyEntry]
    version: int = 3
    datadir: str = DEFAULT_DATADIR
    encryption: EncryptionSettings | None = None
    source: Path | None = None

    # ---------- construction ----------

    @classmethod
    def default(cls, source: Path | None = None) -> Hierarchy:
        return cls([HierarchyEntry(p, name=p) for p in DEFAULT_PATHS], source=source)

    @classmethod
    def load(cls, path: Path) -> Hierarchy:
        """Parse ``path``; the default hierarchy when it does not exist.

        Raises:
            HierarchyError: when the document is not valid YAML or malformed.
        """
        path = Path(path)
        if not path.is_file():
            return cls.default(source=path)
        try:
            document = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as exc:
            raise HierarchyError(f"Cannot read hierarchy document {path}: {exc}") from exc
        return cls.from_document(document, source=path)

    @classmethod
    def from_document(cls, document: Any, source: Path | None = None) -> Hierarchy:
        if document is None:
            return cls.default(source=source)
        if not isinstance(document, dict):
            raise HierarchyError("Hierarchy document must be a mapping")

        doc = strip_colons(document)
        try:
            version = int(doc.get("version", 3))
        except (TypeError, ValueError) as exc:
            raise HierarchyError(f"Invalid hierarchy version: {doc.get('version')!r}") from exc
        if version not in (3, 5):
            raise HierarchyError(f"Unsupported hierarchy version: {version}")

        if version == 5:
            return cls._from_v5(doc, source)
        return cls._from_v3(doc, source)

    @classmethod
    def _from_v3(cls, doc: dict[str, Any], source: Path | None) -> Hierarchy:
        yaml_block = doc.get("yaml") or {}
        eyaml_block = doc.get("eyaml") or {}
        datadir = eyaml_block.get("datadir") or yaml_block.get("datadir") or DEFAULT_DATADIR
        encryption = EncryptionSettings.from_options(eyaml_block)

        entries: list[HierarchyEntry] = []
        for raw in _as_list(doc.get("hierarchy"), DEFAULT_PATHS):
            for entry in _entries_from(raw):
                if not Path(INTERPOLATION.sub("x", entry.path)).suffix:
                    entry.path += ".yaml"
                entries.append(entry)
        return cls(entries, version=3, datadir=str(datadir), encryption=encryption, source=source)

    @classmethod
    def _from_v5(cls, doc: dict[str, Any], source: Path | None) -> Hierarchy:
        defaults = doc.get("defaults") or {}
        datadir = defaults.get("datadir") or DEFAULT_DATADIR
        encryption = _v5_encryption(defaults, None)

        entries: list[HierarchyEntry] = []
        for raw in _as_list(doc.get("hierarchy"), DEFAULT_PATHS):
            for entry in _entries_from(raw):
                entry.encryption = _v5_encryption(raw if isinstance(raw, dict) else {}, defaults)
                entries.append(entry)
        return cls(entries, version=5, datadir=str(datadir), encryption=encryption, source=source)

    # ---------- compilation ----------

    @property
    def base_dir(self) -> Path:
        return self.source.parent if self.source is not None else Path.cwd()

    def encryption_for(self, entry: HierarchyEntry) -> EncryptionSettings | None:
        return entry.encryption or self.encryption

    def compile(
        self,
        root: Mapping[str, Any],
        base_dir: Path | None = None,
        files: DataFileRegistry | None = None,
    ) -> CompiledHierarchy:
        """Interpolate every entry against ``root`` and locate backing files.

        Nodes compiled against the same ``files`` registry share level files.
        """
        base = Path(base_dir) if base_dir is not None else self.base_dir
        files = files if files is not None else DataFileRegistry()
        compiled: list[CompiledHierarchyEntry] = []
        for entry in self.entries:
            datadir = Path(interpolate(entry.datadir or self.datadir, root))
            if not datadir.is_absolute():
                datadir = base / datadir
            item = CompiledHierarchyEntry(
                entry,
                interpolate(entry.path, root),
                datadir,
                encryption=self.encryption_for(entry),
                base_dir=base,
                files=files,
            )
            item.locate()
            compiled.append(item)
        return CompiledHierarchy(compiled)

    def dump(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "datadir": self.datadir,
            "hierarchy": [e.dump() for e in self.entries],
        }


def _as_list(value: Any, default: tuple[str, ...]) -> list[Any]:
    if value is None:
        return list(default)
    if isinstance(value, (str, dict)):
        return [value]
    if not isinstance(value, list):
        raise HierarchyError("'hierarchy' must be a list")
    return value


def _entries_from(raw: Any) -> list[HierarchyEntry]:
    """One entry per path (``paths`` expands to several)."""
    if isinstance(raw, str):
        return [HierarchyEntry(raw, name=raw)]
    if not isinstance(raw, dict):
        raise HierarchyError(f"Invalid hierarchy entry: {raw!r}")

    name = raw.get("name")
    datadir = raw.get("datadir")
    options = dict(raw.get("options") or {})
    if "paths" in raw:
        paths = raw.get("paths") or []
        if not isinstance(paths, list):
            raise HierarchyError(f"'paths' of hierarchy entry {name!r} must be a list")
    elif "path" in raw:
        paths = [raw["path"]]
    else:
        raise HierarchyError(f"Hierarchy entry {name!r} has no path")
    return [
        HierarchyEntry(str(p), name=name, datadir=str(datadir) if datadir else None, options=options)
        for p in paths
    ]


def _v5_encryption(raw: Mapping[str, Any], defaults: Mapping[str, Any] | None) -> EncryptionSettings | None:
    options = dict(raw.get("options") or {})
    wants = raw.get("lookup_key") == EYAML_LOOKUP_KEY or any(k.startswith("pkcs7_") for k in options)
    if not wants:
        return None
    settings = EncryptionSettings.from_options(options)
    if settings is None and defaults is not None:
        settings = EncryptionSettings.from_options(defaults.get("options") or {})
    if settings is None:
        logger.warning("Hierarchy entry %s uses eyaml without pkcs7 keys", raw.get("name"))
    return settings


__all__ = ["DEFAULT_DATADIR", "DEFAULT_PATHS", "Hierarchy", "HierarchyEntry", "strip_colons"]
