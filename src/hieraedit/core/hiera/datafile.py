"""YAML data files backing hierarchy levels."""
from __future__ import annotations

import json
import logging
import re
import threading
from pathlib import Path
from typing import Any, Callable, Iterator, Optional

import yaml

from hieraedit.core.exceptions import WorkspaceError
from hieraedit.core.utils.io import read_text, write_yaml

from .eyaml import unwrap_encrypted, wrap_encrypted

logger = logging.getLogger(__name__)

_FACT_LINE = re.compile(r"^#\s*(?P<key>[A-Za-z0-9_.:-]+)\s*=\s*(?P<value>.*)$")


def parse_fact_header(text: str) -> dict[str, Any]:
    """Read the leading ``# key = <json>`` comment lines.

    Parsing stops at the first line that is not a comment. Values that are
    not valid JSON are kept as plain strings.
    """
    facts: dict[str, Any] = {}
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        if not stripped.startswith("#"):
            break
        match = _FACT_LINE.match(stripped)
        if match is None:
            continue
        raw = match.group("value").strip()
        try:
            facts[match.group("key")] = json.loads(raw)
        except json.JSONDecodeError:
            facts[match.group("key")] = raw
    return facts


def render_fact_header(facts: dict[str, Any]) -> str:
    return "".join(f"# {key} = {json.dumps(value, sort_keys=True)}\n" for key, value in sorted(facts.items()))


class DataFile:
    """A flat YAML mapping plus an optional fact header.

    Writes are atomic and serialized per file.
    """

    def __init__(self, path: Path, data: dict[str, Any] | None = None, facts: dict[str, Any] | None = None) -> None:
        self.path = Path(path)
        self._data: dict[str, Any] = dict(data or {})
        self.facts: dict[str, Any] = dict(facts or {})
        self._lock = threading.Lock()

    @classmethod
    def load(cls, path: Path) -> DataFile:
        """Read ``path``.

        Raises:
            WorkspaceError: when the file cannot be read or is not a mapping.
        """
        path = Path(path)
        try:
            text = read_text(path)
            data = yaml.safe_load(text)
        except (OSError, yaml.YAMLError) as exc:
            raise WorkspaceError("Invalid data file", f"Cannot load {path}: {exc}", context={"path": str(path)}) from exc

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise WorkspaceError("Invalid data file", f"{path} is not a YAML mapping", context={"path": str(path)})
        return cls(path, wrap_encrypted(data), parse_fact_header(text))

    @classmethod
    def create(cls, path: Path) -> DataFile:
        """Create an empty file at ``path`` (parent directories included)."""
        data_file = cls(path)
        data_file.save()
        logger.info("Created data file %s", path)
        return data_file

    @property
    def data(self) -> dict[str, Any]:
        return self._data

    def has(self, key: str) -> bool:
        return key in self._data

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def keys(self) -> Iterator[str]:
        return iter(self._data.keys())

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def remove(self, key: str) -> bool:
        return self._data.pop(key, _MISSING) is not _MISSING

    def save(self) -> None:
        with self._lock:
            header = render_fact_header(self.facts) if self.facts else None
            write_yaml(self.path, unwrap_encrypted(self._data), header=header)

    def __repr__(self) -> str:
        return f"<DataFile {self.path}>"


_MISSING = object()

ChangeListener = Callable[[Path, Any], None]


class DataFileRegistry:
    """One shared ``DataFile`` per path.

    Every node of an environment compiles its hierarchy against the same
    registry, so a level file shared by several nodes (``common.yaml``) is a
    single in-memory object and a write by one node is seen by all of them.
    Writers call ``changed`` so that listeners can drop whatever they derived
    from the file.
    """

    def __init__(self) -> None:
        self._files: dict[Path, DataFile] = {}
        self._listeners: list[ChangeListener] = []
        self._lock = threading.RLock()

    def cached(self, path: Path) -> Optional[DataFile]:
        with self._lock:
            return self._files.get(Path(path))

    def get(self, path: Path) -> Optional[DataFile]:
        """Return the file at ``path``, loading it on first use; None if absent."""
        path = Path(path)
        with self._lock:
            data_file = self._files.get(path)
            if data_file is None and path.is_file():
                data_file = DataFile.load(path)
                self._files[path] = data_file
            return data_file

    def create(self, path: Path) -> DataFile:
        path = Path(path)
        with self._lock:
            data_file = self.get(path)
            if data_file is None:
                data_file = DataFile.create(path)
                self._files[path] = data_file
            return data_file

    def subscribe(self, listener: ChangeListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def changed(self, path: Path, origin: Any = None) -> None:
        """Notify listeners that ``path`` was written by ``origin``."""
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener(Path(path), origin)

    def clear(self) -> None:
        with self._lock:
            self._files.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._files)


__all__ = ["DataFile", "DataFileRegistry", "parse_fact_header", "render_fact_header"]
