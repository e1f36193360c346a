"""Node-specific (interpolated) hierarchy with lookup and write operations."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterator

from hieraedit.core.exceptions import HierarchyError

from .datafile import DataFile, DataFileRegistry
from .eyaml import EncryptionSettings, encrypt_value, load_certificate

if TYPE_CHECKING:
    from .hierarchy import HierarchyEntry

logger = logging.getLogger(__name__)


class CompiledHierarchyEntry:
    """A hierarchy entry bound to a node.

    ``file`` is None until the backing file is found on disk or created by
    the first write. Files live in a registry shared with the other nodes
    of the environment.
    """

    def __init__(
        self,
        entry: HierarchyEntry,
        path: str,
        datadir: Path,
        *,
        encryption: EncryptionSettings | None = None,
        base_dir: Path | None = None,
        files: DataFileRegistry | None = None,
    ) -> None:
        self.entry = entry
        self.path = path
        self.datadir = Path(datadir)
        self.encryption = encryption
        self.base_dir = Path(base_dir) if base_dir is not None else self.datadir
        self.files = files if files is not None else DataFileRegistry()

    @property
    def file_path(self) -> Path:
        return self.datadir / self.path

    @property
    def file(self) -> DataFile | None:
        return self.files.cached(self.file_path)

    def locate(self) -> DataFile | None:
        """Load the backing file if it exists; never creates it."""
        return self.files.get(self.file_path)

    def ensure_file(self) -> DataFile:
        return self.files.create(self.file_path)

    def has(self, key: str) -> bool:
        file = self.file
        return file is not None and file.has(key)

    def encrypt(self, value: str) -> Any:
        if self.encryption is None:
            raise HierarchyError(f"Level {self.path} has no encryption settings")
        certificate = load_certificate(self.encryption.public_key_path(self.base_dir))
        return encrypt_value(value, certificate)

    def dump(self) -> dict[str, Any]:
        return {
            "name": self.entry.name or self.entry.path,
            "path": self.path,
            "datadir": str(self.datadir),
            "file": str(self.file_path),
            "exists": self.file is not None,
            "eyaml": self.encryption is not None,
        }

    def __repr__(self) -> str:
        return f"<CompiledHierarchyEntry {self.path}>"


class CompiledHierarchy:
    """Ordered compiled levels; index 0 has the highest priority."""

    def __init__(self, entries: list[CompiledHierarchyEntry]) -> None:
        self.entries = list(entries)

    def __len__(self) -> int:
        return len(self.entries)

    def uses(self, path: Path) -> bool:
        return any(entry.file_path == Path(path) for entry in self.entries)

    def __iter__(self) -> Iterator[CompiledHierarchyEntry]:
        return iter(self.entries)

    def get(self, level: int) -> CompiledHierarchyEntry:
        if not isinstance(level, int) or level < 0 or level >= len(self.entries):
            raise HierarchyError(f"No such hierarchy level: {level}", level=level if isinstance(level, int) else None)
        return self.entries[level]

    def level_of(self, key: str) -> int | None:
        for level, entry in enumerate(self.entries):
            if entry.has(key):
                return level
        return None

    def lookup(self, key: str) -> tuple[bool, Any, int | None]:
        """Return ``(found, value, level)`` from the first level defining ``key``."""
        level = self.level_of(key)
        if level is None:
            return False, None, None
        file = self.entries[level].file
        if file is None:
            raise HierarchyError(f"Data file of level {level} disappeared during lookup", level=level)
        return True, file.get(key), level

    def assign(self, level: int, key: str, value: Any, *, encrypt: bool = True) -> None:
        """Write ``key`` on exactly ``level``, creating its file if needed."""
        entry = self.get(level)
        if encrypt and entry.encryption is not None and isinstance(value, str):
            value = entry.encrypt(value)
        file = entry.ensure_file()
        file.set(key, value)
        file.save()
        entry.files.changed(entry.file_path, self)

    def remove(self, level: int, key: str) -> bool:
        entry = self.get(level)
        file = entry.file
        if file is None or not file.remove(key):
            return False
        file.save()
        entry.files.changed(entry.file_path, self)
        return True

    def dump(self) -> list[dict[str, Any]]:
        return [entry.dump() for entry in self.entries]


__all__ = ["CompiledHierarchy", "CompiledHierarchyEntry"]
