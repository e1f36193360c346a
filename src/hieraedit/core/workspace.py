"""Workspace: a directory of Puppet environments plus a cache directory."""
from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional

from hieraedit.core.config import EngineConfig
from hieraedit.core.exceptions import HierarchyError, NoSuchEnvironmentError, ParseError, WorkspaceError
from hieraedit.core.utils.io import ensure_directory

from .environment import Environment

logger = logging.getLogger(__name__)

ENVIRONMENTS_DIRNAME = "environments"
DEFAULT_CACHE_DIRNAME = ".hieraedit/cache"


class Workspace:
    """Owns the environments opened from ``<path>/environments``."""

    def __init__(self, path: Path, cache_dir: Path, config: EngineConfig) -> None:
        self.path = Path(path)
        self.cache_dir = Path(cache_dir)
        self.config = config
        self._environments: dict[str, Environment] = {}
        self._lock = threading.Lock()

    @classmethod
    def open(cls, path: Path, cache_dir: Optional[Path] = None, *, config: Optional[EngineConfig] = None) -> Workspace:
        """Validate the workspace layout and load its configuration.

        Raises:
            WorkspaceError: when ``path`` has no ``environments`` directory.
            ConfigError: when the configuration fails validation.
        """
        path = Path(path).resolve()
        if not (path / ENVIRONMENTS_DIRNAME).is_dir():
            raise WorkspaceError(
                "Invalid workspace",
                f"{path} has no '{ENVIRONMENTS_DIRNAME}' directory",
                context={"path": str(path)},
            )
        cache = Path(cache_dir) if cache_dir is not None else path / DEFAULT_CACHE_DIRNAME
        try:
            ensure_directory(cache)
        except OSError as exc:
            raise WorkspaceError(
                "Invalid cache directory", f"Cannot create {cache}: {exc}", context={"path": str(cache)}
            ) from exc
        return cls(path, cache, config or EngineConfig(workspace_root=path))

    @property
    def environments_dir(self) -> Path:
        return self.path / ENVIRONMENTS_DIRNAME

    def environment_names(self) -> list[str]:
        return sorted(p.name for p in self.environments_dir.iterdir() if p.is_dir())

    def environment(self, name: str) -> Environment:
        """Return the environment ``name``, opening it on first use.

        Raises:
            NoSuchEnvironmentError: when the directory does not exist.
            WorkspaceError: when its hierarchy or modules index is invalid.
        """
        with self._lock:
            env = self._environments.get(name)
            if env is not None:
                return env
            env_path = self.environments_dir / name
            if not env_path.is_dir():
                raise NoSuchEnvironmentError(name, context={"workspace": str(self.path)})
            try:
                env = Environment(name, env_path, self.cache_dir, self.config)
            except (HierarchyError, ParseError) as exc:
                raise WorkspaceError(
                    "Invalid environment", f"Environment '{name}': {exc}", context={"environment": name}
                ) from exc
            logger.debug("Opened environment %s", name)
            self._environments[name] = env
            return env

    def close(self) -> None:
        with self._lock:
            for env in self._environments.values():
                env.close()
            self._environments.clear()

    def __enter__(self) -> Workspace:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


__all__ = ["Workspace"]
