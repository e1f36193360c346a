"""On-disk workspace builder for engine and CLI tests.

Writes ``environments/<env>/`` (hiera.yaml, data files, module sources), the
modules index and pre-compiled PN artifacts under the cache directory, so
tests never need the external compiler.
"""
from __future__ import annotations

import json
import os
import time
from pathlib import Path
from typing import Any

from hieraedit.core.config import EngineConfig
from hieraedit.core.workspace import Workspace

from .io_utils import write_json, write_text, write_yaml


def definition_file(name: str, kind: str = "manifests") -> str:
    """``ntp`` -> ``ntp/manifests/init.pp``; ``ntp::server`` -> ``ntp/manifests/server.pp``."""
    module, _, rest = name.partition("::")
    relative = rest.replace("::", "/") if rest else "init"
    return f"{module}/{kind}/{relative}.pp"


def engine_config(**compile_overrides: Any) -> EngineConfig:
    compile_section = {
        "batch_size": 16,
        "workers": 1,
        "command": [],
        "index_command": [],
        "timeout_seconds": 30,
    }
    compile_section.update(compile_overrides)
    return EngineConfig(
        config={
            "compile": compile_section,
            "hiera": {"classes_key": "classes", "resources_key": "resources"},
            "logging": {"level": "WARNING"},
        }
    )


class WorkspaceBuilder:
    def __init__(self, root: Path, env: str = "production") -> None:
        self.root = Path(root)
        self.env = env
        self.env_dir = self.root / "environments" / env
        self.modules_dir = self.env_dir / "modules"
        self.cache_dir = self.root / "cache"
        self.env_cache = self.cache_dir / f"env-{env}"
        self._index: dict[str, list[dict[str, Any]]] = {
            "puppet_classes": [],
            "defined_types": [],
            "puppet_functions": [],
        }
        self._artifacts: dict[Path, Any] = {}
        self.env_dir.mkdir(parents=True, exist_ok=True)
        (self.env_dir / "data").mkdir(exist_ok=True)
        self.modules_dir.mkdir(exist_ok=True)

    # ---------- modules ----------

    def _add(
        self,
        section: str,
        artifact_dir: str,
        name: str,
        artifact: Any,
        *,
        kind: str = "manifests",
        source: str | None = None,
        **extra: Any,
    ) -> WorkspaceBuilder:
        file = definition_file(name, kind)
        write_text(self.modules_dir / file, source or f"# {name}\n")
        entry = {"name": name, "file": file, **{k: v for k, v in extra.items() if v is not None}}
        self._index[section].append(entry)
        if artifact is not None:
            self._artifacts[self.env_cache / artifact_dir / f"{file}.o"] = artifact
        return self

    def add_class(
        self,
        name: str,
        artifact: Any,
        *,
        defaults: dict[str, str] | None = None,
        inherits: str | None = None,
        docstring: dict[str, Any] | None = None,
        source: str | None = None,
    ) -> WorkspaceBuilder:
        return self._add(
            "puppet_classes",
            "obj",
            name,
            artifact,
            source=source,
            defaults=defaults,
            inherits=inherits,
            docstring=docstring,
        )

    def add_defined_type(self, name: str, artifact: Any, *, defaults: dict[str, str] | None = None) -> WorkspaceBuilder:
        return self._add("defined_types", "obj", name, artifact, defaults=defaults)

    def add_function(self, name: str, artifact: Any, *, type_: str = "puppet") -> WorkspaceBuilder:
        return self._add("puppet_functions", "func", name, artifact, kind="functions", type=type_)

    def manifest(self, filename: str, artifact: Any, *, source: str | None = None) -> WorkspaceBuilder:
        """A site manifest ``manifests/<filename>`` and its compiled artifact."""
        write_text(self.env_dir / "manifests" / filename, source or f"# {filename}\n")
        if artifact is not None:
            self._artifacts[self.env_cache / "site" / f"{filename}.o"] = artifact
        return self

    # ---------- hierarchy & data ----------

    def hiera(self, document: dict[str, Any]) -> WorkspaceBuilder:
        write_yaml(self.env_dir / "hiera.yaml", document, sort_keys=False)
        return self

    def data(self, relative: str, data: dict[str, Any], *, facts: dict[str, Any] | None = None) -> Path:
        path = self.env_dir / "data" / relative
        write_yaml(path, data)
        if facts:
            header = "".join(f"# {k} = {json.dumps(v)}\n" for k, v in facts.items())
            path.write_text(header + path.read_text(encoding="utf-8"), encoding="utf-8")
        return path

    # ---------- output ----------

    def build(self) -> WorkspaceBuilder:
        """Write the index and artifacts, newer than every module source."""
        write_json(self.env_cache / "modules.json", self._index)
        future = time.time() + 60
        for path, artifact in self._artifacts.items():
            write_json(path, artifact)
            os.utime(path, (future, future))
        return self

    def open(self, **compile_overrides: Any) -> Workspace:
        return Workspace.open(self.root, self.cache_dir, config=engine_config(**compile_overrides))

    def environment(self, **compile_overrides: Any):
        return self.open(**compile_overrides).environment(self.env)


__all__ = ["WorkspaceBuilder", "definition_file", "engine_config"]
