"""A Puppet environment: modules, hierarchy and node contexts."""
from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Optional

from hieraedit.core.config import EngineConfig
from hieraedit.core.exceptions import HieraEditError, WorkspaceError
from hieraedit.core.hiera import DataFileRegistry, Hierarchy
from hieraedit.core.modules import ArtifactCompiler, CompileReport, ModulesIndex, manifest_jobs, refresh_index
from hieraedit.core.modules.compiler import ProgressCallback
from hieraedit.core.node import NodeResolutionContext

logger = logging.getLogger(__name__)

HIERA_FILENAME = "hiera.yaml"
MODULES_DIRNAME = "modules"
MANIFESTS_DIRNAME = "manifests"
INDEX_FILENAME = "modules.json"
NODES_DIRNAME = "nodes"


class Environment:
    """One ``environments/<name>`` directory of a workspace.

    Node contexts are created lazily by ``node(certname)``. They share the
    read-only modules index and one registry of data files, so a write made
    through one node is visible to the others and drops their caches.
    """

    def __init__(self, name: str, path: Path, cache_root: Path, config: EngineConfig) -> None:
        self.name = name
        self.path = Path(path)
        self.config = config
        self.modules_dir = self.path / MODULES_DIRNAME
        self.manifests_dir = self.path / MANIFESTS_DIRNAME
        self.cache_dir = Path(cache_root) / f"env-{name}"
        self.global_variables: dict[str, Any] = {"environment": name}
        self.hierarchy = Hierarchy.load(self.path / HIERA_FILENAME)
        self.index = ModulesIndex.load(self.index_path, self.modules_dir, self.cache_dir)
        self.files = DataFileRegistry()
        self.files.subscribe(self._on_data_changed)
        self._nodes: dict[str, NodeResolutionContext] = {}
        self._lock = threading.Lock()

    @property
    def index_path(self) -> Path:
        return self.cache_dir / INDEX_FILENAME

    @property
    def data_dir(self) -> Path:
        datadir = self.hierarchy.datadir
        if "%{" in datadir:
            return self.path / "data"
        path = Path(datadir)
        return path if path.is_absolute() else self.path / path

    @property
    def nodes_dir(self) -> Path:
        return self.data_dir / NODES_DIRNAME

    def init(self, progress: Optional[ProgressCallback] = None) -> CompileReport:
        """Refresh the modules index and compile stale artifacts.

        Existing node contexts are dropped since their caches refer to the
        previous index.
        """
        refresh_index(
            self.config.index_command,
            self.modules_dir,
            self.index_path,
            timeout=self.config.timeout_seconds,
        )
        self.index = ModulesIndex.load(self.index_path, self.modules_dir, self.cache_dir)
        report = ArtifactCompiler.from_config(self.config).run(self.index, progress, manifests_dir=self.manifests_dir)
        if report.failed:
            logger.warning(
                "Environment %s: %d of %d compile batches failed", self.name, len(report.failed), report.batches
            )
        with self._lock:
            self._nodes.clear()
        return report

    def site_manifests(self) -> list[tuple[str, Path]]:
        """``(name, artifact)`` of every site manifest, in evaluation order."""
        return [(job.name, job.artifact) for job in manifest_jobs(self.manifests_dir, self.cache_dir)]

    def node_facts(self, certname: str) -> dict[str, Any]:
        data_file = self.files.get(self.nodes_dir / f"{certname}.yaml")
        return dict(data_file.facts) if data_file is not None else {}

    def node(self, certname: str) -> NodeResolutionContext:
        """Return the context of ``certname``, creating it on first use.

        Site manifests are evaluated right away, so a broken manifest surfaces
        here rather than on the first class lookup.

        Raises:
            WorkspaceError: when the node data file cannot be read.
            CompilationError: when a site manifest fails.
        """
        with self._lock:
            context = self._nodes.get(certname)
            if context is not None:
                return context
            context = NodeResolutionContext(
                certname,
                index=self.index,
                hierarchy=self.hierarchy,
                environment=self.name,
                facts=self.node_facts(certname),
                global_variables=self.global_variables,
                base_dir=self.path,
                classes_key=self.config.classes_key,
                resources_key=self.config.resources_key,
                files=self.files,
                manifests=self.site_manifests(),
            )
            self._nodes[certname] = context
        try:
            context.ensure_manifests()
        except HieraEditError:
            with self._lock:
                if self._nodes.get(certname) is context:
                    del self._nodes[certname]
            raise
        return context

    def _on_data_changed(self, path: Path, origin: Any) -> None:
        """Drop the caches of every other node whose hierarchy reads ``path``."""
        for context in self.nodes.values():
            if context.hierarchy is not origin and context.hierarchy.uses(path):
                logger.debug("%s changed; invalidating node %s", path, context.certname)
                context.invalidate()

    def certnames(self) -> list[str]:
        if not self.nodes_dir.is_dir():
            return []
        return sorted(p.stem for p in self.nodes_dir.glob("*.yaml") if p.is_file())

    def load_nodes(self) -> list[WorkspaceError]:
        """Create a context for every node data file; failures become warnings."""
        warnings: list[WorkspaceError] = []
        for certname in self.certnames():
            try:
                self.node(certname)
            except WorkspaceError as exc:
                warnings.append(exc)
            except HieraEditError as exc:
                warnings.append(
                    WorkspaceError(
                        "Failed to load node",
                        f"Node {certname}: {exc}",
                        context={"certname": certname, "environment": self.name},
                    )
                )
        for warning in warnings:
            logger.warning(str(warning))
        return warnings

    @property
    def nodes(self) -> dict[str, NodeResolutionContext]:
        with self._lock:
            return dict(self._nodes)

    def close(self) -> None:
        with self._lock:
            for context in self._nodes.values():
                context.invalidate()
            self._nodes.clear()
        self.files.clear()

    def dump(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "path": str(self.path),
            "hierarchy": self.hierarchy.dump(),
            "nodes": self.certnames(),
            "manifests": [name for name, _ in self.site_manifests()],
        }

    def __repr__(self) -> str:
        return f"<Environment {self.name}>"


__all__ = ["Environment"]
