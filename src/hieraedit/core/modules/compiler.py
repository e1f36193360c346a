"""Incremental compile pipeline for PN artifacts.

Staleness uses a single full-tree scan: the newest mtime anywhere under the
modules root (and the site manifests directory) is compared against every
artifact, so any source change marks every artifact stale. Site manifests
(``<env>/manifests/*.pp``) compile to ``<cache>/site/<file>.o``. Stale definitions are grouped into batches and each
batch runs the external compiler once, on a bounded thread pool:

    stdin:  {"<artifact path>": "<manifest source>", ...}
    cwd:    the modules root
    result: one artifact file per key

A failing batch (non-zero exit, timeout, missing artifacts) is logged and
reported; the remaining batches still run.
"""
from __future__ import annotations

import concurrent.futures
import json
import logging
import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Optional, Sequence

from hieraedit.core.utils.io import ensure_parent_dir, read_text
from hieraedit.core.utils.subprocess import run_with_timeout

from .index import DefinitionInfo, FunctionInfo, ModulesIndex

if TYPE_CHECKING:
    from hieraedit.core.config import EngineConfig

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]

DEFAULT_BATCH_SIZE = 16
SITE_DIRNAME = "site"
INDEX_GLOBS = ["*/manifests/**/*.pp", "*/functions/**/*.pp", "*/types/**/*.pp", "*/lib/**/*.rb"]


def default_workers() -> int:
    return max((os.cpu_count() or 1) - 1, 1)


def latest_mtime(root: Path) -> float:
    """Newest modification time of any file or directory under ``root``."""
    root = Path(root)
    if not root.exists():
        return 0.0
    newest = root.stat().st_mtime
    for dirpath, dirnames, filenames in os.walk(root):
        for name in dirnames + filenames:
            try:
                mtime = os.stat(os.path.join(dirpath, name)).st_mtime
            except OSError:
                continue
            if mtime > newest:
                newest = mtime
    return newest


def _mtime(path: Path) -> Optional[float]:
    try:
        return path.stat().st_mtime
    except OSError:
        return None


@dataclass(frozen=True)
class CompileJob:
    """One definition to compile: where the artifact goes and its source."""

    artifact: Path
    source: Path
    name: str
    source_text: Optional[str] = None

    def read_source(self) -> str:
        if self.source_text is not None:
            return self.source_text
        return read_text(self.source)


@dataclass
class BatchResult:
    jobs: list[CompileJob]
    error: Optional[str] = None
    missing: list[Path] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None and not self.missing


@dataclass
class CompileReport:
    jobs: int = 0
    batches: int = 0
    results: list[BatchResult] = field(default_factory=list)

    @property
    def failed(self) -> list[BatchResult]:
        return [r for r in self.results if not r.ok]

    @property
    def succeeded(self) -> bool:
        return not self.failed

    def to_dict(self) -> dict:
        return {
            "jobs": self.jobs,
            "batches": self.batches,
            "failed_batches": [
                {
                    "definitions": [j.name for j in r.jobs],
                    "error": r.error,
                    "missing": [str(p) for p in r.missing],
                }
                for r in self.failed
            ],
        }


def manifest_jobs(manifests_dir: Optional[Path], cache_dir: Path) -> list[CompileJob]:
    """One job per ``*.pp`` directly under ``manifests_dir``, in name order."""
    if manifests_dir is None or not Path(manifests_dir).is_dir():
        return []
    return [
        CompileJob(Path(cache_dir) / SITE_DIRNAME / f"{path.name}.o", path, f"manifests/{path.name}")
        for path in sorted(Path(manifests_dir).glob("*.pp"))
        if path.is_file()
    ]


def find_stale(
    index: ModulesIndex,
    *,
    newest: Optional[float] = None,
    manifests_dir: Optional[Path] = None,
) -> list[CompileJob]:
    """Return jobs for every definition (and site manifest) whose artifact is
    missing or stale."""
    if newest is None:
        newest = latest_mtime(index.modules_root)
        if manifests_dir is not None:
            newest = max(newest, latest_mtime(manifests_dir))

    definitions: list[DefinitionInfo] = [
        info for info in index.definitions() if not (isinstance(info, FunctionInfo) and not info.is_puppet)
    ]
    stats = {index.artifact_path(info): _mtime(index.artifact_path(info)) for info in definitions}

    jobs: list[CompileJob] = []
    seen: set[Path] = set()
    for info in definitions:
        artifact = index.artifact_path(info)
        mtime = stats[artifact]
        if mtime is not None and mtime >= newest:
            continue
        if artifact in seen:
            continue
        seen.add(artifact)
        jobs.append(CompileJob(artifact, index.source_path(info), info.name, info.source))

    for job in manifest_jobs(manifests_dir, index.cache_dir):
        mtime = _mtime(job.artifact)
        if mtime is None or mtime < newest:
            jobs.append(job)
    return jobs


def make_batches(jobs: Sequence[CompileJob], size: int = DEFAULT_BATCH_SIZE) -> list[list[CompileJob]]:
    size = max(int(size), 1)
    return [list(jobs[i:i + size]) for i in range(0, len(jobs), size)]


class ArtifactCompiler:
    """Runs the external compiler over stale definitions on a thread pool."""

    def __init__(
        self,
        command: Sequence[str],
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        workers: Optional[int] = None,
        timeout: float = 300.0,
    ) -> None:
        self.command = list(command)
        self.batch_size = batch_size
        self.workers = workers if workers and workers > 0 else default_workers()
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: EngineConfig) -> ArtifactCompiler:
        return cls(
            config.compile_command,
            batch_size=config.batch_size,
            workers=config.workers,
            timeout=config.timeout_seconds,
        )

    def compile_batch(self, batch: Sequence[CompileJob], modules_root: Path) -> BatchResult:
        result = BatchResult(list(batch))
        try:
            payload = {str(job.artifact): job.read_source() for job in batch}
        except OSError as exc:
            result.error = f"Cannot read source: {exc}"
            return result

        for job in batch:
            ensure_parent_dir(job.artifact)

        names = ", ".join(job.name for job in batch)
        logger.info("Compiling %s...", names)
        try:
            completed = run_with_timeout(
                self.command,
                timeout=self.timeout,
                input=json.dumps(payload),
                cwd=modules_root,
            )
        except subprocess.TimeoutExpired:
            result.error = f"Compiler timed out after {self.timeout:g}s"
            return result
        except OSError as exc:
            result.error = f"Cannot run compiler: {exc}"
            return result

        if completed.returncode != 0:
            stderr = (completed.stderr or "").strip()
            result.error = f"Compiler exited with {completed.returncode}: {stderr}"
            return result

        result.missing = [job.artifact for job in batch if not job.artifact.is_file()]
        return result

    def run(
        self,
        index: ModulesIndex,
        progress: Optional[ProgressCallback] = None,
        *,
        manifests_dir: Optional[Path] = None,
    ) -> CompileReport:
        """Compile every stale definition of ``index`` and stale site manifests.

        ``progress(done, total)`` is called after each finished batch.
        """
        jobs = find_stale(index, manifests_dir=manifests_dir)
        batches = make_batches(jobs, self.batch_size)
        report = CompileReport(jobs=len(jobs), batches=len(batches))
        if not batches:
            return report
        if not self.command:
            logger.warning("No compile command configured; %d definitions left stale", len(jobs))
            report.results = [BatchResult(b, error="No compile command configured") for b in batches]
            return report

        done = 0
        with concurrent.futures.ThreadPoolExecutor(max_workers=self.workers) as executor:
            futures = {
                executor.submit(self.compile_batch, batch, index.modules_root): batch
                for batch in batches
            }
            for future in concurrent.futures.as_completed(futures):
                batch = futures[future]
                try:
                    result = future.result()
                except Exception as e:
                    logger.error("Compile batch failed: %s", e)
                    result = BatchResult(batch, error=str(e))
                if not result.ok:
                    logger.warning(
                        "Failed to compile %s: %s",
                        ", ".join(j.name for j in batch),
                        result.error or "missing " + ", ".join(map(str, result.missing)),
                    )
                report.results.append(result)
                done += 1
                if progress is not None:
                    progress(done, len(batches))
        return report


def refresh_index(
    command: Sequence[str],
    modules_root: Path,
    index_path: Path,
    *,
    timeout: float = 300.0,
) -> bool:
    """Regenerate ``modules.json`` when it is older than the modules tree.

    The command receives the source globs (JSON) and the output path as its
    last two arguments. Returns True when the index was regenerated.
    """
    if not command or not Path(modules_root).is_dir():
        return False

    index_mtime = _mtime(Path(index_path))
    if index_mtime is not None and latest_mtime(modules_root) <= index_mtime:
        return False

    ensure_parent_dir(Path(index_path))
    argv = list(command) + [json.dumps(INDEX_GLOBS), str(index_path)]
    logger.info("Indexing modules under %s", modules_root)
    try:
        completed = run_with_timeout(argv, timeout=timeout, cwd=modules_root)
    except (subprocess.TimeoutExpired, OSError) as exc:
        logger.warning("Failed to index modules: %s", exc)
        return False
    if completed.returncode != 0:
        logger.warning("Failed to index modules (exit %d): %s", completed.returncode, (completed.stderr or "").strip())
        return False
    return True


__all__ = [
    "ArtifactCompiler",
    "BatchResult",
    "CompileJob",
    "CompileReport",
    "ProgressCallback",
    "default_workers",
    "find_stale",
    "latest_mtime",
    "make_batches",
    "manifest_jobs",
    "refresh_index",
]
