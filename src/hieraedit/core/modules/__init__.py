"""Modules index and the incremental artifact compile pipeline."""
from __future__ import annotations

from .compiler import ArtifactCompiler, CompileReport, find_stale, latest_mtime, manifest_jobs, refresh_index
from .index import ClassInfo, DefinedTypeInfo, FunctionInfo, ModulesIndex, normalize_name

__all__ = [
    "ArtifactCompiler",
    "ClassInfo",
    "CompileReport",
    "DefinedTypeInfo",
    "FunctionInfo",
    "ModulesIndex",
    "find_stale",
    "latest_mtime",
    "manifest_jobs",
    "normalize_name",
    "refresh_index",
]
