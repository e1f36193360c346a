"""Hiera hierarchy: parsing, per-node compilation, data files and eyaml."""
from __future__ import annotations

from .compiled import CompiledHierarchy, CompiledHierarchyEntry
from .datafile import DataFile, DataFileRegistry
from .eyaml import EncryptedValue, EncryptionSettings
from .hierarchy import Hierarchy, HierarchyEntry
from .interpolate import interpolate

__all__ = [
    "CompiledHierarchy",
    "CompiledHierarchyEntry",
    "DataFile",
    "DataFileRegistry",
    "EncryptedValue",
    "EncryptionSettings",
    "Hierarchy",
    "HierarchyEntry",
    "interpolate",
]
