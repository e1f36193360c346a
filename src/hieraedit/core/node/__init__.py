"""Per-node resolution: facts, compiled hierarchy and resolution caches."""
from __future__ import annotations

from .cache import SingleFlightCache
from .context import NodeResolutionContext
from .dump import dump_class, dump_node, to_jsonable
from .identity import identity_facts
from .resolver import NodeResolver
from .site import SiteManifests, node_names

__all__ = [
    "NodeResolutionContext",
    "NodeResolver",
    "SiteManifests",
    "SingleFlightCache",
    "dump_class",
    "dump_node",
    "identity_facts",
    "node_names",
    "to_jsonable",
]
