"""hieraedit core library package.

The resolution engine: expression model (``ast``), per-node resolution
(``node``), Hiera hierarchy compilation (``hiera``) and the incremental
artifact pipeline (``modules``).
"""

from . import exceptions  # noqa: F401

__all__ = ["exceptions"]
