"""Install-time manifest export.

- ``exporter``: ``Exporter`` validates and writes a package's manifest.
- ``locking``: per-prefix exclusive lock and atomic file replacement.
"""

from prefixlink.core.export.exporter import Exporter
from prefixlink.core.export.locking import atomic_write, exclusive_lock

__all__ = [
    "Exporter",
    "atomic_write",
    "exclusive_lock",
]
