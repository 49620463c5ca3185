"""Transitive resolution: manifest graph walking and scope-aware merging.

- ``walker``: ``GraphWalker`` loads the manifest closure of a package from
  the absolute prefixes recorded in each ``DependencyRef``, detecting cycles
  and broken installs; ``ManifestCache`` shares loaded manifests across
  resolutions in one process.
- ``merger``: ``ScopeMerger`` folds the closure into a
  ``ResolvedConfiguration``, enforcing scope visibility and rejecting
  incompatible installs of one package name.
"""

from prefixlink.core.resolution.merger import (
    ResolveOptions,
    ScopeMerger,
    check_conflicts,
    resolve_consumer,
    resolve_own_build,
)
from prefixlink.core.resolution.walker import (
    GraphWalker,
    ManifestCache,
    ResolutionGraph,
)

__all__ = [
    "GraphWalker",
    "ManifestCache",
    "ResolutionGraph",
    "ResolveOptions",
    "ScopeMerger",
    "check_conflicts",
    "resolve_consumer",
    "resolve_own_build",
]
