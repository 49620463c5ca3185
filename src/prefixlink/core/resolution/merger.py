"""Scope-aware merger --- flattens a manifest closure into build inputs.

The merger walks the closure of a package's direct dependencies and folds
every visible export into one ``ResolvedConfiguration``:

1. **Walk.** The ``GraphWalker`` loads the closure (cycles and missing
   manifests fail here).
2. **Conflict check.** Two identities with the same name but different
   specs (or the same spec at two prefixes) fail with ``VersionConflict``.
   No unification is attempted.
3. **Merge.** Nodes are visited once each, dependency-first, so a library
   always precedes the libraries that need it. Only ``interface`` and
   ``public`` entries of dependencies are visible. An *own-build* merge
   additionally takes the root package's own ``private`` and ``public``
   entries; private entries of dependencies never leave their package.

In own-build mode only dependencies reached through a direct ref that
requires ``public`` scope contribute: an interface-only dependency is needed
by the root's consumers, not by the root's own build. The walk and conflict
check still cover the whole closure.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from prefixlink.core.manifest.models import (
    PROPAGATING_SCOPES,
    DependencyRef,
    ExportEntry,
    ExportKind,
    PackageIdentity,
    ResolvedConfiguration,
)
from prefixlink.core.paths import PathResolver
from prefixlink.core.resolution.walker import GraphWalker, ManifestCache, ResolutionGraph
from prefixlink.exceptions import VersionConflict

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolveOptions:
    """Caller-selected switches for a resolution request.

    Attributes:
        strict_relocation: Reject exported paths that break relocation.
        check_exists: Require every exported path to exist on disk.
    """

    strict_relocation: bool = False
    check_exists: bool = False

    def path_resolver(self) -> PathResolver:
        return PathResolver(
            strict_relocation=self.strict_relocation,
            check_exists=self.check_exists,
        )


# ---------------------------------------------------------------------------
# Configuration builder
# ---------------------------------------------------------------------------


class _ConfigBuilder:
    """Accumulates a ``ResolvedConfiguration`` with per-field dedup."""

    def __init__(self, resolver: PathResolver) -> None:
        self.config = ResolvedConfiguration()
        self._resolver = resolver
        self._seen: dict[str, set[str]] = {
            "link_libraries": set(),
            "include_dirs": set(),
            "compile_flags": set(),
            "data_paths": set(),
        }

    def _add_unique(self, field_name: str, value: str) -> None:
        seen = self._seen[field_name]
        if value not in seen:
            seen.add(value)
            getattr(self.config, field_name).append(value)

    def add(self, entry: ExportEntry, prefix: str) -> None:
        """Merge one export entry owned by the package installed at *prefix*."""
        kind = entry.kind
        value = self._resolver.normalize(prefix, entry.value) if kind.is_path else entry.value

        if kind.is_library:
            self._add_unique("link_libraries", value)
        elif kind is ExportKind.HEADER_DIR:
            self._add_unique("include_dirs", value)
        elif kind is ExportKind.DATA_PATH:
            self._add_unique("data_paths", value)
        elif kind is ExportKind.COMPILE_FLAG:
            self._add_unique("compile_flags", value)
        elif kind is ExportKind.LINK_FLAG:
            self.config.link_flags.append(value)
        else:  # pragma: no cover
            raise ValueError(f"Unhandled export kind: {kind!r}")

    def add_package(self, identity: PackageIdentity, entries: Iterable[ExportEntry]) -> None:
        for entry in entries:
            self.add(entry, identity.prefix)
        self.config.packages.append(identity)


# ---------------------------------------------------------------------------
# ScopeMerger
# ---------------------------------------------------------------------------


class ScopeMerger:
    """Merge the exports of a dependency closure into one configuration.

    Args:
        walker: Graph walker used to load manifests. A fresh one (with its own
            cache) is created when omitted.
        path_resolver: Normalises exported paths; defaults to a lenient
            ``PathResolver``.
    """

    def __init__(
        self,
        walker: GraphWalker | None = None,
        path_resolver: PathResolver | None = None,
    ) -> None:
        self._walker = walker if walker is not None else GraphWalker()
        self._resolver = path_resolver if path_resolver is not None else PathResolver()

    @property
    def walker(self) -> GraphWalker:
        return self._walker

    def merge(
        self,
        root: PackageIdentity | None,
        direct_deps: Sequence[DependencyRef],
        *,
        own_build: bool = False,
        root_exports: Sequence[ExportEntry] = (),
    ) -> ResolvedConfiguration:
        """Resolve the configuration for *root* given its direct dependencies.

        Args:
            root: The package being built or consumed from. May be None for an
                anonymous consumer (consumer mode only).
            direct_deps: The root's direct dependency refs, in declared order.
            own_build: Produce the root's own-build configuration: include
                the root's private and public entries from *root_exports*.
            root_exports: The root package's own exports (own-build mode).

        Returns:
            The merged ``ResolvedConfiguration``.

        Raises:
            DependencyNotFound, MalformedManifest, DependencyCycle: From the walk.
            VersionConflict: If the closure holds two installs of one name.
            PathEscapesPrefix: From path normalisation in strict mode.
        """
        own_root: PackageIdentity | None = None
        if own_build:
            if root is None:
                raise ValueError("An own-build merge needs a root identity")
            own_root = root

        graph = self._walker.walk(direct_deps, root=root)
        check_conflicts(graph)

        if own_build:
            contributing = graph.reachable_from(r for r in direct_deps if r.needed_for_build)
        else:
            contributing = set(graph.manifests)

        builder = _ConfigBuilder(self._resolver)
        for ident in graph.order:
            if ident in contributing:
                builder.add_package(ident, graph.manifests[ident].exports_in(PROPAGATING_SCOPES))

        if own_root is not None:
            builder.add_package(own_root, [e for e in root_exports if e.scope.builds_self])

        config = builder.config
        logger.debug(
            "Merged %d package(s) for %s (%s): %d libraries, %d include dirs",
            len(config.packages),
            root.label if root is not None else "<consumer>",
            "own-build" if own_build else "consumer",
            len(config.link_libraries),
            len(config.include_dirs),
        )
        return config


def check_conflicts(graph: ResolutionGraph) -> None:
    """Fail if two identities in the walked graph share a package name.

    The root (when present) takes part in the check. Identities are compared
    in discovery order, so the reported *first* install is the one reached
    first.

    Raises:
        VersionConflict: On the first clash found.
    """
    paths: dict[PackageIdentity, list[PackageIdentity]] = {}
    if graph.root is not None:
        paths[graph.root] = [graph.root]
    paths.update(graph.paths)

    first_by_name: dict[str, PackageIdentity] = {}
    for ident in paths:
        other = first_by_name.setdefault(ident.name, ident)
        if other != ident:
            raise VersionConflict(ident.name, other, paths[other], ident, paths[ident])


# ---------------------------------------------------------------------------
# Convenience entry points
# ---------------------------------------------------------------------------


def resolve_consumer(
    identity: PackageIdentity,
    options: ResolveOptions | None = None,
    cache: ManifestCache | None = None,
) -> ResolvedConfiguration:
    """Return what a consumer of the installed package *identity* needs.

    This is *identity*'s own interface and public exports plus everything
    its closure propagates.
    """
    options = options or ResolveOptions()
    merger = ScopeMerger(GraphWalker(cache), options.path_resolver())
    ref = DependencyRef(identity, PROPAGATING_SCOPES)
    return merger.merge(None, [ref])


def resolve_own_build(
    identity: PackageIdentity,
    options: ResolveOptions | None = None,
    cache: ManifestCache | None = None,
) -> ResolvedConfiguration:
    """Return the configuration needed to (re)build the installed *identity*."""
    options = options or ResolveOptions()
    walker = GraphWalker(cache)
    manifest = walker.load(identity)
    merger = ScopeMerger(walker, options.path_resolver())
    return merger.merge(
        identity, manifest.dependencies, own_build=True, root_exports=manifest.exports,
    )
