"""Dependency graph walker --- loads the manifest closure of a package.

Starting from a list of direct dependency refs, the walker reads each
referenced manifest from its recorded prefix and recurses into that
manifest's own dependencies. Every identity is loaded and visited at most
once. The result is a ``ResolutionGraph``: the loaded manifests, a
dependency-first visiting order, and the first path by which each identity
was reached (used for conflict diagnostics).

Cycle detection uses the usual DFS colouring: an identity that is reached
again while still on the traversal stack closes a cycle, and the stack slice
from that identity onwards is the cycle path.

There is no search path. Each ``DependencyRef`` carries the absolute prefix
recorded at export time, so a missing manifest is a broken install and is
reported as such.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field

from prefixlink.core.manifest.codec import manifest_path, read_manifest
from prefixlink.core.manifest.models import DependencyRef, Manifest, PackageIdentity
from prefixlink.exceptions import DependencyCycle, DependencyNotFound

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# ManifestCache: process-lifetime manifest cache
# ---------------------------------------------------------------------------


class ManifestCache:
    """Cache of loaded manifests keyed by ``PackageIdentity``.

    Exported manifests are immutable, so entries never go stale and there is
    no invalidation protocol: an entry is valid until the process exits.
    Safe to share between threads.
    """

    def __init__(self) -> None:
        self._entries: dict[PackageIdentity, Manifest] = {}
        self._lock = threading.Lock()

    def get(self, identity: PackageIdentity) -> Manifest | None:
        with self._lock:
            return self._entries.get(identity)

    def put(self, manifest: Manifest) -> None:
        with self._lock:
            self._entries.setdefault(manifest.identity, manifest)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, identity: object) -> bool:
        with self._lock:
            return identity in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


# ---------------------------------------------------------------------------
# ResolutionGraph: result of a walk
# ---------------------------------------------------------------------------


@dataclass
class ResolutionGraph:
    """The in-memory DAG produced by one walk.

    Attributes:
        root: Identity the walk was started for, or None for an anonymous
            consumer.
        direct: The root's direct dependency refs, in declared order.
        order: Every reachable identity, dependency-first (post-order).
        manifests: Loaded manifest per identity.
        paths: First path by which each identity was reached, starting at the
            root (when there is one) and ending at the identity itself.
    """

    root: PackageIdentity | None
    direct: list[DependencyRef] = field(default_factory=list)
    order: list[PackageIdentity] = field(default_factory=list)
    manifests: dict[PackageIdentity, Manifest] = field(default_factory=dict)
    paths: dict[PackageIdentity, list[PackageIdentity]] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.order)

    def __contains__(self, identity: object) -> bool:
        return identity in self.manifests

    def reachable_from(self, refs: Iterable[DependencyRef]) -> set[PackageIdentity]:
        """Return every identity in the graph reachable from *refs* (inclusive)."""
        seen: set[PackageIdentity] = set()
        stack = [ref.identity for ref in refs]
        while stack:
            ident = stack.pop()
            if ident in seen:
                continue
            seen.add(ident)
            stack.extend(ref.identity for ref in self.manifests[ident].dependencies)
        return seen


# ---------------------------------------------------------------------------
# GraphWalker
# ---------------------------------------------------------------------------


class GraphWalker:
    """Load the manifest closure reachable from a set of dependency refs.

    Args:
        cache: Optional shared ``ManifestCache``. A private cache is created
            when none is given, so repeated walks on one walker still reuse
            loaded manifests.

    The walker only reads manifests; it never writes or locks anything.
    Readers rely on manifests being written atomically by the exporter.
    """

    def __init__(self, cache: ManifestCache | None = None) -> None:
        self._cache = cache if cache is not None else ManifestCache()

    @property
    def cache(self) -> ManifestCache:
        return self._cache

    def load(self, identity: PackageIdentity) -> Manifest:
        """Return the manifest for *identity*, reading it from disk once.

        Raises:
            DependencyNotFound: If no manifest exists at the identity's prefix,
                or the manifest there belongs to a different identity.
            MalformedManifest: If the manifest file cannot be decoded.
        """
        cached = self._cache.get(identity)
        if cached is not None:
            logger.debug("Manifest cache hit for %s", identity.label)
            return cached

        path = manifest_path(identity.prefix)
        logger.debug("Loading manifest for %s from %s", identity.label, path)
        try:
            manifest = read_manifest(identity.prefix)
        except FileNotFoundError:
            raise DependencyNotFound(identity, str(path)) from None
        except (IsADirectoryError, PermissionError) as exc:
            raise DependencyNotFound(identity, str(path), f"unreadable ({exc.strerror})") from exc

        if manifest.identity != identity:
            raise DependencyNotFound(
                identity, str(path),
                f"prefix holds {manifest.identity.label} instead",
            )
        self._cache.put(manifest)
        return manifest

    def walk(
        self,
        direct_deps: Sequence[DependencyRef],
        root: PackageIdentity | None = None,
    ) -> ResolutionGraph:
        """Walk the closure of *direct_deps*.

        Args:
            direct_deps: The root's direct dependency refs, in declared order.
            root: Identity of the package being resolved, if any. It is kept on
                the traversal stack so that a dependency leading back to it is
                reported as a cycle.

        Returns:
            The ``ResolutionGraph`` for the closure (the root itself is not
            part of ``order`` or ``manifests``).

        Raises:
            DependencyNotFound, MalformedManifest: From loading a manifest.
            DependencyCycle: If following edges revisits an identity on the
                current traversal stack.
        """
        graph = ResolutionGraph(root=root, direct=list(direct_deps))
        stack: list[PackageIdentity] = [root] if root is not None else []
        on_stack: set[PackageIdentity] = set(stack)

        for ref in direct_deps:
            self._visit(ref.identity, graph, stack, on_stack)

        logger.debug(
            "Walked %d package(s) for %s",
            len(graph.order), root.label if root is not None else "<consumer>",
        )
        return graph

    def _visit(
        self,
        start: PackageIdentity,
        graph: ResolutionGraph,
        stack: list[PackageIdentity],
        on_stack: set[PackageIdentity],
    ) -> None:
        if start in on_stack:
            raise DependencyCycle(_cycle_from(stack, start))
        if start in graph.manifests:
            return

        # Iterative DFS: each frame is (identity, its remaining refs).
        frames: list[tuple[PackageIdentity, Iterator[DependencyRef]]] = []

        def _enter(ident: PackageIdentity) -> None:
            manifest = self.load(ident)
            graph.manifests[ident] = manifest
            graph.paths[ident] = list(stack) + [ident]
            stack.append(ident)
            on_stack.add(ident)
            frames.append((ident, iter(manifest.dependencies)))

        _enter(start)
        while frames:
            ident, deps = frames[-1]
            for ref in deps:
                child = ref.identity
                if child in on_stack:
                    raise DependencyCycle(_cycle_from(stack, child))
                if child not in graph.manifests:
                    _enter(child)
                    break
            else:
                frames.pop()
                stack.pop()
                on_stack.discard(ident)
                graph.order.append(ident)

    def resolve_direct(self, identity: PackageIdentity) -> list[Manifest]:
        """Load *identity*'s manifest and every manifest reachable from it.

        Returns:
            The manifests in dependency-first order, with the manifest of
            *identity* itself last.
        """
        root = self.load(identity)
        graph = self.walk(root.dependencies, root=identity)
        return [graph.manifests[i] for i in graph.order] + [root]


def _cycle_from(stack: Sequence[PackageIdentity], ident: PackageIdentity) -> list[PackageIdentity]:
    start = list(stack).index(ident)
    return list(stack[start:]) + [ident]
