"""Manifest exporter --- records a freshly installed package for its consumers.

The exporter is the install-time half of the pipeline. Given the package's
identity, its own exports, and its direct dependency refs, it:

1. Builds the ``Manifest`` (model validation rejects malformed input).
2. In strict relocation mode, checks that every exported path that lies in
   the prefix is recorded relative to it.
3. Takes an exclusive lock on the prefix's manifest location.
4. Accepts a byte-identical re-export as a no-op and refuses any other
   content at an already-claimed prefix (``PrefixAlreadyExported``).
5. Runs an own-build merge against the direct dependencies, so a manifest
   that downstream resolution would reject is never written.
6. Writes the encoded manifest atomically to the well-known location.

Example::

    exporter = Exporter()
    manifest = exporter.export(
        PackageIdentity("zlib", "1.3.1", "/opt/pkgs/zlib-1.3.1-a1b2"),
        [ExportEntry(ExportKind.SHARED_LIBRARY, "lib/libz.so", Scope.PUBLIC),
         ExportEntry(ExportKind.HEADER_DIR, "include", Scope.PUBLIC)],
        [],
    )
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from prefixlink.core.export.locking import atomic_write, exclusive_lock
from prefixlink.core.manifest.codec import encode, manifest_path
from prefixlink.core.manifest.models import (
    DependencyRef,
    ExportEntry,
    Manifest,
    PackageIdentity,
)
from prefixlink.core.paths import PathResolver
from prefixlink.core.resolution.merger import ScopeMerger
from prefixlink.core.resolution.walker import GraphWalker
from prefixlink.exceptions import PrefixAlreadyExported

logger = logging.getLogger(__name__)


class Exporter:
    """Write a package's manifest beneath its install prefix.

    Args:
        walker: Graph walker used for the pre-write resolution check. Sharing
            one walker (and thus its cache) across exports in one process
            avoids re-reading upstream manifests.
        path_resolver: Resolver used during the pre-write merge.
        strict_relocation: Require in-prefix paths to be recorded relative.
    """

    def __init__(
        self,
        walker: GraphWalker | None = None,
        path_resolver: PathResolver | None = None,
        strict_relocation: bool = False,
    ) -> None:
        self._walker = walker if walker is not None else GraphWalker()
        self._resolver = path_resolver if path_resolver is not None else PathResolver(
            strict_relocation=strict_relocation,
        )
        self._strict = strict_relocation

    def export(
        self,
        identity: PackageIdentity,
        own_exports: Sequence[ExportEntry],
        direct_deps: Sequence[DependencyRef],
    ) -> Manifest:
        """Export the manifest for *identity*.

        Returns:
            The exported ``Manifest`` (the existing one on an idempotent
            re-export).

        Raises:
            ValueError: If the manifest contents are invalid (e.g. a package
                listing itself as a dependency).
            PathEscapesPrefix: In strict relocation mode.
            PrefixAlreadyExported: If the prefix holds a different manifest.
            DependencyNotFound, DependencyCycle, VersionConflict,
            MalformedManifest: From the pre-write resolution check.
        """
        manifest = Manifest(
            identity=identity,
            exports=tuple(own_exports),
            dependencies=tuple(direct_deps),
        )
        if self._strict:
            self._check_relocatable(manifest)

        data = encode(manifest)
        target = manifest_path(identity.prefix)

        with exclusive_lock(target):
            if target.exists():
                if target.read_bytes() == data:
                    logger.info("Manifest for %s already exported, unchanged", identity.label)
                    self._walker.cache.put(manifest)
                    return manifest
                raise PrefixAlreadyExported(identity, str(target))

            ScopeMerger(self._walker, self._resolver).merge(
                identity,
                manifest.dependencies,
                own_build=True,
                root_exports=manifest.exports,
            )
            atomic_write(target, data)

        self._walker.cache.put(manifest)
        logger.info(
            "Exported %s (%d exports, %d dependencies) to %s",
            identity.label, len(manifest.exports), len(manifest.dependencies), target,
        )
        return manifest

    def _check_relocatable(self, manifest: Manifest) -> None:
        checker = PathResolver(strict_relocation=True)
        for entry in manifest.exports:
            if entry.kind.is_path:
                checker.normalize(manifest.identity.prefix, entry.value)
