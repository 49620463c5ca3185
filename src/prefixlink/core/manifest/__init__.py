"""Package manifests --- the persisted export record of one installed package.

The package is split into focused submodules:

- ``models``: Data classes (``PackageIdentity``, ``ExportEntry``,
  ``DependencyRef``, ``Manifest``, ``ResolvedConfiguration``) and the closed
  ``ExportKind`` / ``Scope`` enumerations.
- ``codec``: Deterministic JSON encoding, strict decoding, and the
  well-known on-disk location beneath an install prefix.

All public names are re-exported here so callers can write
``from prefixlink.core.manifest import Manifest``.
"""

from prefixlink.core.manifest.codec import (
    FORMAT_VERSION,
    MANIFEST_DIRNAME,
    MANIFEST_FILENAME,
    decode,
    encode,
    manifest_path,
    read_manifest,
)
from prefixlink.core.manifest.models import (
    PROPAGATING_SCOPES,
    DependencyRef,
    ExportEntry,
    ExportKind,
    Manifest,
    PackageIdentity,
    ResolvedConfiguration,
    Scope,
)

__all__ = [
    "DependencyRef",
    "ExportEntry",
    "ExportKind",
    "FORMAT_VERSION",
    "MANIFEST_DIRNAME",
    "MANIFEST_FILENAME",
    "Manifest",
    "PROPAGATING_SCOPES",
    "PackageIdentity",
    "ResolvedConfiguration",
    "Scope",
    "decode",
    "encode",
    "manifest_path",
    "read_manifest",
]
