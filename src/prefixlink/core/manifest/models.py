"""Manifest data models — identities, exports, dependency refs, manifests.

Defines the data structures recorded in a package's manifest and the
flattened ``ResolvedConfiguration`` produced by merging a dependency closure.
These are pure data holders with construction-time validation and no I/O,
making them safe to import from every other module.

Export kinds and scopes are closed enumerations. The merger dispatches on
``ExportKind`` in one place, so adding a kind means extending the enum and
that single mapping.
"""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


# ---------------------------------------------------------------------------
# ExportKind & Scope: closed token sets
# ---------------------------------------------------------------------------


class ExportKind(Enum):
    """Type of a single exported build attribute."""

    STATIC_LIBRARY = "static-library"
    SHARED_LIBRARY = "shared-library"
    HEADER_DIR = "header-dir"
    DATA_PATH = "data-path"
    COMPILE_FLAG = "compile-flag"
    LINK_FLAG = "link-flag"

    @property
    def is_path(self) -> bool:
        """True for kinds whose value is a filesystem path."""
        return self not in (ExportKind.COMPILE_FLAG, ExportKind.LINK_FLAG)

    @property
    def is_library(self) -> bool:
        return self in (ExportKind.STATIC_LIBRARY, ExportKind.SHARED_LIBRARY)


class Scope(Enum):
    """Visibility class of an export.

    - **PRIVATE**: needed only to build the exporting package; never
      propagated.
    - **INTERFACE**: not needed by the exporting package itself, but needed by
      every downstream consumer.
    - **PUBLIC**: needed both by the exporting package and by every consumer.
    """

    PRIVATE = "private"
    INTERFACE = "interface"
    PUBLIC = "public"

    @property
    def propagates(self) -> bool:
        """True if consumers of the exporting package see this entry."""
        return self is not Scope.PRIVATE

    @property
    def builds_self(self) -> bool:
        """True if the exporting package's own build needs this entry."""
        return self is not Scope.INTERFACE


PROPAGATING_SCOPES: frozenset[Scope] = frozenset(s for s in Scope if s.propagates)


# ---------------------------------------------------------------------------
# PackageIdentity
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PackageIdentity:
    """One installed configuration of a package.

    The pair (name, spec) maps to exactly one install prefix for the lifetime
    of the installation. Once exported, the prefix is immutable.

    Attributes:
        name: Package name (e.g., "zlib"). Must not contain ``@``.
        spec: Opaque version-and-configuration spec (e.g., "1.3.1+shared").
        prefix: Absolute install prefix, lexically normalised so that
            ``/opt/zlib/`` and ``/opt/zlib`` name the same install.
    """

    name: str
    spec: str
    prefix: str

    def __post_init__(self) -> None:
        if not self.name or "@" in self.name:
            raise ValueError(f"Invalid package name: {self.name!r}")
        if not self.spec:
            raise ValueError(f"Empty spec for package {self.name!r}")
        if not posixpath.isabs(self.prefix):
            raise ValueError(
                f"Install prefix for {self.name!r} must be absolute: {self.prefix!r}"
            )
        object.__setattr__(self, "prefix", posixpath.normpath(self.prefix))

    @classmethod
    def parse(cls, text: str) -> PackageIdentity:
        """Parse the ``name@spec@/abs/prefix`` form.

        The name ends at the first ``@``; the prefix starts at the first
        ``@/`` after it, so a spec string may itself contain ``@``
        (``hdf5@1.14@mpi@/opt/hdf5``).

        Raises:
            ValueError: If the string does not have that shape.
        """
        name, sep, rest = text.strip().partition("@")
        if not sep:
            raise ValueError(f"Expected name@spec@prefix, got {text!r}")
        cut = rest.find("@/")
        if cut < 0:
            raise ValueError(f"Missing absolute prefix in identity {text!r}")
        return cls(name=name, spec=rest[:cut], prefix=rest[cut + 1:])

    @property
    def label(self) -> str:
        """Short ``name@spec`` form used in diagnostics."""
        return f"{self.name}@{self.spec}"

    def __str__(self) -> str:
        return f"{self.name}@{self.spec}@{self.prefix}"


# ---------------------------------------------------------------------------
# ExportEntry & DependencyRef
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ExportEntry:
    """A typed build attribute a package makes available, tagged with a scope.

    ``value`` is a path (prefix-relative or absolute) for path kinds and a
    literal flag string for flag kinds. The scope is fixed at export time.
    """

    kind: ExportKind
    value: str
    scope: Scope = Scope.PUBLIC

    def __post_init__(self) -> None:
        if not isinstance(self.kind, ExportKind):
            raise ValueError(f"Unknown export kind: {self.kind!r}")
        if not isinstance(self.scope, Scope):
            raise ValueError(f"Unknown scope: {self.scope!r}")
        if not self.value:
            raise ValueError(f"Empty value for {self.kind.value} export")


@dataclass(frozen=True)
class DependencyRef:
    """A direct dependency edge, carrying the dependency's absolute identity.

    ``required_scope`` says how the dependent uses the dependency:
    ``PUBLIC`` means the dependent needs it to build itself (and passes it on
    to consumers); ``INTERFACE`` means only the dependent's consumers need it.
    ``PRIVATE`` is not allowed here.
    """

    identity: PackageIdentity
    required_scope: frozenset[Scope] = frozenset({Scope.PUBLIC})

    def __post_init__(self) -> None:
        scopes = frozenset(self.required_scope)
        object.__setattr__(self, "required_scope", scopes)
        if not scopes:
            raise ValueError(
                f"Dependency on {self.identity.label} has an empty required_scope"
            )
        if not scopes <= PROPAGATING_SCOPES:
            raise ValueError(
                f"Dependency on {self.identity.label} may only require "
                f"'interface' or 'public' scope, got "
                f"{sorted(s.value for s in scopes)}"
            )

    @property
    def needed_for_build(self) -> bool:
        """True if the dependent's own build uses this dependency."""
        return Scope.PUBLIC in self.required_scope


# ---------------------------------------------------------------------------
# Manifest
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Manifest:
    """The persisted record of one installed package.

    Created once by the exporter and read-only afterwards. Lists passed to
    the constructor are frozen into tuples.

    Attributes:
        identity: The package this manifest describes.
        exports: Own exports, in declaration order.
        dependencies: Direct dependencies, in declaration order.
    """

    identity: PackageIdentity
    exports: tuple[ExportEntry, ...] = ()
    dependencies: tuple[DependencyRef, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "exports", tuple(self.exports))
        object.__setattr__(self, "dependencies", tuple(self.dependencies))
        seen: set[PackageIdentity] = set()
        for ref in self.dependencies:
            if ref.identity == self.identity:
                raise ValueError(f"{self.identity.label} depends on itself")
            if ref.identity in seen:
                raise ValueError(
                    f"{self.identity.label} lists {ref.identity.label} twice"
                )
            seen.add(ref.identity)

    def exports_in(self, scopes: frozenset[Scope]) -> list[ExportEntry]:
        """Return own exports whose scope is in *scopes*, in declaration order."""
        return [e for e in self.exports if e.scope in scopes]


# ---------------------------------------------------------------------------
# ResolvedConfiguration: the merger's output
# ---------------------------------------------------------------------------


@dataclass
class ResolvedConfiguration:
    """Flattened build configuration for one resolution request.

    Produced transiently by the merger and never persisted. Set-valued fields
    (include dirs, compile flags, data paths) are kept as first-occurrence
    ordered lists so output is stable across runs.

    Attributes:
        link_libraries: Library paths, deduplicated, dependencies first.
        include_dirs: Header directories (set semantics).
        compile_flags: Compiler flags (set semantics).
        link_flags: Linker flags, in merge order, not deduplicated.
        data_paths: Data file/directory paths (set semantics).
        packages: Identities whose exports were merged, in merge order.
    """

    link_libraries: list[str] = field(default_factory=list)
    include_dirs: list[str] = field(default_factory=list)
    compile_flags: list[str] = field(default_factory=list)
    link_flags: list[str] = field(default_factory=list)
    data_paths: list[str] = field(default_factory=list)
    packages: list[PackageIdentity] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-ready dict with stable keys."""
        return {
            "link_libraries": list(self.link_libraries),
            "include_dirs": list(self.include_dirs),
            "compile_flags": list(self.compile_flags),
            "link_flags": list(self.link_flags),
            "data_paths": list(self.data_paths),
            "packages": [str(ident) for ident in self.packages],
        }
