"""prefixlink exception hierarchy.

All public exceptions inherit from PrefixLinkError, giving callers a single
base class to catch when they want to handle any prefixlink-specific failure
without swallowing unrelated errors.

Every error kind carries a stable ``kind`` string and a distinct
``exit_code`` so that scripts can tell failure classes apart without parsing
free text. None of these conditions is transient; nothing here is retried.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from prefixlink.core.manifest.models import PackageIdentity


class PrefixLinkError(Exception):
    """Base exception for all prefixlink errors."""

    exit_code: int = 1

    @property
    def kind(self) -> str:
        """Stable error-kind token (the class name)."""
        return type(self).__name__


class MalformedManifest(PrefixLinkError):
    """Raised when a manifest (or an exports/deps input file) cannot be decoded.

    Covers invalid JSON, unknown format versions, missing or unexpected
    fields, and unknown export kind or scope tokens. Unknown tokens are a hard
    failure: a reader must never propagate a partial configuration.
    """

    exit_code = 10

    def __init__(self, reason: str, path: str | None = None) -> None:
        self.reason = reason
        self.path = path
        where = f" ({path})" if path else ""
        super().__init__(f"malformed manifest{where}: {reason}")


class DependencyNotFound(PrefixLinkError):
    """Raised when a dependency's manifest is missing from its recorded prefix.

    Prefixes are absolute and fixed at export time, so this always means a
    corrupted or incomplete install rather than a search miss.
    """

    exit_code = 11

    def __init__(
        self,
        identity: PackageIdentity,
        manifest_path: str,
        detail: str = "no manifest found",
    ) -> None:
        self.identity = identity
        self.manifest_path = manifest_path
        self.detail = detail
        super().__init__(
            f"dependency {identity} not found: {detail} at {manifest_path}"
        )


class DependencyCycle(PrefixLinkError):
    """Raised when following dependency edges revisits an identity on the stack.

    ``cycle`` holds the full path, starting and ending with the same identity
    (e.g. ``[A, B, A]``).
    """

    exit_code = 12

    def __init__(self, cycle: Sequence[PackageIdentity]) -> None:
        self.cycle = list(cycle)
        path = " -> ".join(ident.label for ident in self.cycle)
        super().__init__(f"dependency cycle: {path}")


class VersionConflict(PrefixLinkError):
    """Raised when the closure holds two incompatible installs of one package.

    Two identities share a ``name`` but differ in ``spec`` (or in prefix for
    the same spec). Both reachability paths are reported; no winner is ever
    picked here, that is the package-selection system's job.
    """

    exit_code = 13

    def __init__(
        self,
        name: str,
        first: PackageIdentity,
        first_path: Sequence[PackageIdentity],
        second: PackageIdentity,
        second_path: Sequence[PackageIdentity],
    ) -> None:
        self.name = name
        self.first = first
        self.first_path = list(first_path)
        self.second = second
        self.second_path = list(second_path)
        super().__init__(
            f"version conflict on {name!r}: "
            f"{_describe(first)} via {_render_path(self.first_path)} "
            f"vs {_describe(second)} via {_render_path(self.second_path)}"
        )


class PrefixAlreadyExported(PrefixLinkError):
    """Raised when re-exporting different content to an already-claimed prefix.

    Installed prefixes are immutable. Re-exporting byte-identical content is
    accepted; anything else must go to a new prefix.
    """

    exit_code = 14

    def __init__(self, identity: PackageIdentity, manifest_path: str) -> None:
        self.identity = identity
        self.manifest_path = manifest_path
        super().__init__(
            f"prefix {identity.prefix} already holds a different manifest "
            f"({manifest_path}); refusing to re-export {identity.label}"
        )


class PathEscapesPrefix(PrefixLinkError):
    """Raised in strict relocation mode for a path that breaks relocatability.

    Either an absolute path inside the prefix (must be recorded relative) or
    a relative path that climbs out of the prefix.
    """

    exit_code = 15

    def __init__(self, prefix: str, raw: str, detail: str) -> None:
        self.prefix = prefix
        self.raw = raw
        self.detail = detail
        super().__init__(f"path {raw!r} under prefix {prefix}: {detail}")


def _describe(identity: PackageIdentity) -> str:
    return f"{identity.label} ({identity.prefix})"


def _render_path(path: Sequence[PackageIdentity]) -> str:
    if not path:
        return "<root>"
    return " -> ".join(ident.label for ident in path)
