"""Path resolution for exported paths beneath an install prefix.

Exported path values are recorded either relative to the exporting package's
prefix or as absolute paths. Absolute paths are legitimate for dependencies
discovered on the host (``/usr/lib/x86_64-linux-gnu/libpthread.so``), but a
*relocatable* package must record everything it ships relative to its own
prefix. Strict relocation mode enforces that.

All operations are lexical (``posixpath.normpath``); the filesystem is only
touched when the caller opts into ``check_exists``.
"""

from __future__ import annotations

import os
import posixpath
from dataclasses import dataclass

from prefixlink.exceptions import PathEscapesPrefix


def is_within(prefix: str, path: str) -> bool:
    """Return True if absolute *path* is *prefix* or lies beneath it."""
    prefix = posixpath.normpath(prefix)
    path = posixpath.normpath(path)
    if prefix == "/":
        return True
    return path == prefix or path.startswith(prefix + "/")


@dataclass(frozen=True)
class PathResolver:
    """Normalise exported paths against the owning package's prefix.

    Attributes:
        strict_relocation: Reject absolute paths that point inside the prefix
            and relative paths that climb out of it.
        check_exists: Require the normalised path to exist on disk.
    """

    strict_relocation: bool = False
    check_exists: bool = False

    def normalize(self, prefix: str, raw: str) -> str:
        """Return the absolute path for *raw* as recorded under *prefix*.

        Args:
            prefix: Absolute install prefix of the package that exported *raw*.
            raw: Path as written in the export entry.

        Returns:
            A lexically normalised absolute path.

        Raises:
            ValueError: If *prefix* is not absolute.
            PathEscapesPrefix: In strict relocation mode, for a path that
                would break relocation.
            FileNotFoundError: With ``check_exists``, if the path is missing.
        """
        if not posixpath.isabs(prefix):
            raise ValueError(f"Install prefix must be absolute: {prefix!r}")

        if posixpath.isabs(raw):
            resolved = posixpath.normpath(raw)
            if self.strict_relocation and is_within(prefix, resolved):
                raise PathEscapesPrefix(
                    prefix, raw,
                    "absolute path inside the prefix must be recorded relative "
                    f"(use {relativize(prefix, resolved)!r})",
                )
        else:
            resolved = posixpath.normpath(posixpath.join(prefix, raw))
            if self.strict_relocation and not is_within(prefix, resolved):
                raise PathEscapesPrefix(prefix, raw, "relative path leaves the prefix")

        if self.check_exists and not os.path.exists(resolved):
            raise FileNotFoundError(f"Exported path does not exist: {resolved}")
        return resolved


def relativize(prefix: str, path: str) -> str:
    """Express absolute *path* relative to *prefix* (``"."`` for the prefix itself)."""
    return posixpath.relpath(posixpath.normpath(path), posixpath.normpath(prefix))
