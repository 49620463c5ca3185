"""Loading of hand-written ``--exports`` / ``--deps`` files and ``--identity``.

Both files are YAML (JSON is accepted too, being a YAML subset) holding a
list of mappings::

    # exports.yaml
    - {kind: shared-library, value: lib/libfoo.so, scope: public}
    - {kind: header-dir, value: include, scope: public}
    - {kind: compile-flag, value: -DFOO_INTERNAL, scope: private}

    # deps.yaml
    - name: zlib
      spec: 1.3.1
      prefix: /opt/pkgs/zlib-1.3.1-a1b2
      required_scope: [public]     # optional, defaults to [public]

Entries are validated with the same rules as manifests; any problem is a
``MalformedManifest`` naming the file. Every value must be a YAML string, so
a spec such as ``"1.14"`` needs quoting.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import click
import yaml

from prefixlink.core.manifest.codec import dependency_from_dict, export_from_dict
from prefixlink.core.manifest.models import (
    DependencyRef,
    ExportEntry,
    PackageIdentity,
    Scope,
)
from prefixlink.exceptions import MalformedManifest

_DEFAULT_REQUIRED_SCOPE = frozenset({Scope.PUBLIC})


def parse_identity(
    ctx: click.Context | None, param: click.Parameter | None, value: str | None
) -> PackageIdentity | None:
    """Click callback turning ``name@spec@/prefix`` into a ``PackageIdentity``."""
    if value is None:
        return None
    try:
        return PackageIdentity.parse(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc), ctx=ctx, param=param) from exc


def _load_list(path: Path) -> list[Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except UnicodeDecodeError as exc:
        raise MalformedManifest(f"not UTF-8: {exc}", path=str(path)) from exc
    except yaml.YAMLError as exc:
        raise MalformedManifest(f"invalid YAML: {exc}", path=str(path)) from exc
    if data is None:
        return []
    if not isinstance(data, list):
        raise MalformedManifest(
            f"expected a list of entries, got {type(data).__name__}", path=str(path)
        )
    return data


def load_exports(path: Path) -> list[ExportEntry]:
    """Read an exports file."""
    try:
        return [
            export_from_dict(item, f"exports[{i}]")
            for i, item in enumerate(_load_list(path))
        ]
    except MalformedManifest as exc:
        if exc.path is not None:
            raise
        raise MalformedManifest(exc.reason, path=str(path)) from exc


def load_dependencies(path: Path | None) -> list[DependencyRef]:
    """Read a deps file; a missing option means no dependencies."""
    if path is None:
        return []
    try:
        return [
            dependency_from_dict(item, f"deps[{i}]", default_scope=_DEFAULT_REQUIRED_SCOPE)
            for i, item in enumerate(_load_list(path))
        ]
    except MalformedManifest as exc:
        if exc.path is not None:
            raise
        raise MalformedManifest(exc.reason, path=str(path)) from exc
