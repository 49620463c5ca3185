"""Shared fixtures for prefixlink tests.

``store`` lays out fake install prefixes under a temporary directory and
writes manifests straight to their well-known location, bypassing the
exporter so that tests can build broken graphs (cycles, missing
dependencies, conflicting specs) on purpose.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any

import pytest
import yaml
from click.testing import CliRunner

from prefixlink.core.manifest import (
    DependencyRef,
    ExportEntry,
    ExportKind,
    Manifest,
    PackageIdentity,
    Scope,
    encode,
    manifest_path,
)


def _entry(kind: str, value: str, scope: str = "public") -> ExportEntry:
    """Convenience factory: ``_entry("header-dir", "include", "public")``."""
    return ExportEntry(kind=ExportKind(kind), value=value, scope=Scope(scope))


class PackageStore:
    """Fake install tree: one prefix per (name, spec) under *root*."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def identity(self, name: str, spec: str = "1.0") -> PackageIdentity:
        return PackageIdentity(name=name, spec=spec, prefix=str(self.root / f"{name}-{spec}"))

    def ref(
        self, name: str, spec: str = "1.0", scopes: Iterable[str] = ("public",)
    ) -> DependencyRef:
        return DependencyRef(self.identity(name, spec), frozenset(Scope(s) for s in scopes))

    def install(
        self,
        name: str,
        spec: str = "1.0",
        exports: Iterable[ExportEntry] = (),
        deps: Iterable[DependencyRef | PackageIdentity] = (),
    ) -> PackageIdentity:
        """Write a manifest for name@spec and return its identity."""
        ident = self.identity(name, spec)
        refs = tuple(d if isinstance(d, DependencyRef) else DependencyRef(d) for d in deps)
        manifest = Manifest(identity=ident, exports=tuple(exports), dependencies=refs)
        path = manifest_path(ident.prefix)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(encode(manifest))
        return ident


@pytest.fixture
def store(tmp_path: Path) -> PackageStore:
    """Create an empty fake install tree."""
    root = tmp_path / "opt"
    root.mkdir()
    return PackageStore(root)


@pytest.fixture
def scoped_chain(store: PackageStore) -> dict[str, PackageIdentity]:
    """A <- B <- C, where A exports one entry per scope.

    A: public lib/liba.so, interface include, private -DA_INTERNAL.
    B: public lib/libb.a, interface -DUSE_B, private -DB_INTERNAL.
    C: no exports.
    """
    a = store.install("a", exports=[
        _entry("shared-library", "lib/liba.so", "public"),
        _entry("header-dir", "include", "interface"),
        _entry("compile-flag", "-DA_INTERNAL", "private"),
    ])
    b = store.install("b", exports=[
        _entry("static-library", "lib/libb.a", "public"),
        _entry("compile-flag", "-DUSE_B", "interface"),
        _entry("compile-flag", "-DB_INTERNAL", "private"),
    ], deps=[a])
    c = store.install("c", deps=[b])
    return {"a": a, "b": b, "c": c}


@pytest.fixture
def runner() -> CliRunner:
    """Create a Click CliRunner for invoking commands."""
    return CliRunner()


@pytest.fixture
def write_yaml(tmp_path: Path):
    """Return a helper that dumps a list of mappings to ``<tmp>/inputs/<name>``.

    A plain string is written verbatim, for malformed-input tests.
    """
    inputs = tmp_path / "inputs"
    inputs.mkdir()

    def _write(name: str, entries: list[dict[str, Any]] | str) -> Path:
        path = inputs / name
        if isinstance(entries, str):
            path.write_text(entries)
        else:
            path.write_text(yaml.safe_dump(entries, sort_keys=False))
        return path

    return _write
