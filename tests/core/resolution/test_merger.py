"""Tests for the scope-aware merger.

Covers the resolution properties the engine guarantees:
    - Scope propagation (private never leaves its package).
    - Own-build merges add the root's private entries only.
    - Diamond convergence (one copy of shared exports).
    - Diamond conflict (VersionConflict naming both specs and paths).
    - Link order stability (dependencies before dependents).
    - Per-kind merge rules (dedup, ordering, path normalisation).
"""

from __future__ import annotations

import pytest

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
from prefixlink.core.paths import PathResolver
from prefixlink.core.resolution import (
    GraphWalker,
    ManifestCache,
    ResolveOptions,
    ScopeMerger,
    resolve_consumer,
    resolve_own_build,
)
from prefixlink.exceptions import DependencyCycle, PathEscapesPrefix, VersionConflict


def _entry(kind: str, value: str, scope: str = "public") -> ExportEntry:
    return ExportEntry(kind=ExportKind(kind), value=value, scope=Scope(scope))


def _flat(config) -> set[str]:
    """Every value in a configuration, for membership checks."""
    return {v for key, values in config.to_dict().items() if key != "packages" for v in values}


# ===========================================================================
# Scope propagation
# ===========================================================================


class TestScopePropagation:
    """A exports public/interface/private; B depends on A; C depends on B."""

    def test_consumer_of_c_sees_a_public_and_interface(self, scoped_chain) -> None:
        a = scoped_chain["a"]
        config = resolve_consumer(scoped_chain["c"])
        assert f"{a.prefix}/lib/liba.so" in config.link_libraries
        assert f"{a.prefix}/include" in config.include_dirs
        assert "-DA_INTERNAL" not in config.compile_flags

    def test_consumer_of_c_sees_b_public_and_interface(self, scoped_chain) -> None:
        b = scoped_chain["b"]
        config = resolve_consumer(scoped_chain["c"])
        assert f"{b.prefix}/lib/libb.a" in config.link_libraries
        assert "-DUSE_B" in config.compile_flags
        assert "-DB_INTERNAL" not in config.compile_flags

    def test_merge_for_c_from_its_direct_deps(self, store, scoped_chain) -> None:
        config = ScopeMerger().merge(scoped_chain["c"], [DependencyRef(scoped_chain["b"])])
        assert config.compile_flags == ["-DUSE_B"]
        assert config.packages == [scoped_chain["a"], scoped_chain["b"]]

    def test_own_build_of_b_adds_b_private_only(self, scoped_chain) -> None:
        a, b = scoped_chain["a"], scoped_chain["b"]
        config = resolve_own_build(b)
        assert "-DB_INTERNAL" in config.compile_flags
        assert "-DA_INTERNAL" not in config.compile_flags
        assert f"{a.prefix}/lib/liba.so" in config.link_libraries
        assert f"{a.prefix}/include" in config.include_dirs

    def test_own_build_excludes_root_interface_entries(self, scoped_chain) -> None:
        config = resolve_own_build(scoped_chain["b"])
        assert "-DUSE_B" not in config.compile_flags
        assert f"{scoped_chain['b'].prefix}/lib/libb.a" in config.link_libraries

    def test_own_build_root_merged_last(self, scoped_chain) -> None:
        config = resolve_own_build(scoped_chain["b"])
        assert config.packages == [scoped_chain["a"], scoped_chain["b"]]

    def test_own_build_requires_root(self) -> None:
        with pytest.raises(ValueError, match="root identity"):
            ScopeMerger().merge(None, [], own_build=True)


class TestRequiredScope:
    """Interface-only direct deps serve consumers, not the root's own build."""

    def test_interface_only_dep_skipped_for_own_build(self, store) -> None:
        store.install("hdr", exports=[_entry("header-dir", "include")])
        store.install("lib", exports=[_entry("shared-library", "lib/liblib.so")])
        app = store.install("app", deps=[
            store.ref("hdr", scopes=["interface"]),
            store.ref("lib", scopes=["public"]),
        ])
        config = resolve_own_build(app)
        assert config.include_dirs == []
        assert config.link_libraries == [f"{store.identity('lib').prefix}/lib/liblib.so"]

    def test_interface_only_dep_visible_to_consumers(self, store) -> None:
        hdr = store.install("hdr", exports=[_entry("header-dir", "include")])
        app = store.install("app", deps=[store.ref("hdr", scopes=["interface"])])
        config = resolve_consumer(app)
        assert config.include_dirs == [f"{hdr.prefix}/include"]

    def test_interface_only_dep_still_checked_for_conflicts(self, store) -> None:
        store.install("z", "1")
        store.install("z", "2")
        store.install("hdr", deps=[store.identity("z", "2")])
        store.install("lib", deps=[store.identity("z", "1")])
        app = store.install("app", deps=[
            store.ref("lib"),
            store.ref("hdr", scopes=["interface"]),
        ])
        with pytest.raises(VersionConflict):
            resolve_own_build(app)


# ===========================================================================
# Diamonds
# ===========================================================================


class TestDiamond:
    """D depends on B and E; B and E both depend on A."""

    def _diamond(self, store, spec_via_b: str, spec_via_e: str) -> PackageIdentity:
        for spec in {spec_via_b, spec_via_e}:
            store.install("a", spec, exports=[
                _entry("shared-library", "lib/liba.so"),
                _entry("header-dir", "include"),
                _entry("compile-flag", "-DA"),
                _entry("link-flag", "-Wl,--as-needed", "interface"),
                _entry("data-path", "share/a"),
            ])
        store.install("b", deps=[store.identity("a", spec_via_b)])
        store.install("e", deps=[store.identity("a", spec_via_e)])
        return store.install("d", deps=[store.identity("b"), store.identity("e")])

    def test_convergence_single_copy(self, store) -> None:
        d = self._diamond(store, "1.0", "1.0")
        a = store.identity("a", "1.0")
        config = resolve_consumer(d)
        assert config.link_libraries.count(f"{a.prefix}/lib/liba.so") == 1
        assert config.include_dirs.count(f"{a.prefix}/include") == 1
        assert config.compile_flags.count("-DA") == 1
        assert config.link_flags.count("-Wl,--as-needed") == 1
        assert config.data_paths.count(f"{a.prefix}/share/a") == 1
        assert config.packages.count(a) == 1

    def test_conflict_names_specs_and_paths(self, store) -> None:
        d = self._diamond(store, "1.0", "2.0")
        with pytest.raises(VersionConflict) as info:
            resolve_own_build(d)
        err = info.value
        assert err.name == "a"
        assert {err.first.spec, err.second.spec} == {"1.0", "2.0"}
        assert [i.label for i in err.first_path] == ["d@1.0", "b@1.0", "a@1.0"]
        assert [i.label for i in err.second_path] == ["d@1.0", "e@1.0", "a@2.0"]
        message = str(err)
        assert "a@1.0" in message and "a@2.0" in message
        assert "d@1.0 -> b@1.0 -> a@1.0" in message
        assert "d@1.0 -> e@1.0 -> a@2.0" in message
        assert err.exit_code == 13

    def test_conflict_also_raised_for_consumers(self, store) -> None:
        d = self._diamond(store, "1.0", "2.0")
        with pytest.raises(VersionConflict):
            resolve_consumer(d)

    def test_same_spec_at_two_prefixes_conflicts(self, store) -> None:
        a1 = store.install("a", "1.0")
        a_elsewhere = PackageIdentity("a", "1.0", a1.prefix + "-copy")
        store.install("b", deps=[a1])
        path = manifest_path(a_elsewhere.prefix)
        path.parent.mkdir(parents=True)
        path.write_bytes(encode(Manifest(a_elsewhere)))
        store.install("e", deps=[a_elsewhere])
        d = store.install("d", deps=[store.identity("b"), store.identity("e")])
        with pytest.raises(VersionConflict):
            resolve_consumer(d)

    def test_trailing_slash_prefix_converges(self, store) -> None:
        """A manifest spelling a's prefix with a trailing slash names the same install."""
        a = store.install("a", exports=[_entry("shared-library", "lib/liba.so")])
        store.install("b", deps=[a])
        e = store.identity("e")
        raw = encode(Manifest(e, dependencies=(DependencyRef(a),)))
        path = manifest_path(e.prefix)
        path.parent.mkdir(parents=True)
        path.write_bytes(raw.replace(f'"{a.prefix}"'.encode(), f'"{a.prefix}/"'.encode()))
        d = store.install("d", deps=[store.identity("b"), e])
        config = resolve_consumer(d)
        assert config.packages.count(a) == 1
        assert config.link_libraries == [f"{a.prefix}/lib/liba.so"]

    def test_root_name_conflicts_with_dependency(self, store) -> None:
        store.install("tool", "old")
        lib = store.install("lib", deps=[store.identity("tool", "old")])
        root = store.identity("tool", "new")
        with pytest.raises(VersionConflict) as info:
            ScopeMerger().merge(root, [DependencyRef(lib)], own_build=True)
        assert info.value.first == root
        assert [i.label for i in info.value.second_path] == ["tool@new", "lib@1.0", "tool@old"]


# ===========================================================================
# Ordering
# ===========================================================================


class TestOrdering:

    def test_link_order_dependencies_first(self, store) -> None:
        """Chain A -> B -> C: C's libraries precede B's for any consumer of B."""
        c = store.install("c", exports=[_entry("static-library", "lib/libc.a")])
        b = store.install("b", exports=[_entry("static-library", "lib/libb.a")], deps=[c])
        store.install("a", exports=[_entry("static-library", "lib/liba.a")], deps=[b])
        libs = resolve_consumer(store.identity("a")).link_libraries
        assert libs.index(f"{c.prefix}/lib/libc.a") < libs.index(f"{b.prefix}/lib/libb.a")
        libs_b = resolve_consumer(b).link_libraries
        assert libs_b == [f"{c.prefix}/lib/libc.a", f"{b.prefix}/lib/libb.a"]

    def test_link_flags_keep_order_and_duplicates(self, store) -> None:
        store.install("x", exports=[
            _entry("link-flag", "-Wl,--start-group"),
            _entry("link-flag", "-lm"),
        ])
        store.install("y", exports=[
            _entry("link-flag", "-Wl,--start-group"),
        ])
        app = store.install("app", deps=[store.identity("x"), store.identity("y")])
        flags = resolve_consumer(app).link_flags
        assert flags == ["-Wl,--start-group", "-lm", "-Wl,--start-group"]

    def test_compile_flags_deduplicated_across_packages(self, store) -> None:
        store.install("x", exports=[_entry("compile-flag", "-fPIC")])
        store.install("y", exports=[_entry("compile-flag", "-fPIC"), _entry("compile-flag", "-O2")])
        app = store.install("app", deps=[store.identity("x"), store.identity("y")])
        assert resolve_consumer(app).compile_flags == ["-fPIC", "-O2"]

    def test_same_system_library_from_two_packages_once(self, store) -> None:
        system = "/usr/lib/libpthread.so"
        store.install("x", exports=[_entry("shared-library", system)])
        store.install("y", exports=[_entry("shared-library", system)])
        app = store.install("app", deps=[store.identity("x"), store.identity("y")])
        assert resolve_consumer(app).link_libraries == [system]

    def test_both_library_kinds_share_link_order(self, store) -> None:
        x = store.install("x", exports=[
            _entry("shared-library", "lib/libx.so"),
            _entry("static-library", "lib/libx_extra.a"),
        ])
        assert resolve_consumer(x).link_libraries == [
            f"{x.prefix}/lib/libx.so", f"{x.prefix}/lib/libx_extra.a",
        ]


# ===========================================================================
# Paths & options
# ===========================================================================


class TestPathsAndOptions:

    def test_paths_resolved_against_owning_prefix(self, store) -> None:
        inner = store.install("inner", exports=[_entry("header-dir", "include")])
        outer = store.install("outer", exports=[_entry("header-dir", "include")], deps=[inner])
        assert resolve_consumer(outer).include_dirs == [
            f"{inner.prefix}/include", f"{outer.prefix}/include",
        ]

    def test_flags_not_treated_as_paths(self, store) -> None:
        x = store.install("x", exports=[_entry("compile-flag", "include")])
        assert resolve_consumer(x).compile_flags == ["include"]

    def test_strict_relocation_applies_during_merge(self, store) -> None:
        prefix = store.identity("x").prefix
        x = store.install("x", exports=[_entry("header-dir", f"{prefix}/include")])
        assert resolve_consumer(x).include_dirs == [f"{prefix}/include"]
        with pytest.raises(PathEscapesPrefix):
            resolve_consumer(x, ResolveOptions(strict_relocation=True))

    def test_check_exists(self, store) -> None:
        x = store.install("x", exports=[_entry("data-path", "share/x")])
        with pytest.raises(FileNotFoundError):
            resolve_consumer(x, ResolveOptions(check_exists=True))
        (store.root / "x-1.0" / "share" / "x").mkdir(parents=True)
        assert resolve_consumer(x, ResolveOptions(check_exists=True)).data_paths

    def test_shared_cache_reused(self, store, scoped_chain) -> None:
        cache = ManifestCache()
        resolve_consumer(scoped_chain["c"], cache=cache)
        assert len(cache) == 3
        resolve_own_build(scoped_chain["b"], cache=cache)
        assert len(cache) == 3

    def test_custom_resolver_used(self, store) -> None:
        x = store.install("x", exports=[_entry("header-dir", "../escape")])
        merger = ScopeMerger(GraphWalker(), PathResolver(strict_relocation=True))
        with pytest.raises(PathEscapesPrefix):
            merger.merge(None, [DependencyRef(x)])

    def test_cycle_surfaces_through_merge(self, store) -> None:
        a = store.install("a", deps=[store.identity("b")])
        store.install("b", deps=[a])
        with pytest.raises(DependencyCycle):
            resolve_consumer(a)


class TestEmpty:

    def test_no_dependencies(self, store) -> None:
        root = store.identity("solo")
        config = ScopeMerger().merge(root, [])
        assert _flat(config) == set()
        assert config.packages == []

    def test_own_build_with_only_private_exports(self, store) -> None:
        solo = store.install("solo", exports=[_entry("compile-flag", "-DSOLO", "private")])
        assert resolve_own_build(solo).compile_flags == ["-DSOLO"]
        assert resolve_consumer(solo).compile_flags == []
