"""Tests for ``prefixlink show`` command."""

from __future__ import annotations

from click.testing import CliRunner

from prefixlink.cli.main import cli
from prefixlink.core.manifest import ExportEntry, ExportKind, Scope


class TestShow:

    def test_shows_exports_and_dependencies(self, runner: CliRunner, store) -> None:
        z = store.install("zlib", exports=[
            ExportEntry(ExportKind.SHARED_LIBRARY, "lib/libz.so", Scope.PUBLIC),
        ])
        png = store.install("libpng", deps=[z])
        result = runner.invoke(cli, ["show", "--identity", str(png)])
        assert result.exit_code == 0, result.output
        assert "libpng" in result.output
        assert "No exports." in result.output
        assert "Dependencies" in result.output
        assert "zlib" in result.output

    def test_shows_export_table(self, runner: CliRunner, store) -> None:
        z = store.install("zlib", exports=[
            ExportEntry(ExportKind.HEADER_DIR, "include", Scope.INTERFACE),
        ])
        result = runner.invoke(cli, ["show", "--identity", str(z)])
        assert result.exit_code == 0, result.output
        assert "Exports" in result.output
        assert "header-dir" in result.output
        assert "interface" in result.output
        assert "No dependencies." in result.output

    def test_tree_marks_repeated_packages(self, runner: CliRunner, store) -> None:
        a = store.install("a")
        store.install("b", deps=[a])
        store.install("e", deps=[a])
        d = store.install("d", deps=[store.identity("b"), store.identity("e")])
        result = runner.invoke(cli, ["show", "--identity", str(d), "--tree"])
        assert result.exit_code == 0, result.output
        assert result.output.count("a@1.0") == 2
        assert "*" in result.output

    def test_tree_reports_broken_closure(self, runner: CliRunner, store) -> None:
        app = store.install("app", deps=[store.identity("ghost")])
        assert runner.invoke(cli, ["show", "--identity", str(app)]).exit_code == 0
        result = runner.invoke(cli, ["show", "--identity", str(app), "--tree"])
        assert result.exit_code == 1
        assert "error[DependencyNotFound]" in result.output

    def test_not_exported(self, runner: CliRunner, store) -> None:
        result = runner.invoke(cli, ["show", "--identity", str(store.identity("ghost"))])
        assert result.exit_code == 1
