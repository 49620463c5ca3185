"""Output formatting helpers for the prefixlink CLI.

Machine-facing output (``import`` results) goes through ``click.echo`` in
one of three stable formats. Human-facing output (``show``, export
summaries) uses Rich tables and trees. Diagnostics go to stderr.
"""

from __future__ import annotations

import json
import shlex
import sys
from collections.abc import Iterable
from typing import NoReturn

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from prefixlink.core.manifest.models import (
    DependencyRef,
    Manifest,
    PackageIdentity,
    ResolvedConfiguration,
    Scope,
)
from prefixlink.core.resolution.walker import ResolutionGraph
from prefixlink.exceptions import PrefixLinkError

_SCOPE_STYLES: dict[Scope, str] = {
    Scope.PRIVATE: "dim",
    Scope.INTERFACE: "cyan",
    Scope.PUBLIC: "bold green",
}

OUTPUT_FORMATS = ("json", "text", "flags")

console = Console()
err_console = Console(stderr=True)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


def exit_with_error(exc: PrefixLinkError | OSError) -> NoReturn:
    """Print ``error[<Kind>]: <message>`` to stderr and exit.

    The exit status is 1 unless the group was invoked with
    ``--detailed-exit-codes``, in which case each error kind exits with its
    own code.
    """
    ctx = click.get_current_context(silent=True)
    detailed = bool(ctx and ctx.find_root().obj and ctx.find_root().obj.get("detailed_exit_codes"))
    if isinstance(exc, PrefixLinkError):
        kind, code = exc.kind, exc.exit_code
    else:
        kind, code = type(exc).__name__, 1
    click.echo(f"error[{kind}]: {exc}", err=True)
    sys.exit(code if detailed else 1)


# ---------------------------------------------------------------------------
# ResolvedConfiguration renderers
# ---------------------------------------------------------------------------


def render_json(config: ResolvedConfiguration) -> str:
    return json.dumps(config.to_dict(), indent=2)


def render_text(config: ResolvedConfiguration) -> str:
    """One ``<field>: <value>`` line per item, fields in a fixed order."""
    lines: list[str] = []
    for key, values in config.to_dict().items():
        lines.extend(f"{key}: {value}" for value in values)
    return "\n".join(lines)


def render_flags(config: ResolvedConfiguration) -> str:
    """A compiler/linker command-line fragment, like ``pkg-config --cflags --libs``."""
    args = [f"-I{d}" for d in config.include_dirs]
    args.extend(config.compile_flags)
    args.extend(config.link_libraries)
    args.extend(config.link_flags)
    return shlex.join(args)


def render_configuration(config: ResolvedConfiguration, fmt: str) -> str:
    if fmt == "json":
        return render_json(config)
    if fmt == "text":
        return render_text(config)
    if fmt == "flags":
        return render_flags(config)
    raise ValueError(f"Unknown output format: {fmt!r}")


# ---------------------------------------------------------------------------
# Manifest display
# ---------------------------------------------------------------------------


def print_manifest(manifest: Manifest) -> None:
    """Print a manifest's identity, exports, and direct dependencies."""
    ident = manifest.identity
    console.print(
        f"[bold]{escape(ident.name)}[/bold] {escape(ident.spec)}  [dim]{escape(ident.prefix)}[/dim]"
    )

    if manifest.exports:
        table = Table(title="Exports", show_header=True, header_style="bold")
        table.add_column("Kind")
        table.add_column("Value")
        table.add_column("Scope", justify="center")
        for entry in manifest.exports:
            style = _SCOPE_STYLES.get(entry.scope, "white")
            table.add_row(entry.kind.value, escape(entry.value),
                          f"[{style}]{entry.scope.value}[/{style}]")
        console.print(table)
    else:
        console.print("[dim]No exports.[/dim]")

    if manifest.dependencies:
        table = Table(title="Dependencies", show_header=True, header_style="bold")
        table.add_column("Package", style="bold")
        table.add_column("Spec")
        table.add_column("Prefix", style="dim")
        table.add_column("Required Scope")
        for ref in manifest.dependencies:
            scopes = ", ".join(sorted(s.value for s in ref.required_scope))
            table.add_row(escape(ref.identity.name), escape(ref.identity.spec),
                          escape(ref.identity.prefix), scopes)
        console.print(table)
    else:
        console.print("[dim]No dependencies.[/dim]")


def print_dependency_tree(manifest: Manifest, graph: ResolutionGraph) -> None:
    """Print the dependency closure of *manifest* as a tree.

    Packages already shown higher up are marked rather than expanded again.
    """
    tree = Tree(f"[bold]{escape(manifest.identity.label)}[/bold]")
    expanded: set[PackageIdentity] = set()

    def _add(node: Tree, refs: Iterable[DependencyRef]) -> None:
        for ref in refs:
            ident = ref.identity
            scopes = ",".join(sorted(s.value for s in ref.required_scope))
            if ident in expanded:
                node.add(f"{escape(ident.label)} [dim]({scopes}) *[/dim]")
                continue
            expanded.add(ident)
            child = node.add(f"{escape(ident.label)} [dim]({scopes})[/dim]")
            _add(child, graph.manifests[ident].dependencies)

    _add(tree, manifest.dependencies)
    console.print(tree)
