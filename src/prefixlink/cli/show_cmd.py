"""``prefixlink show`` — Display an installed package's manifest.

Prints the manifest's exports and direct dependencies as tables. With
``--tree`` also loads the full dependency closure and prints it as a tree,
which fails the same way ``import`` does on a broken closure.

Exit Codes:
    0 — Manifest displayed.
    1 — Manifest (or a dependency's manifest) could not be loaded.
"""

from __future__ import annotations

import sys

import click

from prefixlink.cli.inputs import parse_identity
from prefixlink.cli.output import exit_with_error, print_dependency_tree, print_manifest
from prefixlink.core.manifest.models import PackageIdentity
from prefixlink.core.resolution import GraphWalker
from prefixlink.exceptions import PrefixLinkError


@click.command("show")
@click.option(
    "--identity", "identity",
    required=True,
    callback=parse_identity,
    help="Installed package to show, as name@spec@/abs/prefix.",
)
@click.option(
    "--tree",
    is_flag=True,
    default=False,
    help="Also print the resolved dependency tree.",
)
def show_command(identity: PackageIdentity, tree: bool) -> None:
    """Show the manifest exported for IDENTITY."""
    walker = GraphWalker()
    try:
        manifest = walker.load(identity)
        graph = walker.walk(manifest.dependencies, root=identity) if tree else None
    except (PrefixLinkError, OSError) as exc:
        exit_with_error(exc)

    print_manifest(manifest)
    if graph is not None:
        print_dependency_tree(manifest, graph)
    sys.exit(0)
