"""``prefixlink export`` — Write a package's manifest beneath its prefix.

Reads the package's own exports and direct dependencies from YAML files,
checks that the dependency closure resolves cleanly, and writes
``<prefix>/.prefixlink/manifest.json``.

Exit Codes:
    0 — Manifest written (or an identical one already present).
    1 — Export failed; the error kind is printed to stderr.
"""

from __future__ import annotations

import sys
from pathlib import Path

import click

from prefixlink.cli.inputs import load_dependencies, load_exports, parse_identity
from prefixlink.cli.output import exit_with_error
from prefixlink.core.export import Exporter
from prefixlink.core.manifest.codec import manifest_path
from prefixlink.core.manifest.models import PackageIdentity
from prefixlink.exceptions import MalformedManifest, PrefixLinkError


@click.command("export")
@click.option(
    "--identity", "identity",
    required=True,
    callback=parse_identity,
    help="Package to export, as name@spec@/abs/prefix.",
)
@click.option(
    "--exports", "exports_file",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML list of {kind, value, scope} entries.",
)
@click.option(
    "--deps", "deps_file",
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML list of {name, spec, prefix, required_scope} entries.",
)
@click.option(
    "--strict-relocation",
    is_flag=True,
    default=False,
    help="Require paths inside the prefix to be recorded relative to it.",
)
def export_command(
    identity: PackageIdentity,
    exports_file: Path,
    deps_file: Path | None,
    strict_relocation: bool,
) -> None:
    """Export the manifest for the package installed at IDENTITY's prefix.

    Exit code 0 on success, 1 on failure (see --detailed-exit-codes).
    """
    try:
        exports = load_exports(exports_file)
        deps = load_dependencies(deps_file)
        exporter = Exporter(strict_relocation=strict_relocation)
        try:
            manifest = exporter.export(identity, exports, deps)
        except ValueError as exc:
            raise MalformedManifest(str(exc)) from exc
    except (PrefixLinkError, OSError) as exc:
        exit_with_error(exc)

    click.echo(
        f"Exported {manifest.identity.label}: {len(manifest.exports)} export(s), "
        f"{len(manifest.dependencies)} direct dependency ref(s)"
    )
    click.echo(f"Manifest written to: {manifest_path(identity.prefix)}")
    sys.exit(0)
