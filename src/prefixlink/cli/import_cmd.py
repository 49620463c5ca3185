"""``prefixlink import`` — Print the resolved configuration for a package.

By default prints what a *consumer* of the package needs: the package's own
interface and public exports plus everything its dependency closure
propagates. With ``--own-build`` prints what the package itself needed to
build: its private and public exports plus its build-time dependencies.

Output formats:
    json  — stable JSON object (default).
    text  — one ``<field>: <value>`` line per item.
    flags — compiler/linker argument fragment.

Exit Codes:
    0 — Configuration resolved and printed.
    1 — Resolution failed (DependencyNotFound, DependencyCycle,
        VersionConflict, MalformedManifest, PathEscapesPrefix).
"""

from __future__ import annotations

import sys

import click

from prefixlink.cli.inputs import parse_identity
from prefixlink.cli.output import OUTPUT_FORMATS, exit_with_error, render_configuration
from prefixlink.core.manifest.models import PackageIdentity
from prefixlink.core.resolution import (
    ManifestCache,
    ResolveOptions,
    resolve_consumer,
    resolve_own_build,
)
from prefixlink.exceptions import PrefixLinkError


@click.command("import")
@click.option(
    "--identity", "identity",
    required=True,
    callback=parse_identity,
    help="Installed package to resolve, as name@spec@/abs/prefix.",
)
@click.option(
    "--own-build",
    is_flag=True,
    default=False,
    help="Resolve the package's own build configuration instead of a consumer's.",
)
@click.option(
    "--format", "output_format",
    type=click.Choice(OUTPUT_FORMATS),
    default="json",
    help="Output format (default: json).",
)
@click.option(
    "--strict-relocation",
    is_flag=True,
    default=False,
    help="Fail on exported paths that break relocation.",
)
@click.option(
    "--check-paths",
    is_flag=True,
    default=False,
    help="Fail if an exported path does not exist on disk.",
)
def import_command(
    identity: PackageIdentity,
    own_build: bool,
    output_format: str,
    strict_relocation: bool,
    check_paths: bool,
) -> None:
    """Resolve and print the build configuration for IDENTITY.

    Exit code 0 on success, 1 on failure (see --detailed-exit-codes).
    """
    options = ResolveOptions(strict_relocation=strict_relocation, check_exists=check_paths)
    resolve = resolve_own_build if own_build else resolve_consumer
    try:
        config = resolve(identity, options, ManifestCache())
    except (PrefixLinkError, OSError) as exc:
        exit_with_error(exc)

    click.echo(render_configuration(config, output_format))
    sys.exit(0)
