"""prefixlink CLI — Export and import build configurations across install prefixes.

Entry point for the ``prefixlink`` command-line tool. Registers all
subcommands under a single Click group.

Commands:
    export — Write a package's manifest beneath its install prefix.
    import — Print the resolved configuration for an installed package.
    show   — Display an installed package's manifest (and dependency tree).

Usage::

    prefixlink export --identity zlib@1.3.1@/opt/pkgs/zlib-a1b2 \\
        --exports exports.yaml --deps deps.yaml
    prefixlink import --identity zlib@1.3.1@/opt/pkgs/zlib-a1b2
    prefixlink import --identity app@2.0@/opt/pkgs/app-c3d4 --format flags
    prefixlink show --identity app@2.0@/opt/pkgs/app-c3d4 --tree
"""

from __future__ import annotations

import logging

import click
from rich.logging import RichHandler

from prefixlink import __version__
from prefixlink.cli.export_cmd import export_command
from prefixlink.cli.import_cmd import import_command
from prefixlink.cli.output import err_console
from prefixlink.cli.show_cmd import show_command

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def configure_logging(level: str) -> None:
    """Route library log records to stderr through Rich."""
    root = logging.getLogger("prefixlink")
    for handler in list(root.handlers):
        if isinstance(handler, RichHandler):
            root.removeHandler(handler)
    handler = RichHandler(console=err_console, show_path=False, show_time=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(handler)
    root.setLevel(level)


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    envvar="PREFIXLINK_LOG_LEVEL",
    show_default=True,
    help="Diagnostic log level (env: PREFIXLINK_LOG_LEVEL).",
)
@click.option(
    "--detailed-exit-codes",
    is_flag=True,
    default=False,
    help="Exit with a distinct code per error kind instead of 1.",
)
@click.pass_context
def cli(ctx: click.Context, log_level: str, detailed_exit_codes: bool) -> None:
    """prefixlink: Transitive export/import resolution for installed packages.

    Each installed package records its exports and its dependencies' absolute
    prefixes in a manifest under its own prefix. Resolution follows those
    recorded prefixes; there is no search path.
    """
    configure_logging(log_level.upper())
    ctx.ensure_object(dict)
    ctx.obj["detailed_exit_codes"] = detailed_exit_codes


# Register all subcommands
cli.add_command(export_command)
cli.add_command(import_command)
cli.add_command(show_command)
