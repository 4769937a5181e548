"""distcheck CLI: Provenance checks for published npm packages.

Entry point for the ``distcheck`` command-line tool. Registers all
subcommands under a single Click group.

Commands:
    check  Validate a package (and optionally its dependencies).

Usage::

    distcheck check hoek@5.0.0
    distcheck check --recursive --loose joi@13
    distcheck -v check @hapi/hoek@9.0.0 --format json
"""

from __future__ import annotations

import logging

import click
from rich.logging import RichHandler

from distcheck import __version__
from distcheck.cli.check_cmd import check_command


def configure_logging(verbose: bool) -> None:
    """Route library logging to stderr through Rich."""
    from distcheck.cli.output import err_console

    root = logging.getLogger("distcheck")
    root.handlers.clear()
    root.addHandler(RichHandler(console=err_console, show_path=False, markup=False))
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)


@click.group()
@click.version_option(version=__version__)
@click.option("-v", "--verbose", is_flag=True, help="Log every external tool call.")
def cli(verbose: bool) -> None:
    """distcheck: Verify published packages against their git source.

    Checks the artifact's integrity hash, resolves the commit the publisher
    recorded, and diffs the package against that checkout.
    """
    configure_logging(verbose)


# Register all subcommands
cli.add_command(check_command)


def main() -> None:
    cli()
