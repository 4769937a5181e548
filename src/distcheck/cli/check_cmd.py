"""``distcheck check <package>``: Validate a published package against git.

Downloads the published tarball, checks out the git commit the publisher
recorded, and diffs the two trees. With ``--recursive`` the package's
dependencies are validated too.

Exit Codes:
    0    Package (and dependencies) are clean.
    1    Tainted checkout, content mismatch, or validation failure.
    130  Interrupted.
    255  Unhandled internal error.
"""

from __future__ import annotations

import asyncio
import json
import logging
import signal
import sys
from contextlib import suppress
from pathlib import Path

import click

from distcheck.config import ValidatorConfig
from distcheck.core.models import PackageQuery
from distcheck.core.walker import CancellationToken, DependencyWalker, WalkReport
from distcheck.exceptions import ContentMismatchError, DistcheckError, ValidationAborted
from distcheck.registry.npm_view import NpmViewRegistry

logger = logging.getLogger(__name__)

EXIT_CLEAN = 0
EXIT_INVALID = 1
EXIT_ABORTED = 130
EXIT_INTERNAL = 255


async def _run_walk(
    walker: DependencyWalker, query: PackageQuery, *, loose: bool, recursive: bool
) -> WalkReport:
    loop = asyncio.get_running_loop()
    installed = False
    with suppress(NotImplementedError, RuntimeError):
        loop.add_signal_handler(signal.SIGINT, walker.token.cancel, "interrupted")
        installed = True
    try:
        return await walker.validate(
            query.name, query.version_spec, loose=loose, recursive=recursive
        )
    finally:
        if installed:
            loop.remove_signal_handler(signal.SIGINT)


def _load_config(config_path: str | None, fetch_hosts: tuple[str, ...]) -> ValidatorConfig:
    config = ValidatorConfig.from_file(Path(config_path)) if config_path else ValidatorConfig()
    return config.with_extra_hosts(fetch_hosts)


def _emit_error(output_format: str, error: DistcheckError) -> None:
    if output_format == "json":
        payload: dict[str, object] = {
            "clean": False,
            "error": f"{type(error).__name__}: {error}",
        }
        if isinstance(error, ContentMismatchError):
            payload["package"] = error.package
            payload["version"] = error.version
            payload["diff"] = error.diff
            payload["taint"] = {
                "reason": error.taint.reason.value, **error.taint.details()
            }
        click.echo(json.dumps(payload, indent=2))
        return

    from distcheck.cli.output import print_error, print_mismatch
    if isinstance(error, ContentMismatchError):
        print_mismatch(error)
    print_error(f"{type(error).__name__}: {error}")


@click.command("check")
@click.argument("package")
@click.option("-r", "--recursive", is_flag=True, help="Also validate all dependencies.")
@click.option(
    "-l", "--loose", is_flag=True,
    help="Accept the registry's pick when the version matches several releases.",
)
@click.option(
    "--fetch-host", "fetch_hosts", multiple=True, metavar="HOST",
    help="Extra git host that allows fetching a commit by sha (repeatable).",
)
@click.option(
    "--config", "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="YAML file with configuration overrides.",
)
@click.option(
    "--format", "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format (default: text).",
)
def check_command(
    package: str,
    recursive: bool,
    loose: bool,
    fetch_hosts: tuple[str, ...],
    config_path: str | None,
    output_format: str,
) -> None:
    """Validate that PACKAGE matches its git source.

    PACKAGE is ``name`` or ``name@version``; scoped names are supported.

    Examples:

        distcheck check hoek@5.0.0

        distcheck check --recursive --loose joi@^13
    """
    try:
        query = PackageQuery.parse(package)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="PACKAGE") from exc

    try:
        config = _load_config(config_path, fetch_hosts)
        walker = DependencyWalker(
            NpmViewRegistry(config), config=config, token=CancellationToken()
        )
        report = asyncio.run(
            _run_walk(walker, query, loose=loose, recursive=recursive)
        )
    except ValidationAborted as exc:
        _emit_error(output_format, exc)
        sys.exit(EXIT_ABORTED)
    except DistcheckError as exc:
        _emit_error(output_format, exc)
        sys.exit(EXIT_INVALID)
    except KeyboardInterrupt:
        sys.exit(EXIT_ABORTED)
    except Exception as exc:  # noqa: BLE001
        logger.debug("Unhandled error", exc_info=True)
        from distcheck.cli.output import print_error
        print_error(f"Internal error: {type(exc).__name__}: {exc}")
        sys.exit(EXIT_INTERNAL)

    if output_format == "json":
        click.echo(json.dumps(report.as_dict(), indent=2))
    else:
        from distcheck.cli.output import print_report
        print_report(report)

    sys.exit(EXIT_CLEAN if report.clean else EXIT_INVALID)
