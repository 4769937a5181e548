"""npm registry lookup through ``npm view``.

``npm view --json <name>@<spec>`` resolves semver ranges and dist-tags the
same way ``npm install`` does, which keeps distcheck out of the business of
range resolution.

Usage::

    registry = NpmViewRegistry()
    details = await registry.fetch_details(PackageQuery("hoek", "5.0.0"))
"""

from __future__ import annotations

import json
import logging
from typing import Any

from distcheck.config import ValidatorConfig
from distcheck.core.models import PackageQuery
from distcheck.core.process import run_command
from distcheck.exceptions import PackageNotFoundError, RegistryError, ToolInvocationError
from distcheck.registry.base import PackageRegistry

logger = logging.getLogger(__name__)


class NpmViewRegistry(PackageRegistry):
    """Registry lookup backed by the ``npm`` CLI."""

    def __init__(self, config: ValidatorConfig | None = None) -> None:
        self.config = config or ValidatorConfig()

    @property
    def registry_name(self) -> str:
        """Return the human-readable registry name."""
        return "npm"

    async def lookup(self, query: PackageQuery) -> dict[str, Any] | list[dict[str, Any]]:
        """Run ``npm view --json`` for the query.

        Raises:
            PackageNotFoundError: If npm reports E404.
            RegistryError: If npm output is not valid JSON.
            ToolInvocationError: For other npm failures.
        """
        try:
            result = await run_command(
                self.config.tool("npm"), "view", "--json", query.key,
                timeout=self.config.command_timeout,
            )
        except ToolInvocationError as exc:
            if "E404" in exc.stderr:
                raise PackageNotFoundError(
                    f"Failed to find package / version: {query.key}"
                ) from exc
            raise

        return parse_view_output(result.stdout, query)


def parse_view_output(
    output: str, query: PackageQuery
) -> dict[str, Any] | list[dict[str, Any]]:
    """Parse ``npm view --json`` output.

    Empty output means no version matched the specifier.
    """
    if not output.strip():
        return {}
    try:
        data = json.loads(output)
    except ValueError as exc:
        raise RegistryError(f"Invalid npm view output for {query.key}") from exc

    if isinstance(data, list):
        return [item for item in data if isinstance(item, dict)]
    if isinstance(data, dict):
        if "error" in data and "name" not in data:
            raise PackageNotFoundError(
                f"Failed to find package / version: {query.key}"
            )
        return data
    raise RegistryError(f"Unexpected npm view output for {query.key}")
