"""Base class for registry metadata lookups.

Defines the ``PackageRegistry`` abstract base class that concrete lookups
implement. The registry, not distcheck, resolves version specifiers; a
lookup either returns one record or an ordered list of candidates when the
specifier is ambiguous.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

from distcheck.core.models import PackageDetails, PackageQuery
from distcheck.exceptions import AmbiguousVersionError

logger = logging.getLogger(__name__)


class PackageRegistry(ABC):
    """Abstract registry lookup.

    Subclasses implement ``lookup``; ``fetch_details`` applies the
    loose-mode policy on top of it.
    """

    @property
    @abstractmethod
    def registry_name(self) -> str:
        """Human-readable name of this registry (e.g. 'npm')."""

    @abstractmethod
    async def lookup(self, query: PackageQuery) -> dict[str, Any] | list[dict[str, Any]]:
        """Fetch the raw record(s) for ``query``.

        Returns:
            A single record, or a list of candidate records when the version
            specifier matched several versions. An empty dict when nothing
            matched.
        """

    async def fetch_details(
        self, query: PackageQuery, *, loose: bool = False
    ) -> PackageDetails:
        """Resolve ``query`` to one package record.

        Args:
            query: Package name and version specifier.
            loose: Accept the last candidate of an ambiguous match.

        Raises:
            AmbiguousVersionError: If the match is ambiguous and not loose.
            PackageNotFoundError: If nothing matched.
        """
        record = await self.lookup(query)
        if isinstance(record, list):
            if not loose:
                raise AmbiguousVersionError(
                    f"Version specifier is too loose: {query.key} "
                    f"matches {len(record)} versions"
                )
            logger.debug("Loose match for %s: %d candidates", query.key, len(record))
            record = record[-1] if record else {}
        return PackageDetails.from_registry(record)
