"""Validate one package version against its git source.

``Validator.check()`` downloads the artifact and checks out the git source
concurrently into a private scratch directory, then diffs the two trees.
The scratch directory is removed on every exit path.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import tempfile
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from distcheck.config import ValidatorConfig
from distcheck.core.artifact import ArtifactFetcher
from distcheck.core.diff import DiffReconciler
from distcheck.core.git import GitReconciler, GitResolution
from distcheck.core.models import PackageDetails, PackageQuery, ValidationOutcome
from distcheck.registry.base import PackageRegistry

logger = logging.getLogger(__name__)

GIT_DIR = "git"
PACKAGE_DIR = "package"


@asynccontextmanager
async def scratch_directory(root: Path) -> AsyncIterator[Path]:
    """Create a uniquely named scratch directory and always remove it."""
    path = Path(await asyncio.to_thread(tempfile.mkdtemp, prefix="distcheck-", dir=root))
    try:
        yield path
    finally:
        await asyncio.to_thread(shutil.rmtree, path, True)


async def gather_or_cancel(*aws):
    """Await all awaitables; on the first failure cancel and drain the rest."""
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


class Validator:
    """Validates a single package query.

    Registry details are fetched at most once per instance.
    """

    def __init__(
        self,
        query: PackageQuery,
        registry: PackageRegistry,
        *,
        loose: bool = False,
        config: ValidatorConfig | None = None,
        fetcher: ArtifactFetcher | None = None,
        reconciler: GitReconciler | None = None,
        differ: DiffReconciler | None = None,
    ) -> None:
        self.query = query
        self.registry = registry
        self.loose = loose
        self.config = config or ValidatorConfig()
        self.fetcher = fetcher or ArtifactFetcher(self.config)
        self.reconciler = reconciler or GitReconciler(self.config)
        self.differ = differ or DiffReconciler(self.config)
        self._details: PackageDetails | None = None

    async def fetch_details(self) -> PackageDetails:
        if self._details is None:
            self._details = await self.registry.fetch_details(
                self.query, loose=self.loose
            )
        return self._details

    async def check(self) -> ValidationOutcome:
        """Run the full validation for this query.

        Returns:
            The outcome. Its taint may be non-clean; taint is advisory.

        Raises:
            ContentMismatchError: If the package tree differs from git.
            DistcheckError: For any fatal fetch, git or tool failure.
        """
        async with scratch_directory(self.config.scratch_root) as tmp:
            details = await self.fetch_details()
            results = await gather_or_cancel(
                self.fetcher.fetch(details, tmp / PACKAGE_DIR),
                self.reconciler.reconcile(details, tmp / GIT_DIR),
            )
            git: GitResolution = results[1]

            if not git.taint.clean:
                logger.warning(
                    'git checkout tainted due to "%s": %s',
                    git.taint.reason.value, git.taint.details(),
                )

            await self.differ.compare(
                tmp,
                taint=git.taint,
                git_dir=GIT_DIR,
                package_dir=PACKAGE_DIR,
                package=details.name,
                version=details.version,
            )
            return ValidationOutcome(
                package=details.name, version=details.version, taint=git.taint
            )
