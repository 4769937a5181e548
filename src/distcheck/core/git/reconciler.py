"""Resolve the git commit behind a published package version.

Tags are mutable and cannot prove provenance on their own, so the checkout
is always compared against the publisher-recorded commit (``gitHead``).
Resolution runs an ordered list of fallible steps:

1. ``CLONE_V_TAG``     shallow clone of tag ``v<version>``
2. ``CLONE_BARE_TAG``  shallow clone of tag ``<version>``
3. ``VERIFY_HEAD``     compare the checked-out sha with ``gitHead``
4. ``FETCH_BY_SHA``    fetch ``gitHead`` directly (recognized hosts only)

Steps 1-3 form the tag path. Step 4 runs only when the tag path failed,
``gitHead`` is known, and the host supports fetching a commit by sha. When
everything fails, the error of the first failed step (normally
``CLONE_V_TAG``) is the one surfaced.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Awaitable

from distcheck.config import ValidatorConfig
from distcheck.core.artifact import check_destination
from distcheck.core.git.hosts import FetchByCommitHosts
from distcheck.core.models import PackageDetails, Taint
from distcheck.core.process import run_command
from distcheck.exceptions import DistcheckError, UnresolvableRepositoryError

logger = logging.getLogger(__name__)


class GitState(Enum):
    """Steps of the commit resolution state machine."""

    CLONE_V_TAG = "clone-v-tag"
    CLONE_BARE_TAG = "clone-bare-tag"
    VERIFY_HEAD = "verify-head"
    FETCH_BY_SHA = "fetch-by-sha"


@dataclass(frozen=True)
class StepResult:
    """Typed outcome of one resolution step."""

    state: GitState
    ok: bool
    value: str | None = None
    error: Exception | None = None


@dataclass
class GitResolution:
    """Outcome of resolving a checkout for a package version.

    Attributes:
        taint: Trust signal for the checkout.
        commit: Sha of the commit that was checked out.
        url: Normalized repository URL that was used.
        attempts: Every step that ran, in order.
    """

    taint: Taint
    commit: str
    url: str
    attempts: list[StepResult] = field(default_factory=list)


def head_taint(git_head: str | None, found: str) -> Taint:
    """Grade a tag checkout against the publisher-recorded commit."""
    if git_head and found and git_head.lower() == found.lower():
        return Taint.none()
    if git_head:
        return Taint.sha_mismatch(expected=git_head, found=found)
    return Taint.sha_missing(found=found)


class GitReconciler:
    """Checks out the source a package version was published from."""

    def __init__(
        self,
        config: ValidatorConfig | None = None,
        hosts: FetchByCommitHosts | None = None,
    ) -> None:
        self.config = config or ValidatorConfig()
        self.hosts = hosts or FetchByCommitHosts(self.config.fetch_hosts)

    async def reconcile(self, details: PackageDetails, dst: Path | str) -> GitResolution:
        """Check out the git source of ``details`` into ``dst``.

        Returns:
            The resolution, including its taint. Taint is never raised.

        Raises:
            UnresolvableRepositoryError: If the metadata has no git repository
                or no step could produce a checkout.
        """
        repo = details.repository
        if repo is None or repo.type != "git" or not repo.url:
            raise UnresolvableRepositoryError(
                f"Did not find git repo url for {details.key}"
            )

        dst = check_destination(dst)
        url = self.hosts.normalize(repo.url)
        version = details.version
        attempts: list[StepResult] = []
        first_error: Exception | None = None

        cloned = False
        for state, ref in (
            (GitState.CLONE_V_TAG, f"v{version}"),
            (GitState.CLONE_BARE_TAG, version),
        ):
            step = await self._attempt(state, self._clone(url, ref, dst))
            attempts.append(step)
            if step.ok:
                cloned = True
                break
            first_error = first_error or step.error

        if cloned:
            step = await self._attempt(GitState.VERIFY_HEAD, self._rev_parse(dst))
            attempts.append(step)
            if step.ok:
                found = step.value or ""
                return GitResolution(
                    taint=head_taint(details.git_head, found),
                    commit=found,
                    url=url,
                    attempts=attempts,
                )
            first_error = first_error or step.error

        if not details.git_head or not self.hosts.supports(url):
            raise UnresolvableRepositoryError(
                f"Cannot check out {details.key} from {url}: {first_error}"
            ) from first_error

        logger.info(
            "No usable tag for %s, fetching commit %s directly",
            details.key, details.git_head,
        )
        step = await self._attempt(
            GitState.FETCH_BY_SHA, self._fetch_commit(url, details.git_head, dst)
        )
        attempts.append(step)
        if not step.ok:
            raise UnresolvableRepositoryError(
                f"Cannot check out {details.key} from {url}: {first_error}"
            ) from first_error

        return GitResolution(
            taint=Taint.tag_missing([f"v{version}", version]),
            commit=details.git_head,
            url=url,
            attempts=attempts,
        )

    # -----------------------------------------------------------------------
    # Steps
    # -----------------------------------------------------------------------

    @staticmethod
    async def _attempt(state: GitState, action: Awaitable[str | None]) -> StepResult:
        try:
            value = await action
        except (DistcheckError, OSError) as exc:
            logger.debug("%s failed: %s", state.value, exc)
            return StepResult(state=state, ok=False, error=exc)
        return StepResult(state=state, ok=True, value=value)

    async def _git(self, *args: str, cwd: Path | None = None) -> str:
        result = await run_command(
            self.config.tool("git"), *args,
            cwd=cwd, timeout=self.config.command_timeout,
        )
        return result.stdout

    async def _clone(self, url: str, ref: str, dst: Path) -> None:
        await _wipe(dst)
        await self._git(
            "clone", "--depth", "1", "--single-branch", url, "-b", ref, str(dst)
        )

    async def _rev_parse(self, dst: Path) -> str:
        out = await self._git("rev-parse", "--verify", "HEAD", cwd=dst)
        return out.strip()

    async def _fetch_commit(self, url: str, sha: str, dst: Path) -> None:
        await _wipe(dst)
        dst.mkdir(parents=True)
        await self._git("init", cwd=dst)
        await self._git("remote", "add", "origin", url, cwd=dst)
        await self._git("fetch", "--depth", "1", "origin", sha, cwd=dst)
        await self._git("checkout", "FETCH_HEAD", cwd=dst)


async def _wipe(path: Path) -> None:
    if path.exists():
        await asyncio.to_thread(shutil.rmtree, path)
