"""Compare an extracted package tree with its git checkout.

Runs ``diff -r -u --strip-trailing-cr`` between the two trees. Files that
exist only in the git tree are expected (tests, CI config and anything else
excluded at publish time) and are dropped from the report. Anything else is
a content mismatch.
"""

from __future__ import annotations

import logging
from pathlib import Path

from distcheck.config import ValidatorConfig
from distcheck.core.models import Taint
from distcheck.core.process import run_command
from distcheck.exceptions import ContentMismatchError, ToolInvocationError

logger = logging.getLogger(__name__)


def filter_git_only(output: str, git_dir: str = "git") -> str:
    """Remove ``Only in <git_dir>`` lines from diff output.

    Returns:
        The remaining diff text, stripped. Empty when nothing else differs.
    """
    prefix = f"Only in {git_dir}"
    lines = [line for line in output.split("\n") if not line.startswith(prefix)]
    return "\n".join(lines).strip()


class DiffReconciler:
    """Classifies the divergence between a git tree and a package tree."""

    def __init__(self, config: ValidatorConfig | None = None) -> None:
        self.config = config or ValidatorConfig()

    async def compare(
        self,
        root: Path | str,
        *,
        taint: Taint | None = None,
        git_dir: str = "git",
        package_dir: str = "package",
        package: str = "",
        version: str = "",
    ) -> None:
        """Diff ``root/git_dir`` against ``root/package_dir``.

        Args:
            root: Directory containing both trees.
            taint: Git taint in effect, attached to any mismatch error.
            git_dir: Name of the git checkout inside ``root``.
            package_dir: Name of the extracted artifact inside ``root``.
            package: Package name, for error reporting.
            version: Package version, for error reporting.

        Raises:
            ContentMismatchError: If the trees differ beyond git-only files.
            ToolInvocationError: On any other diff exit code, or when diff
                reports a difference without output.
        """
        result = await run_command(
            self.config.tool("diff"), "-r", "-u", "--strip-trailing-cr",
            git_dir, package_dir,
            cwd=root,
            timeout=self.config.command_timeout,
            allowed_exit_codes=(0, 1, 2),
        )
        if result.exit_code == 0:
            return

        if not result.stdout:
            raise ToolInvocationError(
                f"diff exited with code {result.exit_code} without output: "
                f"{result.stderr.strip()}",
                argv=result.argv,
                exit_code=result.exit_code,
                stderr=result.stderr,
            )

        filtered = filter_git_only(result.stdout, git_dir)
        if filtered:
            raise ContentMismatchError(
                "Mismatch",
                diff=filtered,
                taint=taint or Taint.none(),
                package=package,
                version=version,
            )
        logger.debug("Only git-side files differ for %s@%s", package, version)
