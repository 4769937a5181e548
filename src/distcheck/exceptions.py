"""distcheck exception hierarchy.

All public exceptions inherit from DistcheckError, giving callers a single
base class to catch when they want to handle any validation failure without
swallowing unrelated errors.

Taint is not an exception: a tainted git checkout is a degraded
trust signal returned alongside the outcome, never raised.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from distcheck.core.models import Taint


class DistcheckError(Exception):
    """Base exception for all distcheck errors."""


class RegistryError(DistcheckError):
    """Raised when the registry lookup for a package fails."""


class PackageNotFoundError(RegistryError):
    """Raised when the registry has no record for a name/version pair."""


class AmbiguousVersionError(RegistryError):
    """Raised when a version specifier matches several published versions.

    Loose mode accepts the registry's last candidate instead.
    """


class IntegrityError(DistcheckError):
    """Raised when a downloaded artifact does not match its declared hash.

    Also covers registry records that carry no usable hash at all. Always
    fatal, regardless of the git checkout's taint.
    """


class ArtifactDownloadError(DistcheckError):
    """Raised when the package tarball cannot be downloaded."""


class UnresolvableRepositoryError(DistcheckError):
    """Raised when no git source could be established for a package.

    The cause is the error of the first clone attempt (the ``v``-prefixed
    tag), even when later fallbacks were also tried.
    """


class ContentMismatchError(DistcheckError):
    """Raised when the package tree differs from the git checkout.

    Attributes:
        diff: Unified diff text, with git-only entries filtered out.
        taint: The git taint in effect when the trees were compared.
        package: Package name.
        version: Resolved package version.
    """

    def __init__(
        self,
        message: str,
        *,
        diff: str,
        taint: Taint,
        package: str = "",
        version: str = "",
    ) -> None:
        super().__init__(message)
        self.diff = diff
        self.taint = taint
        self.package = package
        self.version = version


class ToolInvocationError(DistcheckError):
    """Raised when an external tool exits unexpectedly.

    Covers nonzero exit codes outside the allowed set, missing executables,
    timeouts, and missing output where output was required. Never retried.
    """

    def __init__(
        self,
        message: str,
        *,
        argv: Sequence[str] = (),
        exit_code: int | None = None,
        stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.argv = tuple(argv)
        self.exit_code = exit_code
        self.stderr = stderr


class ValidationAborted(DistcheckError):
    """Raised when a dependency walk is cancelled by an external signal."""
