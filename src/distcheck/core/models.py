"""Data models for package validation.

Defines the registry-side records (``PackageQuery``, ``PackageDetails``),
the graded trust signal for git checkouts (``Taint``), and the per-package
result (``ValidationOutcome``). These are pure data holders with no I/O,
safe to import from every layer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from distcheck.exceptions import PackageNotFoundError


# ---------------------------------------------------------------------------
# Registry records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PackageQuery:
    """A user-supplied or dependency-declared package request.

    Several queries may resolve to the same published version.
    """

    name: str
    version_spec: str = "latest"

    def __post_init__(self) -> None:
        if not self.name or not isinstance(self.name, str):
            raise ValueError("Bad package name")
        if not self.version_spec or not isinstance(self.version_spec, str):
            raise ValueError("Bad package version")

    @property
    def key(self) -> str:
        """Memo key for the requested specifier."""
        return f"{self.name}@{self.version_spec}"

    @classmethod
    def parse(cls, selector: str) -> PackageQuery:
        """Parse ``name`` or ``name@version`` (scoped names supported).

        Args:
            selector: e.g. ``"hoek"``, ``"hoek@5.0.0"``, ``"@hapi/hoek@^9"``.

        Returns:
            The parsed query. A missing version defaults to ``latest``.
        """
        at = selector.rfind("@")
        if at <= 0:
            return cls(name=selector)
        return cls(name=selector[:at], version_spec=selector[at + 1:])


@dataclass(frozen=True)
class Repository:
    """Source repository declared in package metadata."""

    type: str
    url: str


@dataclass(frozen=True)
class Integrity:
    """Expected artifact hash: a ``hashlib`` algorithm name and hex digest."""

    alg: str
    hash: str


@dataclass(frozen=True)
class PackageDetails:
    """Resolved registry record for one published package version.

    Attributes:
        name: Package name.
        version: Concrete resolved version.
        tarball_url: Download URL of the published artifact.
        integrity: SRI integrity string (``"sha512-<base64>"``), if any.
        shasum: Legacy sha1 hex checksum, if any.
        repository: Declared source repository, if any.
        git_head: Commit sha recorded by the publisher, if any.
        dependencies: Declared runtime dependencies (name -> specifier).
    """

    name: str
    version: str
    tarball_url: str = ""
    integrity: str | None = None
    shasum: str | None = None
    repository: Repository | None = None
    git_head: str | None = None
    dependencies: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "dependencies", MappingProxyType(dict(self.dependencies))
        )

    @property
    def key(self) -> str:
        """Memo key for the resolved version."""
        return f"{self.name}@{self.version}"

    @classmethod
    def from_registry(cls, record: Mapping[str, Any]) -> PackageDetails:
        """Build details from a registry (``npm view --json``) record.

        Raises:
            PackageNotFoundError: If the record has no package name.
        """
        if not record or not record.get("name"):
            raise PackageNotFoundError("Failed to find package / version")

        dist = record.get("dist") or {}
        repo = record.get("repository")
        repository: Repository | None = None
        if isinstance(repo, Mapping) and repo.get("url"):
            repository = Repository(
                type=str(repo.get("type", "")), url=str(repo["url"])
            )
        elif isinstance(repo, str) and repo:
            # Shorthand string form implies git
            repository = Repository(type="git", url=repo)

        deps = record.get("dependencies") or {}
        return cls(
            name=str(record["name"]),
            version=str(record.get("version", "")),
            tarball_url=str(dist.get("tarball", "")),
            integrity=dist.get("integrity") or None,
            shasum=dist.get("shasum") or None,
            repository=repository,
            git_head=record.get("gitHead") or None,
            dependencies={str(k): str(v) for k, v in deps.items()},
        )


# ---------------------------------------------------------------------------
# Taint: graded trust in the git checkout
# ---------------------------------------------------------------------------


class TaintReason(Enum):
    """Why a git checkout may not be the exact publisher-intended source."""

    NONE = "none"
    SHA_MISMATCH = "sha-mismatch"
    SHA_MISSING = "sha-missing"
    TAG_MISSING = "tag-missing"
    PENDING = "pending"


@dataclass(frozen=True)
class Taint:
    """Non-fatal trust signal attached to a git checkout.

    ``Taint.none()`` is the clean variant. Equality is structural, so any
    two clean taints compare equal.

    ``GitReconciler`` produces only NONE, SHA_MISMATCH, SHA_MISSING and
    TAG_MISSING. PENDING comes only from the dependency walker, through
    ``Taint.unresolved``, when it re-enters a package on a cycle.

    Attributes:
        reason: The taint variant.
        expected: Publisher-recorded commit, or the memo key for PENDING.
        found: Commit actually checked out.
        expected_tags: Tag names that could not be used.
    """

    reason: TaintReason = TaintReason.NONE
    expected: str | None = None
    found: str | None = None
    expected_tags: tuple[str, ...] = ()

    @property
    def clean(self) -> bool:
        return self.reason is TaintReason.NONE

    @classmethod
    def none(cls) -> Taint:
        return cls()

    @classmethod
    def sha_mismatch(cls, expected: str, found: str) -> Taint:
        return cls(TaintReason.SHA_MISMATCH, expected=expected, found=found)

    @classmethod
    def sha_missing(cls, found: str) -> Taint:
        return cls(TaintReason.SHA_MISSING, found=found)

    @classmethod
    def tag_missing(cls, expected_tags: list[str] | tuple[str, ...]) -> Taint:
        return cls(TaintReason.TAG_MISSING, expected_tags=tuple(expected_tags))

    @classmethod
    def unresolved(cls, key: str) -> Taint:
        """Taint for a package whose validation is still in progress.

        Returned when the dependency walk re-enters a package through a
        cycle.
        """
        return cls(TaintReason.PENDING, expected=key)

    def details(self) -> dict[str, Any]:
        """Diagnostic details with unset fields omitted."""
        out: dict[str, Any] = {}
        if self.expected is not None:
            out["expected"] = self.expected
        if self.found is not None:
            out["found"] = self.found
        if self.expected_tags:
            out["expected_tags"] = list(self.expected_tags)
        return out


# ---------------------------------------------------------------------------
# ValidationOutcome
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ValidationOutcome:
    """Result of validating one package version.

    A package is invalid whenever ``diff`` or ``error`` is set, whatever its
    taint. It is clean only when valid and untainted.
    """

    package: str
    version: str
    taint: Taint = field(default_factory=Taint.none)
    diff: str | None = None
    error: str | None = None

    @property
    def valid(self) -> bool:
        return self.diff is None and self.error is None

    @property
    def clean(self) -> bool:
        return self.valid and self.taint.clean

    def as_dict(self) -> dict[str, Any]:
        """JSON-serializable representation."""
        return {
            "package": self.package,
            "version": self.version,
            "clean": self.clean,
            "taint": {"reason": self.taint.reason.value, **self.taint.details()},
            "diff": self.diff,
            "error": self.error,
        }
