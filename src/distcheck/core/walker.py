"""Recursive validation across a package's dependency graph.

The walker memoizes every package under two keys: the requested specifier
(``name@^1.2.0``) and the resolved version (``name@1.2.3``). Entries have
three states:

- ``UNVISITED``  never seen
- ``PENDING``    validation or its dependency walk is in progress
- ``DONE``       finished, outcome and aggregate cleanliness recorded

Reaching a ``PENDING`` entry means the graph has a cycle. The walker does
not recurse; it reports the package as unresolved, which makes every
package on the cycle non-clean.

Cancellation is cooperative: the ``CancellationToken`` is polled once per
dependency, and an in-flight external tool call is allowed to finish.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from distcheck.config import ValidatorConfig
from distcheck.core.models import PackageQuery, Taint, ValidationOutcome
from distcheck.core.validator import Validator
from distcheck.exceptions import ContentMismatchError, DistcheckError, ValidationAborted
from distcheck.registry.base import PackageRegistry

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------


class CancellationToken:
    """Externally settable abort flag, polled between dependencies."""

    def __init__(self) -> None:
        self._cancelled = False
        self.reason = ""

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self, reason: str = "aborted") -> None:
        self._cancelled = True
        self.reason = reason

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise ValidationAborted(f"Validation aborted: {self.reason}")


# ---------------------------------------------------------------------------
# Memo table
# ---------------------------------------------------------------------------


class MemoState(Enum):
    UNVISITED = "unvisited"
    PENDING = "pending"
    DONE = "done"


@dataclass(frozen=True)
class MemoEntry:
    """Memo value for one key.

    Attributes:
        state: Visit state.
        outcome: The package's own outcome (DONE only).
        clean: True if the package and all of its dependencies are clean
            (DONE only).
    """

    state: MemoState
    outcome: ValidationOutcome | None = None
    clean: bool = False


_UNVISITED = MemoEntry(MemoState.UNVISITED)
_PENDING = MemoEntry(MemoState.PENDING)


class MemoTable:
    """Memo of validated packages, shared across one dependency walk.

    Only the walker mutates it, between suspension points, so no locking is
    needed.
    """

    def __init__(self) -> None:
        self._entries: dict[str, MemoEntry] = {}

    def get(self, key: str) -> MemoEntry:
        return self._entries.get(key, _UNVISITED)

    def mark_pending(self, key: str) -> None:
        self._entries[key] = _PENDING

    def record(self, outcome: ValidationOutcome, clean: bool, *keys: str) -> MemoEntry:
        entry = MemoEntry(MemoState.DONE, outcome=outcome, clean=clean)
        for key in keys:
            self._entries[key] = entry
        return entry

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


# ---------------------------------------------------------------------------
# Walk report
# ---------------------------------------------------------------------------


@dataclass
class WalkReport:
    """Result of a (possibly recursive) validation.

    Attributes:
        outcomes: Per-package outcomes in visit order. Packages re-entered
            through a cycle appear as unresolved outcomes.
        aggregate: Resolved key -> whether the package and its whole
            dependency subtree are clean.
    """

    outcomes: list[ValidationOutcome] = field(default_factory=list)
    aggregate: dict[str, bool] = field(default_factory=dict)

    @property
    def clean(self) -> bool:
        return bool(self.outcomes) and all(o.clean for o in self.outcomes)

    def as_dict(self) -> dict[str, object]:
        return {
            "clean": self.clean,
            "packages": [o.as_dict() for o in self.outcomes],
        }


ValidatorFactory = Callable[..., Validator]


# ---------------------------------------------------------------------------
# DependencyWalker
# ---------------------------------------------------------------------------


class DependencyWalker:
    """Applies ``Validator`` across a dependency graph.

    Every resolved version is validated at most once per walker.
    """

    def __init__(
        self,
        registry: PackageRegistry,
        *,
        config: ValidatorConfig | None = None,
        token: CancellationToken | None = None,
        validator_factory: ValidatorFactory = Validator,
    ) -> None:
        self.registry = registry
        self.config = config or ValidatorConfig()
        self.token = token or CancellationToken()
        self.memo = MemoTable()
        self._make_validator = validator_factory

    async def validate(
        self,
        name: str,
        version_spec: str = "latest",
        *,
        loose: bool = False,
        recursive: bool = False,
    ) -> WalkReport:
        """Validate a package, and optionally its dependencies.

        Errors of the requested package itself propagate. Errors of
        dependencies are recorded in the report instead.

        Raises:
            ValidationAborted: If the token is cancelled mid-walk.
            DistcheckError: If the requested package fails validation.
        """
        report = WalkReport()
        await self._visit(
            PackageQuery(name, version_spec), report,
            loose=loose, recursive=recursive,
        )
        return report

    async def _visit(
        self,
        query: PackageQuery,
        report: WalkReport,
        *,
        loose: bool,
        recursive: bool,
    ) -> bool:
        entry = self.memo.get(query.key)
        if entry.state is MemoState.DONE:
            return entry.clean
        if entry.state is MemoState.PENDING:
            return self._unresolved(query.key, query, report)

        self.memo.mark_pending(query.key)
        validator = self._make_validator(
            query, self.registry, loose=loose, config=self.config
        )
        details = await validator.fetch_details()

        # An exact version resolves to the key this frame just marked
        if details.key != query.key:
            resolved = self.memo.get(details.key)
            if resolved.state is MemoState.DONE:
                assert resolved.outcome is not None
                self.memo.record(resolved.outcome, resolved.clean, query.key)
                return resolved.clean
            if resolved.state is MemoState.PENDING:
                clean = self._unresolved(details.key, query, report)
                self.memo.record(report.outcomes[-1], clean, query.key)
                return clean
            self.memo.mark_pending(details.key)

        try:
            outcome = await validator.check()
        except ValidationAborted:
            raise
        except DistcheckError as exc:
            self.memo.record(_failed_outcome(query, exc), False, query.key, details.key)
            raise
        report.outcomes.append(outcome)
        clean = outcome.clean

        if recursive:
            for dep_name, dep_spec in sorted(details.dependencies.items()):
                self.token.raise_if_cancelled()
                dep_clean = await self._visit_dependency(dep_name, dep_spec, report)
                clean = clean and dep_clean

        self.memo.record(outcome, clean, query.key, details.key)
        report.aggregate[details.key] = clean
        return clean

    async def _visit_dependency(self, name: str, spec: str, report: WalkReport) -> bool:
        # npm treats an empty range as "*"
        try:
            query = PackageQuery(name, spec or "*")
        except ValueError as exc:
            logger.warning("Dependency %r@%r is malformed: %s", name, spec, exc)
            report.outcomes.append(ValidationOutcome(
                package=str(name), version=str(spec), error=f"ValueError: {exc}",
            ))
            return False

        # The registry collapses ambiguous ranges for dependencies
        try:
            return await self._visit(query, report, loose=True, recursive=True)
        except ValidationAborted:
            raise
        except DistcheckError as exc:
            logger.warning("Dependency %s failed validation: %s", query.key, exc)
            outcome = _failed_outcome(query, exc)
            report.outcomes.append(outcome)
            self.memo.record(outcome, False, query.key)
            return False

    @staticmethod
    def _unresolved(key: str, query: PackageQuery, report: WalkReport) -> bool:
        logger.warning("Dependency cycle reached %s, treating it as unresolved", key)
        name, _, version = key.rpartition("@")
        report.outcomes.append(ValidationOutcome(
            package=name or query.name,
            version=version,
            taint=Taint.unresolved(key),
        ))
        return False


def _failed_outcome(query: PackageQuery, exc: DistcheckError) -> ValidationOutcome:
    if isinstance(exc, ContentMismatchError):
        return ValidationOutcome(
            package=exc.package or query.name,
            version=exc.version or query.version_spec,
            taint=exc.taint,
            diff=exc.diff,
            error=str(exc),
        )
    return ValidationOutcome(
        package=query.name,
        version=query.version_spec,
        error=f"{type(exc).__name__}: {exc}",
    )
