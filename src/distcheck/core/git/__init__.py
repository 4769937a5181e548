"""Git source resolution for published package versions.

Submodules:
    hosts       -- URL normalization and the fetch-by-commit host registry
    reconciler  -- GitReconciler, the tag/commit resolution state machine
"""

from distcheck.core.git.hosts import FetchByCommitHosts, normalize_repo_url
from distcheck.core.git.reconciler import (
    GitReconciler,
    GitResolution,
    GitState,
    StepResult,
    head_taint,
)

__all__ = [
    "FetchByCommitHosts",
    "GitReconciler",
    "GitResolution",
    "GitState",
    "StepResult",
    "head_taint",
    "normalize_repo_url",
]
