"""Shared fixtures for distcheck tests."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from helpers import git, write_tree


@pytest.fixture
def git_repo(tmp_path: Path) -> Callable[[dict[str, str]], tuple[Path, str]]:
    """Factory creating a local repository with one commit.

    Returns (repo_path, commit_sha). The repository allows fetching any
    commit by sha, like the hosted providers do.
    """
    counter = {"n": 0}

    def _create(files: dict[str, str]) -> tuple[Path, str]:
        counter["n"] += 1
        repo = tmp_path / f"origin-{counter['n']}"
        repo.mkdir()
        git(repo, "init", "-q")
        git(repo, "config", "uploadpack.allowAnySHA1InWant", "true")
        write_tree(repo, files)
        git(repo, "add", "-A")
        git(repo, "commit", "-q", "-m", "initial")
        return repo, git(repo, "rev-parse", "HEAD")

    return _create


@pytest.fixture
def scratch(tmp_path: Path) -> Path:
    """Empty working directory for fetch and clone destinations."""
    path = tmp_path / "scratch"
    path.mkdir()
    return path
