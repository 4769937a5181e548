"""Test helpers: registry records, tarballs, git repositories, transports.

Imported by test modules directly (``tests/`` is on the pytest path).
"""

from __future__ import annotations

import base64
import hashlib
import io
import os
import shutil
import subprocess
import tarfile
from pathlib import Path

import httpx
import pytest

from distcheck.core.git import FetchByCommitHosts
from distcheck.core.models import PackageDetails, Repository

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
requires_tar = pytest.mark.skipif(shutil.which("tar") is None, reason="tar not installed")
requires_diff = pytest.mark.skipif(shutil.which("diff") is None, reason="diff not installed")

_GIT_ENV = {
    "GIT_AUTHOR_NAME": "Test Author",
    "GIT_AUTHOR_EMAIL": "author@example.com",
    "GIT_COMMITTER_NAME": "Test Author",
    "GIT_COMMITTER_EMAIL": "author@example.com",
    "GIT_CONFIG_NOSYSTEM": "1",
}


def sri(data: bytes, alg: str = "sha512") -> str:
    """Subresource Integrity string for ``data``."""
    digest = hashlib.new(alg, data).digest()
    return f"{alg}-{base64.b64encode(digest).decode('ascii')}"


def make_tarball(files: dict[str, str], prefix: str = "package") -> bytes:
    """Build a gzipped tarball with every file under ``prefix/``."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        for name, content in sorted(files.items()):
            data = content.encode("utf-8")
            info = tarfile.TarInfo(f"{prefix}/{name}")
            info.size = len(data)
            info.mode = 0o644
            tar.addfile(info, io.BytesIO(data))
    return buf.getvalue()


def make_details(
    name: str = "pkg",
    version: str = "1.0.0",
    *,
    tarball: bytes | None = None,
    repo_url: str = "https://github.com/example/pkg.git",
    git_head: str | None = "a" * 40,
    dependencies: dict[str, str] | None = None,
) -> PackageDetails:
    """Convenience factory for PackageDetails instances."""
    return PackageDetails(
        name=name,
        version=version,
        tarball_url=f"https://registry.example.com/{name}/-/{name}-{version}.tgz",
        integrity=sri(tarball if tarball is not None else b""),
        repository=Repository(type="git", url=repo_url) if repo_url else None,
        git_head=git_head,
        dependencies=dependencies or {},
    )


def mock_transport(body: bytes, status_code: int = 200) -> httpx.MockTransport:
    """Transport answering every request with ``body``."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, content=body)

    return httpx.MockTransport(handler)


def git(cwd: Path, *args: str) -> str:
    """Run git synchronously for fixture setup."""
    env = {**os.environ, **_GIT_ENV}
    result = subprocess.run(
        ["git", "-c", "commit.gpgsign=false", "-c", "tag.gpgsign=false", *args],
        cwd=cwd, env=env, check=True, capture_output=True, text=True,
    )
    return result.stdout.strip()


def write_tree(root: Path, files: dict[str, str]) -> None:
    for name, content in files.items():
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)


class LocalHosts(FetchByCommitHosts):
    """Treats every file:// repository as commit-fetchable."""

    def supports(self, url: str) -> bool:
        return url.startswith("file://")
