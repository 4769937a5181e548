"""Download and extract a published package artifact.

The tarball is streamed once: every chunk is written to ``tar``'s stdin and
fed to the ``IntegrityVerifier`` in the same pass. The fetcher produces no
taint. It either succeeds or raises.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from pathlib import Path

import httpx

from distcheck.config import ValidatorConfig
from distcheck.core.integrity import IntegrityVerifier, expected_integrity
from distcheck.core.models import PackageDetails
from distcheck.core.process import spawn_sink
from distcheck.exceptions import ArtifactDownloadError, DistcheckError, ToolInvocationError
from distcheck.registry.http_client import stream_download

logger = logging.getLogger(__name__)


def check_destination(dst: Path | str) -> Path:
    """Validate a scratch destination path and return it resolved.

    Raises:
        ValueError: If the path is empty or the filesystem root.
    """
    if not dst or not str(dst).strip():
        raise ValueError("Invalid dst path")
    resolved = Path(dst).resolve()
    if resolved == Path(resolved.anchor):
        raise ValueError("Invalid dst path")
    return resolved


class ArtifactFetcher:
    """Fetches a package tarball into a fresh directory, verifying its hash."""

    def __init__(
        self,
        config: ValidatorConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or ValidatorConfig()
        self.transport = transport

    async def fetch(self, details: PackageDetails, dst: Path | str) -> None:
        """Download, extract and verify the artifact of ``details``.

        Args:
            details: Resolved package record.
            dst: Destination directory. Must not exist yet.

        Raises:
            ValueError: If ``dst`` is empty or the filesystem root.
            FileExistsError: If ``dst`` already exists.
            ArtifactDownloadError: On a non-200 response or transport error.
            ToolInvocationError: If extraction fails.
            IntegrityError: If the downloaded bytes do not match.
        """
        dst = check_destination(dst)
        if not details.tarball_url:
            raise DistcheckError(f"Missing package url for {details.key}")

        verifier = IntegrityVerifier(expected_integrity(details))

        async with stream_download(
            details.tarball_url,
            timeout=self.config.http_timeout,
            transport=self.transport,
        ) as response:
            if response.status_code != 200:
                raise ArtifactDownloadError(
                    f"Bad server response: {response.status_code}"
                )
            dst.mkdir()

            # TODO: check tar handles duplicate entries the way npm does on
            # case-insensitive filesystems.
            tar = await spawn_sink(self.config.tool("tar"), "zx", "--strip=1", cwd=dst)
            try:
                await self._pump(response.aiter_bytes(self.config.chunk_size), tar, verifier)
                code = await tar.wait()
            except BaseException:
                with suppress(ProcessLookupError):
                    tar.kill()
                await tar.wait()
                raise

        if code != 0:
            raise ToolInvocationError(
                f"Abnormal exit, code: {code}",
                argv=(self.config.tool("tar"), "zx", "--strip=1"),
                exit_code=code,
            )

        verifier.verify()
        logger.debug(
            "Fetched %s (%d bytes, %s ok)",
            details.key, verifier.bytes_seen, verifier.expected.alg,
        )

    @staticmethod
    async def _pump(
        chunks, tar: asyncio.subprocess.Process, verifier: IntegrityVerifier
    ) -> None:
        assert tar.stdin is not None
        writable = True
        async for chunk in chunks:
            verifier.update(chunk)
            if not writable:
                continue
            try:
                tar.stdin.write(chunk)
                await tar.stdin.drain()
            except (BrokenPipeError, ConnectionResetError):
                # tar exited early; keep hashing, its exit code reports the failure
                writable = False
        if writable:
            tar.stdin.close()
            with suppress(BrokenPipeError, ConnectionResetError):
                await tar.stdin.wait_closed()
