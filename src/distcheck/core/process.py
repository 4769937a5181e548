"""Async execution of external tools (npm, git, tar, diff).

Every collaborator invocation goes through ``run_command`` so exit-code
policy, output capture, and timeouts behave the same everywhere. Each call
is a suspension point for the event loop.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from distcheck.exceptions import ToolInvocationError

logger = logging.getLogger(__name__)

# Upper bound on captured output per stream.
MAX_OUTPUT_BYTES: int = 4 * 1024 * 1024


@dataclass(frozen=True)
class CommandResult:
    """Captured outcome of one external tool invocation."""

    argv: tuple[str, ...]
    exit_code: int
    stdout: str
    stderr: str


def _decode(data: bytes | None) -> str:
    if not data:
        return ""
    return data[:MAX_OUTPUT_BYTES].decode("utf-8", errors="replace")


async def _kill(process: asyncio.subprocess.Process) -> None:
    with suppress(ProcessLookupError):
        process.kill()
    await process.communicate()


async def run_command(
    *argv: str,
    cwd: Path | str | None = None,
    timeout: float | None = None,
    allowed_exit_codes: Sequence[int] = (0,),
) -> CommandResult:
    """Run an external tool and capture its output.

    Args:
        argv: Executable followed by its arguments.
        cwd: Working directory for the child process.
        timeout: Seconds before the child is killed. None waits forever.
        allowed_exit_codes: Exit codes treated as success.

    Returns:
        The captured result. Its exit code is always in ``allowed_exit_codes``.

    Raises:
        ToolInvocationError: If the tool cannot be started, times out, or
            exits with a code outside ``allowed_exit_codes``.
    """
    logger.debug("exec: %s (cwd=%s)", " ".join(argv), cwd)
    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            cwd=str(cwd) if cwd is not None else None,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        raise ToolInvocationError(
            f"Cannot run {argv[0]}: {exc}", argv=argv
        ) from exc

    try:
        if timeout is None:
            stdout, stderr = await process.communicate()
        else:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout)
    except asyncio.TimeoutError as exc:
        await _kill(process)
        raise ToolInvocationError(
            f"{argv[0]} timed out after {timeout:.0f}s", argv=argv
        ) from exc
    except asyncio.CancelledError:
        await _kill(process)
        raise

    result = CommandResult(
        argv=tuple(argv),
        exit_code=process.returncode if process.returncode is not None else -1,
        stdout=_decode(stdout),
        stderr=_decode(stderr),
    )
    if result.exit_code not in allowed_exit_codes:
        raise ToolInvocationError(
            f"{argv[0]} exited with code {result.exit_code}: {result.stderr.strip()}",
            argv=argv,
            exit_code=result.exit_code,
            stderr=result.stderr,
        )
    return result


async def spawn_sink(*argv: str, cwd: Path | str | None = None) -> asyncio.subprocess.Process:
    """Start a tool that consumes a byte stream on stdin.

    Output is discarded; only the exit code matters to the caller.

    Raises:
        ToolInvocationError: If the tool cannot be started.
    """
    logger.debug("spawn: %s (cwd=%s)", " ".join(argv), cwd)
    try:
        return await asyncio.create_subprocess_exec(
            *argv,
            cwd=str(cwd) if cwd is not None else None,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
    except OSError as exc:
        raise ToolInvocationError(f"Cannot run {argv[0]}: {exc}", argv=argv) from exc
