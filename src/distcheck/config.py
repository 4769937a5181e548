"""Runtime configuration for validation runs.

``ValidatorConfig`` bundles the external tool executables, timeouts, and the
set of git hosts that allow fetching a commit by sha. Defaults come from the
module-level constants below; the CLI overrides them from options or from a
YAML config file.

Example ``distcheck.yaml``::

    fetch_hosts:
      - git.example.com
    command_timeout: 600
    tools:
      git: /usr/local/bin/git
"""

from __future__ import annotations

import tempfile
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Iterable

import yaml

from distcheck.exceptions import DistcheckError

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

# Hosts known to serve unadvertised commits over plain HTTPS.
DEFAULT_FETCH_HOSTS: frozenset[str] = frozenset({
    "github.com",
    "gitlab.com",
    "bitbucket.org",
})

# Seconds allowed for a single external tool invocation (clone, diff, ...).
DEFAULT_COMMAND_TIMEOUT: float = 300.0

# Seconds allowed for registry and tarball HTTP requests.
DEFAULT_HTTP_TIMEOUT: float = 30.0

# Bytes read per tarball chunk.
DEFAULT_CHUNK_SIZE: int = 64 * 1024

DEFAULT_TOOLS: dict[str, str] = {
    "npm": "npm",
    "git": "git",
    "tar": "tar",
    "diff": "diff",
}


@dataclass(frozen=True)
class ValidatorConfig:
    """Configuration shared by every component of a validation run.

    Attributes:
        tools: Executable per collaborator (``npm``, ``git``, ``tar``, ``diff``).
        fetch_hosts: Git hosts that allow fetching a commit by sha.
        command_timeout: Per-invocation timeout for external tools.
        http_timeout: Timeout for HTTP requests.
        chunk_size: Download chunk size in bytes.
        scratch_root: Parent directory for per-check scratch directories.
    """

    tools: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_TOOLS))
    fetch_hosts: frozenset[str] = DEFAULT_FETCH_HOSTS
    command_timeout: float = DEFAULT_COMMAND_TIMEOUT
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    chunk_size: int = DEFAULT_CHUNK_SIZE
    scratch_root: Path = field(default_factory=lambda: Path(tempfile.gettempdir()))

    def tool(self, name: str) -> str:
        """Return the executable for a collaborator name."""
        return self.tools.get(name, name)

    def with_extra_hosts(self, hosts: Iterable[str]) -> ValidatorConfig:
        """Return a copy with additional fetch-by-commit hosts registered."""
        extra = {h.strip().lower() for h in hosts if h and h.strip()}
        if not extra:
            return self
        return replace(self, fetch_hosts=self.fetch_hosts | extra)

    @classmethod
    def from_file(cls, path: Path) -> ValidatorConfig:
        """Load configuration overrides from a YAML file.

        Unknown keys are rejected so typos do not silently fall back to
        defaults.

        Raises:
            DistcheckError: If the file cannot be read or is malformed.
        """
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError, UnicodeDecodeError) as exc:
            raise DistcheckError(f"Cannot load config {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise DistcheckError(f"Config {path} must be a mapping")
        return cls.from_mapping(data)

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> ValidatorConfig:
        allowed = {
            "tools", "fetch_hosts", "command_timeout",
            "http_timeout", "chunk_size", "scratch_root",
        }
        unknown = set(data) - allowed
        if unknown:
            raise DistcheckError(f"Unknown config keys: {', '.join(sorted(unknown))}")

        config = cls()
        kwargs: dict[str, Any] = {}
        if "tools" in data:
            tools = data["tools"] or {}
            if not isinstance(tools, dict):
                raise DistcheckError("'tools' must be a mapping")
            kwargs["tools"] = {**config.tools, **{str(k): str(v) for k, v in tools.items()}}
        for key in ("command_timeout", "http_timeout"):
            if key in data:
                kwargs[key] = _positive(data, key, float)
        if "chunk_size" in data:
            kwargs["chunk_size"] = _positive(data, "chunk_size", int)
        if "scratch_root" in data:
            kwargs["scratch_root"] = Path(str(data["scratch_root"])).expanduser()
        hosts = data.get("fetch_hosts") or []
        if not isinstance(hosts, list):
            raise DistcheckError("'fetch_hosts' must be a list of host names")
        config = replace(config, **kwargs)
        return config.with_extra_hosts(str(h) for h in hosts)


def _positive(data: dict[str, Any], key: str, kind: type) -> Any:
    try:
        value = kind(data[key])
    except (TypeError, ValueError) as exc:
        raise DistcheckError(f"'{key}' must be a number, got {data[key]!r}") from exc
    if value <= 0:
        raise DistcheckError(f"'{key}' must be positive, got {data[key]!r}")
    return value
