"""Repository URL normalization and fetch-by-commit host registry.

Package metadata declares repositories in several URL forms
(``git+https://``, ``git://``, ``https://``). For hosts we recognize, the
URL is rewritten to plain HTTPS. Only those hosts are trusted to serve an
unadvertised commit by sha, which the reconciler needs when tags are
unusable.

The repository URL itself comes from publisher-controlled metadata. Nothing
here proves that the repository is the genuine source of the package.
"""

from __future__ import annotations

from typing import Iterable
from urllib.parse import urlsplit

from distcheck.config import DEFAULT_FETCH_HOSTS

# Schemes rewritten to https for recognized hosts.
_REWRITABLE_SCHEMES: frozenset[str] = frozenset({"git", "git+https", "https"})


def _host_of(url: str) -> str:
    try:
        return (urlsplit(url).hostname or "").lower()
    except ValueError:
        return ""


class FetchByCommitHosts:
    """Registry of git hosts that allow ``git fetch <sha>`` over HTTPS.

    Usage::

        hosts = FetchByCommitHosts()
        hosts.register("git.example.com")
        url = hosts.normalize("git+https://github.com/hapijs/hoek.git")
        hosts.supports(url)  # True
    """

    def __init__(self, hosts: Iterable[str] = DEFAULT_FETCH_HOSTS) -> None:
        self._hosts: set[str] = {h.lower() for h in hosts}

    @property
    def hosts(self) -> frozenset[str]:
        return frozenset(self._hosts)

    def register(self, host: str) -> None:
        self._hosts.add(host.strip().lower())

    def recognizes(self, url: str) -> bool:
        """True if the URL points at a registered host, in any scheme."""
        return _host_of(url) in self._hosts

    def normalize(self, url: str) -> str:
        """Rewrite ``git+https://`` and ``git://`` URLs of known hosts to https.

        URLs of unknown hosts and other schemes (``ssh``, ``file``) are
        returned unchanged.
        """
        scheme, sep, rest = url.partition(":")
        if not sep or scheme.lower() not in _REWRITABLE_SCHEMES:
            return url
        if not rest.startswith("//") or not self.recognizes(url):
            return url
        return "https:" + rest

    def supports(self, url: str) -> bool:
        """True if a commit can be fetched directly from ``url``.

        Only plain ``https://`` URLs of registered hosts qualify; normalize
        first.
        """
        return url.lower().startswith("https://") and self.recognizes(url)


def normalize_repo_url(url: str, hosts: FetchByCommitHosts | None = None) -> str:
    """Module-level shortcut for ``FetchByCommitHosts.normalize``."""
    return (hosts or FetchByCommitHosts()).normalize(url)
