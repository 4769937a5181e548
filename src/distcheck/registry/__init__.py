"""Registry lookups and HTTP helpers.

Public API::

    from distcheck.registry import PackageRegistry, NpmViewRegistry
"""

from __future__ import annotations

from distcheck.registry.base import PackageRegistry
from distcheck.registry.npm_view import NpmViewRegistry

__all__ = [
    "NpmViewRegistry",
    "PackageRegistry",
]
