"""distcheck: Provenance checks for published npm packages.

Downloads a published package artifact, checks out the git commit its
publisher recorded, and proves the two trees match.
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"
