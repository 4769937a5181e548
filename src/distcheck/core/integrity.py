"""Streaming integrity verification for downloaded artifacts.

The registry declares an expected hash either as a Subresource Integrity
string (``"sha512-<base64>"``) or, for older packages, as a bare sha1 hex
``shasum``. ``IntegrityVerifier`` hashes the artifact chunk by chunk as the
extractor consumes it, so the whole tarball is never held in memory.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac

from distcheck.core.models import Integrity, PackageDetails
from distcheck.exceptions import IntegrityError

# Strongest first; used to pick among multiple SRI entries.
_SRI_PREFERENCE: tuple[str, ...] = ("sha512", "sha384", "sha256", "sha1")


def _parse_sri(integrity: str) -> Integrity | None:
    candidates: dict[str, str] = {}
    for token in integrity.split():
        alg, sep, digest = token.partition("-")
        if not sep or not digest:
            continue
        # Options after "?" are reserved by the SRI grammar
        digest = digest.split("?", 1)[0]
        candidates.setdefault(alg.lower(), digest)

    for alg in _SRI_PREFERENCE:
        if alg in candidates:
            try:
                raw = base64.b64decode(candidates[alg], validate=True)
            except (binascii.Error, ValueError) as exc:
                raise IntegrityError(f"Malformed integrity string: {integrity}") from exc
            return Integrity(alg=alg, hash=raw.hex())
    return None


def expected_integrity(details: PackageDetails) -> Integrity:
    """Derive the expected artifact hash from registry metadata.

    Prefers the structured ``integrity`` field and falls back to the legacy
    sha1 ``shasum``.

    Raises:
        IntegrityError: If neither field yields a supported hash.
    """
    if details.integrity:
        parsed = _parse_sri(details.integrity)
        if parsed is not None:
            return parsed
        if not details.shasum:
            raise IntegrityError(
                f"Unsupported integrity algorithm: {details.integrity}"
            )

    if details.shasum:
        return Integrity(alg="sha1", hash=details.shasum.lower())

    raise IntegrityError("No package hash")


class IntegrityVerifier:
    """Running digest over an artifact byte stream.

    Usage::

        verifier = IntegrityVerifier(expected_integrity(details))
        for chunk in stream:
            verifier.update(chunk)
        verifier.verify()
    """

    def __init__(self, expected: Integrity) -> None:
        try:
            self._hasher = hashlib.new(expected.alg)
        except ValueError as exc:
            raise IntegrityError(f"Unsupported hash algorithm: {expected.alg}") from exc
        self.expected = expected
        self.bytes_seen = 0

    def update(self, chunk: bytes) -> None:
        self._hasher.update(chunk)
        self.bytes_seen += len(chunk)

    def hexdigest(self) -> str:
        return self._hasher.hexdigest()

    def verify(self) -> None:
        """Compare the digest so far against the expected hash.

        Raises:
            IntegrityError: On mismatch (case-insensitive hex compare).
        """
        digest = self.hexdigest()
        if not hmac.compare_digest(digest.lower(), self.expected.hash.lower()):
            raise IntegrityError(
                f"Bad package hash: expected {self.expected.alg} "
                f"{self.expected.hash}, got {digest}"
            )
