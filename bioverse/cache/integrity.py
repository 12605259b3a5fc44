"""SHA-256 integrity checks for cached payloads."""

from __future__ import annotations

import hashlib


class IntegrityVerifier:
    """Compute and verify SHA-256 checksums for cached data.

    Structure records carry the checksum of their payload so a truncated or
    hand-edited cache row is detected on read and treated as a miss.
    """

    @staticmethod
    def compute_checksum_text(content: str) -> str:
        """Compute SHA-256 hex digest of a text payload (UTF-8)."""
        return hashlib.sha256(content.encode("utf-8")).hexdigest()

    @staticmethod
    def verify_text(content: str, expected_checksum: str) -> bool:
        """Verify that a text payload matches the expected checksum."""
        return IntegrityVerifier.compute_checksum_text(content) == expected_checksum
