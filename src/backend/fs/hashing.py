"""
Content hashing for media reuse detection.

Uses SHA-256 over the raw bytes. The LinkHashRegistry remembers, per source
link, the digest of the bytes fetched for it so the filename resolver can tell
whether a file already on disk is the very same asset.
"""

from __future__ import annotations

import hashlib
import logging


# Hash algorithm to use
HASH_ALGORITHM = "sha256"

logger = logging.getLogger(__name__)


def compute_bytes_hash(data: bytes) -> str:
    """
    Compute the SHA-256 hash of bytes.

    Args:
        data: The bytes to hash.

    Returns:
        Lowercase hexadecimal hash string.
    """
    return hashlib.new(HASH_ALGORITHM, data).hexdigest()


class LinkHashRegistry:
    """
    In-memory map of source link -> content hash.

    First write wins: once a hash is recorded for a link it is never replaced
    for the lifetime of the registry, even if later fetches return different
    bytes. There is no eviction; the registry grows with the number of
    distinct links seen by the process.

    Usage:
        registry = LinkHashRegistry()
        registry.ensure_hash_generated(link, fetched_bytes)
        if registry.is_same(link, existing_file_bytes):
            # reuse the existing file
            ...
    """

    def __init__(self) -> None:
        self._hashes: dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._hashes)

    def __contains__(self, link: object) -> bool:
        return link in self._hashes

    def get_hash(self, link: str) -> str | None:
        """Get the recorded hash for a link, or None."""
        return self._hashes.get(link)

    def ensure_hash_generated(self, link: str, data: bytes) -> str:
        """
        Record the hash of `data` for `link` unless one is already recorded.

        Calling this again for a known link is a no-op, whatever `data` is.

        Args:
            link: The source URL.
            data: Bytes fetched for the link.

        Returns:
            The hash recorded for the link (possibly from an earlier call).
        """
        existing = self._hashes.get(link)
        if existing is not None:
            return existing

        content_hash = compute_bytes_hash(data)
        self._hashes[link] = content_hash
        logger.debug("Recorded hash %s for %s", content_hash[:12], link)
        return content_hash

    def is_same(self, link: str, data: bytes) -> bool:
        """
        Check whether `data` has the same hash as the one recorded for `link`.

        Returns False when nothing is recorded for the link yet, so callers must
        call ensure_hash_generated() first to get a meaningful answer.

        Args:
            link: The source URL.
            data: Candidate bytes (typically an existing file's content).

        Returns:
            True if the digests match.
        """
        stored = self._hashes.get(link)
        if stored is None:
            return False
        return compute_bytes_hash(data) == stored

    def clear(self) -> None:
        """Forget all recorded hashes."""
        self._hashes.clear()
