"""
Media file naming and collision resolution.

Filename format: <baseName>.<ext>, then <baseName>-1.<ext>, <baseName>-2.<ext>, ...

- baseName: rendered name pattern, else the URL's last path segment, else
  FALLBACK_BASENAME; sanitized for the file system
- ext: sniffed from the fetched bytes, never taken from the URL

Collision resolution is content aware: an existing file whose bytes match the
hash recorded for the same link is reused instead of writing a duplicate, and
an existing file with different bytes is never overwritten.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from urllib.parse import unquote, urlparse

from ..fetcher.fetcher import FetchedAsset
from .hashing import LinkHashRegistry
from .storage import Storage, join_path


# Used when neither the pattern nor the URL yields a name
FALLBACK_BASENAME = "media_asset"

# Upper bound of the -<index> suffix search
MAX_FILENAME_INDEX = 1000

# Keep names well under common 255-byte limits, leaving room for "-999.ext"
MAX_BASENAME_LENGTH = 200

# Characters illegal in file names on at least one major platform
_ILLEGAL_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f\x7f]+')
# Whitespace breaks markdown link targets
_WHITESPACE = re.compile(r"\s+")
_REPEATED_REPLACEMENT = re.compile(r"_{2,}")
_WINDOWS_RESERVED = re.compile(r"^(con|prn|aux|nul|com\d|lpt\d)$", re.IGNORECASE)

logger = logging.getLogger(__name__)


class NameGenerationError(RuntimeError):
    """Raised when no free or content-matching name exists within the search bound."""


@dataclass(frozen=True)
class ResolvedName:
    """Destination chosen for an asset."""
    path: str          # Vault-relative path
    needs_write: bool  # False when an identical file is already at `path`


def sanitize_filename(name: str, replacement: str = "_") -> str:
    """
    Turn an arbitrary string into a file-system-safe base name.

    Args:
        name: Raw base name (no directory, no extension).
        replacement: Substitute for illegal characters and whitespace.

    Returns:
        Sanitized name; may be empty if nothing usable remains.
    """
    cleaned = _ILLEGAL_CHARS.sub(replacement, name)
    cleaned = _WHITESPACE.sub(replacement, cleaned)
    if replacement == "_":
        cleaned = _REPEATED_REPLACEMENT.sub("_", cleaned)

    # Leading/trailing dots make hidden or invalid names
    cleaned = cleaned.strip(" .")

    if _WINDOWS_RESERVED.match(cleaned):
        cleaned = f"{cleaned}{replacement}"

    return cleaned[:MAX_BASENAME_LENGTH].rstrip(" .")


def basename_from_url(link: str) -> str:
    """
    Get the last path segment of a URL, percent-decoded.

    Returns an empty string for URLs without a path segment.
    """
    path = urlparse(link).path
    segment = path.rstrip("/").rsplit("/", 1)[-1] if path else ""
    return unquote(segment)


def build_candidate_name(directory: str, base_name: str, extension: str, index: int) -> str:
    """
    Build the candidate path for a given collision index.

    Index 0 is the bare name; later indexes append "-<index>".
    """
    suffix = f"-{index}" if index else ""
    return join_path(directory, f"{base_name}{suffix}.{extension}")


def prepare_base_name(base_name: str, link: str, extension: str) -> str:
    """
    Apply the base-name fallback chain, strip a duplicate extension and sanitize.

    Args:
        base_name: Desired name (may be empty).
        link: Source URL, used when base_name is empty.
        extension: Sniffed extension of the content.

    Returns:
        A non-empty sanitized base name.
    """
    if not base_name:
        base_name = basename_from_url(link)
    if not base_name:
        base_name = FALLBACK_BASENAME

    # Avoid "diagram.png.png"
    dotted_ext = f".{extension}"
    if base_name.lower().endswith(dotted_ext.lower()):
        base_name = base_name[: -len(dotted_ext)]

    return sanitize_filename(base_name) or FALLBACK_BASENAME


class FilenameResolver:
    """
    Picks a collision-free destination for fetched media.

    Usage:
        resolver = FilenameResolver(storage=storage, registry=registry)
        resolved = await resolver.resolve("_assets", "diagram", link, asset)
        if resolved.needs_write:
            await storage.create_file(resolved.path, asset.data)
    """

    def __init__(
        self,
        *,
        storage: Storage,
        registry: LinkHashRegistry,
        max_index: int = MAX_FILENAME_INDEX,
    ):
        """
        Initialize the resolver.

        Args:
            storage: Storage used to probe and read candidate files.
            registry: Process-wide link hash registry.
            max_index: Number of candidate indexes to try.
        """
        self._storage = storage
        self._registry = registry
        self._max_index = max_index

    @property
    def registry(self) -> LinkHashRegistry:
        return self._registry

    async def resolve(
        self,
        directory: str,
        base_name: str,
        link: str,
        asset: FetchedAsset,
    ) -> ResolvedName:
        """
        Resolve a destination path for `asset`.

        For each candidate name in order:
        - free path: take it, needs_write=True
        - existing path: record the link's hash (from asset.data) if this is
          the first time the link is seen, then compare the existing file
          against it. Identical: take it, needs_write=False. Different: try
          the next index.

        The hash must be recorded before the comparison, otherwise is_same()
        always answers False for a new link.

        Args:
            directory: Target directory (vault-relative).
            base_name: Desired base name, possibly empty.
            link: Source URL of the asset.
            asset: Fetched bytes and sniffed extension.

        Returns:
            ResolvedName for the chosen path.

        Raises:
            NameGenerationError: If every candidate up to max_index is taken
                by different content.
        """
        extension = asset.extension
        base_name = prepare_base_name(base_name, link, extension)

        for index in range(self._max_index):
            candidate = build_candidate_name(directory, base_name, extension, index)

            if not await self._storage.exists(candidate):
                self._registry.ensure_hash_generated(link, asset.data)
                return ResolvedName(path=candidate, needs_write=True)

            self._registry.ensure_hash_generated(link, asset.data)
            existing = await self._storage.read_bytes(candidate)
            if self._registry.is_same(link, existing):
                logger.debug("Reusing %s for %s", candidate, link)
                return ResolvedName(path=candidate, needs_write=False)

        raise NameGenerationError(
            f"Failed to generate file name for media file {base_name}.{extension} "
            f"in {directory!r} after {self._max_index} attempts"
        )
