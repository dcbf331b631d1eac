"""
File extension inference from byte content.

URL suffixes are never consulted; only the leading bytes decide.
"""

from __future__ import annotations

from typing import Optional

from filetype import guess


# Extension used when no signature matches
UNKNOWN_EXTENSION = "bin"

# Normalize a few aliases reported by signature detection
_EXTENSION_ALIASES = {
    "jpeg": "jpg",
    "tif": "tiff",
}

# SVG is text, so it has no binary signature; look for the root element
# near the start of the document instead.
_SVG_PROBE_BYTES = 1024


def _looks_like_svg(data: bytes) -> bool:
    head = data[:_SVG_PROBE_BYTES].lstrip().lower()
    if head.startswith(b"\xef\xbb\xbf"):
        head = head[3:].lstrip()
    if head.startswith(b"<svg"):
        return True
    return head.startswith(b"<?xml") and b"<svg" in head


def detect_extension(data: bytes) -> Optional[str]:
    """
    Detect a file extension from the data's signature.

    Args:
        data: Raw file bytes.

    Returns:
        Lowercase extension without dot, or None if nothing matched.
    """
    if not data:
        return None

    kind = guess(data)
    if kind is not None:
        ext = kind.extension.lower()
        return _EXTENSION_ALIASES.get(ext, ext)

    if _looks_like_svg(data):
        return "svg"

    return None


def infer_extension(data: bytes) -> str:
    """Detect the extension, falling back to UNKNOWN_EXTENSION."""
    return detect_extension(data) or UNKNOWN_EXTENSION
