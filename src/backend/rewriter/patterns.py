"""
Markdown media reference patterns and link classification.
"""

from __future__ import annotations

import re
from urllib.parse import urlparse


# ![anchor](link)
EXTERNAL_MEDIA_ASSET_LINK_PATTERN = re.compile(r"!\[(?P<anchor>.*?)\]\((?P<link>.+?)\)")

# [![[anchor]](link)] as produced by some copy/paste sources
DIRTY_IMAGE_TAG = re.compile(r"\[!\[\[(?P<anchor>.*?)\]\]\((?P<link>.+?)\)\]")

# Anything that looks like a URL; used to decide whether pasted text is worth
# queueing the document for processing.
ANY_URL_PATTERN = re.compile(
    r"[a-zA-Z\d]+://(\w+:\w+@)?([a-zA-Z\d.-]+\.[A-Za-z]{2,4})(:\d+)?(/.*)?",
    re.IGNORECASE,
)

REMOTE_SCHEMES = frozenset({"http", "https"})


def is_url(link: str) -> bool:
    """
    Check whether a reference target is a well-formed external URL.

    Local paths, data: URIs, and scheme-less or host-less strings are not.
    """
    candidate = link.strip()
    if not candidate or any(ch.isspace() for ch in candidate):
        return False

    try:
        parsed = urlparse(candidate)
        # Accessing .port validates it and raises on garbage
        parsed.port
    except ValueError:
        return False

    return parsed.scheme.lower() in REMOTE_SCHEMES and bool(parsed.hostname)


def contains_url(text: str) -> bool:
    """Check whether text contains anything URL-like."""
    return ANY_URL_PATTERN.search(text) is not None


def clean_content(text: str) -> str:
    """Rewrite malformed [![[anchor]](link)] tags to ![anchor](link)."""
    return DIRTY_IMAGE_TAG.sub(lambda m: f"![{m.group('anchor')}]({m.group('link')})", text)
