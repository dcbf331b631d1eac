"""
Remote media fetching.

Provides:
- HTTP download of media bytes (fetcher.py)
- Extension inference from content signatures (sniff.py)
"""

from .fetcher import FetchError, FetchedAsset, MediaFetcher
from .sniff import UNKNOWN_EXTENSION, detect_extension, infer_extension

__all__ = [
    "FetchError",
    "FetchedAsset",
    "MediaFetcher",
    "UNKNOWN_EXTENSION",
    "detect_extension",
    "infer_extension",
]
