"""
Markdown media reference rewriting.

Provides:
- Reference patterns and URL classification (patterns.py)
- Name pattern rendering (template.py)
- Async content rewriting (rewriter.py)
"""

from .patterns import ANY_URL_PATTERN, EXTERNAL_MEDIA_ASSET_LINK_PATTERN, clean_content, contains_url, is_url
from .rewriter import (
    ContentRewriter,
    DocumentContext,
    MatchStatus,
    RewriteResult,
    RewriteStats,
    replace_async,
)
from .template import render_name_pattern

__all__ = [
    "ANY_URL_PATTERN",
    "EXTERNAL_MEDIA_ASSET_LINK_PATTERN",
    "clean_content",
    "contains_url",
    "is_url",
    "ContentRewriter",
    "DocumentContext",
    "MatchStatus",
    "RewriteResult",
    "RewriteStats",
    "replace_async",
    "render_name_pattern",
]
