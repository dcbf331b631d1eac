"""
Content rewriter: localizes remote media references inside document text.

Each ![anchor](link) whose link is an external URL is fetched, given a local
name by the FilenameResolver, written if needed, and replaced by
![anchor](<local path>). Everything else in the text is left untouched.

Matches are handled strictly left to right, one at a time. A link that was
already localized under the same directory and base name is reused without
another download as long as the file still holds the recorded bytes.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Awaitable, Callable, NamedTuple, Optional

from ..fetcher.fetcher import FetchedAsset, MediaFetcher
from ..fs.naming import FilenameResolver
from ..fs.storage import Document, Storage, StorageConflictError
from .patterns import EXTERNAL_MEDIA_ASSET_LINK_PATTERN, is_url
from .template import render_name_pattern


# Resolution attempts per match when the chosen file appears concurrently
FILENAME_ATTEMPTS = 5


class MatchStatus(str, Enum):
    """Outcome of a single media reference."""
    LOCALIZED = "localized"  # Fetched and written to a new file
    REUSED = "reused"        # Identical file already existed
    SKIPPED = "skipped"      # Not an external URL; left as is
    FAILED = "failed"        # Error; original text kept


@dataclass
class RewriteStats:
    """Per-pass match statistics."""
    localized: int = 0
    reused: int = 0
    skipped: int = 0
    failed: int = 0
    failed_links: list[str] = field(default_factory=list)

    def increment(self, status: MatchStatus, link: str) -> None:
        """Update stats based on a match outcome."""
        if status == MatchStatus.LOCALIZED:
            self.localized += 1
        elif status == MatchStatus.REUSED:
            self.reused += 1
        elif status == MatchStatus.SKIPPED:
            self.skipped += 1
        elif status == MatchStatus.FAILED:
            self.failed += 1
            self.failed_links.append(link)

    @property
    def total_processed(self) -> int:
        return self.localized + self.reused + self.skipped + self.failed

    def to_dict(self) -> dict:
        return {
            "localized": self.localized,
            "reused": self.reused,
            "skipped": self.skipped,
            "failed": self.failed,
        }


class RewriteResult(NamedTuple):
    """Rewritten text, whether it differs from the input, and stats."""
    text: str
    changed: bool
    stats: RewriteStats


@dataclass(frozen=True)
class DocumentContext:
    """Per-document inputs to a rewrite pass."""
    document: Document
    media_dir: str
    now: datetime = field(default_factory=datetime.now)


ErrorCallback = Callable[[str, Exception], None]


async def replace_async(
    text: str,
    pattern: re.Pattern[str],
    replacer: Callable[[re.Match[str]], Awaitable[str]],
) -> str:
    """
    re.sub() with an async replacement function.

    Replacements are awaited one after another in match order; unmatched
    spans are copied through unchanged.
    """
    parts: list[str] = []
    last_end = 0
    for match in pattern.finditer(text):
        parts.append(text[last_end:match.start()])
        parts.append(await replacer(match))
        last_end = match.end()
    parts.append(text[last_end:])
    return "".join(parts)


class ContentRewriter:
    """
    Rewrites remote media references to local copies.

    Usage:
        rewriter = ContentRewriter(storage=storage, fetcher=MediaFetcher(), resolver=resolver)
        result = await rewriter.rewrite(text, "{{FileName}}_{{Anchor}}", context)
        if result.changed:
            await storage.write_document_text(document, result.text)
    """

    def __init__(
        self,
        *,
        storage: Storage,
        fetcher: MediaFetcher,
        resolver: FilenameResolver,
        filename_attempts: int = FILENAME_ATTEMPTS,
        on_error: Optional[ErrorCallback] = None,
    ):
        """
        Initialize the rewriter.

        Args:
            storage: Storage used to write new media files.
            fetcher: Fetcher for remote bytes (blocking; run in a thread).
            resolver: Filename resolver.
            filename_attempts: Resolution attempts per match on write conflicts.
            on_error: Optional callback receiving (link, exception) for every
                failed match.
        """
        self._storage = storage
        self._fetcher = fetcher
        self._resolver = resolver
        self._filename_attempts = filename_attempts
        self._on_error = on_error
        self._known_paths: dict[tuple[str, str, str], str] = {}
        self._log = logging.getLogger(__name__)

    async def rewrite(self, text: str, name_pattern: str, context: DocumentContext) -> RewriteResult:
        """
        Localize every external media reference in `text`.

        Args:
            text: Document text.
            name_pattern: Name template expanded per match into the base name.
            context: Document, media directory and timestamp for this pass.

        Returns:
            RewriteResult with the new text and whether it changed.
        """
        stats = RewriteStats()

        async def _replace(match: re.Match[str]) -> str:
            replacement, status = await self._process_match(match, name_pattern, context)
            stats.increment(status, match.group("link"))
            return replacement

        new_text = await replace_async(text, EXTERNAL_MEDIA_ASSET_LINK_PATTERN, _replace)
        return RewriteResult(text=new_text, changed=new_text != text, stats=stats)

    async def _process_match(
        self,
        match: re.Match[str],
        name_pattern: str,
        context: DocumentContext,
    ) -> tuple[str, MatchStatus]:
        original = match.group(0)
        anchor = match.group("anchor")
        link = match.group("link")

        if not is_url(link):
            return original, MatchStatus.SKIPPED

        try:
            base_name = render_name_pattern(
                name_pattern,
                anchor=anchor,
                document=context.document,
                now=context.now,
            )
            key = (context.media_dir, base_name, link)

            known_path = await self._find_known_copy(key, link)
            if known_path is not None:
                return f"![{anchor}]({known_path})", MatchStatus.REUSED

            asset = await asyncio.to_thread(self._fetcher.fetch, link)
            return await self._localize(key, anchor, asset, original)
        except Exception as exc:
            self._report_failure(link, exc)
            return original, MatchStatus.FAILED

    async def _find_known_copy(self, key: tuple[str, str, str], link: str) -> Optional[str]:
        """
        Path this link was localized to before under the same directory and
        base name, if that file still holds the bytes recorded for the link.
        Lets repeated references skip the download entirely.
        """
        path = self._known_paths.get(key)
        if path is None or link not in self._resolver.registry:
            return None

        if await self._storage.exists(path):
            existing = await self._storage.read_bytes(path)
            if self._resolver.registry.is_same(link, existing):
                self._log.debug("Reusing %s for %s without fetching", path, link)
                return path

        self._known_paths.pop(key, None)
        return None

    async def _localize(
        self,
        key: tuple[str, str, str],
        anchor: str,
        asset: FetchedAsset,
        original: str,
    ) -> tuple[str, MatchStatus]:
        media_dir, base_name, link = key
        # Another pass may write the chosen name between resolve() and
        # create_file(); resolve again so the next round sees that file.
        for attempt in range(self._filename_attempts):
            resolved = await self._resolver.resolve(media_dir, base_name, link, asset)
            try:
                if resolved.needs_write:
                    await self._storage.create_file(resolved.path, asset.data)
            except StorageConflictError as exc:
                self._log.debug(
                    "Attempt %d/%d: %s appeared while localizing %s: %s",
                    attempt + 1,
                    self._filename_attempts,
                    resolved.path,
                    link,
                    exc,
                )
                continue

            self._known_paths[key] = resolved.path
            status = MatchStatus.LOCALIZED if resolved.needs_write else MatchStatus.REUSED
            return f"![{anchor}]({resolved.path})", status

        self._report_failure(
            link,
            StorageConflictError(f"Gave up after {self._filename_attempts} conflicting writes"),
        )
        return original, MatchStatus.FAILED

    def _report_failure(self, link: str, exc: Exception) -> None:
        self._log.warning("Media processing failed for %s: %s", link, exc)
        if self._on_error is not None:
            self._on_error(link, exc)
