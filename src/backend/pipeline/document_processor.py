from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

from src.backend.fs.storage import Document, FolderExistsError, Storage, join_path
from src.backend.notify import NOTICE_TIMEOUT_MS, TIMEOUT_LIKE_INFINITY_MS, Notifier
from src.backend.rewriter.patterns import clean_content
from src.backend.rewriter.rewriter import ContentRewriter, DocumentContext, RewriteStats
from src.backend.scheduler.queue import WorkQueue
from src.backend.settings.models import LocalizerSettings


DOCUMENT_ASSETS_SUFFIX = ".assets"

DocumentPredicate = Callable[[Document], bool]
SettingsProvider = Callable[[], LocalizerSettings]

logger = logging.getLogger(__name__)


@dataclass
class DocumentResult:
    """Outcome of processing one document."""
    document: Document
    changed: bool
    stats: RewriteStats


@dataclass
class BatchResult:
    """Outcome of processing all matching documents."""
    total: int = 0
    changed: int = 0
    failed_links: int = 0
    failed_documents: list[Document] = field(default_factory=list)
    results: list[DocumentResult] = field(default_factory=list)

    def add(self, result: DocumentResult) -> None:
        self.results.append(result)
        if result.changed:
            self.changed += 1
        self.failed_links += result.stats.failed


def media_dir_for(settings: LocalizerSettings, document: Document) -> str:
    """
    Directory for a document's media.

    <asset_dir>/<document basename>.assets when per-document folders are on,
    else <asset_dir>.
    """
    if settings.create_file_dir:
        return join_path(settings.asset_dir, document.basename + DOCUMENT_ASSETS_SUFFIX)
    return join_path(settings.asset_dir)


def include_predicate(pattern: str) -> DocumentPredicate:
    """Predicate matching document paths against the include regex (case-insensitive search)."""
    include_re = re.compile(pattern, re.IGNORECASE)
    return lambda document: include_re.search(document.path) is not None


class DocumentProcessor:
    """
    Localizes media for single documents and for batches of documents.

    Settings are read through `settings_provider` at the start of every pass
    and never modified here.
    """

    def __init__(
        self,
        *,
        storage: Storage,
        rewriter: ContentRewriter,
        queue: WorkQueue[Document],
        notifier: Notifier,
        settings_provider: SettingsProvider,
        clock: Callable[[], datetime] = datetime.now,
        notice_timeout_ms: int = NOTICE_TIMEOUT_MS,
    ) -> None:
        self._storage = storage
        self._rewriter = rewriter
        self._queue = queue
        self._notifier = notifier
        self._settings_provider = settings_provider
        self._clock = clock
        self._notice_timeout_ms = notice_timeout_ms

    async def process_document(self, document: Document, silent: bool = False) -> DocumentResult:
        """
        Rewrite one document's remote media references and save it if changed.

        Storage errors reading or writing the document itself propagate.
        """
        settings = self._settings_provider()
        content = await self._storage.read_document_text(document)

        media_dir = media_dir_for(settings, document)
        await self._ensure_folder_exists(media_dir)

        source = clean_content(content) if settings.clean_content else content
        context = DocumentContext(document=document, media_dir=media_dir, now=self._clock())
        result = await self._rewriter.rewrite(source, settings.name_pattern, context)

        changed = result.text != content
        if changed:
            self._queue.remove(document)
            await self._storage.write_document_text(document, result.text)

        logger.info(
            "Processed %s: changed=%s %s",
            document.path,
            changed,
            result.stats.to_dict(),
        )

        if not silent and settings.show_notifications:
            self._notifier.notify(self._summary(document, changed, result.stats), NOTICE_TIMEOUT_MS)

        return DocumentResult(document=document, changed=changed, stats=result.stats)

    async def process_all(self, predicate: Optional[DocumentPredicate] = None) -> BatchResult:
        """
        Process every document accepted by `predicate`, in listing order.

        Defaults to the include regex from settings. A document that cannot be
        processed is logged, recorded in `failed_documents` and skipped.
        Progress is reported through one persistent notice that is always
        dismissed after a delay.
        """
        settings = self._settings_provider()
        if predicate is None:
            predicate = include_predicate(settings.include)

        documents = [d for d in await self._storage.list_documents() if predicate(d)]
        batch = BatchResult(total=len(documents))

        notice = None
        if settings.show_notifications:
            notice = self._notifier.notify(
                f"Local media: start processing. Total {batch.total} pages.",
                TIMEOUT_LIKE_INFINITY_MS,
            )

        try:
            for index, document in enumerate(documents, start=1):
                if notice is not None:
                    notice.update_message(
                        f'Local media: processing\n"{document.path}"\nPage {index} of {batch.total}'
                    )
                try:
                    batch.add(await self.process_document(document, silent=True))
                except Exception:  # noqa: BLE001
                    logger.exception("Processing failed for %s", document.path)
                    batch.failed_documents.append(document)
        finally:
            if notice is not None:
                notice.update_message(self._batch_summary(batch))
                asyncio.get_running_loop().call_later(self._notice_timeout_ms / 1000.0, notice.dismiss)

        return batch

    async def _ensure_folder_exists(self, path: str) -> None:
        if not path:
            return
        try:
            await self._storage.create_folder(path)
        except FolderExistsError:
            pass

    @staticmethod
    def _batch_summary(batch: BatchResult) -> str:
        message = f"Local media: {batch.total} pages were processed."
        if batch.failed_documents:
            message += f" {len(batch.failed_documents)} page(s) could not be processed."
        return message

    @staticmethod
    def _summary(document: Document, changed: bool, stats: RewriteStats) -> str:
        if changed:
            message = f'Images for "{document.path}" were processed.'
        else:
            message = f'Page "{document.path}" has been processed, but nothing was changed.'
        if stats.failed:
            message += f" {stats.failed} media link(s) could not be localized."
        return message
