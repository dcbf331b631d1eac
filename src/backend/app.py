from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Optional

from .fetcher.fetcher import MediaFetcher
from .fs.hashing import LinkHashRegistry
from .fs.naming import FilenameResolver
from .fs.storage import Document, LocalStorage, Storage
from .host import PASTE_ORIGIN, EditorChange, EditorChangeSource, Workspace
from .notify import LoggingNotifier, Notifier
from .pipeline.document_processor import BatchResult, DocumentProcessor, DocumentResult
from .rewriter.patterns import contains_url
from .rewriter.rewriter import ContentRewriter
from .scheduler.queue import WorkQueue
from .scheduler.scheduler import PasteScheduler
from .settings.models import LocalizerSettings
from .settings.store import SettingsStore
from .settings.validation import ConfigurationError, apply_patch


SETTINGS_FILENAME = "data.json"

logger = logging.getLogger(__name__)


class LocalizerPlugin:
    """
    Host-facing entry points.

    Commands:
        process_active_document()  "Download images locally"
        process_all_documents()    "Download images locally for all your notes"

    enable()/disable() tie the paste timer and the editor subscription to the
    plugin lifecycle.
    """

    def __init__(
        self,
        *,
        storage: Storage,
        store: SettingsStore,
        workspace: Workspace,
        editor_events: Optional[EditorChangeSource] = None,
        notifier: Optional[Notifier] = None,
        fetcher: Optional[MediaFetcher] = None,
        registry: Optional[LinkHashRegistry] = None,
    ) -> None:
        self._store = store
        self._workspace = workspace
        self._editor_events = editor_events
        self._notifier: Notifier = notifier or LoggingNotifier()
        self._settings = store.load()
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._enabled = False

        self.registry = registry or LinkHashRegistry()
        self.queue: WorkQueue[Document] = WorkQueue()

        resolver = FilenameResolver(storage=storage, registry=self.registry)
        rewriter = ContentRewriter(
            storage=storage,
            fetcher=fetcher or MediaFetcher(),
            resolver=resolver,
        )
        self.processor = DocumentProcessor(
            storage=storage,
            rewriter=rewriter,
            queue=self.queue,
            notifier=self._notifier,
            settings_provider=lambda: self._settings,
        )
        self.scheduler = PasteScheduler(
            config=self._settings.to_scheduler_config(),
            queue=self.queue,
            processor=self.processor.process_document,
        )

    @property
    def settings(self) -> LocalizerSettings:
        return self._settings

    @property
    def enabled(self) -> bool:
        return self._enabled

    # ---------------------------------------------------------------------
    # Lifecycle
    # ---------------------------------------------------------------------

    async def enable(self) -> None:
        self._settings = self._store.load()
        self._enabled = True
        await self.scheduler.restart(self._settings.to_scheduler_config())
        if self._editor_events is not None and self._unsubscribe is None:
            self._unsubscribe = self._editor_events.subscribe(self.on_editor_change)

    async def disable(self) -> None:
        self._enabled = False
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        await self.scheduler.stop()

    # ---------------------------------------------------------------------
    # Commands
    # ---------------------------------------------------------------------

    async def process_active_document(self) -> Optional[DocumentResult]:
        document = self._workspace.get_active_document()
        if document is None:
            logger.info("No active document to process")
            return None
        try:
            return await self.processor.process_document(document)
        except (OSError, ValueError) as exc:
            # ValueError: undecodable text or a path outside the vault
            self.display_error(exc, document)
            return None

    async def process_all_documents(self) -> BatchResult:
        return await self.processor.process_all()

    # ---------------------------------------------------------------------
    # Editor events
    # ---------------------------------------------------------------------

    def on_editor_change(self, change: EditorChange) -> None:
        if change.origin != PASTE_ORIGIN or not contains_url(change.text):
            return
        if not self._settings.real_time_update:
            return
        document = self._workspace.get_active_document()
        if document is not None:
            self.scheduler.enqueue(document)

    # ---------------------------------------------------------------------
    # Settings
    # ---------------------------------------------------------------------

    async def update_settings(self, **changes: Any) -> LocalizerSettings:
        """
        Validate, persist and apply a settings change.

        Raises:
            ConfigurationError: The change was rejected; previous values stay.

        The paste timer is restarted only while the plugin is enabled.
        """
        try:
            updated = self._store.update(mutator=lambda current: apply_patch(current, changes))
        except ConfigurationError as exc:
            self.display_error(exc)
            raise

        self._settings = updated
        if self._enabled:
            await self.scheduler.restart(updated.to_scheduler_config())
        else:
            self.scheduler.configure(updated.to_scheduler_config())
        return updated

    def display_error(self, error: Exception | str, document: Optional[Document] = None) -> None:
        if document is not None:
            message = f"LocalMedia: Error while handling file {document.name}, {error}"
        else:
            message = f"LocalMedia: {error}"
        self._notifier.notify(message)
        logger.error("%s", message)


def create_plugin(
    *,
    vault_root: Path,
    workspace: Workspace,
    editor_events: Optional[EditorChangeSource] = None,
    notifier: Optional[Notifier] = None,
    settings_path: Optional[Path] = None,
) -> LocalizerPlugin:
    """Wire a plugin over a local vault directory."""
    storage = LocalStorage(vault_root)
    store = SettingsStore(path=settings_path or (Path(vault_root) / ".localmedia" / SETTINGS_FILENAME))
    return LocalizerPlugin(
        storage=storage,
        store=store,
        workspace=workspace,
        editor_events=editor_events,
        notifier=notifier,
    )
