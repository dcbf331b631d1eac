"""
Tests for the host-facing plugin entry points.
"""

import asyncio
import json
import tempfile
import unittest
from pathlib import Path

from src.backend.app import LocalizerPlugin, create_plugin
from src.backend.fetcher.fetcher import FetchedAsset
from src.backend.fs.storage import Document, LocalStorage
from src.backend.host import EditorChange
from src.backend.settings.models import LocalizerSettings
from src.backend.settings.store import SettingsStore
from src.backend.settings.validation import ConfigurationError


PNG = b"\x89PNG\r\n\x1a\n" + b"png payload"


class FakeFetcher:
    def fetch(self, url: str) -> FetchedAsset:
        return FetchedAsset(PNG, "png")


class FakeWorkspace:
    def __init__(self, document=None):
        self.document = document

    def get_active_document(self):
        return self.document


class FakeEditorEvents:
    def __init__(self):
        self.observers = []

    def subscribe(self, observer):
        self.observers.append(observer)
        return lambda: self.observers.remove(observer)

    def emit(self, change: EditorChange) -> None:
        for observer in list(self.observers):
            observer(change)


class RecordingNotifier:
    def __init__(self):
        self.messages: list[str] = []

    def notify(self, message, timeout_ms=None):
        self.messages.append(message)
        return self

    def update_message(self, message):
        self.messages.append(message)

    def dismiss(self):
        pass


class PluginTestCase(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)
        self.settings_path = self.root / ".localmedia" / "data.json"
        self.workspace = FakeWorkspace()
        self.events = FakeEditorEvents()
        self.notifier = RecordingNotifier()

    def tearDown(self):
        self.temp_dir.cleanup()

    def _plugin(self, settings: LocalizerSettings | None = None) -> LocalizerPlugin:
        store = SettingsStore(path=self.settings_path)
        if settings is not None:
            store.save(settings)
        return LocalizerPlugin(
            storage=LocalStorage(self.root),
            store=store,
            workspace=self.workspace,
            editor_events=self.events,
            notifier=self.notifier,
            fetcher=FakeFetcher(),
        )

    def _write(self, path: str, text: str) -> Document:
        target = self.root / path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")
        return Document(path)


class TestEditorEvents(PluginTestCase):
    def test_paste_with_url_enqueues_active_document(self):
        self.workspace.document = Document("bar.md")
        plugin = self._plugin(LocalizerSettings(real_time_update=True, real_time_attempts_to_process=4))

        plugin.on_editor_change(EditorChange(origin="paste", text="![x](https://x/y.png)"))

        self.assertEqual(plugin.queue.remaining(Document("bar.md")), 4)

    def test_ignored_changes(self):
        self.workspace.document = Document("bar.md")
        plugin = self._plugin(LocalizerSettings(real_time_update=True))

        plugin.on_editor_change(EditorChange(origin="+input", text="https://x/y.png"))
        plugin.on_editor_change(EditorChange(origin="paste", text="no links here"))

        self.assertEqual(len(plugin.queue), 0)

    def test_real_time_disabled(self):
        self.workspace.document = Document("bar.md")
        plugin = self._plugin(LocalizerSettings(real_time_update=False))

        plugin.on_editor_change(EditorChange(origin="paste", text="https://x/y.png"))

        self.assertEqual(len(plugin.queue), 0)

    def test_enable_subscribes_and_disable_unsubscribes(self):
        self.workspace.document = Document("bar.md")
        plugin = self._plugin(LocalizerSettings(real_time_update=True, real_time_update_interval=60_000))

        async def scenario():
            await plugin.enable()
            running = plugin.scheduler.running
            self.events.emit(EditorChange(origin="paste", text="https://x/y.png"))
            await plugin.disable()
            return running, plugin.scheduler.running

        self.assertEqual(asyncio.run(scenario()), (True, False))
        self.assertIn(Document("bar.md"), plugin.queue)
        self.assertEqual(self.events.observers, [])


class TestCommands(PluginTestCase):
    def test_process_active_document(self):
        self.workspace.document = self._write("bar.md", "![tony](https://x/tony.png)")
        plugin = self._plugin(LocalizerSettings(name_pattern="{{Anchor}}"))

        result = asyncio.run(plugin.process_active_document())

        self.assertTrue(result.changed)
        self.assertEqual(
            (self.root / "bar.md").read_text(encoding="utf-8"),
            "![tony](_assets/bar.assets/tony.png)",
        )

    def test_no_active_document(self):
        plugin = self._plugin()
        self.assertIsNone(asyncio.run(plugin.process_active_document()))

    def test_unreadable_document_is_reported(self):
        self.workspace.document = Document("missing.md")
        plugin = self._plugin()

        with self.assertLogs("src.backend.app", level="ERROR"):
            result = asyncio.run(plugin.process_active_document())

        self.assertIsNone(result)
        self.assertIn("Error while handling file missing.md", self.notifier.messages[-1])

    def test_undecodable_document_is_reported(self):
        (self.root / "latin1.md").write_bytes("caf\xe9 ![x](https://x/y.png)".encode("latin-1"))
        self.workspace.document = Document("latin1.md")
        plugin = self._plugin()

        with self.assertLogs("src.backend.app", level="ERROR"):
            result = asyncio.run(plugin.process_active_document())

        self.assertIsNone(result)
        self.assertIn("Error while handling file latin1.md", self.notifier.messages[-1])

    def test_document_outside_vault_is_reported(self):
        self.workspace.document = Document("../outside.md")
        plugin = self._plugin()

        with self.assertLogs("src.backend.app", level="ERROR"):
            self.assertIsNone(asyncio.run(plugin.process_active_document()))

    def test_batch_skips_undecodable_document(self):
        (self.root / "a.md").write_bytes("caf\xe9".encode("latin-1"))
        self._write("b.md", "![tony](https://x/tony.png)")
        plugin = self._plugin(LocalizerSettings(name_pattern="{{Anchor}}"))

        with self.assertLogs("src.backend.pipeline.document_processor", level="ERROR"):
            batch = asyncio.run(plugin.process_all_documents())

        self.assertEqual(batch.failed_documents, [Document("a.md")])
        self.assertEqual(
            (self.root / "b.md").read_text(encoding="utf-8"),
            "![tony](_assets/b.assets/tony.png)",
        )

    def test_process_all_documents(self):
        self._write("a.md", "![tony](https://x/tony.png)")
        self._write("b.md", "text")
        plugin = self._plugin(LocalizerSettings(name_pattern="{{Anchor}}"))

        batch = asyncio.run(plugin.process_all_documents())

        self.assertEqual((batch.total, batch.changed), (2, 1))


class TestUpdateSettings(PluginTestCase):
    def test_valid_change_is_saved_and_applied(self):
        plugin = self._plugin()

        async def scenario():
            await plugin.enable()
            updated = await plugin.update_settings(real_time_update=True, real_time_update_interval=60_000)
            running = plugin.scheduler.running
            await plugin.disable()
            return updated, running

        updated, running = asyncio.run(scenario())

        self.assertTrue(updated.real_time_update)
        self.assertTrue(running)
        self.assertEqual(plugin.settings, updated)
        stored = json.loads(self.settings_path.read_text(encoding="utf-8"))
        self.assertEqual(stored["real_time_update_interval"], 60_000)

    def test_change_on_disabled_plugin_does_not_start_timer(self):
        plugin = self._plugin()

        async def scenario():
            await plugin.update_settings(real_time_update=True, real_time_update_interval=60_000)
            return plugin.scheduler.running

        self.assertFalse(asyncio.run(scenario()))
        self.assertFalse(plugin.enabled)
        self.assertTrue(plugin.scheduler.config.enabled)
        self.assertEqual(plugin.scheduler.config.interval_ms, 60_000)

    def test_rejected_change_keeps_previous_values(self):
        plugin = self._plugin()

        with self.assertLogs("src.backend.app", level="ERROR"):
            with self.assertRaises(ConfigurationError):
                asyncio.run(plugin.update_settings(include="(a+)+"))

        self.assertEqual(plugin.settings, LocalizerSettings())
        self.assertFalse(self.settings_path.exists())
        self.assertTrue(self.notifier.messages)


class TestCreatePlugin(unittest.TestCase):
    def test_settings_live_inside_vault(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            root = Path(temp_dir)
            plugin = create_plugin(vault_root=root, workspace=FakeWorkspace())

            asyncio.run(plugin.update_settings(show_notifications=True))

            self.assertTrue((root / ".localmedia" / "data.json").exists())
            self.assertTrue(plugin.settings.show_notifications)


if __name__ == "__main__":
    unittest.main()
