"""
JSON persistence for LocalizerSettings.

The whole file is rewritten through a temp file in the same directory, so an
interrupted save never leaves a truncated settings file. Files written with the
legacy camelCase keys load as-is and are stored with field names on the next
save.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Callable, Optional

from .models import LocalizerSettings, has_legacy_keys


SETTINGS_ENCODING = "utf-8"

Mutator = Callable[[LocalizerSettings], LocalizerSettings]

logger = logging.getLogger(__name__)


class SettingsStore:
    def __init__(self, *, path: Path) -> None:
        self._path = Path(path)
        self._lock = threading.RLock()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> LocalizerSettings:
        """Stored settings, or defaults when the file is missing or unusable."""
        with self._lock:
            raw = self._read_raw()
            if raw is None:
                return LocalizerSettings()

            if has_legacy_keys(raw):
                logger.info("Settings file %s uses legacy keys; it will be rewritten on save", self._path)
            return LocalizerSettings.from_persist_dict(raw)

    def save(self, settings: LocalizerSettings) -> None:
        payload = json.dumps(settings.to_persist_dict(), ensure_ascii=False, indent=2) + "\n"

        with self._lock:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path_str = tempfile.mkstemp(
                prefix=f".{self._path.name}.",
                suffix=".tmp",
                dir=str(self._path.parent),
            )
            tmp_path = Path(tmp_path_str)
            try:
                with os.fdopen(fd, "w", encoding=SETTINGS_ENCODING) as f:
                    f.write(payload)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_path, self._path)
            finally:
                if tmp_path.exists():
                    tmp_path.unlink()

    def update(self, *, mutator: Mutator) -> LocalizerSettings:
        """
        Load, transform and save under one lock.

        Nothing is written if the mutator raises.
        """
        with self._lock:
            updated = mutator(self.load())
            if not isinstance(updated, LocalizerSettings):
                raise TypeError("mutator must return LocalizerSettings")
            self.save(updated)
            return updated

    def _read_raw(self) -> Optional[dict[str, Any]]:
        try:
            text = self._path.read_text(encoding=SETTINGS_ENCODING)
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.warning("Cannot read settings file %s: %s", self._path, exc)
            return None

        try:
            raw = json.loads(text)
        except ValueError as exc:
            logger.warning("Ignoring malformed settings file %s: %s", self._path, exc)
            return None

        if not isinstance(raw, dict):
            logger.warning("Ignoring settings file %s: expected a JSON object", self._path)
            return None
        return raw
