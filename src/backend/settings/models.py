from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any

from src.shared.validators.safe_regex import validate_include_pattern

from ..scheduler.config import DEFAULT_ATTEMPTS, DEFAULT_INTERVAL_MS, MAX_ATTEMPTS, SchedulerConfig


DEFAULT_INCLUDE = r".*\.md"
DEFAULT_ASSET_DIR = "_assets"
DEFAULT_NAME_PATTERN = "{{FileName}}_{{Anchor}}{{DATE:_YYYY-MM-DD}}"

# Legacy camelCase keys of stored settings -> field names
_LEGACY_KEYS = {
    "realTimeUpdate": "real_time_update",
    "realTimeUpdateInterval": "real_time_update_interval",
    "realTimeAttemptsToProcess": "real_time_attempts_to_process",
    "cleanContent": "clean_content",
    "showNotifications": "show_notifications",
    "include": "include",
    "assetDir": "asset_dir",
    "createFileDir": "create_file_dir",
    "namePattern": "name_pattern",
}


def has_legacy_keys(data: dict[str, Any]) -> bool:
    return any(legacy in data for legacy, name in _LEGACY_KEYS.items() if legacy != name)


def _get(data: dict[str, Any], name: str) -> Any:
    if name in data:
        return data[name]
    for legacy, field_name in _LEGACY_KEYS.items():
        if field_name == name and legacy in data:
            return data[legacy]
    return None


def _as_bool(value: Any, default: bool) -> bool:
    return value if isinstance(value, bool) else default


def _as_int(value: Any, default: int, *, lo: int, hi: int | None = None) -> int:
    if isinstance(value, bool) or value is None:
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not number.is_integer():
        return default
    number = int(number)
    if number < lo or (hi is not None and number > hi):
        return default
    return number


def _as_str(value: Any, default: str) -> str:
    return value if isinstance(value, str) else default


@dataclass
class LocalizerSettings:
    real_time_update: bool = False
    real_time_update_interval: int = DEFAULT_INTERVAL_MS
    real_time_attempts_to_process: int = DEFAULT_ATTEMPTS
    clean_content: bool = True
    show_notifications: bool = False
    include: str = DEFAULT_INCLUDE
    asset_dir: str = DEFAULT_ASSET_DIR
    create_file_dir: bool = True
    name_pattern: str = DEFAULT_NAME_PATTERN

    def to_scheduler_config(self) -> SchedulerConfig:
        return SchedulerConfig(
            enabled=self.real_time_update,
            interval_ms=self.real_time_update_interval,
            attempts=self.real_time_attempts_to_process,
        )

    def to_persist_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_persist_dict(cls, data: dict[str, Any]) -> "LocalizerSettings":
        """
        Build settings from stored data, field by field.

        Unknown keys are ignored; missing or invalid values fall back to the
        field default.
        """
        defaults = cls()

        include = _as_str(_get(data, "include"), defaults.include)
        if not validate_include_pattern(include):
            include = defaults.include

        return cls(
            real_time_update=_as_bool(_get(data, "real_time_update"), defaults.real_time_update),
            real_time_update_interval=_as_int(
                _get(data, "real_time_update_interval"),
                defaults.real_time_update_interval,
                lo=0,
            ),
            real_time_attempts_to_process=_as_int(
                _get(data, "real_time_attempts_to_process"),
                defaults.real_time_attempts_to_process,
                lo=1,
                hi=MAX_ATTEMPTS,
            ),
            clean_content=_as_bool(_get(data, "clean_content"), defaults.clean_content),
            show_notifications=_as_bool(_get(data, "show_notifications"), defaults.show_notifications),
            include=include,
            asset_dir=_as_str(_get(data, "asset_dir"), defaults.asset_dir),
            create_file_dir=_as_bool(_get(data, "create_file_dir"), defaults.create_file_dir),
            name_pattern=_as_str(_get(data, "name_pattern"), defaults.name_pattern),
        )
