"""
Validation of settings changes coming from the host.

Every change passes through SettingsPatchIn before it touches the stored
settings; a rejected change is never applied.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from src.shared.validators.safe_regex import validate_include_pattern

from ..scheduler.config import MAX_ATTEMPTS
from .models import LocalizerSettings


class ConfigurationError(ValueError):
    """Raised when a settings change is rejected."""


class SettingsPatchIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    real_time_update: Optional[bool] = None
    real_time_update_interval: Optional[int] = Field(default=None, ge=0)
    real_time_attempts_to_process: Optional[int] = Field(default=None, ge=1, le=MAX_ATTEMPTS)
    clean_content: Optional[bool] = None
    show_notifications: Optional[bool] = None
    include: Optional[str] = None
    asset_dir: Optional[str] = None
    create_file_dir: Optional[bool] = None
    name_pattern: Optional[str] = None

    @field_validator("include")
    @classmethod
    def _include_must_be_safe(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        result = validate_include_pattern(value)
        if not result:
            raise ValueError(result.error)
        return value

    @field_validator("asset_dir")
    @classmethod
    def _asset_dir_must_stay_inside_vault(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        parts = value.replace("\\", "/").split("/")
        if value.startswith("/") or ".." in parts:
            raise ValueError("Storage folder must be a relative path inside the vault")
        return value.strip("/")


def _describe(exc: ValidationError) -> str:
    messages = []
    for err in exc.errors():
        location = ".".join(str(p) for p in err.get("loc", ()))
        messages.append(f"{location}: {err.get('msg', 'invalid value')}")
    return "; ".join(messages)


def apply_patch(settings: LocalizerSettings, changes: dict[str, Any]) -> LocalizerSettings:
    """
    Validate `changes` and return a copy of `settings` with them applied.

    Raises:
        ConfigurationError: If any change is invalid; nothing is applied.
    """
    try:
        patch = SettingsPatchIn(**changes)
    except ValidationError as exc:
        raise ConfigurationError(_describe(exc)) from exc

    values = patch.model_dump(exclude_none=True)
    return replace(settings, **values)
