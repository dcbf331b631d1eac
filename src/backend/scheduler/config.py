from __future__ import annotations

from dataclasses import dataclass


DEFAULT_INTERVAL_MS = 1000
DEFAULT_ATTEMPTS = 3
MAX_ATTEMPTS = 100


@dataclass
class SchedulerConfig:
    enabled: bool = False
    interval_ms: int = DEFAULT_INTERVAL_MS
    attempts: int = DEFAULT_ATTEMPTS

    @property
    def interval_s(self) -> float:
        return self.interval_ms / 1000.0

    @property
    def should_run(self) -> bool:
        return self.enabled and self.interval_ms > 0
