from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from .exceptions import ConfigurationError

DEFAULT_WAIT_AFTER_MS = 3000
DEFAULT_PER_ELEMENT_TIMEOUT_MS = 5000

# camelCase option names used by crawl files and the CLI.
_OPTION_ALIASES = {
    "waitAfter": "wait_after_ms",
    "perElementTimeoutMs": "per_element_timeout_ms",
    "delayMs": "delay_ms",
    "maxUrls": "max_urls",
    "navigationTimeoutMs": "navigation_timeout_ms",
    "navigationAttempts": "navigation_attempts",
    "reportsDir": "reports_dir",
}


@dataclass(frozen=True, slots=True)
class ScanConfig:
    wait_after_ms: int = DEFAULT_WAIT_AFTER_MS
    per_element_timeout_ms: int = DEFAULT_PER_ELEMENT_TIMEOUT_MS
    delay_ms: int = 0
    max_urls: int | None = None
    headless: bool = True
    navigation_timeout_ms: int = 30_000
    navigation_attempts: int = 3
    navigation_backoff_ms: int = 1000
    reports_dir: Path = field(default_factory=lambda: Path.cwd() / "reports")

    def __post_init__(self) -> None:
        _require_int("wait_after_ms", self.wait_after_ms, minimum=0)
        _require_int("per_element_timeout_ms", self.per_element_timeout_ms, minimum=1)
        _require_int("delay_ms", self.delay_ms, minimum=0)
        if self.max_urls is not None:
            _require_int("max_urls", self.max_urls, minimum=1)
        _require_int("navigation_timeout_ms", self.navigation_timeout_ms, minimum=1)
        _require_int("navigation_attempts", self.navigation_attempts, minimum=1)
        _require_int("navigation_backoff_ms", self.navigation_backoff_ms, minimum=0)
        if not isinstance(self.reports_dir, Path):
            object.__setattr__(self, "reports_dir", Path(self.reports_dir))

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> ScanConfig:
        values: dict[str, Any] = {}
        known = set(cls.__dataclass_fields__)
        for key, value in options.items():
            name = _OPTION_ALIASES.get(key, key)
            if name not in known:
                raise ConfigurationError(f"Unknown scan option: {key}")
            if value is None:
                continue
            values[name] = value
        return cls(**values)


def _require_int(name: str, value: Any, *, minimum: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}.")
    if value < minimum:
        qualifier = "non-negative" if minimum == 0 else f"at least {minimum}"
        raise ConfigurationError(f"{name} must be {qualifier}, got {value}.")
