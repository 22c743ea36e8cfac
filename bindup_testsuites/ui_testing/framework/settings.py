"""
Engine settings.

Every resolution stage, retry and popup poll carries its own short timeout.
The defaults below are used when a component is built without settings;
`EngineSettings.load()` reads the same values from the YAML/env configuration.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from bindup_testsuites.common.config_loader import ConfigLoader


@dataclass
class EngineSettings:
    """
    Timeouts and intervals for the element engine.

    Attributes:
        reveal_timeout_ms: Wait for a hidden primary/fallback match to become visible
        text_timeout_ms: Per-variation wait in the text detection stage
        role_timeout_ms: Per-role wait in the role detection stage
        special_timeout_ms: Stability waits inside special-case routes
        max_visible_scan: How many matches are checked for visibility before
            settling on the first one
        retry_max_attempts: Default attempt budget for the retry executor
        retry_delay_seconds: Initial delay between attempts (0 disables)
        retry_backoff_multiplier: Multiplier applied to the delay after each failure
        retry_max_delay_seconds: Upper bound for the delay
        popup_interval_ms: Popup suppressor polling interval
        popup_check_timeout_ms: Visibility check timeout per popup selector
        popup_dismiss_timeout_ms: Click timeout for a close control
        progress_timeout_ms: Wait for a progress indicator to hide
        screenshots_enabled: Capture screenshots on terminal failures
        screenshot_dir: Where failure screenshots are written
    """
    reveal_timeout_ms: int = 2000
    text_timeout_ms: int = 3000
    role_timeout_ms: int = 3000
    special_timeout_ms: int = 10000
    max_visible_scan: int = 5

    retry_max_attempts: int = 3
    retry_delay_seconds: float = 0.0
    retry_backoff_multiplier: float = 2.0
    retry_max_delay_seconds: float = 10.0

    popup_interval_ms: int = 500
    popup_check_timeout_ms: int = 100
    popup_dismiss_timeout_ms: int = 1000
    progress_timeout_ms: int = 30000

    screenshots_enabled: bool = True
    screenshot_dir: Path = Path("screenshots")

    @classmethod
    def load(cls, config: Optional[ConfigLoader] = None) -> "EngineSettings":
        """Build settings from configuration, falling back to the defaults."""
        config = config or ConfigLoader()
        defaults = cls()
        return cls(
            reveal_timeout_ms=config.get("engine.resolver.reveal_timeout_ms", defaults.reveal_timeout_ms),
            text_timeout_ms=config.get("engine.resolver.text_timeout_ms", defaults.text_timeout_ms),
            role_timeout_ms=config.get("engine.resolver.role_timeout_ms", defaults.role_timeout_ms),
            special_timeout_ms=config.get("engine.resolver.special_timeout_ms", defaults.special_timeout_ms),
            max_visible_scan=config.get("engine.resolver.max_visible_scan", defaults.max_visible_scan),
            retry_max_attempts=config.get("engine.retry.max_attempts", defaults.retry_max_attempts),
            retry_delay_seconds=config.get("engine.retry.delay_seconds", defaults.retry_delay_seconds),
            retry_backoff_multiplier=config.get(
                "engine.retry.backoff_multiplier", defaults.retry_backoff_multiplier
            ),
            retry_max_delay_seconds=config.get(
                "engine.retry.max_delay_seconds", defaults.retry_max_delay_seconds
            ),
            popup_interval_ms=config.get("engine.popup.interval_ms", defaults.popup_interval_ms),
            popup_check_timeout_ms=config.get("engine.popup.check_timeout_ms", defaults.popup_check_timeout_ms),
            popup_dismiss_timeout_ms=config.get(
                "engine.popup.dismiss_timeout_ms", defaults.popup_dismiss_timeout_ms
            ),
            progress_timeout_ms=config.get("engine.popup.progress_timeout_ms", defaults.progress_timeout_ms),
            screenshots_enabled=config.get("engine.screenshots.enabled", defaults.screenshots_enabled),
            screenshot_dir=Path(config.get("engine.screenshots.directory", str(defaults.screenshot_dir))),
        )


__all__ = ["EngineSettings"]
