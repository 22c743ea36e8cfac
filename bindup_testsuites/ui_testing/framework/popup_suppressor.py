"""
================================================================================
Popup Suppressor
================================================================================

Background polling loop that dismisses BiNDup interstitials (the "start guide"
news window and generic modal/dialog/overlay containers) while the main test
flow keeps running.

One suppressor per page. State lives on the instance:

    IDLE --start()--> MONITORING --stop() / page close / page crash--> IDLE

Suppression is best-effort: every scan or dismiss error is caught and logged
at debug level, and nothing ever escapes the polling task.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional, Sequence

from loguru import logger
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator, Page

from .selector_strategy import SelectorCandidate, to_locator
from .settings import EngineSettings
from .step_logger import StepLogger


class SuppressorState(str, Enum):
    IDLE = "idle"
    MONITORING = "monitoring"


class FallbackDismissal(str, Enum):
    ESCAPE_KEY = "escapeKey"
    NONE = "none"


@dataclass(frozen=True)
class PopupDescriptor:
    """
    How to recognise and close one kind of popup.

    Attributes:
        name: Label used in logs
        match_selectors: Candidates identifying the popup container, in order
        dismiss_selectors: Candidates for the close control, in order
        fallback_dismissal: What to do when no close control is visible
        scoped_dismiss: Search close controls inside the matched container
    """
    name: str
    match_selectors: Sequence[SelectorCandidate]
    dismiss_selectors: Sequence[SelectorCandidate]
    fallback_dismissal: FallbackDismissal = FallbackDismissal.NONE
    scoped_dismiss: bool = False


def _css(*selectors: str) -> List[SelectorCandidate]:
    return [SelectorCandidate.css(s) for s in selectors]


START_GUIDE_POPUP = PopupDescriptor(
    name="Start Guide",
    match_selectors=_css("#id-notice-news-window"),
    dismiss_selectors=_css(
        "#button-1014",
        ".close-button",
        '[aria-label="Close"]',
        '[aria-label="閉じる"]',
        'button:has-text("閉じる")',
        'button:has-text("Close")',
        ".popup-close",
        ".modal-close",
    ),
    fallback_dismissal=FallbackDismissal.ESCAPE_KEY,
)

GENERIC_POPUP = PopupDescriptor(
    name="Generic popup",
    match_selectors=_css(".modal", ".popup", ".dialog", '[role="dialog"]', ".overlay"),
    dismiss_selectors=_css(
        'button:has-text("閉じる")',
        'button:has-text("Close")',
        ".close",
        ".close-btn",
        '[aria-label="Close"]',
    ),
    scoped_dismiss=True,
)

DEFAULT_POPUPS: List[PopupDescriptor] = [START_GUIDE_POPUP, GENERIC_POPUP]

PROGRESS_SELECTORS = [
    ".progress-bar",
    ".loading",
    ".spinner",
    '[role="progressbar"]',
    ".cs-progress",
]


def _is_current(task: asyncio.Task) -> bool:
    try:
        return task is asyncio.current_task()
    except RuntimeError:
        return False


@dataclass
class DismissalRecord:
    popup: str
    method: str


class PopupSuppressor:
    """
    Continuous popup monitoring for one page.

    Usage:
        >>> suppressor = PopupSuppressor(page)
        >>> await suppressor.start()
        >>> ...  # business flow; start guide windows are closed as they appear
        >>> await suppressor.stop()

        >>> async with PopupSuppressor(page):
        ...     await page.goto(url)
    """

    def __init__(
        self,
        page: Page,
        descriptors: Optional[Sequence[PopupDescriptor]] = None,
        settings: Optional[EngineSettings] = None,
        step_logger: Optional[StepLogger] = None,
        interval_ms: Optional[int] = None,
    ):
        self.page = page
        self.descriptors = list(DEFAULT_POPUPS if descriptors is None else descriptors)
        self.settings = settings or EngineSettings()
        self.steps = step_logger or StepLogger("popup")
        self.interval_ms = interval_ms if interval_ms is not None else self.settings.popup_interval_ms

        self.state = SuppressorState.IDLE
        self.dismissals: List[DismissalRecord] = []
        self.scan_count = 0
        self._task: Optional[asyncio.Task] = None
        self._listeners_attached = False

    @property
    def is_monitoring(self) -> bool:
        return self.state == SuppressorState.MONITORING

    async def __aenter__(self) -> "PopupSuppressor":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Start monitoring; a second call while monitoring does nothing."""
        if self.is_monitoring:
            logger.debug("🔄 Continuous popup monitoring already active")
            return

        self._attach_page_listeners()
        self.state = SuppressorState.MONITORING
        self._task = asyncio.get_running_loop().create_task(self._run())
        self.steps.success("Continuous popup monitoring activated", f"interval={self.interval_ms}ms")

    async def stop(self) -> None:
        """Stop monitoring; safe to call in any state, any number of times."""
        task = self._task
        self._task = None
        was_monitoring = self.is_monitoring
        self.state = SuppressorState.IDLE

        if task is not None and not task.done() and not _is_current(task):
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        self._detach_page_listeners()
        if was_monitoring:
            self.steps.success("Continuous popup monitoring stopped")

    def _attach_page_listeners(self) -> None:
        if self._listeners_attached:
            return
        self.page.on("close", self._on_page_gone)
        self.page.on("crash", self._on_page_gone)
        self._listeners_attached = True

    def _detach_page_listeners(self) -> None:
        if not self._listeners_attached:
            return
        for event in ("close", "crash"):
            try:
                self.page.remove_listener(event, self._on_page_gone)
            except Exception as e:
                logger.debug(f"Could not remove '{event}' listener: {e}")
        self._listeners_attached = False

    def _on_page_gone(self, *_: Any) -> None:
        """Page closed or crashed: drop back to IDLE and clear the loop handle."""
        task = self._task
        self._task = None
        if self.is_monitoring:
            self.steps.warning("Page closed or crashed - popup monitoring stopped")
        self.state = SuppressorState.IDLE
        if task is not None and not task.done() and not _is_current(task):
            task.cancel()

    async def _run(self) -> None:
        try:
            while self.is_monitoring:
                if self.page.is_closed():
                    self._on_page_gone()
                    break
                try:
                    await self.scan_once()
                except Exception as e:
                    logger.debug(f"⚠️ Popup monitoring error (non-critical): {e}")
                await asyncio.sleep(self.interval_ms / 1000)
        except asyncio.CancelledError:
            pass

    # =========================================================================
    # Scanning
    # =========================================================================

    async def scan_once(self) -> int:
        """
        Check every descriptor once.

        Returns:
            Number of popups dismissed in this scan
        """
        self.scan_count += 1
        dismissed = 0
        for descriptor in self.descriptors:
            try:
                if await self._handle_descriptor(descriptor):
                    dismissed += 1
            except Exception as e:
                logger.debug(f"Popup descriptor '{descriptor.name}' failed (non-critical): {e}")
        return dismissed

    async def _handle_descriptor(self, descriptor: PopupDescriptor) -> bool:
        for match_candidate in descriptor.match_selectors:
            container = to_locator(self.page, match_candidate).first
            if not await self._visible(container):
                continue

            self.steps.start(f"Found {descriptor.name} popup - closing", str(match_candidate))
            scope = container if descriptor.scoped_dismiss else None
            method = await self._click_dismiss(descriptor, scope)

            if method is None and descriptor.fallback_dismissal == FallbackDismissal.ESCAPE_KEY:
                await self.page.keyboard.press("Escape")
                method = "Escape key"

            if method is None:
                self.steps.warning(f"{descriptor.name} popup has no visible close control")
                return False

            self.dismissals.append(DismissalRecord(descriptor.name, method))
            self.steps.success(f"Closed {descriptor.name} popup using {method}")
            return True
        return False

    async def _click_dismiss(
        self, descriptor: PopupDescriptor, scope: Optional[Locator]
    ) -> Optional[str]:
        for candidate in descriptor.dismiss_selectors:
            try:
                if scope is not None:
                    button = scope.locator(candidate.value).first
                else:
                    button = to_locator(self.page, candidate).first
                if await self._visible(button):
                    await button.click(timeout=self.settings.popup_dismiss_timeout_ms)
                    return str(candidate)
            except PlaywrightError as e:
                logger.debug(f"Close control {candidate} failed: {e}")
        return None

    async def _visible(self, locator: Locator) -> bool:
        try:
            return await locator.is_visible(timeout=self.settings.popup_check_timeout_ms)
        except PlaywrightError:
            return False

    # =========================================================================
    # One-shot helpers
    # =========================================================================

    async def handle_post_click_popups(self) -> None:
        """Single scan plus a wait for any visible progress indicator to finish."""
        self.steps.start("Checking for post-click popups and progress bars")
        await self.scan_once()
        await self.wait_for_progress_bars()
        self.steps.success("Post-click popup handling completed")

    async def wait_for_progress_bars(self) -> None:
        for selector in PROGRESS_SELECTORS:
            try:
                progress = self.page.locator(selector).first
                if await progress.is_visible():
                    self.steps.start(f"Waiting for progress bar to complete: {selector}")
                    await progress.wait_for(state="hidden", timeout=self.settings.progress_timeout_ms)
                    self.steps.success(f"Progress bar completed: {selector}")
            except PlaywrightError as e:
                self.steps.warning("Progress bar handling error", str(e))

    async def navigate_with_popup_handling(self, url: str, settle_ms: int = 2000) -> None:
        """Start monitoring, then navigate; monitoring stays active afterwards."""
        await self.start()
        await self.page.goto(url, wait_until="networkidle")
        await self.page.wait_for_timeout(settle_ms)


async def create_popup_suppressor(page: Page, **kwargs: Any) -> PopupSuppressor:
    """Create a suppressor for `page` and start it."""
    suppressor = PopupSuppressor(page, **kwargs)
    await suppressor.start()
    return suppressor


async def wait_with_popup_handling(page: Page, ms: int, **kwargs: Any) -> None:
    """Wait `ms` milliseconds while popups are being dismissed."""
    async with PopupSuppressor(page, **kwargs):
        await asyncio.sleep(ms / 1000)


__all__ = [
    "DEFAULT_POPUPS",
    "DismissalRecord",
    "FallbackDismissal",
    "GENERIC_POPUP",
    "PROGRESS_SELECTORS",
    "PopupDescriptor",
    "PopupSuppressor",
    "START_GUIDE_POPUP",
    "SuppressorState",
    "create_popup_suppressor",
    "wait_with_popup_handling",
]
