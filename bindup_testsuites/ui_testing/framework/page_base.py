"""
================================================================================
Base Page Object
================================================================================

Foundation class for BiNDup page objects.

Wires the engine components for one page around a shared step trail:
    - SmartLocator (element resolution)
    - RetryExecutor (flaky operations)
    - PopupSuppressor (start guide / modal dismissal)
    - OperationVerifier (block operation checks)
    - ElementActions (force clicks on hidden controls)

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Awaitable, Callable, Optional, Sequence, TypeVar, Union

import allure
from loguru import logger
from playwright.async_api import Page

from bindup_testsuites.common.config_loader import ConfigLoader

from .diagnostics import capture_failure_screenshot
from .element_actions import ElementActions
from .operation_verifier import OperationKind, OperationVerifier, VerificationResult
from .popup_suppressor import PopupSuppressor
from .retry import RetryExecutor
from .selector_strategy import ElementQuery, ResolvedElement, SelectorLike
from .settings import EngineSettings
from .smart_locator import SmartLocator
from .step_logger import StepLogger


T = TypeVar("T")


class BasePage:
    """
    Base class for all BiNDup page objects.

    Usage:
        class SiteEditorPage(BasePage):
            URL_PATH = "/editor"

            async def open_page_editor(self):
                await self.click("page_edit_button")

        editor = SiteEditorPage(page)
        async with editor.popups:
            await editor.navigate()
            await editor.open_page_editor()
    """

    # Override in subclasses
    URL_PATH: str = "/"

    def __init__(
        self,
        page: Page,
        base_url: str = "",
        settings: Optional[EngineSettings] = None,
        step_logger: Optional[StepLogger] = None,
    ):
        """
        Initialize page object.

        Args:
            page: Playwright Page object
            base_url: Application base URL (config `bindup.base_url` when empty)
            settings: Engine timeouts (loaded from config when omitted)
            step_logger: Root step logger; each component logs to a child phase
        """
        self.page = page
        if not base_url:
            base_url = ConfigLoader().get("bindup.base_url", "http://localhost:3000")
        self.base_url = base_url.rstrip("/")
        self.settings = settings or EngineSettings.load()
        self.steps = step_logger or StepLogger(type(self).__name__)

        self.smart = SmartLocator(page, self.settings, self.steps.child("resolver"))
        self.retry = RetryExecutor(
            step_logger=self.steps.child("retry"), page=page, settings=self.settings
        )
        self.popups = PopupSuppressor(
            page, settings=self.settings, step_logger=self.steps.child("popup")
        )
        self.verifier = OperationVerifier(page, step_logger=self.steps.child("verifier"))
        self.actions = ElementActions(page, self.steps.child("actions"))

    @property
    def url(self) -> str:
        """Get full page URL."""
        return f"{self.base_url}{self.URL_PATH}"

    async def navigate(self, path: Optional[str] = None, settle_ms: int = 2000) -> None:
        """
        Navigate with popup monitoring active.

        Args:
            path: URL path (defaults to URL_PATH)
            settle_ms: Pause after load so late popups are caught
        """
        path = self.URL_PATH if path is None else path
        with allure.step(f"Navigate to {path}"):
            await self.popups.navigate_with_popup_handling(f"{self.base_url}{path}", settle_ms)
            logger.debug(f"Navigated to: {self.page.url}")

    # =========================================================================
    # Element Interactions
    # =========================================================================

    async def find(
        self,
        target: Union[str, ElementQuery],
        max_attempts: Optional[int] = None,
    ) -> ResolvedElement:
        """Resolve a registry key or query, retrying the whole cascade."""
        label = target if isinstance(target, str) else target.description
        return await self.retry.execute_with_retry(
            lambda: self.smart.resolve(target), f"Find {label}", max_attempts
        )

    async def find_element(
        self,
        description: str,
        primary: SelectorLike,
        fallbacks: Optional[Sequence[SelectorLike]] = None,
        max_attempts: Optional[int] = None,
    ) -> ResolvedElement:
        return await self.find(
            ElementQuery.from_selectors(description, primary, fallbacks), max_attempts
        )

    async def click(
        self,
        target: Union[str, ElementQuery],
        max_attempts: Optional[int] = None,
        handle_popups: bool = True,
    ) -> ResolvedElement:
        """
        Resolve and click an element; hidden matches are force-clicked.

        Resolution and click are retried together so a stale handle is
        re-resolved on the next attempt.
        """
        label = target if isinstance(target, str) else target.description

        async def attempt() -> ResolvedElement:
            element = await self.smart.resolve(target)
            await self.actions.click(element, label)
            return element

        element = await self.retry.execute_with_retry(attempt, f"Click {label}", max_attempts)
        if handle_popups:
            await self.popups.handle_post_click_popups()
        return element

    async def run_with_retry(
        self,
        operation: Callable[[], Awaitable[T]],
        label: str,
        max_attempts: Optional[int] = None,
    ) -> T:
        return await self.retry.execute_with_retry(operation, label, max_attempts)

    async def verify(
        self,
        operation_kind: Union[OperationKind, str],
        target_id: str,
    ) -> VerificationResult:
        return await self.verifier.verify(operation_kind, target_id)

    # =========================================================================
    # Screenshot and Debug Utilities
    # =========================================================================

    async def screenshot(
        self,
        name: str,
        full_page: bool = False,
        attach_to_allure: bool = True,
    ) -> Optional[Path]:
        """
        Take screenshot and optionally attach to Allure.

        Args:
            name: Screenshot name (without extension)
            full_page: Capture full scrollable page
            attach_to_allure: Whether to attach to Allure report

        Returns:
            Path to saved screenshot, or None when capture failed
        """
        return await capture_failure_screenshot(
            self.page,
            name,
            Path(self.settings.screenshot_dir),
            full_page=full_page,
            attach_to_allure=attach_to_allure,
        )

    async def capture_failure(self, test_name: str) -> None:
        """
        Capture debugging information on test failure.

        Saves:
            - Screenshot
            - Current URL
            - Recent step events
        """
        with allure.step("Capture failure details"):
            await self.screenshot(f"failure_{test_name}", full_page=True)

            allure.attach(
                self.page.url,
                name="Current URL",
                attachment_type=allure.attachment_type.TEXT,
            )

            if self.steps.events:
                allure.attach(
                    json.dumps(self.steps.recent(20), indent=2, ensure_ascii=False),
                    name="Recent Step Events",
                    attachment_type=allure.attachment_type.JSON,
                )

    def get_locator_health_report(self) -> str:
        """Get smart locator health report."""
        return self.smart.get_health_report()

    async def close(self) -> None:
        """Stop background popup monitoring."""
        await self.popups.stop()


__all__ = ["BasePage"]
