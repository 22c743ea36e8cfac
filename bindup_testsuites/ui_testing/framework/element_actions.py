# ================================================================================
# Element Actions Module
# ================================================================================
#
# Interaction helpers for elements handed back by the SmartLocator.
#
# BiNDup keeps many controls hidden until a hover animation completes, so a
# resolved element may be hidden. These helpers click visible elements
# normally and fall back to a JavaScript click for hidden ones.
#
# Key Features:
#   - Force click (DOM click / dispatched MouseEvent, then click(force=True))
#   - Hover-to-reveal before clicking
#   - Allure step integration
#
# ================================================================================

from typing import Optional, Union

import allure
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator, Page

from .selector_strategy import ResolvedElement
from .step_logger import StepLogger


JS_CLICK = """
(el) => {
    if (el && typeof el.click === 'function') {
        el.click();
    } else {
        el.dispatchEvent(new MouseEvent('click', { bubbles: true, cancelable: true }));
    }
}
"""


def _locator_of(element: Union[ResolvedElement, Locator]) -> Locator:
    if isinstance(element, ResolvedElement):
        return element.locator
    return element


class ElementActions:
    """
    Click helpers that work on hidden as well as visible elements.

    Example:
        actions = ElementActions(page)
        element = await smart.resolve("page_edit_button")
        await actions.click(element, "Page Edit Button")
    """

    def __init__(
        self,
        page: Page,
        step_logger: Optional[StepLogger] = None,
        default_timeout: int = 5000,
        settle_ms: int = 1000,
    ):
        """
        Initialize ElementActions with a Playwright page.

        Args:
            page: Playwright Page object
            step_logger: Shared step logger
            default_timeout: Timeout for regular and fallback clicks in milliseconds
            settle_ms: Pause after a JavaScript click so the UI can react
        """
        self.page = page
        self.steps = step_logger or StepLogger("actions")
        self.default_timeout = default_timeout
        self.settle_ms = settle_ms

    async def force_click(
        self,
        element: Union[ResolvedElement, Locator],
        description: str = "",
    ) -> None:
        """
        Click an element regardless of its visibility.

        A DOM-level click is tried first; if evaluation fails, Playwright's
        `click(force=True)` is used. The fallback error propagates.
        """
        locator = _locator_of(element)
        with allure.step(f"Force click: {description}"):
            self.steps.start(f"Force clicking hidden element: {description}")
            try:
                await locator.evaluate(JS_CLICK)
                self.steps.success(f"Force click successful: {description}")
                if self.settle_ms:
                    await self.page.wait_for_timeout(self.settle_ms)
                return
            except PlaywrightError as e:
                self.steps.warning(f"Force click failed: {description}", str(e))

            try:
                await locator.click(force=True, timeout=self.default_timeout)
                self.steps.success(f"Fallback force click successful: {description}")
            except PlaywrightError as e:
                self.steps.error(f"All click methods failed: {description}", str(e))
                raise

    async def click(
        self,
        element: ResolvedElement,
        description: str = "",
    ) -> None:
        """Regular click for visible elements, force click for hidden ones."""
        if not element.visible:
            await self.force_click(element, description)
            return

        with allure.step(f"Click element: {description}"):
            self.steps.start(f"Clicking element: {description}")
            await element.locator.click(timeout=self.default_timeout)
            self.steps.success(f"Clicked element: {description}")

    async def hover_then_click(
        self,
        element: ResolvedElement,
        description: str = "",
    ) -> None:
        """
        Hover to trigger reveal animations, then click.

        A failed hover is only logged; the click still decides the outcome.
        """
        try:
            await element.locator.hover(timeout=self.default_timeout, force=not element.visible)
            element.visible = await element.locator.is_visible()
        except PlaywrightError as e:
            self.steps.warning(f"Hover failed: {description}", str(e))
        await self.click(element, description)


__all__ = ["ElementActions", "JS_CLICK"]
