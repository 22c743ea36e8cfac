"""
================================================================================
Smart Locator - Element Resolver
================================================================================

Locates BiNDup UI elements through escalating strategies:
    1. Special-case routes (template frames, create-site button)
    2. Primary selector (visible preferred, hidden allowed)
    3. Fallback selectors, in order, same rule
    4. Text variations of the description (English -> Japanese terms)
    5. Role-based detection (button, link, menuitem by accessible name)

Hidden matches are returned on purpose: BiNDup hides many controls until a
hover animation completes, and callers force-click them.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import asyncio
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

import allure
from loguru import logger
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator, Page

from .diagnostics import capture_failure_screenshot
from .selector_strategy import (
    ElementQuery,
    ResolutionStage,
    ResolvedElement,
    SelectorCandidate,
    SelectorLike,
    generate_text_variations,
    to_locator,
)
from .settings import EngineSettings
from .special_cases import DEFAULT_ROUTES, SpecialCaseRoute
from .step_logger import StepLogger


class ElementNotFoundError(Exception):
    """Raised when all locator strategies fail to find element."""

    def __init__(self, description: str, errors: Optional[List[str]] = None):
        self.description = description
        self.errors = errors or []
        message = f"Element not found with any detection strategy: {description}"
        if self.errors:
            message += "\n" + "\n".join(f"  - {err}" for err in self.errors)
        super().__init__(message)


NotFoundError = ElementNotFoundError

ROLE_CANDIDATES = ["button", "link", "menuitem"]


@dataclass
class LocatorHealth:
    """
    Records which strategy found an element.

    Attributes:
        element_name: Human-readable element name
        primary_selector: The preferred selector
        stage: Stage that produced the match
        matched_selector: Candidate that matched (if any)
    """
    element_name: str
    primary_selector: str
    stage: ResolutionStage
    matched_selector: Optional[str] = None

    @property
    def used_fallback(self) -> bool:
        return self.stage != ResolutionStage.PRIMARY


class SmartLocator:
    """
    Element resolver with fallback strategies.

    Usage:
        >>> smart = SmartLocator(page)
        >>> element = await smart.find_element(
        ...     "Add Block Button", "text=ブロックを追加", [".add-block-button"]
        ... )
        >>> element.matched_candidate_index
        1

        >>> element = await smart.resolve("page_edit_button")

    Known BiNDup elements are defined in LOCATORS; `register_locator` adds
    more for the lifetime of this instance.
    """

    LOCATORS: Dict[str, ElementQuery] = {
        "page_edit_button": ElementQuery.from_selectors(
            "Page Edit Button",
            'text="ページ編集"',
            [
                'button:has-text("ページ編集")',
                '[data-testid="page-edit"]',
                ".page-edit-button",
                'button:has-text("編集")',
                '[aria-label*="ページ編集"]',
                "#button-1031",
                'text="Page Edit"',
            ],
        ),
        "add_block_button": ElementQuery.from_selectors(
            "Add Block Button",
            "text=ブロックを追加",
            [".add-block-button", '[data-action="add-block"]'],
        ),
        "template_item": ElementQuery.from_selectors(
            "Template Item",
            "#id-template-group > div > .cs-frame",
            ["#id-template-group .cs-frame", ".cs-template-item"],
        ),
        "create_site_button": ElementQuery.from_selectors(
            "Create Site Button",
            'text="サイトを作成"',
            ["#id-template-item-select"],
        ),
        "save_button": ElementQuery.from_selectors(
            "Save Button",
            'button:has-text("保存")',
            ['text="保存"', "getByRole('button', { name: 'Save' })"],
        ),
        "close_button": ElementQuery.from_selectors(
            "Close Button",
            'button:has-text("閉じる")',
            ['[aria-label="閉じる"]', '[aria-label="Close"]', ".close-button"],
        ),
    }

    def __init__(
        self,
        page: Page,
        settings: Optional[EngineSettings] = None,
        step_logger: Optional[StepLogger] = None,
        special_routes: Optional[Sequence[SpecialCaseRoute]] = None,
    ):
        """
        Initialize SmartLocator with Playwright page.

        Args:
            page: Playwright Page object
            settings: Stage timeouts (defaults when omitted)
            step_logger: Shared step logger (a "resolver" logger when omitted)
            special_routes: Routes tried before generic resolution
        """
        self.page = page
        self.settings = settings or EngineSettings()
        self.steps = step_logger or StepLogger("resolver")
        self.special_routes = list(DEFAULT_ROUTES if special_routes is None else special_routes)
        self.locators: Dict[str, ElementQuery] = dict(self.LOCATORS)
        self._health_records: List[LocatorHealth] = []

    # =========================================================================
    # Resolution
    # =========================================================================

    async def resolve(self, target: Union[str, ElementQuery]) -> ResolvedElement:
        """
        Resolve an element through every strategy in order.

        Args:
            target: An ElementQuery, or a key of the locator registry

        Returns:
            ResolvedElement (possibly hidden)

        Raises:
            ElementNotFoundError: When every stage failed
        """
        query = self._to_query(target)
        with allure.step(f"Find element: {query.description}"):
            started = time.monotonic()
            self.steps.start(f"Find Element: {query.description}")
            errors: List[str] = []

            resolved = await self._resolve_stages(query, errors)
            elapsed_ms = int((time.monotonic() - started) * 1000)

            if resolved is None:
                self.steps.error(
                    "Element detection failed",
                    f"Element not found with any detection strategy: {query.description}",
                )
                if self.settings.screenshots_enabled:
                    await capture_failure_screenshot(
                        self.page,
                        f"not_found_{query.description}",
                        Path(self.settings.screenshot_dir),
                    )
                raise ElementNotFoundError(query.description, errors)

            self._record_health(query, resolved)
            self.steps.success(
                f"Find Element: {query.description}",
                f"{resolved.stage.value} match, visible={resolved.visible} ({elapsed_ms}ms)",
            )
            return resolved

    async def _resolve_stages(
        self, query: ElementQuery, errors: List[str]
    ) -> Optional[ResolvedElement]:
        # Stage 1: special-case routes
        for route in self.special_routes:
            if not route.matches(query):
                continue
            self.steps.start(f"Detected {route.name} element - using special route")
            try:
                return await route.resolve(self.page, query, self.settings, self.steps)
            except Exception as e:
                errors.append(f"special:{route.name} -> {str(e)[:80]}")
                self.steps.warning(
                    f"Special route '{route.name}' failed, falling back to standard detection",
                    str(e),
                )

        # Stages 2 and 3: primary then fallbacks
        for index, candidate in enumerate(query.candidates):
            stage = ResolutionStage.PRIMARY if index == 0 else ResolutionStage.FALLBACK
            label = "primary" if index == 0 else "fallback"
            self.steps.start(f"Trying {label} selector: {candidate}")
            try:
                match = await self._match(to_locator(self.page, candidate))
            except Exception as e:
                errors.append(f"{label}:{candidate} -> {str(e)[:80]}")
                self.steps.warning(f"{label.capitalize()} selector failed: {candidate}", str(e))
                continue

            if match is None:
                errors.append(f"{label}:{candidate} -> no match")
                self.steps.warning(f"{label.capitalize()} selector found nothing: {candidate}")
                continue

            locator, visible, count = match
            if visible:
                self.steps.success(
                    f"{label.capitalize()} selector successful: {candidate}",
                    f"{count} elements, using first visible",
                )
            else:
                self.steps.warning(
                    f"Element found but hidden: {candidate}",
                    f"{count} elements - returning hidden element for force clicking",
                )
            return ResolvedElement(locator, visible, index, stage, candidate, count)

        next_index = len(query.candidates)

        # Stage 4: generated text variations
        self.steps.start(f"Trying text-based detection for: {query.description}")
        for text in generate_text_variations(query.description):
            candidate = SelectorCandidate.generated(text)
            resolved = await self._visible_only(
                candidate, next_index, ResolutionStage.TEXT_VARIATION,
                self.settings.text_timeout_ms, errors,
            )
            if resolved:
                self.steps.success(f"Text-based detection successful: {text}")
                return resolved
            next_index += 1
        self.steps.warning("Text-based detection failed", query.description)

        # Stage 5: role-based detection
        self.steps.start("Trying role-based detection")
        name_pattern = re.escape(query.description)
        for role in ROLE_CANDIDATES:
            candidate = SelectorCandidate.role(role, name_pattern)
            resolved = await self._visible_only(
                candidate, next_index, ResolutionStage.ROLE,
                self.settings.role_timeout_ms, errors,
            )
            if resolved:
                self.steps.success(f"Role-based detection successful: {role}")
                return resolved
            next_index += 1
        self.steps.warning("Role-based detection failed", query.description)

        return None

    async def _match(self, locator: Locator) -> Optional[Tuple[Locator, bool, int]]:
        """
        Pick the best element for a locator.

        Returns (element, visible, match_count), or None when nothing matched.
        A hidden first match is returned when nothing becomes visible.
        """
        count = await locator.count()
        if count == 0:
            return None

        for i in range(min(count, self.settings.max_visible_scan)):
            element = locator.nth(i)
            if await element.is_visible():
                return element, True, count

        first = locator.first
        try:
            await first.wait_for(state="visible", timeout=self.settings.reveal_timeout_ms)
            return first, True, count
        except PlaywrightError:
            return first, False, count

    async def _visible_only(
        self,
        candidate: SelectorCandidate,
        index: int,
        stage: ResolutionStage,
        timeout_ms: int,
        errors: List[str],
    ) -> Optional[ResolvedElement]:
        try:
            element = to_locator(self.page, candidate).first
            await element.wait_for(state="visible", timeout=timeout_ms)
            return ResolvedElement(element, True, index, stage, candidate)
        except PlaywrightError as e:
            errors.append(f"{stage.value}:{candidate} -> {str(e)[:80]}")
            return None

    def _to_query(self, target: Union[str, ElementQuery]) -> ElementQuery:
        if isinstance(target, ElementQuery):
            return target
        query = self.locators.get(target)
        if query is None:
            raise ElementNotFoundError(target, [f"No locators defined for element: {target}"])
        return query

    def _record_health(self, query: ElementQuery, resolved: ResolvedElement) -> None:
        health = LocatorHealth(
            element_name=query.description,
            primary_selector=str(query.primary),
            stage=resolved.stage,
            matched_selector=str(resolved.candidate) if resolved.candidate else None,
        )
        self._health_records.append(health)
        if health.used_fallback:
            logger.warning(
                f"⚠️ Element '{query.description}' used {resolved.stage.value}: "
                f"{health.matched_selector}"
            )

    # =========================================================================
    # Convenience API
    # =========================================================================

    async def find_element(
        self,
        description: str,
        primary: SelectorLike,
        fallbacks: Optional[Sequence[SelectorLike]] = None,
    ) -> ResolvedElement:
        """Build a query from raw selectors and resolve it."""
        return await self.resolve(ElementQuery.from_selectors(description, primary, fallbacks))

    async def find_multiple_elements(
        self,
        description: str,
        selectors: Sequence[SelectorLike],
    ) -> List[Locator]:
        """
        Collect a locator for every selector that matches at least one element.

        Args:
            description: Label for logging
            selectors: Selectors to check, in order

        Returns:
            Matching locators (possibly empty)
        """
        found: List[Locator] = []
        for raw in selectors:
            candidate = SelectorCandidate.parse(raw)
            try:
                locator = to_locator(self.page, candidate)
                count = await locator.count()
                if count > 0:
                    found.append(locator)
                    self.steps.success(f"Found {count} elements with selector: {candidate}", description)
            except PlaywrightError as e:
                self.steps.warning(f"Selector failed: {candidate}", str(e))
        return found

    async def wait_for_any_element(
        self,
        selectors: Sequence[SelectorLike],
        timeout_ms: int = 30000,
        poll_interval_ms: int = 1000,
    ) -> ResolvedElement:
        """
        Poll until any selector has a visible element.

        Raises:
            ElementNotFoundError: When nothing became visible within the timeout
        """
        candidates = [SelectorCandidate.parse(raw) for raw in selectors]
        deadline = time.monotonic() + timeout_ms / 1000
        while True:
            for index, candidate in enumerate(candidates):
                try:
                    element = to_locator(self.page, candidate).first
                    if await element.is_visible():
                        self.steps.success(f"Element found: {candidate}")
                        stage = ResolutionStage.PRIMARY if index == 0 else ResolutionStage.FALLBACK
                        return ResolvedElement(element, True, index, stage, candidate)
                except PlaywrightError:
                    continue
            if time.monotonic() >= deadline:
                break
            await asyncio.sleep(poll_interval_ms / 1000)

        joined = ", ".join(str(c) for c in candidates)
        raise ElementNotFoundError(
            joined, [f"None of the selectors became visible within {timeout_ms}ms"]
        )

    async def is_visible(self, target: Union[str, ElementQuery]) -> bool:
        """
        Check if an element resolves to a visible match.

        Returns:
            True if visible, False when hidden or not found
        """
        try:
            resolved = await self.resolve(target)
            return resolved.visible
        except ElementNotFoundError:
            return False

    def register_locator(
        self,
        element_name: str,
        primary: SelectorLike,
        fallbacks: Optional[Sequence[SelectorLike]] = None,
        description: Optional[str] = None,
    ) -> None:
        """
        Register a new element at runtime.

        Args:
            element_name: Registry key
            primary: Primary selector
            fallbacks: Fallback selectors, in order
            description: Human-readable name (defaults to the key)
        """
        self.locators[element_name] = ElementQuery.from_selectors(
            description or element_name, primary, fallbacks
        )
        logger.debug(f"Registered new locator: {element_name}")

    def get_health_report(self) -> str:
        """
        Generate locator health report.

        Lists elements that needed more than their primary selector; those
        primaries are maintenance candidates.
        """
        degraded = {h.element_name: h for h in self._health_records if h.used_fallback}
        if not degraded:
            return "✅ All elements used primary locators. No maintenance needed."

        report_lines = [
            "⚠️ Locator Health Report - Fallbacks Used:",
            "",
            "The following elements were not found by their primary selector.",
            "Consider updating the primary selectors:",
            "",
        ]
        for element_name, health in degraded.items():
            report_lines.extend([
                f"  [{element_name}]",
                f"    Failed primary: {health.primary_selector}",
                f"    Used: {health.stage.value} -> {health.matched_selector}",
                "",
            ])
        return "\n".join(report_lines)


__all__ = [
    "ElementNotFoundError",
    "LocatorHealth",
    "NotFoundError",
    "ROLE_CANDIDATES",
    "SmartLocator",
]
