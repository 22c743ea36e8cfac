"""
Special-case resolution routes.

Some BiNDup controls sit in the DOM hidden behind hover animations or loading
states, so plain selector matching cannot reach them. A route recognises such
an element from its query and runs a reveal sequence (hover, wait for
stability, scroll) before handing back the element. Routes never click.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable, List, Sequence

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from .selector_strategy import (
    ElementQuery,
    ResolutionStage,
    ResolvedElement,
    SelectorCandidate,
)
from .settings import EngineSettings
from .step_logger import StepLogger


class RouteFailed(Exception):
    """A special-case route could not produce an element."""
    pass


RouteResolver = Callable[[Page, ElementQuery, EngineSettings, StepLogger], Awaitable[ResolvedElement]]


@dataclass(frozen=True)
class SpecialCaseRoute:
    name: str
    matches: Callable[[ElementQuery], bool]
    resolve: RouteResolver


# ================================================================================
# Template selection
# ================================================================================

TEMPLATE_CONTAINER = "#id-template-group"

TEMPLATE_SELECTORS = [
    "#id-template-group > div > .cs-frame",
    "#id-template-group .cs-frame",
    '[class*="template"] .cs-frame',
    ".cs-template-item",
    "[data-template-id]",
]

TEMPLATES_READY_JS = (
    "() => document.querySelectorAll('#id-template-group .cs-frame').length > 0"
)


def is_template_query(query: ElementQuery) -> bool:
    return "template" in query.description.lower()


async def reveal_template(
    page: Page,
    query: ElementQuery,
    settings: EngineSettings,
    steps: StepLogger,
) -> ResolvedElement:
    """Hover the template group, wait for frames, then pick the first template."""
    steps.start("Hovering over template container", TEMPLATE_CONTAINER)
    try:
        await page.hover(TEMPLATE_CONTAINER, timeout=settings.reveal_timeout_ms)
        steps.success("Template container hover successful")
    except PlaywrightError as e:
        steps.warning("Template container hover failed, continuing", str(e))

    try:
        await page.wait_for_function(TEMPLATES_READY_JS, timeout=settings.special_timeout_ms)
        steps.success("Templates are now interactive")
    except PlaywrightError:
        steps.warning("Template wait timeout, proceeding anyway")

    return await _first_present(page, TEMPLATE_SELECTORS, settings, steps, hover_hidden=True)


# ================================================================================
# Create-site button
# ================================================================================

CREATE_SITE_TEXT = "サイトを作成"
CREATE_SITE_BUTTON = "#id-template-item-select"

CREATE_SITE_SELECTORS = [
    f'text="{CREATE_SITE_TEXT}"',
    CREATE_SITE_BUTTON,
]

CREATE_SITE_STABLE_JS = (
    "() => {"
    " const btn = document.querySelector('#id-template-item-select');"
    " return !!btn && btn.offsetParent !== null && !btn.classList.contains('cs-loading');"
    " }"
)


def is_create_site_query(query: ElementQuery) -> bool:
    description = query.description.lower()
    return (
        "create site button" in description
        or "site creation execution" in description
        or CREATE_SITE_TEXT in query.primary.value
    )


async def reveal_create_site_button(
    page: Page,
    query: ElementQuery,
    settings: EngineSettings,
    steps: StepLogger,
) -> ResolvedElement:
    """Wait for the button to settle after template selection, then return it."""
    steps.start("Waiting for create site button to become stable")
    try:
        await page.wait_for_function(CREATE_SITE_STABLE_JS, timeout=settings.special_timeout_ms)
        steps.success("Create site button is now stable")
    except PlaywrightError:
        steps.warning("Button stability wait timeout, proceeding anyway")

    return await _first_present(page, CREATE_SITE_SELECTORS, settings, steps, hover_hidden=False)


async def _first_present(
    page: Page,
    selectors: Sequence[str],
    settings: EngineSettings,
    steps: StepLogger,
    hover_hidden: bool,
) -> ResolvedElement:
    for selector in selectors:
        try:
            locator = page.locator(selector)
            count = await locator.count()
            if count == 0:
                continue

            element = locator.first
            visible = await element.is_visible()
            if not visible:
                try:
                    if hover_hidden:
                        await element.hover(timeout=settings.reveal_timeout_ms, force=True)
                    else:
                        await element.scroll_into_view_if_needed(timeout=settings.reveal_timeout_ms)
                    visible = await element.is_visible()
                except PlaywrightError as e:
                    steps.warning(f"Reveal failed for {selector}", str(e))

            steps.success(f"Special route matched: {selector}", f"{count} elements, visible={visible}")
            return ResolvedElement(
                locator=element,
                visible=visible,
                matched_candidate_index=-1,
                stage=ResolutionStage.SPECIAL,
                candidate=SelectorCandidate.css(selector),
                match_count=count,
            )
        except PlaywrightError as e:
            steps.warning(f"Special route selector failed: {selector}", str(e))

    raise RouteFailed(f"No element found with any selector: {', '.join(selectors)}")


TEMPLATE_ROUTE = SpecialCaseRoute("template selection", is_template_query, reveal_template)
CREATE_SITE_ROUTE = SpecialCaseRoute("create site button", is_create_site_query, reveal_create_site_button)

DEFAULT_ROUTES: List[SpecialCaseRoute] = [TEMPLATE_ROUTE, CREATE_SITE_ROUTE]


__all__ = [
    "CREATE_SITE_ROUTE",
    "DEFAULT_ROUTES",
    "RouteFailed",
    "SpecialCaseRoute",
    "TEMPLATE_ROUTE",
    "is_create_site_query",
    "is_template_query",
]
