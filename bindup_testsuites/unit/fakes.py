"""
In-memory stand-in for a Playwright page used by the unit tests.

Only the calls the engine makes are modelled. Selector strings are matched
literally against what a test registered with `FakePage.add`, so a test
states exactly which selectors exist on the "page". Waits never block: a
wait whose condition is not already met raises Playwright's TimeoutError
straight away.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError


class FakeElement:
    def __init__(
        self,
        visible: bool = True,
        text: Optional[str] = None,
        role: Optional[str] = None,
        name: Optional[str] = None,
        attrs: Optional[Dict[str, str]] = None,
        children: Optional[Dict[str, List["FakeElement"]]] = None,
        reveal_on_hover: bool = False,
        on_click: Optional[Callable[[], None]] = None,
        click_errors: Optional[List[Exception]] = None,
        evaluate_error: Optional[Exception] = None,
    ):
        self.visible = visible
        self.text = text
        self.role = role
        self.name = name
        self.attrs = attrs or {}
        self.children = children or {}
        self.reveal_on_hover = reveal_on_hover
        self.on_click = on_click
        self.click_errors = list(click_errors or [])
        self.evaluate_error = evaluate_error

        self.clicks = 0
        self.force_clicks = 0
        self.js_clicks = 0
        self.hovers = 0

    def _activate(self) -> None:
        if self.on_click:
            self.on_click()


class FakeLocator:
    def __init__(self, page: "FakePage", source: Callable[[], List[FakeElement]], index: Optional[int] = None):
        self.page = page
        self._source = source
        self._index = index

    def _elements(self) -> List[FakeElement]:
        elements = self._source()
        if self._index is None:
            return elements
        if self._index < len(elements):
            return [elements[self._index]]
        return []

    def _element(self) -> Optional[FakeElement]:
        elements = self._elements()
        return elements[0] if elements else None

    def _require(self, timeout: Optional[float]) -> FakeElement:
        element = self._element()
        if element is None:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded: element not attached")
        return element

    @property
    def first(self) -> "FakeLocator":
        return self.nth(0)

    def nth(self, index: int) -> "FakeLocator":
        return FakeLocator(self.page, self._source, index)

    def locator(self, selector: str) -> "FakeLocator":
        def scoped() -> List[FakeElement]:
            return [child for el in self._elements() for child in el.children.get(selector, [])]

        return FakeLocator(self.page, scoped)

    async def count(self) -> int:
        return len(self._elements())

    async def is_visible(self, timeout: Optional[float] = None) -> bool:
        element = self._element()
        return bool(element and element.visible)

    async def wait_for(self, state: str = "visible", timeout: Optional[float] = None) -> None:
        self.page.waits.append((state, timeout))
        element = self._element()
        visible = bool(element and element.visible)
        if state == "visible" and visible:
            return
        if state == "hidden" and not visible:
            return
        raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for state '{state}'")

    async def click(self, force: bool = False, timeout: Optional[float] = None) -> None:
        element = self._require(timeout)
        if element.click_errors:
            raise element.click_errors.pop(0)
        if not element.visible and not force:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded: element is not visible")
        element.clicks += 1
        if force:
            element.force_clicks += 1
        element._activate()

    async def evaluate(self, expression: str) -> Any:
        element = self._element()
        if element is None:
            raise PlaywrightError("Element is not attached to the DOM")
        if element.evaluate_error:
            raise element.evaluate_error
        element.js_clicks += 1
        element._activate()

    async def hover(self, timeout: Optional[float] = None, force: bool = False) -> None:
        element = self._require(timeout)
        element.hovers += 1
        if element.reveal_on_hover:
            element.visible = True

    async def scroll_into_view_if_needed(self, timeout: Optional[float] = None) -> None:
        element = self._require(timeout)
        if element.reveal_on_hover:
            element.visible = True

    async def get_attribute(self, name: str) -> Optional[str]:
        element = self._element()
        return element.attrs.get(name) if element else None


class FakeKeyboard:
    def __init__(self) -> None:
        self.presses: List[str] = []

    async def press(self, key: str) -> None:
        self.presses.append(key)


class FakePage:
    """Records every side effect so tests can assert on them."""

    def __init__(self) -> None:
        self.registry: Dict[str, List[FakeElement]] = {}
        self.broken_selectors: Dict[str, Exception] = {}
        self.keyboard = FakeKeyboard()
        self.url = "about:blank"
        self.closed = False
        self.templates_ready = False
        self.listeners: Dict[str, List[Callable]] = {}
        self.waits: List[Any] = []
        self.hovered: List[str] = []
        self.visits: List[str] = []
        self.screenshots: List[Optional[str]] = []
        self.screenshot_error: Optional[Exception] = None

    def add(self, selector: str, *elements: FakeElement) -> List[FakeElement]:
        self.registry.setdefault(selector, []).extend(elements)
        return list(elements)

    def _all_elements(self) -> List[FakeElement]:
        seen: Dict[int, FakeElement] = {}
        for elements in self.registry.values():
            for element in elements:
                seen.setdefault(id(element), element)
        return list(seen.values())

    def locator(self, selector: str) -> FakeLocator:
        if selector in self.broken_selectors:
            error = self.broken_selectors[selector]

            def broken() -> List[FakeElement]:
                raise error

            return FakeLocator(self, broken)
        return FakeLocator(self, lambda: list(self.registry.get(selector, [])))

    def get_by_text(self, text: str) -> FakeLocator:
        return FakeLocator(self, lambda: [el for el in self._all_elements() if el.text == text])

    def get_by_role(self, role: str, name: Any = None) -> FakeLocator:
        def matches(element: FakeElement) -> bool:
            if element.role != role:
                return False
            return name is None or bool(name.search(element.name or ""))

        return FakeLocator(self, lambda: [el for el in self._all_elements() if matches(el)])

    async def hover(self, selector: str, timeout: Optional[float] = None) -> None:
        if not self.registry.get(selector):
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded hovering {selector}")
        self.hovered.append(selector)

    async def wait_for_function(self, expression: str, timeout: Optional[float] = None) -> None:
        if not self.templates_ready:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for function")

    async def wait_for_timeout(self, ms: float) -> None:
        await asyncio.sleep(0)

    async def goto(self, url: str, wait_until: Optional[str] = None) -> None:
        self.url = url
        self.visits.append(url)

    async def screenshot(self, path: Optional[str] = None, full_page: bool = False) -> bytes:
        if self.screenshot_error is not None:
            raise self.screenshot_error
        self.screenshots.append(path)
        return b"\x89PNG fake"

    def on(self, event: str, handler: Callable) -> None:
        self.listeners.setdefault(event, []).append(handler)

    def remove_listener(self, event: str, handler: Callable) -> None:
        self.listeners.get(event, []).remove(handler)

    def emit(self, event: str) -> None:
        for handler in list(self.listeners.get(event, [])):
            handler(self)

    def is_closed(self) -> bool:
        return self.closed

    async def close(self) -> None:
        self.closed = True
        self.emit("close")

