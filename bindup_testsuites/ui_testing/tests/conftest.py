"""
================================================================================
UI Testing Pytest Configuration
================================================================================

Fixtures for browser tests of the element engine.

Key Features:
- Browser and page lifecycle management (skips when Chromium is unavailable)
- Engine settings with short timeouts for inline HTML pages
- Failure details attached to Allure

================================================================================
"""

from pathlib import Path
from typing import AsyncGenerator

import pytest
from loguru import logger
from playwright.async_api import Page

from bindup_testsuites.ui_testing.framework.browser_manager import BrowserManager
from bindup_testsuites.ui_testing.framework.page_base import BasePage
from bindup_testsuites.ui_testing.framework.settings import EngineSettings


# ================================================================================
# Test Lifecycle Hooks
# ================================================================================

@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item, call):
    """Expose each phase's report on the item so fixtures can see failures."""
    outcome = yield
    report = outcome.get_result()
    setattr(item, f"rep_{report.when}", report)


# ================================================================================
# Browser Fixtures
# ================================================================================

@pytest.fixture
async def browser_manager() -> AsyncGenerator[BrowserManager, None]:
    manager = BrowserManager(headless=True)
    try:
        await manager.start()
    except Exception as e:
        pytest.skip(f"Chromium could not be launched: {e}")
    yield manager
    await manager.close()


@pytest.fixture
async def page(browser_manager: BrowserManager) -> AsyncGenerator[Page, None]:
    page = await browser_manager.new_page()
    yield page
    if not page.is_closed():
        await page.close()


@pytest.fixture
def engine_settings(tmp_path: Path) -> EngineSettings:
    """Short stage timeouts; inline pages either match at once or never."""
    return EngineSettings(
        reveal_timeout_ms=200,
        text_timeout_ms=300,
        role_timeout_ms=300,
        special_timeout_ms=500,
        popup_interval_ms=100,
        screenshot_dir=tmp_path / "screenshots",
    )


@pytest.fixture
async def editor(request, page: Page, engine_settings: EngineSettings) -> AsyncGenerator[BasePage, None]:
    """BasePage over the test page; captures failure details on a failed test."""
    editor = BasePage(page, base_url="http://bindup.test", settings=engine_settings)
    yield editor

    report = getattr(request.node, "rep_call", None)
    if report is not None and report.failed:
        try:
            await editor.capture_failure(request.node.name)
        except Exception as e:
            logger.warning(f"Failed to capture failure details: {e}")
    await editor.close()
