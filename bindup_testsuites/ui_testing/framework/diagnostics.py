"""
Failure diagnostics.

Screenshots written on terminal failures (resolution exhausted, retries
exhausted). Capture is best-effort: a failing capture is logged and never
replaces the error being reported.
"""

from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path
from typing import Optional

import allure
from loguru import logger
from playwright.async_api import Page


def _slug(name: str) -> str:
    slug = re.sub(r"[^\w\-]+", "-", name.strip().lower()).strip("-")
    return slug[:80] or "failure"


async def capture_failure_screenshot(
    page: Optional[Page],
    name: str,
    directory: Path,
    full_page: bool = True,
    attach_to_allure: bool = True,
) -> Optional[Path]:
    """
    Save a screenshot named after the failing element or operation.

    Args:
        page: Page to capture (nothing happens when None or closed)
        name: Human-readable label, turned into a file-name slug
        directory: Output directory, created if missing
        full_page: Capture the full scrollable page
        attach_to_allure: Attach the PNG to the current Allure step

    Returns:
        Path to the saved file, or None when nothing was captured
    """
    if page is None:
        return None
    try:
        if page.is_closed():
            return None

        directory.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        filepath = directory / f"{_slug(name)}_{timestamp}.png"

        screenshot = await page.screenshot(path=str(filepath), full_page=full_page)
        if attach_to_allure and screenshot:
            allure.attach(
                screenshot,
                name=name,
                attachment_type=allure.attachment_type.PNG,
            )
        logger.debug(f"Failure screenshot saved: {filepath}")
        return filepath
    except Exception as e:
        logger.warning(f"Could not capture failure screenshot for '{name}': {e}")
        return None


__all__ = ["capture_failure_screenshot"]
