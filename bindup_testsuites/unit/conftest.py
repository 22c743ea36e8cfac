"""Unit test fixtures."""

import pytest

from bindup_testsuites.ui_testing.framework.settings import EngineSettings

from fakes import FakePage


@pytest.fixture
def fake_page() -> FakePage:
    return FakePage()


@pytest.fixture
def settings(tmp_path) -> EngineSettings:
    """Default timeouts, screenshots off, output kept under tmp_path."""
    return EngineSettings(screenshots_enabled=False, screenshot_dir=tmp_path / "screenshots")
