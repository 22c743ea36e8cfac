import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from bindup_testsuites.ui_testing.framework.page_base import BasePage
from bindup_testsuites.ui_testing.framework.retry import RetryExhaustedError

from fakes import FakeElement


class EditorPage(BasePage):
    URL_PATH = "/editor"


@pytest.fixture
def editor(fake_page, settings):
    return EditorPage(fake_page, base_url="https://bindup.test/", settings=settings)


def test_components_share_one_step_trail(editor):
    editor.smart.steps.start("resolver step")
    editor.popups.steps.start("popup step")

    assert [e.phase for e in editor.steps.events] == ["resolver", "popup"]
    assert editor.url == "https://bindup.test/editor"


@pytest.mark.asyncio
async def test_click_retries_resolution_and_click_together(editor, fake_page):
    (button,) = fake_page.add(
        'button:has-text("保存")',
        FakeElement(click_errors=[PlaywrightTimeoutError("element is covered")]),
    )

    await editor.click("save_button")

    assert button.clicks == 1
    assert [a.outcome.value for a in editor.retry.history] == ["failure", "success"]


@pytest.mark.asyncio
async def test_click_force_clicks_hidden_controls(editor, fake_page):
    (button,) = fake_page.add("#button-1031", FakeElement(visible=False))

    element = await editor.click("page_edit_button", handle_popups=False)

    assert element.visible is False
    assert button.js_clicks == 1


@pytest.mark.asyncio
async def test_find_exhausts_retries_for_missing_element(editor):
    with pytest.raises(RetryExhaustedError) as exc_info:
        await editor.find_element("Missing Widget", "#missing", max_attempts=2)

    assert exc_info.value.attempt_count == 2
    assert "Missing Widget" in str(exc_info.value)


@pytest.mark.asyncio
async def test_navigate_starts_popup_monitoring(editor, fake_page):
    await editor.navigate(settle_ms=0)

    assert fake_page.visits == ["https://bindup.test/editor"]
    assert editor.popups.is_monitoring
    await editor.close()
    assert not editor.popups.is_monitoring


@pytest.mark.asyncio
async def test_verify_delegates_to_verifier(editor, fake_page):
    fake_page.add(".corner-block", FakeElement(), FakeElement())

    result = await editor.verify("duplicate", "corner-block-1-abc")

    assert result.success is True
    assert any(e.phase == "verifier" for e in editor.steps.events)


@pytest.mark.asyncio
async def test_capture_failure_saves_screenshot(editor, fake_page, settings):
    editor.steps.error("Click failed", "timeout")

    await editor.capture_failure("test_add_block")

    assert len(fake_page.screenshots) == 1
    assert "failure_test_add_block" in fake_page.screenshots[0]
    assert fake_page.screenshots[0].startswith(str(settings.screenshot_dir))


@pytest.mark.asyncio
async def test_screenshot_lands_in_configured_directory(editor, fake_page, settings):
    path = await editor.screenshot("Add Block Dialog", attach_to_allure=False)

    assert path.parent == settings.screenshot_dir
    assert path.name.startswith("add-block-dialog_")
    assert fake_page.screenshots == [str(path)]


@pytest.mark.asyncio
async def test_capture_failure_survives_screenshot_error(editor, fake_page):
    fake_page.screenshot_error = PlaywrightError("Target page, context or browser has been closed")
    editor.steps.error("Click failed", "timeout")

    assert await editor.screenshot("broken") is None
    await editor.capture_failure("test_add_block")

    assert fake_page.screenshots == []
