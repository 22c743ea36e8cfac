import pytest

from bindup_testsuites.ui_testing.framework.selector_strategy import (
    ElementQuery,
    ResolutionStage,
    SelectorKind,
)
from bindup_testsuites.ui_testing.framework.smart_locator import (
    ElementNotFoundError,
    NotFoundError,
    SmartLocator,
)
from bindup_testsuites.ui_testing.framework.step_logger import StepLogger, StepStatus

from fakes import FakeElement


def add_block_query() -> ElementQuery:
    return ElementQuery.from_selectors(
        "Add Block Button", "text=ブロックを追加", [".add-block-button"]
    )


@pytest.mark.asyncio
async def test_primary_match_reports_index_zero(fake_page, settings):
    fake_page.add("text=ブロックを追加", FakeElement())
    fake_page.add(".add-block-button", FakeElement())

    resolved = await SmartLocator(fake_page, settings).resolve(add_block_query())

    assert resolved.matched_candidate_index == 0
    assert resolved.stage == ResolutionStage.PRIMARY
    assert resolved.visible is True


@pytest.mark.asyncio
async def test_hidden_primary_is_still_index_zero(fake_page, settings):
    fake_page.add("text=ブロックを追加", FakeElement(visible=False))
    fake_page.add(".add-block-button", FakeElement())

    resolved = await SmartLocator(fake_page, settings).resolve(add_block_query())

    assert resolved.matched_candidate_index == 0
    assert resolved.visible is False


@pytest.mark.asyncio
async def test_hidden_fallback_is_returned_for_force_clicking(fake_page, settings):
    fake_page.add(".add-block-button", FakeElement(visible=False))

    resolved = await SmartLocator(fake_page, settings).resolve(add_block_query())

    assert resolved.matched_candidate_index == 1
    assert resolved.stage == ResolutionStage.FALLBACK
    assert resolved.visible is False
    assert ("visible", settings.reveal_timeout_ms) in fake_page.waits


@pytest.mark.asyncio
async def test_fallback_index_is_position_plus_one(fake_page, settings):
    fake_page.add(".third", FakeElement())
    query = ElementQuery.from_selectors("Save Button", "#save", [".first", ".second", ".third"])

    resolved = await SmartLocator(fake_page, settings).resolve(query)

    assert resolved.matched_candidate_index == 3
    assert str(resolved.candidate) == "css=.third"


@pytest.mark.asyncio
async def test_visible_match_preferred_over_earlier_hidden_one(fake_page, settings):
    hidden, shown = fake_page.add("#save", FakeElement(visible=False), FakeElement())

    resolved = await SmartLocator(fake_page, settings).find_element("Save", "#save")

    assert resolved.visible is True
    assert resolved.match_count == 2
    await resolved.locator.click()
    assert shown.clicks == 1
    assert hidden.clicks == 0


@pytest.mark.asyncio
async def test_text_variation_stage_finds_japanese_label(fake_page, settings):
    fake_page.add("span", FakeElement(text="保存"))
    query = ElementQuery.from_selectors("Save Button", "#missing", [".missing"])

    resolved = await SmartLocator(fake_page, settings).resolve(query)

    assert resolved.stage == ResolutionStage.TEXT_VARIATION
    assert resolved.candidate.kind == SelectorKind.GENERATED
    assert resolved.candidate.value == "保存"
    # primary, fallback, "Save Button", then "保存"
    assert resolved.matched_candidate_index == 3


@pytest.mark.asyncio
async def test_role_stage_matches_accessible_name(fake_page, settings):
    fake_page.add("a", FakeElement(role="link", name="publish site"))
    query = ElementQuery.from_selectors("Publish Site", "#publish")

    resolved = await SmartLocator(fake_page, settings).resolve(query)

    assert resolved.stage == ResolutionStage.ROLE
    assert resolved.candidate.value == "link"
    # primary, one text variation, button, then link
    assert resolved.matched_candidate_index == 3


@pytest.mark.asyncio
async def test_not_found_after_every_stage(fake_page, settings):
    locator = SmartLocator(fake_page, settings)

    with pytest.raises(NotFoundError) as exc_info:
        await locator.resolve(add_block_query())

    assert "Add Block Button" in str(exc_info.value)
    assert exc_info.value.description == "Add Block Button"
    assert any(err.startswith("primary:") for err in exc_info.value.errors)
    assert fake_page.screenshots == []


@pytest.mark.asyncio
async def test_not_found_takes_screenshot_when_enabled(fake_page, settings):
    settings.screenshots_enabled = True

    with pytest.raises(ElementNotFoundError):
        await SmartLocator(fake_page, settings).find_element("Missing Thing", "#nope")

    assert len(fake_page.screenshots) == 1
    assert fake_page.screenshots[0].startswith(str(settings.screenshot_dir))


@pytest.mark.asyncio
async def test_template_route_reveals_hidden_frame(fake_page, settings):
    fake_page.templates_ready = True
    fake_page.add("#id-template-group", FakeElement())
    (frame,) = fake_page.add(
        "#id-template-group > div > .cs-frame", FakeElement(visible=False, reveal_on_hover=True)
    )
    query = ElementQuery.from_selectors("Template Item", "#unused")

    resolved = await SmartLocator(fake_page, settings).resolve(query)

    assert resolved.stage == ResolutionStage.SPECIAL
    assert resolved.matched_candidate_index == -1
    assert resolved.visible is True
    assert frame.hovers == 1
    assert frame.clicks == 0
    assert fake_page.hovered == ["#id-template-group"]


@pytest.mark.asyncio
async def test_failed_special_route_falls_back_to_selectors(fake_page, settings):
    fake_page.add("#template-card", FakeElement())
    steps = StepLogger("resolver")
    query = ElementQuery.from_selectors("Template Card", "#template-card")

    resolved = await SmartLocator(fake_page, settings, steps).resolve(query)

    assert resolved.stage == ResolutionStage.PRIMARY
    assert any(
        e.status == StepStatus.WARNING and "falling back" in e.step for e in steps.events
    )


@pytest.mark.asyncio
async def test_create_site_route_matches_primary_text(fake_page, settings):
    fake_page.add("#id-template-item-select", FakeElement())
    query = ElementQuery.from_selectors("Confirm", 'text="サイトを作成"')

    resolved = await SmartLocator(fake_page, settings).resolve(query)

    assert resolved.stage == ResolutionStage.SPECIAL
    assert str(resolved.candidate) == "css=#id-template-item-select"


@pytest.mark.asyncio
async def test_registry_lookup_and_health_report(fake_page, settings):
    fake_page.add("#button-1031", FakeElement())
    locator = SmartLocator(fake_page, settings)

    resolved = await locator.resolve("page_edit_button")

    assert resolved.stage == ResolutionStage.FALLBACK
    report = locator.get_health_report()
    assert "Page Edit Button" in report
    assert "#button-1031" in report


@pytest.mark.asyncio
async def test_unknown_registry_key_raises(fake_page, settings):
    with pytest.raises(ElementNotFoundError, match="No locators defined"):
        await SmartLocator(fake_page, settings).resolve("no_such_element")


@pytest.mark.asyncio
async def test_registered_locator_is_instance_local(fake_page, settings):
    fake_page.add(".corner-menu", FakeElement())
    locator = SmartLocator(fake_page, settings)
    locator.register_locator("corner_menu", ".corner-menu", description="Corner Menu")

    assert (await locator.resolve("corner_menu")).matched_candidate_index == 0
    assert "corner_menu" not in SmartLocator.LOCATORS


@pytest.mark.asyncio
async def test_is_visible_false_for_hidden_or_missing(fake_page, settings):
    fake_page.add("#hidden", FakeElement(visible=False))
    locator = SmartLocator(fake_page, settings)
    locator.register_locator("hidden", "#hidden")
    locator.register_locator("missing", "#missing")

    assert await locator.is_visible("hidden") is False
    assert await locator.is_visible("missing") is False


@pytest.mark.asyncio
async def test_wait_for_any_element_times_out(fake_page, settings):
    locator = SmartLocator(fake_page, settings)

    with pytest.raises(ElementNotFoundError, match="None of the selectors"):
        await locator.wait_for_any_element(["#a", "#b"], timeout_ms=0)

    fake_page.add("#b", FakeElement())
    resolved = await locator.wait_for_any_element(["#a", "#b"], timeout_ms=0)
    assert resolved.matched_candidate_index == 1


@pytest.mark.asyncio
async def test_find_multiple_elements_keeps_matching_selectors(fake_page, settings):
    fake_page.add(".corner-block", FakeElement(), FakeElement())

    found = await SmartLocator(fake_page, settings).find_multiple_elements(
        "blocks", [".corner-block", ".block-item"]
    )

    assert len(found) == 1
    assert await found[0].count() == 2


@pytest.mark.asyncio
async def test_every_stage_is_logged(fake_page, settings):
    fake_page.add(".add-block-button", FakeElement())
    steps = StepLogger("resolver")

    await SmartLocator(fake_page, settings, steps).resolve(add_block_query())

    statuses = [e.status for e in steps.events]
    assert statuses[0] == StepStatus.START
    assert statuses[-1] == StepStatus.SUCCESS
    assert any(e.status == StepStatus.WARNING and "primary" in e.step.lower() for e in steps.events)
