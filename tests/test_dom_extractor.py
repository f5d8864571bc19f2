import asyncio

from fake_browser import FakeElement, FakeSession
from pathfinder.dom_extractor import LocatorExtractor, select_primary
from pathfinder.models import CandidateAlternative


def _extract(session: FakeSession, element: FakeElement, timeout_ms: int = 5000):
    extractor = LocatorExtractor(session, timeout_ms=timeout_ms)
    return asyncio.run(extractor.extract(element)), extractor


def test_test_id_wins_and_alternatives_follow_probe_order() -> None:
    button = FakeElement(
        tag="BUTTON",
        attributes={"data-testid": "submit", "class": "css-a1b2c3"},
        text="Submit",
        xpath="/html/body/div[1]/form[1]/button[1]",
        css="button.css-a1b2c3",
        depth=4,
    )

    locator, extractor = _extract(FakeSession([button]), button)

    assert locator is not None
    assert locator.strategy == "testId"
    assert locator.value == "submit"
    assert locator.is_unique
    assert locator.tag_name == "button"
    assert locator.element_type == "button"
    assert locator.classes == ("css-a1b2c3",)
    assert [(item.strategy, item.value, item.is_unique) for item in locator.alternatives] == [
        ("testId", "submit", True),
        ("text", "Submit", True),
        ("class", "css-a1b2c3", True),
        ("xpath", "/html/body/div[1]/form[1]/button[1]", True),
        ("css", "button.css-a1b2c3", False),
    ]
    assert extractor.skipped == 0


def test_duplicate_id_is_not_unique_and_next_strategy_wins() -> None:
    nav = FakeElement(tag="nav", attributes={"id": "nav", "aria-label": "Main"})
    session = FakeSession([nav], counts={"#nav": 2})

    locator, _ = _extract(session, nav)

    assert locator is not None
    assert CandidateAlternative("id_attr", "nav", False) in locator.alternatives
    assert locator.strategy == "aria_label"
    assert locator.value == "Main"
    assert locator.id == "nav"


def test_unique_id_beats_aria_label() -> None:
    field = FakeElement(tag="input", attributes={"id": "email", "aria-label": "Email", "name": "email"})

    locator, _ = _extract(FakeSession([field]), field)

    assert locator is not None
    assert locator.strategy == "id_attr"
    assert locator.value == "email"
    assert locator.element_type == "input"


def test_unsafe_id_is_probed_with_attribute_selector() -> None:
    element = FakeElement(tag="div", attributes={"id": "123 start"})
    session = FakeSession([element])

    _extract(session, element)

    assert '[id="123 start"]' in session.probes


def test_xpath_is_primary_when_nothing_else_is_unique() -> None:
    span = FakeElement(tag="span", attributes={"class": "label"}, xpath="/html/body/div[3]/span[2]")
    session = FakeSession([span], counts={".label": 4})

    locator, _ = _extract(session, span)

    assert locator is not None
    assert locator.strategy == "xpath"
    assert locator.value == "/html/body/div[3]/span[2]"
    assert locator.is_unique


def test_text_candidate_is_normalized_and_length_limited() -> None:
    short = FakeElement(tag="a", text="  Sign   in \n")
    limit = FakeElement(tag="a", text="x" * 50)
    session = FakeSession([short, limit])

    short_locator, _ = _extract(session, short)
    limit_locator, _ = _extract(session, limit)

    assert short_locator is not None and limit_locator is not None
    assert short_locator.strategy == "text"
    assert short_locator.value == "Sign in"
    assert 'text="Sign in"' in session.probes
    assert not limit_locator.has_strategy("text")
    assert limit_locator.strategy == "xpath"


def test_failing_probe_only_drops_that_candidate() -> None:
    button = FakeElement(tag="button", attributes={"name": "save"}, text="Save")
    session = FakeSession([button], failing_selectors={'text="Save"'})

    locator, extractor = _extract(session, button)

    assert locator is not None
    assert not locator.has_strategy("text")
    assert locator.strategy == "name_attr"
    assert extractor.skipped == 0


def test_unreadable_attribute_is_treated_as_absent() -> None:
    button = FakeElement(tag="button", attributes={"aria-label": "Close"}, unreadable={"aria-label"})

    locator, _ = _extract(FakeSession([button]), button)

    assert locator is not None
    assert locator.aria_label is None
    assert not locator.has_strategy("aria_label")


def test_slow_element_is_skipped_after_timeout() -> None:
    slow = FakeElement(tag="button", delay=1.0)
    fast = FakeElement(tag="button", attributes={"data-testid": "ok"})
    session = FakeSession([slow, fast])

    async def run():
        extractor = LocatorExtractor(session, timeout_ms=20)
        return await extractor.extract(slow), await extractor.extract(fast), extractor

    slow_locator, fast_locator, extractor = asyncio.run(run())

    assert slow_locator is None
    assert fast_locator is not None and fast_locator.value == "ok"
    assert extractor.skipped == 1


def test_broken_element_is_skipped() -> None:
    broken = FakeElement(tag="button", broken=True)

    locator, extractor = _extract(FakeSession([broken]), broken)

    assert locator is None
    assert extractor.skipped == 1


def test_structure_fields_are_copied() -> None:
    heading = FakeElement(
        tag="H2",
        text="Pricing",
        depth=7,
        sibling_count=3,
        parent_tag="section",
        parent_classes=["hero", "dark"],
    )

    locator, _ = _extract(FakeSession([heading]), heading)

    assert locator is not None
    assert locator.element_type == "heading"
    assert locator.depth == 7
    assert locator.sibling_count == 3
    assert locator.parent_tag == "section"
    assert locator.parent_classes == ("hero", "dark")


def test_select_primary_follows_precedence() -> None:
    alternatives = [
        CandidateAlternative("class", "btn", True),
        CandidateAlternative("role", "button", True),
        CandidateAlternative("id_attr", "save", False),
    ]
    assert select_primary(alternatives, "/html/body/button[1]") == ("role", "button", True)
    assert select_primary([], "/html/body/button[1]") == ("xpath", "/html/body/button[1]", True)


def test_id_with_surrounding_spaces_is_probed_with_attribute_selector() -> None:
    button = FakeElement(tag="button", attributes={"id": " save "})
    session = FakeSession([button])

    locator, _ = _extract(session, button)

    assert session.probes == ['[id=" save "]']
    assert locator is not None
    assert locator.strategy == "id_attr"
    assert locator.value == " save "
