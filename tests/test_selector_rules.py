from pathfinder.selector_rules import (
    attribute_selector,
    class_selector,
    classify_element_type,
    collector_selector,
    dynamic_classes,
    id_selector,
    is_css_safe_ident,
    is_dynamic_class_token,
    is_text_candidate,
    normalize_space,
    split_classes,
    text_selector,
)


def test_css_safe_ident_detection() -> None:
    assert is_css_safe_ident("username_input")
    assert is_css_safe_ident("-heroTitle")
    assert not is_css_safe_ident("123-start")
    assert not is_css_safe_ident("has space")
    assert not is_css_safe_ident(" save ")


def test_id_selector_falls_back_to_attribute_form() -> None:
    assert id_selector("submitBtn") == "#submitBtn"
    assert id_selector('a"b\\c d') == '[id="a\\"b\\\\c d"]'
    assert id_selector(" save ") == '[id=" save "]'


def test_attribute_class_and_text_selectors() -> None:
    assert attribute_selector("data-testid", "login") == '[data-testid="login"]'
    assert class_selector("btn-primary") == ".btn-primary"
    assert class_selector("md:flex") == '[class~="md:flex"]'
    assert text_selector('Say "hi"') == 'text="Say \\"hi\\""'


def test_collector_selector_covers_interactive_and_semantic_elements() -> None:
    selector = collector_selector()
    for part in ("button", "a[href]", "textarea", "[role='textbox']", "h1, h2", "form", "[data-testid]"):
        assert part in selector


def test_text_candidate_bounds() -> None:
    assert is_text_candidate("Save")
    assert is_text_candidate("x" * 49)
    assert not is_text_candidate("x" * 50)
    assert not is_text_candidate("   ")
    assert not is_text_candidate(None)


def test_dynamic_class_tokens() -> None:
    for token in ("a-1f2e3d", "jss1234", "_3xYz0abcdefg", "Button__abc123f", "css-1q2w3e"):
        assert is_dynamic_class_token(token), token
    for token in ("btn", "nav-link", "header__title", "col-md-6", ""):
        assert not is_dynamic_class_token(token), token
    assert dynamic_classes(("btn", "css-1q2w3e", "sc4567")) == ["css-1q2w3e", "sc4567"]
    assert dynamic_classes(None) == []


def test_element_type_classification() -> None:
    assert classify_element_type("BUTTON") == "button"
    assert classify_element_type("a") == "link"
    assert classify_element_type("h3") == "heading"
    assert classify_element_type("h7") == "other"
    assert classify_element_type("form") == "form"
    assert classify_element_type("div") == "other"


def test_whitespace_helpers() -> None:
    assert normalize_space("  Sign \n  in ") == "Sign in"
    assert normalize_space(None) == ""
    assert split_classes("  btn   btn-primary ") == ("btn", "btn-primary")
    assert split_classes(None) == ()
