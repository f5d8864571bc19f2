from __future__ import annotations

import re
from typing import Iterable, Pattern

from .models import ElementType

INTERACTIVE_SELECTORS = (
    "button",
    "a[href]",
    "input",
    "select",
    "textarea",
    "[role='button']",
    "[role='link']",
    "[role='textbox']",
    "h1, h2, h3, h4, h5, h6",
    "form",
    "[data-testid]",
)

TEST_ID_ATTRIBUTE = "data-testid"

# Max trimmed text length (exclusive) for a text candidate.
MAX_TEXT_CANDIDATE_LENGTH = 50

DYNAMIC_CLASS_PATTERNS: tuple[Pattern[str], ...] = (
    re.compile(r"^[a-z]-[0-9a-f]{5,}$", re.IGNORECASE),
    re.compile(r"^[a-z]{1,3}[0-9]{3,}$", re.IGNORECASE),
    re.compile(r"^_[a-z0-9_-]{10,}$", re.IGNORECASE),
    re.compile(r"__[0-9a-f]{6,}", re.IGNORECASE),
    re.compile(r"^css-[0-9a-z]{6,}$", re.IGNORECASE),
)

_CSS_SAFE_IDENT_PATTERN = re.compile(r"^-?[A-Za-z_][A-Za-z0-9_-]*$")
_HEADING_TAG_PATTERN = re.compile(r"^h[1-6]$")

_ELEMENT_TYPES: dict[str, ElementType] = {
    "button": "button",
    "a": "link",
    "input": "input",
    "select": "select",
    "textarea": "textarea",
    "form": "form",
}


def normalize_space(value: str | None, limit: int | None = None) -> str:
    if not value:
        return ""
    compact = re.sub(r"\s+", " ", str(value)).strip()
    if limit is not None:
        return compact[:limit]
    return compact


def collector_selector() -> str:
    return ", ".join(INTERACTIVE_SELECTORS)


def is_css_safe_ident(value: str) -> bool:
    return bool(_CSS_SAFE_IDENT_PATTERN.fullmatch(value))


def escape_css_attribute_value(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def attribute_selector(attr: str, value: str) -> str:
    return f'[{attr}="{escape_css_attribute_value(value)}"]'


def id_selector(id_value: str) -> str:
    if is_css_safe_ident(id_value):
        return f"#{id_value}"
    return attribute_selector("id", id_value)


def class_selector(class_name: str) -> str:
    if is_css_safe_ident(class_name):
        return f".{class_name}"
    return f'[class~="{escape_css_attribute_value(class_name)}"]'


def text_selector(text: str) -> str:
    # Quoted text selectors match the whole normalized text content.
    return f'text="{escape_css_attribute_value(text)}"'


def split_classes(class_attr: str | None) -> tuple[str, ...]:
    if not class_attr:
        return ()
    return tuple(token for token in class_attr.split() if token)


def is_text_candidate(text: str | None) -> bool:
    if text is None:
        return False
    trimmed = text.strip()
    return 0 < len(trimmed) < MAX_TEXT_CANDIDATE_LENGTH


def classify_element_type(tag_name: str) -> ElementType:
    tag = tag_name.strip().lower()
    if tag in _ELEMENT_TYPES:
        return _ELEMENT_TYPES[tag]
    if _HEADING_TAG_PATTERN.match(tag):
        return "heading"
    return "other"


def is_dynamic_class_token(
    token: str, patterns: Iterable[Pattern[str]] = DYNAMIC_CLASS_PATTERNS
) -> bool:
    value = token.strip()
    if not value:
        return False
    return any(pattern.search(value) for pattern in patterns)


def dynamic_classes(
    classes: Iterable[str] | None, patterns: Iterable[Pattern[str]] = DYNAMIC_CLASS_PATTERNS
) -> list[str]:
    compiled = tuple(patterns)
    return [token for token in classes or () if is_dynamic_class_token(token, compiled)]
