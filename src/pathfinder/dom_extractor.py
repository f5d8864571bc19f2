from __future__ import annotations

import asyncio
import logging
from typing import Any, Sequence

from .browser_session import BrowserSession
from .config import DEFAULT_PER_ELEMENT_TIMEOUT_MS
from .models import CandidateAlternative, ExtractedLocator, LocatorStrategy
from .selector_rules import (
    TEST_ID_ATTRIBUTE,
    attribute_selector,
    class_selector,
    classify_element_type,
    id_selector,
    is_text_candidate,
    normalize_space,
    split_classes,
    text_selector,
)

logger = logging.getLogger("pathfinder.extractor")

TAG_NAME_SCRIPT = "(el) => el.tagName.toLowerCase()"

GET_ATTRIBUTE_SCRIPT = "(el, name) => el.getAttribute(name)"

INNER_TEXT_SCRIPT = "(el) => el.innerText"

XPATH_SCRIPT = """
(el) => {
  const getPath = (element) => {
    if (element.id) return `//*[@id="${element.id}"]`;
    if (element === document.body) return '/html/body';
    if (element === document.documentElement) return '/html';
    if (!element.parentElement) return '';
    let ix = 0;
    const siblings = element.parentElement.children;
    for (let i = 0; i < siblings.length; i++) {
      const sibling = siblings[i];
      if (sibling === element) {
        return `${getPath(element.parentElement)}/${element.tagName.toLowerCase()}[${ix + 1}]`;
      }
      if (sibling.tagName === element.tagName) ix++;
    }
    return '';
  };
  return getPath(el);
}
"""

CSS_SCRIPT = """
(el) => {
  if (el.id) return `#${el.id}`;
  let path = el.tagName.toLowerCase();
  if (el.className && typeof el.className === 'string') {
    const classes = el.className.split(' ').filter(Boolean);
    if (classes.length > 0) path += `.${classes[0]}`;
  }
  if (el.parentElement) {
    let index = 1;
    let sibling = el.previousElementSibling;
    while (sibling) {
      if (sibling.tagName === el.tagName) index++;
      sibling = sibling.previousElementSibling;
    }
    if (index > 1) path += `:nth-of-type(${index})`;
  }
  return path;
}
"""

STRUCTURE_SCRIPT = """
(el) => {
  let depth = 0;
  let current = el;
  while (current.parentElement) {
    depth++;
    current = current.parentElement;
  }
  const parent = el.parentElement;
  const parentClassName = parent && typeof parent.className === 'string' ? parent.className : '';
  return {
    depth,
    siblingCount: parent ? parent.children.length : 0,
    parentTag: parent ? parent.tagName.toLowerCase() : '',
    parentClasses: parentClassName.split(' ').filter(Boolean),
  };
}
"""

READ_ATTRIBUTES = (
    "id",
    "name",
    TEST_ID_ATTRIBUTE,
    "aria-label",
    "role",
    "title",
    "placeholder",
    "class",
)

# (strategy, attribute) pairs probed as plain attribute selectors.
_ATTRIBUTE_STRATEGIES: tuple[tuple[LocatorStrategy, str], ...] = (
    ("testId", TEST_ID_ATTRIBUTE),
    ("aria_label", "aria-label"),
    ("role", "role"),
    ("name_attr", "name"),
    ("title", "title"),
    ("placeholder", "placeholder"),
)

PRIMARY_PRECEDENCE: tuple[LocatorStrategy, ...] = (
    "testId",
    "id_attr",
    "aria_label",
    "role",
    "name_attr",
    "text",
    "class",
)


def select_primary(
    alternatives: Sequence[CandidateAlternative], xpath: str
) -> tuple[LocatorStrategy, str, bool]:
    for strategy in PRIMARY_PRECEDENCE:
        for alt in alternatives:
            if alt.strategy == strategy and alt.is_unique:
                return alt.strategy, alt.value, True
    return "xpath", xpath, True


class LocatorExtractor:
    """Builds an ``ExtractedLocator`` for one element at a time.

    Every extraction races a timer. Slow or failing elements are dropped and
    counted in ``skipped``; the caller keeps going with the next element.
    """

    def __init__(
        self,
        session: BrowserSession,
        timeout_ms: int = DEFAULT_PER_ELEMENT_TIMEOUT_MS,
    ) -> None:
        self.session = session
        self.timeout_s = timeout_ms / 1000
        self.skipped = 0

    async def extract(self, element: Any) -> ExtractedLocator | None:
        task = asyncio.ensure_future(self._extract(element))
        done, _pending = await asyncio.wait({task}, timeout=self.timeout_s)
        if not done:
            # Extraction only reads, so the abandoned task has nothing to undo.
            task.cancel()
            self.skipped += 1
            logger.debug("Skipped slow element (%s total skipped)", self.skipped)
            return None
        try:
            return task.result()
        except Exception as exc:
            self.skipped += 1
            logger.debug("Error extracting element: %s", exc)
            return None

    async def _extract(self, element: Any) -> ExtractedLocator:
        tag_name = str(await self.session.evaluate(element, TAG_NAME_SCRIPT)).lower()

        attrs = {attr: await self._read_attribute(element, attr) for attr in READ_ATTRIBUTES}
        text = await self._read_text(element)
        classes = split_classes(attrs["class"])

        xpath = await self._evaluate_or_default(element, XPATH_SCRIPT, "")
        css_selector = await self._evaluate_or_default(element, CSS_SCRIPT, "")
        structure = await self.session.evaluate(element, STRUCTURE_SCRIPT) or {}

        alternatives = await self._probe_alternatives(attrs, text, classes)
        alternatives.append(CandidateAlternative("xpath", xpath, True))
        alternatives.append(CandidateAlternative("css", css_selector, False))

        strategy, value, is_unique = select_primary(alternatives, xpath)
        parent_classes = tuple(str(item) for item in structure.get("parentClasses") or ())

        return ExtractedLocator(
            tag_name=tag_name,
            element_type=classify_element_type(tag_name),
            strategy=strategy,
            value=value,
            alternatives=tuple(alternatives),
            xpath=xpath,
            css_selector=css_selector,
            depth=int(structure.get("depth") or 0),
            is_unique=is_unique,
            sibling_count=int(structure.get("siblingCount") or 0),
            text=text or None,
            aria_label=attrs["aria-label"] or None,
            role=attrs["role"] or None,
            classes=classes or None,
            id=attrs["id"] or None,
            name=attrs["name"] or None,
            parent_tag=str(structure.get("parentTag") or "") or None,
            parent_classes=parent_classes or None,
        )

    async def _read_attribute(self, element: Any, attr: str) -> str | None:
        try:
            value = await self.session.evaluate(element, GET_ATTRIBUTE_SCRIPT, attr)
        except Exception as exc:
            logger.debug("Attribute %s unreadable: %s", attr, exc)
            return None
        return str(value) if value else None

    async def _read_text(self, element: Any) -> str | None:
        try:
            value = await self.session.evaluate(element, INNER_TEXT_SCRIPT)
        except Exception as exc:
            logger.debug("Inner text unreadable: %s", exc)
            return None
        return str(value) if value else None

    async def _evaluate_or_default(self, element: Any, script: str, default: str) -> str:
        try:
            value = await self.session.evaluate(element, script)
        except Exception as exc:
            logger.debug("Structural selector failed: %s", exc)
            return default
        return str(value or default)

    async def _probe(self, strategy: LocatorStrategy, value: str, selector: str) -> CandidateAlternative | None:
        try:
            count = await self.session.count_matches(selector)
        except Exception as exc:
            logger.debug("Probe %s failed for %s: %s", strategy, selector, exc)
            return None
        return CandidateAlternative(strategy, value, count == 1)

    async def _probe_alternatives(
        self,
        attrs: dict[str, str | None],
        text: str | None,
        classes: tuple[str, ...],
    ) -> list[CandidateAlternative]:
        probes: list[tuple[LocatorStrategy, str, str]] = []

        id_value = attrs["id"]
        if id_value:
            probes.append(("id_attr", id_value, id_selector(id_value)))
        for strategy, attr in _ATTRIBUTE_STRATEGIES:
            value = attrs[attr]
            if value:
                probes.append((strategy, value, attribute_selector(attr, value)))
        if is_text_candidate(text):
            clean_text = normalize_space(text)
            probes.append(("text", clean_text, text_selector(clean_text)))
        if classes:
            probes.append(("class", classes[0], class_selector(classes[0])))

        alternatives: list[CandidateAlternative] = []
        for strategy, value, selector in probes:
            alternative = await self._probe(strategy, value, selector)
            if alternative is not None:
                alternatives.append(alternative)
        return alternatives
