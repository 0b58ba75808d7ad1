from __future__ import annotations

import re
from typing import Callable, List, Optional

from bs4 import Tag

LabelStrategy = Callable[[Tag], Optional[str]]

SIBLING_LABEL_TAGS = {"label", "span", "div"}
GROUP_HEADING_TAGS = {"h3", "h4"}
MAX_SIBLING_LABEL_LENGTH = 100
GROUP_LABEL_DEPTH = 3


def element_text(element: Optional[Tag]) -> str:
    if element is None:
        return ""
    return re.sub(r"\s+", " ", element.get_text(" ", strip=True)).strip()


def _clean(text: Optional[str]) -> Optional[str]:
    if not text:
        return None
    cleaned = re.sub(r"\s+", " ", text).strip().lower()
    return cleaned or None


def _root(element: Tag) -> Tag:
    node = element
    while node.parent is not None:
        node = node.parent
    return node


def _classes(element: Tag) -> List[str]:
    value = element.get("class") or []
    if isinstance(value, str):
        return value.split()
    return list(value)


def is_radio_like(element: Tag) -> bool:
    if element.name == "input" and (element.get("type") or "").lower() == "radio":
        return True
    return (element.get("role") or "").lower() == "radio"


def _precedes(first: Tag, second: Tag) -> bool:
    return any(node is second for node in first.next_elements)


def _contains(container: Tag, element: Tag) -> bool:
    return any(parent is container for parent in element.parents)


def from_aria_label(element: Tag) -> Optional[str]:
    return _clean(element.get("aria-label"))


def from_question_heading(element: Tag) -> Optional[str]:
    container = element.find_parent(attrs={"role": "listitem"})
    if container is None:
        return None
    heading = container.find(attrs={"role": "heading"})
    return _clean(element_text(heading))


def from_label_for(element: Tag) -> Optional[str]:
    element_id = element.get("id")
    if not element_id:
        return None
    label = _root(element).find("label", attrs={"for": element_id})
    return _clean(element_text(label))


def from_group_label(element: Tag) -> Optional[str]:
    """Question text for radio-like controls: legend, preceding label or inner label."""
    if not is_radio_like(element):
        return None
    fieldset = element.find_parent("fieldset")
    if fieldset is not None:
        legend = fieldset.find("legend")
        if legend is not None:
            text = _clean(element_text(legend))
            if text:
                return text

    parent = element.parent
    for _ in range(GROUP_LABEL_DEPTH):
        if parent is None or parent.name == "[document]":
            break
        sibling = parent.find_previous_sibling()
        if sibling is not None and (
            sibling.name == "label" or "label" in _classes(sibling) or sibling.name in GROUP_HEADING_TAGS
        ):
            text = _clean(element_text(sibling))
            if text:
                return text

        # <div class="form-group"><label>Question</label><div><input type="radio"></div></div>
        internal = parent.find("label")
        if (
            internal is not None
            and not _contains(internal, element)
            and element_text(internal)
            and _precedes(internal, element)
        ):
            return _clean(element_text(internal))
        parent = parent.parent
    return None


def from_wrapping_label(element: Tag) -> Optional[str]:
    # For radios this may be a single option's text rather than the question.
    return _clean(element_text(element.find_parent("label")))


def from_aria_labelledby(element: Tag) -> Optional[str]:
    reference = element.get("aria-labelledby")
    if not reference:
        return None
    root = _root(element)
    parts = []
    for label_id in str(reference).split():
        target = root.find(attrs={"id": label_id})
        text = element_text(target)
        if text:
            parts.append(text)
    return _clean(" ".join(parts))


def from_preceding_sibling(element: Tag) -> Optional[str]:
    for sibling in element.find_previous_siblings():
        if sibling.name not in SIBLING_LABEL_TAGS:
            continue
        text = element_text(sibling)
        if 0 < len(text) < MAX_SIBLING_LABEL_LENGTH:
            return _clean(text)
    return None


# Structured signals first; proximity heuristics last.
LABEL_STRATEGIES: List[LabelStrategy] = [
    from_aria_label,
    from_question_heading,
    from_label_for,
    from_group_label,
    from_wrapping_label,
    from_aria_labelledby,
    from_preceding_sibling,
]


def extract_label(element: Tag, strategies: Optional[List[LabelStrategy]] = None) -> str:
    for strategy in strategies or LABEL_STRATEGIES:
        text = strategy(element)
        if text:
            return text
    return ""
