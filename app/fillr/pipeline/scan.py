from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from bs4 import BeautifulSoup, NavigableString, Tag

from ..schemas import FieldDescriptor, WidgetKind
from .labels import element_text, extract_label
from .options import ChoiceOption

LOGGER = logging.getLogger(__name__)

NATIVE_CONTROL_TAGS = ["input", "textarea", "select"]
NATIVE_CONTROL_XPATH = "//input|//textarea|//select"
TEXT_INPUT_TYPES = {"text", "email", "tel", "number", "url", "date", "search"}
IGNORED_INPUT_TYPES = {"hidden", "submit", "button", "image", "reset", "password", "checkbox", "file"}
MAX_OPTION_TEXT_LENGTH = 100


@dataclass
class FieldSnapshot:
    """A detected field plus what is needed to locate and inspect it later."""

    descriptor: FieldDescriptor
    locator_query: str
    current_value: str = ""
    options: List[ChoiceOption] = field(default_factory=list)
    option_queries: List[str] = field(default_factory=list)


def _attr(element: Tag, name: str) -> str:
    value = element.get(name)
    if value is None:
        return ""
    if isinstance(value, list):
        value = " ".join(value)
    return str(value)


def _input_type(element: Tag) -> str:
    if element.name == "input":
        return (_attr(element, "type") or "text").lower()
    return element.name


def radio_option_text(radio: Tag) -> str:
    """Text of one native radio option, as opposed to the group question."""
    parent_label = radio.find_parent("label")
    if parent_label is not None:
        text = element_text(parent_label)
        if text:
            return text.lower()
    radio_id = _attr(radio, "id")
    if radio_id:
        root = radio
        while root.parent is not None:
            root = root.parent
        label = root.find("label", attrs={"for": radio_id})
        if label is not None:
            return element_text(label).lower()
    for sibling in radio.next_siblings:
        if isinstance(sibling, NavigableString):
            text = str(sibling).strip()
        elif isinstance(sibling, Tag):
            text = element_text(sibling)
        else:
            continue
        if text:
            return text.lower()
    return _attr(radio, "value").lower().strip()


def custom_radio_option_text(radio: Tag) -> str:
    for attr in ("data-value", "aria-label", "data-answer-value"):
        value = _attr(radio, attr).strip()
        if value:
            return value
    span = radio.find("span", attrs={"dir": "auto"})
    if span is not None and element_text(span):
        return element_text(span)
    for span in radio.find_all("span"):
        text = element_text(span)
        if 0 < len(text) < MAX_OPTION_TEXT_LENGTH:
            return text
    text = element_text(radio)
    if text:
        return text
    sibling = radio.find_next_sibling()
    return element_text(sibling)


def _select_options(select: Tag) -> List[ChoiceOption]:
    options = []
    for option in select.find_all("option"):
        text = element_text(option)
        has_value = option.has_attr("value")
        value = _attr(option, "value") if has_value else text
        options.append(
            ChoiceOption(
                text=text,
                value=value,
                selected=option.has_attr("selected"),
                placeholder=has_value and value == "",
            )
        )
    return options


def _descriptor(
    field_id: str,
    element: Tag,
    widget_kind: WidgetKind,
    input_type: str,
    label: Optional[str] = None,
) -> FieldDescriptor:
    return FieldDescriptor(
        field_id=field_id,
        label_text=extract_label(element) if label is None else label,
        placeholder_text=_attr(element, "placeholder").lower().strip(),
        name=_attr(element, "name").lower().strip(),
        id=_attr(element, "id").lower().strip(),
        widget_kind=widget_kind,
        input_type=input_type,
    )


def _scan_native(soup: BeautifulSoup, counter: List[int]) -> List[FieldSnapshot]:
    snapshots: List[FieldSnapshot] = []
    radio_groups: Dict[str, FieldSnapshot] = {}

    for index, element in enumerate(soup.find_all(NATIVE_CONTROL_TAGS)):
        query = f"xpath=({NATIVE_CONTROL_XPATH})[{index + 1}]"
        input_type = _input_type(element)
        if input_type in IGNORED_INPUT_TYPES:
            continue

        if input_type == "radio":
            group_key = _attr(element, "name") or f"radio_{index}"
            option = ChoiceOption(
                text=radio_option_text(element),
                value=_attr(element, "value"),
                selected=element.has_attr("checked"),
            )
            snapshot = radio_groups.get(group_key)
            if snapshot is None:
                field_id = f"field_{counter[0]}"
                counter[0] += 1
                snapshot = FieldSnapshot(
                    descriptor=_descriptor(field_id, element, WidgetKind.RADIO_GROUP, "radio"),
                    locator_query=query,
                )
                radio_groups[group_key] = snapshot
                snapshots.append(snapshot)
            snapshot.options.append(option)
            snapshot.option_queries.append(query)
            continue

        if element.name == "select":
            kind = WidgetKind.SELECT
            current = ""
        elif element.name == "textarea":
            kind = WidgetKind.TEXTAREA
            current = element_text(element)
        elif input_type in TEXT_INPUT_TYPES:
            kind = WidgetKind.TEXT
            current = _attr(element, "value")
        else:
            LOGGER.debug("Ignoring input of type %s", input_type)
            continue

        field_id = f"field_{counter[0]}"
        counter[0] += 1
        snapshots.append(
            FieldSnapshot(
                descriptor=_descriptor(field_id, element, kind, input_type),
                locator_query=query,
                current_value=current,
                options=_select_options(element) if kind == WidgetKind.SELECT else [],
            )
        )
    return snapshots


def _question_heading(element: Tag) -> str:
    container = element.find_parent(attrs={"role": "listitem"})
    heading = container.find(attrs={"role": "heading"}) if container is not None else None
    return element_text(heading).lower()


def _scan_custom(soup: BeautifulSoup, counter: List[int]) -> List[FieldSnapshot]:
    snapshots: List[FieldSnapshot] = []

    for index, listbox in enumerate(soup.find_all(attrs={"role": "listbox"})):
        if listbox.name == "select":
            continue
        field_id = f"gd_{counter[0]}"
        counter[0] += 1
        snapshots.append(
            FieldSnapshot(
                descriptor=_descriptor(
                    field_id, listbox, WidgetKind.CUSTOM_DROPDOWN, "custom", label=_question_heading(listbox)
                ),
                locator_query=f"xpath=(//*[@role='listbox'])[{index + 1}]",
            )
        )

    for index, container in enumerate(soup.find_all(attrs={"role": "listitem"})):
        radios = container.find_all(attrs={"role": "radio"})
        if not radios:
            continue
        field_id = f"gr_{counter[0]}"
        counter[0] += 1
        heading = container.find(attrs={"role": "heading"})
        snapshot = FieldSnapshot(
            descriptor=_descriptor(
                field_id,
                container,
                WidgetKind.CUSTOM_RADIO_GROUP,
                "custom",
                label=element_text(heading).lower(),
            ),
            locator_query=f"xpath=(//*[@role='listitem'])[{index + 1}]",
        )
        for radio in radios:
            snapshot.options.append(
                ChoiceOption(
                    text=custom_radio_option_text(radio),
                    value=_attr(radio, "data-value"),
                    selected=_attr(radio, "aria-checked").lower() == "true",
                )
            )
        snapshots.append(snapshot)
    return snapshots


def scan_html(html: str) -> List[FieldSnapshot]:
    """Detect fillable fields in discovery order: native controls, then custom widgets."""
    soup = BeautifulSoup(html or "", "html.parser")
    counter = [0]
    snapshots = _scan_native(soup, counter)
    snapshots.extend(_scan_custom(soup, counter))
    LOGGER.debug("Scanned %d fields", len(snapshots))
    return snapshots


def scan_descriptors(html: str) -> List[FieldDescriptor]:
    return [snapshot.descriptor for snapshot in scan_html(html)]
