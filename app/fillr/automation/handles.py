from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, List, Optional

from ..pipeline.options import ChoiceOption
from ..pipeline.scan import FieldSnapshot
from ..schemas import FieldDescriptor
from .executor import FieldHandle, FillStrategy, ScanContext, strategy_for

LOGGER = logging.getLogger(__name__)

ASSIGN_AND_NOTIFY_JS = """(el, value) => {
    el.value = value;
    for (const type of ['input', 'change', 'blur']) {
        el.dispatchEvent(new Event(type, { bubbles: true }));
    }
}"""

FORCE_CHECK_JS = """(el) => {
    el.checked = true;
    el.dispatchEvent(new Event('change', { bubbles: true }));
    el.dispatchEvent(new Event('input', { bubbles: true }));
}"""

SELECT_OPTIONS_JS = """el => Array.from(el.options).map(o => ({
    value: o.value,
    label: (o.label || o.text || '').trim(),
    selected: o.selected,
    has_value: o.hasAttribute('value'),
}))"""

CUSTOM_OPTION_SELECTOR = '[role="option"]'
VISIBLE_OPTION_SELECTOR = f"{CUSTOM_OPTION_SELECTOR}:visible"
CUSTOM_RADIO_SELECTOR = '[role="radio"]'


class MemoryFieldHandle(FieldHandle):
    """In-memory field used for dry runs and tests; records every interaction."""

    def __init__(
        self,
        input_type: str = "text",
        value: str = "",
        options: Optional[Iterable[ChoiceOption]] = None,
        requires_open: bool = False,
    ) -> None:
        self.input_type = input_type
        self.value = value
        self._options: List[ChoiceOption] = list(options or [])
        self.requires_open = requires_open
        self.is_open = False
        self.events: List[str] = []

    @classmethod
    def from_snapshot(cls, snapshot: FieldSnapshot) -> "MemoryFieldHandle":
        strategy = strategy_for(snapshot.descriptor.widget_kind)
        return cls(
            input_type=snapshot.descriptor.input_type,
            value=snapshot.current_value,
            options=snapshot.options,
            requires_open=strategy == FillStrategy.CUSTOM_DROPDOWN,
        )

    def read_value(self) -> str:
        return self.value

    def assign(self, value: str) -> None:
        self.value = value
        self.events.extend(["input", "change", "blur"])

    def options(self) -> List[ChoiceOption]:
        return list(self._options)

    def _select(self, index: int) -> None:
        self._options = [replace(option, selected=i == index) for i, option in enumerate(self._options)]
        chosen = self._options[index]
        self.value = chosen.value or chosen.text

    def choose(self, index: int) -> None:
        self._select(index)
        self.events.append(f"choose:{index}")

    def open(self) -> None:
        self.is_open = True
        self.events.append("open")

    def settle(self, ms: int) -> None:
        self.events.append(f"settle:{ms}")

    def rendered_options(self) -> List[ChoiceOption]:
        if self.requires_open and not self.is_open:
            return []
        return list(self._options)

    def click_option(self, index: int) -> None:
        self._select(index)
        self.is_open = False
        self.events.append(f"click:{index}")

    def dismiss(self) -> None:
        self.is_open = False
        self.events.append("dismiss")


class PlaywrightFieldHandle(FieldHandle):
    def __init__(self, page, snapshot: FieldSnapshot) -> None:
        self.page = page
        self.snapshot = snapshot
        self.input_type = snapshot.descriptor.input_type
        self.locator = page.locator(snapshot.locator_query).first

    def is_attached(self) -> bool:
        try:
            return self.locator.count() > 0
        except Exception:  # noqa: BLE001
            return False


class PlaywrightTextHandle(PlaywrightFieldHandle):
    def read_value(self) -> str:
        try:
            return self.locator.input_value(timeout=2000) or ""
        except Exception:  # noqa: BLE001
            return ""

    def assign(self, value: str) -> None:
        self.locator.evaluate(ASSIGN_AND_NOTIFY_JS, value)


class PlaywrightSelectHandle(PlaywrightFieldHandle):
    def options(self) -> List[ChoiceOption]:
        try:
            raw = self.locator.evaluate(SELECT_OPTIONS_JS)
        except Exception:  # noqa: BLE001
            return list(self.snapshot.options)
        options = []
        for item in raw or []:
            value = str(item.get("value") or "")
            options.append(
                ChoiceOption(
                    text=str(item.get("label") or ""),
                    value=value,
                    selected=bool(item.get("selected")),
                    placeholder=bool(item.get("has_value")) and value == "",
                )
            )
        return options

    def choose(self, index: int) -> None:
        # select_option fires input and change.
        self.locator.select_option(index=index, timeout=2000)


class PlaywrightRadioGroupHandle(PlaywrightFieldHandle):
    def _radio(self, index: int):
        return self.page.locator(self.snapshot.option_queries[index]).first

    def options(self) -> List[ChoiceOption]:
        options = []
        for index, option in enumerate(self.snapshot.options):
            try:
                checked = self._radio(index).is_checked()
            except Exception:  # noqa: BLE001
                checked = option.selected
            options.append(replace(option, selected=checked))
        return options

    def choose(self, index: int) -> None:
        radio = self._radio(index)
        radio.click()
        if not radio.is_checked():
            radio.evaluate(FORCE_CHECK_JS)


class PlaywrightCustomDropdownHandle(PlaywrightFieldHandle):
    def _rendered(self):
        # Options of other dropdowns may stay in the DOM; only the opened popup's count.
        owned = (self.locator.get_attribute("aria-controls") or self.locator.get_attribute("aria-owns") or "").split()
        scope = self.page.locator(f'[id="{owned[0]}"]') if owned else self.page
        return scope.locator(VISIBLE_OPTION_SELECTOR)

    def open(self) -> None:
        self.locator.click()

    def settle(self, ms: int) -> None:
        self.page.wait_for_timeout(ms)

    def rendered_options(self) -> List[ChoiceOption]:
        rendered = self._rendered()
        options = []
        for index in range(rendered.count()):
            item = rendered.nth(index)
            try:
                text = item.inner_text(timeout=2000)
            except Exception:  # noqa: BLE001
                text = ""
            options.append(
                ChoiceOption(
                    text=text.strip(),
                    value=item.get_attribute("data-value") or "",
                    selected=(item.get_attribute("aria-selected") or "").lower() == "true",
                )
            )
        return options

    def click_option(self, index: int) -> None:
        self._rendered().nth(index).click()

    def dismiss(self) -> None:
        self.page.evaluate("() => document.body.click()")


class PlaywrightCustomRadioGroupHandle(PlaywrightFieldHandle):
    def _radios(self):
        return self.locator.locator(CUSTOM_RADIO_SELECTOR)

    def rendered_options(self) -> List[ChoiceOption]:
        radios = self._radios()
        options = []
        for index in range(radios.count()):
            radio = radios.nth(index)
            text = ""
            for attr in ("data-value", "aria-label", "data-answer-value"):
                text = (radio.get_attribute(attr) or "").strip()
                if text:
                    break
            if not text:
                try:
                    text = radio.inner_text(timeout=2000).strip()
                except Exception:  # noqa: BLE001
                    text = ""
            if not text and index < len(self.snapshot.options):
                text = self.snapshot.options[index].text
            options.append(
                ChoiceOption(
                    text=text,
                    value=radio.get_attribute("data-value") or "",
                    selected=(radio.get_attribute("aria-checked") or "").lower() == "true",
                )
            )
        return options

    def click_option(self, index: int) -> None:
        self._radios().nth(index).click()


PLAYWRIGHT_HANDLES = {
    FillStrategy.TEXT_LIKE: PlaywrightTextHandle,
    FillStrategy.CUSTOM_DROPDOWN: PlaywrightCustomDropdownHandle,
    FillStrategy.CUSTOM_RADIO_GROUP: PlaywrightCustomRadioGroupHandle,
}


def playwright_handle(page, snapshot: FieldSnapshot) -> FieldHandle:
    strategy = strategy_for(snapshot.descriptor.widget_kind)
    if strategy == FillStrategy.NATIVE_CHOICE:
        if snapshot.descriptor.input_type == "radio":
            return PlaywrightRadioGroupHandle(page, snapshot)
        return PlaywrightSelectHandle(page, snapshot)
    return PLAYWRIGHT_HANDLES[strategy](page, snapshot)


def playwright_context(page, snapshots: Iterable[FieldSnapshot], origin: Optional[str] = None) -> ScanContext:
    context = ScanContext(origin=origin)
    for snapshot in snapshots:
        context.add(snapshot.descriptor, playwright_handle(page, snapshot))
    return context


def memory_context(snapshots: Iterable[FieldSnapshot], origin: Optional[str] = None) -> ScanContext:
    context = ScanContext(origin=origin)
    for snapshot in snapshots:
        context.add(snapshot.descriptor, MemoryFieldHandle.from_snapshot(snapshot))
    return context


def descriptor_context(descriptors: Iterable[FieldDescriptor], origin: Optional[str] = None) -> ScanContext:
    """Context for bare descriptors with no page behind them (empty values, no options)."""
    context = ScanContext(origin=origin)
    for descriptor in descriptors:
        strategy = strategy_for(descriptor.widget_kind)
        context.add(
            descriptor,
            MemoryFieldHandle(
                input_type=descriptor.input_type,
                requires_open=strategy == FillStrategy.CUSTOM_DROPDOWN,
            ),
        )
    return context
