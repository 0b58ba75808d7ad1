from __future__ import annotations

import pytest

from fillr.automation.executor import FillStrategy, ScanContext, execute_fill, strategy_for
from fillr.automation.handles import MemoryFieldHandle
from fillr.config import EngineConfig
from fillr.field_catalog import get_entry
from fillr.pipeline.options import TIER_ALIAS_EXACT, ChoiceOption
from fillr.schemas import FieldDescriptor, WidgetKind

ENGINE = EngineConfig(high_confidence=0.75, medium_confidence=0.5, widget_settle_ms=300, widget_close_settle_ms=100)


def _scanned(kind: WidgetKind, handle: MemoryFieldHandle, input_type: str = "text", label: str = "field"):
    context = ScanContext(origin="forms.example.com")
    descriptor = FieldDescriptor(field_id="f1", label_text=label, widget_kind=kind, input_type=input_type)
    return context.add(descriptor, handle)


def _options(*texts: str) -> list:
    return [ChoiceOption(text=text, value=text) for text in texts]


def test_strategy_dispatch_is_closed() -> None:
    assert {strategy_for(kind) for kind in WidgetKind} == set(FillStrategy)


def test_text_fill_fires_notifications() -> None:
    handle = MemoryFieldHandle()
    outcome = execute_fill(_scanned(WidgetKind.TEXT, handle), "Asha Rao", get_entry("name"), ENGINE)
    assert outcome.ok
    assert handle.value == "Asha Rao"
    assert handle.events == ["input", "change", "blur"]


def test_numeric_mismatch_on_number_input() -> None:
    handle = MemoryFieldHandle(input_type="number")
    scanned = _scanned(WidgetKind.TEXT, handle, input_type="number", label="no of active backlog")
    outcome = execute_fill(scanned, "two", get_entry("backlog_count"), ENGINE)
    assert not outcome.ok
    assert outcome.reason == "numeric mismatch"
    assert handle.value == ""
    assert handle.events == []


def test_numeric_mismatch_on_tel_input() -> None:
    handle = MemoryFieldHandle(input_type="tel")
    scanned = _scanned(WidgetKind.TEXT, handle, input_type="tel")
    assert execute_fill(scanned, "n/a", get_entry("age"), ENGINE).reason == "numeric mismatch"


def test_plain_text_input_accepts_non_numeric() -> None:
    handle = MemoryFieldHandle()
    scanned = _scanned(WidgetKind.TEXT, handle, label="no of active backlog")
    assert execute_fill(scanned, "two", get_entry("backlog_count"), ENGINE).ok
    assert handle.value == "two"


def test_text_fill_refuses_user_value() -> None:
    handle = MemoryFieldHandle(value="typed by user")
    outcome = execute_fill(_scanned(WidgetKind.TEXT, handle), "Asha Rao", get_entry("name"), ENGINE)
    assert outcome.reason == "already filled"
    assert handle.value == "typed by user"


def test_date_input_gets_iso_value() -> None:
    handle = MemoryFieldHandle(input_type="date")
    scanned = _scanned(WidgetKind.TEXT, handle, input_type="date")
    assert execute_fill(scanned, "15 March 2002", get_entry("dob"), ENGINE).ok
    assert handle.value == "2002-03-15"


def test_date_on_text_input_is_untouched() -> None:
    handle = MemoryFieldHandle()
    assert execute_fill(_scanned(WidgetKind.TEXT, handle), "15 March 2002", get_entry("dob"), ENGINE).ok
    assert handle.value == "15 March 2002"


def test_native_choice_selects_matching_option() -> None:
    handle = MemoryFieldHandle(input_type="select", options=_options("Male", "Female"))
    outcome = execute_fill(_scanned(WidgetKind.SELECT, handle), "Female", get_entry("gender"), ENGINE)
    assert outcome.ok
    assert outcome.tier == TIER_ALIAS_EXACT
    assert handle.events == ["choose:1"]
    assert handle.value == "Female"


def test_native_choice_leaves_selected_option_alone() -> None:
    options = [ChoiceOption(text="Male", value="M", selected=True), ChoiceOption(text="Female", value="F")]
    handle = MemoryFieldHandle(input_type="radio", value="M", options=options)
    scanned = _scanned(WidgetKind.RADIO_GROUP, handle, input_type="radio")
    outcome = execute_fill(scanned, "M", get_entry("gender"), ENGINE)
    assert outcome.ok
    assert handle.events == []


def test_native_choice_without_match() -> None:
    handle = MemoryFieldHandle(input_type="select", options=_options("Yes", "No"))
    outcome = execute_fill(_scanned(WidgetKind.SELECT, handle), "Maybe later", None, ENGINE)
    assert outcome.reason == "no option match"
    assert handle.events == []


def test_custom_dropdown_opens_settles_and_clicks() -> None:
    handle = MemoryFieldHandle(options=_options("2024", "2025"), requires_open=True)
    outcome = execute_fill(_scanned(WidgetKind.CUSTOM_DROPDOWN, handle), "2025", get_entry("batch"), ENGINE)
    assert outcome.ok
    assert handle.events == ["open", "settle:300", "click:1"]
    assert not handle.is_open


def test_custom_dropdown_dismisses_on_miss() -> None:
    handle = MemoryFieldHandle(options=_options("Male", "Female"), requires_open=True)
    outcome = execute_fill(_scanned(WidgetKind.CUSTOM_DROPDOWN, handle), "Other", get_entry("gender"), ENGINE)
    assert outcome.reason == "no option match"
    assert handle.events == ["open", "settle:300", "dismiss", "settle:100"]
    assert not handle.is_open


class _StuckDropdownHandle(MemoryFieldHandle):
    def click_option(self, index: int) -> None:
        raise TimeoutError("option never became visible")


def test_custom_dropdown_dismisses_when_click_fails() -> None:
    handle = _StuckDropdownHandle(options=_options("2024", "2025"), requires_open=True)
    with pytest.raises(TimeoutError):
        execute_fill(_scanned(WidgetKind.CUSTOM_DROPDOWN, handle), "2025", get_entry("batch"), ENGINE)
    assert handle.events == ["open", "settle:300", "dismiss"]
    assert not handle.is_open


def test_custom_radio_group_clicks_option() -> None:
    handle = MemoryFieldHandle(options=_options("Yes", "No"))
    scanned = _scanned(WidgetKind.CUSTOM_RADIO_GROUP, handle)
    outcome = execute_fill(scanned, "false", get_entry("active_backlog"), ENGINE)
    assert outcome.ok
    assert handle.events == ["click:1"]
