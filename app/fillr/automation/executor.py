from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterator, List, Optional

from ..config import CONFIG, EngineConfig
from ..field_catalog import CatalogEntry
from ..pipeline.confidence import REASON_ALREADY_FILLED, REASON_NO_OPTION, REASON_NUMERIC_MISMATCH
from ..pipeline.normalize import format_date_value, is_empty_value, is_numeric_value
from ..pipeline.options import ChoiceOption, match_option
from ..schemas import FieldDescriptor, WidgetKind

LOGGER = logging.getLogger(__name__)

NUMERIC_INPUT_TYPES = {"number", "tel"}


class FieldHandle:
    """Access to one live (or simulated) field. Subclasses implement what their widget supports."""

    input_type: str = "text"

    def is_attached(self) -> bool:
        return True

    def read_value(self) -> str:
        return ""

    def assign(self, value: str) -> None:
        """Set the value and fire input, change and blur notifications."""
        raise NotImplementedError

    def options(self) -> List[ChoiceOption]:
        return []

    def choose(self, index: int) -> None:
        raise NotImplementedError

    def open(self) -> None:
        raise NotImplementedError

    def settle(self, ms: int) -> None:
        raise NotImplementedError

    def rendered_options(self) -> List[ChoiceOption]:
        return []

    def click_option(self, index: int) -> None:
        raise NotImplementedError

    def dismiss(self) -> None:
        raise NotImplementedError


@dataclass
class ScannedField:
    descriptor: FieldDescriptor
    handle: FieldHandle


class ScanContext:
    """Field id -> handle registry owned by the caller for the lifetime of one scan."""

    def __init__(self, origin: Optional[str] = None) -> None:
        self.origin = origin
        self._fields: Dict[str, ScannedField] = {}

    def add(self, descriptor: FieldDescriptor, handle: FieldHandle) -> ScannedField:
        scanned = ScannedField(descriptor=descriptor, handle=handle)
        self._fields[descriptor.field_id] = scanned
        return scanned

    def get(self, field_id: str) -> Optional[ScannedField]:
        return self._fields.get(field_id)

    def __iter__(self) -> Iterator[ScannedField]:
        return iter(list(self._fields.values()))

    def __len__(self) -> int:
        return len(self._fields)


class FillStrategy(str, Enum):
    TEXT_LIKE = "text_like"
    NATIVE_CHOICE = "native_choice"
    CUSTOM_DROPDOWN = "custom_dropdown"
    CUSTOM_RADIO_GROUP = "custom_radio_group"


STRATEGY_BY_KIND: Dict[WidgetKind, FillStrategy] = {
    WidgetKind.TEXT: FillStrategy.TEXT_LIKE,
    WidgetKind.TEXTAREA: FillStrategy.TEXT_LIKE,
    WidgetKind.SELECT: FillStrategy.NATIVE_CHOICE,
    WidgetKind.RADIO_GROUP: FillStrategy.NATIVE_CHOICE,
    WidgetKind.CUSTOM_DROPDOWN: FillStrategy.CUSTOM_DROPDOWN,
    WidgetKind.CUSTOM_RADIO_GROUP: FillStrategy.CUSTOM_RADIO_GROUP,
}


def strategy_for(widget_kind: WidgetKind) -> FillStrategy:
    return STRATEGY_BY_KIND[WidgetKind(widget_kind)]


@dataclass(frozen=True)
class FillOutcome:
    ok: bool
    reason: Optional[str] = None
    tier: Optional[str] = None


def is_user_filled(scanned: ScannedField) -> bool:
    # Choice widgets render a default state that is not a deliberate user choice.
    if strategy_for(scanned.descriptor.widget_kind) != FillStrategy.TEXT_LIKE:
        return False
    return not is_empty_value(scanned.handle.read_value())


def fill_text_like(
    scanned: ScannedField, value: str, entry: Optional[CatalogEntry], config: EngineConfig
) -> FillOutcome:
    handle = scanned.handle
    input_type = (scanned.descriptor.input_type or handle.input_type or "text").lower()
    if entry is not None and entry.expects_numeric and input_type in NUMERIC_INPUT_TYPES:
        if not is_numeric_value(value):
            return FillOutcome(False, REASON_NUMERIC_MISMATCH)
    if is_user_filled(scanned):
        return FillOutcome(False, REASON_ALREADY_FILLED)
    if entry is not None and entry.expects_date and input_type == "date":
        value = format_date_value(value) or value
    handle.assign(value)
    return FillOutcome(True)


def fill_native_choice(
    scanned: ScannedField, value: str, entry: Optional[CatalogEntry], config: EngineConfig
) -> FillOutcome:
    handle = scanned.handle
    options = handle.options()
    match = match_option(value, options, entry, threshold=config.option_match_threshold)
    if match is None:
        return FillOutcome(False, REASON_NO_OPTION)
    if not match.option.selected:
        handle.choose(match.index)
    return FillOutcome(True, tier=match.tier)


def fill_custom_dropdown(
    scanned: ScannedField, value: str, entry: Optional[CatalogEntry], config: EngineConfig
) -> FillOutcome:
    handle = scanned.handle
    handle.open()
    handle.settle(config.widget_settle_ms)
    match = match_option(value, handle.rendered_options(), entry, threshold=config.option_match_threshold)
    if match is None:
        # Leave no overlay open after a failed attempt.
        handle.dismiss()
        handle.settle(config.widget_close_settle_ms)
        return FillOutcome(False, REASON_NO_OPTION)
    try:
        handle.click_option(match.index)
    except Exception:
        handle.dismiss()
        raise
    return FillOutcome(True, tier=match.tier)


def fill_custom_radio_group(
    scanned: ScannedField, value: str, entry: Optional[CatalogEntry], config: EngineConfig
) -> FillOutcome:
    handle = scanned.handle
    match = match_option(value, handle.rendered_options(), entry, threshold=config.option_match_threshold)
    if match is None:
        return FillOutcome(False, REASON_NO_OPTION)
    if not match.option.selected:
        handle.click_option(match.index)
    return FillOutcome(True, tier=match.tier)


Filler = Callable[[ScannedField, str, Optional[CatalogEntry], EngineConfig], FillOutcome]

FILLERS: Dict[FillStrategy, Filler] = {
    FillStrategy.TEXT_LIKE: fill_text_like,
    FillStrategy.NATIVE_CHOICE: fill_native_choice,
    FillStrategy.CUSTOM_DROPDOWN: fill_custom_dropdown,
    FillStrategy.CUSTOM_RADIO_GROUP: fill_custom_radio_group,
}


def execute_fill(
    scanned: ScannedField,
    value: str,
    entry: Optional[CatalogEntry],
    config: Optional[EngineConfig] = None,
) -> FillOutcome:
    config = config or CONFIG.engine
    strategy = strategy_for(scanned.descriptor.widget_kind)
    outcome = FILLERS[strategy](scanned, str(value), entry, config)
    LOGGER.debug(
        "Fill %s via %s: ok=%s reason=%s tier=%s",
        scanned.descriptor.field_id,
        strategy.value,
        outcome.ok,
        outcome.reason,
        outcome.tier,
    )
    return outcome
