from __future__ import annotations

import logging
from typing import Dict, Iterable, Mapping, Optional, Sequence

from pydantic import BaseModel

from ..automation.executor import ScanContext, ScannedField, execute_fill, is_user_filled
from ..config import CONFIG, EngineConfig
from ..field_catalog import CATALOG, CatalogEntry
from ..schemas import (
    Confirmation,
    ConfirmationReport,
    ConfirmedField,
    FilledField,
    FillReport,
    LearnedFill,
    PendingConfirmation,
    SkippedField,
)
from .confidence import (
    CONFIRM,
    FILL,
    REASON_ALREADY_FILLED,
    REASON_FILL_ERROR,
    REASON_NO_VALUE,
    REASON_UNSAFE,
    SKIP,
    is_unsafe_label,
    route,
)
from .learned import LearnedMappingStore
from .normalize import is_empty_value
from .scoring import find_best_match

LOGGER = logging.getLogger(__name__)


def _profile_dict(profile) -> Dict:
    if isinstance(profile, BaseModel):
        return profile.model_dump()
    return profile if isinstance(profile, dict) else {}


def get_profile_value(profile, path: str) -> Optional[str]:
    value = _profile_dict(profile)
    for part in path.split("."):
        if not isinstance(value, Mapping) or part not in value:
            return None
        value = value[part]
    if is_empty_value(value) or isinstance(value, (dict, list)):
        return None
    return str(value).strip()


def _entries_by_key(catalog: Optional[Sequence[CatalogEntry]]) -> Dict[str, CatalogEntry]:
    return {entry.key: entry for entry in (CATALOG if catalog is None else catalog)}


class _ReportBuilder:
    def __init__(self) -> None:
        self.report = FillReport()

    def skip(self, scanned: ScannedField, reason: str) -> None:
        descriptor = scanned.descriptor
        self.report.skipped.append(
            SkippedField(label_text=descriptor.display_label(), reason=reason, widget_kind=descriptor.widget_kind)
        )
        LOGGER.debug("Skip %s '%s': %s", descriptor.field_id, descriptor.display_label(), reason)

    def filled(self, scanned: ScannedField, key: str, confidence: float) -> None:
        descriptor = scanned.descriptor
        self.report.filled.append(
            FilledField(
                label_text=descriptor.display_label(),
                attribute_key=key,
                confidence=confidence,
                widget_kind=descriptor.widget_kind,
            )
        )
        self.report.filled_count += 1
        LOGGER.debug("Auto-filled (%d%%): '%s'", round(confidence * 100), descriptor.display_label())

    def learned(self, scanned: ScannedField, key: str) -> None:
        descriptor = scanned.descriptor
        self.report.learned_fills.append(
            LearnedFill(label_text=descriptor.display_label(), attribute_key=key, widget_kind=descriptor.widget_kind)
        )
        self.report.filled_count += 1

    def pending(self, scanned: ScannedField, key: str, value: str, confidence: float) -> None:
        descriptor = scanned.descriptor
        self.report.pending.append(
            PendingConfirmation(
                field_id=descriptor.field_id,
                label_text=descriptor.display_label(),
                suggested_key=key,
                suggested_value=value,
                confidence=confidence,
                widget_kind=descriptor.widget_kind,
            )
        )


def _process_field(
    scanned: ScannedField,
    builder: _ReportBuilder,
    profile,
    origin: Optional[str],
    store: Optional[LearnedMappingStore],
    catalog: Optional[Sequence[CatalogEntry]],
    entries: Dict[str, CatalogEntry],
    config: EngineConfig,
) -> None:
    descriptor = scanned.descriptor
    label = descriptor.display_label()
    # Safety gate precedes learned mappings and scoring.
    if is_unsafe_label(label):
        builder.skip(scanned, REASON_UNSAFE)
        return
    if is_user_filled(scanned):
        builder.skip(scanned, REASON_ALREADY_FILLED)
        return

    learned_key = store.lookup(origin, label) if store is not None else None
    learned_entry = entries.get(learned_key) if learned_key else None
    if learned_entry is not None:
        value = get_profile_value(profile, learned_entry.path)
        if value is None:
            builder.skip(scanned, REASON_NO_VALUE)
            return
        outcome = execute_fill(scanned, value, learned_entry, config)
        if outcome.ok:
            builder.learned(scanned, learned_entry.key)
        else:
            builder.skip(scanned, outcome.reason or REASON_FILL_ERROR)
        return
    if learned_key:
        LOGGER.warning("Ignoring learned mapping to unknown key %s", learned_key)

    match = find_best_match(descriptor.matching_text(), catalog)
    decision = route(match, config.high_confidence, config.medium_confidence)
    if decision.action == SKIP:
        builder.skip(scanned, decision.reason or SKIP)
        return

    entry = entries[match.attribute_key]
    value = get_profile_value(profile, entry.path)
    if value is None:
        builder.skip(scanned, REASON_NO_VALUE)
        return
    if decision.action == CONFIRM:
        builder.pending(scanned, entry.key, value, match.score)
        return
    if decision.action == FILL:
        outcome = execute_fill(scanned, value, entry, config)
        if outcome.ok:
            builder.filled(scanned, entry.key, match.score)
        else:
            builder.skip(scanned, outcome.reason or REASON_FILL_ERROR)


def autofill_fields(
    context: ScanContext,
    profile,
    origin: Optional[str] = None,
    store: Optional[LearnedMappingStore] = None,
    catalog: Optional[Sequence[CatalogEntry]] = None,
    config: Optional[EngineConfig] = None,
) -> FillReport:
    """Run one fill pass over every scanned field in discovery order."""
    config = config or CONFIG.engine
    origin = origin or context.origin
    entries = _entries_by_key(catalog)
    builder = _ReportBuilder()

    for scanned in context:
        try:
            _process_field(scanned, builder, profile, origin, store, catalog, entries, config)
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("Failed to fill %s: %s", scanned.descriptor.field_id, exc)
            builder.skip(scanned, REASON_FILL_ERROR)

    report = builder.report
    LOGGER.info(
        "Autofill pass: filled=%d learned=%d pending=%d skipped=%d",
        len(report.filled),
        len(report.learned_fills),
        len(report.pending),
        len(report.skipped),
    )
    return report


def confirm_fields(
    context: ScanContext,
    confirmations: Iterable[Confirmation],
    profile,
    origin: Optional[str] = None,
    store: Optional[LearnedMappingStore] = None,
    catalog: Optional[Sequence[CatalogEntry]] = None,
    config: Optional[EngineConfig] = None,
) -> ConfirmationReport:
    """Apply user-resolved pending fields and remember each choice for the origin."""
    config = config or CONFIG.engine
    origin = origin or context.origin
    entries = _entries_by_key(catalog)
    report = ConfirmationReport()

    for confirmation in confirmations:
        scanned = context.get(confirmation.field_id)
        if scanned is None:
            LOGGER.warning("Field not found in scan context: %s", confirmation.field_id)
            continue
        if not scanned.handle.is_attached():
            LOGGER.warning("Field detached from page: %s", confirmation.field_id)
            continue
        entry = entries.get(confirmation.attribute_key)
        if entry is None:
            LOGGER.warning("No catalog entry for key: %s", confirmation.attribute_key)
            continue
        if store is not None:
            store.remember(origin, scanned.descriptor.display_label(), entry.key)

        value = get_profile_value(profile, entry.path)
        if value is None:
            LOGGER.warning("No profile value for path: %s", entry.path)
            continue
        try:
            outcome = execute_fill(scanned, value, entry, config)
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("Failed to fill confirmed field %s: %s", confirmation.field_id, exc)
            continue
        if outcome.ok:
            report.confirmed.append(
                ConfirmedField(field_id=confirmation.field_id, attribute_key=entry.key, value=value)
            )
            report.confirmed_count += 1
    return report
