from __future__ import annotations

from fillr.automation.executor import ScanContext
from fillr.automation.handles import MemoryFieldHandle, descriptor_context, memory_context
from fillr.config import EngineConfig
from fillr.field_catalog import CatalogEntry
from fillr.pipeline.autofill import autofill_fields, confirm_fields, get_profile_value
from fillr.pipeline.learned import LearnedMappingStore
from fillr.pipeline.scan import scan_html
from fillr.schemas import Confirmation, FieldDescriptor, Profile, WidgetKind

ORIGIN = "forms.example.com"
ENGINE = EngineConfig(high_confidence=0.75, medium_confidence=0.5, widget_settle_ms=300, widget_close_settle_ms=100)


def _context(form_html: str) -> ScanContext:
    return memory_context(scan_html(form_html), origin=ORIGIN)


def test_fill_pass_over_fixture_form(form_html: str, profile_payload: dict) -> None:
    context = _context(form_html)
    report = autofill_fields(context, profile_payload, store=LearnedMappingStore(), config=ENGINE)

    assert [item.attribute_key for item in report.filled] == [
        "name",
        "email",
        "tenth_percentage",
        "gender",
        "stream",
    ]
    assert report.filled_count == 5
    assert all(item.confidence == 1.0 for item in report.filled)

    assert len(report.pending) == 1
    pending = report.pending[0]
    assert (pending.field_id, pending.suggested_key, pending.suggested_value) == ("field_3", "cgpa", "8.5")
    assert pending.confidence == 0.6

    assert [(item.label_text, item.reason) for item in report.skipped] == [
        ("i agree to the terms and conditions", "unsafe label")
    ]
    assert context.get("field_0").handle.value == "Asha Rao"
    assert context.get("field_5").handle.value == "M"
    assert context.get("field_6").handle.value == "CSE"
    assert context.get("field_3").handle.value == ""


def test_fill_pass_accepts_profile_model(form_html: str, profile_payload: dict) -> None:
    profile = Profile.model_validate(profile_payload)
    assert profile.education.batch == "2025"
    report = autofill_fields(_context(form_html), profile, config=ENGINE)
    assert report.filled_count == 5


def test_fill_pass_is_deterministic(form_html: str, profile_payload: dict) -> None:
    first = autofill_fields(_context(form_html), profile_payload, config=ENGINE)
    second = autofill_fields(_context(form_html), profile_payload, config=ENGINE)
    assert first.model_dump() == second.model_dump()


def test_confirmed_mapping_short_circuits_next_pass(form_html: str, profile_payload: dict) -> None:
    store = LearnedMappingStore()
    context = _context(form_html)
    first = autofill_fields(context, profile_payload, store=store, config=ENGINE)
    assert first.pending[0].suggested_key == "cgpa"

    # The user overrides the suggestion; scoring alone would keep picking cgpa.
    confirmation = Confirmation(field_id="field_3", attribute_key="graduation_percentage")
    confirmed = confirm_fields(context, [confirmation], profile_payload, store=store, config=ENGINE)
    assert confirmed.confirmed_count == 1
    assert confirmed.confirmed[0].value == "78"
    assert context.get("field_3").handle.value == "78"
    assert store.lookup(ORIGIN, "CGPA") == "graduation_percentage"

    fresh = _context(form_html)
    second = autofill_fields(fresh, profile_payload, store=store, config=ENGINE)
    assert second.pending == []
    assert [(item.label_text, item.attribute_key) for item in second.learned_fills] == [
        ("cgpa", "graduation_percentage")
    ]
    assert second.filled_count == 6
    assert fresh.get("field_3").handle.value == "78"


def test_learned_mapping_is_scoped_to_origin(form_html: str, profile_payload: dict) -> None:
    store = LearnedMappingStore({"other.example.org": {"cgpa": "graduation_percentage"}})
    report = autofill_fields(_context(form_html), profile_payload, store=store, config=ENGINE)
    assert report.learned_fills == []
    assert report.pending[0].suggested_key == "cgpa"


def test_learned_hit_reports_fill_failure(profile_payload: dict) -> None:
    descriptor = FieldDescriptor(field_id="f1", label_text="no of active backlog", input_type="number")
    store = LearnedMappingStore.for_single_origin(ORIGIN, {"no of active backlog": "backlog_count"})
    report = autofill_fields(descriptor_context([descriptor], ORIGIN), profile_payload, store=store, config=ENGINE)
    assert report.learned_fills == []
    assert [item.reason for item in report.skipped] == ["numeric mismatch"]


def test_backlog_count_label_needs_confirmation(profile_payload: dict) -> None:
    descriptor = FieldDescriptor(field_id="f1", label_text="no of active backlog", input_type="number")
    report = autofill_fields(descriptor_context([descriptor], ORIGIN), profile_payload, config=ENGINE)
    assert report.pending[0].suggested_key == "backlog_count"


def test_unknown_learned_key_falls_back_to_scoring(profile_payload: dict) -> None:
    descriptor = FieldDescriptor(field_id="f1", label_text="full name")
    store = LearnedMappingStore.for_single_origin(ORIGIN, {"full name": "nickname"})
    report = autofill_fields(descriptor_context([descriptor], ORIGIN), profile_payload, store=store, config=ENGINE)
    assert [item.attribute_key for item in report.filled] == ["name"]


def test_exact_medium_boundary_goes_to_pending(profile_payload: dict) -> None:
    catalog = [
        CatalogEntry(
            key="name",
            path="personal.name",
            primary_terms=("alpha",),
            secondary_terms=("beta",),
            negative_terms=("gamma",),
        )
    ]
    descriptor = FieldDescriptor(field_id="f1", label_text="alpha beta gamma")
    report = autofill_fields(
        descriptor_context([descriptor], ORIGIN), profile_payload, catalog=catalog, config=ENGINE
    )
    assert report.filled == []
    assert report.pending[0].confidence == 0.5


def test_missing_profile_value_is_skipped() -> None:
    descriptor = FieldDescriptor(field_id="f1", label_text="email address")
    report = autofill_fields(descriptor_context([descriptor], ORIGIN), {"personal": {}}, config=ENGINE)
    assert [item.reason for item in report.skipped] == ["no value"]


def test_user_typed_value_is_kept(profile_payload: dict) -> None:
    context = ScanContext(origin=ORIGIN)
    handle = MemoryFieldHandle(value="asha.r@college.edu")
    context.add(FieldDescriptor(field_id="f1", label_text="email address"), handle)
    report = autofill_fields(context, profile_payload, config=ENGINE)
    assert [item.reason for item in report.skipped] == ["already filled"]
    assert handle.value == "asha.r@college.edu"


class _BrokenHandle(MemoryFieldHandle):
    def assign(self, value: str) -> None:
        raise RuntimeError("element detached")


def test_field_errors_do_not_abort_the_pass(profile_payload: dict) -> None:
    context = ScanContext(origin=ORIGIN)
    context.add(FieldDescriptor(field_id="f1", label_text="full name"), _BrokenHandle())
    good = MemoryFieldHandle()
    context.add(FieldDescriptor(field_id="f2", label_text="email address"), good)
    report = autofill_fields(context, profile_payload, config=ENGINE)
    assert [item.reason for item in report.skipped] == ["fill error"]
    assert [item.attribute_key for item in report.filled] == ["email"]
    assert good.value == "asha@example.com"


def test_unsafe_label_beats_learned_mapping(profile_payload: dict) -> None:
    descriptor = FieldDescriptor(field_id="f1", label_text="upload resume", widget_kind=WidgetKind.TEXT)
    store = LearnedMappingStore.for_single_origin(ORIGIN, {"upload resume": "resume"})
    report = autofill_fields(descriptor_context([descriptor], ORIGIN), profile_payload, store=store, config=ENGINE)
    assert [item.reason for item in report.skipped] == ["unsafe label"]


def test_confirm_ignores_unknown_fields_and_keys(form_html: str, profile_payload: dict) -> None:
    store = LearnedMappingStore()
    context = _context(form_html)
    confirmations = [
        Confirmation(field_id="field_99", attribute_key="cgpa"),
        Confirmation(field_id="field_3", attribute_key="shoe_size"),
    ]
    report = confirm_fields(context, confirmations, profile_payload, store=store, config=ENGINE)
    assert report.confirmed_count == 0
    assert store.origins() == []


def test_get_profile_value() -> None:
    profile = {"personal": {"name": " Asha ", "phone": ""}, "education": {"batch": 2025}}
    assert get_profile_value(profile, "personal.name") == "Asha"
    assert get_profile_value(profile, "personal.phone") is None
    assert get_profile_value(profile, "education.batch") == "2025"
    assert get_profile_value(profile, "links.github") is None
    assert get_profile_value(profile, "personal") is None
