from __future__ import annotations

from fillr.pipeline.scan import scan_descriptors, scan_html
from fillr.schemas import WidgetKind

CUSTOM_FORM = """
<div role="list">
  <div role="listitem">
    <div role="heading">Gender</div>
    <div role="radiogroup">
      <div role="radio" data-value="Male" aria-checked="false"></div>
      <div role="radio" aria-checked="true"><span dir="auto">Female</span></div>
    </div>
  </div>
  <div role="listitem">
    <div role="heading">Passing Year</div>
    <div role="listbox"><div role="option">Choose</div></div>
  </div>
</div>
"""


def test_scan_native_form(form_html: str) -> None:
    snapshots = scan_html(form_html)
    descriptors = [snapshot.descriptor for snapshot in snapshots]
    assert [d.field_id for d in descriptors] == [f"field_{i}" for i in range(7)]
    assert [d.display_label() for d in descriptors] == [
        "full name",
        "email address",
        "10th percentage",
        "cgpa",
        "i agree to the terms and conditions",
        "student gender",
        "branch",
    ]
    assert descriptors[1].input_type == "email"
    assert descriptors[2].input_type == "number"


def test_scan_locators_follow_document_order(form_html: str) -> None:
    snapshots = scan_html(form_html)
    # The hidden token input occupies the first slot.
    assert snapshots[0].locator_query == "xpath=(//input|//textarea|//select)[2]"


def test_scan_groups_radios_by_name(form_html: str) -> None:
    gender = scan_html(form_html)[5]
    assert gender.descriptor.widget_kind == WidgetKind.RADIO_GROUP
    assert [option.text for option in gender.options] == ["male", "female"]
    assert [option.value for option in gender.options] == ["M", "F"]
    assert len(gender.option_queries) == 2


def test_scan_select_options(form_html: str) -> None:
    branch = scan_html(form_html)[6]
    assert branch.descriptor.widget_kind == WidgetKind.SELECT
    assert [option.text for option in branch.options] == ["Select", "CSE", "IT"]
    assert branch.options[0].placeholder
    assert branch.options[1].value == "CSE"


def test_scan_custom_widgets() -> None:
    descriptors = scan_descriptors(CUSTOM_FORM)
    assert [(d.field_id, d.widget_kind, d.label_text) for d in descriptors] == [
        ("gd_0", WidgetKind.CUSTOM_DROPDOWN, "passing year"),
        ("gr_1", WidgetKind.CUSTOM_RADIO_GROUP, "gender"),
    ]


def test_scan_custom_radio_options() -> None:
    radio_group = scan_html(CUSTOM_FORM)[1]
    assert [option.text for option in radio_group.options] == ["Male", "Female"]
    assert radio_group.options[1].selected


def test_scan_prefilled_and_ignored_inputs() -> None:
    html = """
    <form>
      <input type="password" name="pw">
      <input type="checkbox" name="agree">
      <input type="file" name="cv">
      <div><label for="u">UID</label><input id="u" value="21BCS1"></div>
      <div><textarea name="address">Line 1</textarea></div>
    </form>
    """
    snapshots = scan_html(html)
    assert [snapshot.descriptor.field_id for snapshot in snapshots] == ["field_0", "field_1"]
    assert snapshots[0].current_value == "21BCS1"
    assert snapshots[1].descriptor.widget_kind == WidgetKind.TEXTAREA
    assert snapshots[1].current_value == "Line 1"
    assert snapshots[1].descriptor.display_label() == "address"


def test_scan_empty_html() -> None:
    assert scan_html("") == []
