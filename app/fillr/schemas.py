from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class WidgetKind(str, Enum):
    TEXT = "text"
    TEXTAREA = "textarea"
    SELECT = "select"
    RADIO_GROUP = "radio-group"
    CUSTOM_DROPDOWN = "custom-dropdown"
    CUSTOM_RADIO_GROUP = "custom-radio-group"


class FieldDescriptor(BaseModel):
    field_id: str
    label_text: str = ""
    placeholder_text: str = ""
    name: str = ""
    id: str = ""
    widget_kind: WidgetKind = WidgetKind.TEXT
    input_type: str = "text"

    def display_label(self) -> str:
        return self.label_text or self.placeholder_text or self.name or self.field_id

    def matching_text(self) -> str:
        return f"{self.label_text} {self.placeholder_text} {self.name} {self.id}".lower()


class _ProfileGroup(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)


class PersonalData(_ProfileGroup):
    name: Optional[str] = None
    gender: Optional[str] = None
    dob: Optional[str] = None
    age: Optional[str] = None
    permanent_address: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class IdentityData(_ProfileGroup):
    uid: Optional[str] = None


class AcademicData(_ProfileGroup):
    tenth_percentage: Optional[str] = None
    twelfth_percentage: Optional[str] = None
    diploma_percentage: Optional[str] = None
    graduation_percentage: Optional[str] = None
    pg_percentage: Optional[str] = None
    cgpa: Optional[str] = None
    active_backlog: Optional[str] = None
    backlog_count: Optional[str] = None
    gap_months: Optional[str] = None


class EducationData(_ProfileGroup):
    batch: Optional[str] = None
    program: Optional[str] = None
    stream: Optional[str] = None
    college_name: Optional[str] = None


class PlacementData(_ProfileGroup):
    position_applying: Optional[str] = None
    job_location: Optional[str] = None


class LinksData(_ProfileGroup):
    github: Optional[str] = None
    linkedin: Optional[str] = None
    resume: Optional[str] = None


class Profile(BaseModel):
    personal: PersonalData = Field(default_factory=PersonalData)
    ids: IdentityData = Field(default_factory=IdentityData)
    academics: AcademicData = Field(default_factory=AcademicData)
    education: EducationData = Field(default_factory=EducationData)
    placement: PlacementData = Field(default_factory=PlacementData)
    links: LinksData = Field(default_factory=LinksData)


class PendingConfirmation(BaseModel):
    field_id: str
    label_text: str
    suggested_key: str
    suggested_value: str
    confidence: float
    widget_kind: WidgetKind


class FilledField(BaseModel):
    label_text: str
    attribute_key: str
    confidence: float
    widget_kind: WidgetKind


class LearnedFill(BaseModel):
    label_text: str
    attribute_key: str
    widget_kind: WidgetKind


class SkippedField(BaseModel):
    label_text: str
    reason: str
    widget_kind: WidgetKind


class FillReport(BaseModel):
    filled_count: int = 0
    filled: List[FilledField] = Field(default_factory=list)
    learned_fills: List[LearnedFill] = Field(default_factory=list)
    pending: List[PendingConfirmation] = Field(default_factory=list)
    skipped: List[SkippedField] = Field(default_factory=list)


class Confirmation(BaseModel):
    field_id: str
    attribute_key: str


class ConfirmedField(BaseModel):
    field_id: str
    attribute_key: str
    value: str


class ConfirmationReport(BaseModel):
    confirmed_count: int = 0
    confirmed: List[ConfirmedField] = Field(default_factory=list)


class MatchRequest(BaseModel):
    label_text: str = ""
    placeholder_text: str = ""
    name: str = ""
    id: str = ""


class PlanRequest(BaseModel):
    origin: Optional[str] = None
    profile: Profile = Field(default_factory=Profile)
    learned_mappings: Dict[str, str] = Field(default_factory=dict)
    fields: List[FieldDescriptor] = Field(default_factory=list)
    html: Optional[str] = None


class ScanRequest(BaseModel):
    html: str


class AutofillRequest(BaseModel):
    url: str
    profile: Profile = Field(default_factory=Profile)
    origin: Optional[str] = None


class ConfirmRequest(BaseModel):
    run_id: str
    profile: Profile = Field(default_factory=Profile)
    confirmations: List[Confirmation] = Field(default_factory=list)
