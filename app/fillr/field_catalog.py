from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, Mapping, Optional, Tuple


@dataclass(frozen=True)
class CatalogEntry:
    key: str
    path: str
    primary_terms: Tuple[str, ...]
    secondary_terms: Tuple[str, ...] = ()
    generic_terms: Tuple[str, ...] = ()
    negative_terms: Tuple[str, ...] = ()
    numeric_anchors: FrozenSet[str] = frozenset()
    required_anchors: FrozenSet[str] = frozenset()
    exclusion_anchors: FrozenSet[str] = frozenset()
    option_aliases: Mapping[str, Tuple[str, ...]] = field(default_factory=dict, hash=False, compare=False)
    expects_numeric: bool = False
    expects_date: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "option_aliases", MappingProxyType(dict(self.option_aliases)))

    @property
    def group(self) -> str:
        return self.path.split(".", 1)[0]


CATALOG: Tuple[CatalogEntry, ...] = (
    # Identity
    CatalogEntry(
        key="uid",
        path="ids.uid",
        primary_terms=(
            "uid",
            "university roll number",
            "roll number",
            "roll no",
            "registration number",
            "enrollment number",
        ),
        secondary_terms=("registration", "university id", "candidate id"),
        generic_terms=("id", "number"),
        negative_terms=("reference", "transaction", "payment", "receipt"),
    ),
    CatalogEntry(
        key="university_roll_number",
        path="ids.uid",
        primary_terms=("university roll number", "university roll no"),
        secondary_terms=("roll no", "roll number"),
        generic_terms=("roll",),
    ),
    CatalogEntry(
        key="name",
        path="personal.name",
        primary_terms=("name", "full name", "student full name", "candidate name"),
        secondary_terms=("applicant name", "your name", "student name"),
        generic_terms=("fullname",),
        negative_terms=("father", "mother", "guardian", "parent", "spouse"),
    ),
    CatalogEntry(
        key="gender",
        path="personal.gender",
        primary_terms=("gender", "student gender"),
        secondary_terms=("sex",),
        generic_terms=("male", "female"),
        option_aliases={
            "Male": ("male", "m", "man"),
            "Female": ("female", "f", "woman"),
            "Other": ("other", "transgender"),
        },
    ),
    CatalogEntry(
        key="dob",
        path="personal.dob",
        primary_terms=("date of birth", "dob", "birth date"),
        secondary_terms=("d.o.b", "birthdate"),
        expects_date=True,
    ),
    CatalogEntry(
        key="age",
        path="personal.age",
        primary_terms=("age",),
        secondary_terms=("age in years",),
        negative_terms=("months", "month"),
        expects_numeric=True,
    ),
    CatalogEntry(
        key="permanent_address",
        path="personal.permanent_address",
        primary_terms=("permanent address",),
        secondary_terms=("address", "residential address"),
        negative_terms=("email", "contact", "correspondence"),
    ),
    # Contact
    CatalogEntry(
        key="email",
        path="personal.email",
        primary_terms=("email", "email id", "personal email id", "email address"),
        secondary_terms=("personal email", "contact email", "primary email"),
        generic_terms=("mail",),
        negative_terms=("college email", "alternate", "parent", "guardian"),
    ),
    CatalogEntry(
        key="phone",
        path="personal.phone",
        primary_terms=("mobile", "mobile number", "primary mobile number", "contact number"),
        secondary_terms=("phone number", "contact no", "mob no", "phone"),
        generic_terms=("number",),
        negative_terms=("landline", "alternate", "parent", "guardian"),
    ),
    # Academics
    CatalogEntry(
        key="tenth_percentage",
        path="academics.tenth_percentage",
        primary_terms=("10th", "tenth", "class 10", "10th percentage", "class x"),
        secondary_terms=("ssc", "matriculation", "matric", "secondary"),
        generic_terms=("percentage", "percent", "marks", "score"),
        negative_terms=("preferred", "expected"),
        numeric_anchors=frozenset({"10", "10th", "x"}),
    ),
    CatalogEntry(
        key="twelfth_percentage",
        path="academics.twelfth_percentage",
        primary_terms=("12th", "twelfth", "class 12", "12th percentage", "class xii"),
        secondary_terms=("hsc", "senior secondary", "higher secondary"),
        generic_terms=("percentage", "percent", "marks", "score"),
        negative_terms=("preferred", "expected"),
        numeric_anchors=frozenset({"12", "12th", "xii"}),
    ),
    CatalogEntry(
        key="diploma_percentage",
        path="academics.diploma_percentage",
        primary_terms=("diploma", "diploma percentage", "diploma %"),
        secondary_terms=("polytechnic", "diploma marks"),
        generic_terms=("percentage", "percent", "marks"),
        negative_terms=("preferred", "expected", "10th", "12th"),
        required_anchors=frozenset({"diploma", "polytechnic"}),
    ),
    CatalogEntry(
        key="graduation_percentage",
        path="academics.graduation_percentage",
        primary_terms=(
            "graduation percentage",
            "graduation %",
            "grad %",
            "grad.",
            "grad",
            "ug percentage",
            "undergraduate percentage",
            "aggregate percentage",
            "aggregate %",
            "agg percentage",
            "agg %",
            "overall percentage",
        ),
        secondary_terms=(
            "degree percentage",
            "degree marks",
            "ug marks",
            "btech percentage",
            "be percentage",
        ),
        generic_terms=("percentage", "%", "marks"),
        negative_terms=("pg", "post graduation", "cgpa", "gpa"),
        required_anchors=frozenset(
            {"grad", "graduation", "ug", "degree", "btech", "be", "aggregate", "agg", "overall"}
        ),
        exclusion_anchors=frozenset({"post graduation", "cgpa", "cpi", "gpa"}),
    ),
    CatalogEntry(
        key="pg_percentage",
        path="academics.pg_percentage",
        primary_terms=("pg %", "pg percentage", "post graduation %", "post graduation percentage"),
        secondary_terms=("masters percentage", "mtech percentage", "msc percentage"),
        generic_terms=("percentage", "%"),
        negative_terms=("grad", "graduation", "ug", "cgpa"),
        required_anchors=frozenset({"pg", "post graduation", "masters", "mtech", "msc"}),
    ),
    CatalogEntry(
        key="cgpa",
        path="academics.cgpa",
        primary_terms=("cgpa", "cpi"),
        secondary_terms=("gpa", "cumulative grade point average"),
        negative_terms=("percentage", "%", "marks"),
        required_anchors=frozenset({"cgpa", "cpi", "gpa"}),
    ),
    CatalogEntry(
        key="active_backlog",
        path="academics.active_backlog",
        primary_terms=(
            "active backlog",
            "any active backlog",
            "current backlogs",
            "backlogs in current course",
        ),
        secondary_terms=("backlogs", "backlog"),
        negative_terms=("history", "count", "number", "no of"),
        option_aliases={
            "Yes": ("yes", "y", "true", "active", "have backlogs"),
            "No": ("no", "n", "false", "clear", "all clear", "none", "0", "nil"),
        },
    ),
    CatalogEntry(
        key="backlog_count",
        path="academics.backlog_count",
        primary_terms=(
            "no of active backlog",
            "number of active backlogs",
            "count of backlogs",
            "number of backlog",
            "backlog count",
        ),
        secondary_terms=("how many backlogs",),
        expects_numeric=True,
    ),
    CatalogEntry(
        key="gap_months",
        path="academics.gap_months",
        primary_terms=("gap", "break in education", "gap in education"),
        secondary_terms=("education gap", "gap / break"),
        generic_terms=("months",),
        negative_terms=("year",),
        required_anchors=frozenset({"gap", "break"}),
        expects_numeric=True,
    ),
    # Education
    CatalogEntry(
        key="batch",
        path="education.batch",
        primary_terms=("batch", "passing year", "year of passing", "passing out batch", "passout batch"),
        secondary_terms=("passout year", "pass out year", "passing out year"),
        generic_terms=("year",),
        option_aliases={str(year): (str(year),) for year in range(2023, 2030)},
    ),
    CatalogEntry(
        key="program",
        path="education.program",
        primary_terms=("program", "degree", "course", "current course"),
        secondary_terms=("qualification", "pursuing"),
        generic_terms=("be", "btech", "mtech"),
        option_aliases={
            "B.E": ("b.e", "b.e.", "be", "bachelor of engineering"),
            "B.E+M.E (Integrated)": ("b.e+m.e", "integrated", "b.e + m.e", "dual degree"),
            "B.Tech": ("btech", "b.tech", "b.tech.", "bachelor of technology"),
            "M.Tech": ("mtech", "m.tech", "m.tech.", "master of technology"),
            "MCA": ("mca", "master of computer applications"),
            "BCA": ("bca", "bachelor of computer applications"),
            "MBA": ("mba", "master of business administration"),
        },
    ),
    CatalogEntry(
        key="stream",
        path="education.stream",
        primary_terms=("stream", "current stream", "branch", "specialization"),
        secondary_terms=("department",),
        generic_terms=("engg",),
        option_aliases={
            "CSE": ("cse", "computer science", "cs", "computer science and engineering"),
            "IT": ("information technology", "info tech", "it"),
            "AIML": ("aiml", "ai ml", "artificial intelligence", "ai-ml", "ai", "ml"),
            "BDA": ("bda", "big data analytics", "big data"),
            "IoT": ("iot", "internet of things"),
            "CC": ("cc", "cloud computing", "cloud"),
            "GG": ("gg",),
            "CSBS": ("csbs", "computer science business systems"),
            "IS": ("is", "information security"),
            "Blockchain": ("blockchain", "block chain"),
            "Devops": ("devops", "dev ops"),
            "ME": ("mechanical", "mech", "me"),
            "CE": ("civil", "ce"),
            "ECE": ("electronics", "electronics and communication", "ece"),
        },
    ),
    CatalogEntry(
        key="college_name",
        path="education.college_name",
        primary_terms=("college name", "institute name", "name of college", "college"),
        secondary_terms=("institute", "university"),
        generic_terms=("campus",),
        negative_terms=("email", "id"),
    ),
    # Placement
    CatalogEntry(
        key="position_applying",
        path="placement.position_applying",
        primary_terms=("position applying", "position applying for", "job role"),
        secondary_terms=("role", "applying for"),
        generic_terms=("position",),
    ),
    # Links
    CatalogEntry(
        key="github",
        path="links.github",
        primary_terms=("github", "github profile", "github url"),
        secondary_terms=("git repository",),
        generic_terms=("git",),
        negative_terms=("gitlab",),
    ),
    CatalogEntry(
        key="linkedin",
        path="links.linkedin",
        primary_terms=("linkedin", "linkedin profile", "linkedin url"),
        secondary_terms=("linked in",),
        generic_terms=("profile",),
    ),
    CatalogEntry(
        key="resume",
        path="links.resume",
        primary_terms=("resume", "resume link", "public resume link", "cv", "cv link"),
        secondary_terms=("curriculum vitae", "resume url", "resume drive link"),
        generic_terms=("link",),
        negative_terms=("upload", "attach", "file"),
    ),
    CatalogEntry(
        key="job_location",
        path="placement.job_location",
        primary_terms=(
            "job location",
            "job location preference",
            "preferred location",
            "location preference",
        ),
        secondary_terms=("work location", "preferred work location"),
        generic_terms=("location",),
    ),
)

PROFILE_GROUPS = frozenset({"personal", "ids", "academics", "education", "placement", "links"})


def _validate_catalog(entries: Iterable[CatalogEntry]) -> None:
    seen = set()
    for entry in entries:
        if entry.key in seen:
            raise ValueError(f"Duplicate catalog key: {entry.key}")
        seen.add(entry.key)
        if entry.group not in PROFILE_GROUPS or "." not in entry.path:
            raise ValueError(f"Catalog entry {entry.key} has invalid path: {entry.path}")
        if not entry.primary_terms:
            raise ValueError(f"Catalog entry {entry.key} has no primary terms")
        if entry.expects_numeric and entry.expects_date:
            raise ValueError(f"Catalog entry {entry.key} cannot expect both numeric and date values")
        for canonical, aliases in entry.option_aliases.items():
            if not canonical or not isinstance(aliases, tuple):
                raise ValueError(f"Catalog entry {entry.key} has malformed option aliases")


_validate_catalog(CATALOG)

CATALOG_REGISTRY: Mapping[str, CatalogEntry] = MappingProxyType({entry.key: entry for entry in CATALOG})
CATALOG_ORDER: Tuple[str, ...] = tuple(entry.key for entry in CATALOG)


def get_entry(key: Optional[str]) -> Optional[CatalogEntry]:
    if not key:
        return None
    return CATALOG_REGISTRY.get(key)


def catalog_payload() -> Dict[str, object]:
    return {
        "entries": [
            {
                "key": entry.key,
                "path": entry.path,
                "group": entry.group,
                "expects_numeric": entry.expects_numeric,
                "expects_date": entry.expects_date,
                "options": list(entry.option_aliases),
            }
            for entry in CATALOG
        ],
        "order": list(CATALOG_ORDER),
    }
