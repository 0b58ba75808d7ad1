from __future__ import annotations

import math
import re
from datetime import datetime
from typing import List, Optional

from dateutil import parser


ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
# Missing day and month fall back to the first of January, never to today.
DATE_DEFAULT = datetime(2000, 1, 1)

# Order matters: "class x" must be rewritten before the bare "x" rule.
TOKEN_REWRITES = [
    (re.compile(r"\bclass\s+x\b"), "class 10"),
    (re.compile(r"\bclass\s+xii\b"), "class 12"),
    (re.compile(r"\bx\b"), "10"),
    (re.compile(r"\bxii\b"), "12"),
    (re.compile(r"\bxth\b"), "10th"),
    (re.compile(r"\bxiith\b"), "12th"),
    (re.compile(r"\bgrad\.?(?=[^a-z]|$)", re.IGNORECASE), "graduation"),
    (re.compile(r"%"), " percentage "),
    (re.compile(r"/"), " "),
    (re.compile(r"-"), " "),
]


def normalize_text(text: Optional[str]) -> str:
    if not text:
        return ""
    normalized = str(text).lower().strip()
    for pattern, replacement in TOKEN_REWRITES:
        normalized = pattern.sub(replacement, normalized)
    return normalized


def tokenize(text: Optional[str]) -> List[str]:
    return [token for token in normalize_text(text).split() if token]


def normalize_option(text: Optional[object]) -> str:
    """Literal comparison form for option labels: no numeral or symbol expansion."""
    if text is None:
        return ""
    cleaned = re.sub(r"[^a-z0-9 ]", " ", str(text).lower())
    return re.sub(r"\s+", " ", cleaned).strip()


def normalize_label(text: Optional[str]) -> str:
    if not text:
        return ""
    return str(text).lower().strip()


def is_empty_value(value: Optional[object]) -> bool:
    return value is None or str(value).strip() == ""


def is_numeric_value(value: Optional[object]) -> bool:
    if is_empty_value(value):
        return False
    try:
        number = float(str(value).strip())
    except ValueError:
        return False
    return math.isfinite(number)


def format_date_value(value: Optional[str]) -> Optional[str]:
    """Return ``YYYY-MM-DD`` for recognizable dates, otherwise the input unchanged."""
    if value is None:
        return None
    raw = str(value).strip()
    if not raw or ISO_DATE_RE.match(raw):
        return raw
    try:
        parsed = parser.parse(raw, default=DATE_DEFAULT)
    except (ValueError, OverflowError):
        return raw
    return parsed.date().isoformat()
