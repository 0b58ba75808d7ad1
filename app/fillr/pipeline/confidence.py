from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..config import CONFIG
from .scoring import MatchResult

FILL = "fill"
CONFIRM = "confirm"
SKIP = "skip"

REASON_UNSAFE = "unsafe label"
REASON_LOW_CONFIDENCE = "low confidence"
REASON_NO_MATCH = "no match"
REASON_NUMERIC_MISMATCH = "numeric mismatch"
REASON_NO_VALUE = "no value"
REASON_ALREADY_FILLED = "already filled"
REASON_NO_OPTION = "no option match"
REASON_FILL_ERROR = "fill error"

# Consent, declaration, upload and signature wording is never filled.
UNSAFE_LABELS = (
    "undertaking",
    "declaration",
    "agreement",
    "send me a copy",
    "file upload",
    "upload",
    "attach",
    "signature",
    "i agree",
    "terms and conditions",
)


@dataclass(frozen=True)
class Route:
    action: str
    reason: Optional[str] = None


def high_threshold() -> float:
    return CONFIG.engine.high_confidence


def medium_threshold() -> float:
    return CONFIG.engine.medium_confidence


def is_unsafe_label(label: Optional[str]) -> bool:
    if not label:
        return False
    normalized = label.lower()
    return any(phrase in normalized for phrase in UNSAFE_LABELS)


def route(
    match: MatchResult,
    high: Optional[float] = None,
    medium: Optional[float] = None,
) -> Route:
    high = high_threshold() if high is None else high
    medium = medium_threshold() if medium is None else medium
    if not match.attribute_key:
        return Route(SKIP, REASON_NO_MATCH)
    if match.score >= high:
        return Route(FILL)
    if match.score >= medium:
        return Route(CONFIRM)
    return Route(SKIP, REASON_LOW_CONFIDENCE)
