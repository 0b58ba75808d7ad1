from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable, Optional, Sequence, Tuple

from ..field_catalog import CATALOG, CatalogEntry
from .normalize import tokenize

LOGGER = logging.getLogger(__name__)

PRIMARY_WEIGHT = 0.6
SECONDARY_WEIGHT = 0.3
GENERIC_WEIGHT = 0.15
NEGATIVE_WEIGHT = -0.4


@dataclass(frozen=True)
class MatchResult:
    attribute_key: Optional[str]
    score: float


NO_MATCH = MatchResult(attribute_key=None, score=0.0)


@lru_cache(maxsize=2048)
def _term_tokens(term: str) -> Tuple[str, ...]:
    return tuple(tokenize(term))


def term_matches(tokens: Iterable[str], term: str) -> bool:
    """A phrase hits when every one of its tokens is present, in any order."""
    token_set = tokens if isinstance(tokens, (set, frozenset)) else set(tokens)
    term_tokens = _term_tokens(term)
    if not term_tokens:
        return False
    return all(token in token_set for token in term_tokens)


def any_term_matches(tokens: Iterable[str], terms: Iterable[str]) -> bool:
    token_set = set(tokens)
    return any(term_matches(token_set, term) for term in terms)


def gate_reason(tokens: Iterable[str], entry: CatalogEntry) -> Optional[str]:
    """Return why ``entry`` is ineligible for these tokens, or None when it may score."""
    token_set = set(tokens)
    if entry.numeric_anchors and not any_term_matches(token_set, entry.numeric_anchors):
        return "numeric_anchor"
    if entry.required_anchors and not any_term_matches(token_set, entry.required_anchors):
        return "required_anchor"
    if entry.exclusion_anchors and any_term_matches(token_set, entry.exclusion_anchors):
        return "exclusion_anchor"
    return None


def score(tokens: Iterable[str], entry: CatalogEntry) -> float:
    token_set = set(tokens)
    total = 0.0
    for terms, weight in (
        (entry.primary_terms, PRIMARY_WEIGHT),
        (entry.secondary_terms, SECONDARY_WEIGHT),
        (entry.generic_terms, GENERIC_WEIGHT),
        (entry.negative_terms, NEGATIVE_WEIGHT),
    ):
        for term in terms:
            if term_matches(token_set, term):
                total += weight
    # Rounded so sums such as 0.6 + 0.3 - 0.4 compare exactly against thresholds.
    return round(max(0.0, min(total, 1.0)), 4)


def find_best_match(text: str, catalog: Optional[Sequence[CatalogEntry]] = None) -> MatchResult:
    entries = CATALOG if catalog is None else catalog
    tokens = set(tokenize(text))
    if not tokens:
        return NO_MATCH

    best_key: Optional[str] = None
    best_score = 0.0
    snippet = text.strip()[:40]
    for entry in entries:
        reason = gate_reason(tokens, entry)
        if reason:
            LOGGER.debug("Anchor skip [%s]: '%s' rejected for %s", reason, snippet, entry.key)
            continue
        entry_score = score(tokens, entry)
        if entry_score > 0:
            LOGGER.debug("Score: '%s' -> %s = %.2f", snippet, entry.key, entry_score)
        # Strict comparison keeps the earliest entry on ties.
        if entry_score > best_score:
            best_score = entry_score
            best_key = entry.key

    LOGGER.debug("Best match: '%s' -> %s (%.2f)", snippet, best_key or "NONE", best_score)
    return MatchResult(attribute_key=best_key, score=best_score)
