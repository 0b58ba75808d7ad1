from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..config import CONFIG
from ..field_catalog import CatalogEntry
from .normalize import normalize_option

LOGGER = logging.getLogger(__name__)

TIER_ALIAS_EXACT = "alias_exact"
TIER_ALIAS_WORD = "alias_word"
TIER_SEMANTIC = "semantic"

STRICT_VALUES = {"yes", "no"}


@dataclass(frozen=True)
class ChoiceOption:
    text: str
    value: str = ""
    selected: bool = False
    placeholder: bool = False

    @property
    def normalized_text(self) -> str:
        return normalize_option(self.text or self.value)

    @property
    def normalized_value(self) -> str:
        return normalize_option(self.value)


@dataclass(frozen=True)
class OptionMatch:
    index: int
    option: ChoiceOption
    tier: str
    score: float = 1.0


def alias_targets(profile_value: str, entry: Optional[CatalogEntry]) -> List[str]:
    """Normalized texts acceptable for ``profile_value``: itself plus its alias family."""
    normalized = normalize_option(profile_value)
    targets = [normalized] if normalized else []
    if entry is None or not entry.option_aliases:
        return targets
    for canonical, aliases in entry.option_aliases.items():
        family = [canonical, *aliases]
        if any(normalize_option(variant) == normalized for variant in family):
            for variant in family:
                candidate = normalize_option(variant)
                if candidate and candidate not in targets:
                    targets.append(candidate)
            break
    return targets


def option_score(target: str, query: str) -> float:
    if not target or not query:
        return 0.0
    if target == query:
        return 1.0
    if query in target:
        return 0.8
    if target in query:
        return 0.7
    target_tokens = target.split(" ")
    common = [token for token in query.split(" ") if token in target_tokens]
    if common:
        return min(0.6, len(common) * 0.2)
    return 0.0


def _word_match(option_text: str, target: str) -> bool:
    if option_text == target:
        return True
    return re.search(rf"\b{re.escape(target)}\b", option_text) is not None


def _match_alias_exact(options: Sequence[ChoiceOption], targets: List[str]) -> Optional[OptionMatch]:
    for index, option in enumerate(options):
        text = option.normalized_text
        value = option.normalized_value
        if not text and not value:
            continue
        for target in targets:
            if target == text or (value and target == value):
                return OptionMatch(index=index, option=option, tier=TIER_ALIAS_EXACT)
    return None


def _match_alias_word(options: Sequence[ChoiceOption], targets: List[str]) -> Optional[OptionMatch]:
    for index, option in enumerate(options):
        text = option.normalized_text
        if not text or option.placeholder:
            continue
        for target in targets:
            if len(target) > 1 and _word_match(text, target):
                return OptionMatch(index=index, option=option, tier=TIER_ALIAS_WORD)
    return None


def _match_semantic(
    options: Sequence[ChoiceOption],
    query: str,
    threshold: float,
) -> Optional[OptionMatch]:
    strict = query in STRICT_VALUES
    skip_placeholders = len(options) > 1
    best: Optional[OptionMatch] = None
    best_score = 0.0
    for index, option in enumerate(options):
        if option.placeholder and skip_placeholders:
            continue
        text = option.normalized_text
        value = option.normalized_value
        if not text and not value:
            continue
        if strict:
            # Yes/No never fuzzy-matches on partial token overlap.
            candidate_score = 1.0 if query in (text, value) else 0.0
        else:
            candidate_score = max(option_score(text, query), option_score(value, query))
        if candidate_score > best_score:
            best_score = candidate_score
            best = OptionMatch(index=index, option=option, tier=TIER_SEMANTIC, score=candidate_score)
    if best is not None and best_score >= threshold:
        return best
    return None


def match_option(
    profile_value: Optional[str],
    options: Sequence[ChoiceOption],
    entry: Optional[CatalogEntry] = None,
    threshold: Optional[float] = None,
) -> Optional[OptionMatch]:
    query = normalize_option(profile_value)
    if not query or not options:
        return None
    threshold = CONFIG.engine.option_match_threshold if threshold is None else threshold
    targets = alias_targets(str(profile_value), entry)

    match = _match_alias_exact(options, targets)
    if match is None:
        match = _match_alias_word(options, targets)
    if match is None:
        match = _match_semantic(options, query, threshold)

    if match is None:
        LOGGER.debug("No option match across %d options", len(options))
    else:
        LOGGER.debug("Option match via %s at index %d (score %.2f)", match.tier, match.index, match.score)
    return match
