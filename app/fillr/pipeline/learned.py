from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Callable, Dict, List, Optional, TypeVar
from urllib.parse import urlparse

from .normalize import normalize_label

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

# Guards read-modify-write cycles on the learned mappings file.
STORE_LOCK = threading.Lock()


def origin_for_url(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    parsed = urlparse(url)
    if parsed.hostname:
        return parsed.hostname.lower()
    if parsed.scheme == "file":
        return "file"
    return None


class LearnedMappingStore:
    """Per-origin ``normalized label -> attribute key`` overrides confirmed by the user.

    Only attribute keys are kept; values are re-resolved from the profile at fill
    time so a mapping stays valid across profile edits.
    """

    def __init__(self, mappings: Optional[Dict[str, Dict[str, str]]] = None) -> None:
        self._mappings: Dict[str, Dict[str, str]] = {}
        for origin, entries in (mappings or {}).items():
            for label, key in (entries or {}).items():
                self.remember(origin, label, key)

    def lookup(self, origin: Optional[str], label: Optional[str]) -> Optional[str]:
        if not origin:
            return None
        normalized = normalize_label(label)
        if not normalized:
            return None
        return self._mappings.get(origin, {}).get(normalized)

    def remember(self, origin: Optional[str], label: Optional[str], attribute_key: str) -> bool:
        normalized = normalize_label(label)
        if not origin or not normalized or not attribute_key:
            return False
        self._mappings.setdefault(origin, {})[normalized] = attribute_key
        LOGGER.debug("Learned mapping for %s: '%s' -> %s", origin, normalized, attribute_key)
        return True

    def for_origin(self, origin: Optional[str]) -> Dict[str, str]:
        if not origin:
            return {}
        return dict(self._mappings.get(origin, {}))

    def clear(self, origin: str) -> int:
        removed = self._mappings.pop(origin, {})
        return len(removed)

    def origins(self) -> List[str]:
        return sorted(self._mappings)

    def to_payload(self) -> Dict[str, Dict[str, str]]:
        return {origin: dict(entries) for origin, entries in self._mappings.items()}

    def merge(self, other: "LearnedMappingStore") -> int:
        """Copy every mapping from ``other``; ``other`` wins per ``(origin, label)``."""
        count = 0
        for origin, entries in other.to_payload().items():
            for label, key in entries.items():
                if self.remember(origin, label, key):
                    count += 1
        return count

    @classmethod
    def from_payload(cls, payload: Optional[Dict[str, Dict[str, str]]]) -> "LearnedMappingStore":
        if not isinstance(payload, dict):
            return cls()
        return cls({str(k): v for k, v in payload.items() if isinstance(v, dict)})

    @classmethod
    def for_single_origin(cls, origin: Optional[str], mappings: Optional[Dict[str, str]]) -> "LearnedMappingStore":
        store = cls()
        for label, key in (mappings or {}).items():
            store.remember(origin, label, key)
        return store


def load_store(path: Path) -> LearnedMappingStore:
    if not path.exists():
        return LearnedMappingStore()
    try:
        payload = json.loads(path.read_text())
    except (OSError, ValueError) as exc:
        LOGGER.warning("Could not read learned mappings from %s: %s", path, exc)
        return LearnedMappingStore()
    return LearnedMappingStore.from_payload(payload)


def save_store(store: LearnedMappingStore, path: Path) -> None:
    """Write the store through a sibling temp file so readers never see a partial file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w") as f:
            json.dump(store.to_payload(), f, indent=2, sort_keys=True)
        os.replace(tmp_name, path)
    except Exception:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def update_store(path: Path, mutate: Callable[[LearnedMappingStore], T]) -> T:
    """Load, mutate and save the store as one step with respect to other writers in this process."""
    with STORE_LOCK:
        store = load_store(path)
        result = mutate(store)
        save_store(store, path)
    return result
