from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

BASE_DIR = Path(__file__).parent
FORM_URL_ENV = "FILLR_FORM_URL"


def _load_dotenv() -> None:
    repo_root = Path(__file__).resolve().parents[2]
    candidates = [repo_root / ".env", Path.cwd() / ".env"]
    for env_path in candidates:
        if not env_path.exists():
            continue
        try:
            for line in env_path.read_text().splitlines():
                stripped = line.strip()
                if not stripped or stripped.startswith("#") or "=" not in stripped:
                    continue
                key, value = stripped.split("=", 1)
                key = key.strip()
                value = value.strip().strip('"').strip("'")
                if key and key not in os.environ:
                    os.environ[key] = value
        except Exception:  # noqa: BLE001
            continue
        break


_load_dotenv()


@dataclass(frozen=True)
class EngineConfig:
    high_confidence: float = float(os.getenv("FILLR_HIGH_CONFIDENCE", "0.75"))
    medium_confidence: float = float(os.getenv("FILLR_MEDIUM_CONFIDENCE", "0.5"))
    option_match_threshold: float = 0.6
    # Custom widgets re-render asynchronously after a click.
    widget_settle_ms: int = int(os.getenv("FILLR_WIDGET_SETTLE_MS", "300"))
    widget_close_settle_ms: int = int(os.getenv("FILLR_WIDGET_CLOSE_SETTLE_MS", "100"))


@dataclass(frozen=True)
class AutofillConfig:
    headless: bool = os.getenv("FILLR_AUTOFILL_HEADLESS", "true").lower() == "true"
    slow_mo_ms: int = int(os.getenv("FILLR_AUTOFILL_SLOW_MO_MS", "0"))
    # Negative keeps the browser open so pending fields can be confirmed later.
    keep_open_ms: int = int(os.getenv("FILLR_AUTOFILL_KEEP_OPEN_MS", "-1"))
    # Custom form builders finish rendering after DOMContentLoaded.
    render_delay_ms: int = int(os.getenv("FILLR_AUTOFILL_RENDER_DELAY_MS", "800"))
    form_url: str = "about:blank"


@dataclass(frozen=True)
class StoreConfig:
    learned_mappings_file: str = os.getenv("FILLR_LEARNED_MAPPINGS_FILE", "learned_mappings.json")


@dataclass(frozen=True)
class AppConfig:
    log_level: str = os.getenv("FILLR_LOG_LEVEL", "INFO")
    runs_dir: Path = BASE_DIR / "runs"
    engine: EngineConfig = field(default_factory=EngineConfig)
    autofill: AutofillConfig = field(default_factory=AutofillConfig)
    store: StoreConfig = field(default_factory=StoreConfig)


CONFIG = AppConfig()


def resolve_form_url(override: Optional[str] = None) -> str:
    if override:
        return override
    env_value = os.getenv(FORM_URL_ENV)
    if env_value:
        return env_value
    return CONFIG.autofill.form_url


def learned_mappings_path() -> Path:
    return CONFIG.runs_dir / CONFIG.store.learned_mappings_file
