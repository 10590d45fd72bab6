"""Persistent JSON config helpers for review tuning constants.

Stores overrides for cache size, prefetch margin, debounce/eviction timing,
and batch size. All access is defensive: malformed or missing config falls
back to the built-in defaults.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, replace
from pathlib import Path

from platformdirs import user_config_dir

APP_NAME = "lazyreview"
CONFIG_FILENAME = "config.json"
DEFAULT_CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME
CONFIG_PATH = DEFAULT_CONFIG_PATH
TUNING_KEY = "review"


@dataclass(frozen=True)
class ReviewTuning:
    """Tunable constants for a review session."""

    max_loaded_diffs: int = 20
    visibility_margin: float = 500.0
    debounce_seconds: float = 0.1
    eviction_interval_seconds: float = 2.0
    batch_size: int = 3
    forget_sections_on_evict: bool = False


def load_config() -> dict[str, object]:
    """Load the persisted JSON config object.

    Returns an empty dict when the file is missing, unreadable, malformed, or
    does not decode to a top-level JSON object.
    """
    try:
        data = json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


def save_config(data: dict[str, object]) -> None:
    """Persist config data as pretty-printed JSON.

    Filesystem errors are ignored so an unwritable config never breaks a
    review session.
    """
    try:
        CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
        CONFIG_PATH.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    except OSError:
        pass


def _coerce_positive_int(value: object) -> int | None:
    """Accept strictly positive integers; booleans and floats are rejected."""
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value if value > 0 else None


def _coerce_nonnegative_float(value: object) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value) if value >= 0 else None


def load_review_tuning() -> ReviewTuning:
    """Load ``ReviewTuning`` overrides from the ``review`` config section.

    Unknown keys and values of the wrong type or sign are dropped
    individually; valid keys still apply.
    """
    raw = load_config().get(TUNING_KEY)
    if not isinstance(raw, dict):
        return ReviewTuning()

    overrides: dict[str, object] = {}
    for key in ("max_loaded_diffs", "batch_size"):
        value = _coerce_positive_int(raw.get(key))
        if value is not None:
            overrides[key] = value
    for key in ("visibility_margin", "debounce_seconds"):
        value = _coerce_nonnegative_float(raw.get(key))
        if value is not None:
            overrides[key] = value
    interval = _coerce_nonnegative_float(raw.get("eviction_interval_seconds"))
    if interval:
        overrides["eviction_interval_seconds"] = interval
    forget = raw.get("forget_sections_on_evict")
    if isinstance(forget, bool):
        overrides["forget_sections_on_evict"] = forget
    return replace(ReviewTuning(), **overrides)


def save_review_tuning(tuning: ReviewTuning) -> None:
    """Persist every tuning field under the ``review`` config section."""
    config = load_config()
    config[TUNING_KEY] = asdict(tuning)
    save_config(config)
