"""Moderation settings: defaults, validated partial updates, YAML loading."""

from __future__ import annotations

import dataclasses
from pathlib import Path
from typing import Any, Mapping

import yaml

from feedguard.analysis.models import AnalysisOptions
from feedguard.errors import SettingsValidationError

# Slightly below the analyzer's own default so more content reaches review.
DEFAULT_SETTINGS = AnalysisOptions(flag_threshold=0.6)

_CAMEL_ALIASES = {
    "flagThreshold": "flag_threshold",
    "enableToxicityDetection": "enable_toxicity_detection",
    "enableSpamDetection": "enable_spam_detection",
    "enableProfanityFilter": "enable_profanity_filter",
    "enableThreatDetection": "enable_threat_detection",
    "enablePersonalInfoDetection": "enable_personal_info_detection",
}

_BOOL_KEYS = {
    "enable_toxicity_detection",
    "enable_spam_detection",
    "enable_profanity_filter",
    "enable_threat_detection",
    "enable_personal_info_detection",
}


def _validate(key: str, value: Any) -> Any:
    if key in _BOOL_KEYS:
        if not isinstance(value, bool):
            raise SettingsValidationError(f"'{key}' must be a boolean, got {value!r}")
        return value
    # flag_threshold
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SettingsValidationError(f"'{key}' must be a number, got {value!r}")
    if not 0.0 <= value <= 1.0:
        raise SettingsValidationError(f"'{key}' must be between 0 and 1, got {value}")
    return float(value)


def merge_settings(current: AnalysisOptions, partial: Mapping[str, Any]) -> AnalysisOptions:
    """Merge *partial* over *current*.

    Unknown keys are ignored. Every recognised value is validated before
    anything is applied, so a rejected update leaves *current* in force.
    """
    known = {f.name for f in dataclasses.fields(AnalysisOptions)}
    changes: dict[str, Any] = {}
    for raw_key, value in partial.items():
        key = _CAMEL_ALIASES.get(raw_key, raw_key)
        if key not in known:
            continue
        changes[key] = _validate(key, value)
    return dataclasses.replace(current, **changes)


def settings_to_dict(settings: AnalysisOptions) -> dict[str, Any]:
    return dataclasses.asdict(settings)


def load_settings(path: str | Path, base: AnalysisOptions = DEFAULT_SETTINGS) -> AnalysisOptions:
    """Load a YAML mapping of settings and merge it over *base*."""
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise SettingsValidationError(f"Settings file {path} must contain a mapping")
    return merge_settings(base, data)


def save_settings(path: str | Path, settings: AnalysisOptions) -> None:
    """Write *settings* as YAML."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(yaml.safe_dump(settings_to_dict(settings), sort_keys=True))
