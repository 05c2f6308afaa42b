import json
import math
import os
from typing import Any

from scroll_motion import DEFAULT_PRESET, MINIMAL_PRESET, PRESETS, get_preset
from seek_classifier import SeekThresholds


CURRENT_SETTINGS_VERSION = 1

DEFAULT_SETTINGS = {
    "settings_version": CURRENT_SETTINGS_VERSION,
    "lyrics_animation_enabled": True,
    "lyrics_animation_style": DEFAULT_PRESET,
    "lyrics_user_offset_ms": 0,
    "lyrics_lead_ms": 300,
    "lyrics_min_motion_px": 30,
    "lyrics_seek_index_span": 3,
    "lyrics_seek_time_multiplier": 3.0,
    "lyrics_seek_min_ms": 8000,
    "lyrics_seek_max_ms": 30000,
    "lyrics_scroll_resume_ms": 1500,
    "lyrics_anchor_ratio": 0.5,
}


def _as_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    return default


def _as_int(value: Any, default: int, minimum: int | None = None, maximum: int | None = None) -> int:
    if isinstance(value, bool):
        return default
    # JSON writers may store whole numbers as 8000.0.
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int):
        return default
    if minimum is not None and value < minimum:
        return default
    if maximum is not None and value > maximum:
        return default
    return value


def _as_float(value: Any, default: float, minimum: float | None = None, maximum: float | None = None) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    value = float(value)
    if not math.isfinite(value):
        return default
    if minimum is not None and value < minimum:
        return default
    if maximum is not None and value > maximum:
        return default
    return value


def _as_choice(value: Any, default: str, choices) -> str:
    if isinstance(value, str) and value.strip().lower() in choices:
        return value.strip().lower()
    return default


def normalize_settings(raw: dict[str, Any] | None) -> dict[str, Any]:
    raw = raw or {}
    normalized = dict(DEFAULT_SETTINGS)
    normalized["lyrics_animation_enabled"] = _as_bool(raw.get("lyrics_animation_enabled"), DEFAULT_SETTINGS["lyrics_animation_enabled"])
    normalized["lyrics_animation_style"] = _as_choice(raw.get("lyrics_animation_style"), DEFAULT_SETTINGS["lyrics_animation_style"], PRESETS)
    normalized["lyrics_user_offset_ms"] = _as_int(raw.get("lyrics_user_offset_ms"), DEFAULT_SETTINGS["lyrics_user_offset_ms"], minimum=-2000, maximum=2000)
    normalized["lyrics_lead_ms"] = _as_int(raw.get("lyrics_lead_ms"), DEFAULT_SETTINGS["lyrics_lead_ms"], minimum=0, maximum=1000)
    normalized["lyrics_min_motion_px"] = _as_int(raw.get("lyrics_min_motion_px"), DEFAULT_SETTINGS["lyrics_min_motion_px"], minimum=0, maximum=200)
    normalized["lyrics_seek_index_span"] = _as_int(raw.get("lyrics_seek_index_span"), DEFAULT_SETTINGS["lyrics_seek_index_span"], minimum=1, maximum=50)
    normalized["lyrics_seek_time_multiplier"] = _as_float(raw.get("lyrics_seek_time_multiplier"), DEFAULT_SETTINGS["lyrics_seek_time_multiplier"], minimum=1.0, maximum=20.0)
    normalized["lyrics_seek_min_ms"] = _as_int(raw.get("lyrics_seek_min_ms"), DEFAULT_SETTINGS["lyrics_seek_min_ms"], minimum=500, maximum=120000)
    normalized["lyrics_seek_max_ms"] = _as_int(raw.get("lyrics_seek_max_ms"), DEFAULT_SETTINGS["lyrics_seek_max_ms"], minimum=500, maximum=120000)
    normalized["lyrics_scroll_resume_ms"] = _as_int(raw.get("lyrics_scroll_resume_ms"), DEFAULT_SETTINGS["lyrics_scroll_resume_ms"], minimum=200, maximum=10000)
    normalized["lyrics_anchor_ratio"] = _as_float(raw.get("lyrics_anchor_ratio"), DEFAULT_SETTINGS["lyrics_anchor_ratio"], minimum=0.2, maximum=0.8)
    normalized["settings_version"] = CURRENT_SETTINGS_VERSION

    # Seek clamp must stay ordered.
    if normalized["lyrics_seek_min_ms"] > normalized["lyrics_seek_max_ms"]:
        normalized["lyrics_seek_min_ms"] = DEFAULT_SETTINGS["lyrics_seek_min_ms"]
        normalized["lyrics_seek_max_ms"] = DEFAULT_SETTINGS["lyrics_seek_max_ms"]
    return normalized


def load_settings(path: str) -> dict[str, Any]:
    if not os.path.exists(path):
        return dict(DEFAULT_SETTINGS)

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except Exception:
        return dict(DEFAULT_SETTINGS)

    if not isinstance(data, dict):
        return dict(DEFAULT_SETTINGS)
    return normalize_settings(data)


def save_settings(path: str, settings: dict[str, Any]) -> None:
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    data = normalize_settings(settings)
    temp_file = f"{path}.tmp"
    with open(temp_file, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
    os.replace(temp_file, path)


def preset_from_settings(settings: dict[str, Any]):
    s = normalize_settings(settings)
    if not s["lyrics_animation_enabled"]:
        return get_preset(MINIMAL_PRESET)
    return get_preset(s["lyrics_animation_style"])


def seek_thresholds_from_settings(settings: dict[str, Any]) -> SeekThresholds:
    s = normalize_settings(settings)
    return SeekThresholds(
        index_span=s["lyrics_seek_index_span"],
        time_multiplier=s["lyrics_seek_time_multiplier"],
        min_time_ms=float(s["lyrics_seek_min_ms"]),
        max_time_ms=float(s["lyrics_seek_max_ms"]),
    )
