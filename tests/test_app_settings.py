import json

from app_settings import (
    DEFAULT_SETTINGS,
    load_settings,
    normalize_settings,
    preset_from_settings,
    save_settings,
    seek_thresholds_from_settings,
)


def test_normalize_settings_coerces_and_rejects_out_of_range():
    raw = {
        "lyrics_animation_style": " Smooth_Swift ",
        "lyrics_user_offset_ms": 5000,
        "lyrics_min_motion_px": True,
        "lyrics_anchor_ratio": 0.4,
        "lyrics_seek_time_multiplier": 2,
    }
    out = normalize_settings(raw)
    assert out["lyrics_animation_style"] == "smooth_swift"
    assert out["lyrics_user_offset_ms"] == DEFAULT_SETTINGS["lyrics_user_offset_ms"]
    assert out["lyrics_min_motion_px"] == DEFAULT_SETTINGS["lyrics_min_motion_px"]
    assert out["lyrics_anchor_ratio"] == 0.4
    assert out["lyrics_seek_time_multiplier"] == 2.0


def test_normalize_settings_keeps_seek_clamp_ordered():
    out = normalize_settings({"lyrics_seek_min_ms": 40000, "lyrics_seek_max_ms": 10000})
    assert out["lyrics_seek_min_ms"] == DEFAULT_SETTINGS["lyrics_seek_min_ms"]
    assert out["lyrics_seek_max_ms"] == DEFAULT_SETTINGS["lyrics_seek_max_ms"]


def test_normalize_settings_accepts_whole_number_floats():
    out = normalize_settings({"lyrics_seek_min_ms": 8000.0, "lyrics_scroll_resume_ms": 2000.0, "lyrics_lead_ms": 120.5})
    assert out["lyrics_seek_min_ms"] == 8000
    assert isinstance(out["lyrics_seek_min_ms"], int)
    assert out["lyrics_scroll_resume_ms"] == 2000
    assert out["lyrics_lead_ms"] == DEFAULT_SETTINGS["lyrics_lead_ms"]


def test_load_settings_invalid_file_returns_defaults(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("not-json", encoding="utf-8")
    loaded = load_settings(str(path))
    assert loaded == DEFAULT_SETTINGS


def test_save_then_load_roundtrip(tmp_path):
    path = tmp_path / "nested" / "settings.json"
    data = {
        "lyrics_animation_enabled": False,
        "lyrics_animation_style": "slow_gentle",
        "lyrics_user_offset_ms": -350,
        "lyrics_seek_index_span": 4,
    }
    save_settings(str(path), data)
    loaded = load_settings(str(path))
    assert loaded["lyrics_animation_enabled"] is False
    assert loaded["lyrics_animation_style"] == "slow_gentle"
    assert loaded["lyrics_user_offset_ms"] == -350
    assert loaded["lyrics_seek_index_span"] == 4

    saved_json = json.loads(path.read_text(encoding="utf-8"))
    assert "settings_version" in saved_json


def test_preset_follows_animation_toggle():
    assert preset_from_settings({"lyrics_animation_style": "organic_flow"}).name == "organic_flow"
    assert preset_from_settings({"lyrics_animation_enabled": False}).name == "precise_snap"
    assert preset_from_settings({"lyrics_animation_style": "nope"}).name == "bouncy_soft"


def test_seek_thresholds_from_settings():
    th = seek_thresholds_from_settings({"lyrics_seek_index_span": 5, "lyrics_seek_max_ms": 20000})
    assert th.index_span == 5
    assert th.time_multiplier == 3.0
    assert th.min_time_ms == 8000.0
    assert th.max_time_ms == 20000.0
