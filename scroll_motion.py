from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CubicBezier:
    """CSS-style cubic-bezier easing, anchored at (0, 0) and (1, 1)."""

    x1: float
    y1: float
    x2: float
    y2: float

    def css(self) -> str:
        return f"cubic-bezier({self.x1:g}, {self.y1:g}, {self.x2:g}, {self.y2:g})"

    @staticmethod
    def _axis(t, p1, p2):
        u = 1.0 - t
        return 3.0 * u * u * t * p1 + 3.0 * u * t * t * p2 + t * t * t

    @staticmethod
    def _axis_slope(t, p1, p2):
        u = 1.0 - t
        return 3.0 * u * u * p1 + 6.0 * u * t * (p2 - p1) + 3.0 * t * t * (1.0 - p2)

    def _solve_t(self, x):
        # Newton first, bisection when the slope flattens out.
        t = x
        for _ in range(8):
            err = self._axis(t, self.x1, self.x2) - x
            if abs(err) < 1e-6:
                return t
            slope = self._axis_slope(t, self.x1, self.x2)
            if abs(slope) < 1e-6:
                break
            t -= err / slope
        lo, hi = 0.0, 1.0
        t = x
        for _ in range(40):
            cur = self._axis(t, self.x1, self.x2)
            if abs(cur - x) < 1e-6:
                break
            if cur < x:
                lo = t
            else:
                hi = t
            t = (lo + hi) / 2.0
        return t

    def evaluate(self, progress: float) -> float:
        if progress <= 0.0:
            return 0.0
        if progress >= 1.0:
            return 1.0
        return self._axis(self._solve_t(progress), self.y1, self.y2)


@dataclass(frozen=True)
class ScrollPreset:
    name: str
    label: str
    easing: CubicBezier
    base_ms: float
    k_per_px: float
    min_ms: float
    max_ms: float


def _preset(name, label, easing, base_ms, k_per_px, min_ms, max_ms):
    return ScrollPreset(name, label, CubicBezier(*easing), base_ms, k_per_px, min_ms, max_ms)


PRESETS = {
    p.name: p
    for p in (
        _preset("bouncy_soft", "Bouncy Soft", (0.34, 1.56, 0.64, 1), 350, 1.0, 450, 1000),
        _preset("bouncy_strong", "Bouncy Strong", (0.68, -0.55, 0.265, 1.55), 400, 1.2, 500, 1200),
        _preset("bouncy_playful", "Bouncy Playful", (0.175, 0.885, 0.32, 1.275), 320, 1.1, 420, 1100),
        _preset("smooth_elegant", "Smooth Elegant", (0.25, 0.46, 0.45, 0.94), 280, 0.9, 380, 900),
        _preset("smooth_swift", "Smooth Swift", (0.4, 0, 0.2, 1), 250, 0.8, 320, 800),
        _preset("smooth_dreamy", "Smooth Dreamy", (0.165, 0.84, 0.44, 1), 380, 1.3, 500, 1400),
        _preset("organic_flow", "Organic Flow", (0.23, 1, 0.32, 1), 320, 1.0, 400, 1000),
        _preset("precise_snap", "Precise Snap", (0.16, 1, 0.3, 1), 200, 0.7, 240, 600),
        _preset("slow_gentle", "Slow Gentle", (0.33, 0, 0.67, 1), 500, 1.5, 650, 1800),
        _preset("slow_luxurious", "Slow Luxurious", (0.19, 1, 0.22, 1), 600, 1.8, 800, 2200),
        _preset("elastic_soft", "Elastic Soft", (0.68, -0.3, 0.265, 1.3), 450, 1.3, 550, 1300),
        _preset("elastic_strong", "Elastic Strong", (0.87, -0.41, 0.19, 1.44), 500, 1.5, 600, 1500),
        _preset("instant_smooth", "Instant Smooth", (0.22, 0.61, 0.36, 1), 180, 0.6, 220, 500),
        _preset("instant_sharp", "Instant Sharp", (0.55, 0, 0.1, 1), 150, 0.5, 180, 400),
        _preset("gradual_ease", "Gradual Ease", (0.42, 0, 0.58, 1), 400, 1.2, 500, 1200),
        _preset("gradual_accelerate", "Gradual Accelerate", (0.55, 0.085, 0.68, 0.53), 350, 1.0, 450, 1000),
    )
}

DEFAULT_PRESET = "bouncy_soft"
# Used when the user turns scroll animation off.
MINIMAL_PRESET = "precise_snap"

# Manual wheel scrolling: short, springy transition.
WHEEL_DURATION_MS = 150
WHEEL_EASING = CubicBezier(0.34, 1.56, 0.64, 1)


def get_preset(name) -> ScrollPreset:
    key = str(name or "").strip().lower()
    return PRESETS.get(key) or PRESETS[DEFAULT_PRESET]


def get_preset_names() -> list[str]:
    return list(PRESETS)


class DurationModel:
    """Maps a pixel displacement to an animation duration and easing curve."""

    def __init__(self, preset: ScrollPreset | str | None = None):
        if preset is None or isinstance(preset, str):
            preset = get_preset(preset)
        self.preset = preset

    def duration(self, delta_px: float) -> float:
        p = self.preset
        raw = p.base_ms + p.k_per_px * abs(delta_px)
        return max(p.min_ms, min(p.max_ms, raw))

    def easing(self) -> CubicBezier:
        return self.preset.easing
