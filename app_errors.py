from __future__ import annotations

import math


def sanitize_position_ms(value) -> float:
    """Coerce a raw playback position into a finite, non-negative ms value.

    Negative, NaN, infinite or non-numeric input becomes 0. The draw loop
    keeps running on whatever the backend reports, so nothing here raises.
    """
    if isinstance(value, bool) or value is None:
        return 0.0
    try:
        val = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(val) or val < 0:
        return 0.0
    return val


def clamp_index(idx, count: int) -> int | None:
    # Stale events after a track change may point past the new list.
    if count <= 0:
        return None
    try:
        val = int(idx)
    except (TypeError, ValueError):
        return 0
    if val < 0:
        return 0
    if val >= count:
        return count - 1
    return val


def classify_exception(exc: Exception) -> str:
    text = str(exc).lower()
    if isinstance(exc, (TimeoutError, ConnectionError)):
        return "network"
    if any(k in text for k in ("401", "403", "unauthorized", "forbidden", "login", "session expired", "token")):
        return "auth"
    if any(k in text for k in ("500", "502", "503", "504", "internal server error", "bad gateway", "service unavailable")):
        return "server"
    if any(k in text for k in ("timeout", "timed out", "connection", "network", "dns", "unreachable")):
        return "network"
    if any(k in text for k in ("404", "not found", "no such")):
        return "not_found"
    if any(k in text for k in ("json", "decode", "parse", "invalid", "malformed")):
        return "parse"
    return "unknown"


def user_message(kind: str) -> str:
    mapping = {
        "auth": "Lyrics unavailable. Please login again.",
        "server": "Lyrics service is temporarily unavailable.",
        "network": "Lyrics request timed out. Please retry.",
        "not_found": "No lyrics available for this track.",
        "parse": "Lyrics format is not supported.",
        "unknown": "Lyrics unavailable right now.",
    }
    return mapping.get(kind, mapping["unknown"])
