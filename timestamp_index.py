from __future__ import annotations

from bisect import bisect_right

from app_errors import sanitize_position_ms


class TimestampIndex:
    """Ascending line start times; answers which line is active at a time."""

    def __init__(self, lines=()):
        self._timestamps: list[int] = []
        self.rebuild(lines)

    def rebuild(self, lines) -> None:
        self._timestamps = [int(line.timestamp_ms) for line in (lines or ())]

    def __len__(self) -> int:
        return len(self._timestamps)

    def timestamp_at(self, idx: int) -> int:
        return self._timestamps[idx]

    def locate(self, position_ms) -> int:
        """Greatest index whose timestamp is <= position_ms, or -1 if none."""
        if not self._timestamps:
            return -1
        pos = sanitize_position_ms(position_ms)
        return bisect_right(self._timestamps, pos) - 1
