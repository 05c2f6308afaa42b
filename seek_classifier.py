from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_AVG_INTERVAL_MS = 5000.0
# Gaps this long are instrumental breaks, not line cadence.
MAX_INTERVAL_MS = 60000


@dataclass(frozen=True)
class SeekThresholds:
    index_span: int = 3
    time_multiplier: float = 3.0
    min_time_ms: float = 8000.0
    max_time_ms: float = 30000.0


def average_interval_ms(lines) -> float:
    if not lines or len(lines) < 2:
        return DEFAULT_AVG_INTERVAL_MS
    total = 0
    count = 0
    for prev, cur in zip(lines, lines[1:]):
        gap = cur.timestamp_ms - prev.timestamp_ms
        if 0 < gap < MAX_INTERVAL_MS:
            total += gap
            count += 1
    return total / count if count else DEFAULT_AVG_INTERVAL_MS


class SeekClassifier:
    """
    Tells a seek (user scrub, restart, handover) from ordinary playback advance.

    The time threshold scales with the song's own line cadence, so fast songs
    are not read as constant seeking and slow songs still detect real jumps.
    """

    def __init__(self, thresholds: SeekThresholds | None = None):
        self.thresholds = thresholds or SeekThresholds()
        self._lines = None
        self._avg_interval_ms = DEFAULT_AVG_INTERVAL_MS

    def set_lines(self, lines) -> None:
        self._lines = lines
        self._avg_interval_ms = average_interval_ms(lines)
        logger.debug("Seek threshold updated. avg_interval=%.1fms threshold=%.1fms",
                     self._avg_interval_ms, self.time_threshold_ms())

    def time_threshold_ms(self) -> float:
        th = self.thresholds
        raw = self._avg_interval_ms * th.time_multiplier
        return max(th.min_time_ms, min(th.max_time_ms, raw))

    def classify(self, prev_index, new_index, prev_time_ms, new_time_ms, lines=None) -> bool:
        if lines is not None and lines is not self._lines:
            self.set_lines(lines)
        if prev_index is None:
            return False
        index_delta = abs(int(new_index) - int(prev_index))
        time_delta = abs(float(new_time_ms) - float(prev_time_ms))
        # Time boundary is exclusive: a jump of exactly the threshold is playback.
        return index_delta >= self.thresholds.index_span or time_delta > self.time_threshold_ms()
