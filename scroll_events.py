from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class LayoutReason(str, Enum):
    FONT = "font"
    WINDOW = "window"
    LYRICS = "lyrics"
    # Playback backend handover: realign instantly to the new engine's line.
    ENGINE = "engine"


@dataclass(frozen=True)
class IndexChange:
    idx: int
    position_ms: float


@dataclass(frozen=True)
class Seek:
    idx: int
    position_ms: float
    delta_ms: float
    index_delta: int


@dataclass(frozen=True)
class LayoutChange:
    reason: LayoutReason
    # Only set for ENGINE; other layout changes keep the active line.
    idx: Optional[int] = None
    position_ms: Optional[float] = None


ScrollEvent = Union[IndexChange, Seek, LayoutChange]


def event_name(event) -> str:
    if isinstance(event, IndexChange):
        return "index_change"
    if isinstance(event, Seek):
        return "seek"
    if isinstance(event, LayoutChange):
        return "layout_change"
    raise TypeError(f"Unknown scroll event: {event!r}")
