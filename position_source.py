from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Callable, Protocol

from app_errors import sanitize_position_ms

logger = logging.getLogger(__name__)

DEFAULT_LEAD_MS = 300
MAX_USER_OFFSET_MS = 2000
SEEK_HOLD_S = 1.5


class EngineId(str, Enum):
    NATIVE = "native"
    INPROCESS = "inprocess"


class PositionSource(Protocol):
    def get_position_ms(self) -> float:
        ...

    def current_engine(self) -> EngineId:
        ...


def _read_seconds(player) -> float:
    # Players return either seconds or a (position, duration) pair.
    fn = getattr(player, "get_position", None)
    if not callable(fn):
        return 0.0
    try:
        value = fn()
    except Exception as e:
        logger.debug("Failed to query player position: %s", e)
        return 0.0
    if isinstance(value, (tuple, list)):
        value = value[0] if value else 0.0
    return sanitize_position_ms(value)


def clamp_user_offset(value) -> int:
    try:
        val = int(value)
    except (TypeError, ValueError):
        return 0
    return max(-MAX_USER_OFFSET_MS, min(MAX_USER_OFFSET_MS, val))


class HybridPositionSource:
    """
    Position signal for two playback backends that take turns being
    authoritative: a native low-latency engine and an in-process decoder used
    for fast seeking. Only the current owner is read. Handover listeners are
    told whenever ownership moves, so consumers can resync their clocks.
    """

    def __init__(
        self,
        native,
        inprocess=None,
        engine: EngineId = EngineId.NATIVE,
        offset_ms: int = 0,
        lead_ms: int = DEFAULT_LEAD_MS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._players = {EngineId.NATIVE: native, EngineId.INPROCESS: inprocess}
        engine = EngineId(engine)
        if self._players.get(engine) is None:
            engine = EngineId.NATIVE
        self._engine = engine
        self._listeners = []
        self._clock = clock
        self.offset_ms = clamp_user_offset(offset_ms)
        self.lead_ms = max(0, int(lead_ms or 0))
        self._seek_target_ms = None
        self._seek_hold_until = 0.0

    def current_engine(self) -> EngineId:
        return self._engine

    def add_handover_listener(self, callback) -> None:
        if callback not in self._listeners:
            self._listeners.append(callback)

    def remove_handover_listener(self, callback) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def switch_engine(self, engine) -> bool:
        engine = EngineId(engine)
        if self._players.get(engine) is None:
            logger.warning("Cannot hand over to %s: backend not available", engine.value)
            return False
        if engine == self._engine:
            return False
        prev = self._engine
        self._engine = engine
        # A pending seek mask belongs to the previous backend.
        self._seek_target_ms = None
        logger.info("Position source handover: %s -> %s", prev.value, engine.value)
        for cb in list(self._listeners):
            try:
                cb()
            except Exception:
                logger.exception("Handover listener failed")
        return True

    def set_offset_ms(self, value) -> int:
        self.offset_ms = clamp_user_offset(value)
        return self.offset_ms

    def note_seek(self, target_ms) -> None:
        self._seek_target_ms = sanitize_position_ms(target_ms)
        self._seek_hold_until = self._clock() + SEEK_HOLD_S

    def raw_position_ms(self) -> float:
        pos = _read_seconds(self._players[self._engine]) * 1000.0
        if self._seek_target_ms is not None:
            if self._clock() < self._seek_hold_until:
                target = self._seek_target_ms
                # Mask transient 0/rebound frames right after a flushing seek.
                if pos < max(200.0, target * 0.5):
                    return target
            else:
                self._seek_target_ms = None
        return pos

    def get_position_ms(self) -> float:
        return max(0.0, self.raw_position_ms() + self.lead_ms + self.offset_ms)
