from __future__ import annotations

import logging

from app_errors import sanitize_position_ms
from scroll_events import IndexChange, LayoutChange, LayoutReason, Seek, event_name
from seek_classifier import SeekClassifier
from timestamp_index import TimestampIndex

logger = logging.getLogger(__name__)


class EventDispatcher:
    """
    Turns raw position ticks and layout signals into scroll events.

    The previous tick's position is the reference clock for seek detection.
    On an engine handover that clock is resynced to the new engine's first
    value before anything is classified, and the handover becomes an instant
    realignment instead of a seek.
    """

    def __init__(self, orchestrator, source, classifier=None, index=None, trace=None):
        self._orchestrator = orchestrator
        self._source = source
        self._classifier = classifier or SeekClassifier()
        self._index = index or TimestampIndex()
        self._trace_sink = trace
        self._lines = ()
        self._engine = None
        self._reference_ms = None
        self._emitted_index = None
        self._handover_pending = False

        add_listener = getattr(source, "add_handover_listener", None)
        if callable(add_listener):
            add_listener(self.notify_handover)

    @property
    def classifier(self) -> SeekClassifier:
        return self._classifier

    def load_lyrics(self, lyrics, start_ms=None) -> None:
        self._lines = tuple(lyrics.lines) if lyrics is not None else ()
        self._index.rebuild(self._lines)
        self._classifier.set_lines(self._lines)
        start = sanitize_position_ms(start_ms) if start_ms is not None else 0.0
        self._orchestrator.load(lyrics, start)
        self._emitted_index = None
        self._reference_ms = None
        logger.info("Lyrics sync loaded. lines=%s", len(self._lines))

    def resync_clock(self) -> None:
        """Forget the reference clock, e.g. after the draw loop was paused."""
        self._reference_ms = None

    def notify_handover(self) -> None:
        self._handover_pending = True

    def notify_layout(self, reason):
        return self._emit(LayoutChange(LayoutReason(reason)))

    def tick(self):
        pos = sanitize_position_ms(self._source.get_position_ms())
        engine = self._source.current_engine()
        if self._handover_pending or (self._engine is not None and engine != self._engine):
            return self._absorb_handover(pos, engine)
        self._engine = engine
        return self._advance(pos)

    def _absorb_handover(self, pos, engine):
        prev_engine = self._engine
        self._engine = engine
        self._handover_pending = False
        self._reference_ms = pos
        logger.info(
            "Engine handover absorbed: %s -> %s at %.0fms",
            getattr(prev_engine, "value", prev_engine),
            getattr(engine, "value", engine),
            pos,
        )
        if not self._lines:
            return None
        idx = self._index.locate(pos)
        if idx < 0:
            return None
        self._emitted_index = idx
        return self._emit(LayoutChange(LayoutReason.ENGINE, idx=idx, position_ms=pos))

    def _advance(self, pos):
        prev_ms = self._reference_ms if self._reference_ms is not None else pos
        self._reference_ms = pos
        if not self._lines:
            return None

        idx = self._index.locate(pos)
        # Before the first line there is nothing to align to yet. A restart into
        # an intro keeps the previous line until line 0 starts.
        if idx < 0 or idx == self._emitted_index:
            return None

        prev_idx = self._emitted_index
        self._emitted_index = idx
        if self._classifier.classify(prev_idx, idx, prev_ms, pos, self._lines):
            event = Seek(idx, pos, pos - prev_ms, abs(idx - prev_idx))
        else:
            event = IndexChange(idx, pos)
        return self._emit(event)

    def _emit(self, event):
        if self._trace_sink is not None:
            self._trace_sink.emit("dispatch", event=event_name(event), detail=repr(event))
        self._orchestrator.dispatch(event)
        return event
