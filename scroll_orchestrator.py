from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

from app_errors import clamp_index, sanitize_position_ms
from scroll_events import IndexChange, LayoutChange, Seek, event_name
from scroll_motion import WHEEL_DURATION_MS, WHEEL_EASING, CubicBezier, DurationModel

logger = logging.getLogger(__name__)

DEFAULT_MIN_MOTION_PX = 30
DEFAULT_RESUME_DELAY_MS = 1500
WHEEL_MULTIPLIER = 1.8


class OrchestratorState(str, Enum):
    IDLE = "idle"
    ALIGN_INSTANT = "align_instant"
    ALIGN_ANIMATED = "align_animated"


class LineMeasurer(Protocol):
    def measure(self, index: int) -> Optional[float]:
        """Center offset of the line in px, or None while it is not laid out."""
        ...


class Layout(Protocol):
    def container_midpoint_px(self) -> float:
        ...


class ScrollRenderer(Protocol):
    def on_transform(self, offset_px: float, duration_ms: float, easing: Optional[CubicBezier]) -> None:
        ...

    def on_highlight_change(self, current_index: Optional[int], previous_index: Optional[int]) -> None:
        ...


@dataclass
class TrackingCell:
    last_index: Optional[int] = None
    last_position_ms: float = 0.0
    last_transform_offset: float = 0.0

    def reset(self, start_ms: float = 0.0) -> None:
        self.last_index = None
        self.last_position_ms = start_ms
        self.last_transform_offset = 0.0


@dataclass(frozen=True)
class TransformCommand:
    offset_px: float
    duration_ms: float
    easing: Optional[CubicBezier] = None

    @property
    def instant(self) -> bool:
        return self.duration_ms <= 0


class ScrollOrchestrator:
    """
    Single writer for the lyric list transform.

    Every event is resolved to one target line, measured, and turned into at
    most one transform command. Seeks and layout changes snap; ordinary line
    advances ease unless the motion is too small to be worth animating.
    Measurement that is not ready drops the event; a later event retries.

    The tracking cell is private to this class. Highlight updates are deferred
    to the next frame so they never interleave with the transform write.
    """

    def __init__(
        self,
        measurer: LineMeasurer,
        layout: Layout,
        renderer: ScrollRenderer,
        scheduler,
        duration_model: DurationModel | None = None,
        min_motion_px: float = DEFAULT_MIN_MOTION_PX,
        resume_delay_ms: int = DEFAULT_RESUME_DELAY_MS,
        trace=None,
    ):
        self._measurer = measurer
        self._layout = layout
        self._renderer = renderer
        self._scheduler = scheduler
        self.duration_model = duration_model or DurationModel()
        self.min_motion_px = float(min_motion_px)
        self.resume_delay_ms = int(resume_delay_ms)
        self._trace_sink = trace

        self.state = OrchestratorState.IDLE
        self._cell = TrackingCell()
        self._lines = ()
        self._pending_index = None
        self._displayed_index = None
        self._epoch = 0
        self._user_scrolling = False
        self._resume_handle = None

    @property
    def current_index(self) -> Optional[int]:
        return self._cell.last_index

    @property
    def highlighted_index(self) -> Optional[int]:
        return self._displayed_index

    @property
    def user_scrolling(self) -> bool:
        return self._user_scrolling

    def _trace(self, name, **ctx):
        if self._trace_sink is not None:
            self._trace_sink.emit(name, **ctx)

    def load(self, lyrics, start_ms=0.0) -> None:
        """Swap in a new track's lyrics and reset all tracking state."""
        self._epoch += 1
        self._cancel_resume()
        self._user_scrolling = False
        self._lines = tuple(lyrics.lines) if lyrics is not None else ()
        self._cell.reset(sanitize_position_ms(start_ms))
        self._pending_index = None
        self.state = OrchestratorState.IDLE
        if self._displayed_index is not None:
            previous = self._displayed_index
            self._displayed_index = None
            self._renderer.on_highlight_change(None, previous)
        logger.debug("Scroll orchestrator loaded. lines=%s", len(self._lines))
        self._trace("load", lines=len(self._lines))

    def close(self) -> None:
        self._epoch += 1
        self._cancel_resume()
        self._user_scrolling = False

    def _resolve_index(self, event):
        count = len(self._lines)
        if isinstance(event, (IndexChange, Seek)):
            return clamp_index(event.idx, count)
        if isinstance(event, LayoutChange):
            if event.idx is not None:
                return clamp_index(event.idx, count)
            base = self._pending_index if self._pending_index is not None else self._cell.last_index
            return None if base is None else clamp_index(base, count)
        raise TypeError(f"Unknown scroll event: {event!r}")

    @staticmethod
    def _event_position(event):
        if isinstance(event, (IndexChange, Seek)):
            return sanitize_position_ms(event.position_ms)
        if isinstance(event, LayoutChange) and event.position_ms is not None:
            return sanitize_position_ms(event.position_ms)
        return None

    def dispatch(self, event) -> Optional[TransformCommand]:
        name = event_name(event)
        if not self._lines:
            self._trace("dispatch_skip", event=name, reason="empty")
            return None

        target = self._resolve_index(event)
        if target is None:
            self._trace("dispatch_skip", event=name, reason="no_index")
            return None

        if self._user_scrolling:
            self._follow_without_scroll(event, target)
            return None

        center = self._measurer.measure(target)
        if center is None:
            # Not an error: the next tick or layout-settle signal retries.
            self._pending_index = target
            logger.debug("Line %s not measured yet; %s dropped", target, name)
            self._trace("dispatch_skip", event=name, idx=target, reason="not_ready")
            return None

        cell = self._cell
        target_offset = round(center - self._layout.container_midpoint_px())
        delta = target_offset - cell.last_transform_offset
        first_assignment = cell.last_index is None

        if isinstance(event, (Seek, LayoutChange)) or first_assignment or abs(delta) < self.min_motion_px:
            self.state = OrchestratorState.ALIGN_INSTANT
            command = TransformCommand(target_offset, 0)
        else:
            self.state = OrchestratorState.ALIGN_ANIMATED
            command = TransformCommand(
                target_offset,
                self.duration_model.duration(delta),
                self.duration_model.easing(),
            )

        if delta == 0:
            command = None
        else:
            self._write(command)

        self._trace(
            "scroll_compute",
            event=name,
            idx=target,
            target=target_offset,
            delta=delta,
            branch=self.state.value,
            duration=command.duration_ms if command else 0,
        )

        if target != cell.last_index:
            self._schedule_highlight(target)

        cell.last_index = target
        position = self._event_position(event)
        if position is not None:
            cell.last_position_ms = position
        cell.last_transform_offset = target_offset
        self._pending_index = None
        self.state = OrchestratorState.IDLE
        return command

    def _write(self, command: TransformCommand) -> None:
        self._renderer.on_transform(command.offset_px, command.duration_ms, command.easing)

    def _schedule_highlight(self, target: int) -> None:
        epoch = self._epoch

        def _apply():
            if epoch != self._epoch:
                return
            previous = self._displayed_index
            if previous == target:
                return
            self._displayed_index = target
            self._renderer.on_highlight_change(target, previous)

        self._scheduler.schedule_tick(_apply)

    def _follow_without_scroll(self, event, target):
        # Highlight keeps following playback while the user browses.
        if isinstance(event, LayoutChange) and event.idx is None:
            return
        cell = self._cell
        if target != cell.last_index:
            self._schedule_highlight(target)
        cell.last_index = target
        position = self._event_position(event)
        if position is not None:
            cell.last_position_ms = position
        self._trace("browse_follow", idx=target)

    # Manual wheel browsing

    def _scroll_bounds(self):
        first = self._measurer.measure(0)
        last = self._measurer.measure(len(self._lines) - 1)
        if first is None or last is None:
            return None
        mid = self._layout.container_midpoint_px()
        return round(first - mid), round(last - mid)

    def user_scroll(self, delta_px) -> Optional[TransformCommand]:
        if not self._lines:
            return None
        try:
            dy = float(delta_px)
        except (TypeError, ValueError):
            return None
        if abs(dy) < 0.5:
            return None

        if not self._user_scrolling:
            logger.debug("Manual lyrics scroll started at index=%s", self._cell.last_index)
        self._user_scrolling = True

        offset = self._cell.last_transform_offset + dy * WHEEL_MULTIPLIER
        bounds = self._scroll_bounds()
        if bounds is not None:
            offset = max(bounds[0], min(bounds[1], offset))

        command = TransformCommand(offset, WHEEL_DURATION_MS, WHEEL_EASING)
        self._write(command)
        self._cell.last_transform_offset = offset
        self._trace("browse_scroll", delta=dy, target=offset)

        self._cancel_resume()
        epoch = self._epoch
        self._resume_handle = self._scheduler.schedule_after(
            self.resume_delay_ms, lambda: self._resume(epoch)
        )
        return command

    def _cancel_resume(self):
        if self._resume_handle is not None:
            self._scheduler.cancel(self._resume_handle)
            self._resume_handle = None

    def _resume(self, epoch):
        self._resume_handle = None
        if epoch != self._epoch or not self._user_scrolling:
            return
        self._user_scrolling = False
        idx = self._pending_index if self._pending_index is not None else self._cell.last_index
        logger.debug("Manual lyrics scroll ended; realigning to index=%s", idx)
        if idx is None:
            return
        self.dispatch(IndexChange(idx, self._cell.last_position_ms))
