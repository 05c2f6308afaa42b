from __future__ import annotations

import logging
from typing import Callable, Protocol

logger = logging.getLogger(__name__)


class Scheduler(Protocol):
    def schedule_tick(self, callback: Callable[[], None]):
        """Run callback once on the next frame; returns a cancel handle."""
        ...

    def schedule_after(self, delay_ms: int, callback: Callable[[], None]):
        ...

    def cancel(self, handle) -> None:
        ...


class DrawLoop:
    """Per-frame driver that re-arms itself until stopped."""

    def __init__(self, scheduler: Scheduler, on_tick: Callable[[], None]):
        self._scheduler = scheduler
        self._on_tick = on_tick
        self._handle = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._handle = self._scheduler.schedule_tick(self._run)
        logger.debug("Draw loop started")

    def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        if self._handle is not None:
            self._scheduler.cancel(self._handle)
            self._handle = None
        logger.debug("Draw loop stopped")

    def _run(self) -> None:
        self._handle = None
        if not self._running:
            return
        try:
            self._on_tick()
        except Exception:
            # Never let one bad frame halt the loop.
            logger.exception("Draw loop tick failed")
        if self._running:
            self._handle = self._scheduler.schedule_tick(self._run)
