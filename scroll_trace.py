from __future__ import annotations

import logging
import time
from collections import deque
from typing import Protocol

logger = logging.getLogger(__name__)


class TraceSink(Protocol):
    def emit(self, name: str, **ctx) -> None:
        ...


class LoggingTraceSink:
    def __init__(self, log=None):
        self._log = log or logger

    def emit(self, name: str, **ctx) -> None:
        if self._log.isEnabledFor(logging.DEBUG):
            detail = " ".join(f"{k}={ctx[k]}" for k in sorted(ctx))
            self._log.debug("scroll %s %s", name, detail)


class RingBufferTraceSink:
    """Keeps the newest scroll events in memory for diagnostics views."""

    def __init__(self, size=200, clock=time.monotonic):
        self._events = deque(maxlen=max(1, int(size)))
        self._clock = clock

    def emit(self, name: str, **ctx) -> None:
        self._events.append({"name": name, "ts": self._clock(), **ctx})

    def events(self, name=None) -> list[dict]:
        if name is None:
            return list(self._events)
        return [e for e in self._events if e["name"] == name]

    def clear(self) -> None:
        self._events.clear()


class CompositeTraceSink:
    def __init__(self, *sinks):
        self.sinks = [s for s in sinks if s is not None]

    def emit(self, name: str, **ctx) -> None:
        for sink in self.sinks:
            sink.emit(name, **ctx)
