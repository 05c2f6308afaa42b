import logging

from gi.repository import GLib

logger = logging.getLogger(__name__)

FRAME_INTERVAL_MS = 16


class GLibScheduler:
    """Scheduler on the GLib main loop using one-shot timeout sources."""

    def __init__(self, frame_interval_ms=FRAME_INTERVAL_MS):
        self.frame_interval_ms = max(1, int(frame_interval_ms))
        self._live = set()

    def _add(self, delay_ms, callback):
        handle = None

        def _fire():
            self._live.discard(handle)
            try:
                callback()
            except Exception:
                logger.exception("Scheduled callback failed")
            return False

        handle = GLib.timeout_add(max(0, int(delay_ms)), _fire)
        self._live.add(handle)
        return handle

    def schedule_tick(self, callback):
        return self._add(self.frame_interval_ms, callback)

    def schedule_after(self, delay_ms, callback):
        return self._add(delay_ms, callback)

    def cancel(self, handle):
        # Removing an already-fired source makes GLib emit a critical warning.
        if handle in self._live:
            self._live.discard(handle)
            GLib.source_remove(handle)
