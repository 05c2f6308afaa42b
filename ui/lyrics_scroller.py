import logging

import gi
gi.require_version("Gtk", "4.0")
from gi.repository import Gtk, GLib

logger = logging.getLogger(__name__)

FRAME_MS = 16
# Layout is not trusted while the viewport is this small.
MIN_VIEWPORT_HEIGHT = 100
WHEEL_STEP_PX = 48
RESIZE_DEBOUNCE_MS = 120


def render_lyrics_rows(app, lyrics=None, status_msg=None):
    logger.debug("Rendering lyrics rows. status=%s", status_msg)

    if getattr(app, "lyrics_vbox", None) is None:
        return

    while child := app.lyrics_vbox.get_first_child():
        app.lyrics_vbox.remove(child)
    app.lyric_widgets = []

    if status_msg:
        lbl = Gtk.Label(label=status_msg, css_classes=["title-2"], valign=Gtk.Align.CENTER)
        lbl.set_opacity(0.5)
        center = Gtk.Box(orientation=Gtk.Orientation.VERTICAL, valign=Gtk.Align.CENTER, vexpand=True)
        center.append(lbl)
        app.lyrics_vbox.append(center)
        return

    if lyrics is None or not lyrics.lines:
        spacer = Gtk.Box(vexpand=True)
        spacer.set_margin_bottom(20)
        app.lyrics_vbox.append(spacer)
        return

    for line in lyrics.lines:
        row = Gtk.Box(orientation=Gtk.Orientation.VERTICAL, spacing=2, css_classes=["lyric-row"])
        row.set_halign(Gtk.Align.CENTER)

        main_lbl = Gtk.Label(label=line.text or " ", css_classes=["lyric-line"], wrap=True, max_width_chars=40)
        main_lbl.set_justify(Gtk.Justification.CENTER)
        row.append(main_lbl)

        sub_lbl = None
        if line.translation:
            sub_lbl = Gtk.Label(
                label=line.translation,
                css_classes=["lyric-sub-line"],
                wrap=True,
                max_width_chars=42,
            )
            sub_lbl.set_justify(Gtk.Justification.CENTER)
            row.append(sub_lbl)

        app.lyrics_vbox.append(row)
        app.lyric_widgets.append({"time": line.timestamp_ms, "widget": row, "main": main_lbl, "sub": sub_lbl})
    logger.debug("Drew %s lyric rows", len(app.lyric_widgets))


class GtkLineMeasurer:
    def __init__(self, app):
        self._app = app

    def measure(self, index):
        rows = getattr(self._app, "lyric_widgets", None) or []
        box = getattr(self._app, "lyrics_vbox", None)
        scroller = getattr(self._app, "lyrics_scroller", None)
        if box is None or scroller is None or index < 0 or index >= len(rows):
            return None
        if scroller.get_height() < MIN_VIEWPORT_HEIGHT:
            return None
        widget = rows[index].get("widget")
        if widget is None:
            return None
        try:
            success, rect = widget.compute_bounds(box)
        except Exception as e:
            logger.debug("Lyric row %s bounds failed: %s", index, e)
            return None
        if not success or rect.size.height <= 0:
            return None
        return rect.origin.y + (rect.size.height / 2)


class GtkLayout:
    def __init__(self, app, anchor_ratio=0.5):
        self._app = app
        self.anchor_ratio = float(anchor_ratio)

    def container_midpoint_px(self):
        scroller = getattr(self._app, "lyrics_scroller", None)
        if scroller is None:
            return 0.0
        return scroller.get_height() * self.anchor_ratio


class GtkScrollRenderer:
    """Applies transform commands to the lyrics scroller's vertical adjustment."""

    def __init__(self, app):
        self._app = app
        self._anim_source = 0

    def _adjustment(self):
        scroller = getattr(self._app, "lyrics_scroller", None)
        return scroller.get_vadjustment() if scroller is not None else None

    def _cancel_animation(self):
        if self._anim_source:
            GLib.source_remove(self._anim_source)
            self._anim_source = 0

    def reset(self):
        self._cancel_animation()
        adj = self._adjustment()
        if adj is not None:
            adj.set_value(0)

    def on_transform(self, offset_px, duration_ms, easing):
        # A new command always supersedes the running transition.
        self._cancel_animation()
        adj = self._adjustment()
        if adj is None:
            return
        max_scroll = max(0.0, adj.get_upper() - adj.get_page_size())
        target = max(0.0, min(float(offset_px), max_scroll))
        start = adj.get_value()
        if duration_ms <= 0 or easing is None or abs(target - start) < 0.5:
            adj.set_value(target)
            return

        start_us = GLib.get_monotonic_time()
        span_us = max(1, int(duration_ms * 1000))

        def _tick():
            elapsed = GLib.get_monotonic_time() - start_us
            t = min(1.0, max(0.0, float(elapsed) / float(span_us)))
            adj.set_value(start + (target - start) * easing.evaluate(t))
            if t >= 1.0:
                self._anim_source = 0
                return False
            return True

        self._anim_source = GLib.timeout_add(FRAME_MS, _tick)

    def on_highlight_change(self, current_index, previous_index):
        rows = getattr(self._app, "lyric_widgets", None) or []
        if previous_index is not None and 0 <= previous_index < len(rows):
            prev = rows[previous_index]
            prev["widget"].remove_css_class("active")
            prev["main"].remove_css_class("active")
            if prev.get("sub") is not None:
                prev["sub"].remove_css_class("active")
        if current_index is not None and 0 <= current_index < len(rows):
            cur = rows[current_index]
            cur["widget"].add_css_class("active")
            cur["main"].add_css_class("active")
            if cur.get("sub") is not None:
                cur["sub"].add_css_class("active")


def install_lyrics_scroll_controller(app, on_scroll):
    scroller = getattr(app, "lyrics_scroller", None)
    if scroller is None:
        return None
    ctrl = Gtk.EventControllerScroll.new(Gtk.EventControllerScrollFlags.VERTICAL)

    def _on_scroll(_ctrl, _dx, dy):
        on_scroll(dy * WHEEL_STEP_PX)
        return True

    ctrl.connect("scroll", _on_scroll)
    scroller.add_controller(ctrl)
    return ctrl


def watch_lyrics_viewport(app, on_resized):
    scroller = getattr(app, "lyrics_scroller", None)
    if scroller is None:
        return
    state = {"source": 0}

    def _flush():
        state["source"] = 0
        on_resized()
        return False

    def _on_page_size(_adj, _param):
        if state["source"]:
            GLib.source_remove(state["source"])
        state["source"] = GLib.timeout_add(RESIZE_DEBOUNCE_MS, _flush)

    scroller.get_vadjustment().connect("notify::page-size", _on_page_size)
