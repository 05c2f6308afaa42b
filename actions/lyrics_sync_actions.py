from threading import Thread
import logging

from gi.repository import GLib

from app_errors import classify_exception, user_message
from app_settings import normalize_settings, preset_from_settings, seek_thresholds_from_settings
from event_dispatcher import EventDispatcher
from frame_loop import DrawLoop
from glib_scheduler import GLibScheduler
from lyrics_manager import LyricsManager, LyricsResult
from position_source import HybridPositionSource
from scroll_events import LayoutReason
from scroll_motion import DurationModel
from scroll_orchestrator import ScrollOrchestrator
from scroll_trace import CompositeTraceSink, LoggingTraceSink, RingBufferTraceSink
from seek_classifier import SeekClassifier
from ui import lyrics_scroller

logger = logging.getLogger(__name__)

LOADING_HINT = "Loading Lyrics..."
LAYOUT_SETTLE_MS = 60


def setup_lyrics_sync(app, native_player, inprocess_player=None):
    settings = normalize_settings(getattr(app, "settings", None))

    app.lyrics_scheduler = GLibScheduler()
    app.lyrics_trace = RingBufferTraceSink()
    trace = CompositeTraceSink(app.lyrics_trace, LoggingTraceSink())
    app.lyrics_renderer = lyrics_scroller.GtkScrollRenderer(app)
    app.lyrics_layout = lyrics_scroller.GtkLayout(app, anchor_ratio=settings["lyrics_anchor_ratio"])
    app.lyrics_orchestrator = ScrollOrchestrator(
        lyrics_scroller.GtkLineMeasurer(app),
        app.lyrics_layout,
        app.lyrics_renderer,
        app.lyrics_scheduler,
        duration_model=DurationModel(preset_from_settings(settings)),
        min_motion_px=settings["lyrics_min_motion_px"],
        resume_delay_ms=settings["lyrics_scroll_resume_ms"],
        trace=trace,
    )
    app.position_source = HybridPositionSource(
        native_player,
        inprocess_player,
        offset_ms=settings["lyrics_user_offset_ms"],
        lead_ms=settings["lyrics_lead_ms"],
    )
    app.lyrics_dispatcher = EventDispatcher(
        app.lyrics_orchestrator,
        app.position_source,
        classifier=SeekClassifier(seek_thresholds_from_settings(settings)),
        trace=trace,
    )
    app.lyrics_draw_loop = DrawLoop(app.lyrics_scheduler, app.lyrics_dispatcher.tick)
    app._lyrics_request_id = 0

    if getattr(app, "lyrics_provider", None) is None:
        backend = getattr(app, "backend", None)
        if backend is not None and hasattr(backend, "get_lyrics"):
            app.lyrics_provider = LyricsManager(backend.get_lyrics)

    lyrics_scroller.install_lyrics_scroll_controller(app, lambda dy: on_lyrics_scroll(app, dy))
    lyrics_scroller.watch_lyrics_viewport(app, lambda: on_lyrics_layout_changed(app, LayoutReason.WINDOW))
    logger.info("Lyrics sync ready. preset=%s", app.lyrics_orchestrator.duration_model.preset.name)


def apply_sync_settings(app, settings):
    s = normalize_settings(settings)
    orch = getattr(app, "lyrics_orchestrator", None)
    if orch is not None:
        orch.duration_model = DurationModel(preset_from_settings(s))
        orch.min_motion_px = float(s["lyrics_min_motion_px"])
        orch.resume_delay_ms = int(s["lyrics_scroll_resume_ms"])
    dispatcher = getattr(app, "lyrics_dispatcher", None)
    if dispatcher is not None:
        dispatcher.classifier.thresholds = seek_thresholds_from_settings(s)
    source = getattr(app, "position_source", None)
    if source is not None:
        source.set_offset_ms(s["lyrics_user_offset_ms"])
        source.lead_ms = s["lyrics_lead_ms"]
    layout = getattr(app, "lyrics_layout", None)
    if layout is not None:
        layout.anchor_ratio = s["lyrics_anchor_ratio"]
    logger.debug("Lyrics sync settings applied: style=%s offset=%s", s["lyrics_animation_style"], s["lyrics_user_offset_ms"])


def fetch_lyrics_result(provider, track_id):
    # Runs on a worker thread: everything it reports belongs to this request.
    try:
        load = getattr(provider, "load", None)
        if callable(load):
            return load(track_id)
        return LyricsResult(provider.get_parsed_lyrics(track_id))
    except Exception as e:
        kind = classify_exception(e)
        logger.exception("Lyrics error [%s]: %s", kind, e)
        return LyricsResult(error_kind=kind)


def load_track_lyrics(app, track_id):
    logger.info("Loading lyrics for track=%s", track_id)
    app._lyrics_request_id = getattr(app, "_lyrics_request_id", 0) + 1
    request_id = app._lyrics_request_id

    app.lyrics_dispatcher.load_lyrics(None)
    lyrics_scroller.render_lyrics_rows(app, None, LOADING_HINT)

    provider = getattr(app, "lyrics_provider", None)
    if provider is None:
        lyrics_scroller.render_lyrics_rows(app, None, user_message("not_found"))
        return

    def task():
        result = fetch_lyrics_result(provider, track_id)
        lyrics = result.lyrics
        message = result.error_message or user_message("not_found")

        def apply_lyrics():
            if request_id != getattr(app, "_lyrics_request_id", 0):
                return False
            if lyrics is None or not lyrics.lines:
                lyrics_scroller.render_lyrics_rows(app, None, message)
                return False
            lyrics_scroller.render_lyrics_rows(app, lyrics)
            app.lyrics_renderer.reset()
            app.lyrics_dispatcher.load_lyrics(lyrics, start_ms=app.position_source.get_position_ms())

            def settle():
                if request_id == getattr(app, "_lyrics_request_id", 0):
                    on_lyrics_layout_changed(app, LayoutReason.LYRICS)
                return False

            GLib.timeout_add(LAYOUT_SETTLE_MS, settle)
            return False

        GLib.idle_add(apply_lyrics)

    Thread(target=task, daemon=True).start()


def start_lyrics_sync(app):
    loop = getattr(app, "lyrics_draw_loop", None)
    if loop is None or loop.running:
        return
    # Time passed while stopped is not a seek.
    app.lyrics_dispatcher.resync_clock()
    loop.start()


def stop_lyrics_sync(app):
    loop = getattr(app, "lyrics_draw_loop", None)
    if loop is not None:
        loop.stop()


def on_playing_changed(app, playing):
    if playing:
        start_lyrics_sync(app)
    else:
        stop_lyrics_sync(app)
        # Keep the view current for a paused scrub.
        app.lyrics_dispatcher.tick()


def on_lyrics_layout_changed(app, reason):
    dispatcher = getattr(app, "lyrics_dispatcher", None)
    if dispatcher is None:
        return
    dispatcher.notify_layout(reason)


def on_lyrics_scroll(app, dy):
    orch = getattr(app, "lyrics_orchestrator", None)
    if orch is None:
        return False
    orch.user_scroll(dy)
    return True


def on_seek_requested(app, position_ms):
    player = getattr(app, "player", None)
    if player is not None and hasattr(player, "seek"):
        player.seek(max(0.0, float(position_ms)) / 1000.0)
    app.position_source.note_seek(position_ms)
    if not app.lyrics_draw_loop.running:
        app.lyrics_dispatcher.tick()


def on_engine_switched(app, engine):
    return app.position_source.switch_engine(engine)


def shutdown_lyrics_sync(app):
    stop_lyrics_sync(app)
    orch = getattr(app, "lyrics_orchestrator", None)
    if orch is not None:
        orch.close()
