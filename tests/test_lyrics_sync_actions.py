from types import SimpleNamespace

import pytest

gi = pytest.importorskip("gi")
try:
    gi.require_version("Gtk", "4.0")
except ValueError:
    pytest.skip("GTK 4 typelib not available", allow_module_level=True)

from actions import lyrics_sync_actions
from event_dispatcher import EventDispatcher
from frame_loop import DrawLoop
from glib_scheduler import GLibScheduler
from lyrics_manager import LyricsManager
from position_source import HybridPositionSource
from sync_fakes import FakeScheduler, make_lyrics, make_orchestrator


class FakePlayer:
    def __init__(self, seconds=0.0):
        self.seconds = seconds
        self.seeks = []

    def get_position(self):
        return self.seconds, 300.0

    def seek(self, seconds):
        self.seeks.append(seconds)


def _make_app():
    orch, renderer, scheduler, _ = make_orchestrator([10, 40, 70, 160])
    player = FakePlayer()
    source = HybridPositionSource(player, lead_ms=0)
    dispatcher = EventDispatcher(orch, source)
    dispatcher.load_lyrics(make_lyrics([0, 3000, 6000, 9000]))
    app = SimpleNamespace(
        player=player,
        position_source=source,
        lyrics_orchestrator=orch,
        lyrics_dispatcher=dispatcher,
        lyrics_draw_loop=DrawLoop(FakeScheduler(), dispatcher.tick),
    )
    return app, renderer


def test_setup_wires_components_from_settings():
    app = SimpleNamespace(
        settings={"lyrics_animation_style": "smooth_swift", "lyrics_user_offset_ms": 100},
        backend=SimpleNamespace(get_lyrics=lambda track_id: "[00:01.00]x"),
    )
    lyrics_sync_actions.setup_lyrics_sync(app, FakePlayer())

    assert app.lyrics_orchestrator.duration_model.preset.name == "smooth_swift"
    assert app.position_source.offset_ms == 100
    assert isinstance(app.lyrics_provider, LyricsManager)
    assert app.lyrics_draw_loop.running is False


def test_apply_sync_settings_updates_live_components():
    app = SimpleNamespace(settings={})
    lyrics_sync_actions.setup_lyrics_sync(app, FakePlayer())

    lyrics_sync_actions.apply_sync_settings(
        app,
        {"lyrics_animation_enabled": False, "lyrics_seek_index_span": 6, "lyrics_user_offset_ms": -400},
    )
    assert app.lyrics_orchestrator.duration_model.preset.name == "precise_snap"
    assert app.lyrics_dispatcher.classifier.thresholds.index_span == 6
    assert app.position_source.offset_ms == -400


def test_seek_request_aligns_immediately_while_paused():
    app, renderer = _make_app()
    lyrics_sync_actions.on_seek_requested(app, 9500)

    assert app.player.seeks == [9.5]
    # Backend still reports 0; the seek mask stands in for it.
    assert app.lyrics_orchestrator.current_index == 3
    assert renderer.transforms[-1] == (60, 0, None)


def test_playing_toggle_starts_and_stops_draw_loop():
    app, _ = _make_app()
    lyrics_sync_actions.on_playing_changed(app, True)
    assert app.lyrics_draw_loop.running

    app.player.seconds = 3.2
    lyrics_sync_actions.on_playing_changed(app, False)
    assert not app.lyrics_draw_loop.running
    assert app.lyrics_orchestrator.current_index == 1


def test_handlers_without_sync_are_noops():
    app = SimpleNamespace()
    assert lyrics_sync_actions.on_lyrics_scroll(app, 20) is False
    lyrics_sync_actions.on_lyrics_layout_changed(app, "font")
    lyrics_sync_actions.stop_lyrics_sync(app)
    lyrics_sync_actions.shutdown_lyrics_sync(app)


def test_glib_scheduler_runs_and_cancels():
    from gi.repository import GLib

    sched = GLibScheduler()
    calls = []
    kept = sched.schedule_after(0, lambda: calls.append("a"))
    dropped = sched.schedule_after(0, lambda: calls.append("b"))
    sched.cancel(dropped)

    ctx = GLib.MainContext.default()
    for _ in range(50):
        if calls:
            break
        ctx.iteration(True)
    assert calls == ["a"]
    # Already fired: cancel is a no-op.
    sched.cancel(kept)


def test_engine_switch_without_second_backend_is_refused():
    app, _ = _make_app()
    assert lyrics_sync_actions.on_engine_switched(app, "inprocess") is False


def test_fetch_lyrics_result_keeps_errors_per_request():
    failing = LyricsManager(lambda track_id: None)
    ok = LyricsManager(lambda track_id: "[00:01.00]x")

    missing = lyrics_sync_actions.fetch_lyrics_result(failing, 1)
    found = lyrics_sync_actions.fetch_lyrics_result(ok, 2)
    assert missing.error_kind == "not_found"
    assert found.error_kind is None
    assert found.lyrics.lines[0].text == "x"


def test_fetch_lyrics_result_classifies_plain_provider_errors():
    class Provider:
        def get_parsed_lyrics(self, track_id):
            raise RuntimeError("503 Service Unavailable")

    result = lyrics_sync_actions.fetch_lyrics_result(Provider(), 1)
    assert result.lyrics is None
    assert result.error_kind == "server"
    assert result.error_message == "Lyrics service is temporarily unavailable."
