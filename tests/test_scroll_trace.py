import logging

from scroll_trace import CompositeTraceSink, LoggingTraceSink, RingBufferTraceSink


def test_ring_buffer_keeps_newest_events():
    ticks = iter(range(100))
    sink = RingBufferTraceSink(size=3, clock=lambda: next(ticks))
    for i in range(5):
        sink.emit("scroll_compute", idx=i)
    sink.emit("dispatch_skip", reason="empty")

    events = sink.events()
    assert [e["name"] for e in events] == ["scroll_compute", "scroll_compute", "dispatch_skip"]
    assert [e["idx"] for e in sink.events("scroll_compute")] == [3, 4]
    assert events[-1]["ts"] == 5

    sink.clear()
    assert sink.events() == []


def test_logging_sink_writes_debug_records(caplog):
    sink = LoggingTraceSink()
    with caplog.at_level(logging.DEBUG, logger="scroll_trace"):
        sink.emit("scroll_compute", idx=2, delta=-30)
    assert "scroll scroll_compute delta=-30 idx=2" in caplog.text


def test_composite_sink_fans_out():
    first = RingBufferTraceSink(clock=lambda: 0)
    second = RingBufferTraceSink(clock=lambda: 0)
    sink = CompositeTraceSink(first, None, second)
    sink.emit("load", lines=4)
    assert first.events() == second.events() == [{"name": "load", "ts": 0, "lines": 4}]
