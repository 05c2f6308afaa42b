from seek_classifier import DEFAULT_AVG_INTERVAL_MS, SeekClassifier, SeekThresholds, average_interval_ms
from sync_fakes import make_lyrics


def _classifier(timestamps, **kwargs):
    clf = SeekClassifier(SeekThresholds(**kwargs))
    clf.set_lines(make_lyrics(timestamps).lines)
    return clf


def test_average_interval_ignores_instrumental_breaks():
    lines = make_lyrics([0, 3000, 6000, 90000, 93000]).lines
    assert average_interval_ms(lines) == 3000


def test_average_interval_falls_back_without_usable_gaps():
    assert average_interval_ms(make_lyrics([1000]).lines) == DEFAULT_AVG_INTERVAL_MS
    assert average_interval_ms(make_lyrics([1000, 1000]).lines) == DEFAULT_AVG_INTERVAL_MS
    assert average_interval_ms(()) == DEFAULT_AVG_INTERVAL_MS


def test_time_threshold_scales_with_cadence_and_is_clamped():
    assert _classifier([i * 3000 for i in range(8)]).time_threshold_ms() == 9000
    # Fast song: 1500ms raw, raised to the floor.
    assert _classifier([i * 500 for i in range(8)]).time_threshold_ms() == 8000
    # Slow song: 60000ms raw, capped.
    assert _classifier([i * 20000 for i in range(8)]).time_threshold_ms() == 30000


def test_time_boundary_is_exclusive():
    clf = _classifier([i * 3000 for i in range(8)])
    assert clf.classify(0, 1, 0, 9000) is False
    assert clf.classify(0, 1, 0, 9001) is True


def test_index_span_detects_seek():
    clf = _classifier([i * 3000 for i in range(8)])
    assert clf.classify(0, 3, 0, 100) is True
    assert clf.classify(0, 2, 0, 100) is False
    assert clf.classify(5, 2, 15000, 14000) is True


def test_normal_line_advance_is_not_a_seek():
    clf = _classifier([i * 3000 for i in range(8)])
    assert clf.classify(0, 1, 0, 3000) is False
    assert clf.classify(4, 3, 12000, 11000) is False


def test_first_assignment_is_never_a_seek():
    clf = _classifier([i * 3000 for i in range(8)])
    assert clf.classify(None, 7, 0, 21000) is False


def test_classify_picks_up_new_lines():
    clf = SeekClassifier()
    fast = make_lyrics([i * 500 for i in range(8)]).lines
    slow = make_lyrics([i * 20000 for i in range(8)]).lines
    assert clf.classify(0, 1, 0, 20000, fast) is True
    assert clf.classify(0, 1, 0, 20000, slow) is False


def test_custom_thresholds():
    clf = _classifier([i * 3000 for i in range(8)], index_span=5, time_multiplier=2.0)
    assert clf.time_threshold_ms() == 8000
    assert clf.classify(0, 4, 0, 100) is False
    assert clf.classify(0, 5, 0, 100) is True
