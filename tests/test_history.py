"""
Tests for the anomaly history window.
"""

import pytest

from anomaly.history import AnomalyHistoryWindow, HistoryEntry


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class TestRecord:
    def test_one_entry_per_class(self, make_detection):
        history = AnomalyHistoryWindow(window=10.0)
        history.record(
            [make_detection("pedestrian"), make_detection("pedestrian"), make_detection("car")],
            now=100.0,
        )
        assert history.entries == (
            HistoryEntry("pedestrian", 2, 100.0),
            HistoryEntry("car", 1, 100.0),
        )

    def test_empty_frame_adds_nothing(self):
        history = AnomalyHistoryWindow(window=10.0)
        history.record([], now=100.0)
        assert len(history) == 0

    def test_stale_entries_purged_on_record(self, make_detection):
        history = AnomalyHistoryWindow(window=10.0)
        history.record([make_detection("car")], now=100.0)
        history.record([make_detection("bus")], now=110.0)
        # Exactly one window old is already out.
        assert [e.class_name for e in history.entries] == ["bus"]

    def test_purge_is_a_full_pass(self, make_detection):
        history = AnomalyHistoryWindow(window=10.0)
        # Out-of-order timestamps: the stale entry sits behind a fresh one.
        history.record([make_detection("car")], now=105.0)
        history.record([make_detection("bus")], now=94.0)
        history.record([make_detection("cart")], now=106.0)
        assert {e.class_name for e in history.entries} == {"car", "cart"}

    def test_rejects_non_positive_window(self):
        with pytest.raises(ValueError):
            AnomalyHistoryWindow(window=0)


class TestFrequencies:
    def test_sums_counts_across_entries(self, make_detection):
        history = AnomalyHistoryWindow(window=10.0)
        history.record([make_detection("pedestrian")] * 3, now=100.0)
        history.record([make_detection("pedestrian")] * 2 + [make_detection("car")], now=101.0)
        assert history.frequencies(now=101.0) == {"pedestrian": 5, "car": 1}

    def test_class_disappears_after_window(self, make_detection):
        clock = FakeClock()
        history = AnomalyHistoryWindow(window=10.0, clock=clock)
        history.record([make_detection("bus")])
        assert history.frequencies() == {"bus": 1}

        clock.advance(9.9)
        assert history.frequencies() == {"bus": 1}

        clock.advance(0.2)
        assert "bus" not in history.frequencies()

    def test_recomputed_each_call(self, make_detection):
        history = AnomalyHistoryWindow(window=10.0)
        history.record([make_detection("car")], now=1.0)
        first = history.frequencies(now=1.0)
        first["car"] = 99
        assert history.frequencies(now=1.0) == {"car": 1}

    def test_clear(self, make_detection):
        history = AnomalyHistoryWindow(window=10.0)
        history.record([make_detection("car")], now=1.0)
        history.clear()
        assert history.frequencies(now=1.0) == {}
