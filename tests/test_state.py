import pytest

from conftest import FakeItem
from state import (
    MIN_SCROBBLE_DURATION_MS,
    MIN_SCROBBLE_PERCENTAGE,
    SessionAccumulator,
    is_scrobble_eligible,
)


class TestThresholds:
    def test_constants(self):
        assert MIN_SCROBBLE_DURATION_MS == 240_000
        assert MIN_SCROBBLE_PERCENTAGE == 0.5

    def test_half_of_five_minute_track(self):
        assert is_scrobble_eligible(150_000, 300)
        assert not is_scrobble_eligible(149_999, 300)

    def test_four_minutes_on_long_track(self):
        """A 20 minute track qualifies at 4 minutes, long before 50%."""
        assert is_scrobble_eligible(240_000, 1200)
        assert not is_scrobble_eligible(239_999, 1200)

    @pytest.mark.parametrize("duration", [None, 0, -5])
    def test_unknown_duration_never_eligible(self, duration):
        assert not is_scrobble_eligible(10_000_000, duration)

    def test_monotonic_once_eligible(self):
        assert all(is_scrobble_eligible(ms, 300) for ms in range(150_000, 400_000, 7_919))


class TestPauseResume:
    def test_starts_with_open_segment(self, clock):
        acc = SessionAccumulator(clock)
        assert acc.segment_start == clock.now
        clock.advance(5_000)
        acc.pause()
        assert acc.cumulative_ms == 5_000

    def test_sum_of_playing_intervals(self, clock):
        acc = SessionAccumulator(clock)
        acc.pause()
        played = 0
        for play_ms, pause_ms in [(1_000, 50_000), (12_345, 1), (0, 600_000), (77_777, 3)]:
            acc.resume()
            clock.advance(play_ms)
            played += play_ms
            acc.pause()
            clock.advance(pause_ms)
        assert acc.cumulative_ms == played
        assert acc.segment_start is None

    def test_pause_is_idempotent(self, clock):
        acc = SessionAccumulator(clock)
        clock.advance(2_000)
        acc.pause()
        clock.advance(9_000)
        acc.pause()
        assert acc.cumulative_ms == 2_000

    def test_repeated_resume_keeps_segment(self, clock):
        acc = SessionAccumulator(clock)
        clock.advance(3_000)
        acc.resume()
        clock.advance(4_000)
        acc.pause()
        assert acc.cumulative_ms == 7_000


class TestRetire:
    def test_nothing_tracked(self, clock):
        acc = SessionAccumulator(clock)
        assert acc.retire(FakeItem()) is None
        assert acc.listen_id == 1

    def test_closes_open_segment_before_evaluating(self, clock):
        acc = SessionAccumulator(clock)
        a, b = FakeItem("A", duration=300), FakeItem("B")
        acc.adopt(a)
        clock.advance(200_000)

        out = acc.retire(b)

        assert out.item is a
        assert out.cumulative_ms == 200_000
        assert out.eligible
        assert acc.current_item is b
        assert acc.cumulative_ms == 0
        assert acc.segment_start == clock.now
        assert acc.scrobbled is False

    @pytest.mark.parametrize("duration, eligible", [(300, True), (600, False)])
    def test_time_paused_is_not_counted(self, clock, duration, eligible):
        acc = SessionAccumulator(clock)
        acc.adopt(FakeItem("A", duration=duration))
        clock.advance(100_000)
        acc.pause()
        clock.advance(600_000)
        acc.resume()
        clock.advance(50_000)

        out = acc.retire(FakeItem("B"))

        assert out.cumulative_ms == 150_000
        assert out.eligible is eligible

    def test_unknown_duration(self, clock):
        acc = SessionAccumulator(clock)
        acc.adopt(FakeItem("A", duration=None))
        clock.advance(500_000)
        assert acc.retire(FakeItem("B")).eligible is False

    def test_already_scrobbled_is_not_eligible(self, clock):
        acc = SessionAccumulator(clock)
        acc.adopt(FakeItem("A", duration=300))
        clock.advance(200_000)
        assert acc.mark_scrobbled(acc.listen_id)

        out = acc.retire(FakeItem("B"))

        assert out.scrobbled
        assert not out.eligible

    def test_same_item_again_is_a_new_listen(self, clock):
        acc = SessionAccumulator(clock)
        a = FakeItem("A", duration=300)
        acc.adopt(a)
        clock.advance(200_000)
        acc.mark_scrobbled(acc.listen_id)

        acc.retire(a)

        assert acc.current_item is a
        assert acc.cumulative_ms == 0
        assert acc.scrobbled is False

    def test_late_mark_does_not_touch_new_listen(self, clock):
        acc = SessionAccumulator(clock)
        acc.adopt(FakeItem("A"))
        out = acc.retire(FakeItem("B"))
        assert not acc.mark_scrobbled(out.listen_id)
        assert acc.scrobbled is False


class TestAdopt:
    def test_adopts_startup_context(self, clock):
        acc = SessionAccumulator(clock)
        a = FakeItem()
        assert acc.adopt(a)
        assert acc.current_item is a

    def test_transition_wins_over_startup_context(self, clock):
        acc = SessionAccumulator(clock)
        b = FakeItem("B")
        acc.retire(b)
        assert not acc.adopt(FakeItem("stale"))
        assert acc.current_item is b
