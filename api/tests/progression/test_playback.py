"""Tests for the monotonic playback guard."""

from unittest.mock import Mock

import pytest

from src.progression.playback import PlaybackGuard


@pytest.fixture
def guard() -> PlaybackGuard:
    guard = PlaybackGuard()
    guard.on_metadata_loaded(100.0)
    return guard


def play(guard: PlaybackGuard, start: int, end: int) -> None:
    for second in range(start, end + 1):
        guard.on_time_update(float(second))


class TestWatchTime:
    def test_forward_playback_accumulates(self, guard: PlaybackGuard):
        play(guard, 0, 10)

        assert guard.watch_time == pytest.approx(10.0)
        assert guard.last_watched_time == 10.0

    def test_rewatching_does_not_duplicate(self, guard: PlaybackGuard):
        """0 -> 10, back to 0, 0 -> 10 again counts 10 seconds, not 20."""
        play(guard, 0, 10)
        assert guard.seek(0.0).accepted is True
        play(guard, 0, 10)

        assert guard.watch_time == pytest.approx(10.0)

    def test_rewinding_keeps_high_water_mark(self, guard: PlaybackGuard):
        play(guard, 0, 30)
        guard.on_time_update(12.0)

        assert guard.current_time == 12.0
        assert guard.last_watched_time == 30.0

    def test_watch_time_callback(self):
        updates = []
        guard = PlaybackGuard(on_watch_time_update=updates.append)

        guard.on_time_update(1.0, 100.0)
        guard.on_time_update(2.0, 100.0)

        assert updates == [1.0, 2.0]

    def test_duration_arrives_late(self):
        guard = PlaybackGuard()

        guard.on_time_update(5.0)
        assert guard.progress_percent == 0.0
        assert guard.watch_progress_percent == 0.0

        guard.on_time_update(6.0, 10.0)
        assert guard.duration == 10.0
        assert guard.watch_progress_percent == pytest.approx(60.0)


class TestSeek:
    def test_forward_seek_is_rejected(self, guard: PlaybackGuard):
        """Seeking past the high-water mark leaves the playhead where it was."""
        play(guard, 0, 20)

        result = guard.seek(50.0)

        assert result.accepted is False
        assert result.skip_blocked is True
        assert guard.current_time <= guard.last_watched_time == 20.0

    def test_seek_within_watched_span(self, guard: PlaybackGuard):
        play(guard, 0, 20)

        result = guard.seek(5.0)

        assert result.accepted is True
        assert result.current_time == 5.0
        assert guard.current_time == 5.0

    def test_seek_to_high_water_mark_is_allowed(self, guard: PlaybackGuard):
        play(guard, 0, 20)

        assert guard.can_seek_to(20.0) is True
        assert guard.seek(20.0).accepted is True

    def test_seek_does_not_add_watch_time(self, guard: PlaybackGuard):
        play(guard, 0, 20)
        guard.seek(90.0)

        assert guard.watch_time == pytest.approx(20.0)


class TestCompletion:
    def test_completes_at_ratio(self, guard: PlaybackGuard):
        play(guard, 0, 94)
        assert guard.is_completed is False

        assert guard.on_time_update(95.0) is True
        assert guard.is_completed is True

    def test_on_complete_fires_once(self):
        on_complete = Mock()
        guard = PlaybackGuard(on_complete=on_complete)
        guard.on_metadata_loaded(10.0)

        for second in range(11):
            guard.on_time_update(float(second))
        guard.on_ended()

        on_complete.assert_called_once_with()

    def test_ended_forces_completion(self, guard: PlaybackGuard):
        play(guard, 0, 50)

        assert guard.on_ended() is True
        assert guard.is_completed is True
        assert guard.snapshot().completed is True

    def test_snapshot(self, guard: PlaybackGuard):
        play(guard, 0, 40)

        snapshot = guard.snapshot()

        assert snapshot.watch_time_seconds == pytest.approx(40.0)
        assert snapshot.duration_seconds == 100.0
        assert snapshot.completed is False
