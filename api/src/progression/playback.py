"""Monotonic playback guard.

Tracks a high-water mark of the playhead so students cannot skip ahead of
what they have actually watched. Watch time only accrues for forward motion
past the high-water mark, so rewinding and replaying a span (or scrubbing
back and forth) never adds to it.
"""

from collections.abc import Callable
from dataclasses import dataclass

import structlog

from .models import VideoCompletionState


logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SeekResult:
    accepted: bool
    current_time: float
    skip_blocked: bool = False


class PlaybackGuard:
    """Playback state of one video during a lesson visit.

    Attributes:
        current_time: Playhead position
        last_watched_time: Furthest position reached by forward playback
        watch_time: Accumulated forward-progress seconds
        duration: Video duration (0 until metadata loads)
        is_completed: Set once, by the ratio threshold or the ended event
    """

    def __init__(
        self,
        completion_ratio: float = 0.95,
        on_complete: Callable[[], None] | None = None,
        on_watch_time_update: Callable[[float], None] | None = None,
    ):
        self.completion_ratio = completion_ratio
        self.on_complete = on_complete
        self.on_watch_time_update = on_watch_time_update
        self.current_time = 0.0
        self.last_watched_time = 0.0
        self.watch_time = 0.0
        self.duration = 0.0
        self.is_completed = False

    def on_metadata_loaded(self, duration: float) -> None:
        if duration > 0:
            self.duration = duration

    def on_time_update(self, current: float, total: float | None = None) -> bool:
        """Handle a playback time update.

        Returns:
            True if this update completed the video
        """
        if total:
            self.on_metadata_loaded(total)
        current = max(0.0, current)
        self.current_time = current

        if current >= self.last_watched_time:
            self.watch_time += current - self.last_watched_time
            self.last_watched_time = current
            if self.on_watch_time_update:
                self.on_watch_time_update(self.watch_time)

        if (
            self.duration > 0
            and current >= self.duration * self.completion_ratio
            and not self.is_completed
        ):
            return self._complete("threshold")
        return False

    def on_ended(self) -> bool:
        """Handle the ended event; completes regardless of the threshold."""
        if self.is_completed:
            return False
        return self._complete("ended")

    def can_seek_to(self, time: float) -> bool:
        return time <= self.last_watched_time

    def seek(self, new_time: float) -> SeekResult:
        """Move the playhead, unless the target is past the high-water mark."""
        if not self.can_seek_to(new_time):
            logger.info(
                "seek_blocked",
                requested=new_time,
                last_watched_time=self.last_watched_time,
            )
            return SeekResult(
                accepted=False, current_time=self.current_time, skip_blocked=True
            )

        self.current_time = max(0.0, new_time)
        return SeekResult(accepted=True, current_time=self.current_time)

    @property
    def progress_percent(self) -> float:
        if self.duration <= 0:
            return 0.0
        return min(100.0, self.current_time / self.duration * 100)

    @property
    def watch_progress_percent(self) -> float:
        if self.duration <= 0:
            return 0.0
        return min(100.0, self.watch_time / self.duration * 100)

    def snapshot(self) -> VideoCompletionState:
        return VideoCompletionState(
            watch_time_seconds=self.watch_time,
            duration_seconds=self.duration,
            completed=self.is_completed,
        )

    def _complete(self, reason: str) -> bool:
        self.is_completed = True
        logger.debug(
            "video_completed",
            reason=reason,
            watch_time=self.watch_time,
            duration=self.duration,
        )
        if self.on_complete:
            self.on_complete()
        return True
