"""Completion thresholds used by the progression engine."""

from dataclasses import dataclass
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from src.config.settings import Settings


@dataclass(frozen=True)
class CompletionOptions:
    """Thresholds that decide when a lesson visit counts as completed.

    Attributes:
        min_video_watch_percentage: Watch time over duration, in percent
        max_quiz_attempts: Submissions allowed before the quiz is exhausted
        min_quiz_pass_score: Pass mark, in percent
        min_content_read_time_seconds: Read time needed for text lessons
        min_file_view_time_seconds: View time needed for file lessons
        video_completion_ratio: Playhead ratio at which playback completes
        auto_advance_seconds: How long the auto-advance flag stays raised
    """

    min_video_watch_percentage: float = 95
    max_quiz_attempts: int = 2
    min_quiz_pass_score: float = 70
    min_content_read_time_seconds: float = 30
    min_file_view_time_seconds: float = 10
    video_completion_ratio: float = 0.95
    auto_advance_seconds: float = 1.0

    @classmethod
    def from_settings(cls, settings: "Settings") -> "CompletionOptions":
        """Build options from application settings."""
        return cls(
            min_video_watch_percentage=settings.progression_min_video_watch_percentage,
            max_quiz_attempts=settings.progression_max_quiz_attempts,
            min_quiz_pass_score=settings.progression_min_quiz_pass_score,
            min_content_read_time_seconds=settings.progression_min_content_read_time_seconds,
            min_file_view_time_seconds=settings.progression_min_file_view_time_seconds,
            video_completion_ratio=settings.progression_video_completion_ratio,
            auto_advance_seconds=settings.progression_auto_advance_seconds,
        )
