"""Engagement tracking for a single lesson visit."""

from collections.abc import Callable

import structlog

from src.courses.models import ContentType
from src.courses.schemas import LessonNode

from .evaluators import completion_requirements, evaluate_content, evaluate_lesson
from .models import CompletionRequirement, CompletionVerdict, ContentCompletionState
from .options import CompletionOptions
from .quiz import QuizAttemptTracker, QuizSubmissionResult


logger = structlog.get_logger(__name__)

ContentCompletedCallback = Callable[[ContentType, float | None], None]


class LessonCompletionTracker:
    """Collects engagement for one lesson visit and evaluates it.

    ``on_content_completed(content_type, score)`` fires the first time a
    content type reaches completion during the visit.
    """

    def __init__(
        self,
        options: CompletionOptions,
        on_content_completed: ContentCompletedCallback | None = None,
    ):
        self.options = options
        self.on_content_completed = on_content_completed
        self.reset()

    def reset(self) -> None:
        """Start a fresh visit."""
        self.state = ContentCompletionState()
        self.quiz = QuizAttemptTracker(
            max_attempts=self.options.max_quiz_attempts,
            min_pass_score=self.options.min_quiz_pass_score,
        )
        self.state.quiz = self.quiz.snapshot()
        self._notified: set[ContentType] = set()

    # Video

    def update_video_progress(self, watch_time_seconds: float, duration_seconds: float) -> None:
        video = self.state.video
        video.watch_time_seconds = max(video.watch_time_seconds, watch_time_seconds)
        if duration_seconds > 0:
            video.duration_seconds = duration_seconds
        self._check(ContentType.VIDEO)

    def mark_video_completed(self) -> None:
        self.state.video.completed = True
        self._check(ContentType.VIDEO)

    # Quiz

    def submit_quiz(
        self,
        score: int,
        total_questions: int,
        expected_questions: int | None = None,
    ) -> QuizSubmissionResult:
        self.quiz.start()
        result = self.quiz.submit(score, total_questions, expected_questions)
        self.state.quiz = self.quiz.snapshot()
        self._check(ContentType.QUIZ, score=result.percentage)
        return result

    def reset_quiz(self) -> None:
        self.quiz.reset()
        self.state.quiz = self.quiz.snapshot()
        if not self.quiz.completed:
            self._notified.discard(ContentType.QUIZ)

    # Text

    def update_content_read_time(self, read_time_seconds: float) -> None:
        text = self.state.text
        text.read_time_seconds = max(text.read_time_seconds, read_time_seconds)
        self._check(ContentType.TEXT)

    def mark_content_read(self) -> None:
        self.state.text.completed = True
        self._check(ContentType.TEXT)

    # File

    def update_file_view_time(self, view_time_seconds: float) -> None:
        file = self.state.file
        file.view_time_seconds = max(file.view_time_seconds, view_time_seconds)
        self._check(ContentType.FILE)

    def mark_file_viewed(self) -> None:
        self.state.file.completed = True
        self._check(ContentType.FILE)

    # Evaluation

    def evaluate(self, lesson: LessonNode) -> CompletionVerdict:
        return evaluate_lesson(lesson, self.state, self.options)

    def is_content_completed(self, lesson: LessonNode) -> bool:
        return self.evaluate(lesson).completed

    def get_completion_requirements(self, lesson: LessonNode) -> list[CompletionRequirement]:
        return completion_requirements(lesson, self.state, self.options)

    def _check(self, content_type: ContentType, score: float | None = None) -> None:
        if content_type in self._notified:
            return
        if not evaluate_content(content_type, self.state, self.options).completed:
            return

        self._notified.add(content_type)
        logger.debug("content_completed", content_type=content_type.value, score=score)
        if self.on_content_completed:
            self.on_content_completed(content_type, score)
