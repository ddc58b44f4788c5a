"""Progression sessions.

A ``ProgressionSession`` hosts one student's coordinator for one course
together with the engagement state of the lesson currently open. It turns
playback, quiz and reading events into completion writes. Events tagged
with a lesson other than the current one (late ``timeupdate`` after the
student navigated away) are ignored.

``SessionRegistry`` keeps one session per (student, course) and evicts
idle ones.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable
from uuid import UUID

import structlog

from src.core.context import bind_progression_context
from src.courses.models import ContentType
from src.courses.schemas import CourseTree, LessonNode
from src.progress.schemas import (
    CourseProgressResponse,
    ProgressEntryResponse,
    RecordLessonCompletionRequest,
    RecordQuizResultRequest,
)

from .completion import LessonCompletionTracker
from .coordinator import ProgressionCoordinator
from .evaluators import resolve_gate_type
from .interfaces import CourseCatalog, ProgressStore
from .models import CompletionVerdict
from .options import CompletionOptions
from .playback import PlaybackGuard, SeekResult
from .quiz import QuizSubmissionResult


if TYPE_CHECKING:
    from src.progress.service import ProgressService

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class ProgressionError(Exception):
    """Base progression error."""

    def __init__(self, message: str, code: str = "progression_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class SessionNotFoundError(ProgressionError):
    """No open session for this student and course."""

    def __init__(self, message: str = "No progression session open for this course"):
        super().__init__(message, "session_not_found")


class LessonNotFoundError(ProgressionError):
    """Lesson is not part of the course."""

    def __init__(self, message: str = "Lesson not found in course"):
        super().__init__(message, "lesson_not_found")


class ProgressUnavailableError(ProgressionError):
    """Progress store could not be read."""

    def __init__(self, message: str = "Progress store unavailable"):
        super().__init__(message, "progress_unavailable")


# ==============================================================================
# Store adapter
# ==============================================================================


@runtime_checkable
class QuizResultRecorder(Protocol):
    async def record_quiz_result(self, request: RecordQuizResultRequest) -> object: ...


class StoreBinding:
    """Binds the multi-student progress service to a single student."""

    def __init__(self, service: "ProgressService", user_id: UUID):
        self.service = service
        self.user_id = user_id

    async def get_course_progress(self, course_id: UUID) -> CourseProgressResponse:
        return await self.service.get_course_progress(self.user_id, course_id)

    async def record_lesson_completion(
        self, request: RecordLessonCompletionRequest
    ) -> ProgressEntryResponse:
        entry, _ = await self.service.record_lesson_completion(self.user_id, request)
        return ProgressEntryResponse.from_entity(entry)

    async def record_quiz_result(
        self, request: RecordQuizResultRequest
    ) -> ProgressEntryResponse:
        entry = await self.service.record_quiz_result(self.user_id, request)
        return ProgressEntryResponse.from_entity(entry)


# ==============================================================================
# Session
# ==============================================================================


@dataclass(frozen=True)
class EventOutcome:
    """What an engagement event did.

    Attributes:
        accepted: False when the event was for a lesson other than the current one
        lesson_completed: True when the lesson is completed and confirmed by the store
    """

    accepted: bool
    lesson_completed: bool = False


IGNORED = EventOutcome(accepted=False)


class ProgressionSession:
    """One student's live progression through one course."""

    def __init__(
        self,
        user_id: UUID,
        coordinator: ProgressionCoordinator,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.user_id = user_id
        self.coordinator = coordinator
        self._clock = clock
        self._begin_visit()

    @property
    def course(self) -> CourseTree:
        return self.coordinator.course

    @property
    def options(self) -> CompletionOptions:
        return self.coordinator.options

    @property
    def time_on_lesson(self) -> float:
        return self._clock() - self._visit_started_at

    def _begin_visit(self) -> None:
        self.lesson: LessonNode | None = self.coordinator.get_current_lesson()
        self.tracker = LessonCompletionTracker(self.options)
        self.playback = PlaybackGuard(completion_ratio=self.options.video_completion_ratio)
        self._visit_started_at = self._clock()

        if self.lesson is not None:
            video = self.lesson.content.video
            if video and video.duration_seconds:
                self.playback.on_metadata_loaded(video.duration_seconds)
            bind_progression_context(self.course.id, self.lesson.id)

    def _after_navigation(self, moved: bool) -> bool:
        current = self.coordinator.get_current_lesson()
        if moved and (self.lesson is None or current is None or current.id != self.lesson.id):
            self._begin_visit()
        return moved

    def _is_current(self, lesson_id: UUID) -> bool:
        if self.lesson is None or self.lesson.id != lesson_id:
            logger.debug(
                "stale_event_ignored",
                lesson_id=str(lesson_id),
                current_lesson_id=str(self.lesson.id) if self.lesson else None,
            )
            return False
        return True

    # Navigation

    def navigate(self, module_index: int, lesson_index: int) -> bool:
        return self._after_navigation(
            self.coordinator.navigate_to_lesson(module_index, lesson_index)
        )

    def navigate_to_lesson_id(self, lesson_id: UUID) -> bool:
        """Navigate by lesson id.

        Raises:
            LessonNotFoundError: If the lesson is not part of the course
        """
        position = self.coordinator.resolver.position_of(lesson_id)
        if position is None:
            raise LessonNotFoundError
        return self.navigate(position.module_index, position.lesson_index)

    def next(self) -> bool:
        return self._after_navigation(self.coordinator.navigate_to_next())

    def previous(self) -> bool:
        return self._after_navigation(self.coordinator.navigate_to_previous())

    # Video

    async def time_update(
        self, lesson_id: UUID, current: float, total: float | None = None
    ) -> EventOutcome:
        if not self._is_current(lesson_id):
            return IGNORED
        finished = self.playback.on_time_update(current, total)
        self.tracker.update_video_progress(self.playback.watch_time, self.playback.duration)
        if finished:
            self.tracker.mark_video_completed()
        return await self._complete_if_satisfied()

    def seek(self, lesson_id: UUID, new_time: float) -> SeekResult | None:
        if not self._is_current(lesson_id):
            return None
        return self.playback.seek(new_time)

    async def ended(self, lesson_id: UUID) -> EventOutcome:
        if not self._is_current(lesson_id):
            return IGNORED
        self.playback.on_ended()
        self.tracker.mark_video_completed()
        return await self._complete_if_satisfied()

    # Quiz

    async def submit_quiz(
        self, lesson_id: UUID, score: int, total_questions: int
    ) -> tuple[EventOutcome, QuizSubmissionResult | None]:
        if not self._is_current(lesson_id):
            return IGNORED, None

        # Graded against the lesson's own questions, not the client's count
        expected = self.lesson.content.question_count or None
        counted_before = self.tracker.quiz.attempts
        result = self.tracker.submit_quiz(score, total_questions, expected)
        if result.attempts > counted_before:
            await self._record_quiz_result(result)
        return await self._complete_if_satisfied(), result

    def reset_quiz(self, lesson_id: UUID) -> EventOutcome:
        if not self._is_current(lesson_id):
            return IGNORED
        self.tracker.reset_quiz()
        return EventOutcome(accepted=True)

    async def _record_quiz_result(self, result: QuizSubmissionResult) -> None:
        store = self.coordinator.store
        if not isinstance(store, QuizResultRecorder) or self.lesson is None:
            return

        item = self.coordinator.resolver.get(self.lesson.id)
        request = RecordQuizResultRequest(
            course_id=self.course.id,
            module_id=item.module_id if item else None,
            lesson_id=self.lesson.id,
            score=result.percentage,
            passed=result.passed,
            attempts=result.attempts,
            time_spent_seconds=max(0, int(self.time_on_lesson)),
        )
        try:
            await store.record_quiz_result(request)
        except Exception:
            logger.warning(
                "quiz_result_record_failed",
                lesson_id=str(self.lesson.id),
                exc_info=True,
            )

    # Text and files

    async def update_read_time(self, lesson_id: UUID, seconds: float) -> EventOutcome:
        if not self._is_current(lesson_id):
            return IGNORED
        self.tracker.update_content_read_time(seconds)
        return await self._complete_if_satisfied()

    async def update_file_view_time(self, lesson_id: UUID, seconds: float) -> EventOutcome:
        if not self._is_current(lesson_id):
            return IGNORED
        self.tracker.update_file_view_time(seconds)
        return await self._complete_if_satisfied()

    # Completion

    async def complete(self, lesson_id: UUID) -> EventOutcome:
        """Retry the completion write of a lesson whose gate is satisfied."""
        if not self._is_current(lesson_id):
            return IGNORED
        return await self._complete_if_satisfied()

    def verdict(self) -> CompletionVerdict:
        if self.lesson is None:
            return CompletionVerdict.incomplete()
        return self.tracker.evaluate(self.lesson)

    async def _complete_if_satisfied(self) -> EventOutcome:
        lesson = self.lesson
        if lesson is None or not self.tracker.is_content_completed(lesson):
            return EventOutcome(accepted=True)
        if self.coordinator.is_lesson_completed(lesson.id):
            return EventOutcome(accepted=True, lesson_completed=True)

        confirmed = await self.coordinator.mark_lesson_completed(
            lesson.id, self.time_on_lesson
        )
        return EventOutcome(accepted=True, lesson_completed=confirmed)

    def gate_type(self) -> ContentType | None:
        return resolve_gate_type(self.lesson) if self.lesson else None


# ==============================================================================
# Registry
# ==============================================================================


class SessionRegistry:
    """Open progression sessions, one per (student, course).

    Sessions live in process memory. A session untouched for
    ``idle_seconds`` is evicted the next time the registry is used; its
    completions are already in the progress store, so reopening resumes it.
    """

    def __init__(
        self,
        catalog: CourseCatalog,
        store_factory: Callable[[UUID], ProgressStore],
        options: CompletionOptions | None = None,
        idle_seconds: float = 1800,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.catalog = catalog
        self.store_factory = store_factory
        self.options = options or CompletionOptions()
        self.idle_seconds = idle_seconds
        self._clock = clock
        self._sessions: dict[tuple[UUID, UUID], ProgressionSession] = {}
        self._last_used: dict[tuple[UUID, UUID], float] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def _evict_idle(self) -> None:
        cutoff = self._clock() - self.idle_seconds
        for key in [k for k, used in self._last_used.items() if used <= cutoff]:
            del self._sessions[key]
            del self._last_used[key]
            logger.info(
                "progression_session_evicted",
                user_id=str(key[0]),
                course_id=str(key[1]),
                idle_seconds=self.idle_seconds,
            )

    async def open(
        self,
        user_id: UUID,
        course_id: UUID,
        resume: bool = True,
    ) -> ProgressionSession:
        """Open (or reopen) a session, hydrated from the progress store.

        Raises:
            CourseNotFoundError: If the course does not exist
            ProgressUnavailableError: If progress could not be loaded
        """
        self._evict_idle()
        bind_progression_context(course_id)
        course = await self.catalog.get_course(course_id)
        coordinator = ProgressionCoordinator(
            course, self.store_factory(user_id), self.options, clock=self._clock
        )
        if not await coordinator.hydrate(resume=resume):
            raise ProgressUnavailableError

        session = ProgressionSession(user_id, coordinator, clock=self._clock)
        self._sessions[(user_id, course_id)] = session
        self._last_used[(user_id, course_id)] = self._clock()
        logger.info(
            "progression_session_opened",
            user_id=str(user_id),
            course_id=str(course_id),
            open_sessions=len(self._sessions),
        )
        return session

    def get(self, user_id: UUID, course_id: UUID) -> ProgressionSession:
        """Get an open session.

        Raises:
            SessionNotFoundError: If no session is open
        """
        self._evict_idle()
        session = self._sessions.get((user_id, course_id))
        if session is None:
            raise SessionNotFoundError
        self._last_used[(user_id, course_id)] = self._clock()
        return session

    def close(self, user_id: UUID, course_id: UUID) -> None:
        """Close a session.

        Raises:
            SessionNotFoundError: If no session is open
        """
        self._last_used.pop((user_id, course_id), None)
        if self._sessions.pop((user_id, course_id), None) is None:
            raise SessionNotFoundError
        logger.info(
            "progression_session_closed",
            user_id=str(user_id),
            course_id=str(course_id),
        )
