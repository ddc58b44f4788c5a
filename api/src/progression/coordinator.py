"""Progression coordinator.

Owns the ``ProgressionState`` of one student in one course: where the
student is, which lessons are completed and which are accessible.

Completion is request-then-confirm. A lesson enters the completed set only
after the progress store has confirmed the write; when the store fails the
local state is left as it was and the caller gets ``False`` so it can retry.
Store failures never escape this class.
"""

import asyncio
import math
import time
from collections.abc import Callable
from uuid import UUID

import structlog

from src.courses.schemas import CourseTree, LessonNode
from src.progress.schemas import CourseProgressResponse, RecordLessonCompletionRequest

from .accessibility import (
    AccessibilityResolver,
    completed_lessons_from_progress,
    next_position,
    previous_position,
)
from .interfaces import ProgressStore
from .models import LessonPosition, ProgressionState
from .options import CompletionOptions


logger = structlog.get_logger(__name__)


class ProgressionCoordinator:
    """Navigation and completion gating for one student in one course."""

    def __init__(
        self,
        course: CourseTree,
        store: ProgressStore,
        options: CompletionOptions | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.course = course
        self.store = store
        self.options = options or CompletionOptions()
        self.resolver = AccessibilityResolver(course)
        self._clock = clock
        self._lock = asyncio.Lock()
        self._auto_advance_until: float | None = None
        self._course_progress: CourseProgressResponse | None = None

        first = self.resolver.flat[0].position if self.resolver.flat else LessonPosition()
        self._state = ProgressionState(
            completed_lesson_ids=set(),
            accessible_lesson_ids=self.resolver.resolve(set()),
            current_position=first,
        )

    # ==========================================================================
    # Store synchronization
    # ==========================================================================

    async def hydrate(self, resume: bool = False) -> bool:
        """Load completed lessons from the progress store.

        Args:
            resume: Position the student on the last accessible lesson

        Returns:
            False if the store could not be read (state untouched)
        """
        try:
            progress = await self.store.get_course_progress(self.course.id)
        except Exception:
            logger.exception("progress_hydration_failed", course_id=str(self.course.id))
            return False

        self._apply_progress(progress)
        if resume:
            frontier = self.resolver.frontier(self._state.completed_lesson_ids)
            if frontier:
                self._state.current_position = frontier.position

        logger.info(
            "progression_hydrated",
            course_id=str(self.course.id),
            completed=len(self._state.completed_lesson_ids),
            accessible=len(self._state.accessible_lesson_ids),
        )
        return True

    async def refresh_course_progress(self) -> bool:
        """Re-read aggregate progress. Completions only ever grow the local set."""
        try:
            progress = await self.store.get_course_progress(self.course.id)
        except Exception:
            logger.warning(
                "course_progress_refresh_failed",
                course_id=str(self.course.id),
                exc_info=True,
            )
            return False

        self._apply_progress(progress)
        return True

    def _apply_progress(self, progress: CourseProgressResponse) -> None:
        known = completed_lessons_from_progress(progress) & self.resolver.lesson_ids
        self._state.completed_lesson_ids |= known
        self._state.accessible_lesson_ids = self.resolver.resolve(
            self._state.completed_lesson_ids
        )
        self._course_progress = progress

    # ==========================================================================
    # Navigation
    # ==========================================================================

    def navigate_to_lesson(self, module_index: int, lesson_index: int) -> bool:
        """Move to a lesson, if it is accessible."""
        target = LessonPosition(module_index, lesson_index)
        lesson = self.resolver.lesson_at(target)
        if lesson is None or lesson.id not in self._state.accessible_lesson_ids:
            logger.debug(
                "navigation_blocked",
                module_index=module_index,
                lesson_index=lesson_index,
            )
            return False

        self._state.current_position = target
        return True

    def navigate_to_next(self) -> bool:
        """Move to the immediate successor.

        Accessibility is not re-checked: this is called right after the
        current lesson completed, which is what unlocks the successor.
        """
        target = next_position(self.course, self._state.current_position)
        if target is None:
            return False

        self._state.current_position = target
        self._auto_advance_until = self._clock() + self.options.auto_advance_seconds
        return True

    def navigate_to_previous(self) -> bool:
        """Move to the immediate predecessor. Reviewing is never gated."""
        target = previous_position(self.course, self._state.current_position)
        if target is None:
            return False

        self._state.current_position = target
        return True

    @property
    def is_auto_advancing(self) -> bool:
        if self._auto_advance_until is None:
            return False
        return self._clock() < self._auto_advance_until

    # ==========================================================================
    # Completion
    # ==========================================================================

    async def mark_lesson_completed(
        self,
        lesson_id: UUID,
        time_spent_seconds: float = 0,
    ) -> bool:
        """Record the current lesson as completed.

        Returns:
            True once the store has confirmed the completion, False when the
            lesson is not the current one, is still locked, or the store
            write failed
        """
        async with self._lock:
            current = self.get_current_lesson()
            if current is None or current.id != lesson_id:
                logger.info(
                    "lesson_completion_ignored",
                    lesson_id=str(lesson_id),
                    reason="not_current_lesson",
                )
                return False

            if lesson_id in self._state.completed_lesson_ids:
                return True

            if lesson_id not in self._state.accessible_lesson_ids:
                logger.info(
                    "lesson_completion_ignored",
                    lesson_id=str(lesson_id),
                    reason="lesson_locked",
                )
                return False

            item = self.resolver.get(lesson_id)
            request = RecordLessonCompletionRequest(
                course_id=self.course.id,
                module_id=item.module_id if item else None,
                lesson_id=lesson_id,
                lesson_title=current.title,
                time_spent_seconds=max(0, int(time_spent_seconds)),
            )
            try:
                await self.store.record_lesson_completion(request)
            except Exception:
                logger.exception(
                    "lesson_completion_failed",
                    course_id=str(self.course.id),
                    lesson_id=str(lesson_id),
                )
                return False

            self._state.completed_lesson_ids.add(lesson_id)
            self._state.accessible_lesson_ids = self.resolver.resolve(
                self._state.completed_lesson_ids
            )
            logger.info(
                "lesson_completed",
                course_id=str(self.course.id),
                lesson_id=str(lesson_id),
                completion_percentage=self.get_course_completion_percentage(),
            )

            await self.refresh_course_progress()
            return True

    # ==========================================================================
    # Getters
    # ==========================================================================

    @property
    def state(self) -> ProgressionState:
        return self._state.copy()

    @property
    def course_progress(self) -> CourseProgressResponse | None:
        return self._course_progress

    @property
    def current_position(self) -> LessonPosition:
        return self._state.current_position

    def get_current_lesson(self) -> LessonNode | None:
        return self.resolver.lesson_at(self._state.current_position)

    def is_lesson_accessible(self, lesson_id: UUID) -> bool:
        return lesson_id in self._state.accessible_lesson_ids

    def is_lesson_completed(self, lesson_id: UUID) -> bool:
        return lesson_id in self._state.completed_lesson_ids

    def has_next_lesson(self) -> bool:
        return next_position(self.course, self._state.current_position) is not None

    def has_previous_lesson(self) -> bool:
        return previous_position(self.course, self._state.current_position) is not None

    def get_course_completion_percentage(self) -> int:
        """Completed over total lessons, rounded half up to an integer."""
        total = self.resolver.total_lessons
        if total == 0:
            return 0
        return math.floor(len(self._state.completed_lesson_ids) / total * 100 + 0.5)
