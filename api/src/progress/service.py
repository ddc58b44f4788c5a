"""Student progress service layer.

Business logic for:
- Idempotent lesson completion writes
- Quiz outcome records
- Module and course completion aggregates
- Course progress queries
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from .models import (
    CourseCompletion,
    ModuleCompletion,
    ProgressEntry,
    ProgressEntryStatus,
    ProgressEntryType,
    completion_percentage,
)
from .schemas import (
    CourseCompletionResponse,
    CourseProgressResponse,
    ModuleCompletionResponse,
    ProgressEntryResponse,
    RecordLessonCompletionRequest,
    RecordQuizResultRequest,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from src.courses.schemas import CourseTree
    from src.courses.service import CourseCatalogService

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class ProgressError(Exception):
    """Base progress error."""

    def __init__(self, message: str, code: str = "progress_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class InvalidProgressRequestError(ProgressError):
    """Lesson does not belong to the course or module given."""

    def __init__(self, message: str = "Lesson does not belong to this course"):
        super().__init__(message, "invalid_progress_request")


# ==============================================================================
# Progress Service
# ==============================================================================


class ProgressService:
    """Service for durable student progress."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        catalog: "CourseCatalogService",
    ):
        """Initialize with Cassandra session and the course catalog."""
        self.session = session
        self.keyspace = keyspace
        self.catalog = catalog
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        # Progress entries
        self._get_entry = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.student_progress
            WHERE user_id = ? AND course_id = ? AND type = ? AND lesson_id = ?
        """)

        self._get_course_entries = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.student_progress
            WHERE user_id = ? AND course_id = ?
        """)

        self._upsert_entry = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.student_progress
            (user_id, course_id, type, lesson_id, module_id, status, score,
             time_spent_seconds, lesson_title, metadata, completed_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        # Lightweight transaction: the first completion of a lesson wins
        self._insert_entry_if_absent = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.student_progress
            (user_id, course_id, type, lesson_id, module_id, status, score,
             time_spent_seconds, lesson_title, metadata, completed_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)

        # Module completions
        self._get_module_completions = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.module_completions
            WHERE user_id = ? AND course_id = ?
        """)

        self._upsert_module_completion = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.module_completions
            (user_id, course_id, module_id, completion_percentage, total_lessons,
             completed_lessons, completed_at, last_activity_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)

        # Course completions
        self._get_course_completion = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.course_completions
            WHERE user_id = ? AND course_id = ?
        """)

        self._upsert_course_completion = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.course_completions
            (user_id, course_id, completion_percentage, total_lessons,
             completed_lessons, started_at, completed_at, last_activity_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)

    # ==========================================================================
    # Lesson Completion
    # ==========================================================================

    async def record_lesson_completion(
        self,
        user_id: UUID,
        data: RecordLessonCompletionRequest,
    ) -> tuple[ProgressEntry, bool]:
        """Record that a student completed a lesson.

        The write is idempotent: when a completed record already exists it is
        returned unchanged. Concurrent completions of the same lesson race on
        ``INSERT ... IF NOT EXISTS``; only the winner recomputes aggregates.

        Args:
            user_id: Student UUID
            data: Completion request

        Returns:
            Tuple of (entry, created)

        Raises:
            CourseNotFoundError: If the course does not exist
            InvalidProgressRequestError: If the lesson is not part of the course
        """
        course = await self.catalog.get_course(data.course_id)
        module_id = _module_of_lesson(course, data.lesson_id)
        if module_id is None or (data.module_id and data.module_id != module_id):
            raise InvalidProgressRequestError

        existing = await self._fetch_entry(
            user_id, data.course_id, ProgressEntryType.LESSON_COMPLETED, data.lesson_id
        )
        if existing and existing.is_lesson_completion:
            logger.debug(
                "lesson_already_completed",
                user_id=str(user_id),
                lesson_id=str(data.lesson_id),
            )
            return existing, False

        now = datetime.now(UTC)
        entry = ProgressEntry(
            user_id=user_id,
            course_id=data.course_id,
            lesson_id=data.lesson_id,
            type=ProgressEntryType.LESSON_COMPLETED.value,
            module_id=module_id,
            status=ProgressEntryStatus.COMPLETED.value,
            score=Decimal(100),
            time_spent_seconds=data.time_spent_seconds,
            lesson_title=data.lesson_title,
            metadata={
                "lesson_title": data.lesson_title or "",
                "completed_at": now.isoformat(),
            },
            completed_at=now,
            updated_at=now,
        )
        result = await self.session.aexecute(self._insert_entry_if_absent, entry.to_params())
        if not result.was_applied:
            logger.debug(
                "lesson_completion_lost_race",
                user_id=str(user_id),
                lesson_id=str(data.lesson_id),
            )
            return ProgressEntry.from_row(result.one()), False

        logger.info(
            "lesson_completion_recorded",
            user_id=str(user_id),
            course_id=str(data.course_id),
            lesson_id=str(data.lesson_id),
            time_spent_seconds=data.time_spent_seconds,
        )

        await self._recompute_completions(user_id, course, now)
        return entry, True

    # ==========================================================================
    # Quiz Results
    # ==========================================================================

    async def record_quiz_result(
        self,
        user_id: UUID,
        data: RecordQuizResultRequest,
    ) -> ProgressEntry:
        """Record the outcome of a quiz submission.

        A passed quiz is never downgraded by a later failed submission.
        """
        existing = await self._fetch_entry(
            user_id, data.course_id, ProgressEntryType.QUIZ_PASSED, data.lesson_id
        )
        if existing and existing.status == ProgressEntryStatus.COMPLETED.value:
            return existing

        now = datetime.now(UTC)
        entry = ProgressEntry(
            user_id=user_id,
            course_id=data.course_id,
            lesson_id=data.lesson_id,
            type=ProgressEntryType.QUIZ_PASSED.value,
            module_id=data.module_id,
            status=(
                ProgressEntryStatus.COMPLETED.value
                if data.passed
                else ProgressEntryStatus.FAILED.value
            ),
            score=data.score,
            time_spent_seconds=data.time_spent_seconds,
            metadata={"attempts": str(data.attempts)},
            completed_at=now,
            updated_at=now,
        )
        await self.session.aexecute(self._upsert_entry, entry.to_params())

        logger.info(
            "quiz_result_recorded",
            user_id=str(user_id),
            lesson_id=str(data.lesson_id),
            score=str(data.score),
            passed=data.passed,
            attempts=data.attempts,
        )
        return entry

    # ==========================================================================
    # Aggregates
    # ==========================================================================

    async def _recompute_completions(
        self,
        user_id: UUID,
        course: "CourseTree",
        now: datetime,
    ) -> None:
        """Recalculate module and course completion after a new completion."""
        completed_ids = {
            entry.lesson_id
            for entry in await self._get_all_entries(user_id, course.id)
            if entry.is_lesson_completion
        }

        total_completed = 0
        for module in course.modules:
            lesson_ids = {lesson.id for lesson in module.lessons}
            completed = len(lesson_ids & completed_ids)
            total = len(lesson_ids)
            total_completed += completed

            await self.session.aexecute(
                self._upsert_module_completion,
                [
                    user_id,
                    course.id,
                    module.id,
                    completion_percentage(completed, total),
                    total,
                    completed,
                    now if total > 0 and completed == total else None,
                    now,
                ],
            )

        previous = await self._fetch_course_completion(user_id, course.id)
        aggregate = CourseCompletion(
            user_id=user_id,
            course_id=course.id,
            completion_percentage=completion_percentage(
                total_completed, course.total_lessons
            ),
            total_lessons=course.total_lessons,
            completed_lessons=total_completed,
            started_at=previous.started_at if previous else now,
            completed_at=previous.completed_at if previous else None,
            last_activity_at=now,
        )
        if aggregate.is_completed and aggregate.completed_at is None:
            aggregate.completed_at = now
            logger.info(
                "course_completed",
                user_id=str(user_id),
                course_id=str(course.id),
            )

        await self.session.aexecute(
            self._upsert_course_completion,
            [
                aggregate.user_id,
                aggregate.course_id,
                aggregate.completion_percentage,
                aggregate.total_lessons,
                aggregate.completed_lessons,
                aggregate.started_at,
                aggregate.completed_at,
                aggregate.last_activity_at,
            ],
        )

    # ==========================================================================
    # Queries
    # ==========================================================================

    async def get_course_progress(
        self,
        user_id: UUID,
        course_id: UUID,
    ) -> CourseProgressResponse:
        """Get the detailed progress and aggregates of a student in a course."""
        entries = await self._get_all_entries(user_id, course_id)
        course_completion = await self._fetch_course_completion(user_id, course_id)

        rows = await self.session.aexecute(
            self._get_module_completions, [user_id, course_id]
        )
        modules = [ModuleCompletion.from_row(row) for row in rows]

        return CourseProgressResponse(
            course_id=course_id,
            detailed_progress=[ProgressEntryResponse.from_entity(e) for e in entries],
            course_completion=(
                CourseCompletionResponse.from_entity(course_completion)
                if course_completion
                else None
            ),
            module_completions=[
                ModuleCompletionResponse.from_entity(m) for m in modules
            ],
        )

    async def _fetch_entry(
        self,
        user_id: UUID,
        course_id: UUID,
        entry_type: ProgressEntryType,
        lesson_id: UUID,
    ) -> ProgressEntry | None:
        result = await self.session.aexecute(
            self._get_entry, [user_id, course_id, entry_type.value, lesson_id]
        )
        row = result.one()
        return ProgressEntry.from_row(row) if row else None

    async def _get_all_entries(
        self,
        user_id: UUID,
        course_id: UUID,
    ) -> list[ProgressEntry]:
        rows = await self.session.aexecute(
            self._get_course_entries, [user_id, course_id]
        )
        return [ProgressEntry.from_row(row) for row in rows]

    async def _fetch_course_completion(
        self,
        user_id: UUID,
        course_id: UUID,
    ) -> CourseCompletion | None:
        result = await self.session.aexecute(
            self._get_course_completion, [user_id, course_id]
        )
        row = result.one()
        return CourseCompletion.from_row(row) if row else None


def _module_of_lesson(course: "CourseTree", lesson_id: UUID) -> UUID | None:
    for module in course.modules:
        if any(lesson.id == lesson_id for lesson in module.lessons):
            return module.id
    return None
