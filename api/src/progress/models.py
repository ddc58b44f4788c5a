"""Database models for student progress records.

Cassandra table definitions for:
- Student progress: one row per (student, course, entry type, lesson);
  writing the same key twice is an upsert, so repeated completions collapse
  into a single record
- Module completions: aggregated per module
- Course completions: aggregated per course
"""

from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID


class ProgressEntryType(str, Enum):
    """Kind of progress entry."""

    LESSON_COMPLETED = "lesson_completed"
    QUIZ_PASSED = "quiz_passed"  # Quiz outcome; status tells passed from failed


class ProgressEntryStatus(str, Enum):
    """Progress entry status."""

    COMPLETED = "completed"
    FAILED = "failed"
    IN_PROGRESS = "in_progress"


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def completion_percentage(completed: int, total: int) -> Decimal:
    """Completed/total as a 0-100 Decimal rounded to 2 places."""
    if total <= 0:
        return Decimal(0)
    return (Decimal(completed) * 100 / Decimal(total)).quantize(Decimal("0.01"))


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

# Partition key: (user_id, course_id) to load a course's progress in one read
# Clustering: type, lesson_id -> idempotent upsert per (student, course, lesson)
STUDENT_PROGRESS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.student_progress (
    user_id UUID,
    course_id UUID,
    type TEXT,
    lesson_id UUID,
    module_id UUID,
    status TEXT,
    score DECIMAL,
    time_spent_seconds INT,
    lesson_title TEXT,
    metadata MAP<TEXT, TEXT>,
    completed_at TIMESTAMP,
    updated_at TIMESTAMP,
    PRIMARY KEY ((user_id, course_id), type, lesson_id)
) WITH CLUSTERING ORDER BY (type ASC, lesson_id ASC)
"""

MODULE_COMPLETIONS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.module_completions (
    user_id UUID,
    course_id UUID,
    module_id UUID,
    completion_percentage DECIMAL,
    total_lessons INT,
    completed_lessons INT,
    completed_at TIMESTAMP,
    last_activity_at TIMESTAMP,
    PRIMARY KEY ((user_id, course_id), module_id)
)
"""

COURSE_COMPLETIONS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.course_completions (
    user_id UUID,
    course_id UUID,
    completion_percentage DECIMAL,
    total_lessons INT,
    completed_lessons INT,
    started_at TIMESTAMP,
    completed_at TIMESTAMP,
    last_activity_at TIMESTAMP,
    PRIMARY KEY (user_id, course_id)
)
"""

PROGRESS_TABLES_CQL = [
    STUDENT_PROGRESS_TABLE_CQL,
    MODULE_COMPLETIONS_TABLE_CQL,
    COURSE_COMPLETIONS_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class ProgressEntry:
    """Durable progress record of one student for one lesson.

    Attributes:
        user_id: Student UUID
        course_id: Course UUID (partition key)
        type: Entry type (lesson_completed, quiz_passed)
        lesson_id: Lesson UUID
        module_id: Module UUID
        status: completed, failed or in_progress
        score: 0-100 score (100 for plain lesson completions)
        time_spent_seconds: Time the student spent on the lesson visit
        lesson_title: Title at completion time
        metadata: Free-form string map
        completed_at: First completion timestamp
        updated_at: Last write timestamp
    """

    def __init__(
        self,
        user_id: UUID,
        course_id: UUID,
        lesson_id: UUID,
        type: str = ProgressEntryType.LESSON_COMPLETED.value,
        module_id: UUID | None = None,
        status: str = ProgressEntryStatus.COMPLETED.value,
        score: Decimal = Decimal(100),
        time_spent_seconds: int = 0,
        lesson_title: str | None = None,
        metadata: dict[str, str] | None = None,
        completed_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.user_id = user_id
        self.course_id = course_id
        self.lesson_id = lesson_id
        self.type = type
        self.module_id = module_id
        self.status = status
        self.score = score
        self.time_spent_seconds = time_spent_seconds
        self.lesson_title = lesson_title
        self.metadata = dict(metadata or {})
        self.completed_at = ensure_utc_aware(completed_at)
        self.updated_at = ensure_utc_aware(updated_at) or datetime.now(UTC)

    @property
    def is_lesson_completion(self) -> bool:
        """Whether this entry marks its lesson as completed."""
        return (
            self.type == ProgressEntryType.LESSON_COMPLETED.value
            and self.status == ProgressEntryStatus.COMPLETED.value
        )

    @classmethod
    def from_row(cls, row: Any) -> "ProgressEntry":
        """Create ProgressEntry instance from Cassandra row."""
        return cls(
            user_id=row.user_id,
            course_id=row.course_id,
            lesson_id=row.lesson_id,
            type=row.type,
            module_id=row.module_id,
            status=row.status or ProgressEntryStatus.COMPLETED.value,
            score=row.score if row.score is not None else Decimal(0),
            time_spent_seconds=row.time_spent_seconds or 0,
            lesson_title=row.lesson_title,
            metadata=row.metadata,
            completed_at=row.completed_at,
            updated_at=row.updated_at,
        )

    def to_params(self) -> list[Any]:
        """Bind parameters for the student_progress upsert."""
        return [
            self.user_id,
            self.course_id,
            self.type,
            self.lesson_id,
            self.module_id,
            self.status,
            self.score,
            self.time_spent_seconds,
            self.lesson_title,
            self.metadata,
            self.completed_at,
            self.updated_at,
        ]

    def __repr__(self) -> str:
        return (
            f"<ProgressEntry user={self.user_id} lesson={self.lesson_id} "
            f"{self.type}/{self.status}>"
        )


class ModuleCompletion:
    """Aggregated completion of one module for one student."""

    def __init__(
        self,
        user_id: UUID,
        course_id: UUID,
        module_id: UUID,
        completion_percentage: Decimal = Decimal(0),
        total_lessons: int = 0,
        completed_lessons: int = 0,
        completed_at: datetime | None = None,
        last_activity_at: datetime | None = None,
    ):
        self.user_id = user_id
        self.course_id = course_id
        self.module_id = module_id
        self.completion_percentage = completion_percentage
        self.total_lessons = total_lessons
        self.completed_lessons = completed_lessons
        self.completed_at = ensure_utc_aware(completed_at)
        self.last_activity_at = ensure_utc_aware(last_activity_at) or datetime.now(UTC)

    @classmethod
    def from_row(cls, row: Any) -> "ModuleCompletion":
        """Create ModuleCompletion instance from Cassandra row."""
        return cls(
            user_id=row.user_id,
            course_id=row.course_id,
            module_id=row.module_id,
            completion_percentage=row.completion_percentage or Decimal(0),
            total_lessons=row.total_lessons or 0,
            completed_lessons=row.completed_lessons or 0,
            completed_at=row.completed_at,
            last_activity_at=row.last_activity_at,
        )

    def __repr__(self) -> str:
        return (
            f"<ModuleCompletion module={self.module_id} "
            f"{self.completed_lessons}/{self.total_lessons}>"
        )


class CourseCompletion:
    """Aggregated completion of one course for one student."""

    def __init__(
        self,
        user_id: UUID,
        course_id: UUID,
        completion_percentage: Decimal = Decimal(0),
        total_lessons: int = 0,
        completed_lessons: int = 0,
        started_at: datetime | None = None,
        completed_at: datetime | None = None,
        last_activity_at: datetime | None = None,
    ):
        self.user_id = user_id
        self.course_id = course_id
        self.completion_percentage = completion_percentage
        self.total_lessons = total_lessons
        self.completed_lessons = completed_lessons
        self.started_at = ensure_utc_aware(started_at)
        self.completed_at = ensure_utc_aware(completed_at)
        self.last_activity_at = ensure_utc_aware(last_activity_at) or datetime.now(UTC)

    @property
    def is_completed(self) -> bool:
        """Check if every lesson of the course is completed."""
        return self.total_lessons > 0 and self.completed_lessons >= self.total_lessons

    @classmethod
    def from_row(cls, row: Any) -> "CourseCompletion":
        """Create CourseCompletion instance from Cassandra row."""
        return cls(
            user_id=row.user_id,
            course_id=row.course_id,
            completion_percentage=row.completion_percentage or Decimal(0),
            total_lessons=row.total_lessons or 0,
            completed_lessons=row.completed_lessons or 0,
            started_at=row.started_at,
            completed_at=row.completed_at,
            last_activity_at=row.last_activity_at,
        )

    def __repr__(self) -> str:
        return (
            f"<CourseCompletion course={self.course_id} "
            f"{self.completion_percentage}%>"
        )
