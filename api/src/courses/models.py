"""Database models for the course catalog.

Cassandra table definitions for:
- Courses, modules and lessons (main tables)
- Junction tables carrying the authoring order: course_modules, module_lessons

The catalog is read-only for the progression engine; authoring tools own
the writes. Lesson order inside a module and module order inside a course
are fixed by the ``position`` clustering column.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID


class ContentStatus(str, Enum):
    """Content publication status."""

    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class ContentType(str, Enum):
    """Lesson content type."""

    VIDEO = "video"
    QUIZ = "quiz"
    TEXT = "text"
    FILE = "file"
    MIXED = "mixed"  # More than one payload; see evaluators.GATE_PRECEDENCE


# Legacy type names still found in older lesson rows
CONTENT_TYPE_ALIASES = {
    "content": ContentType.TEXT,
    "document": ContentType.FILE,
    "pdf": ContentType.FILE,
}


def parse_content_type(value: str | None) -> ContentType:
    """Map a stored content type to ContentType (unknown values become MIXED)."""
    if not value:
        return ContentType.MIXED
    normalized = value.strip().lower()
    if normalized in CONTENT_TYPE_ALIASES:
        return CONTENT_TYPE_ALIASES[normalized]
    try:
        return ContentType(normalized)
    except ValueError:
        return ContentType.MIXED


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses (
    id UUID PRIMARY KEY,
    title TEXT,
    description TEXT,
    status TEXT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

MODULE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.modules (
    id UUID PRIMARY KEY,
    title TEXT,
    description TEXT,
    status TEXT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

# content: JSON document with the type-specific payload
LESSON_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.lessons (
    id UUID PRIMARY KEY,
    title TEXT,
    content_type TEXT,
    content TEXT,
    duration_seconds INT,
    points INT,
    status TEXT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

COURSE_MODULES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.course_modules (
    course_id UUID,
    module_id UUID,
    position INT,
    PRIMARY KEY (course_id, position, module_id)
) WITH CLUSTERING ORDER BY (position ASC, module_id ASC)
"""

MODULE_LESSONS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.module_lessons (
    module_id UUID,
    lesson_id UUID,
    position INT,
    PRIMARY KEY (module_id, position, lesson_id)
) WITH CLUSTERING ORDER BY (position ASC, lesson_id ASC)
"""

COURSES_TABLES_CQL = [
    COURSE_TABLE_CQL,
    MODULE_TABLE_CQL,
    LESSON_TABLE_CQL,
    COURSE_MODULES_TABLE_CQL,
    MODULE_LESSONS_TABLE_CQL,
]


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


# ==============================================================================
# Entity Classes
# ==============================================================================


class Course:
    """Course row: a titled, ordered collection of modules."""

    def __init__(
        self,
        id: UUID,
        title: str = "",
        description: str | None = None,
        status: str = ContentStatus.DRAFT.value,
        updated_at: datetime | None = None,
    ):
        self.id = id
        self.title = title
        self.description = description
        self.status = status
        self.updated_at = ensure_utc_aware(updated_at)

    @classmethod
    def from_row(cls, row: Any) -> "Course":
        """Create Course instance from Cassandra row."""
        return cls(
            id=row.id,
            title=row.title or "",
            description=row.description,
            status=row.status or ContentStatus.DRAFT.value,
            updated_at=row.updated_at,
        )

    def __repr__(self) -> str:
        return f"<Course {self.title} ({self.status})>"


class Module:
    """Module row."""

    def __init__(self, id: UUID, title: str = "", description: str | None = None):
        self.id = id
        self.title = title
        self.description = description

    @classmethod
    def from_row(cls, row: Any) -> "Module":
        """Create Module instance from Cassandra row."""
        return cls(id=row.id, title=row.title or "", description=row.description)

    def __repr__(self) -> str:
        return f"<Module {self.title}>"


class Lesson:
    """Lesson row.

    Attributes:
        id: Lesson UUID
        title: Lesson title
        content_type: Declared type (video, quiz, text, file, mixed)
        content: Raw JSON payload, parsed by schemas.LessonContent
        duration_seconds: Declared duration
        points: Declared point value
    """

    def __init__(
        self,
        id: UUID,
        title: str = "",
        content_type: str = ContentType.VIDEO.value,
        content: str | None = None,
        duration_seconds: int | None = None,
        points: int = 0,
    ):
        self.id = id
        self.title = title
        self.content_type = content_type
        self.content = content
        self.duration_seconds = duration_seconds
        self.points = points

    @classmethod
    def from_row(cls, row: Any) -> "Lesson":
        """Create Lesson instance from Cassandra row."""
        return cls(
            id=row.id,
            title=row.title or "",
            content_type=row.content_type or ContentType.MIXED.value,
            content=row.content,
            duration_seconds=row.duration_seconds,
            points=row.points or 0,
        )

    def __repr__(self) -> str:
        return f"<Lesson {self.title} ({self.content_type})>"
