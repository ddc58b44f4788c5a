"""Contracts the progression engine consumes.

The engine depends on these protocols only; the Cassandra-backed services
satisfy them in production (``sessions.StoreBinding`` adapts the progress
service to one student) and tests pass in-memory fakes.
"""

from typing import Protocol
from uuid import UUID

from src.courses.schemas import CourseTree
from src.progress.schemas import (
    CourseProgressResponse,
    ProgressEntryResponse,
    RecordLessonCompletionRequest,
)


class CourseCatalog(Protocol):
    """Read-only access to course trees."""

    async def get_course(self, course_id: UUID) -> CourseTree:
        """Get the ordered tree of a course."""
        ...


class ProgressStore(Protocol):
    """Durable progress of one student."""

    async def get_course_progress(self, course_id: UUID) -> CourseProgressResponse:
        """Get detailed progress and aggregates for a course."""
        ...

    async def record_lesson_completion(
        self, request: RecordLessonCompletionRequest
    ) -> ProgressEntryResponse:
        """Record a completed lesson (idempotent)."""
        ...
