"""Pydantic schemas for student progress records.

Request and response models for:
- Lesson completion recording (idempotent)
- Quiz outcome recording
- Course progress queries (detailed entries plus aggregates)
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from .models import (
    CourseCompletion,
    ModuleCompletion,
    ProgressEntry,
    ProgressEntryStatus,
    ProgressEntryType,
)


# ==============================================================================
# Request Schemas
# ==============================================================================


class RecordLessonCompletionRequest(BaseModel):
    """Request to record that the student completed a lesson."""

    course_id: UUID = Field(..., description="Course UUID")
    module_id: UUID | None = Field(None, description="Module UUID")
    lesson_id: UUID = Field(..., description="Lesson UUID")
    lesson_title: str | None = Field(None, description="Lesson title")
    time_spent_seconds: int = Field(0, ge=0, description="Seconds spent on the lesson")


class RecordQuizResultRequest(BaseModel):
    """Request to record the outcome of a quiz submission."""

    course_id: UUID
    module_id: UUID | None = None
    lesson_id: UUID
    score: Decimal = Field(..., ge=0, le=100, description="Percentage score")
    passed: bool
    attempts: int = Field(..., ge=1)
    time_spent_seconds: int = Field(0, ge=0)


# ==============================================================================
# Response Schemas
# ==============================================================================


class ProgressEntryResponse(BaseModel):
    """Durable progress record."""

    course_id: UUID
    module_id: UUID | None = None
    lesson_id: UUID
    type: ProgressEntryType
    status: ProgressEntryStatus
    score: Decimal
    time_spent_seconds: int = 0
    lesson_title: str | None = None
    metadata: dict[str, str] = Field(default_factory=dict)
    completed_at: datetime | None = None

    @classmethod
    def from_entity(cls, entity: ProgressEntry) -> "ProgressEntryResponse":
        """Create response from entity."""
        return cls(
            course_id=entity.course_id,
            module_id=entity.module_id,
            lesson_id=entity.lesson_id,
            type=ProgressEntryType(entity.type),
            status=ProgressEntryStatus(entity.status),
            score=entity.score,
            time_spent_seconds=entity.time_spent_seconds,
            lesson_title=entity.lesson_title,
            metadata=entity.metadata,
            completed_at=entity.completed_at,
        )


class RecordLessonCompletionResponse(BaseModel):
    """Result of a completion write."""

    message: str
    created: bool = Field(description="False when the lesson was already completed")
    progress: ProgressEntryResponse


class ModuleCompletionResponse(BaseModel):
    """Aggregated module completion."""

    module_id: UUID
    completion_percentage: Decimal
    total_lessons: int
    completed_lessons: int
    completed_at: datetime | None = None
    last_activity_at: datetime | None = None

    @classmethod
    def from_entity(cls, entity: ModuleCompletion) -> "ModuleCompletionResponse":
        """Create response from entity."""
        return cls(
            module_id=entity.module_id,
            completion_percentage=entity.completion_percentage,
            total_lessons=entity.total_lessons,
            completed_lessons=entity.completed_lessons,
            completed_at=entity.completed_at,
            last_activity_at=entity.last_activity_at,
        )


class CourseCompletionResponse(BaseModel):
    """Aggregated course completion."""

    course_id: UUID
    completion_percentage: Decimal
    total_lessons: int
    completed_lessons: int
    started_at: datetime | None = None
    completed_at: datetime | None = None
    last_activity_at: datetime | None = None

    @classmethod
    def from_entity(cls, entity: CourseCompletion) -> "CourseCompletionResponse":
        """Create response from entity."""
        return cls(
            course_id=entity.course_id,
            completion_percentage=entity.completion_percentage,
            total_lessons=entity.total_lessons,
            completed_lessons=entity.completed_lessons,
            started_at=entity.started_at,
            completed_at=entity.completed_at,
            last_activity_at=entity.last_activity_at,
        )


class CourseProgressResponse(BaseModel):
    """Everything the progression engine needs to hydrate a session."""

    course_id: UUID
    detailed_progress: list[ProgressEntryResponse] = Field(default_factory=list)
    course_completion: CourseCompletionResponse | None = None
    module_completions: list[ModuleCompletionResponse] = Field(default_factory=list)

    def completed_lesson_ids(self) -> set[UUID]:
        """Lessons with a completed lesson_completed entry."""
        return {
            entry.lesson_id
            for entry in self.detailed_progress
            if entry.type == ProgressEntryType.LESSON_COMPLETED
            and entry.status == ProgressEntryStatus.COMPLETED
        }
