"""Pydantic schemas for the progression API.

Request models carry engagement events from the player; every response
embeds the resulting session state so clients never have to re-fetch.
"""

from typing import Self
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from src.courses.models import ContentType

from .models import CompletionRequirement
from .quiz import QuizStatus, QuizSubmissionResult
from .sessions import ProgressionSession


# ==============================================================================
# Request Schemas
# ==============================================================================


class OpenSessionRequest(BaseModel):
    """Open a progression session."""

    resume: bool = Field(True, description="Start at the last accessible lesson")


class NavigateRequest(BaseModel):
    """Navigate by lesson id or by (module_index, lesson_index)."""

    lesson_id: UUID | None = None
    module_index: int | None = Field(None, ge=0)
    lesson_index: int | None = Field(None, ge=0)

    @model_validator(mode="after")
    def check_target(self) -> Self:
        if self.lesson_id is None and (
            self.module_index is None or self.lesson_index is None
        ):
            raise ValueError("Provide lesson_id or both module_index and lesson_index")
        return self


class LessonEventRequest(BaseModel):
    """Event about the lesson the player has open."""

    lesson_id: UUID


class TimeUpdateRequest(LessonEventRequest):
    current_time: float = Field(..., ge=0)
    duration: float | None = Field(None, ge=0)


class SeekRequest(LessonEventRequest):
    time: float = Field(..., ge=0)


class QuizSubmitRequest(LessonEventRequest):
    score: int = Field(..., ge=0, description="Correct answers")
    total_questions: int = Field(..., description="Questions in the quiz")


class EngagementTimeRequest(LessonEventRequest):
    seconds: float = Field(..., ge=0, description="Accumulated seconds on the content")


# ==============================================================================
# Response Schemas
# ==============================================================================


class PositionView(BaseModel):
    module_index: int
    lesson_index: int


class LessonView(BaseModel):
    id: UUID
    module_id: UUID | None = None
    title: str
    type: ContentType


class RequirementView(BaseModel):
    type: ContentType
    description: str
    completed: bool
    progress_percent: float
    attempts: int | None = None
    max_attempts: int | None = None

    @classmethod
    def from_requirement(cls, requirement: CompletionRequirement) -> "RequirementView":
        return cls(
            type=requirement.type,
            description=requirement.description,
            completed=requirement.completed,
            progress_percent=requirement.progress_percent,
            attempts=requirement.attempts,
            max_attempts=requirement.max_attempts,
        )


class LessonProgressView(BaseModel):
    """Completion of the lesson visit in progress."""

    gate_type: ContentType | None
    completed: bool
    progress_percent: float
    requirements: list[RequirementView] = Field(default_factory=list)


class PlaybackView(BaseModel):
    current_time: float
    last_watched_time: float
    watch_time: float
    duration: float
    is_completed: bool


class QuizView(BaseModel):
    status: QuizStatus
    attempts: int
    max_attempts: int
    attempts_remaining: int
    score: float | None = None
    passed: bool
    completed: bool


class QuizResultView(BaseModel):
    percentage: float
    passed: bool
    completed: bool
    can_retry: bool
    attempts: int
    attempts_remaining: int
    status: QuizStatus

    @classmethod
    def from_result(cls, result: QuizSubmissionResult) -> "QuizResultView":
        return cls(
            percentage=result.percentage,
            passed=result.passed,
            completed=result.completed,
            can_retry=result.can_retry,
            attempts=result.attempts,
            attempts_remaining=result.attempts_remaining,
            status=result.status,
        )


class SessionStateResponse(BaseModel):
    """Snapshot of a progression session."""

    course_id: UUID
    current_position: PositionView
    current_lesson: LessonView | None = None
    completed_lesson_ids: list[UUID]
    accessible_lesson_ids: list[UUID]
    completion_percentage: int
    has_next: bool
    has_previous: bool
    is_auto_advancing: bool
    lesson_progress: LessonProgressView | None = None
    playback: PlaybackView | None = None
    quiz: QuizView | None = None

    @classmethod
    def from_session(cls, session: ProgressionSession) -> "SessionStateResponse":
        """Build the snapshot. Id lists follow the flattened lesson order."""
        coordinator = session.coordinator
        state = coordinator.state
        flat = coordinator.resolver.flat
        lesson = session.lesson

        current_lesson = None
        lesson_progress = None
        playback = None
        quiz = None
        if lesson is not None:
            item = coordinator.resolver.get(lesson.id)
            current_lesson = LessonView(
                id=lesson.id,
                module_id=item.module_id if item else None,
                title=lesson.title,
                type=lesson.type,
            )
            verdict = session.verdict()
            lesson_progress = LessonProgressView(
                gate_type=session.gate_type(),
                completed=verdict.completed,
                progress_percent=verdict.progress_percent,
                requirements=[
                    RequirementView.from_requirement(r)
                    for r in session.tracker.get_completion_requirements(lesson)
                ],
            )
            guard = session.playback
            playback = PlaybackView(
                current_time=guard.current_time,
                last_watched_time=guard.last_watched_time,
                watch_time=guard.watch_time,
                duration=guard.duration,
                is_completed=guard.is_completed,
            )
            tracker = session.tracker.quiz
            quiz = QuizView(
                status=tracker.status,
                attempts=tracker.attempts,
                max_attempts=tracker.max_attempts,
                attempts_remaining=tracker.attempts_remaining,
                score=tracker.score,
                passed=tracker.passed,
                completed=tracker.completed,
            )

        return cls(
            course_id=session.course.id,
            current_position=PositionView(
                module_index=state.current_position.module_index,
                lesson_index=state.current_position.lesson_index,
            ),
            current_lesson=current_lesson,
            completed_lesson_ids=[
                i.lesson_id for i in flat if i.lesson_id in state.completed_lesson_ids
            ],
            accessible_lesson_ids=[
                i.lesson_id for i in flat if i.lesson_id in state.accessible_lesson_ids
            ],
            completion_percentage=coordinator.get_course_completion_percentage(),
            has_next=coordinator.has_next_lesson(),
            has_previous=coordinator.has_previous_lesson(),
            is_auto_advancing=coordinator.is_auto_advancing,
            lesson_progress=lesson_progress,
            playback=playback,
            quiz=quiz,
        )


class NavigationResponse(BaseModel):
    moved: bool
    session: SessionStateResponse


class EventResponse(BaseModel):
    accepted: bool
    lesson_completed: bool
    session: SessionStateResponse


class SeekResponse(BaseModel):
    accepted: bool
    current_time: float | None = None
    skip_blocked: bool = False
    session: SessionStateResponse


class QuizSubmitResponse(BaseModel):
    accepted: bool
    lesson_completed: bool
    result: QuizResultView | None = None
    session: SessionStateResponse
