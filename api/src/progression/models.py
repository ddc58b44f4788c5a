"""State objects of the progression engine.

Plain dataclasses: nothing here is persisted directly. ``ProgressionState``
is rebuilt from the progress store on every session hydration, and the
``*CompletionState`` objects live only for one lesson visit.
"""

from dataclasses import dataclass, field
from uuid import UUID

from src.courses.models import ContentType
from src.courses.schemas import LessonNode


@dataclass(frozen=True, order=True)
class LessonPosition:
    """Coordinates of a lesson inside a course."""

    module_index: int = 0
    lesson_index: int = 0


@dataclass(frozen=True)
class CompletionVerdict:
    """Result of evaluating one lesson visit."""

    completed: bool
    progress_percent: float

    @classmethod
    def incomplete(cls) -> "CompletionVerdict":
        return cls(completed=False, progress_percent=0.0)


# ==============================================================================
# Lesson visit state
# ==============================================================================


@dataclass
class VideoCompletionState:
    watch_time_seconds: float = 0.0
    duration_seconds: float = 0.0
    completed: bool = False  # Set by the ended event


@dataclass
class QuizCompletionState:
    attempts: int = 0
    max_attempts: int = 2
    score: float | None = None  # Last percentage score
    passed: bool = False
    completed: bool = False


@dataclass
class TextCompletionState:
    read_time_seconds: float = 0.0
    completed: bool = False


@dataclass
class FileCompletionState:
    view_time_seconds: float = 0.0
    completed: bool = False


@dataclass
class ContentCompletionState:
    """Engagement gathered during one lesson visit, per content type."""

    video: VideoCompletionState = field(default_factory=VideoCompletionState)
    quiz: QuizCompletionState = field(default_factory=QuizCompletionState)
    text: TextCompletionState = field(default_factory=TextCompletionState)
    file: FileCompletionState = field(default_factory=FileCompletionState)


# ==============================================================================
# Course state
# ==============================================================================


@dataclass
class ProgressionState:
    """Where a student stands in a course.

    Attributes:
        completed_lesson_ids: Lessons confirmed completed by the progress store
        accessible_lesson_ids: Contiguous unlock frontier
        current_position: Lesson the student is positioned on
    """

    completed_lesson_ids: set[UUID] = field(default_factory=set)
    accessible_lesson_ids: set[UUID] = field(default_factory=set)
    current_position: LessonPosition = field(default_factory=LessonPosition)

    def copy(self) -> "ProgressionState":
        return ProgressionState(
            completed_lesson_ids=set(self.completed_lesson_ids),
            accessible_lesson_ids=set(self.accessible_lesson_ids),
            current_position=self.current_position,
        )


@dataclass(frozen=True)
class FlatLesson:
    """A lesson at its place in the flattened lesson order."""

    lesson: LessonNode
    module_id: UUID
    position: LessonPosition
    index: int

    @property
    def lesson_id(self) -> UUID:
        return self.lesson.id


@dataclass(frozen=True)
class CompletionRequirement:
    """One item of a lesson's completion checklist."""

    type: ContentType
    description: str
    completed: bool
    progress_percent: float
    attempts: int | None = None
    max_attempts: int | None = None
