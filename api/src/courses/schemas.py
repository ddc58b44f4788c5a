"""Pydantic schemas for the course catalog.

The catalog returns a fully resolved, ordered tree:
CourseTree -> ModuleNode[] -> LessonNode[]. Lesson payloads are described by
LessonContent, which tolerates the legacy field names found in older content
(``quiz_questions``, ``file_url``, ``files``).
"""

from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .models import ContentType


# ==============================================================================
# Lesson Payloads
# ==============================================================================


class VideoPayload(BaseModel):
    """Video sub-payload."""

    url: str | None = None
    duration_seconds: float | None = Field(default=None, ge=0)


class QuizPayload(BaseModel):
    """Quiz sub-payload."""

    questions: list[dict[str, Any]] = Field(default_factory=list)


class FilePayload(BaseModel):
    """File sub-payload."""

    url: str | None = None
    name: str | None = None


class LessonContent(BaseModel):
    """Type-specific lesson payload.

    A payload counts as present only when it is usable: a video needs a URL,
    a quiz needs at least one question, a file needs a URL.
    """

    model_config = ConfigDict(extra="ignore")

    video: VideoPayload | None = None
    quiz: QuizPayload | None = None
    quiz_questions: list[dict[str, Any]] | None = None
    text_content: str | None = None
    file: FilePayload | None = None
    file_url: str | None = None
    files: list[FilePayload] | None = None

    @property
    def has_video(self) -> bool:
        return bool(self.video and self.video.url)

    @property
    def question_count(self) -> int:
        if self.quiz and self.quiz.questions:
            return len(self.quiz.questions)
        return len(self.quiz_questions or [])

    @property
    def has_quiz(self) -> bool:
        return self.question_count > 0

    @property
    def has_text(self) -> bool:
        return bool(self.text_content and self.text_content.strip())

    @property
    def has_file(self) -> bool:
        if self.file_url or (self.file and self.file.url):
            return True
        return any(f.url for f in self.files or [])


# ==============================================================================
# Course Tree
# ==============================================================================


class LessonNode(BaseModel):
    """Lesson as seen by the progression engine."""

    id: UUID
    title: str
    type: ContentType
    content: LessonContent = Field(default_factory=LessonContent)
    duration_seconds: int | None = None
    points: int = 0
    position: int = 0


class ModuleNode(BaseModel):
    """Module with its lessons in authoring order."""

    id: UUID
    title: str
    position: int = 0
    lessons: list[LessonNode] = Field(default_factory=list)


class CourseTree(BaseModel):
    """Course with modules in authoring order."""

    id: UUID
    title: str
    description: str | None = None
    modules: list[ModuleNode] = Field(default_factory=list)

    @property
    def total_lessons(self) -> int:
        return sum(len(module.lessons) for module in self.modules)
