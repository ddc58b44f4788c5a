"""Content type evaluators.

Each evaluator turns the engagement gathered during a lesson visit into a
``CompletionVerdict``. Evaluators are pure and never raise: missing
durations, empty quizzes and unusable payloads all evaluate to
not-completed at 0%.

A lesson has exactly one completion gate. Single-type lessons are gated by
their declared type; ``mixed`` lessons by the first usable payload in
``GATE_PRECEDENCE``. A lesson whose gating payload is unusable (video with
no URL, quiz with no questions, text with no body, file with no URL) has no
gate and can never complete.
"""

from collections.abc import Callable

from src.courses.models import ContentType
from src.courses.schemas import LessonContent, LessonNode

from .models import (
    CompletionRequirement,
    CompletionVerdict,
    ContentCompletionState,
    FileCompletionState,
    QuizCompletionState,
    TextCompletionState,
    VideoCompletionState,
)
from .options import CompletionOptions


GATE_PRECEDENCE: tuple[ContentType, ...] = (
    ContentType.VIDEO,
    ContentType.QUIZ,
    ContentType.TEXT,
    ContentType.FILE,
)


def _ratio_percent(value: float, target: float) -> float:
    if target <= 0:
        return 0.0
    return min(100.0, max(0.0, value / target * 100))


# ==============================================================================
# Per-type evaluators
# ==============================================================================


def evaluate_video(
    state: VideoCompletionState,
    options: CompletionOptions,
) -> CompletionVerdict:
    """Completed once the watched share reaches the minimum watch percentage."""
    progress = _ratio_percent(state.watch_time_seconds, state.duration_seconds)
    if state.completed:
        return CompletionVerdict(completed=True, progress_percent=100.0)
    if state.duration_seconds <= 0:
        return CompletionVerdict.incomplete()

    watched = state.watch_time_seconds / state.duration_seconds * 100
    return CompletionVerdict(
        completed=watched >= options.min_video_watch_percentage,
        progress_percent=progress,
    )


def evaluate_text(
    state: TextCompletionState,
    options: CompletionOptions,
) -> CompletionVerdict:
    """Completed once the content has been read for the minimum time."""
    if state.completed:
        return CompletionVerdict(completed=True, progress_percent=100.0)
    return CompletionVerdict(
        completed=state.read_time_seconds >= options.min_content_read_time_seconds,
        progress_percent=_ratio_percent(
            state.read_time_seconds, options.min_content_read_time_seconds
        ),
    )


def evaluate_file(
    state: FileCompletionState,
    options: CompletionOptions,
) -> CompletionVerdict:
    """Completed once the file has been viewed for the minimum time."""
    if state.completed:
        return CompletionVerdict(completed=True, progress_percent=100.0)
    return CompletionVerdict(
        completed=state.view_time_seconds >= options.min_file_view_time_seconds,
        progress_percent=_ratio_percent(
            state.view_time_seconds, options.min_file_view_time_seconds
        ),
    )


def evaluate_quiz(state: QuizCompletionState) -> CompletionVerdict:
    """Completed when passed or when attempts are exhausted."""
    return CompletionVerdict(
        completed=state.completed,
        progress_percent=state.score or 0.0,
    )


def evaluate_content(
    content_type: ContentType,
    state: ContentCompletionState,
    options: CompletionOptions,
) -> CompletionVerdict:
    """Evaluate one content type of a lesson visit."""
    evaluators: dict[ContentType, Callable[[], CompletionVerdict]] = {
        ContentType.VIDEO: lambda: evaluate_video(state.video, options),
        ContentType.QUIZ: lambda: evaluate_quiz(state.quiz),
        ContentType.TEXT: lambda: evaluate_text(state.text, options),
        ContentType.FILE: lambda: evaluate_file(state.file, options),
    }
    evaluator = evaluators.get(content_type)
    return evaluator() if evaluator else CompletionVerdict.incomplete()


# ==============================================================================
# Lesson gate
# ==============================================================================


def has_payload(content: LessonContent, content_type: ContentType) -> bool:
    """Whether the lesson carries a usable payload of the given type."""
    checks = {
        ContentType.VIDEO: content.has_video,
        ContentType.QUIZ: content.has_quiz,
        ContentType.TEXT: content.has_text,
        ContentType.FILE: content.has_file,
    }
    return checks.get(content_type, False)


def present_content_types(lesson: LessonNode) -> list[ContentType]:
    """Usable payload types of a lesson, in gate precedence order."""
    if lesson.type == ContentType.MIXED:
        candidates = GATE_PRECEDENCE
    else:
        candidates = (lesson.type,)
    return [t for t in candidates if has_payload(lesson.content, t)]


def resolve_gate_type(lesson: LessonNode) -> ContentType | None:
    """Content type that decides completion, or None for unusable content."""
    present = present_content_types(lesson)
    return present[0] if present else None


def evaluate_lesson(
    lesson: LessonNode,
    state: ContentCompletionState,
    options: CompletionOptions,
) -> CompletionVerdict:
    """Evaluate a lesson visit against the lesson's single completion gate."""
    gate = resolve_gate_type(lesson)
    if gate is None:
        return CompletionVerdict.incomplete()
    return evaluate_content(gate, state, options)


def completion_requirements(
    lesson: LessonNode,
    state: ContentCompletionState,
    options: CompletionOptions,
) -> list[CompletionRequirement]:
    """Checklist of every usable payload of a lesson, gate first."""
    descriptions = {
        ContentType.VIDEO: (
            f"Watch at least {options.min_video_watch_percentage:g}% of the video"
        ),
        ContentType.QUIZ: (
            f"Score at least {options.min_quiz_pass_score:g}% on the quiz"
        ),
        ContentType.TEXT: (
            f"Read the content for at least "
            f"{options.min_content_read_time_seconds:g} seconds"
        ),
        ContentType.FILE: (
            f"View the file for at least {options.min_file_view_time_seconds:g} seconds"
        ),
    }

    requirements = []
    for content_type in present_content_types(lesson):
        verdict = evaluate_content(content_type, state, options)
        is_quiz = content_type == ContentType.QUIZ
        requirements.append(
            CompletionRequirement(
                type=content_type,
                description=descriptions[content_type],
                completed=verdict.completed,
                progress_percent=verdict.progress_percent,
                attempts=state.quiz.attempts if is_quiz else None,
                max_attempts=state.quiz.max_attempts if is_quiz else None,
            )
        )
    return requirements
