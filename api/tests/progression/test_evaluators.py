"""Tests for content type evaluators and the lesson completion gate."""

import pytest

from src.courses.models import ContentType
from src.courses.schemas import LessonContent, QuizPayload, VideoPayload
from src.progression.evaluators import (
    GATE_PRECEDENCE,
    completion_requirements,
    evaluate_file,
    evaluate_lesson,
    evaluate_quiz,
    evaluate_text,
    evaluate_video,
    resolve_gate_type,
)
from src.progression.models import (
    ContentCompletionState,
    FileCompletionState,
    QuizCompletionState,
    TextCompletionState,
    VideoCompletionState,
)
from src.progression.options import CompletionOptions


class TestEvaluateVideo:
    """Tests for the watch ratio rule."""

    @pytest.mark.parametrize(
        ("watched", "completed"),
        [(94.9, False), (95.0, True), (100.0, True), (0.0, False)],
    )
    def test_watch_ratio_boundary(self, options: CompletionOptions, watched, completed):
        """94.9% never completes; exactly 95% does."""
        state = VideoCompletionState(watch_time_seconds=watched, duration_seconds=100.0)

        verdict = evaluate_video(state, options)

        assert verdict.completed is completed
        assert verdict.progress_percent == pytest.approx(watched)

    def test_unknown_duration_is_zero_percent(self, options: CompletionOptions):
        """Duration 0 (metadata not loaded) is 0%, not a division error."""
        state = VideoCompletionState(watch_time_seconds=42.0, duration_seconds=0.0)

        verdict = evaluate_video(state, options)

        assert verdict.completed is False
        assert verdict.progress_percent == 0.0

    def test_progress_is_capped(self, options: CompletionOptions):
        state = VideoCompletionState(watch_time_seconds=150.0, duration_seconds=100.0)

        assert evaluate_video(state, options).progress_percent == 100.0

    def test_ended_event_completes_below_threshold(self, options: CompletionOptions):
        state = VideoCompletionState(
            watch_time_seconds=80.0, duration_seconds=100.0, completed=True
        )

        assert evaluate_video(state, options).completed is True

    def test_custom_threshold(self):
        options = CompletionOptions(min_video_watch_percentage=50)
        state = VideoCompletionState(watch_time_seconds=50.0, duration_seconds=100.0)

        assert evaluate_video(state, options).completed is True


class TestEvaluateTextAndFile:
    """Tests for time-on-content rules."""

    def test_text_needs_minimum_read_time(self, options: CompletionOptions):
        assert evaluate_text(TextCompletionState(read_time_seconds=29.9), options).completed is False
        assert evaluate_text(TextCompletionState(read_time_seconds=30), options).completed is True

    def test_text_progress_has_no_upper_bound_on_time(self, options: CompletionOptions):
        verdict = evaluate_text(TextCompletionState(read_time_seconds=600), options)

        assert verdict.completed is True
        assert verdict.progress_percent == 100.0

    def test_file_needs_minimum_view_time(self, options: CompletionOptions):
        assert evaluate_file(FileCompletionState(view_time_seconds=9), options).completed is False
        verdict = evaluate_file(FileCompletionState(view_time_seconds=10), options)
        assert verdict.completed is True
        assert verdict.progress_percent == 100.0

    def test_file_partial_progress(self, options: CompletionOptions):
        verdict = evaluate_file(FileCompletionState(view_time_seconds=5), options)

        assert verdict.progress_percent == pytest.approx(50.0)


class TestEvaluateQuiz:
    def test_not_attempted(self):
        verdict = evaluate_quiz(QuizCompletionState())

        assert verdict.completed is False
        assert verdict.progress_percent == 0.0

    def test_exhausted_quiz_counts_as_completed(self):
        state = QuizCompletionState(attempts=2, score=40.0, passed=False, completed=True)

        verdict = evaluate_quiz(state)

        assert verdict.completed is True
        assert verdict.progress_percent == 40.0


class TestGate:
    """Tests for gate resolution on single-type and mixed lessons."""

    def test_precedence_order(self):
        assert GATE_PRECEDENCE == (
            ContentType.VIDEO,
            ContentType.QUIZ,
            ContentType.TEXT,
            ContentType.FILE,
        )

    def test_mixed_lesson_gated_by_video(self, lessons):
        lesson = lessons.mixed(
            LessonContent(
                video=VideoPayload(url="https://cdn.example.com/v.mp4", duration_seconds=60),
                quiz=QuizPayload(questions=[{"q": 1}]),
                text_content="Notes",
            )
        )

        assert resolve_gate_type(lesson) == ContentType.VIDEO

    def test_mixed_lesson_skips_video_without_url(self, lessons):
        lesson = lessons.mixed(
            LessonContent(
                video=VideoPayload(url=None, duration_seconds=60),
                quiz=QuizPayload(questions=[{"q": 1}]),
            )
        )

        assert resolve_gate_type(lesson) == ContentType.QUIZ

    def test_mixed_lesson_with_text_and_file(self, lessons):
        lesson = lessons.mixed(
            LessonContent(text_content="Body", file_url="https://cdn.example.com/f.pdf")
        )

        assert resolve_gate_type(lesson) == ContentType.TEXT

    def test_legacy_quiz_questions_field(self, lessons):
        lesson = lessons.mixed(LessonContent(quiz_questions=[{"q": 1}, {"q": 2}]))

        assert resolve_gate_type(lesson) == ContentType.QUIZ

    def test_quiz_without_questions_has_no_gate(self, lessons):
        lesson = lessons.quiz(questions=0)

        assert resolve_gate_type(lesson) is None

    def test_malformed_content_never_completes(self, lessons, options):
        """Unusable payloads evaluate to not completed at 0%."""
        lesson = lessons.mixed(LessonContent(video=VideoPayload(url=None)))
        state = ContentCompletionState(
            video=VideoCompletionState(watch_time_seconds=100, duration_seconds=100, completed=True),
            text=TextCompletionState(read_time_seconds=999),
        )

        verdict = evaluate_lesson(lesson, state, options)

        assert verdict.completed is False
        assert verdict.progress_percent == 0.0

    def test_mixed_lesson_ignores_non_gating_content(self, lessons, options):
        """Reading the notes of a video lesson does not complete it."""
        lesson = lessons.mixed(
            LessonContent(
                video=VideoPayload(url="https://cdn.example.com/v.mp4", duration_seconds=100),
                text_content="Notes",
            )
        )
        state = ContentCompletionState(text=TextCompletionState(read_time_seconds=120))

        assert evaluate_lesson(lesson, state, options).completed is False

        state.video = VideoCompletionState(watch_time_seconds=96, duration_seconds=100)
        assert evaluate_lesson(lesson, state, options).completed is True


class TestCompletionRequirements:
    def test_lists_every_usable_payload_gate_first(self, lessons, options):
        lesson = lessons.mixed(
            LessonContent(
                file_url="https://cdn.example.com/f.pdf",
                quiz=QuizPayload(questions=[{"q": 1}]),
                video=VideoPayload(url="https://cdn.example.com/v.mp4", duration_seconds=10),
            )
        )
        state = ContentCompletionState(quiz=QuizCompletionState(attempts=1, score=50.0))

        requirements = completion_requirements(lesson, state, options)

        assert [r.type for r in requirements] == [
            ContentType.VIDEO,
            ContentType.QUIZ,
            ContentType.FILE,
        ]
        quiz = requirements[1]
        assert quiz.attempts == 1
        assert quiz.max_attempts == 2
        assert quiz.progress_percent == 50.0
        assert "95%" in requirements[0].description
        assert requirements[0].attempts is None

    def test_single_type_lesson_has_one_requirement(self, lessons, options):
        requirements = completion_requirements(
            lessons.text(), ContentCompletionState(), options
        )

        assert len(requirements) == 1
        assert requirements[0].type == ContentType.TEXT
        assert requirements[0].completed is False
