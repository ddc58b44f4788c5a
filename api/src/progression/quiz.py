"""Quiz attempt tracking.

Attempts count submissions, not starts. A quiz completes when it is passed,
and also when the student runs out of attempts: a failed, exhausted quiz
still unlocks the next lesson so a course can never be blocked for good.
"""

from dataclasses import dataclass
from enum import Enum

import structlog

from .models import QuizCompletionState


logger = structlog.get_logger(__name__)


class QuizStatus(str, Enum):
    """Quiz attempt state."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    PASSED = "passed"
    FAILED_RETRYABLE = "failed_retryable"
    FAILED_EXHAUSTED = "failed_exhausted"


TERMINAL_STATUSES = frozenset({QuizStatus.PASSED, QuizStatus.FAILED_EXHAUSTED})


@dataclass(frozen=True)
class QuizSubmissionResult:
    percentage: float
    passed: bool
    completed: bool
    can_retry: bool
    attempts: int
    attempts_remaining: int
    status: QuizStatus


class QuizAttemptTracker:
    """Attempt counter and pass/fail state of one quiz during a lesson visit."""

    def __init__(self, max_attempts: int = 2, min_pass_score: float = 70):
        self.max_attempts = max_attempts
        self.min_pass_score = min_pass_score
        self.status = QuizStatus.NOT_STARTED
        self.attempts = 0
        self.score: float | None = None
        self.passed = False
        self.completed = False
        self._last_result: QuizSubmissionResult | None = None

    @property
    def attempts_remaining(self) -> int:
        return max(0, self.max_attempts - self.attempts)

    @property
    def can_retry(self) -> bool:
        return not self.passed and self.attempts_remaining > 0

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def start(self) -> None:
        """Open the quiz. Starting never counts as an attempt."""
        if self.status == QuizStatus.NOT_STARTED:
            self.status = QuizStatus.IN_PROGRESS

    def submit(
        self,
        score: int,
        total_questions: int,
        expected_questions: int | None = None,
    ) -> QuizSubmissionResult:
        """Grade one submission.

        A submission with a score out of range, or answering a different
        number of questions than the quiz has, is rejected without using
        an attempt.

        Args:
            score: Number of correct answers
            total_questions: Number of questions answered
            expected_questions: Number of questions the quiz actually has

        Returns:
            QuizSubmissionResult for this submission
        """
        if self.is_terminal:
            logger.debug(
                "quiz_submission_ignored",
                status=self.status.value,
                attempts=self.attempts,
            )
            return self._last_result or self._result(self.score or 0.0)

        if (
            total_questions <= 0
            or not 0 <= score <= total_questions
            or (expected_questions is not None and total_questions != expected_questions)
        ):
            logger.warning(
                "quiz_submission_malformed",
                score=score,
                total_questions=total_questions,
                expected_questions=expected_questions,
            )
            return self._result(percentage=0.0)

        self.attempts += 1
        percentage = score / total_questions * 100
        self.score = percentage
        self.passed = percentage >= self.min_pass_score

        if self.passed:
            self.status = QuizStatus.PASSED
            self.completed = True
        elif self.attempts < self.max_attempts:
            self.status = QuizStatus.FAILED_RETRYABLE
            self.completed = False
        else:
            self.status = QuizStatus.FAILED_EXHAUSTED
            self.completed = True

        self._last_result = self._result(percentage)
        logger.info(
            "quiz_submitted",
            percentage=percentage,
            passed=self.passed,
            attempts=self.attempts,
            status=self.status.value,
        )
        return self._last_result

    def reset(self) -> None:
        """Clear the outcome for a retry. Attempts are kept."""
        self.score = None
        self.passed = False
        self._last_result = None
        if self.attempts >= self.max_attempts:
            # Exhausted stays exhausted; the lesson remains unlocked
            self.status = QuizStatus.FAILED_EXHAUSTED
            self.completed = True
        else:
            self.status = QuizStatus.IN_PROGRESS
            self.completed = False

    def snapshot(self) -> QuizCompletionState:
        """Current state in the shape the evaluators read."""
        return QuizCompletionState(
            attempts=self.attempts,
            max_attempts=self.max_attempts,
            score=self.score,
            passed=self.passed,
            completed=self.completed,
        )

    def _result(self, percentage: float) -> QuizSubmissionResult:
        return QuizSubmissionResult(
            percentage=percentage,
            passed=self.passed,
            completed=self.completed,
            can_retry=self.can_retry,
            attempts=self.attempts,
            attempts_remaining=self.attempts_remaining,
            status=self.status,
        )
