"""Progression and completion gating engine.

Provides:
- Content type evaluators and the mixed-lesson gate precedence
- Quiz attempt tracking and the monotonic playback guard
- Lesson accessibility (contiguous unlock frontier)
- Progression coordinator and per-student sessions
"""

from .coordinator import ProgressionCoordinator
from .evaluators import GATE_PRECEDENCE, evaluate_lesson, resolve_gate_type
from .options import CompletionOptions
from .playback import PlaybackGuard
from .quiz import QuizAttemptTracker, QuizStatus


__all__ = [
    "GATE_PRECEDENCE",
    "CompletionOptions",
    "PlaybackGuard",
    "ProgressionCoordinator",
    "QuizAttemptTracker",
    "QuizStatus",
    "evaluate_lesson",
    "resolve_gate_type",
]
