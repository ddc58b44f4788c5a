"""Lesson accessibility resolution.

Lessons unlock in a strict linear chain over the flattened lesson order
(module order, then lesson order). The first lesson is always accessible;
any other lesson is accessible only when the lesson right before it is
completed. Resolution stops at the first gap, so the accessible set is
always a contiguous prefix of the course.
"""

from collections.abc import Iterable
from uuid import UUID

from src.courses.schemas import CourseTree, LessonNode
from src.progress.schemas import CourseProgressResponse

from .models import FlatLesson, LessonPosition


def flatten_course(course: CourseTree) -> list[FlatLesson]:
    """Flatten a course into its single total lesson order."""
    flat: list[FlatLesson] = []
    for module_index, module in enumerate(course.modules):
        for lesson_index, lesson in enumerate(module.lessons):
            flat.append(
                FlatLesson(
                    lesson=lesson,
                    module_id=module.id,
                    position=LessonPosition(module_index, lesson_index),
                    index=len(flat),
                )
            )
    return flat


def resolve_accessible_lessons(
    flat: list[FlatLesson],
    completed: Iterable[UUID],
) -> set[UUID]:
    """Compute the contiguous unlock frontier."""
    completed = set(completed)
    accessible: set[UUID] = set()
    for item in flat:
        if item.index > 0 and flat[item.index - 1].lesson_id not in completed:
            break
        accessible.add(item.lesson_id)
    return accessible


def completed_lessons_from_progress(progress: CourseProgressResponse) -> set[UUID]:
    """Completed lesson ids out of a course progress response."""
    return progress.completed_lesson_ids()


def next_position(
    course: CourseTree,
    position: LessonPosition,
) -> LessonPosition | None:
    """Immediate successor: next lesson in the module, else first lesson of the next non-empty module."""
    modules = course.modules
    if not 0 <= position.module_index < len(modules):
        return None

    if position.lesson_index + 1 < len(modules[position.module_index].lessons):
        return LessonPosition(position.module_index, position.lesson_index + 1)

    for module_index in range(position.module_index + 1, len(modules)):
        if modules[module_index].lessons:
            return LessonPosition(module_index, 0)
    return None


def previous_position(
    course: CourseTree,
    position: LessonPosition,
) -> LessonPosition | None:
    """Immediate predecessor: previous lesson in the module, else last lesson of the previous non-empty module."""
    modules = course.modules
    if not 0 <= position.module_index < len(modules):
        return None

    if position.lesson_index > 0:
        return LessonPosition(position.module_index, position.lesson_index - 1)

    for module_index in range(position.module_index - 1, -1, -1):
        lessons = modules[module_index].lessons
        if lessons:
            return LessonPosition(module_index, len(lessons) - 1)
    return None


class AccessibilityResolver:
    """Accessibility and position lookups over one course."""

    def __init__(self, course: CourseTree):
        self.course = course
        self.flat = flatten_course(course)
        self._by_id = {item.lesson_id: item for item in self.flat}
        self._by_position = {item.position: item for item in self.flat}

    @property
    def lesson_ids(self) -> set[UUID]:
        return set(self._by_id)

    @property
    def total_lessons(self) -> int:
        return len(self.flat)

    def resolve(self, completed: Iterable[UUID]) -> set[UUID]:
        return resolve_accessible_lessons(self.flat, completed)

    def get(self, lesson_id: UUID) -> FlatLesson | None:
        return self._by_id.get(lesson_id)

    def position_of(self, lesson_id: UUID) -> LessonPosition | None:
        item = self._by_id.get(lesson_id)
        return item.position if item else None

    def lesson_at(self, position: LessonPosition) -> LessonNode | None:
        item = self._by_position.get(position)
        return item.lesson if item else None

    def frontier(self, completed: Iterable[UUID]) -> FlatLesson | None:
        """Last accessible lesson: where a returning student resumes."""
        accessible = self.resolve(completed)
        frontier = None
        for item in self.flat:
            if item.lesson_id not in accessible:
                break
            frontier = item
        return frontier
