"""Student progress API endpoints.

Provides routes for:
- Idempotent lesson completion
- Quiz outcome recording
- Course progress queries
"""

from uuid import UUID

from fastapi import APIRouter, status

from src.core.dependencies import CurrentUserId
from src.courses.dependencies import handle_course_error
from src.courses.service import CourseError

from .dependencies import ProgressServiceDep, handle_progress_error
from .schemas import (
    CourseProgressResponse,
    ProgressEntryResponse,
    RecordLessonCompletionRequest,
    RecordLessonCompletionResponse,
    RecordQuizResultRequest,
)
from .service import ProgressError


router = APIRouter(prefix="/v1/progress", tags=["progress"])


@router.get(
    "/courses/{course_id}",
    response_model=CourseProgressResponse,
    summary="Get course progress",
)
async def get_course_progress(
    course_id: UUID,
    progress_service: ProgressServiceDep,
    user_id: CurrentUserId,
) -> CourseProgressResponse:
    """Get detailed entries plus module and course aggregates."""
    return await progress_service.get_course_progress(user_id, course_id)


@router.post(
    "/lesson-completed",
    response_model=RecordLessonCompletionResponse,
    summary="Record lesson completion",
)
async def record_lesson_completion(
    data: RecordLessonCompletionRequest,
    progress_service: ProgressServiceDep,
    user_id: CurrentUserId,
) -> RecordLessonCompletionResponse:
    """Record a completed lesson.

    Submitting the same lesson twice returns the first record.
    """
    try:
        entry, created = await progress_service.record_lesson_completion(user_id, data)
    except CourseError as e:
        raise handle_course_error(e) from e
    except ProgressError as e:
        raise handle_progress_error(e) from e

    return RecordLessonCompletionResponse(
        message="Lesson completed" if created else "Lesson already completed",
        created=created,
        progress=ProgressEntryResponse.from_entity(entry),
    )


@router.post(
    "/quiz-result",
    response_model=ProgressEntryResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record quiz result",
)
async def record_quiz_result(
    data: RecordQuizResultRequest,
    progress_service: ProgressServiceDep,
    user_id: CurrentUserId,
) -> ProgressEntryResponse:
    """Record the outcome of a quiz submission."""
    entry = await progress_service.record_quiz_result(user_id, data)
    return ProgressEntryResponse.from_entity(entry)
