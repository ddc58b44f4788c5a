"""Progression API endpoints.

Provides routes for:
- Session lifecycle (open, state, close)
- Navigation (by position, next, previous)
- Engagement events (playback, quiz, reading, file viewing)
- Completion retry
"""

from uuid import UUID

from fastapi import APIRouter, status

from src.core.context import bind_progression_context
from src.core.dependencies import CurrentUserId
from src.courses.dependencies import handle_course_error
from src.courses.service import CourseError

from .dependencies import SessionRegistryDep, handle_progression_error
from .schemas import (
    EngagementTimeRequest,
    EventResponse,
    LessonEventRequest,
    NavigateRequest,
    NavigationResponse,
    OpenSessionRequest,
    QuizResultView,
    QuizSubmitRequest,
    QuizSubmitResponse,
    SeekRequest,
    SeekResponse,
    SessionStateResponse,
    TimeUpdateRequest,
)
from .sessions import EventOutcome, ProgressionError, ProgressionSession, SessionRegistry


router = APIRouter(prefix="/v1/progression/courses/{course_id}", tags=["progression"])


def _get_session(
    registry: SessionRegistry,
    user_id: UUID,
    course_id: UUID,
) -> ProgressionSession:
    try:
        session = registry.get(user_id, course_id)
    except ProgressionError as e:
        raise handle_progression_error(e) from e
    bind_progression_context(course_id, session.lesson.id if session.lesson else None)
    return session


def _event_response(session: ProgressionSession, outcome: EventOutcome) -> EventResponse:
    return EventResponse(
        accepted=outcome.accepted,
        lesson_completed=outcome.lesson_completed,
        session=SessionStateResponse.from_session(session),
    )


# ==============================================================================
# Session Lifecycle
# ==============================================================================


@router.post(
    "/session",
    response_model=SessionStateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Open progression session",
)
async def open_session(
    course_id: UUID,
    registry: SessionRegistryDep,
    user_id: CurrentUserId,
    data: OpenSessionRequest | None = None,
) -> SessionStateResponse:
    """Open a session hydrated from the progress store.

    Reopening replaces the previous session for the same course.
    """
    resume = data.resume if data else True
    try:
        session = await registry.open(user_id, course_id, resume=resume)
    except CourseError as e:
        raise handle_course_error(e) from e
    except ProgressionError as e:
        raise handle_progression_error(e) from e
    return SessionStateResponse.from_session(session)


@router.get(
    "/session",
    response_model=SessionStateResponse,
    summary="Get progression session state",
)
async def get_session_state(
    course_id: UUID,
    registry: SessionRegistryDep,
    user_id: CurrentUserId,
) -> SessionStateResponse:
    session = _get_session(registry, user_id, course_id)
    return SessionStateResponse.from_session(session)


@router.delete(
    "/session",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Close progression session",
)
async def close_session(
    course_id: UUID,
    registry: SessionRegistryDep,
    user_id: CurrentUserId,
) -> None:
    try:
        registry.close(user_id, course_id)
    except ProgressionError as e:
        raise handle_progression_error(e) from e


# ==============================================================================
# Navigation
# ==============================================================================


@router.post("/navigate", response_model=NavigationResponse, summary="Go to a lesson")
async def navigate(
    course_id: UUID,
    data: NavigateRequest,
    registry: SessionRegistryDep,
    user_id: CurrentUserId,
) -> NavigationResponse:
    """Move to an accessible lesson. Locked lessons leave the session as is."""
    session = _get_session(registry, user_id, course_id)
    try:
        if data.lesson_id is not None:
            moved = session.navigate_to_lesson_id(data.lesson_id)
        else:
            moved = session.navigate(data.module_index, data.lesson_index)
    except ProgressionError as e:
        raise handle_progression_error(e) from e
    return NavigationResponse(moved=moved, session=SessionStateResponse.from_session(session))


@router.post("/next", response_model=NavigationResponse, summary="Go to next lesson")
async def navigate_next(
    course_id: UUID,
    registry: SessionRegistryDep,
    user_id: CurrentUserId,
) -> NavigationResponse:
    session = _get_session(registry, user_id, course_id)
    moved = session.next()
    return NavigationResponse(moved=moved, session=SessionStateResponse.from_session(session))


@router.post("/previous", response_model=NavigationResponse, summary="Go to previous lesson")
async def navigate_previous(
    course_id: UUID,
    registry: SessionRegistryDep,
    user_id: CurrentUserId,
) -> NavigationResponse:
    session = _get_session(registry, user_id, course_id)
    moved = session.previous()
    return NavigationResponse(moved=moved, session=SessionStateResponse.from_session(session))


@router.post("/complete", response_model=EventResponse, summary="Retry lesson completion")
async def complete_lesson(
    course_id: UUID,
    data: LessonEventRequest,
    registry: SessionRegistryDep,
    user_id: CurrentUserId,
) -> EventResponse:
    """Write the completion of the current lesson if its gate is satisfied."""
    session = _get_session(registry, user_id, course_id)
    outcome = await session.complete(data.lesson_id)
    return _event_response(session, outcome)


# ==============================================================================
# Playback
# ==============================================================================


@router.post("/playback/time-update", response_model=EventResponse)
async def playback_time_update(
    course_id: UUID,
    data: TimeUpdateRequest,
    registry: SessionRegistryDep,
    user_id: CurrentUserId,
) -> EventResponse:
    session = _get_session(registry, user_id, course_id)
    outcome = await session.time_update(data.lesson_id, data.current_time, data.duration)
    return _event_response(session, outcome)


@router.post("/playback/seek", response_model=SeekResponse)
async def playback_seek(
    course_id: UUID,
    data: SeekRequest,
    registry: SessionRegistryDep,
    user_id: CurrentUserId,
) -> SeekResponse:
    """Seek within the watched part of the video. Skipping ahead is refused."""
    session = _get_session(registry, user_id, course_id)
    result = session.seek(data.lesson_id, data.time)
    state = SessionStateResponse.from_session(session)
    if result is None:
        return SeekResponse(accepted=False, session=state)
    return SeekResponse(
        accepted=result.accepted,
        current_time=result.current_time,
        skip_blocked=result.skip_blocked,
        session=state,
    )


@router.post("/playback/ended", response_model=EventResponse)
async def playback_ended(
    course_id: UUID,
    data: LessonEventRequest,
    registry: SessionRegistryDep,
    user_id: CurrentUserId,
) -> EventResponse:
    session = _get_session(registry, user_id, course_id)
    outcome = await session.ended(data.lesson_id)
    return _event_response(session, outcome)


# ==============================================================================
# Quiz
# ==============================================================================


@router.post("/quiz/submit", response_model=QuizSubmitResponse)
async def quiz_submit(
    course_id: UUID,
    data: QuizSubmitRequest,
    registry: SessionRegistryDep,
    user_id: CurrentUserId,
) -> QuizSubmitResponse:
    session = _get_session(registry, user_id, course_id)
    outcome, result = await session.submit_quiz(
        data.lesson_id, data.score, data.total_questions
    )
    return QuizSubmitResponse(
        accepted=outcome.accepted,
        lesson_completed=outcome.lesson_completed,
        result=QuizResultView.from_result(result) if result else None,
        session=SessionStateResponse.from_session(session),
    )


@router.post("/quiz/reset", response_model=EventResponse)
async def quiz_reset(
    course_id: UUID,
    data: LessonEventRequest,
    registry: SessionRegistryDep,
    user_id: CurrentUserId,
) -> EventResponse:
    """Clear the quiz outcome for a retry. Attempts are kept."""
    session = _get_session(registry, user_id, course_id)
    return _event_response(session, session.reset_quiz(data.lesson_id))


# ==============================================================================
# Reading and File Viewing
# ==============================================================================


@router.post("/engagement/read-time", response_model=EventResponse)
async def engagement_read_time(
    course_id: UUID,
    data: EngagementTimeRequest,
    registry: SessionRegistryDep,
    user_id: CurrentUserId,
) -> EventResponse:
    session = _get_session(registry, user_id, course_id)
    outcome = await session.update_read_time(data.lesson_id, data.seconds)
    return _event_response(session, outcome)


@router.post("/engagement/file-view-time", response_model=EventResponse)
async def engagement_file_view_time(
    course_id: UUID,
    data: EngagementTimeRequest,
    registry: SessionRegistryDep,
    user_id: CurrentUserId,
) -> EventResponse:
    session = _get_session(registry, user_id, course_id)
    outcome = await session.update_file_view_time(data.lesson_id, data.seconds)
    return _event_response(session, outcome)
