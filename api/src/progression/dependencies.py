"""FastAPI dependencies for the progression API.

Provides dependency injection for:
- Session registry
- Error handlers
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .sessions import ProgressionError, SessionRegistry


async def get_session_registry(request: Request) -> SessionRegistry:
    """Get the progression session registry from app state."""
    registry = getattr(request.app.state, "session_registry", None)
    if registry is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Progression engine not available",
        )
    return registry


SessionRegistryDep = Annotated[SessionRegistry, Depends(get_session_registry)]


def handle_progression_error(error: ProgressionError) -> HTTPException:
    """Convert progression errors to HTTP exceptions."""
    status_map = {
        "session_not_found": status.HTTP_404_NOT_FOUND,
        "lesson_not_found": status.HTTP_404_NOT_FOUND,
        "progress_unavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
    }

    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail=error.message,
    )
