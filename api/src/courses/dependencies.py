"""FastAPI dependencies for the course catalog.

Provides dependency injection for:
- Course catalog service
- Error handlers
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import CourseCatalogService, CourseError


async def get_catalog_service(request: Request) -> CourseCatalogService:
    """Get course catalog service from app state."""
    catalog = getattr(request.app.state, "catalog_service", None)
    if catalog is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Course catalog not available",
        )
    return catalog


CatalogServiceDep = Annotated[CourseCatalogService, Depends(get_catalog_service)]


def handle_course_error(error: CourseError) -> HTTPException:
    """Convert course errors to HTTP exceptions."""
    status_map = {
        "course_not_found": status.HTTP_404_NOT_FOUND,
    }

    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail=error.message,
    )
