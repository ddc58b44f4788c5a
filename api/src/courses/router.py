"""Course catalog API endpoints (read-only)."""

from uuid import UUID

from fastapi import APIRouter

from .dependencies import CatalogServiceDep, handle_course_error
from .schemas import CourseTree
from .service import CourseError


router = APIRouter(prefix="/v1/courses", tags=["courses"])


@router.get("/{course_id}", response_model=CourseTree)
async def get_course_tree(
    course_id: UUID,
    catalog: CatalogServiceDep,
) -> CourseTree:
    """Get a course with its modules and lessons in authoring order."""
    try:
        return await catalog.get_course(course_id)
    except CourseError as e:
        raise handle_course_error(e) from e
