"""Course catalog service layer.

Read-only access to the course -> module -> lesson tree used by the
progression engine. Trees are assembled from the junction tables in
authoring order and cached in Redis when it is available.
"""

from typing import TYPE_CHECKING
from uuid import UUID

import structlog
from pydantic import ValidationError

from src.core.redis import course_tree_cache_key

from .models import Course, Lesson, Module, parse_content_type
from .schemas import CourseTree, LessonContent, LessonNode, ModuleNode


if TYPE_CHECKING:
    from cassandra.cluster import Session
    from redis.asyncio import Redis

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class CourseError(Exception):
    """Base course error."""

    def __init__(self, message: str, code: str = "course_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class CourseNotFoundError(CourseError):
    """Course not found."""

    def __init__(self, message: str = "Course not found"):
        super().__init__(message, "course_not_found")


# ==============================================================================
# Course Catalog Service
# ==============================================================================


class CourseCatalogService:
    """Service that resolves course trees."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        redis: "Redis | None" = None,
        cache_ttl_seconds: int = 300,
    ):
        """Initialize with Cassandra session and optional Redis cache."""
        self.session = session
        self.keyspace = keyspace
        self.redis = redis
        self.cache_ttl_seconds = cache_ttl_seconds
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        self._get_course_by_id = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.courses WHERE id = ?"
        )
        self._get_module_by_id = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.modules WHERE id = ?"
        )
        self._get_lesson_by_id = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.lessons WHERE id = ?"
        )
        self._get_course_modules = self.session.prepare(f"""
            SELECT module_id, position FROM {self.keyspace}.course_modules
            WHERE course_id = ?
        """)
        self._get_module_lessons = self.session.prepare(f"""
            SELECT lesson_id, position FROM {self.keyspace}.module_lessons
            WHERE module_id = ?
        """)

    async def get_course(self, course_id: UUID) -> CourseTree:
        """Get the full, ordered tree of a course.

        Raises:
            CourseNotFoundError: If the course does not exist
        """
        cached = await self._get_cached(course_id)
        if cached is not None:
            return cached

        result = await self.session.aexecute(self._get_course_by_id, [course_id])
        row = result.one()
        if not row:
            raise CourseNotFoundError
        course = Course.from_row(row)

        modules: list[ModuleNode] = []
        links = await self.session.aexecute(self._get_course_modules, [course_id])
        for link in sorted(links, key=lambda r: r.position):
            module_result = await self.session.aexecute(
                self._get_module_by_id, [link.module_id]
            )
            module_row = module_result.one()
            if not module_row:
                logger.warning(
                    "course_module_missing",
                    course_id=str(course_id),
                    module_id=str(link.module_id),
                )
                continue
            module = Module.from_row(module_row)
            modules.append(
                ModuleNode(
                    id=module.id,
                    title=module.title,
                    position=link.position,
                    lessons=await self._get_module_lessons_nodes(module.id),
                )
            )

        tree = CourseTree(
            id=course.id,
            title=course.title,
            description=course.description,
            modules=modules,
        )
        await self._set_cached(tree)
        return tree

    async def _get_module_lessons_nodes(self, module_id: UUID) -> list[LessonNode]:
        """Resolve the lessons of a module in authoring order."""
        nodes: list[LessonNode] = []
        links = await self.session.aexecute(self._get_module_lessons, [module_id])
        for link in sorted(links, key=lambda r: r.position):
            result = await self.session.aexecute(self._get_lesson_by_id, [link.lesson_id])
            row = result.one()
            if not row:
                logger.warning(
                    "module_lesson_missing",
                    module_id=str(module_id),
                    lesson_id=str(link.lesson_id),
                )
                continue
            nodes.append(self.to_lesson_node(Lesson.from_row(row), link.position))
        return nodes

    def to_lesson_node(self, lesson: Lesson, position: int) -> LessonNode:
        """Convert a Lesson row to a LessonNode.

        Unparseable payloads become an empty LessonContent, so the lesson can
        never complete (and never unlock its successor) until it is fixed.
        """
        content = LessonContent()
        if lesson.content:
            try:
                content = LessonContent.model_validate_json(lesson.content)
            except ValidationError as e:
                logger.warning(
                    "lesson_content_malformed",
                    lesson_id=str(lesson.id),
                    error_count=e.error_count(),
                )

        return LessonNode(
            id=lesson.id,
            title=lesson.title,
            type=parse_content_type(lesson.content_type),
            content=content,
            duration_seconds=lesson.duration_seconds,
            points=lesson.points,
            position=position,
        )

    # ==========================================================================
    # Cache
    # ==========================================================================

    async def _get_cached(self, course_id: UUID) -> CourseTree | None:
        if not self.redis:
            return None
        cached = await self.redis.get(course_tree_cache_key(course_id))
        if cached is None:
            return None
        try:
            return CourseTree.model_validate_json(cached)
        except ValidationError:
            logger.warning("course_tree_cache_invalid", course_id=str(course_id))
            await self.invalidate(course_id)
            return None

    async def _set_cached(self, tree: CourseTree) -> None:
        if not self.redis:
            return
        await self.redis.setex(
            course_tree_cache_key(tree.id),
            self.cache_ttl_seconds,
            tree.model_dump_json(),
        )

    async def invalidate(self, course_id: UUID) -> None:
        """Drop the cached tree of a course (after authoring changes)."""
        if self.redis:
            await self.redis.delete(course_tree_cache_key(course_id))
