"""Course catalog module.

Provides the read-only course -> module -> lesson tree consumed by the
progression engine.
"""

from .models import COURSES_TABLES_CQL, ContentType
from .schemas import CourseTree, LessonContent, LessonNode, ModuleNode


__all__ = [
    "COURSES_TABLES_CQL",
    "ContentType",
    "CourseTree",
    "LessonContent",
    "LessonNode",
    "ModuleNode",
]
