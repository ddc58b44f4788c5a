"""Student progress module.

Provides:
- Idempotent lesson completion records
- Quiz outcome records
- Module and course completion aggregation
"""

from .models import (
    PROGRESS_TABLES_CQL,
    CourseCompletion,
    ModuleCompletion,
    ProgressEntry,
    ProgressEntryStatus,
    ProgressEntryType,
)


__all__ = [
    "PROGRESS_TABLES_CQL",
    "CourseCompletion",
    "ModuleCompletion",
    "ProgressEntry",
    "ProgressEntryStatus",
    "ProgressEntryType",
]
