"""Shared fixtures.

In-memory stand-ins for Cassandra, the course catalog and a student's
progress store, plus builders for course trees.
"""

import os
import re
import tempfile
from collections.abc import Callable, Iterator
from datetime import UTC, datetime
from decimal import Decimal
from pathlib import Path
from types import SimpleNamespace
from typing import Any
from unittest.mock import Mock
from uuid import UUID, uuid4


os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("LOG_REQUESTS", "false")
os.environ.setdefault("LOG_DIR", str(Path(tempfile.gettempdir()) / "coursepath-test-logs"))

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from src.courses.models import ContentType  # noqa: E402
from src.courses.schemas import (  # noqa: E402
    CourseTree,
    FilePayload,
    LessonContent,
    LessonNode,
    ModuleNode,
    QuizPayload,
    VideoPayload,
)
from src.courses.service import CourseNotFoundError  # noqa: E402
from src.progress.models import ProgressEntryStatus, ProgressEntryType  # noqa: E402
from src.progress.schemas import (  # noqa: E402
    CourseProgressResponse,
    ProgressEntryResponse,
    RecordLessonCompletionRequest,
    RecordQuizResultRequest,
)
from src.progression.options import CompletionOptions  # noqa: E402
from src.progression.sessions import SessionRegistry  # noqa: E402


# ==============================================================================
# In-memory Cassandra
# ==============================================================================

PRIMARY_KEYS = {
    "courses": ("id",),
    "modules": ("id",),
    "lessons": ("id",),
    "course_modules": ("course_id", "position", "module_id"),
    "module_lessons": ("module_id", "position", "lesson_id"),
    "student_progress": ("user_id", "course_id", "type", "lesson_id"),
    "module_completions": ("user_id", "course_id", "module_id"),
    "course_completions": ("user_id", "course_id"),
}


class FakeResult(list):
    """Result set supporting iteration, ``one()`` and ``was_applied``."""

    was_applied = True

    def one(self) -> Any:
        return self[0] if self else None


class FakeCassandra:
    """Executes the simple INSERT/SELECT statements the services prepare.

    INSERT is an upsert on the table's primary key, as in Cassandra.
    ``INSERT ... IF NOT EXISTS`` is not applied over an existing row and
    returns that row instead.
    """

    def __init__(self):
        self.tables: dict[str, dict[tuple, SimpleNamespace]] = {t: {} for t in PRIMARY_KEYS}
        self.executed: list[str] = []
        self.fail = False

    def prepare(self, query: str) -> Mock:
        return Mock(query_string=" ".join(query.split()))

    def insert_row(self, table: str, **values: Any) -> SimpleNamespace:
        row = SimpleNamespace(**values)
        key = tuple(values.get(col) for col in PRIMARY_KEYS[table])
        self.tables[table][key] = row
        return row

    def rows(self, table: str) -> list[SimpleNamespace]:
        return list(self.tables[table].values())

    def inserts_into(self, table: str) -> int:
        return sum(1 for q in self.executed if q.startswith(f"INSERT INTO ks.{table} "))

    async def aexecute(self, statement: Mock, params: list[Any]) -> FakeResult:
        if self.fail:
            raise ConnectionError("cassandra unavailable")

        query = statement.query_string
        self.executed.append(query)
        table = re.search(r"(?:FROM|INTO) \w+\.(\w+)", query).group(1)

        if query.startswith("INSERT"):
            columns = [
                c.strip()
                for c in re.search(r"\(([^)]*)\) VALUES", query).group(1).split(",")
            ]
            values = dict(zip(columns, params, strict=True))
            if query.endswith("IF NOT EXISTS"):
                key = tuple(values.get(col) for col in PRIMARY_KEYS[table])
                if key in self.tables[table]:
                    result = FakeResult([self.tables[table][key]])
                    result.was_applied = False
                    return result
            self.insert_row(table, **values)
            return FakeResult()

        where = re.findall(r"(\w+) = \?", query.split("WHERE", 1)[1])
        wanted = dict(zip(where, params, strict=True))
        return FakeResult(
            row
            for row in self.tables[table].values()
            if all(getattr(row, col, None) == value for col, value in wanted.items())
        )


@pytest.fixture
def cassandra() -> FakeCassandra:
    return FakeCassandra()


# ==============================================================================
# Course builders
# ==============================================================================


def _lesson(content_type: ContentType, content: LessonContent, title: str | None = None) -> LessonNode:
    return LessonNode(
        id=uuid4(),
        title=title or f"{content_type.value} lesson",
        type=content_type,
        content=content,
    )


class LessonFactory:
    """Builds lessons with usable payloads."""

    def video(self, duration: float = 100.0, title: str | None = None) -> LessonNode:
        return _lesson(
            ContentType.VIDEO,
            LessonContent(
                video=VideoPayload(url="https://cdn.example.com/v.mp4", duration_seconds=duration)
            ),
            title,
        )

    def quiz(self, questions: int = 10, title: str | None = None) -> LessonNode:
        return _lesson(
            ContentType.QUIZ,
            LessonContent(
                quiz=QuizPayload(questions=[{"q": i} for i in range(questions)])
            ),
            title,
        )

    def text(self, title: str | None = None) -> LessonNode:
        return _lesson(ContentType.TEXT, LessonContent(text_content="Read me."), title)

    def file(self, title: str | None = None) -> LessonNode:
        return _lesson(
            ContentType.FILE,
            LessonContent(file=FilePayload(url="https://cdn.example.com/f.pdf")),
            title,
        )

    def mixed(self, content: LessonContent, title: str | None = None) -> LessonNode:
        return _lesson(ContentType.MIXED, content, title)


@pytest.fixture
def lessons() -> LessonFactory:
    return LessonFactory()


@pytest.fixture
def course_factory() -> Callable[..., CourseTree]:
    """Build a course from lists of lessons, one list per module."""

    def build(*modules: list[LessonNode], title: str = "Course") -> CourseTree:
        return CourseTree(
            id=uuid4(),
            title=title,
            modules=[
                ModuleNode(
                    id=uuid4(),
                    title=f"Module {index + 1}",
                    position=index,
                    lessons=[
                        lesson.model_copy(update={"position": pos})
                        for pos, lesson in enumerate(module_lessons)
                    ],
                )
                for index, module_lessons in enumerate(modules)
            ],
        )

    return build


@pytest.fixture
def scenario_course(lessons: LessonFactory, course_factory) -> CourseTree:
    """Module A: video, quiz. Module B: text."""
    return course_factory(
        [lessons.video(100.0, "Lesson 1"), lessons.quiz(10, "Lesson 2")],
        [lessons.text("Lesson 3")],
    )


def lesson_ids(course: CourseTree) -> list[UUID]:
    return [lesson.id for module in course.modules for lesson in module.lessons]


@pytest.fixture
def ids() -> Callable[[CourseTree], list[UUID]]:
    """Flattened lesson ids of a course."""
    return lesson_ids


# ==============================================================================
# Engine fakes
# ==============================================================================


class InMemoryCatalog:
    def __init__(self, *courses: CourseTree):
        self.courses = {course.id: course for course in courses}

    def add(self, course: CourseTree) -> None:
        self.courses[course.id] = course

    async def get_course(self, course_id: UUID) -> CourseTree:
        if course_id not in self.courses:
            raise CourseNotFoundError
        return self.courses[course_id]


class InMemoryProgressStore:
    """Progress of one student. Completion writes upsert on lesson id."""

    def __init__(self):
        self.entries: dict[UUID, ProgressEntryResponse] = {}
        self.quiz_results: list[RecordQuizResultRequest] = []
        self.writes = 0
        self.reads = 0
        self.fail_reads = False
        self.fail_writes = False

    def seed_completed(self, course_id: UUID, *lesson_ids: UUID) -> None:
        for lesson_id in lesson_ids:
            self.entries[lesson_id] = self._entry(course_id, lesson_id)

    async def get_course_progress(self, course_id: UUID) -> CourseProgressResponse:
        self.reads += 1
        if self.fail_reads:
            raise ConnectionError("progress store unavailable")
        return CourseProgressResponse(
            course_id=course_id,
            detailed_progress=[
                e for e in self.entries.values() if e.course_id == course_id
            ],
        )

    async def record_lesson_completion(
        self, request: RecordLessonCompletionRequest
    ) -> ProgressEntryResponse:
        if self.fail_writes:
            raise ConnectionError("progress store unavailable")
        if request.lesson_id in self.entries:
            return self.entries[request.lesson_id]
        self.writes += 1
        entry = self._entry(
            request.course_id,
            request.lesson_id,
            module_id=request.module_id,
            lesson_title=request.lesson_title,
            time_spent_seconds=request.time_spent_seconds,
        )
        self.entries[request.lesson_id] = entry
        return entry

    async def record_quiz_result(self, request: RecordQuizResultRequest) -> None:
        self.quiz_results.append(request)

    @staticmethod
    def _entry(course_id: UUID, lesson_id: UUID, **extra: Any) -> ProgressEntryResponse:
        return ProgressEntryResponse(
            course_id=course_id,
            lesson_id=lesson_id,
            type=ProgressEntryType.LESSON_COMPLETED,
            status=ProgressEntryStatus.COMPLETED,
            score=Decimal(100),
            completed_at=datetime.now(UTC),
            **extra,
        )


class ManualClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def options() -> CompletionOptions:
    return CompletionOptions()


@pytest.fixture
def store() -> InMemoryProgressStore:
    return InMemoryProgressStore()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def catalog(scenario_course: CourseTree) -> InMemoryCatalog:
    return InMemoryCatalog(scenario_course)


# ==============================================================================
# HTTP client
# ==============================================================================


@pytest.fixture
def user_id() -> UUID:
    return uuid4()


@pytest.fixture
def client() -> Iterator[TestClient]:
    """Client for the bare app (lifespan not run, no stores wired)."""
    from src.main import app

    yield TestClient(app)


@pytest.fixture
def stores() -> dict[UUID, InMemoryProgressStore]:
    return {}


@pytest.fixture
def registry(
    catalog: InMemoryCatalog,
    stores: dict[UUID, InMemoryProgressStore],
    options: CompletionOptions,
    clock: ManualClock,
) -> SessionRegistry:
    """Session registry giving each student an in-memory store in ``stores``."""
    return SessionRegistry(
        catalog=catalog,
        store_factory=lambda uid: stores.setdefault(uid, InMemoryProgressStore()),
        options=options,
        idle_seconds=600,
        clock=clock,
    )


@pytest.fixture
def wired_client(
    catalog: InMemoryCatalog,
    registry: SessionRegistry,
) -> Iterator[TestClient]:
    """Client whose session registry runs on in-memory stores."""
    from src.main import app

    app.state.catalog_service = catalog
    app.state.session_registry = registry
    yield TestClient(app)
    del app.state.catalog_service
    del app.state.session_registry
