"""Tests for the course catalog service."""

import json
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from src.courses.models import ContentType, parse_content_type
from src.courses.schemas import CourseTree
from src.courses.service import CourseCatalogService, CourseNotFoundError


def seed_course(cassandra, modules: list[list[dict]]):
    """Insert a course whose modules hold the given lesson rows.

    Junction rows are inserted in reverse so ordering must come from
    ``position``.
    """
    course_id = uuid4()
    cassandra.insert_row(
        "courses",
        id=course_id,
        title="Pharmacology 101",
        description="Intro",
        status="published",
        updated_at=None,
    )
    for m_pos, lessons in reversed(list(enumerate(modules))):
        module_id = uuid4()
        cassandra.insert_row(
            "modules", id=module_id, title=f"Module {m_pos}", description=None
        )
        cassandra.insert_row(
            "course_modules", course_id=course_id, module_id=module_id, position=m_pos
        )
        for l_pos, lesson in reversed(list(enumerate(lessons))):
            lesson_id = uuid4()
            cassandra.insert_row(
                "lessons",
                id=lesson_id,
                title=lesson.get("title", f"Lesson {m_pos}.{l_pos}"),
                content_type=lesson.get("content_type", "text"),
                content=lesson.get("content"),
                duration_seconds=lesson.get("duration_seconds"),
                points=lesson.get("points"),
            )
            cassandra.insert_row(
                "module_lessons", module_id=module_id, lesson_id=lesson_id, position=l_pos
            )
    return course_id


VIDEO = {
    "content_type": "video",
    "content": json.dumps({"video": {"url": "https://cdn.example.com/a.mp4", "duration_seconds": 90}}),
}
TEXT = {"content_type": "text", "content": json.dumps({"text_content": "Hello"})}


class TestGetCourse:
    @pytest.mark.asyncio
    async def test_tree_in_authoring_order(self, cassandra):
        course_id = seed_course(
            cassandra,
            [
                [dict(VIDEO, title="First"), dict(TEXT, title="Second")],
                [dict(TEXT, title="Third")],
            ],
        )
        service = CourseCatalogService(cassandra, "ks")

        tree = await service.get_course(course_id)

        assert tree.title == "Pharmacology 101"
        assert [m.title for m in tree.modules] == ["Module 0", "Module 1"]
        titles = [lesson.title for m in tree.modules for lesson in m.lessons]
        assert titles == ["First", "Second", "Third"]
        assert tree.total_lessons == 3
        video = tree.modules[0].lessons[0]
        assert video.type == ContentType.VIDEO
        assert video.content.has_video
        assert video.content.video.duration_seconds == 90

    @pytest.mark.asyncio
    async def test_unknown_course(self, cassandra):
        service = CourseCatalogService(cassandra, "ks")

        with pytest.raises(CourseNotFoundError):
            await service.get_course(uuid4())

    @pytest.mark.asyncio
    async def test_malformed_content_becomes_empty(self, cassandra):
        course_id = seed_course(cassandra, [[{"content_type": "video", "content": "{not json"}]])
        service = CourseCatalogService(cassandra, "ks")

        tree = await service.get_course(course_id)

        lesson = tree.modules[0].lessons[0]
        assert lesson.type == ContentType.VIDEO
        assert not lesson.content.has_video

    @pytest.mark.asyncio
    async def test_legacy_payload_fields(self, cassandra):
        course_id = seed_course(
            cassandra,
            [[{"content_type": "pdf", "content": json.dumps({"file_url": "https://x/y.pdf"})}]],
        )
        service = CourseCatalogService(cassandra, "ks")

        lesson = (await service.get_course(course_id)).modules[0].lessons[0]

        assert lesson.type == ContentType.FILE
        assert lesson.content.has_file

    @pytest.mark.asyncio
    async def test_missing_lesson_row_skipped(self, cassandra):
        course_id = seed_course(cassandra, [[TEXT, TEXT]])
        lesson_key = next(iter(cassandra.tables["lessons"]))
        del cassandra.tables["lessons"][lesson_key]
        service = CourseCatalogService(cassandra, "ks")

        tree = await service.get_course(course_id)

        assert tree.total_lessons == 1


class TestCache:
    @pytest.mark.asyncio
    async def test_cache_miss_populates(self, cassandra):
        course_id = seed_course(cassandra, [[TEXT]])
        redis = AsyncMock()
        redis.get.return_value = None
        service = CourseCatalogService(cassandra, "ks", redis=redis, cache_ttl_seconds=60)

        tree = await service.get_course(course_id)

        key, ttl, payload = redis.setex.await_args.args
        assert key == f"course_tree:{course_id}"
        assert ttl == 60
        assert CourseTree.model_validate_json(payload) == tree

    @pytest.mark.asyncio
    async def test_cache_hit_skips_cassandra(self, cassandra):
        tree = CourseTree(id=uuid4(), title="Cached")
        redis = AsyncMock()
        redis.get.return_value = tree.model_dump_json()
        service = CourseCatalogService(cassandra, "ks", redis=redis)

        assert await service.get_course(tree.id) == tree
        assert cassandra.executed == []

    @pytest.mark.asyncio
    async def test_invalid_cache_entry_is_dropped(self, cassandra):
        course_id = seed_course(cassandra, [[TEXT]])
        redis = AsyncMock()
        redis.get.return_value = "garbage"
        service = CourseCatalogService(cassandra, "ks", redis=redis)

        tree = await service.get_course(course_id)

        assert tree.id == course_id
        redis.delete.assert_awaited_once_with(f"course_tree:{course_id}")


class TestParseContentType:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("video", ContentType.VIDEO),
            (" Quiz ", ContentType.QUIZ),
            ("content", ContentType.TEXT),
            ("document", ContentType.FILE),
            ("pdf", ContentType.FILE),
            ("hologram", ContentType.MIXED),
            (None, ContentType.MIXED),
        ],
    )
    def test_aliases(self, raw, expected):
        assert parse_content_type(raw) == expected
