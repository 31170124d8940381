"""Chapter procedures: ordering, video assets, publication cascades and progress."""

import uuid

import pytest
from factories import OTHER_USER_ID, error_code, make_chapter, make_course, make_publishable_course
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from courseforge.auth.config import DEFAULT_USER_ID
from courseforge.chapters.models import Chapter, MuxData, UserProgress
from courseforge.courses.models import Course


COMPLETE_CHAPTER = {
    "description": "Variables and types",
    "video_url": "https://videos.example.com/source.mp4",
}


async def _positions(session: AsyncSession, course_id: uuid.UUID) -> dict[uuid.UUID, int]:
    rows = await session.execute(select(Chapter.id, Chapter.position).where(Chapter.course_id == course_id))
    return dict(rows.all())


async def _course_published(session: AsyncSession, course_id: uuid.UUID) -> bool:
    return await session.scalar(select(Course.is_published).where(Course.id == course_id))


@pytest.mark.asyncio
async def test_create_chapter_appends_after_last_position(client, db_session: AsyncSession) -> None:
    course = await make_course(db_session)

    first = await client.post("/api/v1/chapter/createChapter", json={"courseId": str(course.id), "title": "One"})
    assert first.status_code == 200
    assert first.json()["chapter"]["position"] == 1
    assert first.json()["chapter"]["isPublished"] is False

    await make_chapter(db_session, course, 7)
    second = await client.post("/api/v1/chapter/createChapter", json={"courseId": str(course.id), "title": "Two"})
    assert second.json()["chapter"]["position"] == 8


@pytest.mark.asyncio
async def test_create_chapter_on_foreign_course_is_unauthorized(client, db_session: AsyncSession) -> None:
    course = await make_course(db_session, user_id=OTHER_USER_ID)

    resp = await client.post("/api/v1/chapter/createChapter", json={"courseId": str(course.id), "title": "One"})

    assert resp.status_code == 401
    assert error_code(resp) == "UNAUTHORIZED"
    assert resp.json()["error"]["detail"] == "You are not the owner of this course"
    assert await db_session.scalar(select(func.count()).select_from(Chapter)) == 0


@pytest.mark.asyncio
async def test_reorder_chapters_applies_new_positions(client, db_session: AsyncSession) -> None:
    course = await make_course(db_session)
    a = await make_chapter(db_session, course, 1)
    b = await make_chapter(db_session, course, 2)

    resp = await client.post(
        "/api/v1/chapter/reorderChapters",
        json={
            "courseId": str(course.id),
            "list": [{"id": str(a.id), "position": 2}, {"id": str(b.id), "position": 1}],
        },
    )

    assert resp.status_code == 200
    assert resp.json() == {"code": 200}
    assert await _positions(db_session, course.id) == {a.id: 2, b.id: 1}


@pytest.mark.asyncio
async def test_reorder_with_unknown_chapter_changes_nothing(client, db_session: AsyncSession) -> None:
    course = await make_course(db_session)
    other_course = await make_course(db_session, title="Elsewhere")
    a = await make_chapter(db_session, course, 1)
    foreign = await make_chapter(db_session, other_course, 1)

    resp = await client.post(
        "/api/v1/chapter/reorderChapters",
        json={
            "courseId": str(course.id),
            "list": [{"id": str(a.id), "position": 5}, {"id": str(foreign.id), "position": 6}],
        },
    )

    assert resp.status_code == 404
    assert error_code(resp) == "NOT_FOUND"
    assert await _positions(db_session, course.id) == {a.id: 1}
    assert await _positions(db_session, other_course.id) == {foreign.id: 1}


@pytest.mark.asyncio
async def test_update_chapter_video_creates_asset(client, db_session: AsyncSession, video_host) -> None:
    course = await make_course(db_session)
    chapter = await make_chapter(db_session, course, 1)

    resp = await client.post(
        "/api/v1/chapter/updateChapter",
        json={
            "courseId": str(course.id),
            "chapterId": str(chapter.id),
            "title": "Basics",
            "videoUrl": "https://videos.example.com/basics.mp4",
        },
    )

    assert resp.status_code == 200
    data = resp.json()["chapter"]
    assert data["title"] == "Basics"
    assert data["videoUrl"] == "https://videos.example.com/basics.mp4"
    assert video_host.created == ["https://videos.example.com/basics.mp4"]
    row = (await db_session.execute(select(MuxData.asset_id, MuxData.playback_id))).one()
    assert tuple(row) == ("asset-1", "playback-1")


@pytest.mark.asyncio
async def test_update_chapter_video_replaces_previous_asset(client, db_session: AsyncSession, video_host) -> None:
    course = await make_course(db_session)
    chapter = await make_chapter(db_session, course, 1, asset_id="old-asset", video_url="https://v.example.com/1.mp4")

    resp = await client.post(
        "/api/v1/chapter/updateChapter",
        json={
            "courseId": str(course.id),
            "chapterId": str(chapter.id),
            "videoUrl": "https://videos.example.com/2.mp4",
        },
    )

    assert resp.status_code == 200
    assert video_host.deleted == ["old-asset"]
    asset_ids = (await db_session.scalars(select(MuxData.asset_id).where(MuxData.chapter_id == chapter.id))).all()
    assert asset_ids == ["asset-1"]


@pytest.mark.asyncio
async def test_update_chapter_publishing_incomplete_chapter_keeps_video(
    client, db_session: AsyncSession, video_host
) -> None:
    course = await make_course(db_session)
    chapter = await make_chapter(db_session, course, 1, asset_id="old-asset", video_url="https://v.example.com/1.mp4")

    resp = await client.post(
        "/api/v1/chapter/updateChapter",
        json={
            "courseId": str(course.id),
            "chapterId": str(chapter.id),
            "videoUrl": "https://videos.example.com/2.mp4",
            "isPublished": True,
        },
    )

    assert resp.status_code == 404
    assert error_code(resp) == "NOT_FOUND"
    assert video_host.created == []
    assert video_host.deleted == []
    row = (
        await db_session.execute(select(Chapter.video_url, Chapter.is_published).where(Chapter.id == chapter.id))
    ).one()
    assert tuple(row) == ("https://v.example.com/1.mp4", False)
    asset_ids = (await db_session.scalars(select(MuxData.asset_id).where(MuxData.chapter_id == chapter.id))).all()
    assert asset_ids == ["old-asset"]


@pytest.mark.asyncio
async def test_update_chapter_without_video_leaves_asset_alone(client, db_session: AsyncSession, video_host) -> None:
    course = await make_course(db_session)
    chapter = await make_chapter(db_session, course, 1, asset_id="kept-asset")

    resp = await client.post(
        "/api/v1/chapter/updateChapter",
        json={"courseId": str(course.id), "chapterId": str(chapter.id), "isFree": True},
    )

    assert resp.status_code == 200
    assert resp.json()["chapter"]["isFree"] is True
    assert video_host.created == []
    assert video_host.deleted == []


@pytest.mark.asyncio
async def test_update_chapter_cannot_publish_incomplete_chapter(client, db_session: AsyncSession) -> None:
    course = await make_course(db_session)
    chapter = await make_chapter(db_session, course, 1)

    resp = await client.post(
        "/api/v1/chapter/updateChapter",
        json={"courseId": str(course.id), "chapterId": str(chapter.id), "isPublished": True},
    )

    assert resp.status_code == 404
    assert resp.json()["error"]["detail"] == "Fields are missing to publish this chapter"


@pytest.mark.asyncio
async def test_publish_chapter_requires_every_field(client, db_session: AsyncSession) -> None:
    course = await make_course(db_session)
    # Has the fields but no video asset record
    chapter = await make_chapter(db_session, course, 1, **COMPLETE_CHAPTER)

    resp = await client.post(
        "/api/v1/chapter/publishChapter",
        json={"courseId": str(course.id), "chapterId": str(chapter.id)},
    )

    assert resp.status_code == 404
    assert error_code(resp) == "NOT_FOUND"
    assert await db_session.scalar(select(Chapter.is_published).where(Chapter.id == chapter.id)) is False


@pytest.mark.asyncio
async def test_publish_complete_chapter(client, db_session: AsyncSession) -> None:
    course = await make_course(db_session)
    chapter = await make_chapter(db_session, course, 1, asset_id="asset-x", **COMPLETE_CHAPTER)

    resp = await client.post(
        "/api/v1/chapter/publishChapter",
        json={"courseId": str(course.id), "chapterId": str(chapter.id)},
    )

    assert resp.status_code == 200
    assert resp.json()["publishedChapter"]["isPublished"] is True


@pytest.mark.asyncio
async def test_unpublishing_last_published_chapter_unpublishes_course(client, db_session: AsyncSession) -> None:
    course = await make_publishable_course(db_session, is_published=True)
    chapter = await make_chapter(db_session, course, 1, is_published=True, asset_id="a", **COMPLETE_CHAPTER)

    resp = await client.post(
        "/api/v1/chapter/unpublishChapter",
        json={"courseId": str(course.id), "chapterId": str(chapter.id)},
    )

    assert resp.status_code == 200
    assert resp.json()["unpublishedChapter"]["isPublished"] is False
    assert await _course_published(db_session, course.id) is False


@pytest.mark.asyncio
async def test_unpublishing_one_of_two_published_chapters_keeps_course(client, db_session: AsyncSession) -> None:
    course = await make_publishable_course(db_session, is_published=True)
    chapter = await make_chapter(db_session, course, 1, is_published=True)
    await make_chapter(db_session, course, 2, is_published=True)

    resp = await client.post(
        "/api/v1/chapter/updateChapter",
        json={"courseId": str(course.id), "chapterId": str(chapter.id), "isPublished": False},
    )

    assert resp.status_code == 200
    assert await _course_published(db_session, course.id) is True


@pytest.mark.asyncio
async def test_delete_chapter_removes_asset_and_unpublishes_course(
    client, db_session: AsyncSession, video_host
) -> None:
    course = await make_publishable_course(db_session, is_published=True)
    chapter = await make_chapter(db_session, course, 1, is_published=True, asset_id="asset-gone")
    await make_chapter(db_session, course, 2)

    resp = await client.post(
        "/api/v1/chapter/deleteChapter",
        json={"courseId": str(course.id), "chapterId": str(chapter.id)},
    )

    assert resp.status_code == 200
    assert resp.json()["deletedChapter"]["id"] == str(chapter.id)
    assert video_host.deleted == ["asset-gone"]
    assert await db_session.scalar(select(func.count()).select_from(MuxData)) == 0
    assert len(await _positions(db_session, course.id)) == 1
    assert await _course_published(db_session, course.id) is False


@pytest.mark.asyncio
async def test_deleting_one_of_two_published_chapters_keeps_course(
    client, db_session: AsyncSession, video_host
) -> None:
    course = await make_publishable_course(db_session, is_published=True)
    chapter = await make_chapter(db_session, course, 1, is_published=True, asset_id="asset-gone")
    await make_chapter(db_session, course, 2, is_published=True)

    resp = await client.post(
        "/api/v1/chapter/deleteChapter",
        json={"courseId": str(course.id), "chapterId": str(chapter.id)},
    )

    assert resp.status_code == 200
    assert video_host.deleted == ["asset-gone"]
    assert len(await _positions(db_session, course.id)) == 1
    assert await _course_published(db_session, course.id) is True


@pytest.mark.asyncio
async def test_delete_chapter_without_video(client, db_session: AsyncSession, video_host) -> None:
    course = await make_course(db_session)
    chapter = await make_chapter(db_session, course, 1)

    resp = await client.post(
        "/api/v1/chapter/deleteChapter",
        json={"courseId": str(course.id), "chapterId": str(chapter.id)},
    )

    assert resp.status_code == 200
    assert video_host.deleted == []
    assert await _positions(db_session, course.id) == {}


@pytest.mark.asyncio
async def test_delete_chapter_on_foreign_course_is_unauthorized(client, db_session: AsyncSession) -> None:
    course = await make_course(db_session, user_id=OTHER_USER_ID)
    chapter = await make_chapter(db_session, course, 1)

    resp = await client.post(
        "/api/v1/chapter/deleteChapter",
        json={"courseId": str(course.id), "chapterId": str(chapter.id)},
    )

    assert resp.status_code == 401
    assert await _positions(db_session, course.id) == {chapter.id: 1}


@pytest.mark.asyncio
async def test_on_progress_upserts_single_row(client, db_session: AsyncSession) -> None:
    course = await make_course(db_session, user_id=OTHER_USER_ID, is_published=True)
    chapter = await make_chapter(db_session, course, 1, is_published=True)

    first = await client.post(
        "/api/v1/chapter/onProgress",
        json={"chapterId": str(chapter.id), "isCompleted": True},
    )
    assert first.status_code == 200
    progress = first.json()["userProgress"]
    assert progress["userId"] == str(DEFAULT_USER_ID)
    assert progress["isCompleted"] is True

    second = await client.post(
        "/api/v1/chapter/onProgress",
        json={"chapterId": str(chapter.id), "isCompleted": False},
    )
    assert second.status_code == 200
    assert second.json()["userProgress"]["id"] == progress["id"]
    assert second.json()["userProgress"]["isCompleted"] is False

    rows = (await db_session.execute(select(UserProgress.user_id, UserProgress.is_completed))).all()
    assert [tuple(r) for r in rows] == [(DEFAULT_USER_ID, False)]


@pytest.mark.asyncio
async def test_on_progress_for_unknown_chapter_is_not_found(client, db_session: AsyncSession) -> None:
    resp = await client.post(
        "/api/v1/chapter/onProgress",
        json={"chapterId": str(uuid.uuid4()), "isCompleted": True},
    )

    assert resp.status_code == 404
    assert await db_session.scalar(select(func.count()).select_from(UserProgress)) == 0


@pytest.mark.asyncio
async def test_get_chapter_includes_video_asset(client, db_session: AsyncSession) -> None:
    course = await make_course(db_session)
    chapter = await make_chapter(db_session, course, 1, asset_id="asset-z")

    resp = await client.get(f"/api/v1/chapter/{course.id}/{chapter.id}")

    assert resp.status_code == 200
    assert resp.json()["chapter"]["muxData"]["assetId"] == "asset-z"
