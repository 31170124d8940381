"""Chapter service: authoring, ordering, publication, video assets and progress."""

import logging
from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import selectinload

from courseforge.auth.context import UserContext
from courseforge.chapters.models import Chapter, MuxData, UserProgress
from courseforge.chapters.schemas import ChapterPosition
from courseforge.courses.models import Course
from courseforge.courses.service import NOT_OWNER_MESSAGE
from courseforge.exceptions import NotFoundError
from courseforge.videos.client import VideoHost


logger = logging.getLogger(__name__)

PUBLISH_REQUIREMENTS_MESSAGE = "Fields are missing to publish this chapter"

UPDATABLE_FIELDS = ("title", "description", "is_free", "video_url")


def _missing_publish_fields(chapter: Chapter) -> bool:
    return not chapter.title or not chapter.description or not chapter.video_url


class ChapterService:
    """Service for chapter operations.

    Every authoring operation requires the caller to own the parent course;
    progress tracking only requires an authenticated caller.
    """

    def __init__(self, auth: UserContext, video_host: VideoHost) -> None:
        """Initialize the chapter service.

        Args:
            auth: Request context carrying the caller id and DB session
            video_host: Bridge used to create and delete remote video assets
        """
        self.auth = auth
        self.session = auth.session
        self.user_id = auth.user_id
        self.video_host = video_host

    async def _require_course(self, course_id: UUID) -> Course:
        return await self.auth.require_owner(Course, course_id, NOT_OWNER_MESSAGE)

    async def _find_chapter(self, course_id: UUID, chapter_id: UUID) -> Chapter | None:
        return await self.session.scalar(
            select(Chapter).where(Chapter.id == chapter_id, Chapter.course_id == course_id)
        )

    async def _get_chapter_or_404(self, course_id: UUID, chapter_id: UUID) -> Chapter:
        chapter = await self._find_chapter(course_id, chapter_id)
        if chapter is None:
            raise NotFoundError("Chapter not found")
        return chapter

    async def _find_mux_data(self, chapter_id: UUID) -> MuxData | None:
        return await self.session.scalar(select(MuxData).where(MuxData.chapter_id == chapter_id))

    async def _remove_video_asset(self, chapter_id: UUID) -> None:
        """Delete the chapter's remote asset, then its record."""
        mux_data = await self._find_mux_data(chapter_id)
        if mux_data is None:
            return

        await self.video_host.delete_asset(mux_data.asset_id)
        await self.session.delete(mux_data)
        # The unique chapter_id must be free before a replacement record is inserted
        await self.session.flush()

    async def _unpublish_course_if_empty(self, course: Course) -> None:
        """Force the course to draft when none of its chapters is published."""
        published_count = await self.session.scalar(
            select(func.count())
            .select_from(Chapter)
            .where(Chapter.course_id == course.id, Chapter.is_published.is_(True))
        )
        if not published_count:
            if course.is_published:
                logger.info("Course %s has no published chapters left; unpublishing", course.id)
            course.is_published = False

    async def _ensure_publishable(self, chapter: Chapter | None) -> Chapter:
        mux_data = await self._find_mux_data(chapter.id) if chapter is not None else None
        if chapter is None or mux_data is None or _missing_publish_fields(chapter):
            raise NotFoundError(PUBLISH_REQUIREMENTS_MESSAGE)
        return chapter

    async def create_chapter(self, course_id: UUID, title: str) -> Chapter:
        """Append a chapter after the course's current last position."""
        await self._require_course(course_id)

        last_position = await self.session.scalar(
            select(func.max(Chapter.position)).where(Chapter.course_id == course_id)
        )
        position = last_position + 1 if last_position is not None else 1

        chapter = Chapter(title=title, course_id=course_id, position=position)
        self.session.add(chapter)
        await self.session.commit()

        logger.info("Created chapter %s at position %d in course %s", chapter.id, position, course_id)
        return chapter

    async def reorder_chapters(self, course_id: UUID, items: list[ChapterPosition]) -> None:
        """Apply new positions in list order, all or nothing.

        Raises
        ------
            NotFoundError: If an id is not a chapter of the course; no position is changed
        """
        await self._require_course(course_id)

        for item in items:
            result = await self.session.execute(
                update(Chapter)
                .where(Chapter.id == item.id, Chapter.course_id == course_id)
                .values(position=item.position)
            )
            if result.rowcount == 0:
                await self.session.rollback()
                raise NotFoundError(f"Chapter {item.id} not found in course")

        await self.session.commit()
        logger.info("Reordered %d chapters in course %s", len(items), course_id)

    async def update_chapter(self, course_id: UUID, chapter_id: UUID, values: dict[str, Any]) -> Chapter:
        """Apply the supplied fields; a new ``video_url`` replaces the chapter's video asset.

        ``is_published`` is routed through the same rules as publish/unpublish.
        """
        course = await self._require_course(course_id)
        chapter = await self._get_chapter_or_404(course_id, chapter_id)

        for field in UPDATABLE_FIELDS:
            if field in values:
                setattr(chapter, field, values[field])

        is_published = values.get("is_published")
        # Checked before any remote asset is created
        if is_published is True and _missing_publish_fields(chapter):
            raise NotFoundError(PUBLISH_REQUIREMENTS_MESSAGE)

        video_url = values.get("video_url")
        if video_url:
            await self._remove_video_asset(chapter.id)
            await self.session.commit()

            asset = await self.video_host.create_asset(video_url)
            self.session.add(MuxData(asset_id=asset.asset_id, playback_id=asset.playback_id, chapter_id=chapter.id))
            await self.session.flush()
            logger.info("Chapter %s now streams Mux asset %s", chapter.id, asset.asset_id)

        if is_published is True:
            await self._ensure_publishable(chapter)
            chapter.is_published = True
        elif is_published is False:
            chapter.is_published = False
            await self.session.flush()
            await self._unpublish_course_if_empty(course)

        await self.session.commit()
        return chapter

    async def delete_chapter(self, course_id: UUID, chapter_id: UUID) -> Chapter:
        """Delete a chapter and its video asset; the course goes to draft if nothing stays published."""
        course = await self._require_course(course_id)
        chapter = await self._get_chapter_or_404(course_id, chapter_id)

        await self._remove_video_asset(chapter.id)
        await self.session.delete(chapter)
        await self.session.flush()

        await self._unpublish_course_if_empty(course)
        await self.session.commit()

        logger.info("Deleted chapter %s from course %s", chapter_id, course_id)
        return chapter

    async def publish_chapter(self, course_id: UUID, chapter_id: UUID) -> Chapter:
        """Publish a chapter that has a title, description, video and video asset.

        Raises
        ------
            NotFoundError: If the chapter is missing or incomplete
        """
        await self._require_course(course_id)
        chapter = await self._ensure_publishable(await self._find_chapter(course_id, chapter_id))

        chapter.is_published = True
        await self.session.commit()
        return chapter

    async def unpublish_chapter(self, course_id: UUID, chapter_id: UUID) -> Chapter:
        """Unpublish a chapter; the course goes to draft if nothing stays published."""
        course = await self._require_course(course_id)
        chapter = await self._get_chapter_or_404(course_id, chapter_id)

        chapter.is_published = False
        await self.session.flush()

        await self._unpublish_course_if_empty(course)
        await self.session.commit()
        return chapter

    async def get_chapter(self, course_id: UUID, chapter_id: UUID) -> Chapter:
        """Owner view of one chapter with its video asset record."""
        await self._require_course(course_id)

        chapter = await self.session.scalar(
            select(Chapter)
            .where(Chapter.id == chapter_id, Chapter.course_id == course_id)
            .options(selectinload(Chapter.mux_data))
        )
        if chapter is None:
            raise NotFoundError("Chapter not found")
        return chapter

    async def record_progress(self, chapter_id: UUID, is_completed: bool) -> UserProgress:
        """Upsert the caller's completion flag for a chapter."""
        if await self.session.get(Chapter, chapter_id) is None:
            raise NotFoundError("Chapter not found")

        dialect = self.session.get_bind().dialect.name
        insert = sqlite_insert if dialect == "sqlite" else pg_insert

        now = datetime.now(UTC)
        stmt = insert(UserProgress).values(
            id=uuid4(),
            user_id=self.user_id,
            chapter_id=chapter_id,
            is_completed=is_completed,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[UserProgress.user_id, UserProgress.chapter_id],
            set_={"is_completed": stmt.excluded.is_completed, "updated_at": now},
        ).returning(UserProgress)

        result = await self.session.execute(stmt, execution_options={"populate_existing": True})
        progress = result.scalar_one()
        await self.session.commit()

        logger.info("User %s marked chapter %s completed=%s", self.user_id, chapter_id, is_completed)
        return progress
