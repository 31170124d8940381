"""Course service: course CRUD, publication and attachments."""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.orm import selectinload

from courseforge.auth.context import UserContext
from courseforge.categories.models import Category
from courseforge.chapters.models import Chapter, UserProgress
from courseforge.courses.models import Attachment, Course
from courseforge.exceptions import BadRequestError, NotFoundError
from courseforge.videos.client import VideoHost


logger = logging.getLogger(__name__)

NOT_OWNER_MESSAGE = "You are not the owner of this course"
PUBLISH_REQUIREMENTS_MESSAGE = "Please fill out all the fields and publish at least one chapter"

UPDATABLE_FIELDS = ("title", "description", "image_url", "category_id", "price")


def attachment_name_from_url(url: str) -> str:
    """Return the final path segment of ``url`` (empty when it ends with a slash)."""
    return url.rsplit("/", 1)[-1]


class CourseService:
    """Service for course operations scoped to the calling user."""

    def __init__(self, auth: UserContext, video_host: VideoHost) -> None:
        """Initialize the course service.

        Args:
            auth: Request context carrying the caller id and DB session
            video_host: Bridge used to delete remote chapter assets
        """
        self.auth = auth
        self.session = auth.session
        self.user_id = auth.user_id
        self.video_host = video_host

    async def create_course(self, title: str) -> Course:
        """Create a course owned by the caller."""
        course = Course(user_id=self.user_id, title=title)
        self.session.add(course)
        await self.session.commit()

        logger.info("Created course %s for user %s", course.id, self.user_id)
        return course

    async def update_course(self, course_id: UUID, values: dict[str, Any]) -> Course:
        """Apply the supplied fields to the caller's course.

        Raises
        ------
            NotFoundError: If the course does not exist or belongs to someone else,
                or if ``category_id`` names an unknown category
        """
        course = await self.auth.get_or_404(Course, course_id, "course")

        category_id = values.get("category_id")
        if category_id is not None and await self.session.get(Category, category_id) is None:
            raise NotFoundError("Category not found")

        for field in UPDATABLE_FIELDS:
            if field in values:
                setattr(course, field, values[field])

        await self.session.commit()
        return course

    async def add_attachment(self, course_id: UUID, url: str) -> Attachment:
        """Attach an uploaded file to the caller's course."""
        await self.auth.require_owner(Course, course_id, NOT_OWNER_MESSAGE)

        attachment = Attachment(url=url, name=attachment_name_from_url(url), course_id=course_id)
        self.session.add(attachment)
        await self.session.commit()
        return attachment

    async def delete_attachment(self, course_id: UUID, attachment_id: UUID) -> Attachment:
        """Delete one attachment of the caller's course."""
        await self.auth.require_owner(Course, course_id, NOT_OWNER_MESSAGE)

        attachment = await self.session.scalar(
            select(Attachment).where(Attachment.id == attachment_id, Attachment.course_id == course_id)
        )
        if attachment is None:
            raise NotFoundError("Attachment not found")

        await self.session.delete(attachment)
        await self.session.commit()
        return attachment

    async def delete_course(self, course_id: UUID) -> Course:
        """Delete the caller's course after removing its chapters' remote video assets.

        Chapters, attachments, video records and progress rows go with the course.
        A video host failure aborts before the course row is touched.
        """
        course = await self.session.scalar(
            select(Course)
            .where(Course.id == course_id, Course.user_id == self.user_id)
            .options(selectinload(Course.chapters).selectinload(Chapter.mux_data))
        )
        if course is None:
            raise NotFoundError("Course not found")

        for chapter in course.chapters:
            if chapter.mux_data is not None and chapter.mux_data.asset_id:
                await self.video_host.delete_asset(chapter.mux_data.asset_id)

        await self.session.delete(course)
        await self.session.commit()

        logger.info("Deleted course %s (%d chapters)", course_id, len(course.chapters))
        return course

    async def publish_course(self, course_id: UUID) -> Course:
        """Mark the caller's course published once it is complete.

        Raises
        ------
            NotFoundError: If the course does not exist or belongs to someone else
            BadRequestError: If a required field is empty or no chapter is published
        """
        course = await self.auth.get_or_404(Course, course_id, "course")

        published_chapter = await self.session.scalar(
            select(Chapter.id).where(Chapter.course_id == course_id, Chapter.is_published.is_(True)).limit(1)
        )

        if (
            not course.title
            or not course.description
            or not course.image_url
            or not course.category_id
            or published_chapter is None
        ):
            raise BadRequestError(PUBLISH_REQUIREMENTS_MESSAGE)

        course.is_published = True
        await self.session.commit()

        logger.info("Published course %s", course_id)
        return course

    async def unpublish_course(self, course_id: UUID) -> Course:
        """Mark the caller's course as a draft."""
        course = await self.auth.get_or_404(Course, course_id, "course")

        course.is_published = False
        await self.session.commit()

        logger.info("Unpublished course %s", course_id)
        return course

    async def get_course(self, course_id: UUID) -> Course:
        """Owner view of a course with category, chapters and attachments loaded."""
        course = await self.session.scalar(
            select(Course)
            .where(Course.id == course_id, Course.user_id == self.user_id)
            .options(
                selectinload(Course.category),
                selectinload(Course.chapters),
                selectinload(Course.attachments),
            )
        )
        if course is None:
            raise NotFoundError("Course not found")
        return course

    async def list_courses(self) -> list[Course]:
        """The caller's courses, newest first."""
        result = await self.session.execute(
            select(Course).where(Course.user_id == self.user_id).order_by(Course.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_progress(self, course_id: UUID) -> float:
        """Percentage of the course's published chapters the caller has completed.

        Available for published courses and for the owner's own drafts.
        """
        course = await self.session.scalar(
            select(Course).where(
                Course.id == course_id,
                or_(Course.is_published.is_(True), Course.user_id == self.user_id),
            )
        )
        if course is None:
            raise NotFoundError("Course not found")

        published_ids = select(Chapter.id).where(Chapter.course_id == course_id, Chapter.is_published.is_(True))
        total = await self.session.scalar(select(func.count()).select_from(published_ids.subquery())) or 0
        if not total:
            return 0.0

        completed = await self.session.scalar(
            select(func.count())
            .select_from(UserProgress)
            .where(
                UserProgress.user_id == self.user_id,
                UserProgress.is_completed.is_(True),
                UserProgress.chapter_id.in_(published_ids),
            )
        ) or 0

        return completed / total * 100
