"""Pydantic schemas for the chapter procedures."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from courseforge.shared.schemas import SUCCESS_CODE, CamelModel


# === Inputs ===


class CreateChapterInput(CamelModel):
    """Payload for chapter.createChapter."""

    course_id: UUID = Field(..., description="Parent course ID")
    title: str = Field(..., min_length=1, description="Chapter title")


class ChapterPosition(CamelModel):
    """New position for one chapter."""

    id: UUID = Field(..., description="Chapter ID")
    position: int = Field(..., description="New position within the course")


class ReorderChaptersInput(CamelModel):
    """Payload for chapter.reorderChapters."""

    course_id: UUID = Field(..., description="Parent course ID")
    items: list[ChapterPosition] = Field(
        default_factory=list,
        alias="list",
        description="Chapters with their new positions",
    )


class UpdateChapterInput(CamelModel):
    """Payload for chapter.updateChapter; omitted fields are left untouched."""

    course_id: UUID
    chapter_id: UUID
    title: str | None = Field(None, min_length=1)
    description: str | None = Field(None, min_length=1)
    is_published: bool | None = None
    is_free: bool | None = None
    video_url: str | None = Field(None, min_length=1)


class ChapterRefInput(CamelModel):
    """Payload naming one chapter of one course."""

    course_id: UUID
    chapter_id: UUID


class ProgressInput(CamelModel):
    """Payload for chapter.onProgress."""

    chapter_id: UUID
    is_completed: bool


# === Responses ===


class MuxDataResponse(CamelModel):
    """Video host identifiers for a chapter."""

    id: UUID
    asset_id: str
    playback_id: str | None = None
    chapter_id: UUID


class ChapterResponse(CamelModel):
    """Schema for chapter responses."""

    id: UUID = Field(..., description="Chapter ID")
    course_id: UUID = Field(..., description="Course ID")
    title: str = Field(..., description="Chapter title")
    description: str | None = Field(None, description="Chapter description")
    video_url: str | None = Field(None, description="Source video URL")
    position: int = Field(..., description="Position within the course")
    is_published: bool = Field(..., description="Whether learners can see the chapter")
    is_free: bool = Field(..., description="Whether the chapter is a free preview")
    created_at: datetime
    updated_at: datetime


class ChapterDetailResponse(ChapterResponse):
    """Chapter with its video asset record."""

    mux_data: MuxDataResponse | None = None


class UserProgressResponse(CamelModel):
    """Schema for a learner's progress on a chapter."""

    id: UUID
    user_id: UUID
    chapter_id: UUID
    is_completed: bool
    created_at: datetime
    updated_at: datetime


class ChapterResult(CamelModel):
    code: int = SUCCESS_CODE
    chapter: ChapterResponse


class ChapterDetailResult(CamelModel):
    code: int = SUCCESS_CODE
    chapter: ChapterDetailResponse


class ReorderResult(CamelModel):
    code: int = SUCCESS_CODE


class DeletedChapterResult(CamelModel):
    code: int = SUCCESS_CODE
    deleted_chapter: ChapterResponse


class PublishedChapterResult(CamelModel):
    code: int = SUCCESS_CODE
    published_chapter: ChapterResponse


class UnpublishedChapterResult(CamelModel):
    code: int = SUCCESS_CODE
    unpublished_chapter: ChapterResponse


class UserProgressResult(CamelModel):
    code: int = SUCCESS_CODE
    user_progress: UserProgressResponse
