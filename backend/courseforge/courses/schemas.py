"""Pydantic schemas for the course procedures."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from courseforge.categories.schemas import CategoryResponse
from courseforge.chapters.schemas import ChapterResponse
from courseforge.shared.schemas import SUCCESS_CODE, CamelModel


# === Inputs ===


class CreateCourseInput(CamelModel):
    """Payload for course.createCourse."""

    title: str = Field(..., min_length=1, description="Course title")


class UpdateCourseInput(CamelModel):
    """Payload for course.updateCourse; omitted fields are left untouched."""

    course_id: UUID = Field(..., description="Course ID")
    title: str | None = Field(None, min_length=1, description="Course title")
    description: str | None = Field(None, min_length=1, description="Course description")
    image_url: str | None = Field(None, min_length=1, description="Cover image URL")
    category_id: UUID | None = Field(None, description="Category ID")
    price: float | None = Field(None, description="Course price")


class CourseIdInput(CamelModel):
    """Payload naming a single course."""

    course_id: UUID = Field(..., description="Course ID")


class CourseAttachmentInput(CamelModel):
    """Payload for course.updateCourseAttachment."""

    course_id: UUID = Field(..., description="Course ID")
    url: str = Field(..., min_length=1, description="Uploaded file URL")


class DeleteAttachmentInput(CamelModel):
    """Payload for course.deleteAttachment."""

    course_id: UUID = Field(..., description="Course ID")
    id: UUID = Field(..., description="Attachment ID")


# === Responses ===


class CourseResponse(CamelModel):
    """Schema for course responses."""

    id: UUID = Field(..., description="Course ID")
    user_id: UUID = Field(..., description="Owner ID")
    title: str = Field(..., description="Course title")
    description: str | None = Field(None, description="Course description")
    image_url: str | None = Field(None, description="Cover image URL")
    price: float | None = Field(None, description="Course price")
    category_id: UUID | None = Field(None, description="Category ID")
    is_published: bool = Field(..., description="Whether learners can see the course")
    created_at: datetime = Field(..., description="Course creation timestamp")
    updated_at: datetime = Field(..., description="Course last update timestamp")


class AttachmentResponse(CamelModel):
    """Schema for attachment responses."""

    id: UUID
    name: str
    url: str
    course_id: UUID
    created_at: datetime


class CourseDetailResponse(CourseResponse):
    """Course with its category, chapters (by position) and attachments."""

    category: CategoryResponse | None = None
    chapters: list[ChapterResponse] = Field(default_factory=list)
    attachments: list[AttachmentResponse] = Field(default_factory=list)


class CourseResult(CamelModel):
    code: int = SUCCESS_CODE
    course: CourseResponse


class CourseDetailResult(CamelModel):
    code: int = SUCCESS_CODE
    course: CourseDetailResponse


class CourseListResult(CamelModel):
    code: int = SUCCESS_CODE
    courses: list[CourseResponse] = Field(default_factory=list)


class AttachmentResult(CamelModel):
    code: int = SUCCESS_CODE
    attachment: AttachmentResponse


class DeletedCourseResult(CamelModel):
    code: int = SUCCESS_CODE
    deleted_course: CourseResponse


class PublishedCourseResult(CamelModel):
    code: int = SUCCESS_CODE
    published_course: CourseResponse


class UnpublishedCourseResult(CamelModel):
    code: int = SUCCESS_CODE
    unpublished_course: CourseResponse


class CourseProgressResult(CamelModel):
    code: int = SUCCESS_CODE
    progress_percentage: float = Field(..., ge=0, le=100)
