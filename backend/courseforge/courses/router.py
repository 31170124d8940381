"""Course procedures API router.

Each mutation is exposed as ``POST /api/v1/course/<procedure>`` and answers
``{"code": 200, <result key>: ...}``.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends

from courseforge.auth import CurrentAuth
from courseforge.courses.schemas import (
    AttachmentResponse,
    AttachmentResult,
    CourseAttachmentInput,
    CourseDetailResponse,
    CourseDetailResult,
    CourseIdInput,
    CourseListResult,
    CourseProgressResult,
    CourseResponse,
    CourseResult,
    CreateCourseInput,
    DeleteAttachmentInput,
    DeletedCourseResult,
    PublishedCourseResult,
    UnpublishedCourseResult,
    UpdateCourseInput,
)
from courseforge.courses.service import CourseService
from courseforge.middleware.security import procedure_rate_limit
from courseforge.videos.client import VideoHost, get_video_host


router = APIRouter(
    prefix="/api/v1/course",
    tags=["course"],
    dependencies=[Depends(procedure_rate_limit)],
    responses={404: {"description": "Not found"}},
)


def get_course_service(
    auth: CurrentAuth,
    video_host: Annotated[VideoHost, Depends(get_video_host)],
) -> CourseService:
    """Get course service instance bound to the caller."""
    return CourseService(auth, video_host)


CourseServiceDep = Annotated[CourseService, Depends(get_course_service)]


@router.post("/createCourse")
async def create_course(payload: CreateCourseInput, service: CourseServiceDep) -> CourseResult:
    """Create a course owned by the caller."""
    course = await service.create_course(payload.title)
    return CourseResult(course=CourseResponse.model_validate(course))


@router.post("/updateCourse")
async def update_course(payload: UpdateCourseInput, service: CourseServiceDep) -> CourseResult:
    """Update the supplied fields of the caller's course."""
    # Exclude None fields to avoid overwriting columns with NULL
    values = payload.model_dump(exclude={"course_id"}, exclude_unset=True, exclude_none=True)
    course = await service.update_course(payload.course_id, values)
    return CourseResult(course=CourseResponse.model_validate(course))


@router.post("/updateCourseAttachment")
async def update_course_attachment(payload: CourseAttachmentInput, service: CourseServiceDep) -> AttachmentResult:
    """Attach an uploaded file URL to the caller's course."""
    attachment = await service.add_attachment(payload.course_id, payload.url)
    return AttachmentResult(attachment=AttachmentResponse.model_validate(attachment))


@router.post("/deleteAttachment")
async def delete_attachment(payload: DeleteAttachmentInput, service: CourseServiceDep) -> AttachmentResult:
    """Delete one attachment of the caller's course."""
    attachment = await service.delete_attachment(payload.course_id, payload.id)
    return AttachmentResult(attachment=AttachmentResponse.model_validate(attachment))


@router.post("/deleteCourse")
async def delete_course(payload: CourseIdInput, service: CourseServiceDep) -> DeletedCourseResult:
    """Delete the caller's course together with its chapters' video assets."""
    course = await service.delete_course(payload.course_id)
    return DeletedCourseResult(deleted_course=CourseResponse.model_validate(course))


@router.post("/publishCourse")
async def publish_course(payload: CourseIdInput, service: CourseServiceDep) -> PublishedCourseResult:
    """Publish the caller's course."""
    course = await service.publish_course(payload.course_id)
    return PublishedCourseResult(published_course=CourseResponse.model_validate(course))


@router.post("/unpublishCourse")
async def unpublish_course(payload: CourseIdInput, service: CourseServiceDep) -> UnpublishedCourseResult:
    """Return the caller's course to draft."""
    course = await service.unpublish_course(payload.course_id)
    return UnpublishedCourseResult(unpublished_course=CourseResponse.model_validate(course))


@router.get("")
async def list_courses(service: CourseServiceDep) -> CourseListResult:
    """List the caller's courses, newest first."""
    courses = await service.list_courses()
    return CourseListResult(courses=[CourseResponse.model_validate(c) for c in courses])


@router.get("/{course_id}")
async def get_course(course_id: UUID, service: CourseServiceDep) -> CourseDetailResult:
    """Get one of the caller's courses with chapters and attachments."""
    course = await service.get_course(course_id)
    return CourseDetailResult(course=CourseDetailResponse.model_validate(course))


@router.get("/{course_id}/progress")
async def get_course_progress(course_id: UUID, service: CourseServiceDep) -> CourseProgressResult:
    """Get the caller's completion percentage for a course."""
    percentage = await service.get_progress(course_id)
    return CourseProgressResult(progress_percentage=percentage)
