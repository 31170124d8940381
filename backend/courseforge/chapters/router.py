"""Chapter procedures API router.

Each mutation is exposed as ``POST /api/v1/chapter/<procedure>`` and answers
``{"code": 200, <result key>: ...}``.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends

from courseforge.auth import CurrentAuth
from courseforge.chapters.schemas import (
    ChapterDetailResponse,
    ChapterDetailResult,
    ChapterRefInput,
    ChapterResponse,
    ChapterResult,
    CreateChapterInput,
    DeletedChapterResult,
    ProgressInput,
    PublishedChapterResult,
    ReorderChaptersInput,
    ReorderResult,
    UnpublishedChapterResult,
    UpdateChapterInput,
    UserProgressResponse,
    UserProgressResult,
)
from courseforge.chapters.service import ChapterService
from courseforge.middleware.security import procedure_rate_limit
from courseforge.videos.client import VideoHost, get_video_host


router = APIRouter(
    prefix="/api/v1/chapter",
    tags=["chapter"],
    dependencies=[Depends(procedure_rate_limit)],
    responses={404: {"description": "Not found"}},
)


def get_chapter_service(
    auth: CurrentAuth,
    video_host: Annotated[VideoHost, Depends(get_video_host)],
) -> ChapterService:
    """Get chapter service instance bound to the caller."""
    return ChapterService(auth, video_host)


ChapterServiceDep = Annotated[ChapterService, Depends(get_chapter_service)]


@router.post("/createChapter")
async def create_chapter(payload: CreateChapterInput, service: ChapterServiceDep) -> ChapterResult:
    """Append a chapter to the caller's course."""
    chapter = await service.create_chapter(payload.course_id, payload.title)
    return ChapterResult(chapter=ChapterResponse.model_validate(chapter))


@router.post("/reorderChapters")
async def reorder_chapters(payload: ReorderChaptersInput, service: ChapterServiceDep) -> ReorderResult:
    """Move chapters to new positions."""
    await service.reorder_chapters(payload.course_id, payload.items)
    return ReorderResult()


@router.post("/updateChapter")
async def update_chapter(payload: UpdateChapterInput, service: ChapterServiceDep) -> ChapterResult:
    """Update the supplied fields of a chapter."""
    values = payload.model_dump(exclude={"course_id", "chapter_id"}, exclude_unset=True, exclude_none=True)
    chapter = await service.update_chapter(payload.course_id, payload.chapter_id, values)
    return ChapterResult(chapter=ChapterResponse.model_validate(chapter))


@router.post("/deleteChapter")
async def delete_chapter(payload: ChapterRefInput, service: ChapterServiceDep) -> DeletedChapterResult:
    """Delete a chapter and its video asset."""
    chapter = await service.delete_chapter(payload.course_id, payload.chapter_id)
    return DeletedChapterResult(deleted_chapter=ChapterResponse.model_validate(chapter))


@router.post("/publishChapter")
async def publish_chapter(payload: ChapterRefInput, service: ChapterServiceDep) -> PublishedChapterResult:
    """Publish a complete chapter."""
    chapter = await service.publish_chapter(payload.course_id, payload.chapter_id)
    return PublishedChapterResult(published_chapter=ChapterResponse.model_validate(chapter))


@router.post("/unpublishChapter")
async def unpublish_chapter(payload: ChapterRefInput, service: ChapterServiceDep) -> UnpublishedChapterResult:
    """Return a chapter to draft."""
    chapter = await service.unpublish_chapter(payload.course_id, payload.chapter_id)
    return UnpublishedChapterResult(unpublished_chapter=ChapterResponse.model_validate(chapter))


@router.post("/onProgress")
async def on_progress(payload: ProgressInput, service: ChapterServiceDep) -> UserProgressResult:
    """Mark a chapter completed or not completed for the caller."""
    progress = await service.record_progress(payload.chapter_id, payload.is_completed)
    return UserProgressResult(user_progress=UserProgressResponse.model_validate(progress))


@router.get("/{course_id}/{chapter_id}")
async def get_chapter(course_id: UUID, chapter_id: UUID, service: ChapterServiceDep) -> ChapterDetailResult:
    """Get one chapter of the caller's course with its video asset record."""
    chapter = await service.get_chapter(course_id, chapter_id)
    return ChapterDetailResult(chapter=ChapterDetailResponse.model_validate(chapter))
