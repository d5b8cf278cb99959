"""Video catalog endpoints: browse, publish, watch, edit and delete."""

from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, File, Form, Query, UploadFile, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from vidtube.api.v1.dependencies import (
    CurrentUser,
    OptionalUser,
    OwnedVideo,
    common_pagination_params,
)
from vidtube.api.v1.responses import build_page, ok
from vidtube.models.common import ApiResponse, PaginatedResponse
from vidtube.models.video import (
    SortDirection,
    Video,
    VideoDeleteResult,
    VideoDetail,
    VideoID,
    VideoPublishRequest,
    VideoSortField,
    VideoSummary,
    VideoUpdateRequest,
)
from vidtube.services import video_service

router = APIRouter(prefix="/videos", tags=["Videos"])


@router.get(
    "",
    response_model=ApiResponse[PaginatedResponse[VideoSummary]],
    summary="Browse published videos",
)
async def list_videos(
    pagination: common_pagination_params,
    query: Annotated[Optional[str], Query(max_length=200)] = None,
    sortBy: VideoSortField = VideoSortField.CREATED_AT,
    sortType: SortDirection = SortDirection.DESC,
    userId: Optional[UUID] = None,
):
    videos, total = await video_service.list_videos(
        page=pagination.page,
        page_size=pagination.limit,
        query=query,
        sort_by=sortBy,
        sort_type=sortType,
        owner_id=userId,
    )
    return ok(build_page(videos, total, pagination), message="Videos fetched successfully")


@router.post(
    "",
    response_model=ApiResponse[Video],
    status_code=status.HTTP_201_CREATED,
    summary="Publish a new video",
)
async def publish_video(
    current_user: CurrentUser,
    title: Annotated[str, Form()],
    description: Annotated[str, Form()],
    videoFile: Annotated[UploadFile, File()],
    thumbnail: Annotated[UploadFile, File()],
):
    try:
        request = VideoPublishRequest(title=title, description=description)
    except ValidationError as exc:
        raise RequestValidationError(exc.errors(include_url=False, include_context=False))

    video = await video_service.publish_video(request, videoFile, thumbnail, current_user)
    return ok(video, message="Video published successfully", status_code=status.HTTP_201_CREATED)


@router.get(
    "/{video_id}",
    response_model=ApiResponse[VideoDetail],
    summary="Watch a video",
)
async def get_video(video_id: VideoID, viewer: OptionalUser):
    """Counts a view; signed-in viewers also get it added to their history."""

    video = await video_service.get_video_details(video_id, viewer=viewer)
    return ok(video, message="Video fetched successfully")


@router.patch(
    "/{video_id}",
    response_model=ApiResponse[Video],
    summary="Update video details (owner only)",
)
async def update_video(
    video: OwnedVideo,
    title: Annotated[Optional[str], Form()] = None,
    description: Annotated[Optional[str], Form()] = None,
    thumbnail: Annotated[Optional[UploadFile], File()] = None,
):
    try:
        update_request = VideoUpdateRequest(title=title, description=description)
    except ValidationError as exc:
        raise RequestValidationError(exc.errors(include_url=False, include_context=False))

    updated = await video_service.update_video(video, update_request, thumbnail=thumbnail)
    return ok(updated, message="Video updated successfully")


@router.delete(
    "/{video_id}",
    response_model=ApiResponse[VideoDeleteResult],
    summary="Delete a video and everything attached to it (owner only)",
)
async def delete_video(video: OwnedVideo):
    result = await video_service.delete_video(video)
    return ok(result, message="Video deleted successfully")


@router.patch(
    "/toggle/publish/{video_id}",
    response_model=ApiResponse[Video],
    summary="Publish or unpublish a video (owner only)",
)
async def toggle_publish_status(video: OwnedVideo):
    updated = await video_service.toggle_publish_status(video)
    state = "published" if updated.is_published else "unpublished"
    return ok(updated, message=f"Video {state} successfully")
