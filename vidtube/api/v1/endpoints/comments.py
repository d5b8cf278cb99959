from __future__ import annotations

from fastapi import APIRouter, status

from vidtube.api.v1.dependencies import CurrentUser, OptionalUser, common_pagination_params
from vidtube.api.v1.responses import build_page, ok
from vidtube.models.comment import (
    Comment,
    CommentCreateRequest,
    CommentID,
    CommentResponse,
    CommentUpdateRequest,
)
from vidtube.models.common import ApiResponse, PaginatedResponse
from vidtube.models.video import VideoID
from vidtube.services import comment_service

router = APIRouter(prefix="/comments", tags=["Comments"])


@router.get(
    "/{video_id}",
    response_model=ApiResponse[PaginatedResponse[CommentResponse]],
    summary="List comments for video",
)
async def list_video_comments(
    video_id: VideoID,
    pagination: common_pagination_params,
    viewer: OptionalUser,
):
    comments, total = await comment_service.list_comments_for_video(
        video_id,
        page=pagination.page,
        page_size=pagination.limit,
        viewer_id=viewer.userid if viewer else None,
    )
    return ok(build_page(comments, total, pagination), message="Comments fetched successfully")


@router.post(
    "/{video_id}",
    response_model=ApiResponse[Comment],
    status_code=status.HTTP_201_CREATED,
    summary="Add comment to video",
)
async def add_comment(
    video_id: VideoID,
    comment_data: CommentCreateRequest,
    current_user: CurrentUser,
):
    comment = await comment_service.add_comment_to_video(video_id, comment_data, current_user)
    return ok(comment, message="Comment added successfully", status_code=status.HTTP_201_CREATED)


@router.patch(
    "/c/{comment_id}",
    response_model=ApiResponse[Comment],
    summary="Edit own comment",
)
async def update_comment(
    comment_id: CommentID,
    update_data: CommentUpdateRequest,
    current_user: CurrentUser,
):
    comment = await comment_service.update_comment(comment_id, update_data, current_user)
    return ok(comment, message="Comment updated successfully")


@router.delete(
    "/c/{comment_id}",
    response_model=ApiResponse[dict],
    summary="Delete a comment (author or video owner)",
)
async def delete_comment(comment_id: CommentID, current_user: CurrentUser):
    await comment_service.delete_comment(comment_id, current_user)
    return ok({}, message="Comment deleted successfully")
