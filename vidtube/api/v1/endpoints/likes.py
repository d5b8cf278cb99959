from uuid import UUID

from fastapi import APIRouter

from vidtube.api.v1.dependencies import CurrentUser, common_pagination_params
from vidtube.api.v1.responses import build_page, ok
from vidtube.models.common import ApiResponse, PaginatedResponse
from vidtube.models.like import LikedVideo, LikeTargetEnum, LikeToggleResponse
from vidtube.services import like_service

router = APIRouter(prefix="/likes", tags=["Likes"])


async def _toggle(target_type: LikeTargetEnum, target_id: UUID, current_user) -> ApiResponse:
    result = await like_service.toggle_like(target_type, target_id, current_user.userid)
    action = "liked" if result.isLiked else "unliked"
    return ok(result, message=f"{target_type.value.capitalize()} {action} successfully")


@router.post(
    "/toggle/v/{video_id}",
    response_model=ApiResponse[LikeToggleResponse],
    summary="Like or unlike a video",
)
async def toggle_video_like(video_id: UUID, current_user: CurrentUser):
    return await _toggle(LikeTargetEnum.VIDEO, video_id, current_user)


@router.post(
    "/toggle/c/{comment_id}",
    response_model=ApiResponse[LikeToggleResponse],
    summary="Like or unlike a comment",
)
async def toggle_comment_like(comment_id: UUID, current_user: CurrentUser):
    return await _toggle(LikeTargetEnum.COMMENT, comment_id, current_user)


@router.post(
    "/toggle/t/{tweet_id}",
    response_model=ApiResponse[LikeToggleResponse],
    summary="Like or unlike a tweet",
)
async def toggle_tweet_like(tweet_id: UUID, current_user: CurrentUser):
    return await _toggle(LikeTargetEnum.TWEET, tweet_id, current_user)


@router.get(
    "/videos",
    response_model=ApiResponse[PaginatedResponse[LikedVideo]],
    summary="Videos liked by the current user",
)
async def list_liked_videos(current_user: CurrentUser, pagination: common_pagination_params):
    items, total = await like_service.list_liked_videos(
        current_user.userid, page=pagination.page, page_size=pagination.limit
    )
    return ok(build_page(items, total, pagination), message="Liked videos fetched successfully")
