from fastapi import APIRouter

from vidtube.api.v1.dependencies import CurrentUser, common_pagination_params
from vidtube.api.v1.responses import build_page, ok
from vidtube.models.common import ApiResponse, PaginatedResponse
from vidtube.models.dashboard import ChannelStats
from vidtube.models.video import ChannelVideo
from vidtube.services import dashboard_service

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get(
    "/stats", response_model=ApiResponse[ChannelStats], summary="Channel totals"
)
async def get_channel_stats(current_user: CurrentUser):
    stats = await dashboard_service.get_channel_stats(current_user.userid)
    return ok(stats, message="Channel stats fetched successfully")


@router.get(
    "/videos",
    response_model=ApiResponse[PaginatedResponse[ChannelVideo]],
    summary="All videos of the channel, unpublished included",
)
async def get_channel_videos(current_user: CurrentUser, pagination: common_pagination_params):
    videos, total = await dashboard_service.get_channel_videos(
        current_user.userid, page=pagination.page, page_size=pagination.limit
    )
    return ok(build_page(videos, total, pagination), message="Channel videos fetched successfully")
