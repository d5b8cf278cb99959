from uuid import UUID

from fastapi import APIRouter

from vidtube.api.v1.dependencies import CurrentUser, common_pagination_params
from vidtube.api.v1.responses import build_page, ok
from vidtube.models.common import ApiResponse, PaginatedResponse
from vidtube.models.subscription import (
    SubscribedChannelEntry,
    SubscriberEntry,
    SubscriptionToggleResponse,
)
from vidtube.services import subscription_service

router = APIRouter(prefix="/subscriptions", tags=["Subscriptions"])


@router.post(
    "/c/{channel_id}",
    response_model=ApiResponse[SubscriptionToggleResponse],
    summary="Subscribe to or unsubscribe from a channel",
)
async def toggle_subscription(channel_id: UUID, current_user: CurrentUser):
    result = await subscription_service.toggle_subscription(current_user.userid, channel_id)
    message = "Subscribed successfully" if result.isSubscribed else "Unsubscribed successfully"
    return ok(result, message=message)


@router.get(
    "/c/{channel_id}",
    response_model=ApiResponse[PaginatedResponse[SubscriberEntry]],
    summary="Subscribers of a channel",
)
async def list_channel_subscribers(channel_id: UUID, pagination: common_pagination_params):
    items, total = await subscription_service.list_channel_subscribers(
        channel_id, page=pagination.page, page_size=pagination.limit
    )
    return ok(build_page(items, total, pagination), message="Subscribers fetched successfully")


@router.get(
    "/u/{subscriber_id}",
    response_model=ApiResponse[PaginatedResponse[SubscribedChannelEntry]],
    summary="Channels a user is subscribed to",
)
async def list_subscribed_channels(subscriber_id: UUID, pagination: common_pagination_params):
    items, total = await subscription_service.list_subscribed_channels(
        subscriber_id, page=pagination.page, page_size=pagination.limit
    )
    return ok(
        build_page(items, total, pagination),
        message="Subscribed channels fetched successfully",
    )
