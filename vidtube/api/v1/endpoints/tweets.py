from uuid import UUID

from fastapi import APIRouter, status

from vidtube.api.v1.dependencies import CurrentUser, OptionalUser, common_pagination_params
from vidtube.api.v1.responses import build_page, ok
from vidtube.models.common import ApiResponse, PaginatedResponse
from vidtube.models.tweet import (
    Tweet,
    TweetCreateRequest,
    TweetID,
    TweetResponse,
    TweetUpdateRequest,
)
from vidtube.services import tweet_service

router = APIRouter(prefix="/tweets", tags=["Tweets"])


@router.post(
    "",
    response_model=ApiResponse[Tweet],
    status_code=status.HTTP_201_CREATED,
    summary="Post a tweet",
)
async def create_tweet(request: TweetCreateRequest, current_user: CurrentUser):
    tweet = await tweet_service.create_tweet(request, current_user)
    return ok(tweet, message="Tweet created successfully", status_code=status.HTTP_201_CREATED)


@router.get(
    "/user/{user_id}",
    response_model=ApiResponse[PaginatedResponse[TweetResponse]],
    summary="List a user's tweets",
)
async def list_user_tweets(
    user_id: UUID, pagination: common_pagination_params, viewer: OptionalUser
):
    tweets, total = await tweet_service.list_user_tweets(
        user_id,
        page=pagination.page,
        page_size=pagination.limit,
        viewer_id=viewer.userid if viewer else None,
    )
    return ok(build_page(tweets, total, pagination), message="Tweets fetched successfully")


@router.patch("/{tweet_id}", response_model=ApiResponse[Tweet], summary="Edit own tweet")
async def update_tweet(
    tweet_id: TweetID, request: TweetUpdateRequest, current_user: CurrentUser
):
    tweet = await tweet_service.update_tweet(tweet_id, request, current_user)
    return ok(tweet, message="Tweet updated successfully")


@router.delete("/{tweet_id}", response_model=ApiResponse[dict], summary="Delete own tweet")
async def delete_tweet(tweet_id: TweetID, current_user: CurrentUser):
    await tweet_service.delete_tweet(tweet_id, current_user)
    return ok({}, message="Tweet deleted successfully")
