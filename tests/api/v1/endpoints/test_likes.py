from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest

from vidtube.models.like import LikeTargetEnum, LikeToggleResponse

BASE = "/api/v1/likes"


@pytest.mark.parametrize(
    "segment, target_type",
    [("v", LikeTargetEnum.VIDEO), ("c", LikeTargetEnum.COMMENT), ("t", LikeTargetEnum.TWEET)],
)
@pytest.mark.asyncio
async def test_toggle_like_routes(client, login_as, segment, target_type):
    user = login_as()
    target_id = uuid4()
    result = LikeToggleResponse(targetType=target_type, targetId=target_id, isLiked=True, likesCount=1)
    with patch(
        "vidtube.services.like_service.toggle_like", new_callable=AsyncMock, return_value=result
    ) as mock_toggle:
        response = await client.post(f"{BASE}/toggle/{segment}/{target_id}")

    assert response.status_code == 200
    body = response.json()
    assert body["data"]["isLiked"] is True
    assert body["message"] == f"{target_type.value.capitalize()} liked successfully"
    mock_toggle.assert_awaited_once_with(target_type, target_id, user.userid)


@pytest.mark.asyncio
async def test_unlike_message(client, login_as):
    login_as()
    target_id = uuid4()
    result = LikeToggleResponse(
        targetType=LikeTargetEnum.VIDEO, targetId=target_id, isLiked=False, likesCount=0
    )
    with patch("vidtube.services.like_service.toggle_like", new_callable=AsyncMock, return_value=result):
        response = await client.post(f"{BASE}/toggle/v/{target_id}")
    assert response.json()["message"] == "Video unliked successfully"


@pytest.mark.asyncio
async def test_toggle_like_requires_auth(client):
    response = await client.post(f"{BASE}/toggle/v/{uuid4()}")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_liked_videos(client, login_as):
    user = login_as()
    with patch(
        "vidtube.services.like_service.list_liked_videos", new_callable=AsyncMock, return_value=([], 0)
    ) as mock_list:
        response = await client.get(f"{BASE}/videos")

    assert response.status_code == 200
    assert response.json()["data"]["pagination"]["totalPages"] == 0
    assert mock_list.call_args.args[0] == user.userid
