from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from fastapi import HTTPException

from vidtube.api.v1 import dependencies
from vidtube.core.security import create_access_token, create_refresh_token
from vidtube.models.video import Video


@pytest.mark.asyncio
async def test_request_token_prefers_bearer_header():
    assert await dependencies.get_request_token("from-header", "from-cookie") == "from-header"
    assert await dependencies.get_request_token(None, "from-cookie") == "from-cookie"
    assert await dependencies.get_request_token(None, None) is None


@pytest.mark.asyncio
async def test_missing_token_is_unauthorized():
    with pytest.raises(HTTPException) as exc_info:
        await dependencies.get_current_user_token_payload(None)
    assert exc_info.value.status_code == 401
    assert exc_info.value.detail == "Unauthorized request"


@pytest.mark.asyncio
async def test_expired_token():
    token = create_access_token(uuid4(), expires_delta=timedelta(minutes=-1))
    with pytest.raises(HTTPException) as exc_info:
        await dependencies.get_current_user_token_payload(token)
    assert exc_info.value.detail == "Token has expired"


@pytest.mark.asyncio
async def test_refresh_token_rejected_as_access_token():
    token = create_refresh_token(uuid4())
    with pytest.raises(HTTPException) as exc_info:
        await dependencies.get_current_user_token_payload(token)
    assert exc_info.value.status_code == 401
    assert exc_info.value.detail == "Invalid access token"


@pytest.mark.asyncio
async def test_get_current_user_resolves_subject(test_user):
    payload = await dependencies.get_current_user_token_payload(create_access_token(test_user.userid))

    with patch(
        "vidtube.services.user_service.get_user_by_id", new_callable=AsyncMock, return_value=test_user
    ) as mock_get:
        user = await dependencies.get_current_user(payload)

    assert user is test_user
    mock_get.assert_awaited_once_with(user_id=test_user.userid)


@pytest.mark.asyncio
async def test_get_current_user_deleted_account():
    payload = await dependencies.get_current_user_token_payload(create_access_token(uuid4()))
    with patch("vidtube.services.user_service.get_user_by_id", new_callable=AsyncMock, return_value=None):
        with pytest.raises(HTTPException) as exc_info:
            await dependencies.get_current_user(payload)
    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_optional_user_tolerates_bad_tokens(test_user):
    assert await dependencies.get_current_user_optional(None) is None
    assert await dependencies.get_current_user_optional("not-a-jwt") is None

    with patch(
        "vidtube.services.user_service.get_user_by_id", new_callable=AsyncMock, return_value=test_user
    ):
        user = await dependencies.get_current_user_optional(create_access_token(test_user.userid))
    assert user is test_user


def _video(owner_id) -> Video:
    return Video(
        videoid=uuid4(),
        userid=owner_id,
        title="Clip",
        video_file="https://cdn/v.mp4",
        thumbnail="https://cdn/t.png",
        created_at=datetime.now(timezone.utc),
    )


@pytest.mark.asyncio
async def test_owner_access_allows_owner(test_user):
    video = _video(test_user.userid)
    with patch("vidtube.services.video_service.get_video_by_id", new_callable=AsyncMock, return_value=video):
        assert await dependencies.get_video_for_owner_access(video.videoid, test_user) is video


@pytest.mark.asyncio
async def test_owner_access_forbidden_for_others(test_user, other_user):
    video = _video(other_user.userid)
    with patch("vidtube.services.video_service.get_video_by_id", new_callable=AsyncMock, return_value=video):
        with pytest.raises(HTTPException) as exc_info:
            await dependencies.get_video_for_owner_access(video.videoid, test_user)
    assert exc_info.value.status_code == 403


@pytest.mark.asyncio
async def test_owner_access_missing_video(test_user):
    with patch("vidtube.services.video_service.get_video_by_id", new_callable=AsyncMock, return_value=None):
        with pytest.raises(HTTPException) as exc_info:
            await dependencies.get_video_for_owner_access(uuid4(), test_user)
    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
async def test_cookie_authenticates_endpoint(client, test_user):
    client.cookies.set(dependencies.ACCESS_TOKEN_COOKIE, create_access_token(test_user.userid))
    with patch(
        "vidtube.services.user_service.get_user_by_id", new_callable=AsyncMock, return_value=test_user
    ):
        response = await client.get("/api/v1/users/current-user")

    assert response.status_code == 200
    assert response.json()["data"]["username"] == test_user.username


@pytest.mark.asyncio
async def test_pagination_bounds(client, test_user, login_as):
    login_as()
    response = await client.get("/api/v1/dashboard/videos", params={"page": 0})
    assert response.status_code == 400

    response = await client.get("/api/v1/dashboard/videos", params={"limit": 10_000})
    assert response.status_code == 400
