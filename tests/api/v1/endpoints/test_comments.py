from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from fastapi import HTTPException

from vidtube.models.comment import Comment, CommentResponse

BASE = "/api/v1/comments"


def _comment(author, video_id=None, content="Nice one") -> Comment:
    return Comment(
        commentid=uuid4(),
        videoid=video_id or uuid4(),
        userid=author.userid,
        content=content,
        created_at=datetime.now(timezone.utc),
    )


@pytest.mark.asyncio
async def test_list_comments_anonymous(client, test_user):
    comment = _comment(test_user)
    item = CommentResponse(**comment.model_dump(by_alias=False), owner=test_user.summary(), likes_count=1)
    with patch(
        "vidtube.services.comment_service.list_comments_for_video",
        new_callable=AsyncMock,
        return_value=([item], 1),
    ) as mock_list:
        response = await client.get(f"{BASE}/{comment.videoid}", params={"limit": 5})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["items"][0]["owner"]["username"] == test_user.username
    assert data["items"][0]["likesCount"] == 1
    assert data["pagination"]["pageSize"] == 5
    assert mock_list.call_args.kwargs["viewer_id"] is None


@pytest.mark.asyncio
async def test_add_comment(client, login_as):
    user = login_as()
    video_id = uuid4()
    comment = _comment(user, video_id=video_id, content="First!")
    with patch(
        "vidtube.services.comment_service.add_comment_to_video", new_callable=AsyncMock, return_value=comment
    ) as mock_add:
        response = await client.post(f"{BASE}/{video_id}", json={"content": "First!"})

    assert response.status_code == 201
    assert response.json()["data"]["content"] == "First!"
    assert mock_add.call_args.args[0] == video_id


@pytest.mark.asyncio
async def test_add_blank_comment_rejected(client, login_as):
    login_as()
    response = await client.post(f"{BASE}/{uuid4()}", json={"content": "   "})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_add_comment_requires_auth(client):
    response = await client.post(f"{BASE}/{uuid4()}", json={"content": "hi"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_update_comment_forbidden_propagates(client, login_as):
    login_as()
    with patch(
        "vidtube.services.comment_service.update_comment",
        new_callable=AsyncMock,
        side_effect=HTTPException(status_code=403, detail="You can only edit your own comments"),
    ):
        response = await client.patch(f"{BASE}/c/{uuid4()}", json={"content": "edited"})

    assert response.status_code == 403
    body = response.json()
    assert body["success"] is False
    assert body["data"] is None


@pytest.mark.asyncio
async def test_delete_comment(client, login_as):
    user = login_as()
    comment_id = uuid4()
    with patch("vidtube.services.comment_service.delete_comment", new_callable=AsyncMock) as mock_delete:
        response = await client.delete(f"{BASE}/c/{comment_id}")

    assert response.status_code == 200
    mock_delete.assert_awaited_once_with(comment_id, user)
