from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest

from vidtube.models.like import LikeTargetEnum
from vidtube.services import dashboard_service


@pytest.mark.asyncio
async def test_get_channel_stats(mock_collection, test_user):
    ids = [str(uuid4()) for _ in range(3)]
    videos = mock_collection(
        find_docs=[
            {"videoid": ids[0], "views": 10},
            {"videoid": ids[1], "views": 5},
            {"videoid": ids[2]},
        ]
    )

    with (
        patch(
            "vidtube.services.like_service.count_likes_for_targets",
            new_callable=AsyncMock,
            return_value=8,
        ) as mock_likes,
        patch(
            "vidtube.services.subscription_service.count_subscribers",
            new_callable=AsyncMock,
            return_value=4,
        ),
    ):
        stats = await dashboard_service.get_channel_stats(test_user.userid, db_table=videos)

    assert stats.totalVideos == 3
    assert stats.totalViews == 15
    assert stats.totalLikes == 8
    assert stats.totalSubscribers == 4
    mock_likes.assert_awaited_once_with(LikeTargetEnum.VIDEO, ids)
    assert videos.find.call_args.kwargs["filter"] == {"userid": str(test_user.userid)}


@pytest.mark.asyncio
async def test_get_channel_stats_empty_channel(mock_collection, test_user):
    with (
        patch(
            "vidtube.services.like_service.count_likes_for_targets",
            new_callable=AsyncMock,
            return_value=0,
        ),
        patch(
            "vidtube.services.subscription_service.count_subscribers",
            new_callable=AsyncMock,
            return_value=0,
        ),
    ):
        stats = await dashboard_service.get_channel_stats(test_user.userid, db_table=mock_collection())

    assert stats.model_dump() == {
        "totalVideos": 0,
        "totalViews": 0,
        "totalSubscribers": 0,
        "totalLikes": 0,
    }
