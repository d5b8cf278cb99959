from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from fastapi import HTTPException

from vidtube.models.subscription import SubscriberEntry, SubscriptionToggleResponse

BASE = "/api/v1/subscriptions"


@pytest.mark.asyncio
async def test_toggle_subscription(client, login_as, other_user):
    user = login_as()
    result = SubscriptionToggleResponse(channelId=other_user.userid, isSubscribed=True, subscribersCount=7)
    with patch(
        "vidtube.services.subscription_service.toggle_subscription", new_callable=AsyncMock, return_value=result
    ) as mock_toggle:
        response = await client.post(f"{BASE}/c/{other_user.userid}")

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Subscribed successfully"
    assert body["data"]["subscribersCount"] == 7
    mock_toggle.assert_awaited_once_with(user.userid, other_user.userid)


@pytest.mark.asyncio
async def test_self_subscription_rejected(client, login_as):
    user = login_as()
    with patch(
        "vidtube.services.subscription_service.toggle_subscription",
        new_callable=AsyncMock,
        side_effect=HTTPException(status_code=400, detail="You cannot subscribe to your own channel"),
    ):
        response = await client.post(f"{BASE}/c/{user.userid}")
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_list_channel_subscribers(client, login_as, test_user):
    login_as()
    entry = SubscriberEntry(subscribedAt=datetime.now(timezone.utc), subscriber=test_user.summary())
    channel_id = uuid4()
    with patch(
        "vidtube.services.subscription_service.list_channel_subscribers",
        new_callable=AsyncMock,
        return_value=([entry], 1),
    ):
        response = await client.get(f"{BASE}/c/{channel_id}")

    assert response.status_code == 200
    items = response.json()["data"]["items"]
    assert items[0]["subscriber"]["userId"] == str(test_user.userid)


@pytest.mark.asyncio
async def test_list_subscribed_channels(client, login_as):
    user = login_as()
    with patch(
        "vidtube.services.subscription_service.list_subscribed_channels",
        new_callable=AsyncMock,
        return_value=([], 0),
    ) as mock_list:
        response = await client.get(f"{BASE}/u/{user.userid}", params={"page": 3})

    assert response.status_code == 200
    assert mock_list.call_args.kwargs["page"] == 3


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "path, service_fn",
    [("c", "list_channel_subscribers"), ("u", "list_subscribed_channels")],
)
async def test_subscription_lists_are_public(client, path, service_fn):
    with patch(
        f"vidtube.services.subscription_service.{service_fn}",
        new_callable=AsyncMock,
        return_value=([], 0),
    ) as mock_list:
        response = await client.get(f"{BASE}/{path}/{uuid4()}")

    assert response.status_code == 200
    assert response.json()["data"]["items"] == []
    mock_list.assert_awaited_once()
