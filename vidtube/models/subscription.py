"""Models for channel subscriptions."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from vidtube.models.common import UserID
from vidtube.models.user import OwnerSummary


class SubscriptionToggleResponse(BaseModel):
    channelId: UserID
    isSubscribed: bool
    subscribersCount: int


class SubscriberEntry(BaseModel):
    subscribedAt: datetime
    subscriber: OwnerSummary


class SubscribedChannelEntry(BaseModel):
    subscribedAt: datetime
    channel: OwnerSummary
    subscribersCount: int = 0
