"""Channel subscriptions.

One document per (subscriber, channel) pair keyed by a deterministic ``_id``
so a toggle never produces duplicates.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from astrapy.exceptions import DataAPIResponseException
from fastapi import HTTPException, status

from vidtube.db.astra_client import get_collection, AstraDBCollection, SUBSCRIPTIONS_COLLECTION
from vidtube.models.subscription import (
    SubscribedChannelEntry,
    SubscriberEntry,
    SubscriptionToggleResponse,
)
from vidtube.utils.db_helpers import (
    fetch_all,
    find_by_ids,
    is_duplicate_key_error,
    safe_count,
    utc_now,
)

logger = logging.getLogger(__name__)


def subscription_document_id(subscriber_id: UUID, channel_id: UUID) -> str:
    return f"{subscriber_id}:{channel_id}"


async def _subscriptions(db_table: Optional[AstraDBCollection]) -> AstraDBCollection:
    return db_table if db_table is not None else await get_collection(SUBSCRIPTIONS_COLLECTION)


async def count_subscribers(
    channel_id: UUID, db_table: Optional[AstraDBCollection] = None
) -> int:
    table = await _subscriptions(db_table)
    return await safe_count(table, query_filter={"channel_id": str(channel_id)})


async def count_subscriptions(
    subscriber_id: UUID, db_table: Optional[AstraDBCollection] = None
) -> int:
    table = await _subscriptions(db_table)
    return await safe_count(table, query_filter={"subscriber_id": str(subscriber_id)})


async def is_subscribed(
    subscriber_id: UUID, channel_id: UUID, db_table: Optional[AstraDBCollection] = None
) -> bool:
    table = await _subscriptions(db_table)
    doc = await table.find_one(
        filter={"_id": subscription_document_id(subscriber_id, channel_id)},
        projection={"_id": 1},
    )
    return doc is not None


async def toggle_subscription(
    subscriber_id: UUID,
    channel_id: UUID,
    db_table: Optional[AstraDBCollection] = None,
) -> SubscriptionToggleResponse:
    from vidtube.services import user_service

    if subscriber_id == channel_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot subscribe to your own channel",
        )
    if await user_service.get_user_by_id(channel_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Channel not found")

    table = await _subscriptions(db_table)
    doc_id = subscription_document_id(subscriber_id, channel_id)

    result = await table.delete_one(filter={"_id": doc_id})
    if result.deleted_count:
        subscribed = False
        logger.debug("User %s unsubscribed from %s", subscriber_id, channel_id)
    else:
        try:
            await table.insert_one(
                {
                    "_id": doc_id,
                    "subscriber_id": str(subscriber_id),
                    "channel_id": str(channel_id),
                    "created_at": utc_now().isoformat(),
                }
            )
        except DataAPIResponseException as exc:
            if not is_duplicate_key_error(exc):
                raise
        subscribed = True

    return SubscriptionToggleResponse(
        channelId=channel_id,
        isSubscribed=subscribed,
        subscribersCount=await count_subscribers(channel_id, db_table=table),
    )


async def get_subscriber_counts(
    channel_ids: Iterable[UUID], db_table: Optional[AstraDBCollection] = None
) -> Dict[str, int]:
    """Subscriber count per channel for a batch of channels."""

    ids = [str(c) for c in channel_ids]
    if not ids:
        return {}
    table = await _subscriptions(db_table)
    docs = await find_by_ids(table, "channel_id", ids, projection={"channel_id": 1})
    counts = Counter(d["channel_id"] for d in docs)
    return {cid: counts.get(cid, 0) for cid in ids}


def _page_kwargs(query_filter: Dict[str, str], page: int, page_size: int) -> Dict[str, object]:
    find_kwargs: Dict[str, object] = {
        "filter": query_filter,
        "sort": {"created_at": -1},
        "limit": page_size,
    }
    skip = (page - 1) * page_size
    if skip > 0:
        find_kwargs["skip"] = skip
    return find_kwargs


async def list_channel_subscribers(
    channel_id: UUID,
    page: int,
    page_size: int,
    db_table: Optional[AstraDBCollection] = None,
) -> Tuple[List[SubscriberEntry], int]:
    from vidtube.services import user_service

    if await user_service.get_user_by_id(channel_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Channel not found")

    table = await _subscriptions(db_table)
    query_filter = {"channel_id": str(channel_id)}
    docs = await fetch_all(table.find(**_page_kwargs(query_filter, page, page_size)))
    total = await safe_count(table, query_filter=query_filter)

    subscribers = await user_service.get_owner_summaries(
        [UUID(d["subscriber_id"]) for d in docs]
    )
    items: List[SubscriberEntry] = []
    for d in docs:
        subscriber = subscribers.get(UUID(d["subscriber_id"]))
        if subscriber is not None:
            items.append(SubscriberEntry(subscribedAt=d["created_at"], subscriber=subscriber))
    return items, total


async def list_subscribed_channels(
    subscriber_id: UUID,
    page: int,
    page_size: int,
    db_table: Optional[AstraDBCollection] = None,
) -> Tuple[List[SubscribedChannelEntry], int]:
    """Channels *subscriber_id* follows, each with its own subscriber count."""

    from vidtube.services import user_service

    if await user_service.get_user_by_id(subscriber_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    table = await _subscriptions(db_table)
    query_filter = {"subscriber_id": str(subscriber_id)}
    docs = await fetch_all(table.find(**_page_kwargs(query_filter, page, page_size)))
    total = await safe_count(table, query_filter=query_filter)

    channel_ids = [UUID(d["channel_id"]) for d in docs]
    channels = await user_service.get_owner_summaries(channel_ids)
    counts = await get_subscriber_counts(channel_ids, db_table=table)

    items: List[SubscribedChannelEntry] = []
    for d in docs:
        channel = channels.get(UUID(d["channel_id"]))
        if channel is None:
            continue
        items.append(
            SubscribedChannelEntry(
                subscribedAt=d["created_at"],
                channel=channel,
                subscribersCount=counts.get(d["channel_id"], 0),
            )
        )
    return items, total
