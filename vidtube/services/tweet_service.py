"""Short text posts published on a user's channel."""

from typing import Optional, List, Tuple
from uuid import UUID, uuid4
import logging

from fastapi import HTTPException, status

from vidtube.db.astra_client import get_collection, AstraDBCollection, TWEETS_COLLECTION
from vidtube.models.like import LikeTargetEnum
from vidtube.models.tweet import Tweet, TweetCreateRequest, TweetResponse, TweetUpdateRequest
from vidtube.models.user import User
from vidtube.utils.db_helpers import fetch_all, safe_count, to_db_doc, utc_now

logger = logging.getLogger(__name__)


async def _tweets(db_table: Optional[AstraDBCollection]) -> AstraDBCollection:
    return db_table if db_table is not None else await get_collection(TWEETS_COLLECTION)


async def create_tweet(
    request: TweetCreateRequest,
    current_user: User,
    db_table: Optional[AstraDBCollection] = None,
) -> Tweet:
    table = await _tweets(db_table)
    now = utc_now()
    tweet = Tweet(
        tweetid=uuid4(),
        userid=current_user.userid,
        content=request.content,
        created_at=now,
        updated_at=now,
    )
    tweet_doc = tweet.model_dump(by_alias=False)
    tweet_doc["_id"] = tweet.tweetid
    await table.insert_one(to_db_doc(tweet_doc))
    return tweet


async def get_tweet_by_id(
    tweet_id: UUID, db_table: Optional[AstraDBCollection] = None
) -> Optional[Tweet]:
    table = await _tweets(db_table)
    doc = await table.find_one(filter={"tweetid": str(tweet_id)})
    return Tweet.model_validate(doc) if doc else None


async def list_user_tweets(
    user_id: UUID,
    page: int,
    page_size: int,
    viewer_id: Optional[UUID] = None,
    db_table: Optional[AstraDBCollection] = None,
) -> Tuple[List[TweetResponse], int]:
    """A user's tweets, newest first, with like aggregates."""

    from vidtube.services import like_service, user_service

    owner = await user_service.get_user_by_id(user_id)
    if owner is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    table = await _tweets(db_table)
    query_filter = {"userid": str(user_id)}
    find_kwargs = {"filter": query_filter, "sort": {"created_at": -1}, "limit": page_size}
    skip = (page - 1) * page_size
    if skip > 0:
        find_kwargs["skip"] = skip

    tweets = [Tweet.model_validate(d) for d in await fetch_all(table.find(**find_kwargs))]
    total = await safe_count(table, query_filter=query_filter)

    like_stats = await like_service.get_like_stats(
        LikeTargetEnum.TWEET, [t.tweetid for t in tweets], viewer_id=viewer_id
    )
    owner_summary = owner.summary()
    items = [
        TweetResponse(
            **t.model_dump(by_alias=False),
            owner=owner_summary,
            likes_count=like_stats[str(t.tweetid)].count,
            is_liked=like_stats[str(t.tweetid)].liked_by_viewer,
        )
        for t in tweets
    ]
    return items, total


async def _owned_tweet(tweet_id: UUID, current_user: User, table: AstraDBCollection) -> Tweet:
    tweet = await get_tweet_by_id(tweet_id, db_table=table)
    if tweet is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tweet not found")
    if tweet.userid != current_user.userid:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You are not the owner of this tweet",
        )
    return tweet


async def update_tweet(
    tweet_id: UUID,
    request: TweetUpdateRequest,
    current_user: User,
    db_table: Optional[AstraDBCollection] = None,
) -> Tweet:
    table = await _tweets(db_table)
    tweet = await _owned_tweet(tweet_id, current_user, table)

    now = utc_now()
    await table.update_one(
        filter={"tweetid": str(tweet_id)},
        update={"$set": {"content": request.content, "updated_at": now.isoformat()}},
    )
    return tweet.model_copy(update={"content": request.content, "updated_at": now})


async def delete_tweet(
    tweet_id: UUID,
    current_user: User,
    db_table: Optional[AstraDBCollection] = None,
) -> None:
    from vidtube.services import like_service

    table = await _tweets(db_table)
    await _owned_tweet(tweet_id, current_user, table)

    await like_service.delete_likes_for_targets(LikeTargetEnum.TWEET, [tweet_id])
    await table.delete_one(filter={"tweetid": str(tweet_id)})
    logger.info("Tweet %s deleted", tweet_id)
