"""Likes on videos, comments and tweets.

A like is stored once per (target, user) pair under a deterministic ``_id``
so toggling is idempotent and concurrent double-clicks cannot create
duplicates.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from astrapy.exceptions import DataAPIResponseException
from fastapi import HTTPException, status

from vidtube.core.config import settings
from vidtube.db.astra_client import (
    get_collection,
    AstraDBCollection,
    COMMENTS_COLLECTION,
    LIKES_COLLECTION,
    TWEETS_COLLECTION,
    VIDEOS_COLLECTION,
)
from vidtube.models.like import LikedVideo, LikeStats, LikeTargetEnum, LikeToggleResponse
from vidtube.utils.db_helpers import (
    chunked,
    fetch_all,
    find_by_ids,
    is_duplicate_key_error,
    safe_count,
    utc_now,
)

logger = logging.getLogger(__name__)

_TARGET_COLLECTIONS = {
    LikeTargetEnum.VIDEO: (VIDEOS_COLLECTION, "videoid"),
    LikeTargetEnum.COMMENT: (COMMENTS_COLLECTION, "commentid"),
    LikeTargetEnum.TWEET: (TWEETS_COLLECTION, "tweetid"),
}


def like_document_id(target_type: LikeTargetEnum, target_id: UUID, user_id: UUID) -> str:
    return f"{target_type.value}:{target_id}:{user_id}"


async def _likes(db_table: Optional[AstraDBCollection]) -> AstraDBCollection:
    return db_table if db_table is not None else await get_collection(LIKES_COLLECTION)


async def _ensure_target_exists(target_type: LikeTargetEnum, target_id: UUID) -> None:
    collection_name, id_field = _TARGET_COLLECTIONS[target_type]
    targets = await get_collection(collection_name)
    doc = await targets.find_one(filter={id_field: str(target_id)}, projection={id_field: 1})
    if doc is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{target_type.value.capitalize()} not found",
        )


async def count_likes(
    target_type: LikeTargetEnum,
    target_id: UUID,
    db_table: Optional[AstraDBCollection] = None,
) -> int:
    table = await _likes(db_table)
    return await safe_count(
        table,
        query_filter={"target_type": target_type.value, "target_id": str(target_id)},
    )


async def toggle_like(
    target_type: LikeTargetEnum,
    target_id: UUID,
    user_id: UUID,
    db_table: Optional[AstraDBCollection] = None,
) -> LikeToggleResponse:
    """Flip the like of *user_id* on a target and return the new state."""

    await _ensure_target_exists(target_type, target_id)
    table = await _likes(db_table)
    doc_id = like_document_id(target_type, target_id, user_id)

    result = await table.delete_one(filter={"_id": doc_id})
    if result.deleted_count:
        is_liked = False
    else:
        try:
            await table.insert_one(
                {
                    "_id": doc_id,
                    "target_type": target_type.value,
                    "target_id": str(target_id),
                    "userid": str(user_id),
                    "created_at": utc_now().isoformat(),
                }
            )
        except DataAPIResponseException as exc:
            if not is_duplicate_key_error(exc):
                raise
            # A concurrent request inserted the same like first
            logger.debug("Like %s already present", doc_id)
        is_liked = True

    likes_count = await count_likes(target_type, target_id, db_table=table)
    return LikeToggleResponse(
        targetType=target_type,
        targetId=target_id,
        isLiked=is_liked,
        likesCount=likes_count,
    )


async def get_like_stats(
    target_type: LikeTargetEnum,
    target_ids: Iterable[UUID],
    viewer_id: Optional[UUID] = None,
    db_table: Optional[AstraDBCollection] = None,
) -> Dict[str, LikeStats]:
    """Like count and viewer flag for many targets at once.

    Keys are the stringified target ids; every requested id is present in the
    result even when it has no likes.
    Counts saturate at ``COUNT_UPPER_BOUND`` like :func:`count_likes`.
    """

    ids = [str(t) for t in target_ids]
    stats: Dict[str, LikeStats] = {tid: LikeStats() for tid in ids}
    if not ids:
        return stats

    table = await _likes(db_table)
    docs = await find_by_ids(
        table,
        "target_id",
        ids,
        projection={"target_id": 1, "userid": 1},
        extra_filter={"target_type": target_type.value},
    )

    counts = Counter(d["target_id"] for d in docs)
    viewer = str(viewer_id) if viewer_id is not None else None
    for tid in stats:
        stats[tid].count = min(counts.get(tid, 0), settings.COUNT_UPPER_BOUND)
    if viewer is not None:
        for d in docs:
            if d.get("userid") == viewer and d["target_id"] in stats:
                stats[d["target_id"]].liked_by_viewer = True
    return stats


async def delete_likes_for_targets(
    target_type: LikeTargetEnum,
    target_ids: Iterable[UUID],
    db_table: Optional[AstraDBCollection] = None,
) -> int:
    """Remove every like on the given targets; returns how many were deleted."""

    ids = list(dict.fromkeys(str(t) for t in target_ids))
    if not ids:
        return 0
    table = await _likes(db_table)
    deleted = 0
    for chunk in chunked(ids):
        result = await table.delete_many(
            filter={"target_type": target_type.value, "target_id": {"$in": chunk}}
        )
        deleted += result.deleted_count or 0
    return deleted


async def count_likes_for_targets(
    target_type: LikeTargetEnum,
    target_ids: Iterable[UUID],
    db_table: Optional[AstraDBCollection] = None,
) -> int:
    stats = await get_like_stats(target_type, target_ids, db_table=db_table)
    return sum(s.count for s in stats.values())


async def list_liked_videos(
    user_id: UUID,
    page: int,
    page_size: int,
    db_table: Optional[AstraDBCollection] = None,
) -> Tuple[List[LikedVideo], int]:
    """Published videos liked by *user_id*, most recently liked first."""

    from vidtube.services import video_service

    table = await _likes(db_table)
    query_filter = {"target_type": LikeTargetEnum.VIDEO.value, "userid": str(user_id)}

    find_kwargs = {
        "filter": query_filter,
        "sort": {"created_at": -1},
        "limit": page_size,
    }
    skip = (page - 1) * page_size
    if skip > 0:
        find_kwargs["skip"] = skip
    like_docs = await fetch_all(table.find(**find_kwargs))
    total = await safe_count(table, query_filter=query_filter)

    video_ids = [UUID(d["target_id"]) for d in like_docs]
    videos = await video_service.get_videos_by_ids(video_ids)
    visible = [videos[vid] for vid in video_ids if vid in videos and videos[vid].is_published]
    summaries = {s.videoid: s for s in await video_service.attach_owners(visible)}

    items: List[LikedVideo] = []
    for d in like_docs:
        summary = summaries.get(UUID(d["target_id"]))
        if summary is None:
            continue
        items.append(LikedVideo(likedAt=d["created_at"], video=summary))
    return items, total
