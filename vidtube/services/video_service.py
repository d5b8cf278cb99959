"""Business logic for the video catalog.

Covers publishing (upload to the media host + persistence), the public
catalog with search/sort/paging, the single-video view with its like,
comment and subscription aggregates, owner-only updates and the cascading
delete that removes everything referencing a video.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID, uuid4

from fastapi import HTTPException, UploadFile, status

from vidtube.core.config import settings
from vidtube.db.astra_client import get_collection, AstraDBCollection, VIDEOS_COLLECTION
from vidtube.metrics import VIDEO_CASCADE_DELETE_DURATION_SECONDS
from vidtube.models.common import VideoID
from vidtube.models.like import LikeTargetEnum
from vidtube.models.user import ChannelOwner, User
from vidtube.models.video import (
    ChannelVideo,
    SortDirection,
    Video,
    VideoDeleteResult,
    VideoDetail,
    VideoPublishRequest,
    VideoSortField,
    VideoSummary,
    VideoUpdateRequest,
)
from vidtube.services import media_service
from vidtube.utils.db_helpers import (
    fetch_all,
    find_by_ids,
    safe_count,
    to_db_doc,
    utc_now,
)

logger = logging.getLogger(__name__)


async def _videos(db_table: Optional[AstraDBCollection]) -> AstraDBCollection:
    return db_table if db_table is not None else await get_collection(VIDEOS_COLLECTION)


def _video_filter(video_id: VideoID) -> Dict[str, Any]:
    return {"videoid": str(video_id)}


# ---------------------------------------------------------------------------
# Retrieval
# ---------------------------------------------------------------------------


async def get_video_by_id(
    video_id: VideoID, db_table: Optional[AstraDBCollection] = None
) -> Optional[Video]:
    """Fetch a single video by its ID, or ``None`` if it does not exist."""

    table = await _videos(db_table)
    doc = await table.find_one(filter=_video_filter(video_id))
    if doc is None:
        return None
    return Video.model_validate(doc)


async def get_videos_by_ids(
    video_ids: List[VideoID], db_table: Optional[AstraDBCollection] = None
) -> Dict[UUID, Video]:
    if not video_ids:
        return {}
    table = await _videos(db_table)
    docs = await find_by_ids(table, "videoid", video_ids)
    return {UUID(d["videoid"]): Video.model_validate(d) for d in docs}


async def attach_owners(videos: List[Video]) -> List[VideoSummary]:
    """Join each video with its owner's public summary (``$lookup`` on users)."""

    from vidtube.services import user_service

    owners = await user_service.get_owner_summaries([v.userid for v in videos])
    return [
        VideoSummary(**v.model_dump(by_alias=False), owner=owners.get(v.userid))
        for v in videos
    ]


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


def _matches_query(doc: Dict[str, Any], needle: str) -> bool:
    return needle in str(doc.get("title") or "").lower() or needle in str(
        doc.get("description") or ""
    ).lower()


async def list_videos(
    *,
    page: int,
    page_size: int,
    query: Optional[str] = None,
    sort_by: VideoSortField = VideoSortField.CREATED_AT,
    sort_type: SortDirection = SortDirection.DESC,
    owner_id: Optional[UUID] = None,
    db_table: Optional[AstraDBCollection] = None,
) -> Tuple[List[VideoSummary], int]:
    """Paginated list of published videos.

    With a text *query* the Data API cannot filter server-side (no
    ``$regex``), so a bounded, already-sorted scan of at most
    ``SEARCH_SCAN_LIMIT`` candidates is matched case-insensitively against
    title and description and paged in memory.
    """

    table = await _videos(db_table)

    query_filter: Dict[str, Any] = {"is_published": True}
    if owner_id is not None:
        query_filter["userid"] = str(owner_id)

    sort = {sort_by.db_field: sort_type.value_for_db}
    skip = (page - 1) * page_size
    needle = (query or "").strip().lower()

    if needle:
        candidates = await fetch_all(
            table.find(filter=query_filter, sort=sort, limit=settings.SEARCH_SCAN_LIMIT)
        )
        matched = [d for d in candidates if _matches_query(d, needle)]
        total = len(matched)
        page_docs = matched[skip : skip + page_size]
        logger.debug(
            "Catalog search '%s' matched %d of %d candidates", needle, total, len(candidates)
        )
    else:
        # Data API requires a sort whenever skip is used; one is always present.
        find_kwargs: Dict[str, Any] = {
            "filter": query_filter,
            "sort": sort,
            "limit": page_size,
        }
        if skip > 0:
            find_kwargs["skip"] = skip
        page_docs = await fetch_all(table.find(**find_kwargs))
        total = await safe_count(table, query_filter=query_filter)

    videos = [Video.model_validate(d) for d in page_docs]
    return await attach_owners(videos), total


async def list_channel_videos(
    owner_id: UUID,
    *,
    page: int,
    page_size: int,
    db_table: Optional[AstraDBCollection] = None,
) -> Tuple[List[Video], int]:
    """Every video of a channel, unpublished included, newest first."""

    table = await _videos(db_table)
    query_filter = {"userid": str(owner_id)}
    find_kwargs: Dict[str, Any] = {
        "filter": query_filter,
        "sort": {"created_at": -1},
        "limit": page_size,
    }
    skip = (page - 1) * page_size
    if skip > 0:
        find_kwargs["skip"] = skip
    docs = await fetch_all(table.find(**find_kwargs))
    total = await safe_count(table, query_filter=query_filter)
    return [Video.model_validate(d) for d in docs], total


# ---------------------------------------------------------------------------
# Publishing
# ---------------------------------------------------------------------------


async def publish_video(
    request: VideoPublishRequest,
    video_file: UploadFile,
    thumbnail: UploadFile,
    current_user: User,
    db_table: Optional[AstraDBCollection] = None,
) -> Video:
    """Upload both media files and persist the new video.

    Assets already uploaded are deleted again when a later step fails so the
    media host does not accumulate orphans.
    """

    title = request.title.strip()
    description = request.description.strip()
    if not title or not description:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Title and description are required",
        )

    # Validate both files before uploading either of them
    media_service.validate_upload(video_file, "video", "videoFile")
    media_service.validate_upload(thumbnail, "image", "thumbnail")

    table = await _videos(db_table)

    video_media = await media_service.upload_file(video_file, "video", "videoFile")
    try:
        thumbnail_media = await media_service.upload_file(thumbnail, "image", "thumbnail")
    except HTTPException:
        await media_service.discard_media(video_media.public_id, "video")
        raise

    now = utc_now()
    new_video = Video(
        videoid=uuid4(),
        userid=current_user.userid,
        title=title,
        description=description,
        video_file=video_media.url,
        video_file_public_id=video_media.public_id,
        thumbnail=thumbnail_media.url,
        thumbnail_public_id=thumbnail_media.public_id,
        duration=video_media.duration or 0.0,
        views=0,
        is_published=True,
        created_at=now,
        updated_at=now,
    )

    video_doc = new_video.model_dump(by_alias=False)
    video_doc["video_file_public_id"] = new_video.video_file_public_id
    video_doc["thumbnail_public_id"] = new_video.thumbnail_public_id
    video_doc["_id"] = new_video.videoid

    try:
        await table.insert_one(to_db_doc(video_doc))
    except Exception:
        logger.error("Failed to persist video %s; removing uploaded media", new_video.videoid)
        await media_service.discard_media(video_media.public_id, "video")
        await media_service.discard_media(thumbnail_media.public_id, "image")
        raise

    logger.info("Published video %s for user %s", new_video.videoid, current_user.userid)
    return new_video


# ---------------------------------------------------------------------------
# Single-video view
# ---------------------------------------------------------------------------


async def record_video_view(
    video_id: VideoID, db_table: Optional[AstraDBCollection] = None
) -> None:
    table = await _videos(db_table)
    await table.update_one(filter=_video_filter(video_id), update={"$inc": {"views": 1}})


async def get_video_details(
    video_id: VideoID,
    viewer: Optional[User] = None,
    db_table: Optional[AstraDBCollection] = None,
) -> VideoDetail:
    """Video with like/comment counts and owner subscription info.

    Counts the view and, for signed-in viewers, records it in their watch
    history. Unpublished videos are only visible to their owner.
    """

    from vidtube.services import comment_service, like_service, subscription_service, user_service

    table = await _videos(db_table)
    video = await get_video_by_id(video_id, db_table=table)
    viewer_id = viewer.userid if viewer is not None else None

    if video is None or (not video.is_published and viewer_id != video.userid):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Video not found")

    await record_video_view(video_id, db_table=table)
    if viewer_id is not None:
        await user_service.add_to_watch_history(viewer_id, video_id)

    like_stats = await like_service.get_like_stats(
        LikeTargetEnum.VIDEO, [video_id], viewer_id=viewer_id
    )
    stats = like_stats[str(video_id)]
    comments_count = await comment_service.count_comments_for_video(video_id)

    owner: Optional[ChannelOwner] = None
    owner_user = await user_service.get_user_by_id(video.userid)
    if owner_user is not None:
        subscribers = await subscription_service.count_subscribers(owner_user.userid)
        is_subscribed = False
        if viewer_id is not None:
            is_subscribed = await subscription_service.is_subscribed(
                viewer_id, owner_user.userid
            )
        owner = ChannelOwner(
            **owner_user.summary().model_dump(by_alias=False),
            subscribers_count=subscribers,
            is_subscribed=is_subscribed,
        )

    video_data = video.model_dump(by_alias=False)
    video_data["views"] = video.views + 1
    return VideoDetail(
        **video_data,
        owner=owner,
        likes_count=stats.count,
        is_liked=stats.liked_by_viewer,
        comments_count=comments_count,
    )


# ---------------------------------------------------------------------------
# Owner operations
# ---------------------------------------------------------------------------


async def update_video(
    video: Video,
    update_request: VideoUpdateRequest,
    thumbnail: Optional[UploadFile] = None,
    db_table: Optional[AstraDBCollection] = None,
) -> Video:
    """Update title/description and optionally replace the thumbnail.

    The previous thumbnail asset is deleted only after the document update
    succeeded.
    """

    update_fields: Dict[str, Any] = {}
    for field_name, value in update_request.model_dump(exclude_none=True).items():
        if not value.strip():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"{field_name} must not be blank",
            )
        update_fields[field_name] = value.strip()

    if not update_fields and thumbnail is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Provide a title, description or thumbnail to update",
        )

    table = await _videos(db_table)

    new_thumbnail = None
    if thumbnail is not None:
        new_thumbnail = await media_service.upload_file(thumbnail, "image", "thumbnail")
        update_fields["thumbnail"] = new_thumbnail.url
        update_fields["thumbnail_public_id"] = new_thumbnail.public_id

    update_fields["updated_at"] = utc_now()
    try:
        await table.update_one(
            filter=_video_filter(video.videoid), update={"$set": to_db_doc(update_fields)}
        )
    except Exception:
        if new_thumbnail is not None:
            await media_service.discard_media(new_thumbnail.public_id, "image")
        raise

    if new_thumbnail is not None:
        await media_service.discard_media(video.thumbnail_public_id, "image")

    updated_video = await get_video_by_id(video.videoid, db_table=table)
    if updated_video is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Video not found after update.",
        )
    return updated_video


async def toggle_publish_status(
    video: Video, db_table: Optional[AstraDBCollection] = None
) -> Video:
    table = await _videos(db_table)
    now = utc_now()
    new_state = not video.is_published
    await table.update_one(
        filter=_video_filter(video.videoid),
        update={"$set": {"is_published": new_state, "updated_at": now.isoformat()}},
    )
    return video.model_copy(update={"is_published": new_state, "updated_at": now})


async def delete_video(
    video: Video, db_table: Optional[AstraDBCollection] = None
) -> VideoDeleteResult:
    """Delete a video and everything that references it.

    Order: likes on its comments and the comments, likes on the video, watch
    history entries, the video document, then the media assets. Dependents go
    first so that a failed delete can simply be retried.
    """

    from vidtube.services import comment_service, like_service, user_service

    start = time.perf_counter()
    table = await _videos(db_table)

    deleted_comments, deleted_comment_likes = await comment_service.delete_comments_for_video(
        video.videoid
    )
    deleted_video_likes = await like_service.delete_likes_for_targets(
        LikeTargetEnum.VIDEO, [video.videoid]
    )
    histories = await user_service.remove_video_from_watch_histories(video.videoid)

    result = await table.delete_one(filter=_video_filter(video.videoid))
    if getattr(result, "deleted_count", 1) == 0:
        logger.warning("Video %s was already removed from the catalog", video.videoid)

    video_file_deleted = await media_service.discard_media(video.video_file_public_id, "video")
    thumbnail_deleted = await media_service.discard_media(video.thumbnail_public_id, "image")

    VIDEO_CASCADE_DELETE_DURATION_SECONDS.observe(time.perf_counter() - start)
    logger.info(
        "Deleted video %s (%d comments, %d likes, %d watch histories)",
        video.videoid,
        deleted_comments,
        deleted_comment_likes + deleted_video_likes,
        histories,
    )

    return VideoDeleteResult(
        videoId=video.videoid,
        deletedComments=deleted_comments,
        deletedLikes=deleted_comment_likes + deleted_video_likes,
        watchHistoriesUpdated=histories,
        videoFileDeleted=video_file_deleted,
        thumbnailDeleted=thumbnail_deleted,
    )


async def channel_video_rows(videos: List[Video]) -> List[ChannelVideo]:
    """Attach like and comment counts to a page of the owner's videos."""

    from vidtube.services import comment_service, like_service

    like_stats = await like_service.get_like_stats(
        LikeTargetEnum.VIDEO, [v.videoid for v in videos]
    )
    rows: List[ChannelVideo] = []
    for v in videos:
        comments_count = await comment_service.count_comments_for_video(v.videoid)
        rows.append(
            ChannelVideo(
                **v.model_dump(by_alias=False),
                likes_count=like_stats[str(v.videoid)].count,
                comments_count=comments_count,
            )
        )
    return rows
