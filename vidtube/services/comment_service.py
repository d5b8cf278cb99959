from typing import Optional, List, Tuple
from uuid import UUID, uuid4
import logging

from fastapi import HTTPException, status

from vidtube.db.astra_client import get_collection, AstraDBCollection, COMMENTS_COLLECTION
from vidtube.models.comment import (
    Comment,
    CommentCreateRequest,
    CommentResponse,
    CommentUpdateRequest,
)
from vidtube.models.like import LikeTargetEnum
from vidtube.models.user import User
from vidtube.models.video import Video
from vidtube.utils.db_helpers import fetch_all, safe_count, to_db_doc, utc_now

logger = logging.getLogger(__name__)


async def _comments(db_table: Optional[AstraDBCollection]) -> AstraDBCollection:
    return db_table if db_table is not None else await get_collection(COMMENTS_COLLECTION)


async def add_comment_to_video(
    video_id: UUID,
    comment_data: CommentCreateRequest,
    current_user: User,
    db_table: Optional[AstraDBCollection] = None,
) -> Comment:
    """Create a comment on an existing video."""

    from vidtube.services import video_service

    video = await video_service.get_video_by_id(video_id)
    if video is None or (not video.is_published and video.userid != current_user.userid):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Video not found")

    table = await _comments(db_table)
    now = utc_now()
    new_comment = Comment(
        commentid=uuid4(),
        videoid=video_id,
        userid=current_user.userid,
        content=comment_data.content,
        created_at=now,
        updated_at=now,
    )

    comment_doc = new_comment.model_dump(by_alias=False)
    comment_doc["_id"] = new_comment.commentid
    await table.insert_one(to_db_doc(comment_doc))
    return new_comment


async def get_comment_by_id(
    comment_id: UUID, db_table: Optional[AstraDBCollection] = None
) -> Optional[Comment]:
    table = await _comments(db_table)
    doc = await table.find_one(filter={"commentid": str(comment_id)})
    if doc is None:
        return None
    return Comment.model_validate(doc)


async def enrich_comments(
    comments: List[Comment], viewer_id: Optional[UUID] = None
) -> List[CommentResponse]:
    """Attach author summaries and like aggregates to *comments*."""

    from vidtube.services import like_service, user_service

    owners = await user_service.get_owner_summaries([c.userid for c in comments])
    like_stats = await like_service.get_like_stats(
        LikeTargetEnum.COMMENT, [c.commentid for c in comments], viewer_id=viewer_id
    )
    return [
        CommentResponse(
            **c.model_dump(by_alias=False),
            owner=owners.get(c.userid),
            likes_count=like_stats[str(c.commentid)].count,
            is_liked=like_stats[str(c.commentid)].liked_by_viewer,
        )
        for c in comments
    ]


async def list_comments_for_video(
    video_id: UUID,
    page: int,
    page_size: int,
    viewer_id: Optional[UUID] = None,
    db_table: Optional[AstraDBCollection] = None,
) -> Tuple[List[CommentResponse], int]:
    """Newest-first page of a video's comments plus the total count."""

    from vidtube.services import video_service

    video = await video_service.get_video_by_id(video_id)
    if video is None or (not video.is_published and video.userid != viewer_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Video not found")

    table = await _comments(db_table)
    query_filter = {"videoid": str(video_id)}

    find_kwargs = {
        "filter": query_filter,
        "sort": {"created_at": -1},
        "limit": page_size,
    }
    skip = (page - 1) * page_size
    if skip > 0:
        find_kwargs["skip"] = skip

    docs = await fetch_all(table.find(**find_kwargs))
    total = await safe_count(table, query_filter=query_filter)

    comments = [Comment.model_validate(d) for d in docs]
    return await enrich_comments(comments, viewer_id=viewer_id), total


async def count_comments_for_video(
    video_id: UUID, db_table: Optional[AstraDBCollection] = None
) -> int:
    table = await _comments(db_table)
    return await safe_count(table, query_filter={"videoid": str(video_id)})


async def update_comment(
    comment_id: UUID,
    update_data: CommentUpdateRequest,
    current_user: User,
    db_table: Optional[AstraDBCollection] = None,
) -> Comment:
    """Edit a comment; only its author may do so."""

    table = await _comments(db_table)
    comment = await get_comment_by_id(comment_id, db_table=table)
    if comment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Comment not found")
    if comment.userid != current_user.userid:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You are not allowed to edit this comment",
        )

    now = utc_now()
    await table.update_one(
        filter={"commentid": str(comment_id)},
        update={"$set": {"content": update_data.content, "updated_at": now.isoformat()}},
    )
    return comment.model_copy(update={"content": update_data.content, "updated_at": now})


async def delete_comment(
    comment_id: UUID,
    current_user: User,
    db_table: Optional[AstraDBCollection] = None,
) -> None:
    """Delete a comment and its likes.

    The comment author and the owner of the commented video may delete it.
    """

    from vidtube.services import like_service, video_service

    table = await _comments(db_table)
    comment = await get_comment_by_id(comment_id, db_table=table)
    if comment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Comment not found")

    if comment.userid != current_user.userid:
        video: Optional[Video] = await video_service.get_video_by_id(comment.videoid)
        if video is None or video.userid != current_user.userid:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You are not allowed to delete this comment",
            )

    await like_service.delete_likes_for_targets(LikeTargetEnum.COMMENT, [comment_id])
    await table.delete_one(filter={"commentid": str(comment_id)})
    logger.info("Comment %s deleted by %s", comment_id, current_user.userid)


async def delete_comments_for_video(
    video_id: UUID, db_table: Optional[AstraDBCollection] = None
) -> Tuple[int, int]:
    """Remove all comments of a video and the likes on them.

    Returns ``(comments_deleted, likes_deleted)``.
    """

    from vidtube.services import like_service

    table = await _comments(db_table)
    docs = await fetch_all(
        table.find(filter={"videoid": str(video_id)}, projection={"commentid": 1})
    )
    comment_ids = [d["commentid"] for d in docs]
    likes_deleted = await like_service.delete_likes_for_targets(
        LikeTargetEnum.COMMENT, comment_ids
    )

    result = await table.delete_many(filter={"videoid": str(video_id)})
    return result.deleted_count or 0, likes_deleted
