from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from fastapi import HTTPException

from vidtube.models.comment import Comment, CommentCreateRequest, CommentUpdateRequest
from vidtube.models.like import LikeStats, LikeTargetEnum
from vidtube.models.video import Video
from vidtube.services import comment_service


def _video(owner_id, published=True) -> Video:
    return Video(
        videoid=uuid4(),
        userid=owner_id,
        title="Clip",
        video_file="https://cdn/v.mp4",
        thumbnail="https://cdn/t.png",
        is_published=published,
        created_at=datetime.now(timezone.utc),
    )


def _comment_doc(video_id, author_id, content="Nice one"):
    cid = uuid4()
    return {
        "_id": str(cid),
        "commentid": str(cid),
        "videoid": str(video_id),
        "userid": str(author_id),
        "content": content,
        "created_at": datetime.now(timezone.utc).isoformat(),
    }


@pytest.mark.asyncio
async def test_add_comment_to_video_success(mock_collection, test_user, other_user):
    video = _video(other_user.userid)
    comments = mock_collection()

    with patch(
        "vidtube.services.video_service.get_video_by_id", new_callable=AsyncMock, return_value=video
    ):
        comment = await comment_service.add_comment_to_video(
            video.videoid, CommentCreateRequest(content="  Great video!  "), test_user, db_table=comments
        )

    inserted = comments.insert_one.call_args.args[0]
    assert inserted["_id"] == inserted["commentid"]
    assert inserted["videoid"] == str(video.videoid)
    assert inserted["content"] == "Great video!"
    assert comment.userid == test_user.userid


@pytest.mark.asyncio
async def test_add_comment_to_missing_video(mock_collection, test_user):
    with patch(
        "vidtube.services.video_service.get_video_by_id", new_callable=AsyncMock, return_value=None
    ):
        with pytest.raises(HTTPException) as exc_info:
            await comment_service.add_comment_to_video(
                uuid4(), CommentCreateRequest(content="hi"), test_user, db_table=mock_collection()
            )
    assert exc_info.value.status_code == 404


def test_blank_comment_rejected():
    with pytest.raises(ValueError):
        CommentCreateRequest(content="   ")


@pytest.mark.asyncio
async def test_list_comments_for_video_enriched(mock_collection, test_user, other_user):
    video = _video(other_user.userid)
    docs = [_comment_doc(video.videoid, test_user.userid), _comment_doc(video.videoid, other_user.userid)]
    comments = mock_collection(find_docs=docs, count=2)

    with (
        patch("vidtube.services.video_service.get_video_by_id", new_callable=AsyncMock, return_value=video),
        patch(
            "vidtube.services.user_service.get_owner_summaries",
            new_callable=AsyncMock,
            return_value={test_user.userid: test_user.summary(), other_user.userid: other_user.summary()},
        ),
        patch(
            "vidtube.services.like_service.get_like_stats",
            new_callable=AsyncMock,
            return_value={
                docs[0]["commentid"]: LikeStats(count=2, liked_by_viewer=True),
                docs[1]["commentid"]: LikeStats(),
            },
        ) as mock_stats,
    ):
        items, total = await comment_service.list_comments_for_video(
            video.videoid, page=1, page_size=10, viewer_id=test_user.userid, db_table=comments
        )

    assert total == 2
    assert items[0].owner.username == test_user.username
    assert items[0].likes_count == 2 and items[0].is_liked
    assert items[1].likes_count == 0
    assert mock_stats.call_args.args[0] == LikeTargetEnum.COMMENT
    assert comments.find.call_args.kwargs["sort"] == {"created_at": -1}


@pytest.mark.asyncio
async def test_update_comment_by_non_author_forbidden(mock_collection, test_user, other_user):
    doc = _comment_doc(uuid4(), other_user.userid)
    comments = mock_collection(find_one=doc)

    with pytest.raises(HTTPException) as exc_info:
        await comment_service.update_comment(
            doc["commentid"], CommentUpdateRequest(content="edited"), test_user, db_table=comments
        )

    assert exc_info.value.status_code == 403
    comments.update_one.assert_not_called()


@pytest.mark.asyncio
async def test_update_comment_by_author(mock_collection, test_user):
    doc = _comment_doc(uuid4(), test_user.userid)
    comments = mock_collection(find_one=doc)

    updated = await comment_service.update_comment(
        doc["commentid"], CommentUpdateRequest(content="edited"), test_user, db_table=comments
    )

    assert updated.content == "edited"
    assert comments.update_one.call_args.kwargs["update"]["$set"]["content"] == "edited"


@pytest.mark.asyncio
async def test_delete_comment_by_video_owner(mock_collection, test_user, other_user):
    video = _video(test_user.userid)
    doc = _comment_doc(video.videoid, other_user.userid)
    comments = mock_collection(find_one=doc)

    with (
        patch("vidtube.services.video_service.get_video_by_id", new_callable=AsyncMock, return_value=video),
        patch("vidtube.services.like_service.delete_likes_for_targets", new_callable=AsyncMock) as mock_likes,
    ):
        await comment_service.delete_comment(doc["commentid"], test_user, db_table=comments)

    mock_likes.assert_awaited_once()
    comments.delete_one.assert_awaited_once_with(filter={"commentid": doc["commentid"]})


@pytest.mark.asyncio
async def test_delete_comment_by_stranger_forbidden(mock_collection, test_user, other_user):
    video = _video(other_user.userid)
    doc = _comment_doc(video.videoid, other_user.userid)
    comments = mock_collection(find_one=doc)

    with patch("vidtube.services.video_service.get_video_by_id", new_callable=AsyncMock, return_value=video):
        with pytest.raises(HTTPException) as exc_info:
            await comment_service.delete_comment(doc["commentid"], test_user, db_table=comments)

    assert exc_info.value.status_code == 403
    comments.delete_one.assert_not_called()


@pytest.mark.asyncio
async def test_delete_comments_for_video_removes_their_likes(mock_collection):
    video_id = uuid4()
    comments = mock_collection(
        find_docs=[{"commentid": "c1"}, {"commentid": "c2"}], deleted_count=2
    )

    with patch(
        "vidtube.services.like_service.delete_likes_for_targets",
        new_callable=AsyncMock,
        return_value=5,
    ) as mock_likes:
        deleted, likes_deleted = await comment_service.delete_comments_for_video(
            video_id, db_table=comments
        )

    assert (deleted, likes_deleted) == (2, 5)
    mock_likes.assert_awaited_once_with(LikeTargetEnum.COMMENT, ["c1", "c2"])
    comments.delete_many.assert_awaited_once_with(filter={"videoid": str(video_id)})
