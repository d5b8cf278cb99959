"""Pydantic models for video comments."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, ConfigDict, field_validator

from vidtube.models.common import UserID, VideoID, CommentID
from vidtube.models.user import OwnerSummary


class CommentCreateRequest(BaseModel):
    """Payload for creating or editing a comment."""

    content: str = Field(..., min_length=1, max_length=1000)

    @field_validator("content")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("content must not be blank")
        return value.strip()


class CommentUpdateRequest(CommentCreateRequest):
    pass


class Comment(BaseModel):
    """Persistent representation stored in the ``comments`` collection."""

    model_config = ConfigDict(populate_by_name=True)

    commentid: CommentID = Field(..., alias="commentId")
    videoid: VideoID = Field(..., alias="videoId")
    userid: UserID = Field(..., alias="ownerId")
    content: str
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")


class CommentResponse(Comment):
    """API representation with author and like aggregates attached."""

    owner: Optional[OwnerSummary] = None
    likes_count: int = Field(0, alias="likesCount")
    is_liked: bool = Field(False, alias="isLiked")


__all__ = [
    "CommentID",
    "CommentCreateRequest",
    "CommentUpdateRequest",
    "Comment",
    "CommentResponse",
]
