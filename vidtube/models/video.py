"""Pydantic models representing Video domain entities used throughout the
video catalog.

Field names follow the document schema (snake_case) while the camelCase
aliases define the public JSON shape.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional
from uuid import uuid4
from datetime import datetime

from pydantic import BaseModel, Field, ConfigDict

from vidtube.models.common import UserID, VideoID
from vidtube.models.user import ChannelOwner, OwnerSummary


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class VideoSortField(str, Enum):
    """Catalog sort keys accepted from clients, mapped to document fields."""

    CREATED_AT = "createdAt"
    VIEWS = "views"
    DURATION = "duration"
    TITLE = "title"

    @property
    def db_field(self) -> str:
        return {
            VideoSortField.CREATED_AT: "created_at",
            VideoSortField.VIEWS: "views",
            VideoSortField.DURATION: "duration",
            VideoSortField.TITLE: "title",
        }[self]


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"

    @property
    def value_for_db(self) -> int:
        return 1 if self is SortDirection.ASC else -1


# ---------------------------------------------------------------------------
# Canonical video
# ---------------------------------------------------------------------------
class Video(BaseModel):
    """Full representation of a video stored in the ``videos`` collection.

    Media-host public ids are kept on the model for cascade deletes but are
    never serialised into API responses.
    """

    model_config = ConfigDict(populate_by_name=True)

    videoid: VideoID = Field(default_factory=uuid4, alias="videoId")
    userid: UserID = Field(..., alias="ownerId")
    title: str = Field(..., min_length=1, max_length=150)
    description: str = Field("", max_length=5000)
    video_file: str = Field(..., alias="videoFile")
    video_file_public_id: Optional[str] = Field(None, exclude=True)
    thumbnail: str
    thumbnail_public_id: Optional[str] = Field(None, exclude=True)
    duration: float = 0.0
    views: int = 0
    is_published: bool = Field(True, alias="isPublished")
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")


class VideoSummary(Video):
    """Catalog / history item: the video plus its owner's public summary."""

    owner: Optional[OwnerSummary] = None


class VideoDetail(Video):
    """Single-video view with like, comment and subscription aggregates."""

    owner: Optional[ChannelOwner] = None
    likes_count: int = Field(0, alias="likesCount")
    is_liked: bool = Field(False, alias="isLiked")
    comments_count: int = Field(0, alias="commentsCount")


class ChannelVideo(Video):
    """Dashboard listing entry for the channel owner."""

    likes_count: int = Field(0, alias="likesCount")
    comments_count: int = Field(0, alias="commentsCount")


# ---------------------------------------------------------------------------
# Requests / results
# ---------------------------------------------------------------------------
class VideoPublishRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=150)
    description: str = Field(..., min_length=1, max_length=5000)


class VideoUpdateRequest(BaseModel):
    """Partial update; at least one field or a new thumbnail must be supplied."""

    title: Optional[str] = Field(None, min_length=1, max_length=150)
    description: Optional[str] = Field(None, min_length=1, max_length=5000)


class VideoDeleteResult(BaseModel):
    videoId: VideoID
    deletedComments: int = 0
    deletedLikes: int = 0
    watchHistoriesUpdated: int = 0
    videoFileDeleted: bool = False
    thumbnailDeleted: bool = False


__all__ = [
    "VideoID",
    "VideoSortField",
    "SortDirection",
    "Video",
    "VideoSummary",
    "VideoDetail",
    "ChannelVideo",
    "VideoPublishRequest",
    "VideoUpdateRequest",
    "VideoDeleteResult",
]
