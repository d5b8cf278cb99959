"""Models for likes on videos, comments and tweets."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel

from vidtube.models.video import VideoSummary


class LikeTargetEnum(str, Enum):
    VIDEO = "video"
    COMMENT = "comment"
    TWEET = "tweet"


class LikeStats(BaseModel):
    """Aggregate for one target: total likes and whether the viewer is among them."""

    count: int = 0
    liked_by_viewer: bool = False


class LikeToggleResponse(BaseModel):
    targetType: LikeTargetEnum
    targetId: UUID
    isLiked: bool
    likesCount: int


class LikedVideo(BaseModel):
    likedAt: datetime
    video: VideoSummary
