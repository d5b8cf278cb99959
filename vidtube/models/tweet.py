"""Pydantic models for short channel posts (tweets)."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, ConfigDict, field_validator

from vidtube.models.common import TweetID, UserID
from vidtube.models.user import OwnerSummary


class TweetCreateRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=280)

    @field_validator("content")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("content must not be blank")
        return value.strip()


class TweetUpdateRequest(TweetCreateRequest):
    pass


class Tweet(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tweetid: TweetID = Field(..., alias="tweetId")
    userid: UserID = Field(..., alias="ownerId")
    content: str
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")


class TweetResponse(Tweet):
    owner: Optional[OwnerSummary] = None
    likes_count: int = Field(0, alias="likesCount")
    is_liked: bool = Field(False, alias="isLiked")
