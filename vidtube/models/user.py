from typing import List, Optional
from datetime import datetime, timezone

from pydantic import BaseModel, EmailStr, Field, ConfigDict, field_validator, model_validator

from vidtube.models.common import UserID, VideoID

USERNAME_PATTERN = r"^[A-Za-z0-9_.]+$"


def _strip_full_name(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    if not value.strip():
        raise ValueError("fullName must not be blank")
    return value.strip()


class OwnerSummary(BaseModel):
    """Public projection of a user embedded in videos, comments and tweets."""

    model_config = ConfigDict(populate_by_name=True)

    userid: UserID = Field(..., alias="userId")
    username: str
    full_name: str = Field(..., alias="fullName")
    avatar: Optional[str] = None


class ChannelOwner(OwnerSummary):
    """Owner summary enriched with viewer-specific subscription details."""

    subscribers_count: int = Field(0, alias="subscribersCount")
    is_subscribed: bool = Field(False, alias="isSubscribed")


class UserCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    username: str = Field(..., min_length=3, max_length=30, pattern=USERNAME_PATTERN)
    email: EmailStr
    full_name: str = Field(..., min_length=1, max_length=100, alias="fullName")
    password: str = Field(..., min_length=8)

    _full_name_not_blank = field_validator("full_name")(_strip_full_name)


class User(OwnerSummary):
    email: EmailStr
    cover_image: Optional[str] = Field(None, alias="coverImage")
    watch_history: List[VideoID] = Field(default_factory=list, alias="watchHistory")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), alias="createdAt"
    )
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    def summary(self) -> OwnerSummary:
        return OwnerSummary(
            userid=self.userid,
            username=self.username,
            full_name=self.full_name,
            avatar=self.avatar,
        )


class ChannelProfile(ChannelOwner):
    email: EmailStr
    cover_image: Optional[str] = Field(None, alias="coverImage")
    channels_subscribed_to_count: int = Field(0, alias="channelsSubscribedToCount")
    created_at: Optional[datetime] = Field(None, alias="createdAt")


class UserLoginRequest(BaseModel):
    username: Optional[str] = Field(None, min_length=1)
    email: Optional[EmailStr] = None
    password: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def _require_identifier(self) -> "UserLoginRequest":
        if not self.username and not self.email:
            raise ValueError("username or email is required")
        return self


class TokenPair(BaseModel):
    accessToken: str
    refreshToken: str


class UserLoginResponse(TokenPair):
    user: User


class RefreshTokenRequest(BaseModel):
    refreshToken: Optional[str] = None


class PasswordChangeRequest(BaseModel):
    oldPassword: str = Field(..., min_length=1)
    newPassword: str = Field(..., min_length=8)


class UserAccountUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    full_name: Optional[str] = Field(
        None, min_length=1, max_length=100, alias="fullName"
    )
    email: Optional[EmailStr] = None

    _full_name_not_blank = field_validator("full_name")(_strip_full_name)
