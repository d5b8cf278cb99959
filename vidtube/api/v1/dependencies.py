from typing import Annotated, Optional
from uuid import UUID

from fastapi import Cookie, Depends, HTTPException, status, Query
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, ExpiredSignatureError
from pydantic import ValidationError

from vidtube.core.config import settings
from vidtube.core.security import TokenPayload, decode_access_token
from vidtube.models.user import User
from vidtube.models.video import Video, VideoID
from vidtube.services import user_service, video_service

ACCESS_TOKEN_COOKIE = "accessToken"
REFRESH_TOKEN_COOKIE = "refreshToken"

reusable_oauth2 = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_V1_STR}/users/login",
    auto_error=False,  # Handle missing token manually for clearer error
)


async def get_request_token(
    bearer_token: Annotated[Optional[str], Depends(reusable_oauth2)],
    cookie_token: Annotated[Optional[str], Cookie(alias=ACCESS_TOKEN_COOKIE)] = None,
) -> Optional[str]:
    """Access token from the ``Authorization`` header, else from the cookie."""

    return bearer_token or cookie_token


async def get_current_user_token_payload(
    token: Annotated[Optional[str], Depends(get_request_token)],
) -> TokenPayload:
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized request"
        )

    try:
        token_data = decode_access_token(token)
    except ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except (JWTError, ValidationError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid access token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return token_data


async def get_current_user(
    payload: Annotated[TokenPayload, Depends(get_current_user_token_payload)],
) -> User:
    if payload.sub is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid access token",
        )

    try:
        user_id = UUID(str(payload.sub))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid access token",
        )

    user = await user_service.get_user_by_id(user_id=user_id)
    if user is None:
        # Account deleted after the token was issued
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid access token"
        )
    return user


async def get_current_user_optional(
    token: Annotated[Optional[str], Depends(get_request_token)],
) -> Optional[User]:
    """Return User if valid token provided, otherwise None (no error)."""

    if token is None:
        return None

    try:
        token_data = decode_access_token(token)
    except (JWTError, ValidationError):
        return None
    if token_data.sub is None:
        return None

    try:
        user_id = UUID(str(token_data.sub))
    except ValueError:
        return None

    return await user_service.get_user_by_id(user_id=user_id)


CurrentUser = Annotated[User, Depends(get_current_user)]
OptionalUser = Annotated[Optional[User], Depends(get_current_user_optional)]


# ---------------------------------------------------------------------------
# Video-specific dependency
# ---------------------------------------------------------------------------


async def get_video_for_owner_access(
    video_id: VideoID,
    current_user: CurrentUser,
) -> Video:
    """Fetch a video and ensure the caller owns it.

    Raises 404 if video not found and 403 if user lacks permission.
    """

    video = await video_service.get_video_by_id(video_id)
    if video is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Video not found")

    if video.userid != current_user.userid:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You are not the owner of this video",
        )
    return video


OwnedVideo = Annotated[Video, Depends(get_video_for_owner_access)]


# ---------------------------------------------------------------------------
# Pagination helper
# ---------------------------------------------------------------------------


class PaginationParams:
    """Common pagination parameters.

    FastAPI will resolve this via dependency injection allowing endpoints to
    accept `page` and `limit` query parameters.
    """

    def __init__(
        self,
        page: int = Query(1, ge=1, description="Page number"),
        limit: int = Query(
            settings.DEFAULT_PAGE_SIZE,
            ge=1,
            le=settings.MAX_PAGE_SIZE,
            description="Items per page",
        ),
    ) -> None:
        self.page = page
        self.limit = limit


common_pagination_params = Annotated[PaginationParams, Depends()]
