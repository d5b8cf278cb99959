from typing import Annotated, List, Optional

from fastapi import APIRouter, Cookie, File, Form, Response, UploadFile, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from vidtube.core.config import settings
from vidtube.models.common import ApiResponse
from vidtube.models.user import (
    ChannelProfile,
    PasswordChangeRequest,
    RefreshTokenRequest,
    TokenPair,
    User,
    UserAccountUpdateRequest,
    UserCreateRequest,
    UserLoginRequest,
    UserLoginResponse,
)
from vidtube.models.video import VideoSummary
from vidtube.services import user_service
from vidtube.api.v1.dependencies import (
    ACCESS_TOKEN_COOKIE,
    REFRESH_TOKEN_COOKIE,
    CurrentUser,
    OptionalUser,
)
from vidtube.api.v1.responses import ok

router = APIRouter(prefix="/users", tags=["Users"])


def _set_auth_cookies(response: Response, tokens: TokenPair) -> None:
    for name, value in (
        (ACCESS_TOKEN_COOKIE, tokens.accessToken),
        (REFRESH_TOKEN_COOKIE, tokens.refreshToken),
    ):
        response.set_cookie(
            key=name,
            value=value,
            httponly=True,
            secure=settings.COOKIE_SECURE,
            samesite="lax",
        )


@router.post(
    "/register",
    response_model=ApiResponse[User],
    status_code=status.HTTP_201_CREATED,
    summary="Register new account",
)
async def register_user(
    fullName: Annotated[str, Form()],
    email: Annotated[str, Form()],
    username: Annotated[str, Form()],
    password: Annotated[str, Form()],
    avatar: Annotated[Optional[UploadFile], File()] = None,
    coverImage: Annotated[Optional[UploadFile], File()] = None,
):
    try:
        user_in = UserCreateRequest(
            fullName=fullName, email=email, username=username, password=password
        )
    except ValidationError as exc:
        raise RequestValidationError(exc.errors(include_url=False, include_context=False))

    if avatar is None:
        raise RequestValidationError(
            [{"type": "missing", "loc": ["body", "avatar"], "msg": "Avatar file is required"}]
        )

    user = await user_service.register_user(user_in, avatar=avatar, cover_image=coverImage)
    return ok(user, message="User registered successfully", status_code=status.HTTP_201_CREATED)


@router.post(
    "/login",
    response_model=ApiResponse[UserLoginResponse],
    summary="Login → JWT pair (also set as cookies)",
)
async def login(credentials: UserLoginRequest, response: Response):
    result = await user_service.login_user(credentials)
    _set_auth_cookies(response, result)
    return ok(result, message="User logged in successfully")


@router.post("/logout", response_model=ApiResponse[dict], summary="Logout")
async def logout(current_user: CurrentUser, response: Response):
    await user_service.logout_user(current_user.userid)
    response.delete_cookie(ACCESS_TOKEN_COOKIE)
    response.delete_cookie(REFRESH_TOKEN_COOKIE)
    return ok({}, message="User logged out")


@router.post(
    "/refresh-token",
    response_model=ApiResponse[TokenPair],
    summary="Rotate the refresh token and issue a new access token",
)
async def refresh_access_token(
    response: Response,
    body: Optional[RefreshTokenRequest] = None,
    refresh_cookie: Annotated[Optional[str], Cookie(alias=REFRESH_TOKEN_COOKIE)] = None,
):
    incoming = refresh_cookie or (body.refreshToken if body else None)
    tokens = await user_service.refresh_tokens(incoming)
    _set_auth_cookies(response, tokens)
    return ok(tokens, message="Access token refreshed")


@router.post(
    "/change-password", response_model=ApiResponse[dict], summary="Change password"
)
async def change_password(request: PasswordChangeRequest, current_user: CurrentUser):
    await user_service.change_password(current_user.userid, request)
    return ok({}, message="Password changed successfully")


@router.get(
    "/current-user", response_model=ApiResponse[User], summary="Get own profile"
)
async def read_current_user(current_user: CurrentUser):
    return ok(current_user, message="User fetched successfully")


@router.patch(
    "/update-account", response_model=ApiResponse[User], summary="Update own profile"
)
async def update_account(update_data: UserAccountUpdateRequest, current_user: CurrentUser):
    user = await user_service.update_account(current_user.userid, update_data)
    return ok(user, message="Account details updated successfully")


@router.patch("/avatar", response_model=ApiResponse[User], summary="Replace avatar")
async def update_avatar(avatar: Annotated[UploadFile, File()], current_user: CurrentUser):
    user = await user_service.update_user_image(current_user.userid, avatar, "avatar")
    return ok(user, message="Avatar image updated successfully")


@router.patch(
    "/cover-image", response_model=ApiResponse[User], summary="Replace cover image"
)
async def update_cover_image(
    coverImage: Annotated[UploadFile, File()], current_user: CurrentUser
):
    user = await user_service.update_user_image(
        current_user.userid, coverImage, "cover_image"
    )
    return ok(user, message="Cover image updated successfully")


@router.get(
    "/c/{username}",
    response_model=ApiResponse[ChannelProfile],
    summary="Public channel profile",
)
async def get_channel_profile(username: str, viewer: OptionalUser):
    profile = await user_service.get_channel_profile(
        username, viewer_id=viewer.userid if viewer else None
    )
    return ok(profile, message="User channel fetched successfully")


@router.get(
    "/history",
    response_model=ApiResponse[List[VideoSummary]],
    summary="Watch history",
)
async def get_watch_history(current_user: CurrentUser):
    history = await user_service.get_watch_history(current_user)
    return ok(history, message="Watch history fetched successfully")
