from typing import Optional, Dict, Any, List
from uuid import UUID, uuid4
import logging

from astrapy.exceptions import DataAPIResponseException
from fastapi import HTTPException, UploadFile, status
from jose import JWTError
from pydantic import ValidationError

from vidtube.db.astra_client import (
    get_collection,
    AstraDBCollection,
    USER_IDENTITIES_COLLECTION,
    USERS_COLLECTION,
)
from vidtube.models.user import (
    ChannelProfile,
    OwnerSummary,
    PasswordChangeRequest,
    TokenPair,
    User,
    UserAccountUpdateRequest,
    UserCreateRequest,
    UserLoginRequest,
    UserLoginResponse,
)
from vidtube.models.video import VideoSummary
from vidtube.core.security import (
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    get_password_hash,
    verify_password,
)
from vidtube.services import media_service
from vidtube.utils.db_helpers import (
    fetch_all,
    find_by_ids,
    is_duplicate_key_error,
    to_db_doc,
    utc_now,
)

logger = logging.getLogger(__name__)

# Secrets never leave the service layer
PUBLIC_PROJECTION: Dict[str, Any] = {"password": 0, "refresh_token": 0}

_IMAGE_FIELDS = {
    "avatar": ("avatar", "avatar_public_id"),
    "cover_image": ("cover_image", "cover_image_public_id"),
}


async def _users(db_table: Optional[AstraDBCollection]) -> AstraDBCollection:
    return db_table if db_table is not None else await get_collection(USERS_COLLECTION)


async def _identities(identity_table: Optional[AstraDBCollection]) -> AstraDBCollection:
    if identity_table is not None:
        return identity_table
    return await get_collection(USER_IDENTITIES_COLLECTION)


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


async def get_user_document(
    user_id: UUID, db_table: Optional[AstraDBCollection] = None
) -> Optional[Dict[str, Any]]:
    """Raw user document, including password hash and refresh token."""

    table = await _users(db_table)
    return await table.find_one(filter={"userid": str(user_id)})


async def get_user_by_id(
    user_id: UUID, db_table: Optional[AstraDBCollection] = None
) -> Optional[User]:
    table = await _users(db_table)
    user_doc = await table.find_one(
        filter={"userid": str(user_id)}, projection=PUBLIC_PROJECTION
    )
    if not user_doc:
        return None
    return User.model_validate(user_doc)


async def get_user_by_username(
    username: str, db_table: Optional[AstraDBCollection] = None
) -> Optional[User]:
    table = await _users(db_table)
    user_doc = await table.find_one(
        filter={"username": username.strip().lower()}, projection=PUBLIC_PROJECTION
    )
    if not user_doc:
        return None
    return User.model_validate(user_doc)


async def get_users_by_ids(
    user_ids: List[UUID],
    db_table: Optional[AstraDBCollection] = None,
) -> Dict[UUID, User]:
    """Return a mapping {user_id → User} for the supplied IDs."""

    if not user_ids:
        return {}

    table = await _users(db_table)
    docs = await find_by_ids(table, "userid", user_ids, projection=PUBLIC_PROJECTION)
    return {UUID(d["userid"]): User.model_validate(d) for d in docs}


async def get_owner_summaries(
    user_ids: List[UUID],
    db_table: Optional[AstraDBCollection] = None,
) -> Dict[UUID, OwnerSummary]:
    users = await get_users_by_ids(user_ids, db_table=db_table)
    return {uid: user.summary() for uid, user in users.items()}


# ---------------------------------------------------------------------------
# Username / email reservations
# ---------------------------------------------------------------------------


def identity_document_id(kind: str, value: str) -> str:
    return f"{kind}:{value.lower()}"


async def reserve_identity(
    kind: str,
    value: str,
    user_id: UUID,
    identity_table: Optional[AstraDBCollection] = None,
) -> bool:
    """Claim a username or email for *user_id*.

    The reservation ``_id`` is derived from the value, so of two concurrent
    claims only one insert succeeds.  Returns ``False`` when another user
    holds the value.
    """

    table = await _identities(identity_table)
    doc_id = identity_document_id(kind, value)
    try:
        await table.insert_one(
            {"_id": doc_id, "userid": str(user_id), "created_at": utc_now().isoformat()}
        )
    except DataAPIResponseException as exc:
        if not is_duplicate_key_error(exc):
            raise
        holder = await table.find_one(filter={"_id": doc_id}, projection={"userid": 1})
        return holder is not None and holder.get("userid") == str(user_id)
    return True


async def release_identity(
    kind: str,
    value: str,
    user_id: UUID,
    identity_table: Optional[AstraDBCollection] = None,
) -> None:
    table = await _identities(identity_table)
    await table.delete_one(
        filter={"_id": identity_document_id(kind, value), "userid": str(user_id)}
    )


# ---------------------------------------------------------------------------
# Registration & authentication
# ---------------------------------------------------------------------------


async def register_user(
    user_in: UserCreateRequest,
    avatar: UploadFile,
    cover_image: Optional[UploadFile] = None,
    db_table: Optional[AstraDBCollection] = None,
    identity_table: Optional[AstraDBCollection] = None,
) -> User:
    """Create a user after uploading their avatar (and optional cover image).

    The username and email are reserved first and released again, together
    with any uploaded assets, if the user document cannot be written.
    """

    table = await _users(db_table)
    identities = await _identities(identity_table)

    user_id = uuid4()
    username = user_in.username.lower()
    email = user_in.email.lower()

    if not await reserve_identity("username", username, user_id, identity_table=identities):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User with email or username already exists",
        )
    if not await reserve_identity("email", email, user_id, identity_table=identities):
        await release_identity("username", username, user_id, identity_table=identities)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User with email or username already exists",
        )

    try:
        user = await _create_user_document(user_in, user_id, avatar, cover_image, table)
    except Exception:
        await release_identity("username", username, user_id, identity_table=identities)
        await release_identity("email", email, user_id, identity_table=identities)
        raise

    logger.info("Registered user %s (%s)", user_id, username)
    return user


async def _create_user_document(
    user_in: UserCreateRequest,
    user_id: UUID,
    avatar: UploadFile,
    cover_image: Optional[UploadFile],
    table: AstraDBCollection,
) -> User:
    avatar_media = await media_service.upload_file(avatar, "image", "avatar")
    cover_media = None
    if cover_image is not None:
        try:
            cover_media = await media_service.upload_file(cover_image, "image", "coverImage")
        except HTTPException:
            await media_service.discard_media(avatar_media.public_id, "image")
            raise

    now = utc_now()
    user_document: Dict[str, Any] = {
        "_id": user_id,
        "userid": user_id,
        "username": user_in.username.lower(),
        "email": user_in.email.lower(),
        "full_name": user_in.full_name,
        "avatar": avatar_media.url,
        "avatar_public_id": avatar_media.public_id,
        "cover_image": cover_media.url if cover_media else None,
        "cover_image_public_id": cover_media.public_id if cover_media else None,
        "password": get_password_hash(user_in.password),
        "refresh_token": None,
        "watch_history": [],
        "created_at": now,
        "updated_at": now,
    }

    try:
        await table.insert_one(to_db_doc(user_document))
    except Exception:
        logger.error("Failed to persist user %s; removing uploaded images", user_id)
        await media_service.discard_media(avatar_media.public_id, "image")
        if cover_media is not None:
            await media_service.discard_media(cover_media.public_id, "image")
        raise

    return User.model_validate(to_db_doc(user_document))


async def authenticate_user(
    password: str,
    username: Optional[str] = None,
    email: Optional[str] = None,
    db_table: Optional[AstraDBCollection] = None,
) -> Optional[User]:
    table = await _users(db_table)
    query_filter = (
        {"email": email.lower()} if email else {"username": (username or "").lower()}
    )
    user_doc = await table.find_one(filter=query_filter)

    if not user_doc or not user_doc.get("password"):
        return None
    if not verify_password(password, user_doc["password"]):
        return None
    return User.model_validate(user_doc)


async def issue_tokens(
    user_id: UUID, db_table: Optional[AstraDBCollection] = None
) -> TokenPair:
    """Mint an access/refresh pair and persist the refresh token for rotation."""

    table = await _users(db_table)
    tokens = TokenPair(
        accessToken=create_access_token(subject=user_id),
        refreshToken=create_refresh_token(subject=user_id),
    )
    await table.update_one(
        filter={"userid": str(user_id)},
        update={"$set": {"refresh_token": tokens.refreshToken}},
    )
    return tokens


async def login_user(
    request: UserLoginRequest, db_table: Optional[AstraDBCollection] = None
) -> UserLoginResponse:
    table = await _users(db_table)
    user = await authenticate_user(
        request.password,
        username=request.username,
        email=request.email,
        db_table=table,
    )
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    tokens = await issue_tokens(user.userid, db_table=table)
    logger.debug("User %s logged in", user.userid)
    return UserLoginResponse(
        user=user, accessToken=tokens.accessToken, refreshToken=tokens.refreshToken
    )


async def logout_user(user_id: UUID, db_table: Optional[AstraDBCollection] = None) -> None:
    table = await _users(db_table)
    await table.update_one(
        filter={"userid": str(user_id)},
        update={"$unset": {"refresh_token": ""}},
    )


async def refresh_tokens(
    refresh_token: Optional[str], db_table: Optional[AstraDBCollection] = None
) -> TokenPair:
    if not refresh_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized request"
        )

    try:
        payload = decode_refresh_token(refresh_token)
        user_id = UUID(str(payload.sub))
    except (JWTError, ValidationError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token"
        )

    table = await _users(db_table)
    user_doc = await get_user_document(user_id, db_table=table)
    if not user_doc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token"
        )
    if user_doc.get("refresh_token") != refresh_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token is expired or used",
        )

    return await issue_tokens(user_id, db_table=table)


# ---------------------------------------------------------------------------
# Account management
# ---------------------------------------------------------------------------


async def change_password(
    user_id: UUID,
    request: PasswordChangeRequest,
    db_table: Optional[AstraDBCollection] = None,
) -> None:
    table = await _users(db_table)
    user_doc = await get_user_document(user_id, db_table=table)
    if not user_doc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    if not verify_password(request.oldPassword, user_doc["password"]):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid old password"
        )

    await table.update_one(
        filter={"userid": str(user_id)},
        update={
            "$set": {
                "password": get_password_hash(request.newPassword),
                "updated_at": utc_now().isoformat(),
            }
        },
    )


async def update_account(
    user_id: UUID,
    update_data: UserAccountUpdateRequest,
    db_table: Optional[AstraDBCollection] = None,
    identity_table: Optional[AstraDBCollection] = None,
) -> User:
    table = await _users(db_table)

    update_fields = update_data.model_dump(exclude_unset=True, exclude_none=True, by_alias=False)
    if not update_fields:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="At least one of fullName or email is required",
        )

    identities = None
    new_email: Optional[str] = None
    old_email: Optional[str] = None
    if "email" in update_fields:
        update_fields["email"] = update_fields["email"].lower()
        user_doc = await get_user_document(user_id, db_table=table)
        if not user_doc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
        if user_doc.get("email") != update_fields["email"]:
            identities = await _identities(identity_table)
            if not await reserve_identity(
                "email", update_fields["email"], user_id, identity_table=identities
            ):
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT, detail="Email already in use"
                )
            new_email = update_fields["email"]
            old_email = user_doc.get("email")

    update_fields["updated_at"] = utc_now()
    try:
        await table.update_one(
            filter={"userid": str(user_id)}, update={"$set": to_db_doc(update_fields)}
        )
    except Exception:
        if new_email:
            await release_identity("email", new_email, user_id, identity_table=identities)
        raise
    if old_email:
        await release_identity("email", old_email, user_id, identity_table=identities)

    updated_user = await get_user_by_id(user_id, db_table=table)
    if updated_user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return updated_user


async def update_user_image(
    user_id: UUID,
    upload: UploadFile,
    field: str,
    db_table: Optional[AstraDBCollection] = None,
) -> User:
    """Replace the avatar or cover image, deleting the previous asset afterwards."""

    url_field, public_id_field = _IMAGE_FIELDS[field]
    table = await _users(db_table)

    user_doc = await get_user_document(user_id, db_table=table)
    if not user_doc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    previous_public_id = user_doc.get(public_id_field)

    media = await media_service.upload_file(upload, "image", field)
    try:
        await table.update_one(
            filter={"userid": str(user_id)},
            update={
                "$set": {
                    url_field: media.url,
                    public_id_field: media.public_id,
                    "updated_at": utc_now().isoformat(),
                }
            },
        )
    except Exception:
        logger.error("Failed to store new %s for user %s; removing uploaded image", field, user_id)
        await media_service.discard_media(media.public_id, "image")
        raise

    await media_service.discard_media(previous_public_id, "image")

    updated_user = await get_user_by_id(user_id, db_table=table)
    if updated_user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return updated_user


# ---------------------------------------------------------------------------
# Channel profile
# ---------------------------------------------------------------------------


async def get_channel_profile(
    username: str,
    viewer_id: Optional[UUID] = None,
    db_table: Optional[AstraDBCollection] = None,
) -> ChannelProfile:
    from vidtube.services import subscription_service

    channel = await get_user_by_username(username, db_table=db_table)
    if channel is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Channel does not exist"
        )

    subscribers = await subscription_service.count_subscribers(channel.userid)
    subscribed_to = await subscription_service.count_subscriptions(channel.userid)
    is_subscribed = False
    if viewer_id is not None:
        is_subscribed = await subscription_service.is_subscribed(viewer_id, channel.userid)

    return ChannelProfile(
        userid=channel.userid,
        username=channel.username,
        full_name=channel.full_name,
        avatar=channel.avatar,
        email=channel.email,
        cover_image=channel.cover_image,
        created_at=channel.created_at,
        subscribers_count=subscribers,
        channels_subscribed_to_count=subscribed_to,
        is_subscribed=is_subscribed,
    )


# ---------------------------------------------------------------------------
# Watch history
# ---------------------------------------------------------------------------


async def add_to_watch_history(
    user_id: UUID, video_id: UUID, db_table: Optional[AstraDBCollection] = None
) -> None:
    table = await _users(db_table)
    await table.update_one(
        filter={"userid": str(user_id)},
        update={"$addToSet": {"watch_history": str(video_id)}},
    )


async def get_watch_history(user: User) -> List[VideoSummary]:
    """Watched videos, most recent first, each with its owner summary."""

    from vidtube.services import video_service

    video_ids = list(reversed(user.watch_history))
    videos = await video_service.get_videos_by_ids(video_ids)

    visible = [
        videos[vid]
        for vid in video_ids
        if vid in videos and (videos[vid].is_published or videos[vid].userid == user.userid)
    ]
    owners = await get_owner_summaries([v.userid for v in visible])
    return [
        VideoSummary(**v.model_dump(by_alias=False), owner=owners.get(v.userid))
        for v in visible
    ]


async def remove_video_from_watch_histories(
    video_id: UUID, db_table: Optional[AstraDBCollection] = None
) -> int:
    """Drop *video_id* from every user's watch history; returns users touched.

    The Data API has no ``$pull`` so each affected array is rewritten.
    """

    table = await _users(db_table)
    target = str(video_id)
    docs = await fetch_all(
        table.find(
            filter={"watch_history": {"$all": [target]}},
            projection={"userid": 1, "watch_history": 1},
        )
    )
    for doc in docs:
        remaining = [v for v in doc.get("watch_history", []) if v != target]
        await table.update_one(
            filter={"userid": doc["userid"]},
            update={"$set": {"watch_history": remaining}},
        )
    return len(docs)
