"""Shared fixtures: sample users, mock Data API collections and an ASGI client."""

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from vidtube.api.v1.dependencies import get_current_user, get_current_user_optional
from vidtube.main import app
from vidtube.models.user import User


def _make_user(username: str) -> User:
    return User(
        userid=uuid4(),
        username=username,
        full_name=f"{username.capitalize()} Tester",
        email=f"{username}@example.com",
        avatar=f"https://res.cloudinary.com/demo/image/upload/{username}.png",
        created_at=datetime.now(timezone.utc),
    )


@pytest.fixture
def test_user() -> User:
    return _make_user("alice")


@pytest.fixture
def other_user() -> User:
    return _make_user("bob")


def make_cursor(docs: Iterable[Dict[str, Any]]) -> MagicMock:
    """Imitate an ``AsyncCollectionFindCursor`` yielding *docs*."""

    cursor = MagicMock()
    cursor.to_list = AsyncMock(return_value=list(docs))
    return cursor


@pytest.fixture
def cursor_factory():
    return make_cursor


@pytest.fixture
def mock_collection():
    """Factory for collection doubles exposing the async astrapy surface."""

    def _factory(
        find_docs: Optional[Iterable[Dict[str, Any]]] = None,
        find_one: Optional[Dict[str, Any]] = None,
        count: int = 0,
        deleted_count: int = 0,
    ) -> MagicMock:
        collection = MagicMock()
        collection.find = MagicMock(return_value=make_cursor(find_docs or []))
        collection.find_one = AsyncMock(return_value=find_one)
        collection.insert_one = AsyncMock()
        collection.update_one = AsyncMock()
        collection.update_many = AsyncMock()
        collection.delete_one = AsyncMock(return_value=MagicMock(deleted_count=deleted_count))
        collection.delete_many = AsyncMock(return_value=MagicMock(deleted_count=deleted_count))
        collection.count_documents = AsyncMock(return_value=count)
        return collection

    return _factory


@pytest_asyncio.fixture
async def client():
    # Startup events do not run under ASGITransport, so no DB connection is made
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def login_as(test_user: User):
    """Authenticate endpoint calls as the given user (default: ``test_user``)."""

    def _login(user: User = test_user) -> User:
        app.dependency_overrides[get_current_user] = lambda: user
        app.dependency_overrides[get_current_user_optional] = lambda: user
        return user

    yield _login
    app.dependency_overrides.clear()
