import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from vidtube.db import astra_client


@pytest.fixture(autouse=True)
def reset_db_instance():
    astra_client.db_instance = None
    yield
    astra_client.db_instance = None


@pytest.mark.asyncio
async def test_init_astra_db_success():
    mock_db = MagicMock()
    with patch("vidtube.db.astra_client.DataAPIClient") as mock_client_cls:
        mock_client_cls.return_value.get_async_database.return_value = mock_db
        db = await astra_client.init_astra_db()

    assert db is mock_db
    assert astra_client.db_instance is mock_db
    mock_client_cls.return_value.get_async_database.assert_called_once()
    _, kwargs = mock_client_cls.return_value.get_async_database.call_args
    assert kwargs["keyspace"] == astra_client.settings.ASTRA_DB_KEYSPACE


@pytest.mark.asyncio
async def test_init_astra_db_missing_settings(monkeypatch):
    monkeypatch.setattr(astra_client.settings, "ASTRA_DB_APPLICATION_TOKEN", "")
    with pytest.raises(ValueError, match="not fully configured"):
        await astra_client.init_astra_db()


@pytest.mark.asyncio
async def test_get_collection_initialises_lazily():
    mock_db = MagicMock()
    mock_db.get_collection.return_value = "videos-collection"
    with patch(
        "vidtube.db.astra_client.init_astra_db", new_callable=AsyncMock
    ) as mock_init:

        async def _init():
            astra_client.db_instance = mock_db
            return mock_db

        mock_init.side_effect = _init
        collection = await astra_client.get_collection(astra_client.VIDEOS_COLLECTION)

    assert collection == "videos-collection"
    mock_db.get_collection.assert_called_once_with("videos")


@pytest.mark.asyncio
async def test_ensure_collections_creates_only_missing():
    mock_db = MagicMock()
    mock_db.list_collection_names = AsyncMock(return_value=["users", "videos"])
    mock_db.create_collection = AsyncMock()
    astra_client.db_instance = mock_db

    created = await astra_client.ensure_collections()

    assert set(created) == set(astra_client.ALL_COLLECTIONS) - {"users", "videos"}
    assert mock_db.create_collection.await_count == len(created)
