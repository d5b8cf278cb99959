"""Connection management for the Astra Data API document store.

A single ``AsyncDatabase`` handle is created lazily and shared by every service
module.  Services obtain collections through :func:`get_collection`; unit tests
either patch that coroutine or pass mock collections explicitly.
"""

import logging
from typing import Optional

import httpx
from astrapy import DataAPIClient, AsyncCollection, AsyncDatabase
from httpcore import ConnectError as HttpcoreConnectError

from vidtube.core.config import settings

logger = logging.getLogger(__name__)

USERS_COLLECTION = "users"
VIDEOS_COLLECTION = "videos"
COMMENTS_COLLECTION = "comments"
TWEETS_COLLECTION = "tweets"
LIKES_COLLECTION = "likes"
SUBSCRIPTIONS_COLLECTION = "subscriptions"
# One document per claimed username or email, keyed by the claimed value
USER_IDENTITIES_COLLECTION = "user_identities"

ALL_COLLECTIONS = (
    USERS_COLLECTION,
    VIDEOS_COLLECTION,
    COMMENTS_COLLECTION,
    TWEETS_COLLECTION,
    LIKES_COLLECTION,
    SUBSCRIPTIONS_COLLECTION,
    USER_IDENTITIES_COLLECTION,
)

# Re-exported so services and tests can type-annotate without importing astrapy
AstraDBCollection = AsyncCollection

db_instance: Optional[AsyncDatabase] = None


async def init_astra_db() -> AsyncDatabase:
    global db_instance
    if not all(
        [
            settings.ASTRA_DB_API_ENDPOINT,
            settings.ASTRA_DB_APPLICATION_TOKEN,
            settings.ASTRA_DB_KEYSPACE,
        ]
    ):
        logger.error(
            "AstraDB settings are not fully configured. Please check ASTRA_DB_API_ENDPOINT, ASTRA_DB_APPLICATION_TOKEN, and ASTRA_DB_KEYSPACE."
        )
        raise ValueError("AstraDB settings are not fully configured.")

    try:
        logger.info(
            f"Initializing AstraDB client for keyspace: {settings.ASTRA_DB_KEYSPACE} at {settings.ASTRA_DB_API_ENDPOINT[:30]}..."
        )  # Log only part of endpoint
        client = DataAPIClient()
        db_instance = client.get_async_database(
            settings.ASTRA_DB_API_ENDPOINT,
            token=settings.ASTRA_DB_APPLICATION_TOKEN,
            keyspace=settings.ASTRA_DB_KEYSPACE,
        )
        logger.info("AstraDB client initialized successfully.")
    except (httpx.ConnectError, HttpcoreConnectError, ConnectionError) as e:
        logger.error(
            "Unable to establish connection to AstraDB – check API endpoint/token."
        )
        logger.debug("Connection error details: %s", e)
        raise
    except Exception as e:
        logger.error("Failed to initialize AstraDB client: %s", e, exc_info=True)
        raise

    return db_instance


async def get_astra_db() -> AsyncDatabase:
    global db_instance
    if db_instance is None:
        logger.info("AstraDB instance not found, attempting to initialize...")
        await init_astra_db()
        if db_instance is None:
            raise RuntimeError("AstraDB could not be initialized.")
    return db_instance


async def get_collection(collection_name: str) -> AstraDBCollection:
    db = await get_astra_db()
    return db.get_collection(collection_name)


async def ensure_collections() -> list[str]:
    """Create any application collection missing from the keyspace.

    Returns the names that were created.
    """

    db = await get_astra_db()
    existing = set(await db.list_collection_names())
    created: list[str] = []
    for name in ALL_COLLECTIONS:
        if name in existing:
            continue
        logger.info("Creating missing collection '%s'", name)
        await db.create_collection(name)
        created.append(name)
    return created
