"""Create the Data API collections the backend expects.

Usage (module mode)::

    python -m scripts.create_collections

Reads the ASTRA_DB_* settings from the environment / ``.env`` like the API
itself and only creates collections that are missing.
"""

import asyncio
import logging

from vidtube.db.astra_client import ALL_COLLECTIONS, ensure_collections

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")


async def _run() -> None:
    created = await ensure_collections()
    existing = [name for name in ALL_COLLECTIONS if name not in created]
    for name in created:
        logger.info("created   %s", name)
    for name in existing:
        logger.info("present   %s", name)


def main() -> None:
    asyncio.run(_run())


if __name__ == "__main__":
    main()
