"""Utility helpers shared by the service layer for talking to Data API
collections.

The Data API differs from a full MongoDB server in a few ways that every
service has to respect:

* ``countDocuments`` needs an upper bound and refuses to count past 1000
  documents; :func:`safe_count` saturates instead of failing.
* ``$in`` accepts at most 100 values; :func:`chunked` splits id lists.
* There is no ``$lookup``; joins happen client-side from id lists.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, TypeVar
from uuid import UUID

from astrapy.exceptions import DataAPIResponseException, TooManyDocumentsToCountException

from vidtube.core.config import settings

__all__ = [
    "IN_FILTER_MAX_VALUES",
    "safe_count",
    "fetch_all",
    "find_by_ids",
    "chunked",
    "serialize",
    "to_db_doc",
    "utc_now",
    "is_duplicate_key_error",
]

IN_FILTER_MAX_VALUES = 100

T = TypeVar("T")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def serialize(value: Any) -> Any:
    """Convert UUID/datetime values into JSON primitives for the Data API."""

    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [serialize(v) for v in value]
    return value


def to_db_doc(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {k: serialize(v) for k, v in payload.items()}


def chunked(values: Sequence[T], size: int = IN_FILTER_MAX_VALUES) -> Iterator[List[T]]:
    for start in range(0, len(values), size):
        yield list(values[start : start + size])


async def fetch_all(cursor) -> List[Dict[str, Any]]:
    """Drain an ``AsyncCollectionFindCursor`` into a list of documents."""

    return await cursor.to_list()


async def find_by_ids(
    collection,
    field: str,
    ids: Iterable[Any],
    *,
    projection: Optional[Dict[str, Any]] = None,
    extra_filter: Optional[Dict[str, Any]] = None,
) -> List[Dict[str, Any]]:
    """Fetch every document whose *field* is one of *ids*, in ``$in`` chunks."""

    unique_ids: List[str] = list(dict.fromkeys(str(i) for i in ids))
    docs: List[Dict[str, Any]] = []
    for chunk in chunked(unique_ids):
        query_filter: Dict[str, Any] = {field: {"$in": chunk}}
        if extra_filter:
            query_filter.update(extra_filter)
        find_kwargs: Dict[str, Any] = {"filter": query_filter}
        if projection is not None:
            find_kwargs["projection"] = projection
        docs.extend(await fetch_all(collection.find(**find_kwargs)))
    return docs


async def safe_count(
    collection,
    *,
    query_filter: Dict[str, Any],
    upper_bound: Optional[int] = None,
) -> int:
    """Return the number of documents matching *query_filter*.

    When more documents match than the Data API is willing to count the
    result saturates at *upper_bound* instead of raising.
    """

    bound = upper_bound or settings.COUNT_UPPER_BOUND
    try:
        return await collection.count_documents(filter=query_filter, upper_bound=bound)
    except TooManyDocumentsToCountException:
        return bound


def is_duplicate_key_error(exc: Exception) -> bool:
    """True when an insert was rejected because the ``_id`` already exists."""

    if not isinstance(exc, DataAPIResponseException):
        return False
    codes = {
        getattr(descriptor, "error_code", None)
        for descriptor in getattr(exc, "error_descriptors", None) or []
    }
    return "DOCUMENT_ALREADY_EXISTS" in codes or "DOCUMENT_ALREADY_EXISTS" in str(exc)
