"""Runtime patching helpers to instrument Data API collection calls.

``instrument_astra_collection()`` is invoked from
``vidtube.utils.observability`` during start-up; afterwards every wrapped
collection method is surrounded by an OpenTelemetry span and a Prometheus
histogram sample, without touching the individual call sites in the services.
"""
from __future__ import annotations

import functools
import time
from typing import Any, Awaitable

from opentelemetry import trace

from vidtube.db.astra_client import AstraDBCollection
from vidtube.metrics import ASTRA_DB_QUERY_DURATION_SECONDS

_tracer = trace.get_tracer(__name__)

# method name -> operation label
INSTRUMENTED_METHODS = {
    "insert_one": "insert",
    "find_one": "find_one",
    "update_one": "update",
    "update_many": "update_many",
    "delete_one": "delete",
    "delete_many": "delete_many",
    "count_documents": "count",
}


async def _observe(op: str, coro: Awaitable[Any]):
    """Await *coro* while recording span + histogram for DB *op*."""

    start = time.perf_counter()
    with _tracer.start_as_current_span(f"astra.{op}") as span:
        try:
            return await coro
        finally:
            duration = time.perf_counter() - start
            ASTRA_DB_QUERY_DURATION_SECONDS.labels(operation=op).observe(duration)
            span.set_attribute("duration_ms", int(duration * 1000))


def _wrap(original, op: str):
    @functools.wraps(original)
    async def _wrapped(self, *args, **kwargs):
        return await _observe(op, original(self, *args, **kwargs))

    return _wrapped


def instrument_astra_collection() -> None:
    """Monkey-patch the collection class once per process."""

    if getattr(AstraDBCollection, "_vidtube_instrumented", False):
        return

    for method_name, op in INSTRUMENTED_METHODS.items():
        original = getattr(AstraDBCollection, method_name, None)
        if original is not None:
            setattr(AstraDBCollection, method_name, _wrap(original, op))

    AstraDBCollection._vidtube_instrumented = True  # type: ignore[attr-defined]
