from prometheus_client import Histogram

# ---------------------------------------------------------------------------
# Custom Prometheus metrics – exported via /metrics route exposed by
# prometheus_fastapi_instrumentator in vidtube.utils.observability.configure_observability().
# ---------------------------------------------------------------------------

ASTRA_DB_QUERY_DURATION_SECONDS = Histogram(
    "astra_db_query_duration_seconds",
    "Latency of Astra DB Data API queries (seconds)",
    ["operation"],
)

MEDIA_STORAGE_DURATION_SECONDS = Histogram(
    "media_storage_duration_seconds",
    "Latency of media host upload/delete calls (seconds)",
    ["operation"],
)

VIDEO_CASCADE_DELETE_DURATION_SECONDS = Histogram(
    "video_cascade_delete_duration_seconds",
    "Latency of deleting a video together with its comments, likes and assets (seconds)",
)
