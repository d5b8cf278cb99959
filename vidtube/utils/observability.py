# Observability wiring: Prometheus metrics exposition, OpenTelemetry traces
# and structured log shipping.
#
# main.py calls configure_observability() once the app is assembled.  Each
# integration is best effort: an unreachable collector or a bad setting is
# logged as a warning and the API keeps serving requests.

from __future__ import annotations

import logging
import pathlib
import time
from logging.handlers import RotatingFileHandler
from typing import Dict

import logging_loki
from fastapi import FastAPI
from opentelemetry import metrics, trace
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased
from prometheus_fastapi_instrumentator import Instrumentator
from pythonjsonlogger import jsonlogger

from vidtube.core.config import settings

_logger = logging.getLogger(__name__)

LOG_FILE_NAME = "vidtube.log"


def get_json_formatter() -> logging.Formatter:
    """JSON formatter carrying OTEL trace/span ids for log correlation."""

    fmt_keys = [
        "asctime",
        "levelname",
        "name",
        "message",
        "trace_id",
        "span_id",
    ]
    return jsonlogger.JsonFormatter(" ".join([f"%({k})s" for k in fmt_keys]))


def _service_resource_attributes() -> Dict[str, str]:
    return {
        "service.name": settings.PROJECT_NAME,
        "service.version": settings.APP_VERSION,
        "deployment.environment": settings.ENVIRONMENT,
    }


def _parse_pairs(raw: str | None) -> dict[str, str]:
    """Parse ``k1=v1,k2=v2`` strings used for OTLP headers and Loki labels."""

    pairs: dict[str, str] = {}
    if not raw:
        return pairs
    for pair in raw.split(","):
        if "=" in pair:
            k, v = pair.split("=", 1)
            pairs[k.strip()] = v.strip()
    return pairs


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def configure_observability(app: FastAPI) -> None:
    """Initialise metrics, tracing and log shipping.

    Safe to call more than once; every integration is applied only once per
    process.
    """

    if not settings.OBSERVABILITY_ENABLED:
        _logger.info("Observability explicitly disabled via settings")
        return

    _setup_prometheus(app)
    _setup_opentelemetry(app)
    _setup_log_shipping()

    # Patch the collection class last so the DB histogram is registered
    from vidtube.utils.db_instrumentation import instrument_astra_collection

    instrument_astra_collection()


# ---------------------------------------------------------------------------
# Prometheus – latency histogram per route via prometheus-fastapi-instrumentator
# ---------------------------------------------------------------------------

_prometheus_instrumented = False


def _setup_prometheus(app: FastAPI) -> None:
    global _prometheus_instrumented
    if _prometheus_instrumented:
        return

    start_time = time.perf_counter()
    Instrumentator().instrument(app).expose(app, include_in_schema=False, should_gzip=True)
    _prometheus_instrumented = True
    _logger.info(
        "Prometheus instrumentation initialised in %.2f ms",
        (time.perf_counter() - start_time) * 1000,
    )


# ---------------------------------------------------------------------------
# OpenTelemetry – traces + optional OTLP metric export
# ---------------------------------------------------------------------------

_otel_instrumented = False


def _otlp_exporters(proto: str):
    if proto == "http":
        from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
    else:
        from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
    return OTLPSpanExporter, OTLPMetricExporter


def _setup_opentelemetry(app: FastAPI) -> None:
    global _otel_instrumented
    if _otel_instrumented or not settings.OTEL_TRACES_ENABLED:
        return

    if not settings.OTEL_EXPORTER_OTLP_ENDPOINT:
        _logger.info("OTEL_TRACES_ENABLED but no OTEL_EXPORTER_OTLP_ENDPOINT set, skipping")
        return

    proto = (settings.OTEL_EXPORTER_OTLP_PROTOCOL or "grpc").lower()
    if proto not in ("grpc", "http"):
        _logger.warning("Unsupported OTLP protocol '%s', skipping tracing setup", proto)
        return

    try:
        started = time.perf_counter()
        resource = Resource.create(_service_resource_attributes())
        provider = TracerProvider(
            resource=resource,
            sampler=TraceIdRatioBased(settings.OTEL_TRACES_SAMPLER_RATIO),
        )
        trace.set_tracer_provider(provider)

        span_exporter_cls, metric_exporter_cls = _otlp_exporters(proto)
        headers = _parse_pairs(settings.OTEL_EXPORTER_OTLP_HEADERS) or None

        provider.add_span_processor(
            BatchSpanProcessor(
                span_exporter_cls(
                    endpoint=settings.OTEL_EXPORTER_OTLP_ENDPOINT,
                    insecure=True,
                    headers=headers,
                )
            )
        )

        FastAPIInstrumentor().instrument_app(app, tracer_provider=provider)
        LoggingInstrumentor().instrument(set_logging_format=True)

        if settings.OTEL_METRICS_ENABLED:
            reader = PeriodicExportingMetricReader(
                metric_exporter_cls(
                    endpoint=settings.OTEL_EXPORTER_OTLP_ENDPOINT,
                    insecure=True,
                    headers=headers,
                )
            )
            metrics.set_meter_provider(
                MeterProvider(resource=resource, metric_readers=[reader])
            )

        _otel_instrumented = True
        _logger.info(
            "OpenTelemetry tracing initialised (%.2f ms)",
            (time.perf_counter() - started) * 1000,
        )
    except Exception as exc:  # pragma: no cover
        _logger.warning("Failed to initialise OpenTelemetry tracing: %s", exc)


# ---------------------------------------------------------------------------
# Loki or rotating file handler
# ---------------------------------------------------------------------------

_log_handler_added = False


def _setup_log_shipping() -> None:
    global _log_handler_added
    if _log_handler_added:
        return

    root_logger = logging.getLogger()

    if settings.LOKI_ENABLED and settings.LOKI_ENDPOINT:
        tags = {"service": settings.PROJECT_NAME, "environment": settings.ENVIRONMENT}
        tags.update(_parse_pairs(settings.LOKI_EXTRA_LABELS))

        handler: logging.Handler = logging_loki.LokiHandler(
            url=settings.LOKI_ENDPOINT,
            tags=tags,
            version="1",
        )
        handler.setFormatter(get_json_formatter())
        root_logger.addHandler(handler)
        _log_handler_added = True
        _logger.info("Loki logging handler attached (endpoint=%s)", settings.LOKI_ENDPOINT)
        return

    try:
        log_dir = pathlib.Path(settings.LOG_DIR)
        log_dir.mkdir(parents=True, exist_ok=True)
        file_path = log_dir / LOG_FILE_NAME

        handler = RotatingFileHandler(file_path, maxBytes=5 * 1024 * 1024, backupCount=5)
        handler.setFormatter(get_json_formatter())
        root_logger.addHandler(handler)
        _log_handler_added = True
        _logger.info("File logging handler attached (%s)", file_path)
    except OSError as exc:
        _logger.warning("Failed to attach file logging handler: %s", exc)
