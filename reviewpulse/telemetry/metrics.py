"""OpenTelemetry metrics instrumentation helpers."""

from __future__ import annotations

import logging

from opentelemetry import metrics
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import ConsoleMetricExporter, PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource

from reviewpulse.core.config import settings

_logger = logging.getLogger(__name__)

_metrics_enabled = False
_provider: MeterProvider | None = None
_aggregation_duration_hist = None
_cache_lookup_counter = None
_admission_denied_counter = None
_review_failure_counter = None


def configure_metrics() -> None:
    """Initialise the metrics provider if enabled via settings."""

    global _metrics_enabled, _provider, _aggregation_duration_hist, _cache_lookup_counter
    global _admission_denied_counter, _review_failure_counter

    if not settings.otel_enabled:
        return
    if _metrics_enabled:
        return

    exporter_name = settings.otel_exporter.lower().strip()
    metric_readers = []

    if exporter_name == "console":
        metric_readers.append(PeriodicExportingMetricReader(ConsoleMetricExporter()))
    elif exporter_name == "prometheus":
        try:
            from opentelemetry.exporter.prometheus import PrometheusMetricReader  # type: ignore
            from prometheus_client import start_http_server  # type: ignore
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise RuntimeError(
                "Prometheus exporter selected but opentelemetry-exporter-prometheus is not installed."
            ) from exc
        start_http_server(settings.otel_prometheus_port)
        metric_readers.append(PrometheusMetricReader())
    elif exporter_name == "otlp":
        try:
            from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter  # type: ignore
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise RuntimeError(
                "OTLP exporter selected but opentelemetry-exporter-otlp is not installed."
            ) from exc
        endpoint = settings.otel_otlp_endpoint
        exporter = OTLPMetricExporter(endpoint=endpoint) if endpoint else OTLPMetricExporter()
        metric_readers.append(PeriodicExportingMetricReader(exporter))
    else:
        _logger.warning("Unsupported OTEL exporter '%s'; defaulting to console", exporter_name)
        metric_readers.append(PeriodicExportingMetricReader(ConsoleMetricExporter()))

    _provider = MeterProvider(metric_readers=metric_readers, resource=Resource.create({"service.name": "reviewpulse"}))
    metrics.set_meter_provider(_provider)
    meter = metrics.get_meter("reviewpulse")
    _aggregation_duration_hist = meter.create_histogram(
        name="reviewpulse.aggregation.duration",
        unit="s",
        description="Live aggregation duration in seconds",
    )
    _cache_lookup_counter = meter.create_counter(
        name="reviewpulse.cache.lookups",
        unit="1",
        description="Cache lookups, labelled by hit or miss",
    )
    _admission_denied_counter = meter.create_counter(
        name="reviewpulse.admission.denied",
        unit="1",
        description="Requests rejected by the admission controller",
    )
    _review_failure_counter = meter.create_counter(
        name="reviewpulse.reviews.fetch_failures",
        unit="1",
        description="Review fetches that degraded to an empty list",
    )
    _metrics_enabled = True


def record_aggregation_duration(seconds: float) -> None:
    if _metrics_enabled and _aggregation_duration_hist is not None:
        _aggregation_duration_hist.record(max(seconds, 0.0))


def record_cache_lookup(hit: bool) -> None:
    if _metrics_enabled and _cache_lookup_counter is not None:
        _cache_lookup_counter.add(1, {"result": "hit" if hit else "miss"})


def record_admission_denied() -> None:
    if _metrics_enabled and _admission_denied_counter is not None:
        _admission_denied_counter.add(1)


def record_review_fetch_failure() -> None:
    if _metrics_enabled and _review_failure_counter is not None:
        _review_failure_counter.add(1)


def shutdown_metrics() -> None:
    global _metrics_enabled, _provider
    if _metrics_enabled and _provider is not None:
        try:
            _provider.shutdown()
        except Exception:  # pragma: no cover - defensive
            _logger.exception("Failed to shutdown metrics provider")
        finally:
            _metrics_enabled = False
            _provider = None
