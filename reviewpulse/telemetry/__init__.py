"""Telemetry utilities for exporting service metrics."""

from .metrics import (
    configure_metrics,
    record_admission_denied,
    record_aggregation_duration,
    record_cache_lookup,
    record_review_fetch_failure,
    shutdown_metrics,
)

__all__ = [
    "configure_metrics",
    "record_admission_denied",
    "record_aggregation_duration",
    "record_cache_lookup",
    "record_review_fetch_failure",
    "shutdown_metrics",
]
