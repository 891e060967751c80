"""
Prometheus metrics for backfill runs.

Provides instrumentation for:
- Items processed by outcome
- Fetch/insert errors by category
- Payload volume
- Per-item processing time
"""

from prometheus_client import Counter, Histogram, start_http_server

items_processed_total = Counter(
    "appdata_backfill_items_total",
    "Total number of app data hashes processed",
    ["status"],  # status: success, error
)

errors_total = Counter(
    "appdata_backfill_errors_total",
    "Total number of item failures by category and step",
    ["step", "error_category"],  # step: ipfs_fetch, insert, cid
)

payload_bytes_total = Counter(
    "appdata_backfill_payload_bytes_total",
    "Total bytes of app data fetched from the gateway",
)

item_duration_seconds = Histogram(
    "appdata_backfill_item_duration_seconds",
    "Time spent fetching and inserting a single app data document",
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 4.0, 8.0, 16.0),
)


def record_success(payload_size: int, duration_seconds: float) -> None:
    items_processed_total.labels(status="success").inc()
    payload_bytes_total.inc(payload_size)
    item_duration_seconds.observe(duration_seconds)


def record_failure(step: str, error_category: str, duration_seconds: float) -> None:
    items_processed_total.labels(status="error").inc()
    errors_total.labels(step=step, error_category=error_category).inc()
    item_duration_seconds.observe(duration_seconds)


def start_metrics_server(port: int) -> None:
    """Expose /metrics on the given port. A port of 0 disables the server."""
    if port:
        start_http_server(port)
