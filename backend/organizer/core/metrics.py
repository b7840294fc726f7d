"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Favorites metrics
favorite_toggles = Counter(
    'favorite_toggles_total',
    'Favorite toggle attempts',
    ['action', 'result']  # add/remove, ok/created/noop/error
)

# Store metrics
store_operations = Counter(
    'store_operations_total',
    'Document store operations',
    ['operation', 'result']  # get/add/set/update/delete, ok/not_found/error
)

store_retries = Counter(
    'store_retry_attempts_total',
    'Document store retry attempts due to concurrent modification'
)

store_latency = Histogram(
    'store_operation_latency_seconds',
    'Document store operation latency',
    ['operation'],
    buckets=[0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

# Live feed metrics
feed_snapshots = Counter(
    'feed_snapshots_total',
    'Snapshots delivered by live feeds',
    ['feed']  # events, preferences
)

feed_rejected_documents = Counter(
    'feed_rejected_documents_total',
    'Documents dropped because they failed schema validation',
    ['feed']
)

active_subscriptions = Gauge(
    'active_subscriptions',
    'Number of open live subscriptions'
)

# Validation metrics
validation_failures = Counter(
    'event_validation_failures_total',
    'Event form validation failures',
    ['kind']
)


def metrics_endpoint() -> Response:
    """
    Prometheus metrics endpoint.

    Usage:
        @app.get("/metrics")
        def metrics():
            return metrics_endpoint()
    """
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_favorite_toggle(action: str, result: str):
    """Record favorite toggle. Action: add, remove. Result: ok, created, noop, error"""
    favorite_toggles.labels(action=action, result=result).inc()


def record_store_operation(operation: str, result: str):
    """Record store operation. Result: ok, not_found, error"""
    store_operations.labels(operation=operation, result=result).inc()


def record_feed_snapshot(feed: str, rejected: int = 0):
    """Record a delivered snapshot and how many of its documents were dropped."""
    feed_snapshots.labels(feed=feed).inc()
    if rejected:
        feed_rejected_documents.labels(feed=feed).inc(rejected)


def record_validation_failure(kind: str):
    validation_failures.labels(kind=kind).inc()


# HTTP metrics
request_latency = Histogram(
    'http_request_latency_seconds',
    'HTTP request latency',
    ['method', 'status'],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)
