"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Booking metrics
booking_attempts = Counter(
    'booking_attempts_total',
    'Total booking create attempts',
    ['result']  # admitted, conflict, error
)

booking_latency = Histogram(
    'booking_latency_seconds',
    'Booking create latency (conflict check + insert)',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

booking_retries = Counter(
    'booking_retry_attempts_total',
    'Booking create retries due to facility version conflicts'
)

# Lifecycle metrics
lifecycle_transitions = Counter(
    'lifecycle_transitions_total',
    'State machine transitions',
    ['entity', 'to_status']  # booking/ticket, target status
)

invalid_transitions = Counter(
    'invalid_transitions_total',
    'Rejected state machine transitions',
    ['entity']
)

# Notification metrics
notifications_emitted = Counter(
    'notifications_emitted_total',
    'Notifications dispatched',
    ['type']
)

notification_failures = Counter(
    'notification_dispatch_failures_total',
    'Notification dispatches that failed and were dropped'
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_booking_attempt(result: str):
    """Record booking attempt. Result: admitted, conflict, error"""
    booking_attempts.labels(result=result).inc()


def record_transition(entity: str, to_status: str):
    lifecycle_transitions.labels(entity=entity, to_status=to_status).inc()


def record_invalid_transition(entity: str):
    invalid_transitions.labels(entity=entity).inc()


def record_notification(notification_type: str, ok: bool = True):
    if ok:
        notifications_emitted.labels(type=notification_type).inc()
    else:
        notification_failures.inc()


def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
