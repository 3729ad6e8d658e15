"""
Metrics instrumentation for observability.
Counters live in the default prometheus_client registry so a host
application can expose them next to its own.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

# Transport metrics
api_requests = Counter(
    'timeleft_api_requests_total',
    'Outbound API requests',
    ['method', 'outcome']  # success, error, unauthorized, timeout, network
)

api_request_latency = Histogram(
    'timeleft_api_request_latency_seconds',
    'Outbound API request latency',
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 20.0]
)

# Event list fetch metrics
events_fetch_attempts = Counter(
    'timeleft_events_fetch_attempts_total',
    'Event list fetch attempts',
    ['result']  # success, failure
)

# Session metrics
session_invalidations = Counter(
    'timeleft_session_invalidations_total',
    'Sessions cleared because the server rejected the credential'
)

# Repository metrics
repository_errors = Counter(
    'timeleft_repository_errors_total',
    'Errors published to a repository error slot',
    ['repository', 'operation']
)


def render_metrics() -> tuple[bytes, str]:
    """Return the exposition payload and its content type."""
    return generate_latest(), CONTENT_TYPE_LATEST


# Convenience functions for instrumentation
def record_api_request(method: str, outcome: str, duration_seconds: float):
    api_requests.labels(method=method, outcome=outcome).inc()
    api_request_latency.observe(duration_seconds)

def record_fetch_attempt(success: bool):
    result = "success" if success else "failure"
    events_fetch_attempts.labels(result=result).inc()

def record_session_invalidation():
    session_invalidations.inc()

def record_repository_error(repository: str, operation: str):
    repository_errors.labels(repository=repository, operation=operation).inc()
