"""Prometheus metric inventory for prep-service.

Every metric the service exports is declared here; the modules that own
the behaviour import and update them.  Counters only go up, so tests
assert on deltas (see tests/middleware/test_metrics.py).
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by the MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Assessment sessions
# ---------------------------------------------------------------------------

ATTEMPT_SUBMISSIONS = Counter(
    "attempt_submissions_total",
    "Honoured attempt submissions by trigger",
    ["trigger"],  # "manual" or "timer"
)

ATTEMPT_PERSISTENCE_FAILURES = Counter(
    "attempt_persistence_failures_total",
    "Final attempt writes that failed and were reported as warnings",
)

ACTIVE_ATTEMPT_SESSIONS = Gauge(
    "active_attempt_sessions",
    "Attempt sessions registered in this process and still in progress",
)

# ---------------------------------------------------------------------------
# Analytics and collaborators
# ---------------------------------------------------------------------------

CACHE_OPERATIONS = Counter(
    "cache_operations_total",
    "Cache get operations by result",
    ["operation"],  # "hit" or "miss"
)

SPEECH_ANALYSIS_FALLBACKS = Counter(
    "speech_analysis_fallbacks_total",
    "Speech analyses replaced by the default payload",
    ["reason"],  # "unparseable" or "transport"
)

QUEUE_DEPTH = Gauge(
    "task_queue_depth",
    "Number of tasks waiting in a queue",
    ["queue_name"],
)
