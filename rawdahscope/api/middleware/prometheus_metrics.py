"""
Prometheus metrics for the acquisition layer.

Write-only observability: nothing reads these values back to make a
decision. Exposed by the FastAPI app on ``/metrics``.
"""

from prometheus_client import Counter, Histogram

STRATEGY_ATTEMPTS_TOTAL = Counter(
    "rawdah_strategy_attempts_total",
    "Strategy invocations by outcome",
    ["chain", "strategy", "outcome"],
)

RETRY_WAITS_TOTAL = Counter(
    "rawdah_retry_waits_total",
    "Backoff waits scheduled by the retry executor",
    ["chain"],
)

CACHE_LOOKUPS_TOTAL = Counter(
    "rawdah_cache_lookups_total",
    "TTL cache lookups by result",
    ["chain", "result"],
)

DOMAIN_REFRESH_TOTAL = Counter(
    "rawdah_domain_refresh_total",
    "Dashboard domain refreshes by terminal state",
    ["domain", "state"],
)

DOMAIN_REFRESH_DURATION = Histogram(
    "rawdah_domain_refresh_duration_seconds",
    "Wall time of one dashboard domain refresh",
    ["domain"],
)
