"""Application metrics using the Prometheus client library.

This module defines all metrics in one place, a single inventory of
everything both services measure.  Other modules import specific metrics
and increment/observe them at the point of action.

Counters only go up; Prometheus turns them into rates with rate().
The duration histogram lets Prometheus compute percentiles with
histogram_quantile().  The in-flight gauge shows saturation.

Both services import this module.  In production each runs in its own
process and is scraped separately, so the label sets never mix.
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
    # Verification includes a network hop to the issuance service, so the
    # upper buckets reach the 10s client timeout.
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Domain metrics
# ---------------------------------------------------------------------------

CREDENTIALS_ISSUED = Counter(
    "credentials_issued_total",
    "Credential issuance attempts by outcome",
    ["outcome"],  # "issued", "duplicate", "error"
)

VERIFICATIONS = Counter(
    "credential_verifications_total",
    "Completed verifications by terminal status",
    ["status"],  # valid|invalid|expired|not_found|signature_mismatch
)

ISSUANCE_LOOKUPS = Counter(
    "issuance_lookups_total",
    "Lookups from the verification service to the issuance service",
    ["outcome"],  # "found", "not_found", "unavailable", "error"
)

RATE_LIMIT_HITS = Counter(
    "rate_limit_hits_total",
    "Requests rejected by rate limiting (429s)",
)
