"""
Prometheus metrics for the catalog tree service.

Tracks HTTP requests, catalog fetches per level, tree toggles and the
number of visitor trees held in memory.
"""

from fastapi import Response
from prometheus_client import (CONTENT_TYPE_LATEST, Counter, Gauge, Histogram,
                               generate_latest)

# Request metrics
http_requests_total = Counter(
    "catalog_tree_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

http_request_duration_seconds = Histogram(
    "catalog_tree_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.025, 0.05, 0.075, 0.1, 0.25, 0.5, 0.75, 1.0, 2.5, 5.0),
)

# Catalog fetch metrics
catalog_fetches_total = Counter(
    "catalog_tree_fetches_total",
    "Total catalog list queries issued",
    ["level", "outcome"],
)

catalog_fetch_duration_seconds = Histogram(
    "catalog_tree_fetch_duration_seconds",
    "Catalog list query duration in seconds",
    ["level"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# Tree interaction metrics
tree_toggles_total = Counter(
    "catalog_tree_toggles_total",
    "Total node toggle requests",
    ["level", "action"],
)

tree_sessions_active = Gauge(
    "catalog_tree_sessions_active", "Number of visitor trees held in memory"
)


def track_request_metrics(
    method: str, endpoint: str, status_code: int, duration: float
):
    """Track HTTP request metrics."""
    http_requests_total.labels(
        method=method, endpoint=endpoint, status=status_code
    ).inc()
    http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(
        duration
    )


def track_catalog_fetch(level: str, success: bool, duration: float):
    """Track a catalog list query."""
    outcome = "success" if success else "failure"
    catalog_fetches_total.labels(level=level, outcome=outcome).inc()
    catalog_fetch_duration_seconds.labels(level=level).observe(duration)


def track_toggle(level: str, action: str):
    """Track a toggle request and what it resolved to."""
    tree_toggles_total.labels(level=level, action=action).inc()


def update_active_sessions(count: int):
    """Update active tree sessions gauge."""
    tree_sessions_active.set(count)


async def metrics_endpoint():
    """
    Prometheus metrics endpoint.

    Returns:
        Response with Prometheus metrics in text format
    """
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
