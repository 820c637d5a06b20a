"""Prometheus metrics instrumentation for the real-time call layer.

Exposes metrics for monitoring call outcomes, presence and the health of
call-history persistence. History writes never fail a call for the
users, so `call_history_write_failures_total` is the place where lost
records show up.

Metrics exported:
- calls_initiated_total: Counter of initiate attempts by result
- calls_resolved_total: Counter of resolved calls by outcome
- call_history_write_failures_total: Counter of history appends that gave up
- active_calls: Gauge of sessions currently ringing or active
- online_users: Gauge of users with a live presence entry

Usage:
    from fanhub.services.metrics import start_metrics_server, calls_resolved

    start_metrics_server(port=8001)
    calls_resolved.labels(outcome='completed').inc()
"""

from prometheus_client import Counter, Gauge, start_http_server
import logging

logger = logging.getLogger(__name__)

calls_initiated = Counter(
    'calls_initiated_total',
    'Call initiation attempts',
    labelnames=['result']  # result: ringing, offline, unknown_user, error
)

calls_resolved = Counter(
    'calls_resolved_total',
    'Calls removed from the session store',
    labelnames=['outcome']  # outcome: completed, missed, declined, disconnected
)

history_write_failures = Counter(
    'call_history_write_failures_total',
    'Call history records that could not be persisted',
)

active_calls_gauge = Gauge(
    'active_calls',
    'Number of call sessions currently ringing or active'
)

online_users_gauge = Gauge(
    'online_users',
    'Number of users with a live presence entry'
)


def start_metrics_server(port: int = 8001):
    """Start Prometheus metrics HTTP server."""
    try:
        start_http_server(port)
        logger.info(f"✅ Metrics server started on port {port}")
    except Exception as e:
        logger.error(f"❌ Failed to start metrics server: {e}")
