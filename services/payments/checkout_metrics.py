"""Prometheus collectors for checkout session creation."""

from __future__ import annotations

from services.prometheus_helpers import build_counter, build_histogram

_SESSION_REQUESTS = build_counter(
    "checkout_session_requests_total",
    "Trial checkout session requests by provider and result.",
    ("provider", "result"),
)
_PROVIDER_LATENCY = build_histogram(
    "checkout_provider_latency_seconds",
    "Latency of provider session-creation calls.",
    ("provider",),
    buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)


def record_session_request(provider: str, result: str) -> None:
    if _SESSION_REQUESTS is not None:
        _SESSION_REQUESTS.labels(provider=provider, result=result).inc()


def observe_provider_latency(provider: str, seconds: float) -> None:
    if _PROVIDER_LATENCY is not None:
        _PROVIDER_LATENCY.labels(provider=provider).observe(max(seconds, 0.0))


__all__ = ["observe_provider_latency", "record_session_request"]
