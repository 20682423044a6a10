# microtools/observability/metrics.py
# minimal prometheus instrumentation for the object lifecycle

from __future__ import annotations

from prometheus_client import CONTENT_TYPE_LATEST, Counter, generate_latest

OBJECTS_CREATED = Counter(
    "microtools_objects_created_total",
    "Objects created, by tool type",
    ["type"],
)
OBJECTS_EXPIRED = Counter(
    "microtools_objects_expired_total",
    "Expired objects deleted, by enforcement path",
    ["path"],  # "lazy" | "sweep"
)
SECRETS_REVEALED = Counter(
    "microtools_secrets_revealed_total",
    "One-time secrets revealed and destroyed",
)
CLAIMS_REJECTED = Counter(
    "microtools_claims_rejected_total",
    "Potluck claims rejected for insufficient remaining capacity",
)
SWEEP_CLEANUP_FAILURES = Counter(
    "microtools_sweep_cleanup_failures_total",
    "External resource deletions that failed during a sweep",
)


def render_latest() -> tuple[bytes, str]:
    """Return (payload, content type) for the /metrics endpoint."""
    return generate_latest(), CONTENT_TYPE_LATEST
