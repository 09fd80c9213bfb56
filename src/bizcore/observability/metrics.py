"""Prometheus metrics for Bizcore.

Covers HTTP traffic plus the two long-running domain flows: the invitation
lifecycle and entity consolidation.
"""

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram, Info, generate_latest

PREFIX = "bizcore"

HTTP_BUCKETS = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)

# ============================================================================
# HTTP/API Metrics
# ============================================================================

HTTP_REQUEST_DURATION = Histogram(
    f"{PREFIX}_http_request_duration_seconds",
    "HTTP request duration",
    ["method", "endpoint", "status_code"],
    buckets=HTTP_BUCKETS,
)

HTTP_REQUEST_COUNT = Counter(
    f"{PREFIX}_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

# ============================================================================
# Invitation Metrics
# ============================================================================

INVITATIONS_ISSUED = Counter(
    f"{PREFIX}_invitations_issued_total",
    "Invitations issued or resent",
    ["type", "email_sent"],
)

INVITATIONS_ACCEPTED = Counter(
    f"{PREFIX}_invitations_accepted_total",
    "Invitation acceptance attempts by outcome",
    ["outcome"],
)

# ============================================================================
# Consolidation Metrics
# ============================================================================

CONSOLIDATION_RECORDS = Counter(
    f"{PREFIX}_consolidation_records_total",
    "Legacy records processed by the consolidation engine",
    ["role", "action"],
)

SERVICE_INFO = Info(f"{PREFIX}_service", "Service information")


def record_http_request(method: str, endpoint: str, status_code: int, duration_seconds: float) -> None:
    """Record HTTP request metrics."""
    labels = {"method": method, "endpoint": endpoint, "status_code": str(status_code)}
    HTTP_REQUEST_DURATION.labels(**labels).observe(duration_seconds)
    HTTP_REQUEST_COUNT.labels(**labels).inc()


def record_invitation_issued(invitation_type: str, email_sent: bool) -> None:
    INVITATIONS_ISSUED.labels(type=invitation_type, email_sent=str(email_sent).lower()).inc()


def record_invitation_acceptance(outcome: str) -> None:
    """Record an acceptance outcome (accepted, expired, already_used, provisioning_failed...)."""
    INVITATIONS_ACCEPTED.labels(outcome=outcome).inc()


def record_consolidation(role: str, action: str) -> None:
    CONSOLIDATION_RECORDS.labels(role=role, action=action).inc()


def set_service_info(version: str, environment: str) -> None:
    SERVICE_INFO.info({"name": PREFIX, "version": version, "environment": environment})


def get_metrics(registry: CollectorRegistry | None = None) -> bytes:
    """Generate metrics output in Prometheus text format."""
    return generate_latest(registry or REGISTRY)
