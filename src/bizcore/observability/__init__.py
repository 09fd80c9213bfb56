"""Observability (Prometheus metrics) for Bizcore."""

from bizcore.observability.metrics import (
    get_metrics,
    record_consolidation,
    record_http_request,
    record_invitation_acceptance,
    record_invitation_issued,
    set_service_info,
)

__all__ = [
    "get_metrics",
    "record_consolidation",
    "record_http_request",
    "record_invitation_acceptance",
    "record_invitation_issued",
    "set_service_info",
]
