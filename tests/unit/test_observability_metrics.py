"""Unit tests for Prometheus metrics module."""

from prometheus_client import REGISTRY

from bizcore.observability.metrics import (
    get_metrics,
    record_consolidation,
    record_http_request,
    record_invitation_acceptance,
    record_invitation_issued,
    set_service_info,
)


def _sample(name: str, labels: dict[str, str]) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


class TestHttpMetrics:
    """Tests for HTTP request metrics."""

    def test_record_http_request(self):
        labels = {"method": "GET", "endpoint": "/v1/workspaces/{workspace_ref}/members", "status_code": "200"}
        before = _sample("bizcore_http_requests_total", labels)
        before_count = _sample("bizcore_http_request_duration_seconds_count", labels)

        record_http_request("GET", labels["endpoint"], 200, 0.042)

        assert _sample("bizcore_http_requests_total", labels) == before + 1
        assert _sample("bizcore_http_request_duration_seconds_count", labels) == before_count + 1


class TestDomainMetrics:
    """Tests for invitation and consolidation counters."""

    def test_record_invitation_issued(self):
        labels = {"type": "company", "email_sent": "false"}
        before = _sample("bizcore_invitations_issued_total", labels)

        record_invitation_issued("company", False)

        assert _sample("bizcore_invitations_issued_total", labels) == before + 1

    def test_record_invitation_acceptance(self):
        labels = {"outcome": "provisioning_failed"}
        before = _sample("bizcore_invitations_accepted_total", labels)

        record_invitation_acceptance("provisioning_failed")

        assert _sample("bizcore_invitations_accepted_total", labels) == before + 1

    def test_record_consolidation(self):
        labels = {"role": "supplier", "action": "merged"}
        before = _sample("bizcore_consolidation_records_total", labels)

        record_consolidation("supplier", "merged")
        record_consolidation("supplier", "merged")

        assert _sample("bizcore_consolidation_records_total", labels) == before + 2


class TestExposition:
    """Tests for the text exposition output."""

    def test_get_metrics_includes_service_info(self):
        set_service_info("0.1.0", "test")

        output = get_metrics().decode()

        assert "bizcore_service_info" in output
        assert 'version="0.1.0"' in output
        assert "bizcore_invitations_issued_total" in output
