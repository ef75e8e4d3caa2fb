import pytest

from watchmqtt.health import (
    Status, build_health_metrics, classify_metric, format_bytes, format_metric_value,
    health_alerts, overall_status,
)
from watchmqtt.models import HealthData

HEALTHY = {
    "pg_up": 1,
    "pg_database_size_bytes": 1073741824,
    "pg_exporter_last_scrape_success": 1,
    "pg_exporter_last_scrape_duration_seconds": 0.2,
    "pg_locks_total": 2,
    "prom_ready": 1,
    "prom_targets_total": 3,
    "prom_targets_up": 3,
    "watchmqtt_up_targets": 2,
}


class TestClassify:
    @pytest.mark.parametrize("metric", ["pg_up", "pg_exporter_last_scrape_success", "prom_ready"])
    def test_binary(self, metric):
        assert classify_metric(metric, 1) is Status.OK
        assert classify_metric(metric, 0) is Status.ERROR
        assert classify_metric(metric, 0.5) is Status.ERROR

    @pytest.mark.parametrize("value,expected", [
        (0, Status.OK), (9, Status.OK), (10, Status.WARNING),
        (49, Status.WARNING), (50, Status.ERROR), (120, Status.ERROR),
    ])
    def test_locks(self, value, expected):
        assert classify_metric("pg_locks_total", value) is expected

    @pytest.mark.parametrize("value,expected", [
        (0.2, Status.OK), (0.999, Status.OK), (1, Status.WARNING),
        (4.9, Status.WARNING), (5, Status.ERROR),
    ])
    def test_scrape_duration(self, value, expected):
        assert classify_metric("pg_exporter_last_scrape_duration_seconds", value) is expected

    def test_targets(self):
        assert classify_metric("prom_targets_up", 0) is Status.ERROR
        assert classify_metric("prom_targets_up", 3) is Status.OK
        assert classify_metric("watchmqtt_up_targets", 0) is Status.WARNING
        assert classify_metric("watchmqtt_up_targets", 1) is Status.OK

    def test_unknown_metric_is_ok(self):
        assert classify_metric("something_else", -1) is Status.OK


class TestOverall:
    def test_worst_wins(self):
        assert overall_status([Status.OK, Status.WARNING, Status.OK]) is Status.WARNING
        assert overall_status([Status.WARNING, Status.ERROR]) is Status.ERROR
        assert overall_status([Status.OK, Status.OK]) is Status.OK

    def test_empty_is_unknown(self):
        assert overall_status([]) is Status.UNKNOWN

    def test_unknown_does_not_mask_warning(self):
        assert overall_status([Status.UNKNOWN, Status.WARNING]) is Status.WARNING
        assert overall_status([Status.OK, Status.UNKNOWN]) is Status.UNKNOWN


class TestFormatting:
    @pytest.mark.parametrize("value,expected", [
        (0, "0 B"), (512, "512.00 B"), (1536, "1.50 KB"),
        (1048576, "1.00 MB"), (1073741824, "1.00 GB"),
    ])
    def test_format_bytes(self, value, expected):
        assert format_bytes(value) == expected

    def test_metric_values(self):
        assert format_metric_value("pg_exporter_last_scrape_duration_seconds", 0.2) == "200ms"
        assert format_metric_value("pg_up", 1) == "Up"
        assert format_metric_value("prom_ready", 0) == "Down"
        assert format_metric_value("pg_locks_total", 3.0) == "3"
        assert format_metric_value("pg_locks_total", 2.5) == "2.5"


class TestBuildMetrics:
    def test_healthy_payload(self):
        metrics = build_health_metrics(HealthData.from_dict(HEALTHY, datname="watchmqtt"))
        by_key = {m.key: m for m in metrics}
        assert overall_status(m.status for m in metrics) is Status.OK
        assert by_key["pg_database_size_bytes"].formatted == "1.00 GB"
        assert by_key["pg_exporter_last_scrape_duration_seconds"].formatted == "200ms"
        assert by_key["prom_targets_up"].formatted == "3/3"
        assert [m.key for m in metrics][0] == "pg_up"
        assert len(metrics) == 8

    def test_database_size_always_ok(self):
        metrics = build_health_metrics(HealthData.from_dict({**HEALTHY, "pg_database_size_bytes": 0}))
        size = next(m for m in metrics if m.key == "pg_database_size_bytes")
        assert size.status is Status.OK

    def test_missing_gauges_default_to_zero(self):
        data = HealthData.from_dict({}, datname="watchmqtt")
        metrics = build_health_metrics(data)
        assert overall_status(m.status for m in metrics) is Status.ERROR
        assert dict(data.gauges())["pg_locks_total"] == 0


class TestAlerts:
    def test_only_non_ok_metrics(self):
        payload = {**HEALTHY, "pg_up": 0, "pg_locks_total": 20}
        alerts = health_alerts(build_health_metrics(HealthData.from_dict(payload)), since="now")
        assert [a.rule for a in alerts] == ["PostgreSQL Health Check", "Database Locks Health Check"]
        assert [a.severity for a in alerts] == ["critical", "warning"]
        assert [a.id for a in alerts] == ["health_0", "health_1"]
        assert alerts[1].description == "Active database locks (Current: 20)"
        assert all(a.status == "active" and a.since == "now" for a in alerts)

    def test_healthy_has_no_alerts(self):
        assert health_alerts(build_health_metrics(HealthData.from_dict(HEALTHY))) == []
