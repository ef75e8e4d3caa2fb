"""Threshold classification and display formatting for health gauges."""

import enum
from dataclasses import dataclass
from typing import Iterable

from watchmqtt.models import HealthData


class Status(str, enum.Enum):
    OK = "ok"
    UNKNOWN = "unknown"
    WARNING = "warning"
    ERROR = "error"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]


# UNKNOWN ranks between ok and warning: nothing loaded yet is not healthy,
# but it must not mask a real warning.
_SEVERITY = {Status.OK: 0, Status.UNKNOWN: 1, Status.WARNING: 2, Status.ERROR: 3}

BINARY_METRICS = ("pg_up", "pg_exporter_last_scrape_success", "prom_ready")

METRIC_LABELS = {
    "pg_up": "PostgreSQL",
    "pg_exporter_last_scrape_success": "PostgreSQL Exporter",
    "prom_ready": "Prometheus",
    "prom_targets_up": "Prometheus Targets",
    "watchmqtt_up_targets": "WatchMQTT Targets",
    "pg_exporter_last_scrape_duration_seconds": "Scrape Duration",
    "pg_locks_total": "Database Locks",
    "pg_database_size_bytes": "Database Size",
}

METRIC_DESCRIPTIONS = {
    "pg_up": "PostgreSQL database connectivity",
    "pg_database_size_bytes": "Database size on disk",
    "pg_exporter_last_scrape_success": "PostgreSQL exporter status",
    "pg_exporter_last_scrape_duration_seconds": "Last scrape duration",
    "pg_locks_total": "Active database locks",
    "prom_ready": "Prometheus readiness",
    "prom_targets_total": "Total Prometheus targets",
    "prom_targets_up": "Prometheus targets up",
    "watchmqtt_up_targets": "WatchMQTT monitoring targets",
}

SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")


def classify_metric(metric: str, value: float) -> Status:
    if metric in BINARY_METRICS:
        return Status.OK if value == 1 else Status.ERROR
    if metric in ("prom_targets_up", "prom_targets_total"):
        return Status.OK if value > 0 else Status.ERROR
    if metric == "watchmqtt_up_targets":
        return Status.OK if value > 0 else Status.WARNING
    if metric == "pg_exporter_last_scrape_duration_seconds":
        if value < 1:
            return Status.OK
        return Status.WARNING if value < 5 else Status.ERROR
    if metric == "pg_locks_total":
        if value < 10:
            return Status.OK
        return Status.WARNING if value < 50 else Status.ERROR
    return Status.OK


def overall_status(statuses: Iterable[Status]) -> Status:
    """Worst status of the collection; UNKNOWN when there is nothing to rate."""
    worst = None
    for status in statuses:
        if worst is None or status.severity > worst.severity:
            worst = status
    return worst if worst is not None else Status.UNKNOWN


def _plain_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def format_bytes(value: float) -> str:
    if value <= 0:
        return "0 B"
    for unit in SIZE_UNITS[:-1]:
        if value < 1024:
            return f"{value:.2f} {unit}"
        value /= 1024
    return f"{value:.2f} {SIZE_UNITS[-1]}"


def format_metric_value(metric: str, value: float) -> str:
    if metric == "pg_database_size_bytes":
        return format_bytes(value)
    if metric == "pg_exporter_last_scrape_duration_seconds":
        return f"{value * 1000:.0f}ms"
    if metric in BINARY_METRICS:
        return "Up" if value == 1 else "Down"
    return _plain_number(value)


def describe_metric(metric: str) -> str:
    return METRIC_DESCRIPTIONS.get(metric, metric)


@dataclass(frozen=True)
class HealthMetric:
    key: str
    label: str
    value: float
    status: Status
    formatted: str
    description: str


@dataclass(frozen=True)
class HealthAlert:
    id: str
    rule: str
    severity: str  # "critical" | "warning"
    since: str
    description: str
    status: str = "active"


def build_health_metrics(data: HealthData) -> list[HealthMetric]:
    """Tiles shown on the alerts and diagnostics pages, in display order."""
    metrics = []
    for key, label in METRIC_LABELS.items():
        value = getattr(data, key)
        if key == "prom_targets_up":
            formatted = f"{_plain_number(data.prom_targets_up)}/{_plain_number(data.prom_targets_total)}"
        else:
            formatted = format_metric_value(key, value)
        # database size is informational only
        status = Status.OK if key == "pg_database_size_bytes" else classify_metric(key, value)
        metrics.append(HealthMetric(
            key=key,
            label=label,
            value=value,
            status=status,
            formatted=formatted,
            description=describe_metric(key),
        ))
    return metrics


def health_alerts(metrics: Iterable[HealthMetric], since: str = "") -> list[HealthAlert]:
    alerts = []
    for index, metric in enumerate(m for m in metrics if m.status != Status.OK):
        alerts.append(HealthAlert(
            id=f"health_{index}",
            rule=f"{metric.label} Health Check",
            severity="critical" if metric.status == Status.ERROR else "warning",
            since=since,
            description=f"{metric.description} (Current: {metric.formatted})",
        ))
    return alerts
