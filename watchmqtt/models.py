"""Typed records for rows returned by the data and health APIs."""

from dataclasses import dataclass, field
from datetime import datetime


def parse_ts(value: str | None) -> datetime | None:
    """Parse a PostgREST timestamp (ISO-8601, optional trailing Z)."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _opt_int(value) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class Event:
    id: int | None
    ts: str
    action: str
    client: str | None = None
    og_client: str | None = None
    username: str | None = None
    topic: str | None = None
    qos: int | None = None
    retain: bool = False
    payload_size: int | None = None
    broker: str | None = None

    @classmethod
    def from_dict(cls, row: dict) -> "Event":
        return cls(
            id=_opt_int(row.get("id")),
            ts=row.get("ts") or "",
            action=row.get("action") or "",
            client=row.get("client"),
            og_client=row.get("og_client"),
            username=row.get("username"),
            topic=row.get("topic"),
            qos=_opt_int(row.get("qos")),
            retain=bool(row.get("retain")),
            payload_size=_opt_int(row.get("payload_size")),
            broker=row.get("broker"),
        )

    @property
    def display_client(self) -> str:
        return self.og_client or self.client or ""


@dataclass(frozen=True)
class Session:
    id: int | None
    client: str | None
    start_ts: str
    end_ts: str | None = None
    client_id: int | None = None
    username: str | None = None
    protocol: str | None = None
    protocol_version: str | None = None
    clean_session: bool | None = None
    keepalive: int | None = None
    ip_address: str | None = None
    port: int | None = None
    tls_version: str | None = None
    tls_cipher: str | None = None

    @classmethod
    def from_dict(cls, row: dict) -> "Session":
        return cls(
            id=_opt_int(row.get("id")),
            client=row.get("client"),
            start_ts=row.get("start_ts") or "",
            end_ts=row.get("end_ts"),
            client_id=_opt_int(row.get("client_id")),
            username=row.get("username"),
            protocol=row.get("protocol"),
            protocol_version=row.get("protocol_version"),
            clean_session=row.get("clean_session"),
            keepalive=_opt_int(row.get("keepalive")),
            ip_address=row.get("ip_address"),
            port=_opt_int(row.get("port")),
            tls_version=row.get("tls_version"),
            tls_cipher=row.get("tls_cipher"),
        )

    @property
    def is_open(self) -> bool:
        return not self.end_ts

    @property
    def duration(self) -> str:
        start, end = parse_ts(self.start_ts), parse_ts(self.end_ts)
        if end is None or start is None:
            return "ongoing"
        total = max(int((end - start).total_seconds()), 0)
        minutes, seconds = divmod(total, 60)
        return f"{minutes}m {seconds}s" if minutes > 0 else f"{seconds}s"

    @property
    def ip_port(self) -> str:
        ip = self.ip_address or "N/A"
        port = self.port if self.port is not None else "N/A"
        return f"{ip}:{port}"


@dataclass(frozen=True)
class ClientRecord:
    id: int | None
    client: str
    username: str | None = None
    first_seen: str | None = None
    last_seen: str | None = None

    @classmethod
    def from_dict(cls, row: dict) -> "ClientRecord":
        return cls(
            id=_opt_int(row.get("id")),
            client=row.get("client") or "",
            username=row.get("username"),
            first_seen=row.get("first_seen"),
            last_seen=row.get("last_seen"),
        )


@dataclass(frozen=True)
class Subscription:
    id: int | None
    client: str
    topic: str
    qos: int | None = None
    active: bool = False
    session_id: int | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_dict(cls, row: dict) -> "Subscription":
        return cls(
            id=_opt_int(row.get("id")),
            client=row.get("client") or "",
            topic=row.get("topic") or "",
            qos=_opt_int(row.get("qos")),
            active=bool(row.get("active")),
            session_id=_opt_int(row.get("session_id")),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )


@dataclass(frozen=True)
class TopicActivity:
    topic: str
    fields: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, row: dict) -> "TopicActivity":
        return cls(topic=row.get("topic") or "", fields={k: v for k, v in row.items() if k != "topic"})


HEALTH_GAUGES = (
    "pg_up",
    "pg_exporter_last_scrape_success",
    "prom_ready",
    "prom_targets_up",
    "prom_targets_total",
    "watchmqtt_up_targets",
    "pg_exporter_last_scrape_duration_seconds",
    "pg_locks_total",
    "pg_database_size_bytes",
)


@dataclass(frozen=True)
class HealthData:
    datname: str
    pg_up: float = 0
    pg_database_size_bytes: float = 0
    pg_exporter_last_scrape_success: float = 0
    pg_exporter_last_scrape_duration_seconds: float = 0
    pg_locks_total: float = 0
    prom_ready: float = 0
    prom_targets_total: float = 0
    prom_targets_up: float = 0
    watchmqtt_up_targets: float = 0

    @classmethod
    def from_dict(cls, row: dict, datname: str = "") -> "HealthData":
        values = {}
        for name in HEALTH_GAUGES:
            raw = row.get(name)
            try:
                values[name] = float(raw) if raw is not None else 0
            except (TypeError, ValueError):
                values[name] = 0
        return cls(datname=row.get("datname") or datname, **values)

    def gauges(self):
        for name in HEALTH_GAUGES:
            yield name, getattr(self, name)


@dataclass
class PageResult:
    rows: list
    total_items: int
    total_pages: int
    page: int
    page_size: int

    @property
    def is_empty(self) -> bool:
        return not self.rows
