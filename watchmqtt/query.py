"""PostgREST query-parameter building for the events table and generic lists.

Substring filters combine with AND across dimensions and OR within one
dimension: selecting topics ``a`` and ``b`` plus client ``c`` yields
``and=(or(topic.ilike.*a*,topic.ilike.*b*),or(og_client.ilike.*c*))``.
"""

import enum
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from urllib.parse import urlencode

DEFAULT_PAGE_SIZE = 50
EVENT_ORDER = "ts.desc"

# Characters that break PostgREST list / logic-tree parsing unless quoted.
_RESERVED = set(',()"\\')


class TimeRange(str, enum.Enum):
    LAST_HOUR = "1h"
    LAST_6_HOURS = "6h"
    LAST_24_HOURS = "24h"
    LAST_7_DAYS = "7d"
    LAST_30_DAYS = "30d"
    ALL = "all"

    @property
    def hours(self) -> int | None:
        return _TIME_RANGE_HOURS[self]

    @classmethod
    def parse(cls, value, default: "TimeRange | None" = None) -> "TimeRange":
        try:
            return cls(value)
        except ValueError:
            if default is None:
                raise
            return default


_TIME_RANGE_HOURS = {
    TimeRange.LAST_HOUR: 1,
    TimeRange.LAST_6_HOURS: 6,
    TimeRange.LAST_24_HOURS: 24,
    TimeRange.LAST_7_DAYS: 24 * 7,
    TimeRange.LAST_30_DAYS: 24 * 30,
    TimeRange.ALL: None,
}


@dataclass(frozen=True)
class FilterState:
    actions: tuple[str, ...] = ()
    topics: tuple[str, ...] = ()
    clients: tuple[str, ...] = ()
    usernames: tuple[str, ...] = ()
    qos: tuple[str, ...] = ()
    retain_only: bool = False
    time_range: TimeRange = TimeRange.LAST_24_HOURS

    @property
    def is_empty(self) -> bool:
        return not (self.actions or self.topics or self.clients or self.usernames
                    or self.qos or self.retain_only)

    def with_time_range(self, time_range: TimeRange) -> "FilterState":
        return replace(self, time_range=time_range)


# (FilterState attribute, events column) for substring dimensions, in emit order.
SUBSTRING_COLUMNS = (
    ("topics", "topic"),
    ("clients", "og_client"),
    ("usernames", "username"),
)


def quote_value(value: str) -> str:
    value = value.strip()
    if any(ch in _RESERVED for ch in value):
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return value


def in_filter(values) -> str:
    return "in.(" + ",".join(quote_value(str(v)) for v in values) + ")"


def contains_filter(value: str) -> str:
    """Case-insensitive substring condition for a single column parameter."""
    return "ilike." + quote_value("*" + value.strip() + "*")


def ilike_contains(column: str, value: str) -> str:
    return f"{column}.{contains_filter(value)}"


def time_range_start(time_range: TimeRange, now: datetime | None = None) -> str | None:
    """Return the UTC ISO-8601 lower bound for a time range, None for ``all``."""
    hours = TimeRange(time_range).hours
    if hours is None:
        return None
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    start = now.astimezone(timezone.utc) - timedelta(hours=hours)
    return start.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def pagination_params(page: int, page_size: int) -> list[tuple[str, str]]:
    if page < 1:
        raise ValueError(f"page must be >= 1, got {page}")
    if page_size < 1:
        raise ValueError(f"page_size must be >= 1, got {page_size}")
    return [("limit", str(page_size)), ("offset", str((page - 1) * page_size))]


def build_event_params(filters: FilterState, page: int | None = None,
                       page_size: int = DEFAULT_PAGE_SIZE,
                       now: datetime | None = None) -> list[tuple[str, str]]:
    """Translate a FilterState into ordered PostgREST query parameters.

    With ``page=None`` no limit/offset is emitted (used by CSV export).
    """
    params: list[tuple[str, str]] = []
    if page is not None:
        params.extend(pagination_params(page, page_size))
    params.append(("order", EVENT_ORDER))

    if filters.actions:
        params.append(("action", in_filter(filters.actions)))

    groups = []
    for attr, column in SUBSTRING_COLUMNS:
        values = [v for v in getattr(filters, attr) if v.strip()]
        if values:
            groups.append("or(" + ",".join(ilike_contains(column, v) for v in values) + ")")
    if groups:
        params.append(("and", "(" + ",".join(groups) + ")"))

    if filters.qos:
        params.append(("qos", in_filter(filters.qos)))
    if filters.retain_only:
        params.append(("retain", "eq.true"))

    since = time_range_start(filters.time_range, now)
    if since:
        params.append(("ts", f"gte.{since}"))
    return params


def build_query_string(filters: FilterState, page: int | None = None,
                       page_size: int = DEFAULT_PAGE_SIZE, now: datetime | None = None) -> str:
    return urlencode(build_event_params(filters, page, page_size, now))


def list_params(offset: int = 0, limit: int = 20, order: str | None = None,
                filters: dict[str, str] | None = None) -> list[tuple[str, str]]:
    """Parameters for a plain paginated table read (sessions, clients, ...)."""
    params = [("offset", str(max(offset, 0))), ("limit", str(limit))]
    if order:
        params.append(("order", order))
    for key, value in (filters or {}).items():
        params.append((key, value))
    return params
