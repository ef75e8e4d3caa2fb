import itertools
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from watchmqtt.actions import ActionCache
from watchmqtt.client import ApiClient, ApiError
from watchmqtt.logging_config import get_logger
from watchmqtt.models import ClientRecord, Event, PageResult, Session, Subscription, TopicActivity, parse_ts
from watchmqtt.query import DEFAULT_PAGE_SIZE, FilterState, build_event_params, in_filter, list_params

logger = get_logger(__name__)

EVENTS_PATH = "/events"
SESSIONS_PATH = "/sessions"
CLIENTS_PATH = "/clients"
SUBSCRIPTIONS_PATH = "/subscriptions"
TOPIC_ACTIVITY_PATH = "/topic_activity"

ACTION_SAMPLE_QUERIES = (
    [("select", "action"), ("action", "not.is.null"), ("limit", "2000"), ("order", "ts.desc")],
    [("select", "action"), ("limit", "1000"), ("order", "ts.desc")],
)

# (label, hours, bucket minutes) for the sessions page chart
SESSION_CHART_RANGES = (
    ("1h", 1, 5),
    ("6h", 6, 15),
    ("24h", 24, 60),
    ("7d", 168, 60),
)


class RequestSequencer:
    """Issues increasing tokens; only the newest token's response is applied."""

    def __init__(self):
        self._counter = itertools.count(1)
        self._latest = 0

    def next(self) -> int:
        self._latest = next(self._counter)
        return self._latest

    def is_current(self, token: int) -> bool:
        return token == self._latest

    @property
    def latest(self) -> int:
        return self._latest


class EventsService:
    def __init__(self, client: ApiClient, page_size: int = DEFAULT_PAGE_SIZE):
        self._client = client
        self.page_size = page_size

    def fetch_page(self, filters: FilterState, page: int = 1, now: datetime | None = None) -> PageResult:
        params = build_event_params(filters, page=page, page_size=self.page_size, now=now)
        result = self._client.fetch_page(EVENTS_PATH, params, page, self.page_size)
        result.rows = [Event.from_dict(r) for r in result.rows]
        return result

    def fetch_all(self, filters: FilterState, now: datetime | None = None) -> list[Event]:
        """Every matching event, without pagination bounds (CSV export)."""
        rows, _ = self._client.get_rows(EVENTS_PATH, build_event_params(filters, now=now))
        return [Event.from_dict(r) for r in rows]

    def sample_actions(self) -> list[str]:
        """Distinct action values from a sample of recent events."""
        last_error = None
        for params in ACTION_SAMPLE_QUERIES:
            try:
                rows, _ = self._client.get_rows(EVENTS_PATH, params)
            except ApiError as e:
                logger.warning("Action sample query failed, trying fallback: %s", e)
                last_error = e
                continue
            return sorted({r.get("action") for r in rows if r.get("action")})
        raise last_error


@dataclass
class EventListView:
    result: PageResult | None = None
    error: str | None = None
    loading: bool = False
    current_page: int = 1
    last_updated: datetime | None = None
    discovered: list[str] = field(default_factory=list)


class EventListController:
    """Fetch state for the events table.

    Keeps the last good page on failure and drops responses that were
    superseded by a newer request.
    """

    def __init__(self, service: EventsService, action_cache: ActionCache | None = None):
        self._service = service
        self._actions = action_cache
        self._sequencer = RequestSequencer()
        self.view = EventListView()

    def begin(self, page: int) -> int:
        self.view.loading = True
        self.view.error = None
        self.view.current_page = page
        return self._sequencer.next()

    def complete(self, token: int, result: PageResult) -> bool:
        if not self._sequencer.is_current(token):
            logger.debug("Dropping stale events response (token %d, latest %d)",
                         token, self._sequencer.latest)
            return False
        self.view.result = result
        self.view.loading = False
        self.view.current_page = result.page
        self.view.last_updated = datetime.now()
        self.view.discovered = []
        if self._actions is not None:
            self.view.discovered = self._actions.observe(e.action for e in result.rows)
        return True

    def fail(self, token: int, message: str) -> bool:
        if not self._sequencer.is_current(token):
            return False
        logger.warning("Events fetch failed: %s", message)
        self.view.error = message
        self.view.loading = False
        return True


class ListService:
    """Paginated reads of the sessions, clients, subscriptions and topic tables."""

    def __init__(self, client: ApiClient):
        self._client = client

    def _page(self, path: str, page: int, page_size: int, order: str,
              filters: dict[str, str] | None = None) -> PageResult:
        offset = (page - 1) * page_size
        params = list_params(offset=offset, limit=page_size, order=order, filters=filters)
        return self._client.fetch_page(path, params, page, page_size)

    def sessions_page(self, page: int = 1, page_size: int = 20,
                      filters: dict[str, str] | None = None) -> PageResult:
        result = self._page(SESSIONS_PATH, page, page_size, "start_ts.desc", filters)
        result.rows = [Session.from_dict(r) for r in result.rows]
        return result

    def clients_page(self, page: int = 1, page_size: int = 20,
                     filters: dict[str, str] | None = None) -> PageResult:
        result = self._page(CLIENTS_PATH, page, page_size, "last_seen.desc", filters)
        result.rows = [ClientRecord.from_dict(r) for r in result.rows]
        return result

    def subscriptions_page(self, page: int = 1, page_size: int = 20,
                           filters: dict[str, str] | None = None) -> PageResult:
        result = self._page(SUBSCRIPTIONS_PATH, page, page_size, "created_at.desc", filters)
        result.rows = [Subscription.from_dict(r) for r in result.rows]
        return result

    def active_sessions(self, clients: list[str] | None = None, limit: int = 10000) -> list[Session]:
        filters = {"end_ts": "is.null"}
        if clients:
            filters["client"] = in_filter(clients)
        rows, _ = self._client.get_rows(SESSIONS_PATH, list_params(limit=limit, filters=filters))
        return [Session.from_dict(r) for r in rows]

    def active_subscriptions(self, clients: list[str] | None = None, limit: int = 1000) -> list[Subscription]:
        filters = {"active": "eq.true"}
        if clients:
            filters["client"] = in_filter(clients)
        rows, _ = self._client.get_rows(SUBSCRIPTIONS_PATH, list_params(limit=limit, filters=filters))
        return [Subscription.from_dict(r) for r in rows]

    def connection_events(self, since: datetime, limit: int = 10000) -> list[Event]:
        since_iso = since.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
        filters = {"ts": f"gte.{since_iso}", "action": "in.(connected,disconnected)"}
        rows, _ = self._client.get_rows(EVENTS_PATH, list_params(limit=limit, order="ts.asc", filters=filters))
        return [Event.from_dict(r) for r in rows]

    def events_for(self, username: str | None, start: datetime, end: datetime,
                   limit: int = 10000) -> list[Event]:
        params = list_params(limit=limit, order="ts.desc")
        params.append(("ts", f"gte.{start.isoformat()}"))
        params.append(("ts", f"lt.{end.isoformat()}"))
        if username:
            params.append(("username", f"eq.{username}"))
        rows, _ = self._client.get_rows(EVENTS_PATH, params)
        return [Event.from_dict(r) for r in rows]

    def sessions_for(self, username: str | None, start: datetime, end: datetime,
                     limit: int = 10000) -> list[Session]:
        params = list_params(limit=limit, order="start_ts.desc")
        params.append(("start_ts", f"gte.{start.isoformat()}"))
        params.append(("start_ts", f"lt.{end.isoformat()}"))
        if username:
            params.append(("username", f"eq.{username}"))
        rows, _ = self._client.get_rows(SESSIONS_PATH, params)
        return [Session.from_dict(r) for r in rows]

    def topic_activity(self, limit: int = 500) -> list[TopicActivity]:
        rows, _ = self._client.get_rows(TOPIC_ACTIVITY_PATH, [("limit", str(limit))])
        return [TopicActivity.from_dict(r) for r in rows]


def summarize_users(sessions, top: int = 5) -> list[tuple[str, int]]:
    """Open-session count per username, most active first."""
    counts = Counter(s.username or "Unknown" for s in sessions)
    return sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))[:top]


def bucket_connection_events(events, start: datetime, hours: int, granularity_minutes: int) -> list[dict]:
    """Connect/disconnect counts per fixed-width interval starting at ``start``."""
    step = timedelta(minutes=granularity_minutes)
    intervals = -(-hours * 60 // granularity_minutes)
    buckets = [
        {"time": start + i * step, "connects": 0, "disconnects": 0}
        for i in range(intervals)
    ]
    for event in events:
        ts = parse_ts(event.ts)
        if ts is None:
            continue
        if ts.tzinfo is None and start.tzinfo is not None:
            ts = ts.replace(tzinfo=start.tzinfo)
        elif ts.tzinfo is not None and start.tzinfo is None:
            ts = ts.astimezone().replace(tzinfo=None)
        index = int((ts - start) // step)
        if not 0 <= index < intervals:
            continue
        if event.action == "connected":
            buckets[index]["connects"] += 1
        elif event.action == "disconnected":
            buckets[index]["disconnects"] += 1
    return buckets


@dataclass
class ClientActivityReport:
    username: str
    total_events: int
    events_by_action: list[tuple[str, int]]
    sessions: int
    open_sessions: int
    clients: list[str]
    topics: list[tuple[str, int]]
    payload_bytes: int


def client_activity_report(username: str, events, sessions, top_topics: int = 10) -> ClientActivityReport:
    events = list(events)
    sessions = list(sessions)
    actions = Counter(e.action for e in events)
    topics = Counter(e.topic for e in events if e.topic)
    clients = sorted({e.display_client for e in events if e.display_client}
                     | {s.client for s in sessions if s.client})
    return ClientActivityReport(
        username=username,
        total_events=len(events),
        events_by_action=sorted(actions.items(), key=lambda kv: (-kv[1], kv[0])),
        sessions=len(sessions),
        open_sessions=sum(1 for s in sessions if s.is_open),
        clients=clients,
        topics=sorted(topics.items(), key=lambda kv: (-kv[1], kv[0]))[:top_topics],
        payload_bytes=sum(e.payload_size or 0 for e in events),
    )
