from datetime import datetime, timedelta, timezone

import httpx
import pytest

from watchmqtt.actions import ActionCache
from watchmqtt.client import ApiClient, ApiError
from watchmqtt.models import Event, PageResult, Session
from watchmqtt.query import FilterState, TimeRange
from watchmqtt.services import (
    ACTION_SAMPLE_QUERIES, EventListController, EventsService, ListService, RequestSequencer,
    bucket_connection_events, client_activity_report, summarize_users,
)

NOW = datetime(2024, 5, 10, 12, 0, 0, tzinfo=timezone.utc)


def event_row(i, action="publish", **extra):
    row = {"id": i, "ts": "2024-05-10T11:00:00Z", "action": action, "client": f"c{i}",
           "og_client": f"dev-{i}", "username": "alice", "topic": "home/temp",
           "qos": 1, "retain": False, "payload_size": 10}
    row.update(extra)
    return row


def api(handler):
    return ApiClient("http://api.test", transport=httpx.MockTransport(handler))


def page(rows, page_no=1):
    return PageResult(rows=rows, total_items=len(rows), total_pages=1, page=page_no, page_size=50)


class StubService:
    def __init__(self, *responses):
        self.responses = list(responses)

    def fetch_page(self, filters, page=1, now=None):
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class TestRequestSequencer:
    def test_only_latest_is_current(self):
        seq = RequestSequencer()
        first = seq.next()
        second = seq.next()
        assert second > first
        assert not seq.is_current(first)
        assert seq.is_current(second)
        assert seq.latest == second

    def test_targets_sequence_independently(self):
        chart, listing = RequestSequencer(), RequestSequencer()
        slow_chart = chart.next()
        list_token = listing.next()
        fresh_chart = chart.next()
        assert listing.is_current(list_token)
        assert not chart.is_current(slow_chart)
        assert chart.is_current(fresh_chart)

    def test_out_of_order_completion(self):
        seq = RequestSequencer()
        applied = []
        tokens = [seq.next() for _ in range(3)]
        for token in reversed(tokens):
            if seq.is_current(token):
                applied.append(token)
        assert applied == [tokens[-1]]


class TestEventsService:
    def test_fetch_page(self):
        seen = {}

        def handler(request):
            seen["params"] = list(request.url.params.multi_items())
            return httpx.Response(200, json=[event_row(1)], headers={"Content-Range": "50-50/51"})

        service = EventsService(api(handler), page_size=50)
        result = service.fetch_page(FilterState(actions=("publish",)), page=2, now=NOW)
        assert ("offset", "50") in seen["params"]
        assert ("action", "in.(publish)") in seen["params"]
        assert result.total_items == 51
        assert result.total_pages == 2
        assert isinstance(result.rows[0], Event)
        assert result.rows[0].display_client == "dev-1"

    def test_fetch_all_has_no_pagination(self):
        seen = {}

        def handler(request):
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json=[event_row(1), event_row(2)])

        events = EventsService(api(handler)).fetch_all(FilterState(time_range=TimeRange.ALL))
        assert "limit" not in seen["params"]
        assert "offset" not in seen["params"]
        assert [e.id for e in events] == [1, 2]

    def test_sample_actions_falls_back_to_second_query(self):
        calls = []

        def handler(request):
            calls.append(dict(request.url.params))
            if len(calls) == 1:
                return httpx.Response(400)
            return httpx.Response(200, json=[{"action": "publish"}, {"action": None}, {"action": "x"}])

        actions = EventsService(api(handler)).sample_actions()
        assert set(actions) >= {"publish", "x"}
        assert None not in actions
        assert calls[0]["limit"] == dict(ACTION_SAMPLE_QUERIES[0])["limit"]
        assert calls[1]["limit"] == dict(ACTION_SAMPLE_QUERIES[1])["limit"]

    def test_sample_actions_raises_when_all_fail(self):
        service = EventsService(api(lambda r: httpx.Response(503)))
        with pytest.raises(ApiError):
            service.sample_actions()


class TestEventListController:
    def test_complete_applies_result(self):
        controller = EventListController(StubService())
        token = controller.begin(1)
        assert controller.view.loading
        assert controller.complete(token, page([Event.from_dict(event_row(1))]))
        assert not controller.view.loading
        assert controller.view.last_updated is not None

    def test_stale_response_dropped(self):
        controller = EventListController(StubService())
        old = controller.begin(1)
        new = controller.begin(2)
        newest = page([Event.from_dict(event_row(2))], page_no=2)
        assert controller.complete(new, newest)
        assert not controller.complete(old, page([Event.from_dict(event_row(1))]))
        assert controller.view.result is newest
        assert controller.view.current_page == 2

    def test_failure_keeps_last_good_page(self):
        good = page([Event.from_dict(event_row(1))])
        controller = EventListController(StubService())
        assert controller.complete(controller.begin(1), good)
        assert controller.fail(controller.begin(2), "Request failed with status code 500")
        assert controller.view.result is good
        assert controller.view.error == "Request failed with status code 500"
        assert not controller.view.loading

    def test_malformed_rows_end_as_error(self):
        good = page([Event.from_dict(event_row(1))])
        service = EventsService(api(lambda r: httpx.Response(200, json=["oops", 1])))
        controller = EventListController(service)
        controller.complete(controller.begin(1), good)
        token = controller.begin(2)
        with pytest.raises(ApiError) as exc:
            service.fetch_page(FilterState(), 2)
        assert controller.fail(token, str(exc.value))
        assert controller.view.error.startswith("Expected a JSON array of rows")
        assert controller.view.result is good
        assert not controller.view.loading

    def test_stale_failure_ignored(self):
        controller = EventListController(StubService())
        old = controller.begin(1)
        controller.begin(1)
        assert not controller.fail(old, "boom")
        assert controller.view.error is None

    def test_new_actions_observed(self):
        cache = ActionCache(lambda: ["publish"])
        controller = EventListController(StubService(), cache)
        token = controller.begin(1)
        controller.complete(token, page([Event.from_dict(event_row(1, action="brand_new"))]))
        assert controller.view.discovered == ["brand_new"]
        assert "brand_new" in cache


class TestListService:
    def test_sessions_page(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json=[{"id": 1, "client": "c1", "start_ts": "2024-05-10T10:00:00Z"}],
                                  headers={"Content-Range": "20-20/21"})

        result = ListService(api(handler)).sessions_page(page=2, page_size=20, filters={"end_ts": "is.null"})
        assert seen["path"] == "/sessions"
        assert seen["params"] == {"offset": "20", "limit": "20", "order": "start_ts.desc", "end_ts": "is.null"}
        assert result.total_pages == 2
        assert isinstance(result.rows[0], Session)

    def test_connection_events_query(self):
        seen = {}

        def handler(request):
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json=[])

        ListService(api(handler)).connection_events(NOW - timedelta(hours=1))
        assert seen["params"]["ts"] == "gte.2024-05-10T11:00:00.000Z"
        assert seen["params"]["action"] == "in.(connected,disconnected)"
        assert seen["params"]["order"] == "ts.asc"

    def test_topic_activity(self):
        def handler(request):
            assert request.url.path == "/topic_activity"
            return httpx.Response(200, json=[{"topic": "a/b", "messages": 3}])

        topics = ListService(api(handler)).topic_activity()
        assert topics[0].topic == "a/b"
        assert topics[0].fields == {"messages": 3}


class TestSummaries:
    def test_summarize_users(self):
        sessions = [Session(id=i, client=f"c{i}", start_ts="", username=name)
                    for i, name in enumerate(["bob", "alice", "bob", None, "alice", "carol"])]
        assert summarize_users(sessions, top=3) == [("alice", 2), ("bob", 2), ("Unknown", 1)]

    def test_bucket_connection_events(self):
        start = datetime(2024, 5, 10, 11, 0, tzinfo=timezone.utc)
        events = [
            Event(id=1, ts="2024-05-10T11:02:00Z", action="connected"),
            Event(id=2, ts="2024-05-10T11:07:00Z", action="disconnected"),
            Event(id=3, ts="2024-05-10T11:08:00Z", action="connected"),
            Event(id=4, ts="2024-05-10T10:59:00Z", action="connected"),
            Event(id=5, ts="2024-05-10T12:00:00Z", action="connected"),
            Event(id=6, ts="2024-05-10T11:30:00Z", action="publish"),
        ]
        buckets = bucket_connection_events(events, start, hours=1, granularity_minutes=5)
        assert len(buckets) == 12
        assert buckets[0] == {"time": start, "connects": 1, "disconnects": 0}
        assert buckets[1]["connects"] == 1
        assert buckets[1]["disconnects"] == 1
        assert sum(b["connects"] for b in buckets) == 2

    def test_client_activity_report(self):
        events = [Event.from_dict(event_row(1)), Event.from_dict(event_row(2, action="connected", topic=None)),
                  Event.from_dict(event_row(3, payload_size=None))]
        sessions = [Session(id=1, client="c1", start_ts="2024-05-10T10:00:00Z"),
                    Session(id=2, client="c9", start_ts="2024-05-10T09:00:00Z",
                            end_ts="2024-05-10T09:05:00Z")]
        report = client_activity_report("alice", events, sessions)
        assert report.total_events == 3
        assert report.events_by_action == [("publish", 2), ("connected", 1)]
        assert report.sessions == 2
        assert report.open_sessions == 1
        assert report.topics == [("home/temp", 2)]
        assert report.payload_bytes == 20
        assert report.clients == ["c1", "c9", "dev-1", "dev-2", "dev-3"]
