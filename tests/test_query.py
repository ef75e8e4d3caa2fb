from datetime import datetime, timezone
from urllib.parse import parse_qsl

import pytest

from watchmqtt.query import (
    FilterState, TimeRange, build_event_params, build_query_string, contains_filter, ilike_contains,
    in_filter, list_params, pagination_params, quote_value, time_range_start,
)

NOW = datetime(2024, 5, 10, 12, 0, 0, tzinfo=timezone.utc)


def params_dict(params):
    return dict(params)


class TestTimeRange:
    def test_hours(self):
        assert TimeRange.LAST_HOUR.hours == 1
        assert TimeRange.LAST_7_DAYS.hours == 168
        assert TimeRange.ALL.hours is None

    def test_parse_with_default(self):
        assert TimeRange.parse("6h") is TimeRange.LAST_6_HOURS
        assert TimeRange.parse("bogus", TimeRange.LAST_24_HOURS) is TimeRange.LAST_24_HOURS

    def test_parse_without_default_raises(self):
        with pytest.raises(ValueError):
            TimeRange.parse("bogus")

    def test_start_is_utc_with_millis(self):
        assert time_range_start(TimeRange.LAST_HOUR, NOW) == "2024-05-10T11:00:00.000Z"

    def test_naive_now_treated_as_utc(self):
        assert time_range_start(TimeRange.LAST_24_HOURS, NOW.replace(tzinfo=None)) == \
            "2024-05-09T12:00:00.000Z"

    def test_all_has_no_start(self):
        assert time_range_start(TimeRange.ALL, NOW) is None


class TestQuoting:
    def test_plain_value_untouched(self):
        assert quote_value("sensors/temp") == "sensors/temp"

    def test_reserved_characters_quoted(self):
        assert quote_value("a,b") == '"a,b"'
        assert quote_value("f(x)") == '"f(x)"'

    def test_quotes_and_backslashes_escaped(self):
        assert quote_value('say "hi"') == '"say \\"hi\\""'
        assert quote_value("a\\b") == '"a\\\\b"'

    def test_in_filter(self):
        assert in_filter(["connected", "publish"]) == "in.(connected,publish)"

    def test_ilike_contains(self):
        assert ilike_contains("topic", "temp") == "topic.ilike.*temp*"

    def test_contains_filter(self):
        assert contains_filter("dev") == "ilike.*dev*"
        assert contains_filter(" dev ") == "ilike.*dev*"
        assert contains_filter("a,b") == 'ilike."*a,b*"'


class TestPagination:
    def test_first_page(self):
        assert pagination_params(1, 50) == [("limit", "50"), ("offset", "0")]

    def test_second_page(self):
        assert pagination_params(2, 50) == [("limit", "50"), ("offset", "50")]

    @pytest.mark.parametrize("page,size", [(0, 50), (1, 0), (-3, 10)])
    def test_invalid(self, page, size):
        with pytest.raises(ValueError):
            pagination_params(page, size)


class TestBuildEventParams:
    def test_empty_filters(self):
        params = build_event_params(FilterState(), page=1, now=NOW)
        assert params == [
            ("limit", "50"),
            ("offset", "0"),
            ("order", "ts.desc"),
            ("ts", "gte.2024-05-09T12:00:00.000Z"),
        ]

    def test_no_pagination_for_export(self):
        params = params_dict(build_event_params(FilterState(time_range=TimeRange.ALL), now=NOW))
        assert "limit" not in params
        assert "offset" not in params
        assert "ts" not in params
        assert params["order"] == "ts.desc"

    def test_actions_in_clause(self):
        filters = FilterState(actions=("connected", "disconnected"))
        params = params_dict(build_event_params(filters, page=1, now=NOW))
        assert params["action"] == "in.(connected,disconnected)"

    def test_or_within_and_across_dimensions(self):
        filters = FilterState(topics=("temp", "humidity"), clients=("dev1",), usernames=("alice",))
        params = params_dict(build_event_params(filters, page=1, now=NOW))
        assert params["and"] == (
            "(or(topic.ilike.*temp*,topic.ilike.*humidity*),"
            "or(og_client.ilike.*dev1*),"
            "or(username.ilike.*alice*))"
        )

    def test_blank_substring_values_skipped(self):
        filters = FilterState(topics=("  ",))
        params = params_dict(build_event_params(filters, page=1, now=NOW))
        assert "and" not in params

    def test_qos_and_retain(self):
        filters = FilterState(qos=("0", "2"), retain_only=True)
        params = params_dict(build_event_params(filters, page=1, now=NOW))
        assert params["qos"] == "in.(0,2)"
        assert params["retain"] == "eq.true"

    def test_parameter_order(self):
        filters = FilterState(actions=("publish",), topics=("t",), qos=("1",), retain_only=True)
        keys = [k for k, _ in build_event_params(filters, page=3, page_size=20, now=NOW)]
        assert keys == ["limit", "offset", "order", "action", "and", "qos", "retain", "ts"]

    def test_query_string_is_urlencoded(self):
        filters = FilterState(actions=("publish",), time_range=TimeRange.ALL)
        qs = build_query_string(filters, page=2, page_size=50)
        assert qs.startswith("limit=50&offset=50&order=ts.desc")
        assert parse_qsl(qs)[-1] == ("action", "in.(publish)")

    def test_filter_state_helpers(self):
        assert FilterState().is_empty
        assert not FilterState(retain_only=True).is_empty
        changed = FilterState(actions=("a",)).with_time_range(TimeRange.LAST_HOUR)
        assert changed.actions == ("a",)
        assert changed.time_range is TimeRange.LAST_HOUR


class TestListParams:
    def test_defaults(self):
        assert list_params() == [("offset", "0"), ("limit", "20")]

    def test_order_and_filters(self):
        params = list_params(offset=40, limit=20, order="start_ts.desc", filters={"end_ts": "is.null"})
        assert params == [("offset", "40"), ("limit", "20"), ("order", "start_ts.desc"), ("end_ts", "is.null")]

    def test_negative_offset_clamped(self):
        assert list_params(offset=-5)[0] == ("offset", "0")
