from datetime import datetime, timezone

from watchmqtt.models import ClientRecord, Event, Session, Subscription, parse_ts


class TestParseTs:
    def test_z_suffix(self):
        assert parse_ts("2024-05-10T12:00:00Z") == datetime(2024, 5, 10, 12, tzinfo=timezone.utc)

    def test_invalid(self):
        assert parse_ts("not a date") is None
        assert parse_ts(None) is None
        assert parse_ts("") is None


class TestEvent:
    def test_from_dict(self):
        event = Event.from_dict({"id": 7, "ts": "2024-05-10T12:00:00Z", "action": "publish",
                                 "qos": "2", "retain": True, "payload_size": "128"})
        assert event.qos == 2
        assert event.retain is True
        assert event.payload_size == 128
        assert event.display_client == ""

    def test_display_client_prefers_original(self):
        event = Event(id=1, ts="", action="publish", client="internal-7", og_client="sensor-7")
        assert event.display_client == "sensor-7"
        assert Event(id=1, ts="", action="publish", client="internal-7").display_client == "internal-7"


class TestSession:
    def test_open_session(self):
        session = Session(id=1, client="c", start_ts="2024-05-10T12:00:00Z")
        assert session.is_open
        assert session.duration == "ongoing"
        assert session.ip_port == "N/A:N/A"

    def test_duration(self):
        session = Session(id=1, client="c", start_ts="2024-05-10T12:00:00Z",
                          end_ts="2024-05-10T12:02:05Z", ip_address="10.0.0.1", port=1883)
        assert not session.is_open
        assert session.duration == "2m 5s"
        assert session.ip_port == "10.0.0.1:1883"

    def test_short_duration(self):
        session = Session(id=1, client="c", start_ts="2024-05-10T12:00:00Z", end_ts="2024-05-10T12:00:42Z")
        assert session.duration == "42s"


class TestOtherRecords:
    def test_client_record(self):
        record = ClientRecord.from_dict({"id": 3, "client": "dev-3", "username": "bob"})
        assert record.client == "dev-3"
        assert record.last_seen is None

    def test_subscription(self):
        sub = Subscription.from_dict({"id": 1, "client": "dev-1", "topic": "a/#", "qos": 1, "active": True})
        assert sub.active is True
        assert sub.qos == 1
