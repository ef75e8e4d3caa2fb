import csv
import io
from datetime import date

from watchmqtt.models import Event
from watchmqtt.query import TimeRange

CSV_COLUMNS = ("Timestamp", "Action", "Client", "Username", "Topic", "QoS", "Retain", "Payload Size")


def event_row(event: Event) -> list[str]:
    return [
        event.ts,
        event.action,
        event.display_client,
        event.username or "",
        event.topic or "",
        "" if event.qos is None else str(event.qos),
        "true" if event.retain else "false",
        str(event.payload_size or 0),
    ]


def events_to_csv(events) -> str:
    """Serialize events with a header row; every field quoted, quotes doubled."""
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for event in events:
        writer.writerow(event_row(event))
    return buf.getvalue()


def export_filename(time_range: TimeRange, today: date | None = None) -> str:
    today = today or date.today()
    return f"events_{TimeRange(time_range).value}_{today.isoformat()}.csv"
