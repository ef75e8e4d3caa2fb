"""Sessions page: connect/disconnect chart and the session list."""

from datetime import datetime, timedelta, timezone

from nicegui import run, ui

import watchmqtt.web.state as state
from watchmqtt.client import ApiError
from watchmqtt.services import SESSION_CHART_RANGES, RequestSequencer, bucket_connection_events
from watchmqtt.logging_config import get_logger
from watchmqtt.web.components.error_banner import error_banner
from watchmqtt.web.pages._shared import auto_refresh, format_timestamp, page_frame, pagination_bar

logger = get_logger(__name__)

PAGE_SIZE = 20

COLUMNS = [
    {'name': 'client', 'label': 'Client', 'field': 'client', 'align': 'left'},
    {'name': 'username', 'label': 'Username', 'field': 'username', 'align': 'left'},
    {'name': 'start', 'label': 'Started', 'field': 'start', 'align': 'left'},
    {'name': 'end', 'label': 'Ended', 'field': 'end', 'align': 'left'},
    {'name': 'duration', 'label': 'Duration', 'field': 'duration', 'align': 'left'},
    {'name': 'protocol', 'label': 'Protocol', 'field': 'protocol', 'align': 'left'},
    {'name': 'address', 'label': 'Address', 'field': 'address', 'align': 'left'},
    {'name': 'tls', 'label': 'TLS', 'field': 'tls', 'align': 'left'},
]


def _chart_start(hours: int, granularity_minutes: int) -> datetime:
    """Bucket-aligned start so the last bucket ends at the current interval."""
    now = datetime.now(timezone.utc)
    step = granularity_minutes * 60
    aligned = datetime.fromtimestamp(int(now.timestamp()) // step * step, tz=timezone.utc)
    return aligned + timedelta(minutes=granularity_minutes) - timedelta(hours=hours)


def _chart_options(buckets: list[dict], hours: int) -> dict:
    fmt = '%H:%M' if hours <= 24 else '%m-%d %H:%M'
    labels = [b['time'].astimezone().strftime(fmt) for b in buckets]
    return {
        'tooltip': {'trigger': 'axis'},
        'legend': {'data': ['Connects', 'Disconnects'], 'bottom': 0},
        'grid': {'left': '3%', 'right': '4%', 'bottom': '12%', 'containLabel': True},
        'xAxis': {'type': 'category', 'data': labels},
        'yAxis': {'type': 'value', 'minInterval': 1},
        'series': [
            {'name': 'Connects', 'type': 'bar', 'data': [b['connects'] for b in buckets],
             'itemStyle': {'color': '#10b981'}},
            {'name': 'Disconnects', 'type': 'bar', 'data': [b['disconnects'] for b in buckets],
             'itemStyle': {'color': '#ef4444'}},
        ],
    }


def _session_rows(sessions) -> list[dict]:
    rows = []
    for s in sessions:
        tls = s.tls_version or ''
        if s.tls_cipher:
            tls = f'{tls} ({s.tls_cipher})' if tls else s.tls_cipher
        protocol = s.protocol or ''
        if s.protocol_version:
            protocol = f'{protocol} {s.protocol_version}'.strip()
        rows.append({
            'key': s.id if s.id is not None else f'{s.client}-{s.start_ts}',
            'client': s.client or '-',
            'username': s.username or '-',
            'start': format_timestamp(s.start_ts),
            'end': format_timestamp(s.end_ts) if s.end_ts else 'open',
            'duration': s.duration,
            'protocol': protocol or '-',
            'address': s.ip_port,
            'tls': tls or '-',
        })
    return rows


@ui.page('/sessions')
def sessions_page():
    ranges = {label: (hours, minutes) for label, hours, minutes in SESSION_CHART_RANGES}
    data = {'range': '24h', 'buckets': None, 'chart_error': None,
            'buckets_hours': None, 'result': None, 'list_error': None, 'page': 1, 'open_only': False}

    chart_requests = RequestSequencer()
    list_requests = RequestSequencer()

    async def load_chart():
        hours, minutes = ranges[data['range']]
        start = _chart_start(hours, minutes)
        token = chart_requests.next()
        try:
            events, error = await run.io_bound(state.list_service.connection_events, start), None
        except ApiError as ex:
            events, error = None, str(ex)
        if not chart_requests.is_current(token):
            return
        if error:
            logger.warning("Session chart fetch failed: %s", error)
        else:
            data['buckets'] = bucket_connection_events(events, start, hours, minutes)
            data['buckets_hours'] = hours
        data['chart_error'] = error
        chart.refresh()

    async def load_list(page: int | None = None):
        page = page or data['page']
        filters = {'end_ts': 'is.null'} if data['open_only'] else None
        token = list_requests.next()
        try:
            result, error = await run.io_bound(state.list_service.sessions_page, page, PAGE_SIZE, filters), None
        except ApiError as ex:
            result, error = None, str(ex)
        if not list_requests.is_current(token):
            return
        if error:
            logger.warning("Sessions fetch failed: %s", error)
        else:
            data['result'], data['page'] = result, page
            store.update()
        data['list_error'] = error
        session_list.refresh()

    async def load():
        await load_chart()
        await load_list()

    async def _on_range(e):
        data['range'] = e.value
        await load_chart()

    async def _on_open_only(e):
        data['open_only'] = bool(e.value)
        await load_list(1)

    store = page_frame('sessions', 'Sessions', 'Client connection history', on_refresh=load)

    with ui.row().classes('items-center gap-4'):
        ui.toggle([label for label, _, _ in SESSION_CHART_RANGES], value=data['range'], on_change=_on_range)

    @ui.refreshable
    def chart():
        if data['chart_error']:
            error_banner(data['chart_error'], on_retry=load_chart, title='Failed to load chart')
        if data['buckets'] is None:
            return
        ui.echart(_chart_options(data['buckets'], data['buckets_hours'])).classes('w-full').style('height: 300px')

    chart()

    ui.separator().classes('q-my-md')
    with ui.row().classes('items-center gap-4'):
        ui.label('Sessions').classes('text-h6')
        ui.switch('Open only', value=False, on_change=_on_open_only)

    @ui.refreshable
    def session_list():
        if data['list_error']:
            error_banner(data['list_error'], on_retry=load_list)
        result = data['result']
        if result is None:
            return
        if result.is_empty:
            ui.label('No sessions found.').classes('text-grey-7 q-pa-md')
            return
        ui.table(columns=COLUMNS, rows=_session_rows(result.rows), row_key='key', pagination=0).classes(
            'w-full'
        ).props('dense flat bordered')
        pagination_bar(result, load_list)

    session_list()
    auto_refresh(store, load)
    ui.timer(0, load, once=True)
