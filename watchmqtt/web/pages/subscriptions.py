"""Subscriptions page: paginated subscription list."""

from nicegui import run, ui

import watchmqtt.web.state as state
from watchmqtt.client import ApiError
from watchmqtt.logging_config import get_logger
from watchmqtt.services import RequestSequencer
from watchmqtt.web.components.error_banner import error_banner
from watchmqtt.web.pages._shared import auto_refresh, format_timestamp, page_frame, pagination_bar

logger = get_logger(__name__)

PAGE_SIZE = 20

COLUMNS = [
    {'name': 'client', 'label': 'Client', 'field': 'client', 'align': 'left'},
    {'name': 'topic', 'label': 'Topic', 'field': 'topic', 'align': 'left'},
    {'name': 'qos', 'label': 'QoS', 'field': 'qos', 'align': 'center'},
    {'name': 'active', 'label': 'Active', 'field': 'active', 'align': 'center'},
    {'name': 'created_at', 'label': 'Created', 'field': 'created_at', 'align': 'left'},
    {'name': 'updated_at', 'label': 'Updated', 'field': 'updated_at', 'align': 'left'},
]


@ui.page('/subscriptions')
def subscriptions_page():
    data = {'result': None, 'error': None, 'page': 1, 'active_only': False}

    requests = RequestSequencer()

    async def load(page: int | None = None):
        page = page or data['page']
        filters = {'active': 'eq.true'} if data['active_only'] else None
        token = requests.next()
        try:
            result, error = await run.io_bound(state.list_service.subscriptions_page, page, PAGE_SIZE, filters), None
        except ApiError as ex:
            result, error = None, str(ex)
        if not requests.is_current(token):
            return
        if error:
            logger.warning("Subscriptions fetch failed: %s", error)
        else:
            data['result'], data['page'] = result, page
            store.update()
        data['error'] = error
        body.refresh()

    async def _toggle_active(e):
        data['active_only'] = bool(e.value)
        await load(1)

    store = page_frame('subscriptions', 'Subscriptions', 'Topic subscriptions by client', on_refresh=load)
    ui.switch('Active only', value=False, on_change=_toggle_active)

    @ui.refreshable
    def body():
        if data['error']:
            error_banner(data['error'], on_retry=load)
        result = data['result']
        if result is None:
            return
        if result.is_empty:
            ui.label('No subscriptions found.').classes('text-grey-7 q-pa-md')
            return
        rows = [
            {
                'key': s.id if s.id is not None else f'{s.client}-{s.topic}',
                'client': s.client,
                'topic': s.topic,
                'qos': '-' if s.qos is None else s.qos,
                'active': 'yes' if s.active else 'no',
                'created_at': format_timestamp(s.created_at),
                'updated_at': format_timestamp(s.updated_at),
            }
            for s in result.rows
        ]
        ui.table(columns=COLUMNS, rows=rows, row_key='key', pagination=0).classes('w-full').props(
            'dense flat bordered'
        )
        pagination_bar(result, load)

    body()
    auto_refresh(store, load)
    ui.timer(0, load, once=True)
