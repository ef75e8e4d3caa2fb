"""Overview page: overall health plus broker activity counters."""

from nicegui import run, ui

import watchmqtt.web.state as state
from watchmqtt.client import ApiError
from watchmqtt.query import FilterState, TimeRange
from watchmqtt.logging_config import get_logger
from watchmqtt.web.components.error_banner import error_banner
from watchmqtt.web.components.health_tiles import overall_tile
from watchmqtt.web.pages._shared import auto_refresh, fetch_health, page_frame

logger = get_logger(__name__)


def _counter_card(label: str, value, icon: str):
    with ui.card().classes('q-pa-md').props('flat bordered').style('min-width: 200px'):
        with ui.row().classes('items-center gap-3 no-wrap'):
            ui.icon(icon, size='md', color='primary')
            with ui.column().classes('gap-0'):
                ui.label(label).classes('text-caption text-grey-7')
                ui.label('-' if value is None else str(value)).classes('text-h5')


async def _load_counts() -> dict:
    events = await run.io_bound(
        state.events_service.fetch_page, FilterState(time_range=TimeRange.LAST_24_HOURS), 1
    )
    sessions = await run.io_bound(state.list_service.active_sessions)
    subscriptions = await run.io_bound(state.list_service.active_subscriptions)
    return {
        'events': events.total_items,
        'sessions': len(sessions),
        'subscriptions': len(subscriptions),
        'clients': len({s.client for s in sessions if s.client}),
    }


@ui.page('/')
def overview_page():
    data = {'metrics': None, 'counts': {}, 'health_error': None, 'counts_error': None}

    async def load():
        try:
            _, data['metrics'] = await fetch_health()
            data['health_error'] = None
        except ApiError as ex:
            logger.warning("Health fetch failed: %s", ex)
            data['health_error'] = str(ex)
        try:
            data['counts'] = await _load_counts()
            data['counts_error'] = None
        except ApiError as ex:
            logger.warning("Overview counters failed: %s", ex)
            data['counts_error'] = str(ex)
        if not data['health_error'] or not data['counts_error']:
            store.update()
        body.refresh()

    store = page_frame('overview', 'Overview', 'Broker health and activity at a glance', on_refresh=load)

    @ui.refreshable
    def body():
        if data['health_error']:
            error_banner(data['health_error'], on_retry=load, title='Health check failed')
        if data['counts_error']:
            error_banner(data['counts_error'], on_retry=load, title='Failed to load counters')

        with ui.row().classes('w-full gap-4 items-stretch'):
            overall_tile(data['metrics'] or [])
            counts = data['counts']
            _counter_card('Events (24h)', counts.get('events'), 'list_alt')
            _counter_card('Active sessions', counts.get('sessions'), 'schedule')
            _counter_card('Connected clients', counts.get('clients'), 'devices')
            _counter_card('Active subscriptions', counts.get('subscriptions'), 'rss_feed')

        with ui.row().classes('gap-2 q-mt-md'):
            ui.button('View events', icon='list_alt', on_click=lambda: ui.navigate.to('/events')).props('flat')
            ui.button('View alerts', icon='notifications', on_click=lambda: ui.navigate.to('/alerts')).props('flat')
            ui.button('Diagnostics', icon='monitor_heart',
                      on_click=lambda: ui.navigate.to('/diagnostics')).props('flat')

    body()
    auto_refresh(store, load)
    ui.timer(0, load, once=True)
