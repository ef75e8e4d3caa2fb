"""Clients page: top users by open sessions and the paginated client list."""

from nicegui import run, ui

import watchmqtt.web.state as state
from watchmqtt.client import ApiError
from watchmqtt.query import contains_filter
from watchmqtt.services import RequestSequencer, summarize_users
from watchmqtt.logging_config import get_logger
from watchmqtt.web.components.error_banner import error_banner
from watchmqtt.web.pages._shared import auto_refresh, format_timestamp, page_frame, pagination_bar

logger = get_logger(__name__)

PAGE_SIZE = 20
TOP_USERS = 5

COLUMNS = [
    {'name': 'client', 'label': 'Client', 'field': 'client', 'align': 'left'},
    {'name': 'username', 'label': 'Username', 'field': 'username', 'align': 'left'},
    {'name': 'first_seen', 'label': 'First seen', 'field': 'first_seen', 'align': 'left'},
    {'name': 'last_seen', 'label': 'Last seen', 'field': 'last_seen', 'align': 'left'},
]


@ui.page('/clients')
def clients_page():
    data = {'top': None, 'top_error': None, 'result': None, 'error': None, 'page': 1, 'search': ''}

    top_requests = RequestSequencer()
    list_requests = RequestSequencer()

    async def load_top():
        token = top_requests.next()
        try:
            sessions, error = await run.io_bound(state.list_service.active_sessions), None
        except ApiError as ex:
            sessions, error = None, str(ex)
        if not top_requests.is_current(token):
            return
        if error:
            logger.warning("Active sessions fetch failed: %s", error)
        else:
            data['top'] = summarize_users(sessions, top=TOP_USERS)
        data['top_error'] = error
        top_users.refresh()

    async def load_list(page: int | None = None):
        page = page or data['page']
        filters = {'client': contains_filter(data['search'])} if data['search'] else None
        token = list_requests.next()
        try:
            result, error = await run.io_bound(state.list_service.clients_page, page, PAGE_SIZE, filters), None
        except ApiError as ex:
            result, error = None, str(ex)
        if not list_requests.is_current(token):
            return
        if error:
            logger.warning("Clients fetch failed: %s", error)
        else:
            data['result'], data['page'] = result, page
            store.update()
        data['error'] = error
        client_list.refresh()

    async def load():
        await load_top()
        await load_list()

    async def _search():
        data['search'] = (search_input.value or '').strip()
        await load_list(1)

    store = page_frame('clients', 'Clients', 'Known MQTT clients', on_refresh=load)

    @ui.refreshable
    def top_users():
        if data['top_error']:
            error_banner(data['top_error'], on_retry=load_top, title='Failed to load top users')
        top = data['top']
        if top is None:
            return
        ui.label(f'Top {TOP_USERS} users by open sessions').classes('text-h6')
        if not top:
            ui.label('No open sessions.').classes('text-grey-7')
            return
        with ui.row().classes('gap-3'):
            for name, count in top:
                with ui.card().classes('q-pa-sm').props('flat bordered').style('min-width: 140px'):
                    ui.label(name).classes('text-weight-medium')
                    ui.label(f'{count} session{"s" if count != 1 else ""}').classes('text-caption text-grey-7')

    top_users()

    ui.separator().classes('q-my-md')
    with ui.row().classes('items-center gap-2'):
        search_input = ui.input(placeholder='Search client ID...').props('dense outlined clearable').style(
            'min-width: 260px'
        )
        search_input.on('keydown.enter', _search)
        ui.button('Search', icon='search', on_click=_search).props('flat')

    @ui.refreshable
    def client_list():
        if data['error']:
            error_banner(data['error'], on_retry=load_list)
        result = data['result']
        if result is None:
            return
        if result.is_empty:
            ui.label('No clients found.').classes('text-grey-7 q-pa-md')
            return
        rows = [
            {
                'key': c.id if c.id is not None else c.client,
                'client': c.client,
                'username': c.username or '-',
                'first_seen': format_timestamp(c.first_seen),
                'last_seen': format_timestamp(c.last_seen),
            }
            for c in result.rows
        ]
        ui.table(columns=COLUMNS, rows=rows, row_key='key', pagination=0).classes('w-full').props(
            'dense flat bordered'
        )
        pagination_bar(result, load_list)

    client_list()
    auto_refresh(store, load)
    ui.timer(0, load, once=True)
