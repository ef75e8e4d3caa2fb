"""Topics page: per-topic activity as reported by the API."""

from datetime import datetime

from nicegui import run, ui

import watchmqtt.web.state as state
from watchmqtt.client import ApiError
from watchmqtt.logging_config import get_logger
from watchmqtt.services import RequestSequencer
from watchmqtt.web.components.error_banner import error_banner
from watchmqtt.web.pages._shared import auto_refresh, last_updated_label, page_frame

logger = get_logger(__name__)


def _columns(topics) -> list[dict]:
    keys = []
    for t in topics:
        for key in t.fields:
            if key not in keys:
                keys.append(key)
    columns = [{'name': 'topic', 'label': 'Topic', 'field': 'topic', 'align': 'left', 'sortable': True}]
    for key in keys:
        columns.append({
            'name': key,
            'label': key.replace('_', ' ').title(),
            'field': key,
            'align': 'left',
            'sortable': True,
        })
    return columns


@ui.page('/topics')
def topics_page():
    data = {'topics': None, 'error': None, 'updated': None}

    requests = RequestSequencer()

    async def load():
        token = requests.next()
        try:
            topics, error = await run.io_bound(state.list_service.topic_activity), None
        except ApiError as ex:
            topics, error = None, str(ex)
        if not requests.is_current(token):
            return
        if error:
            logger.warning("Topic activity fetch failed: %s", error)
        else:
            data['topics'] = topics
            data['updated'] = datetime.now()
            store.update()
        data['error'] = error
        body.refresh()

    store = page_frame('topics', 'Topics', 'Message activity per topic', on_refresh=load)
    search = ui.input(placeholder='Filter topics...', on_change=lambda: body.refresh()).props(
        'dense outlined clearable'
    ).classes('q-mb-sm').style('min-width: 300px')

    @ui.refreshable
    def body():
        if data['error']:
            error_banner(data['error'], on_retry=load)
        last_updated_label(data['updated'])
        topics = data['topics']
        if topics is None:
            return
        needle = (search.value or '').lower()
        if needle:
            topics = [t for t in topics if needle in t.topic.lower()]
        if not topics:
            ui.label('No topic activity found.').classes('text-grey-7 q-pa-md')
            return
        rows = [{'topic': t.topic, **t.fields} for t in topics]
        ui.table(columns=_columns(topics), rows=rows, row_key='topic',
                 pagination={'rowsPerPage': 25}).classes('w-full').props('dense flat bordered')

    body()
    auto_refresh(store, load)
    ui.timer(0, load, once=True)
