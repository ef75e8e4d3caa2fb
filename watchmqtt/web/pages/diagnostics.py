"""Diagnostics page: health tiles, overall status and the raw gauge values."""

from datetime import datetime

from nicegui import ui

from watchmqtt.client import ApiError
from watchmqtt.logging_config import get_logger
from watchmqtt.web.components.error_banner import error_banner
from watchmqtt.web.components.health_tiles import health_tiles, overall_tile
from watchmqtt.web.pages._shared import auto_refresh, fetch_health, last_updated_label, page_frame

logger = get_logger(__name__)


@ui.page('/diagnostics')
def diagnostics_page():
    data = {'health': None, 'metrics': [], 'error': None, 'updated': None}

    async def load():
        try:
            data['health'], data['metrics'] = await fetch_health()
        except ApiError as ex:
            logger.warning("Diagnostics refresh failed: %s", ex)
            data['error'] = str(ex)
        else:
            data['error'] = None
            data['updated'] = datetime.now()
            store.update()
        body.refresh()

    store = page_frame('diagnostics', 'Diagnostics', 'Database and Prometheus health', on_refresh=load)

    @ui.refreshable
    def body():
        if data['error']:
            error_banner(data['error'], on_retry=load, title='Health check failed')
        with ui.row().classes('w-full items-center justify-between'):
            overall_tile(data['metrics'])
            last_updated_label(data['updated'])

        if not data['metrics']:
            return
        ui.label('Checks').classes('text-h6 q-mt-md')
        health_tiles(data['metrics'])

        health = data['health']
        with ui.expansion(f'Raw gauges ({health.datname})', icon='data_object').classes('w-full q-mt-md'):
            rows = [{'name': name, 'value': value} for name, value in health.gauges()]
            ui.table(
                columns=[
                    {'name': 'name', 'label': 'Gauge', 'field': 'name', 'align': 'left'},
                    {'name': 'value', 'label': 'Value', 'field': 'value', 'align': 'right'},
                ],
                rows=rows,
                row_key='name',
            ).classes('w-full').props('dense flat')

    body()
    auto_refresh(store, load)
    ui.timer(0, load, once=True)
