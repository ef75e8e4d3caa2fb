"""Alerts page: failing or degraded health checks shown as alert rows."""

from datetime import datetime

from nicegui import ui

from watchmqtt.client import ApiError
from watchmqtt.health import health_alerts
from watchmqtt.logging_config import get_logger
from watchmqtt.web.components.error_banner import error_banner
from watchmqtt.web.pages._shared import auto_refresh, fetch_health, last_updated_label, page_frame

logger = get_logger(__name__)

COLUMNS = [
    {'name': 'severity', 'label': 'Severity', 'field': 'severity', 'align': 'left'},
    {'name': 'rule', 'label': 'Rule', 'field': 'rule', 'align': 'left'},
    {'name': 'description', 'label': 'Description', 'field': 'description', 'align': 'left'},
    {'name': 'since', 'label': 'Since', 'field': 'since', 'align': 'left'},
    {'name': 'status', 'label': 'Status', 'field': 'status', 'align': 'left'},
]


@ui.page('/alerts')
def alerts_page():
    data = {'alerts': None, 'error': None, 'updated': None}

    async def load():
        try:
            _, metrics = await fetch_health()
        except ApiError as ex:
            logger.warning("Alerts refresh failed: %s", ex)
            data['error'] = str(ex)
        else:
            data['updated'] = datetime.now()
            data['alerts'] = health_alerts(metrics, since=data['updated'].strftime('%Y-%m-%d %H:%M:%S'))
            data['error'] = None
            store.update()
        body.refresh()

    store = page_frame('alerts', 'Alerts', 'Active alerts derived from health checks', on_refresh=load)

    @ui.refreshable
    def body():
        if data['error']:
            error_banner(data['error'], on_retry=load)
        last_updated_label(data['updated'])
        alerts = data['alerts']
        if alerts is None:
            return
        if not alerts:
            with ui.row().classes('items-center gap-2 q-pa-md'):
                ui.icon('check_circle', color='positive')
                ui.label('No active alerts. All health checks pass.')
            return

        critical = sum(1 for a in alerts if a.severity == 'critical')
        with ui.row().classes('gap-2 q-my-sm'):
            ui.badge(f'{critical} critical', color='negative')
            ui.badge(f'{len(alerts) - critical} warning', color='warning')

        rows = [
            {
                'id': a.id,
                'severity': a.severity,
                'rule': a.rule,
                'description': a.description,
                'since': a.since,
                'status': a.status,
            }
            for a in alerts
        ]
        table = ui.table(columns=COLUMNS, rows=rows, row_key='id').classes('w-full').props('dense flat bordered')
        table.add_slot('body-cell-severity', '''
            <q-td :props="props">
                <q-badge :color="props.value === 'critical' ? 'negative' : 'warning'">
                    {{ props.value }}
                </q-badge>
            </q-td>
        ''')

    body()
    auto_refresh(store, load)
    ui.timer(0, load, once=True)
