"""Reports page: client activity report for a username over a date range."""

from datetime import date, datetime, time, timedelta

from nicegui import run, ui

import watchmqtt.web.state as state
from watchmqtt.client import ApiError
from watchmqtt.health import format_bytes
from watchmqtt.services import client_activity_report
from watchmqtt.logging_config import get_logger
from watchmqtt.web.components.error_banner import error_banner
from watchmqtt.web.pages._shared import page_frame

logger = get_logger(__name__)

DEFAULT_DAYS = 7


def _parse_date(value: str | None, fallback: date) -> date:
    try:
        return date.fromisoformat(value) if value else fallback
    except ValueError:
        return fallback


def _report_section(report):
    with ui.row().classes('w-full gap-4 q-mt-md'):
        for label, value in (
            ('Events', report.total_events),
            ('Sessions', report.sessions),
            ('Open sessions', report.open_sessions),
            ('Payload', format_bytes(report.payload_bytes)),
        ):
            with ui.card().classes('q-pa-md').props('flat bordered').style('min-width: 160px'):
                ui.label(label).classes('text-caption text-grey-7')
                ui.label(str(value)).classes('text-h6')

    with ui.row().classes('w-full gap-4 items-start q-mt-md'):
        with ui.column().classes('q-pa-xs').style('width: 48%; min-width: 300px'):
            ui.label('Events by action').classes('text-subtitle1')
            ui.table(
                columns=[
                    {'name': 'action', 'label': 'Action', 'field': 'action', 'align': 'left'},
                    {'name': 'count', 'label': 'Count', 'field': 'count', 'align': 'right'},
                ],
                rows=[{'action': a, 'count': c} for a, c in report.events_by_action],
                row_key='action',
            ).classes('w-full').props('dense flat bordered')
        with ui.column().classes('q-pa-xs').style('width: 48%; min-width: 300px'):
            ui.label('Top topics').classes('text-subtitle1')
            ui.table(
                columns=[
                    {'name': 'topic', 'label': 'Topic', 'field': 'topic', 'align': 'left'},
                    {'name': 'count', 'label': 'Events', 'field': 'count', 'align': 'right'},
                ],
                rows=[{'topic': t, 'count': c} for t, c in report.topics],
                row_key='topic',
            ).classes('w-full').props('dense flat bordered')

    if report.clients:
        ui.label('Clients').classes('text-subtitle1 q-mt-md')
        with ui.row().classes('gap-1'):
            for client in report.clients:
                ui.chip(client).props('dense square')


@ui.page('/reports')
def reports_page():
    page_frame('reports', 'Reports', 'Client activity over a date range')
    today = date.today()
    data = {'report': None, 'error': None}

    async def generate():
        username = (username_input.value or '').strip()
        start_day = _parse_date(start_input.value, today - timedelta(days=DEFAULT_DAYS))
        end_day = _parse_date(end_input.value, today)
        if end_day < start_day:
            ui.notify('End date must not be before start date', type='warning')
            return
        start = datetime.combine(start_day, time.min).astimezone()
        end = datetime.combine(end_day + timedelta(days=1), time.min).astimezone()
        spinner.set_visibility(True)
        try:
            events = await run.io_bound(state.list_service.events_for, username or None, start, end)
            sessions = await run.io_bound(state.list_service.sessions_for, username or None, start, end)
        except ApiError as ex:
            logger.warning("Report generation failed: %s", ex)
            data['error'] = str(ex)
            ui.notify(f'Failed to generate report: {ex}', type='negative')
        else:
            data['report'] = client_activity_report(username or 'All users', events, sessions)
            data['error'] = None
        finally:
            spinner.set_visibility(False)
        body.refresh()

    with ui.card().classes('w-full q-pa-md').props('flat bordered'):
        with ui.row().classes('items-end gap-4'):
            username_input = ui.input('Username', placeholder='All users').props('dense outlined')
            start_input = ui.input('From', value=(today - timedelta(days=DEFAULT_DAYS)).isoformat()).props(
                'dense outlined type=date'
            )
            end_input = ui.input('To', value=today.isoformat()).props('dense outlined type=date')
            ui.button('Generate', icon='assessment', on_click=generate).props('color=primary')
            spinner = ui.spinner(size='sm')
            spinner.set_visibility(False)

    @ui.refreshable
    def body():
        if data['error']:
            error_banner(data['error'], on_retry=generate, title='Report failed')
        report = data['report']
        if report is None:
            ui.label('Choose a user and date range, then generate.').classes('text-grey-7 q-mt-md')
            return
        ui.label(f'Activity for {report.username}').classes('text-h6 q-mt-md')
        if report.total_events == 0 and report.sessions == 0:
            ui.label('No activity in the selected range.').classes('text-grey-7')
            return
        _report_section(report)

    body()
