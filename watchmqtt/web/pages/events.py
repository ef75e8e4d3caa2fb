"""Events page: multi-select filters, paginated table, saved views and CSV export."""

from nicegui import background_tasks, run, ui

import watchmqtt.web.state as state
from watchmqtt.client import ApiError
from watchmqtt.export import events_to_csv, export_filename
from watchmqtt.filters import EventFilterPanel, SavedViews
from watchmqtt.query import TimeRange
from watchmqtt.services import EventListController
from watchmqtt.logging_config import get_logger
from watchmqtt.web.components.error_banner import error_banner
from watchmqtt.web.components.multi_select import multi_select
from watchmqtt.web.pages._shared import (
    auto_refresh, format_payload_size, format_timestamp, last_updated_label, page_frame, pagination_bar,
)

logger = get_logger(__name__)

TIME_RANGE_OPTIONS = {
    TimeRange.LAST_HOUR.value: 'Last hour',
    TimeRange.LAST_6_HOURS.value: 'Last 6 hours',
    TimeRange.LAST_24_HOURS.value: 'Last 24 hours',
    TimeRange.LAST_7_DAYS.value: 'Last 7 days',
    TimeRange.LAST_30_DAYS.value: 'Last 30 days',
    TimeRange.ALL.value: 'All time',
}

COLUMNS = [
    {'name': 'ts', 'label': 'Timestamp', 'field': 'ts', 'align': 'left'},
    {'name': 'action', 'label': 'Action', 'field': 'action', 'align': 'left'},
    {'name': 'client', 'label': 'Client', 'field': 'client', 'align': 'left'},
    {'name': 'username', 'label': 'Username', 'field': 'username', 'align': 'left'},
    {'name': 'topic', 'label': 'Topic', 'field': 'topic', 'align': 'left'},
    {'name': 'qos', 'label': 'QoS', 'field': 'qos', 'align': 'center'},
    {'name': 'retain', 'label': 'Retain', 'field': 'retain', 'align': 'center'},
    {'name': 'payload', 'label': 'Payload', 'field': 'payload', 'align': 'right'},
]


def _event_rows(events) -> list[dict]:
    return [
        {
            'key': e.id if e.id is not None else f'{e.ts}-{i}',
            'ts': format_timestamp(e.ts),
            'action': e.action,
            'client': e.display_client or '-',
            'username': e.username or '-',
            'topic': e.topic or '-',
            'qos': '-' if e.qos is None else e.qos,
            'retain': 'yes' if e.retain else '',
            'payload': format_payload_size(e.payload_size),
        }
        for i, e in enumerate(events)
    ]


@ui.page('/events')
def events_page():
    cache = state.action_cache
    panel = EventFilterPanel(action_options=lambda: cache.actions if cache else [])
    views = SavedViews()
    controller = EventListController(state.events_service, cache)

    async def load(page: int = 1):
        if state.events_service is None:
            return
        filters = panel.to_state()
        token = controller.begin(page)
        results.refresh()
        try:
            result = await run.io_bound(state.events_service.fetch_page, filters, page)
        except ApiError as ex:
            controller.fail(token, str(ex))
        else:
            if controller.complete(token, result):
                store.update()
                if controller.view.discovered:
                    refresh_actions(force=True)
        results.refresh()

    def refresh_actions(force: bool = False):
        if cache is not None:
            # suggestions pick up new values on their next render
            background_tasks.create(run.io_bound(cache.refresh, force), name='refresh actions')

    async def manual_refresh():
        await load(controller.view.current_page)
        refresh_actions(force=True)

    def filters_changed():
        ui.timer(0, lambda: load(1), once=True)

    store = page_frame(
        'events', 'Events', 'Real-time event monitoring and historical analysis',
        on_refresh=manual_refresh,
    )

    syncing = {'active': False}

    def _on_time_range(e):
        if syncing['active']:
            return
        panel.time_range = TimeRange.parse(e.value, TimeRange.LAST_24_HOURS)
        filters_changed()

    def _on_retain(e):
        if syncing['active']:
            return
        panel.retain_only = bool(e.value)
        filters_changed()

    # ── Filters ──
    with ui.card().classes('w-full q-pa-md').props('flat bordered'):
        @ui.refreshable
        def filter_controls():
            with ui.row().classes('w-full items-start gap-4'):
                for control in panel.selects:
                    multi_select(control, filters_changed)

        filter_controls()

        with ui.row().classes('w-full items-center gap-4 q-mt-sm'):
            time_select = ui.select(TIME_RANGE_OPTIONS, value=panel.time_range.value, label='Time range',
                                    on_change=_on_time_range).props('dense outlined').style('min-width: 160px')
            retain_switch = ui.switch('Retained only', value=panel.retain_only, on_change=_on_retain)
            ui.space()
            ui.button('Clear', icon='clear_all', on_click=lambda: apply_filters(None)).props('flat')
            ui.button('Save view', icon='bookmark_add', on_click=lambda: save_view_dialog()).props('flat')
            views_select = ui.select([], label='Saved views', on_change=lambda e: load_view(e.value)).props(
                'dense outlined clearable'
            ).style('min-width: 160px')
            ui.button(icon='bookmark_remove', on_click=lambda: delete_view()).props('flat dense').tooltip(
                'Delete selected view'
            )
            ui.button('Export CSV', icon='download', on_click=lambda: export_csv()).props('color=primary')

    def apply_filters(view_filters):
        if view_filters is None:
            panel.reset()
        else:
            panel.apply(view_filters)
        syncing['active'] = True
        try:
            time_select.set_value(panel.time_range.value)
            retain_switch.set_value(panel.retain_only)
        finally:
            syncing['active'] = False
        filter_controls.refresh()
        filters_changed()

    def save_view_dialog():
        with ui.dialog() as dlg, ui.card().classes('q-pa-md').style('min-width: 360px'):
            ui.label('Save current view').classes('text-h6')
            name_input = ui.input('View name').classes('w-full')

            def _save():
                try:
                    views.save(name_input.value, panel.to_state())
                except ValueError as ex:
                    ui.notify(str(ex), type='warning')
                    return
                views_select.set_options(views.names())
                ui.notify(f'Saved view "{name_input.value.strip()}"', type='positive')
                dlg.close()

            name_input.on('keydown.enter', _save)
            with ui.row().classes('w-full justify-end q-mt-md gap-2'):
                ui.button('Cancel', on_click=dlg.close).props('flat')
                ui.button('Save', on_click=_save).props('color=primary')
        dlg.open()

    def load_view(name):
        if not name:
            return
        view = views.get(name)
        if view is not None:
            apply_filters(view.filters)

    def delete_view():
        name = views_select.value
        if not name:
            return
        try:
            views.delete(name)
        except ValueError as ex:
            ui.notify(str(ex), type='warning')
            return
        views_select.set_value(None)
        views_select.set_options(views.names())
        ui.notify(f'Deleted view "{name}"')

    async def export_csv():
        filters = panel.to_state()
        try:
            events = await run.io_bound(state.events_service.fetch_all, filters)
        except ApiError as ex:
            logger.warning("CSV export failed: %s", ex)
            export_error['message'] = f'Export failed: {ex}'
            results.refresh()
            ui.notify('Failed to export CSV. Please try again.', type='negative')
            return
        export_error['message'] = None
        results.refresh()
        ui.download(events_to_csv(events).encode('utf-8'), export_filename(filters.time_range))
        logger.info("Exported %d events", len(events))

    export_error = {'message': None}

    # ── Results ──
    @ui.refreshable
    def results():
        view = controller.view
        if export_error['message']:
            error_banner(export_error['message'], on_retry=export_csv, title='Export failed')
        if view.error:
            error_banner(view.error, on_retry=lambda: load(view.current_page))
        with ui.row().classes('w-full items-center justify-between q-mt-md'):
            total = view.result.total_items if view.result else 0
            ui.label(f'{total} events').classes('text-subtitle1')
            with ui.row().classes('items-center gap-2'):
                if view.loading:
                    ui.spinner(size='sm')
                last_updated_label(view.last_updated)

        if view.result is None:
            if not view.loading and not view.error:
                ui.label('No data loaded yet.').classes('text-grey-7')
            return
        if view.result.is_empty:
            ui.label('No events match the current filters.').classes('text-grey-7 q-pa-md')
            return

        ui.table(columns=COLUMNS, rows=_event_rows(view.result.rows), row_key='key',
                 pagination=0).classes('w-full').props('dense flat bordered')
        pagination_bar(view.result, load)

    results()
    auto_refresh(store, lambda: load(controller.view.current_page))
    ui.timer(0, lambda: load(1), once=True)
