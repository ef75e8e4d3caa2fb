"""Settings page: per-user dashboard preferences and connection info."""

from nicegui import ui

import watchmqtt.web.state as state
from watchmqtt.state import REFRESH_INTERVAL_OPTIONS
from watchmqtt.logging_config import get_logger
from watchmqtt.web.pages._shared import page_frame

logger = get_logger(__name__)


@ui.page('/settings')
def settings_page():
    store = page_frame('settings', 'Settings', 'Dashboard preferences for this browser')

    @ui.refreshable
    def form():
        current = store.state
        with ui.card().classes('q-pa-md').props('flat bordered').style('min-width: 420px'):
            ui.label('Display').classes('text-h6')
            broker_input = ui.input('Broker', value=current.broker).props('dense outlined').classes('w-full')
            auto_switch = ui.switch('Auto refresh', value=current.auto_refresh)
            interval_select = ui.select(
                {s: f'{s} seconds' for s in REFRESH_INTERVAL_OPTIONS},
                value=current.refresh_interval if current.refresh_interval in REFRESH_INTERVAL_OPTIONS else None,
                label='Refresh interval',
            ).props('dense outlined').classes('w-full')
            sidebar_switch = ui.switch('Show sidebar', value=current.sidebar_open)

            def _save():
                broker = (broker_input.value or '').strip()
                if not broker:
                    ui.notify('Broker name must not be empty', type='warning')
                    return
                changes = {
                    'broker': broker,
                    'auto_refresh': bool(auto_switch.value),
                    'sidebar_open': bool(sidebar_switch.value),
                }
                if interval_select.value:
                    changes['refresh_interval'] = int(interval_select.value)
                store.update(**changes)
                logger.info("Settings saved: %s", changes)
                ui.notify('Settings saved', type='positive')

            def _reset():
                store.reset()
                form.refresh()
                ui.notify('Settings reset to defaults')

            with ui.row().classes('w-full justify-end gap-2 q-mt-md'):
                ui.button('Reset', on_click=_reset).props('flat')
                ui.button('Save', on_click=_save).props('color=primary')

    form()

    with ui.card().classes('q-pa-md q-mt-md').props('flat bordered').style('min-width: 420px'):
        ui.label('Connection').classes('text-h6')
        settings = state.settings
        for label, value in (
            ('Events API', settings.api_base_url),
            ('Health API', settings.health_api_base_url),
            ('Health database', settings.health_datname),
            ('Page size', settings.page_size),
            ('Request timeout', f'{settings.request_timeout:g}s'),
        ):
            with ui.row().classes('w-full justify-between'):
                ui.label(label).classes('text-grey-7')
                ui.label(str(value))
        if state.action_cache is not None:
            with ui.row().classes('w-full justify-between'):
                ui.label('Known actions').classes('text-grey-7')
                ui.label(str(len(state.action_cache.actions)))
