from nicegui import ui

from watchmqtt.state import REFRESH_INTERVAL_OPTIONS, GlobalStateStore


def header(store: GlobalStateStore, on_toggle_sidebar=None, on_refresh=None):
    """Top bar with broker, auto-refresh controls and a manual refresh button.

    Args:
        store: the user's global state store; every control writes through it.
        on_toggle_sidebar: callback for the menu button.
        on_refresh: callback for the manual refresh button (page-specific).
    """
    current = store.state
    interval_options = {s: f'{s}s' if s < 60 else f'{s // 60}m' for s in REFRESH_INTERVAL_OPTIONS}
    if current.refresh_interval not in interval_options:
        interval_options[current.refresh_interval] = f'{current.refresh_interval}s'

    with ui.header().classes('items-center justify-between'):
        with ui.row().classes('items-center gap-2'):
            if on_toggle_sidebar:
                ui.button(icon='menu', on_click=on_toggle_sidebar).props('flat dense color=white')
            ui.label('WatchMQTT').classes('text-h6 text-white')
            ui.separator().props('vertical').classes('q-mx-sm').style('height: 24px; opacity: 0.5')
            ui.icon('hub').classes('text-white')
            broker_label = ui.label(f'Broker: {current.broker}').classes('text-white')

        with ui.row().classes('items-center gap-4'):
            ui.switch(
                'Auto refresh',
                value=current.auto_refresh,
                on_change=lambda e: store.update(auto_refresh=e.value),
            ).props('color=white keep-color').classes('text-white')
            ui.select(
                interval_options,
                value=current.refresh_interval,
                on_change=lambda e: store.update(refresh_interval=e.value),
            ).props('dense dark options-dense borderless').style('min-width: 70px')
            if on_refresh:
                ui.button(icon='refresh', on_click=on_refresh).props('flat dense color=white').tooltip(
                    'Refresh now'
                )
            updated_label = ui.label('').classes('text-caption text-white')

    def _on_state(new_state):
        broker_label.set_text(f'Broker: {new_state.broker}')
        if new_state.last_updated:
            updated_label.set_text(new_state.last_updated.strftime('%H:%M:%S'))

    unsubscribe = store.subscribe(_on_state)
    ui.context.client.on_disconnect(unsubscribe)
