from nicegui import ui


def error_banner(message: str, on_retry=None, title: str = 'Error'):
    """Inline failure notice with an optional Retry button."""
    with ui.card().classes('w-full q-pa-sm bg-red-1').props('flat bordered'):
        with ui.row().classes('items-center w-full justify-between no-wrap'):
            with ui.row().classes('items-center gap-2 no-wrap'):
                ui.icon('error_outline', color='negative')
                with ui.column().classes('gap-0'):
                    ui.label(title).classes('text-weight-bold text-negative')
                    ui.label(message).classes('text-body2')
            if on_retry:
                ui.button('Retry', icon='refresh', on_click=on_retry).props('flat dense color=negative')
