from nicegui import ui

from watchmqtt.filters import AddResult, MultiSelect


def multi_select(control: MultiSelect, on_change):
    """Render a MultiSelect: search input, suggestion list and removable chips.

    Args:
        control: the selection model; this widget only mutates it through add/remove.
        on_change: called with no arguments after the selection changed.
    """
    search = {'text': ''}

    def _add(value: str):
        result = control.add(value)
        if result == AddResult.LIMIT_REACHED:
            ui.notify(f'Maximum {control.max_selections} selections allowed for {control.label}',
                      type='warning')
            return
        if result != AddResult.ADDED:
            return
        search['text'] = ''
        text_input.value = ''
        body.refresh()
        on_change()

    def _remove(value: str):
        if control.remove(value):
            body.refresh()
            on_change()

    def _on_search(e):
        search['text'] = e.value or ''
        body.refresh()

    def _on_enter():
        if control.allow_text_input:
            _add(text_input.value or '')

    with ui.column().classes('gap-1').style('min-width: 200px; flex: 1'):
        ui.label(control.label).classes('text-caption text-weight-medium')
        with ui.row().classes('w-full items-center no-wrap gap-1'):
            text_input = ui.input(
                placeholder=control.placeholder,
                on_change=_on_search,
            ).props('dense outlined clearable').classes('w-full')
            text_input.on('keydown.enter', _on_enter)
            if control.allow_text_input:
                ui.button('Add', on_click=_on_enter).props('dense unelevated color=primary size=sm')

        @ui.refreshable
        def body():
            suggestions = control.suggestions(search['text'])
            show = bool(search['text']) or not control.allow_text_input
            if control.options and show and suggestions and not control.at_limit:
                with ui.list().props('dense bordered separator').classes('w-full').style(
                    'max-height: 200px; overflow-y: auto'
                ):
                    for option in suggestions:
                        ui.item(option, on_click=lambda o=option: _add(o))

            if control.selected:
                with ui.row().classes('gap-1'):
                    for value in control.selected:
                        ui.chip(value, removable=True).props('dense square').classes(f'filter-chip-{control.key}').on(
                            'remove', lambda _, v=value: _remove(v)
                        )

            if control.at_limit:
                ui.label(f'Maximum {control.max_selections} selections allowed').classes(
                    'text-caption text-negative'
                )

        body()
    return body
