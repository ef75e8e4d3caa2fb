from nicegui import ui

from watchmqtt.health import HealthMetric, Status, overall_status

STATUS_ICONS = {
    Status.OK: 'check_circle',
    Status.WARNING: 'warning',
    Status.ERROR: 'error',
    Status.UNKNOWN: 'help',
}

STATUS_TEXT = {
    Status.OK: 'All systems healthy',
    Status.WARNING: 'Some checks need attention',
    Status.ERROR: 'Critical issues detected',
    Status.UNKNOWN: 'No health data loaded yet',
}


def overall_tile(metrics: list[HealthMetric]):
    status = overall_status(m.status for m in metrics)
    with ui.card().classes(f'q-pa-md tile-{status.value}').props('flat bordered'):
        with ui.row().classes('items-center gap-2'):
            ui.icon(STATUS_ICONS[status], size='md').classes(f'status-{status.value}')
            with ui.column().classes('gap-0'):
                ui.label('Overall Status').classes('text-caption text-grey-7')
                ui.label(status.value.upper()).classes(f'text-h6 status-{status.value}')
                ui.label(STATUS_TEXT[status]).classes('text-caption')
    return status


def health_tiles(metrics: list[HealthMetric]):
    """One tile per metric with value, status icon and description."""
    with ui.row().classes('w-full gap-3'):
        for m in metrics:
            with ui.card().classes(f'q-pa-sm tile-{m.status.value}').props('flat bordered').style(
                'min-width: 180px'
            ):
                with ui.row().classes('items-center justify-between w-full no-wrap'):
                    ui.label(m.label).classes('text-caption text-weight-medium')
                    ui.icon(STATUS_ICONS[m.status], size='xs').classes(f'status-{m.status.value}')
                ui.label(m.formatted).classes('text-h6')
                ui.label(m.description).classes('text-caption text-grey-7')
