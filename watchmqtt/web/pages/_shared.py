"""Shared CSS, formatters and page scaffolding used by multiple page modules."""

from datetime import datetime

from nicegui import run, ui

import watchmqtt.web.state as state
from watchmqtt.health import HealthMetric, build_health_metrics
from watchmqtt.models import HealthData, PageResult, parse_ts
from watchmqtt.state import GlobalStateStore
from watchmqtt.web.components.header import header

SHARED_CSS = '''
    .q-table__middle {
        max-height: none !important;
    }
    .status-ok { color: #10b981; }
    .status-warning, .status-unknown { color: #f59e0b; }
    .status-error { color: #ef4444; }
    .tile-ok { background: #dcfce7 !important; }
    .tile-warning, .tile-unknown { background: #fef3c7 !important; }
    .tile-error { background: #fee2e2 !important; }
    .filter-chip-action { background: #dbeafe !important; color: #1e40af !important; }
    .filter-chip-username { background: #d1fae5 !important; color: #065f46 !important; }
    .filter-chip-topic { background: #fef3c7 !important; color: #92400e !important; }
    .filter-chip-qos { background: #e0e7ff !important; color: #3730a3 !important; }
    .filter-chip-client { background: #f3f4f6 !important; color: #374151 !important; }
    .nav-active {
        background: rgba(25, 118, 210, 0.12) !important;
        border-radius: 4px;
    }
'''

NAV_ITEMS = (
    ('overview', '/', 'dashboard', 'Overview'),
    ('events', '/events', 'list_alt', 'Events'),
    ('topics', '/topics', 'tag', 'Topics'),
    ('subscriptions', '/subscriptions', 'rss_feed', 'Subscriptions'),
    ('sessions', '/sessions', 'schedule', 'Sessions'),
    ('clients', '/clients', 'devices', 'Clients'),
    ('alerts', '/alerts', 'notifications', 'Alerts'),
    ('reports', '/reports', 'assessment', 'Reports'),
    ('settings', '/settings', 'settings', 'Settings'),
    ('diagnostics', '/diagnostics', 'monitor_heart', 'Diagnostics'),
)


def format_timestamp(ts: str | None) -> str:
    parsed = parse_ts(ts)
    if parsed is None:
        return ts or '-'
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone()
    return parsed.strftime('%Y-%m-%d %H:%M:%S')


def format_payload_size(size: int | None) -> str:
    if not size:
        return '0B'
    if size < 1024:
        return f'{size}B'
    if size < 1024 * 1024:
        return f'{size / 1024:.1f}KB'
    return f'{size / (1024 * 1024):.1f}MB'


def page_frame(active: str, title: str, subtitle: str = '', on_refresh=None) -> GlobalStateStore:
    """Header, navigation drawer and page title. Returns the user's state store."""
    store = state.global_store()
    ui.add_css(SHARED_CSS)

    with ui.left_drawer(value=store.state.sidebar_open).props('bordered width=220') as drawer:
        for name, path, icon, label in NAV_ITEMS:
            item = ui.item(on_click=lambda p=path: ui.navigate.to(p)).classes('w-full')
            if name == active:
                item.classes('nav-active')
            with item:
                with ui.item_section().props('avatar'):
                    ui.icon(icon)
                with ui.item_section():
                    ui.item_label(label)

    def _toggle_drawer():
        drawer.toggle()
        store.update(sidebar_open=drawer.value)

    header(store, on_toggle_sidebar=_toggle_drawer, on_refresh=on_refresh)

    ui.label(title).classes('text-h5')
    if subtitle:
        ui.label(subtitle).classes('text-grey-7 q-mb-md')
    return store


def auto_refresh(store: GlobalStateStore, callback) -> ui.timer:
    """Timer that re-runs ``callback`` while auto-refresh is enabled.

    Follows interval / toggle changes made in the header and stops when the
    browser tab goes away.
    """
    current = store.state
    timer = ui.timer(current.refresh_interval, callback, active=current.auto_refresh)

    def _on_state(new_state):
        timer.interval = new_state.refresh_interval
        timer.active = new_state.auto_refresh

    unsubscribe = store.subscribe(_on_state)

    def _teardown():
        unsubscribe()
        timer.active = False

    ui.context.client.on_disconnect(_teardown)
    return timer


def pagination_bar(result: PageResult | None, on_page):
    """Previous / next controls with an 'X-Y of N' summary."""
    if result is None or result.total_items == 0:
        return
    first = (result.page - 1) * result.page_size + 1
    last = min(result.page * result.page_size, result.total_items)
    with ui.row().classes('w-full items-center justify-between q-mt-sm'):
        ui.label(f'Showing {first}-{last} of {result.total_items}').classes('text-caption text-grey-7')
        with ui.row().classes('items-center gap-1'):
            ui.button(icon='chevron_left', on_click=lambda: on_page(result.page - 1)).props(
                'flat dense'
            ).set_enabled(result.page > 1)
            ui.label(f'Page {result.page} of {max(result.total_pages, 1)}').classes('text-caption')
            ui.button(icon='chevron_right', on_click=lambda: on_page(result.page + 1)).props(
                'flat dense'
            ).set_enabled(result.page < result.total_pages)


def last_updated_label(when: datetime | None):
    text = when.strftime('%H:%M:%S') if when else 'never'
    ui.label(f'Last updated: {text}').classes('text-caption text-grey-6')


async def fetch_health() -> tuple[HealthData, list[HealthMetric]]:
    """Load the health endpoint off the event loop and classify every gauge.

    Raises:
        ApiError: when the health service cannot be reached or answers badly.
    """
    data = await run.io_bound(state.health_client.get_health, state.settings.health_datname)
    return data, build_health_metrics(data)
