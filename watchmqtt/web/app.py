"""NiceGUI web application bootstrap for the WatchMQTT dashboard."""

from nicegui import ui, app

import watchmqtt.web.state as state
from watchmqtt.scheduler import start_scheduler, stop_scheduler
from watchmqtt.logging_config import get_logger

# Import pages so their @ui.page decorators register routes
import watchmqtt.web.pages.overview  # noqa: F401
import watchmqtt.web.pages.events  # noqa: F401
import watchmqtt.web.pages.topics  # noqa: F401
import watchmqtt.web.pages.subscriptions  # noqa: F401
import watchmqtt.web.pages.sessions  # noqa: F401
import watchmqtt.web.pages.clients  # noqa: F401
import watchmqtt.web.pages.alerts  # noqa: F401
import watchmqtt.web.pages.reports  # noqa: F401
import watchmqtt.web.pages.settings  # noqa: F401
import watchmqtt.web.pages.diagnostics  # noqa: F401

logger = get_logger(__name__)


@app.on_startup
async def _startup():
    state.open_clients()
    start_scheduler(state.action_cache)
    logger.info("Dashboard started (api=%s, health=%s)",
                state.settings.api_base_url, state.settings.health_api_base_url)


@app.on_shutdown
async def _shutdown():
    stop_scheduler()
    state.close_clients()
    logger.info("Dashboard stopped")


def start():
    """Run the NiceGUI web server."""
    ui.run(
        port=state.settings.ui_port,
        title='WatchMQTT Dashboard',
        storage_secret=state.settings.storage_secret,
        reload=False,
    )
