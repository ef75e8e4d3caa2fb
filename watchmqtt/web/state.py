"""In-memory application state for non-serializable objects."""

from nicegui import app

from watchmqtt.actions import ActionCache
from watchmqtt.client import ApiClient, HealthClient
from watchmqtt.config import ApiSettings, load_settings
from watchmqtt.services import EventsService, ListService
from watchmqtt.state import GlobalState, GlobalStateStore

settings: ApiSettings = load_settings()

# HTTP clients are created on app startup and closed on shutdown
api_client: ApiClient | None = None
health_client: HealthClient | None = None
events_service: EventsService | None = None
list_service: ListService | None = None
action_cache: ActionCache | None = None


def open_clients():
    global api_client, health_client, events_service, list_service, action_cache
    api_client = ApiClient(settings.api_base_url, timeout=settings.request_timeout)
    health_client = HealthClient(settings.health_api_base_url, timeout=settings.request_timeout)
    events_service = EventsService(api_client, page_size=settings.page_size)
    list_service = ListService(api_client)
    action_cache = ActionCache(events_service.sample_actions)


def close_clients():
    global api_client, health_client, events_service, list_service
    for c in (api_client, health_client):
        if c is not None:
            c.close()
    api_client = health_client = None
    events_service = list_service = None


def global_store() -> GlobalStateStore:
    """Global UI state of the current browser user, persisted in user storage."""
    return GlobalStateStore(
        app.storage.user,
        defaults=GlobalState(broker=settings.default_broker),
    )
