"""Dashboard-wide UI state (broker, auto-refresh, sidebar) and its persistence.

The store is an explicit object handed to the pages that need it. It loads
once from a mutable mapping (NiceGUI's per-user storage in the app) and writes
back on every update.
"""

from dataclasses import asdict, dataclass, fields, replace
from datetime import datetime
from typing import Callable, MutableMapping

from watchmqtt.logging_config import get_logger

logger = get_logger(__name__)

STORAGE_KEY = "watchmqtt-v2-state"
REFRESH_INTERVAL_OPTIONS = (10, 30, 60, 300)


@dataclass(frozen=True)
class GlobalState:
    broker: str = "local"
    auto_refresh: bool = True
    refresh_interval: int = 30
    sidebar_open: bool = True
    last_updated: datetime | None = None


_FIELD_TYPES = {
    "broker": str,
    "auto_refresh": bool,
    "refresh_interval": int,
    "sidebar_open": bool,
}


def _decode(saved) -> dict:
    """Keep only well-typed known fields of a saved snapshot."""
    if not isinstance(saved, dict):
        return {}
    values = {}
    for name, typ in _FIELD_TYPES.items():
        if name not in saved:
            continue
        value = saved[name]
        # bool is an int subclass; reject it for int fields and vice versa
        if typ is int and (isinstance(value, bool) or not isinstance(value, int) or value <= 0):
            continue
        if typ is not int and not isinstance(value, typ):
            continue
        values[name] = value
    raw_ts = saved.get("last_updated")
    if isinstance(raw_ts, str):
        try:
            values["last_updated"] = datetime.fromisoformat(raw_ts)
        except ValueError:
            pass
    return values


def _encode(state: GlobalState) -> dict:
    data = asdict(state)
    data["last_updated"] = state.last_updated.isoformat() if state.last_updated else None
    return data


class GlobalStateStore:
    def __init__(self, storage: MutableMapping, key: str = STORAGE_KEY,
                 defaults: GlobalState | None = None,
                 clock: Callable[[], datetime] = datetime.now):
        self._storage = storage
        self._key = key
        self._defaults = defaults or GlobalState()
        self._clock = clock
        self._listeners: list[Callable[[GlobalState], None]] = []
        self._state = self.load()

    @property
    def state(self) -> GlobalState:
        return self._state

    def load(self) -> GlobalState:
        try:
            saved = self._storage.get(self._key)
        except Exception as e:
            logger.warning("Failed to read saved state: %s", e)
            saved = None
        return replace(self._defaults, **_decode(saved))

    def save(self):
        try:
            self._storage[self._key] = _encode(self._state)
        except Exception as e:
            logger.warning("Failed to save state: %s", e)

    def update(self, **changes) -> GlobalState:
        unknown = set(changes) - {f.name for f in fields(GlobalState)}
        if unknown:
            raise ValueError(f"Unknown state fields: {sorted(unknown)}")
        changes.setdefault("last_updated", self._clock())
        self._state = replace(self._state, **changes)
        self.save()
        for listener in list(self._listeners):
            listener(self._state)
        return self._state

    def reset(self) -> GlobalState:
        self._state = self._defaults
        self.save()
        for listener in list(self._listeners):
            listener(self._state)
        return self._state

    def subscribe(self, listener: Callable[[GlobalState], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
