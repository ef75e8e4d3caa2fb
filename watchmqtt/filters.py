"""Multi-select filter state for the events page, plus saved views."""

import enum
from dataclasses import dataclass
from typing import Callable, Iterable

from watchmqtt.query import FilterState, TimeRange

MAX_SUGGESTIONS = 10
QOS_OPTIONS = ("0", "1", "2")


class AddResult(str, enum.Enum):
    ADDED = "added"
    DUPLICATE = "duplicate"
    LIMIT_REACHED = "limit_reached"
    EMPTY = "empty"


class MultiSelect:
    """Ordered set of selected values with a per-dimension cap.

    ``options`` may be a callable so suggestions follow a live source such as
    the action cache.
    """

    def __init__(self, key: str, label: str, max_selections: int = 9,
                 options: Iterable[str] | Callable[[], Iterable[str]] = (),
                 allow_text_input: bool = True, placeholder: str = ""):
        self.key = key
        self.label = label
        self.max_selections = max_selections
        self.allow_text_input = allow_text_input
        self.placeholder = placeholder
        self._options = options
        self._selected: list[str] = []

    @property
    def selected(self) -> tuple[str, ...]:
        return tuple(self._selected)

    @property
    def options(self) -> list[str]:
        source = self._options() if callable(self._options) else self._options
        return list(source)

    @property
    def at_limit(self) -> bool:
        return len(self._selected) >= self.max_selections

    def add(self, value: str) -> AddResult:
        value = (value or "").strip()
        if not value:
            return AddResult.EMPTY
        if value in self._selected:
            return AddResult.DUPLICATE
        if self.at_limit:
            return AddResult.LIMIT_REACHED
        self._selected.append(value)
        return AddResult.ADDED

    def remove(self, value: str) -> bool:
        if value in self._selected:
            self._selected.remove(value)
            return True
        return False

    def clear(self):
        self._selected.clear()

    def set(self, values: Iterable[str]):
        self._selected.clear()
        for v in values:
            self.add(v)

    def suggestions(self, search: str = "") -> list[str]:
        needle = (search or "").strip().lower()
        matches = [
            opt for opt in self.options
            if needle in opt.lower() and opt not in self._selected
        ]
        return matches[:MAX_SUGGESTIONS]


class EventFilterPanel:
    """All filter controls of the events page, convertible to a FilterState."""

    def __init__(self, action_options: Iterable[str] | Callable[[], Iterable[str]] = ()):
        self.action = MultiSelect("action", "Action", 9, action_options,
                                  placeholder="Type or select actions...")
        self.username = MultiSelect("username", "Username", 8,
                                    placeholder="Type username and press Enter")
        self.topic = MultiSelect("topic", "Topic", 8,
                                 placeholder="Type topic and press Enter")
        self.client = MultiSelect("client", "Client", 8,
                                  placeholder="Type client ID and press Enter")
        self.qos = MultiSelect("qos", "QoS", 3, QOS_OPTIONS, allow_text_input=False,
                               placeholder="Select QoS levels")
        self.retain_only = False
        self.time_range = TimeRange.LAST_24_HOURS

    @property
    def selects(self) -> list[MultiSelect]:
        return [self.action, self.username, self.topic, self.client, self.qos]

    def to_state(self) -> FilterState:
        return FilterState(
            actions=self.action.selected,
            topics=self.topic.selected,
            clients=self.client.selected,
            usernames=self.username.selected,
            qos=self.qos.selected,
            retain_only=self.retain_only,
            time_range=self.time_range,
        )

    def apply(self, state: FilterState):
        self.action.set(state.actions)
        self.topic.set(state.topics)
        self.client.set(state.clients)
        self.username.set(state.usernames)
        self.qos.set(state.qos)
        self.retain_only = state.retain_only
        self.time_range = state.time_range

    def reset(self):
        self.apply(FilterState())


@dataclass(frozen=True)
class SavedView:
    name: str
    filters: FilterState


class SavedViews:
    """Named filter snapshots for the lifetime of one page session."""

    def __init__(self):
        self._views: list[SavedView] = []

    def save(self, name: str, filters: FilterState) -> SavedView:
        name = (name or "").strip()
        if not name:
            raise ValueError("View name is required")
        view = SavedView(name=name, filters=filters)
        for i, existing in enumerate(self._views):
            if existing.name == name:
                self._views[i] = view
                return view
        self._views.append(view)
        return view

    def get(self, name: str) -> SavedView | None:
        for view in self._views:
            if view.name == name:
                return view
        return None

    def delete(self, name: str):
        for view in self._views:
            if view.name == name:
                self._views.remove(view)
                return
        raise ValueError(f"View '{name}' not found")

    def names(self) -> list[str]:
        return [v.name for v in self._views]

    def __len__(self) -> int:
        return len(self._views)
