"""Session-lived cache of known event ``action`` values.

The cache only grows: refreshes and observed pages union new values in, and the
core actions are always present. Entries are never evicted.
"""

import time
from typing import Callable, Iterable

from watchmqtt.logging_config import get_logger

logger = get_logger(__name__)

CORE_ACTIONS = (
    "connected", "disconnected", "not_authorized", "pre_auth",
    "publish", "subscribe", "unsubscribe", "watch",
)

# Installed when the very first refresh fails, so the picker is never empty.
FALLBACK_ACTIONS = CORE_ACTIONS + (
    "connack", "disconnect", "pingreq", "pingresp", "puback", "pubcomp",
    "pubrec", "pubrel", "suback", "unsuback", "auth", "error", "timeout",
    "session_present", "will_message", "retain_available", "maximum_qos",
    "keep_alive", "client_identifier_not_valid", "bad_username_or_password",
    "server_unavailable", "server_busy", "banned",
)

CACHE_MAX_AGE = 5 * 60
REFRESH_INTERVAL = 10 * 60


class ActionCache:
    def __init__(self, fetcher: Callable[[], Iterable[str]],
                 clock: Callable[[], float] = time.monotonic,
                 max_age: float = CACHE_MAX_AGE):
        self._fetcher = fetcher
        self._clock = clock
        self._max_age = max_age
        self._actions: set[str] = set(CORE_ACTIONS)
        self._last_fetched: float | None = None
        self._ever_succeeded = False
        self._stale = False

    @property
    def actions(self) -> list[str]:
        return sorted(self._actions)

    def __contains__(self, action: str) -> bool:
        return action in self._actions

    def is_fresh(self) -> bool:
        if self._stale or self._last_fetched is None:
            return False
        return self._clock() - self._last_fetched < self._max_age

    def refresh(self, force: bool = False) -> bool:
        """Union freshly sampled actions into the cache.

        Returns True when a fetch was attempted and succeeded. A cache that is
        still fresh is left alone unless ``force`` is set.
        """
        if not force and self.is_fresh():
            logger.debug("Action cache fresh, skipping refresh")
            return False

        now = self._clock()
        try:
            fetched = {a for a in self._fetcher() if a}
            if not fetched:
                raise ValueError("No actions returned from API")
        except Exception as e:
            if not self._ever_succeeded and self._last_fetched is None:
                self._actions.update(FALLBACK_ACTIONS)
                logger.warning("Action discovery failed (%s), installed %d fallback actions",
                               e, len(FALLBACK_ACTIONS))
            else:
                logger.warning("Action discovery failed, keeping %d cached actions: %s",
                               len(self._actions), e)
            self._last_fetched = now
            self._stale = False
            return False

        before = len(self._actions)
        self._actions.update(fetched)
        self._actions.update(CORE_ACTIONS)
        self._last_fetched = now
        self._ever_succeeded = True
        self._stale = False
        logger.info("Action cache refreshed: %d actions (%d new)",
                    len(self._actions), len(self._actions) - before)
        return True

    def observe(self, actions: Iterable[str]) -> list[str]:
        """Add actions seen in a result page; returns the ones that were new.

        New values mark the cache stale so the next refresh does a full fetch.
        """
        unknown = sorted({a for a in actions if a and a not in self._actions})
        if unknown:
            self._actions.update(unknown)
            self._stale = True
            logger.info("Discovered new actions in results: %s", unknown)
        return unknown
