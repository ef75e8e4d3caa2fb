import pytest

from watchmqtt.actions import CACHE_MAX_AGE, CORE_ACTIONS, FALLBACK_ACTIONS, ActionCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class FakeFetcher:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = 0

    def __call__(self):
        self.calls += 1
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def clock():
    return FakeClock()


class TestActionCache:
    def test_core_actions_present_before_refresh(self, clock):
        cache = ActionCache(FakeFetcher(), clock=clock)
        assert set(CORE_ACTIONS) <= set(cache.actions)
        assert cache.actions == sorted(cache.actions)
        assert not cache.is_fresh()

    def test_refresh_unions_fetched(self, clock):
        cache = ActionCache(FakeFetcher(["publish", "custom_hook", ""]), clock=clock)
        assert cache.refresh() is True
        assert "custom_hook" in cache
        assert "" not in cache
        assert set(CORE_ACTIONS) <= set(cache.actions)

    def test_fresh_cache_skips_fetch(self, clock):
        fetcher = FakeFetcher(["a"], ["b"])
        cache = ActionCache(fetcher, clock=clock)
        cache.refresh()
        clock.now += CACHE_MAX_AGE - 1
        assert cache.refresh() is False
        assert fetcher.calls == 1

    def test_expired_cache_refetches(self, clock):
        fetcher = FakeFetcher(["a"], ["b"])
        cache = ActionCache(fetcher, clock=clock)
        cache.refresh()
        clock.now += CACHE_MAX_AGE
        assert cache.refresh() is True
        assert fetcher.calls == 2
        assert "a" in cache and "b" in cache

    def test_force_refetches(self, clock):
        fetcher = FakeFetcher(["a"], ["b"])
        cache = ActionCache(fetcher, clock=clock)
        cache.refresh()
        assert cache.refresh(force=True) is True
        assert fetcher.calls == 2

    def test_never_shrinks(self, clock):
        fetcher = FakeFetcher(["a", "b"], ["a"])
        cache = ActionCache(fetcher, clock=clock)
        cache.refresh()
        before = set(cache.actions)
        cache.refresh(force=True)
        assert before <= set(cache.actions)

    def test_first_failure_installs_fallback(self, clock):
        cache = ActionCache(FakeFetcher(RuntimeError("down")), clock=clock)
        assert cache.refresh() is False
        assert set(FALLBACK_ACTIONS) <= set(cache.actions)

    def test_empty_first_response_installs_fallback(self, clock):
        cache = ActionCache(FakeFetcher([]), clock=clock)
        assert cache.refresh() is False
        assert len(cache.actions) == len(FALLBACK_ACTIONS)

    def test_later_failure_keeps_cache(self, clock):
        cache = ActionCache(FakeFetcher(["custom"], RuntimeError("down")), clock=clock)
        cache.refresh()
        before = cache.actions
        assert cache.refresh(force=True) is False
        assert cache.actions == before
        assert "banned" not in cache

    def test_observe_reports_new_and_marks_stale(self, clock):
        fetcher = FakeFetcher(["publish"], ["publish", "late_action"])
        cache = ActionCache(fetcher, clock=clock)
        cache.refresh()
        assert cache.is_fresh()
        assert cache.observe(["publish", "late_action", "late_action", None]) == ["late_action"]
        assert "late_action" in cache
        assert not cache.is_fresh()
        assert cache.refresh() is True
        assert fetcher.calls == 2

    def test_observe_known_only(self, clock):
        cache = ActionCache(FakeFetcher(), clock=clock)
        assert cache.observe(["publish", "connected"]) == []
