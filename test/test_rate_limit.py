"""测试 RateLimiter：窗口配额、窗口重置、sweep"""
import pytest

from subkit.errors import RateLimitError
from subkit.pipeline.processors.rate_limit import InMemoryRateLimitStore, RateLimiter


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_eleventh_request_in_window_rejected():
    clock = FakeClock()
    limiter = RateLimiter(window_seconds=60, max_per_window=10, clock=clock)
    for _ in range(10):
        limiter.check("1.2.3.4")
        clock.now += 1
    with pytest.raises(RateLimitError) as exc:
        limiter.check("1.2.3.4")
    assert exc.value.status_code == 429


def test_window_expiry_resets_count():
    clock = FakeClock()
    limiter = RateLimiter(window_seconds=60, max_per_window=10, clock=clock)
    results = [limiter.admit("c") for _ in range(11)]
    assert results == [True] * 10 + [False]

    clock.now += 60
    assert limiter.admit("c")
    assert limiter.store.get("c").count == 1


def test_clients_are_independent():
    limiter = RateLimiter(max_per_window=1, clock=FakeClock())
    assert limiter.admit("a")
    assert not limiter.admit("a")
    assert limiter.admit("b")


def test_shared_store_across_limiters():
    store = InMemoryRateLimitStore()
    clock = FakeClock()
    first = RateLimiter(store, max_per_window=2, clock=clock)
    second = RateLimiter(store, max_per_window=2, clock=clock)
    assert first.admit("c")
    assert second.admit("c")
    assert not first.admit("c")


def test_sweep_removes_only_expired_entries():
    clock = FakeClock()
    limiter = RateLimiter(window_seconds=60, clock=clock)
    limiter.admit("old")
    clock.now += 30
    limiter.admit("fresh")
    clock.now += 30

    assert limiter.sweep() == 1
    assert limiter.store.keys() == ["fresh"]
    assert len(limiter.store) == 1
