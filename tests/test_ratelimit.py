"""Tests for the per-client sliding window limiter."""

import pytest

from ratelimit import RateLimiter


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


def test_allows_up_to_limit(clock):
    limiter = RateLimiter(3, 60, clock=clock)
    assert [limiter.allow("1.2.3.4") for _ in range(4)] == [True, True, True, False]


def test_keys_are_independent(clock):
    limiter = RateLimiter(1, 60, clock=clock)
    assert limiter.allow("a")
    assert limiter.allow("b")
    assert not limiter.allow("a")


def test_window_slides(clock):
    limiter = RateLimiter(2, 60, clock=clock)
    limiter.allow("a")
    clock.advance(30)
    limiter.allow("a")
    assert not limiter.allow("a")
    clock.advance(30)
    assert limiter.allow("a")
    assert not limiter.allow("a")


def test_retry_after(clock):
    limiter = RateLimiter(1, 60, clock=clock)
    assert limiter.retry_after("a") == 0.0
    limiter.allow("a")
    clock.advance(15)
    assert limiter.retry_after("a") == pytest.approx(45)


def test_rejected_requests_do_not_extend_the_window(clock):
    limiter = RateLimiter(1, 10, clock=clock)
    limiter.allow("a")
    for _ in range(5):
        clock.advance(1)
        assert not limiter.allow("a")
    clock.advance(5)
    assert limiter.allow("a")


def test_reset(clock):
    limiter = RateLimiter(1, 60, clock=clock)
    limiter.allow("a")
    limiter.reset()
    assert limiter.allow("a")


@pytest.mark.parametrize("max_requests,window", [(0, 60), (5, 0), (5, -1)])
def test_bad_configuration(max_requests, window):
    with pytest.raises(ValueError):
        RateLimiter(max_requests, window)


def test_expired_keys_are_forgotten(clock):
    limiter = RateLimiter(1, 60, clock=clock)
    for i in range(20):
        limiter.allow(f"10.0.0.{i}")
    assert limiter.tracked_keys() == 20
    clock.advance(61)
    limiter.allow("10.0.1.1")
    assert limiter.tracked_keys() == 1


def test_sweep_without_traffic(clock):
    limiter = RateLimiter(2, 10, clock=clock)
    limiter.allow("a")
    limiter.allow("b")
    clock.advance(5)
    limiter.sweep()
    assert limiter.tracked_keys() == 2
    clock.advance(5)
    limiter.sweep()
    assert limiter.tracked_keys() == 0


def test_retry_after_forgets_expired_key(clock):
    limiter = RateLimiter(1, 10, clock=clock)
    limiter.allow("a")
    clock.advance(10)
    assert limiter.retry_after("a") == 0.0
    assert limiter.tracked_keys() == 0
