import pytest
from conftest import FakeClock
from lamont.core.rate_limit import RegistrationRateLimiter

DAY = 24 * 60 * 60


def test_allows_up_to_limit_then_rejects():
    limiter = RegistrationRateLimiter(limit=5, window_seconds=DAY, clock=FakeClock())

    decisions = [limiter.hit("10.0.0.1") for _ in range(5)]
    assert all(decision.allowed for decision in decisions)
    assert [decision.remaining for decision in decisions] == [4, 3, 2, 1, 0]

    sixth = limiter.hit("10.0.0.1")
    assert sixth.allowed is False
    assert sixth.retry_after == DAY


def test_retry_after_counts_down_from_first_attempt():
    clock = FakeClock()
    limiter = RegistrationRateLimiter(limit=1, window_seconds=DAY, clock=clock)
    limiter.hit("10.0.0.1")

    clock.advance(3600.5)
    decision = limiter.hit("10.0.0.1")
    assert decision.allowed is False
    assert decision.retry_after == DAY - 3600


def test_window_resets_after_it_elapses():
    clock = FakeClock()
    limiter = RegistrationRateLimiter(limit=5, window_seconds=DAY, clock=clock)
    for _ in range(5):
        limiter.hit("10.0.0.1")
    assert limiter.hit("10.0.0.1").allowed is False

    clock.advance(DAY + 1)
    decision = limiter.hit("10.0.0.1")
    assert decision.allowed is True
    assert decision.remaining == 4


def test_keys_are_independent():
    limiter = RegistrationRateLimiter(limit=1, window_seconds=DAY, clock=FakeClock())
    assert limiter.hit("10.0.0.1").allowed
    assert limiter.hit("10.0.0.2").allowed
    assert not limiter.hit("10.0.0.1").allowed


def test_purge_drops_only_closed_windows():
    clock = FakeClock()
    limiter = RegistrationRateLimiter(limit=5, window_seconds=DAY, clock=clock)
    limiter.hit("old")
    clock.advance(DAY - 10)
    limiter.hit("new")
    clock.advance(20)

    assert limiter.purge_expired() == 1
    assert len(limiter) == 1


def test_limit_must_be_positive():
    with pytest.raises(ValueError):
        RegistrationRateLimiter(limit=0, window_seconds=DAY)


def test_release_gives_back_an_attempt():
    limiter = RegistrationRateLimiter(limit=2, window_seconds=DAY, clock=FakeClock())
    limiter.hit("10.0.0.1")
    limiter.hit("10.0.0.1")

    limiter.release("10.0.0.1")

    assert limiter.hit("10.0.0.1").allowed is True
    assert limiter.hit("10.0.0.1").allowed is False


def test_release_of_last_attempt_drops_the_window():
    limiter = RegistrationRateLimiter(limit=2, window_seconds=DAY, clock=FakeClock())
    limiter.hit("10.0.0.1")

    limiter.release("10.0.0.1")
    limiter.release("unknown")

    assert len(limiter) == 0
