import threading
import time

import pytest

from yaklog.sampling import HashSampler, Level, RateSampler, rate_to_limit


def test_rate_sampler_allow_burst():
    s = RateSampler(1000, 10)
    passed = sum(1 for _ in range(10) if s.sample(Level.INFO, "msg"))
    assert passed == 10


def test_rate_sampler_throttle():
    s = RateSampler(1, 1)
    blocked = sum(1 for _ in range(100) if not s.sample(Level.INFO, "msg"))
    assert blocked >= 90


def test_rate_sampler_refill():
    s = RateSampler(100, 1)
    for _ in range(10):
        s.sample(Level.INFO, "drain")
    time.sleep(0.05)
    assert s.sample(Level.INFO, "after wait") is True


def test_rate_sampler_injectable_allow_fn():
    s = RateSampler(1, 1)
    calls = []

    def deny():
        calls.append(1)
        return False

    s.allow_fn = deny
    for _ in range(5):
        assert s.sample(Level.INFO, "msg") is False
    assert len(calls) == 5

    s.allow_fn = lambda: True
    for _ in range(5):
        assert s.sample(Level.INFO, "msg") is True


@pytest.mark.parametrize("rate,burst", [(0, 1), (1, 0), (-1, 5)])
def test_rate_sampler_rejects_non_positive(rate, burst):
    with pytest.raises(ValueError):
        RateSampler(rate, burst)


def test_hash_sampler_all_rate():
    s = HashSampler(1.0)
    assert all(s.sample(Level.INFO, "msg") for _ in range(1000))


def test_hash_sampler_zero_rate():
    s = HashSampler(0)
    passed = sum(1 for _ in range(1000) if s.sample(Level.INFO, "msg"))
    assert passed <= 5


def test_hash_sampler_approximate_rate():
    rate = 0.3
    total = 10000
    s = HashSampler(rate)
    passed = sum(
        bool(s.sample(Level.INFO, chr(ord("A") + i % 26) + chr(ord("a") + i // 26 % 26)))
        for i in range(total)
    )
    assert rate - 0.15 <= passed / total <= rate + 0.15


def test_hash_sampler_deterministic():
    s = HashSampler(0.5)
    first = s.sample(Level.INFO, "deterministic-key")
    assert all(s.sample(Level.INFO, "deterministic-key") == first for _ in range(20))


def test_hash_sampler_set_rate():
    s = HashSampler(1.0)
    assert all(s.sample(Level.INFO, "r") for _ in range(100))

    s.set_rate(0)
    passed = sum(1 for _ in range(1000) if s.sample(Level.INFO, "r"))
    assert passed <= 5

    s.set_rate(1.0)
    assert all(s.sample(Level.INFO, "r") for _ in range(100))


def test_hash_sampler_set_rate_concurrent():
    s = HashSampler(0.5)
    threads = [
        threading.Thread(target=lambda r=(i + 1) / 8.0: (s.set_rate(r), s.sample(Level.INFO, "c")))
        for i in range(8)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    s.set_rate(1.0)
    assert all(s.sample(lvl, "c") for lvl in Level)


def test_hash_sampler_set_rate_for_level_independent():
    s = HashSampler(1.0)
    s.set_rate_for_level(Level.DEBUG, 0)
    passed = sum(1 for _ in range(1000) if s.sample(Level.DEBUG, "d"))
    assert passed <= 5
    for lvl in (Level.INFO, Level.WARN, Level.ERROR):
        assert all(s.sample(lvl, "x") for _ in range(50))


def test_hash_sampler_set_rate_for_level_all_levels():
    s = HashSampler(0.0)
    s.set_rate_for_level(Level.ERROR, 1.0)
    assert all(s.sample(Level.ERROR, "err") for _ in range(100))
    assert not any(s.sample(Level.INFO, "info") for _ in range(1000))


def test_hash_sampler_set_rate_for_level_concurrent():
    s = HashSampler(0.5)
    levels = list(Level)
    threads = [
        threading.Thread(target=lambda lv=lvl: (s.set_rate_for_level(lv, 0.3), s.sample(lv, "c")))
        for lvl in levels
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    passed = sum(1 for i in range(2000) if s.sample(Level.WARN, f"m{i}"))
    assert 0.15 <= passed / 2000 <= 0.45


def test_trace_and_debug_map_to_distinct_slots():
    s = HashSampler(1.0)
    s.set_rate_for_level(Level.TRACE, 0)
    assert not any(s.sample(Level.TRACE, f"t{i}") for i in range(200))
    assert all(s.sample(Level.DEBUG, f"d{i}") for i in range(200))


@pytest.mark.parametrize(
    "rate,expected",
    [
        (0, 0),
        (-1.0, 0),
        (1.0, (1 << 64) - 1),
        (2.0, (1 << 64) - 1),
        (0.5, 1 << 63),
    ],
)
def test_rate_to_limit(rate, expected):
    assert rate_to_limit(rate) == expected


@pytest.mark.parametrize(
    "value,expected",
    [(-2, "TRACE"), (-1, "DEBUG"), (0, "INFO"), (1, "WARN"), (2, "ERROR"), (3, "PANIC"), (4, "FATAL")],
)
def test_level_values(value, expected):
    assert Level(value).name == expected