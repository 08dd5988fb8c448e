import pytest

from relay.config import RelaySettings
from relay.rate_limit import (
    AdaptiveRateLimiter,
    PenaltyInfo,
    SlidingWindowLimiter,
    build_rate_limiter,
)


@pytest.fixture
def bucket(clock) -> AdaptiveRateLimiter:
    return AdaptiveRateLimiter(clock=clock)


def exhaust(bucket: AdaptiveRateLimiter) -> None:
    while bucket.try_consume():
        pass


# -----------------------------
# Burst capacity
# -----------------------------


def test_capacity_successes_then_failure(bucket) -> None:
    results = [bucket.try_consume() for _ in range(6)]
    assert results == [True] * 5 + [False]


def test_tokens_never_exceed_capacity(bucket, clock) -> None:
    clock.advance(3600)
    assert bucket.try_consume()
    assert bucket.tokens == pytest.approx(4)


def test_refill_at_base_rate(bucket, clock) -> None:
    exhaust(bucket)
    clock.advance(1.0)
    assert bucket.try_consume()
    assert not bucket.try_consume()


# -----------------------------
# Escalation
# -----------------------------


def test_three_failures_raise_level_by_one(bucket) -> None:
    for _ in range(5):
        bucket.try_consume()

    assert not bucket.try_consume()
    assert not bucket.try_consume()
    assert bucket.penalty_level == 0
    assert bucket.consecutive_failures == 2

    assert not bucket.try_consume()
    assert bucket.penalty_level == 1
    assert bucket.consecutive_failures == 0


def test_level_capped_at_max_penalty(bucket) -> None:
    exhaust(bucket)
    for _ in range(3 * 10):
        bucket.try_consume()
    assert bucket.penalty_level == 4


def test_success_resets_streak_but_keeps_level(bucket, clock) -> None:
    exhaust(bucket)  # one failure
    bucket.try_consume()
    bucket.try_consume()
    assert bucket.penalty_level == 1

    bucket.try_consume()
    bucket.try_consume()
    assert bucket.consecutive_failures == 2

    # Level 1 refills at 0.5 token/s
    clock.advance(2.0)
    assert bucket.try_consume()
    assert bucket.consecutive_failures == 0
    assert bucket.penalty_level == 1

    bucket.try_consume()
    bucket.try_consume()
    assert bucket.penalty_level == 1
    bucket.try_consume()
    assert bucket.penalty_level == 2


def test_refill_rate_non_increasing_in_level(bucket) -> None:
    rates = []
    for level in range(bucket.max_penalty + 1):
        bucket.penalty_level = level
        rates.append(bucket.current_rate)
    assert rates == sorted(rates, reverse=True)
    assert rates[0] == pytest.approx(1.0)
    assert rates[-1] == pytest.approx(1.0 / 16)


def test_penalised_bucket_refills_slower(bucket, clock) -> None:
    exhaust(bucket)
    bucket.try_consume()
    bucket.try_consume()
    assert bucket.penalty_level == 1

    clock.advance(1.0)
    assert not bucket.try_consume()
    clock.advance(1.0)
    assert bucket.try_consume()


# -----------------------------
# Decay
# -----------------------------


def test_penalty_decays_after_duration(clock) -> None:
    bucket = AdaptiveRateLimiter(capacity=100, clock=clock)
    exhaust(bucket)
    bucket.try_consume()
    bucket.try_consume()
    assert bucket.penalty_level == 1

    clock.advance(31.0)
    assert bucket.try_consume()
    assert bucket.penalty_level == 0
    # 31 s at the base rate of 1 token/s, minus the one just taken
    assert bucket.tokens == pytest.approx(30.0)


def test_penalty_kept_within_duration(clock) -> None:
    bucket = AdaptiveRateLimiter(capacity=100, clock=clock)
    exhaust(bucket)
    bucket.try_consume()
    bucket.try_consume()

    clock.advance(29.0)
    assert bucket.try_consume()
    assert bucket.penalty_level == 1
    assert bucket.tokens == pytest.approx(29.0 * 0.5 - 1)


# -----------------------------
# Penalty info
# -----------------------------


def test_penalty_info_none_without_penalty(bucket) -> None:
    assert bucket.penalty_info() is None
    exhaust(bucket)
    assert bucket.penalty_info() is None


def test_penalty_info_reports_level_and_wait(bucket) -> None:
    exhaust(bucket)
    bucket.try_consume()
    bucket.try_consume()

    info = bucket.penalty_info()
    assert info == PenaltyInfo(level=1, wait_seconds=2)
    assert info.as_payload() == {"level": 1, "waitSeconds": 2}


def test_penalty_info_does_not_mutate(bucket, clock) -> None:
    exhaust(bucket)
    bucket.try_consume()
    bucket.try_consume()
    clock.advance(0.5)

    before = (bucket.tokens, bucket.last_refill, bucket.penalty_level, bucket.consecutive_failures)
    bucket.penalty_info()
    bucket.penalty_info()
    after = (bucket.tokens, bucket.last_refill, bucket.penalty_level, bucket.consecutive_failures)
    assert before == after


def test_penalty_info_reflects_pending_decay(bucket, clock) -> None:
    exhaust(bucket)
    bucket.try_consume()
    bucket.try_consume()

    clock.advance(31.0)
    assert bucket.penalty_info() is None
    assert bucket.penalty_level == 1


# -----------------------------
# Sliding window & factory
# -----------------------------


def test_sliding_window_limits_within_window(clock) -> None:
    limiter = SlidingWindowLimiter(max_messages=3, window_ms=1000, clock=clock)
    assert [limiter.try_consume() for _ in range(4)] == [True, True, True, False]

    clock.advance(1.0)
    assert limiter.try_consume()
    assert limiter.penalty_info() is None


def test_sliding_window_prunes_oldest_first(clock) -> None:
    limiter = SlidingWindowLimiter(max_messages=2, window_ms=1000, clock=clock)
    assert limiter.try_consume()
    clock.advance(0.6)
    assert limiter.try_consume()
    assert not limiter.try_consume()

    clock.advance(0.5)
    assert limiter.try_consume()
    assert not limiter.try_consume()


def test_build_rate_limiter_uses_settings(clock) -> None:
    limiter = build_rate_limiter(RelaySettings(bucket_capacity=2, max_penalty_level=1), clock=clock)
    assert isinstance(limiter, AdaptiveRateLimiter)
    assert [limiter.try_consume() for _ in range(3)] == [True, True, False]
    assert limiter.max_penalty == 1
    assert limiter.penalty_duration == pytest.approx(30.0)

    window = build_rate_limiter(RelaySettings(rate_limit_policy="sliding_window"), clock=clock)
    assert isinstance(window, SlidingWindowLimiter)
