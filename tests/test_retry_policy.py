from __future__ import annotations

import pytest

from retrycmd.config import RetryConfig
from retrycmd.retry import RetryPolicy


def test_fixed_sleep_ignores_attempt_count() -> None:
    policy = RetryPolicy(backoff=False, sleep_seconds=5)

    assert [policy.delay(count) for count in range(5)] == [5, 5, 5, 5, 5]


def test_backoff_doubles_per_completed_attempt() -> None:
    policy = RetryPolicy(backoff=True, max_backoff_seconds=60)

    assert [policy.delay(count) for count in range(1, 6)] == [2, 4, 8, 16, 32]


def test_backoff_is_clamped_at_max_backoff() -> None:
    policy = RetryPolicy(backoff=True, max_backoff_seconds=60)

    assert policy.delay(6) == 60
    assert policy.delay(7) == 60


def test_backoff_clamp_handles_huge_attempt_counts() -> None:
    policy = RetryPolicy(backoff=True, max_backoff_seconds=3600)

    assert policy.delay(10**9) == 3600


def test_zero_max_backoff_never_sleeps() -> None:
    policy = RetryPolicy(backoff=True, max_backoff_seconds=0)

    assert policy.delay(0) == 0
    assert policy.delay(3) == 0


def test_negative_attempt_count_is_rejected() -> None:
    with pytest.raises(ValueError):
        RetryPolicy(backoff=True).delay(-1)


def test_policy_from_config_copies_sleep_parameters() -> None:
    config = RetryConfig(
        command=("true",),
        sleep_seconds=7,
        backoff_enabled=True,
        max_backoff_seconds=3,
    )

    policy = RetryPolicy.from_config(config)

    assert policy == RetryPolicy(backoff=True, sleep_seconds=7, max_backoff_seconds=3)
