# [TESTER] v1

from __future__ import annotations

import pytest

from alioth_amm.core.twap import MIN_TWAP_WINDOW, TwapObservation, accumulate, observe, window_twap
from alioth_amm.errors import InvalidTimeRange
from alioth_amm.state.pools import PoolState, compute_pool_id


ONE = 1_000_000_000


def _pool(reserve_a: int = 0, reserve_b: int = 0, *, created_at: int = 0) -> PoolState:
    return PoolState(
        pool_id=compute_pool_id("SOL", "USDC"),
        authority="admin",
        token_a="SOL",
        token_b="USDC",
        oracle_a="feed:SOL",
        oracle_b="feed:USDC",
        fee_numerator=3,
        fee_denominator=1000,
        oracle_max_age=300,
        oracle_max_deviation_bps=500,
        created_at=created_at,
        last_update_time=created_at,
        reserve_a=reserve_a,
        reserve_b=reserve_b,
        lp_supply=1 if reserve_a else 0,
    )


def test_window_averages_two_reserve_ratios() -> None:
    pool = _pool(1000, 2000)
    start = observe(pool, 0)
    assert start == TwapObservation(timestamp=0, cumulative_a=0, cumulative_b=0)

    accumulate(pool, 100)
    assert (pool.cumulative_price_a, pool.cumulative_price_b) == (200 * ONE, 50 * ONE)
    assert pool.last_update_time == 100

    # A trade moves the ratio to 1:1 for the second half of the window.
    pool.reserve_a, pool.reserve_b = 2000, 2000
    end = observe(pool, 200)
    assert window_twap(start, end) == (1_500_000_000, 750_000_000)
    # observe() does not write back.
    assert pool.last_update_time == 100


def test_empty_pool_advances_clock_without_accruing() -> None:
    pool = _pool()
    accumulate(pool, 50)
    assert (pool.cumulative_price_a, pool.cumulative_price_b) == (0, 0)
    assert pool.last_update_time == 50
    assert observe(pool, 80).cumulative_a == 0


def test_accumulate_ignores_non_advancing_time() -> None:
    pool = _pool(1000, 1000, created_at=10)
    accumulate(pool, 10)
    accumulate(pool, 5)
    assert pool.cumulative_price_a == 0
    assert pool.last_update_time == 10


def test_short_or_reversed_window_is_rejected() -> None:
    pool = _pool(1000, 1000, created_at=10)
    start = observe(pool, 10)
    with pytest.raises(InvalidTimeRange):
        window_twap(start, observe(pool, 10 + MIN_TWAP_WINDOW - 1))
    assert window_twap(start, observe(pool, 10 + MIN_TWAP_WINDOW)) == (ONE, ONE)

    later = TwapObservation(timestamp=100, cumulative_a=5, cumulative_b=5)
    earlier = TwapObservation(timestamp=200, cumulative_a=1, cumulative_b=1)
    with pytest.raises(InvalidTimeRange, match="out of order"):
        window_twap(later, earlier)
