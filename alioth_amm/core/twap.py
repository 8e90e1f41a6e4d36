"""
Pool time-weighted average price.

The accumulators integrate the pool's own reserve ratio over time:
`cumulative_price_a` adds up the spot price of A in B (`reserve_b / reserve_a`,
scaled by PRICE_PRECISION) times the seconds it held, `cumulative_price_b`
the inverse. Every operation that moves reserves calls `accumulate` first, so
each interval is weighted by the ratio in force during it. Intervals in which
the pool is empty add nothing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from ..errors import InvalidTimeRange
from ..state.pools import PoolState
from .checked import add_u128, div_floor, mul_u128
from .cpmm import spot_price


MIN_TWAP_WINDOW = 60


@dataclass(frozen=True)
class TwapObservation:
    timestamp: int
    cumulative_a: int
    cumulative_b: int


def _spot_prices(pool: PoolState) -> Optional[Tuple[int, int]]:
    if pool.reserve_a == 0 or pool.reserve_b == 0:
        return None
    return (
        spot_price(reserve_a=pool.reserve_a, reserve_b=pool.reserve_b),
        spot_price(reserve_a=pool.reserve_b, reserve_b=pool.reserve_a),
    )


def _advance(cum_a: int, cum_b: int, spots: Optional[Tuple[int, int]], elapsed: int) -> Tuple[int, int]:
    if spots is None or elapsed <= 0:
        return cum_a, cum_b
    return add_u128(cum_a, mul_u128(spots[0], elapsed)), add_u128(cum_b, mul_u128(spots[1], elapsed))


def accumulate(pool: PoolState, now: int) -> None:
    """Credit the current reserve ratio for the time since the last update. Call before reserves change."""
    elapsed = now - pool.last_update_time
    if elapsed <= 0:
        return
    pool.cumulative_price_a, pool.cumulative_price_b = _advance(
        pool.cumulative_price_a, pool.cumulative_price_b, _spot_prices(pool), elapsed
    )
    pool.last_update_time = now


def observe(pool: PoolState, now: int) -> TwapObservation:
    """Cumulative prices as of `now` without mutating the pool."""
    cum_a, cum_b = _advance(
        pool.cumulative_price_a, pool.cumulative_price_b, _spot_prices(pool), now - pool.last_update_time
    )
    return TwapObservation(timestamp=max(now, pool.last_update_time), cumulative_a=cum_a, cumulative_b=cum_b)


def window_twap(start: TwapObservation, end: TwapObservation) -> Tuple[int, int]:
    """
    Average (price of A in B, price of B in A) between two observations.

    Raises:
        InvalidTimeRange: if the window is shorter than MIN_TWAP_WINDOW seconds
    """
    window = end.timestamp - start.timestamp
    if window < MIN_TWAP_WINDOW:
        raise InvalidTimeRange(f"TWAP window {window}s is shorter than {MIN_TWAP_WINDOW}s")
    if end.cumulative_a < start.cumulative_a or end.cumulative_b < start.cumulative_b:
        raise InvalidTimeRange("observations are out of order")
    return (
        div_floor(end.cumulative_a - start.cumulative_a, window),
        div_floor(end.cumulative_b - start.cumulative_b, window),
    )
