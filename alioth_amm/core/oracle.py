"""
Oracle price validation.

The price feed itself is external; this module only consumes its read
contract (`PriceFeed.get_price`). A reading is accepted when it is:
- fresh: published no later than `now` and at most `max_age` seconds ago,
- confident: its confidence band is within `max_confidence_bps` of the price,
- consistent: within `max_deviation_bps` of the last accepted price for that
  side of the pool (skipped until a first price has been accepted).

A swap is then checked once more: the rate it actually executes at must stay
within `max_deviation_bps` of the rate the two oracle prices imply.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from ..errors import InvalidOracle, PriceDeviationExceeded, StaleOraclePrice
from ..state.pools import PoolState
from .checked import _require_int, check_u64, mul_div_floor
from .fees import BPS_DENOM


logger = logging.getLogger(__name__)

PRICE_DECIMALS = 9
PRICE_PRECISION = 10**PRICE_DECIMALS


@dataclass(frozen=True)
class PriceReading:
    """Raw feed output: `price * 10**exponent`, +/- `confidence` (same scale as price)."""

    price: int
    confidence: int
    exponent: int
    publish_time: int


class PriceFeed(Protocol):
    def get_price(self, feed_id: str) -> PriceReading:
        """Return the latest reading, or raise InvalidOracle if none exists."""
        ...


@dataclass(frozen=True)
class OraclePrices:
    """Normalized (PRICE_PRECISION-scaled) prices accepted for both pool sides."""

    price_a: int
    price_b: int


def validate_oracle_config(max_age: int, max_deviation_bps: int) -> None:
    _require_int("oracle_max_age", max_age)
    _require_int("oracle_max_deviation_bps", max_deviation_bps)
    if max_age <= 0:
        raise InvalidOracle(f"oracle_max_age must be positive: {max_age}")
    if not (0 <= max_deviation_bps <= BPS_DENOM):
        raise InvalidOracle(f"oracle_max_deviation_bps must be in [0, {BPS_DENOM}]: {max_deviation_bps}")


def normalize_price(price: int, exponent: int, target_decimals: int = PRICE_DECIMALS) -> int:
    """Rescale `price * 10**exponent` to an integer with `target_decimals` decimals."""
    _require_int("price", price)
    _require_int("exponent", exponent)
    if price <= 0:
        raise InvalidOracle(f"oracle price must be positive: {price}")
    shift = exponent + target_decimals
    if shift >= 0:
        normalized = price * 10**shift
    else:
        normalized = price // 10**(-shift)
    if normalized == 0:
        raise InvalidOracle(f"oracle price {price}e{exponent} underflows {target_decimals} decimals")
    return check_u64(normalized, name="normalized price")


def confidence_bps(price: int, confidence: int) -> int:
    """Confidence interval as basis points of |price| (10000 when price is zero)."""
    if price == 0:
        return BPS_DENOM
    return mul_div_floor(confidence, BPS_DENOM, abs(price))


def deviation_bps(price: int, reference: int) -> int:
    """`|price - reference| * 10000 / reference`, rounded down."""
    return mul_div_floor(abs(price - reference), BPS_DENOM, reference)


def is_fresh(publish_time: int, now: int, max_age: int) -> bool:
    """True if published within `max_age` seconds of `now`. Future timestamps are never fresh."""
    if publish_time > now:
        return False
    return (now - publish_time) <= max_age


class OracleValidator:
    """Reads both sides of a pool from a `PriceFeed` and applies the acceptance rules."""

    def __init__(self, feed: PriceFeed, *, max_confidence_bps: int = BPS_DENOM) -> None:
        _require_int("max_confidence_bps", max_confidence_bps)
        if not (0 <= max_confidence_bps <= BPS_DENOM):
            raise ValueError(f"max_confidence_bps must be in [0, {BPS_DENOM}]: {max_confidence_bps}")
        self._feed = feed
        self._max_confidence_bps = max_confidence_bps

    @property
    def feed(self) -> PriceFeed:
        return self._feed

    def read_price(self, feed_id: str, *, now: int, max_age: int) -> int:
        reading = self._feed.get_price(feed_id)
        if not is_fresh(reading.publish_time, now, max_age):
            raise StaleOraclePrice(
                f"{feed_id}: published at {reading.publish_time}, now {now}, max age {max_age}"
            )
        if reading.confidence < 0:
            raise InvalidOracle(f"{feed_id}: negative confidence {reading.confidence}")
        conf = confidence_bps(reading.price, reading.confidence)
        if conf > self._max_confidence_bps:
            raise InvalidOracle(f"{feed_id}: confidence {conf} bps exceeds {self._max_confidence_bps}")
        return normalize_price(reading.price, reading.exponent)

    def validate_pool(self, pool: PoolState, *, now: int) -> OraclePrices:
        """
        Validate both legs of `pool` before any reserve mutation.

        Raises:
            StaleOraclePrice, PriceDeviationExceeded, InvalidOracle
        """
        price_a = self.read_price(pool.oracle_a, now=now, max_age=pool.oracle_max_age)
        price_b = self.read_price(pool.oracle_b, now=now, max_age=pool.oracle_max_age)
        _check_deviation(pool.oracle_a, price_a, pool.last_price_a, pool.oracle_max_deviation_bps)
        _check_deviation(pool.oracle_b, price_b, pool.last_price_b, pool.oracle_max_deviation_bps)
        logger.debug("oracle prices accepted for pool %s: a=%d b=%d", pool.pool_id, price_a, price_b)
        return OraclePrices(price_a=price_a, price_b=price_b)


def _check_deviation(feed_id: str, price: int, reference: Optional[int], max_deviation_bps: int) -> None:
    if reference is None:
        return
    dev = deviation_bps(price, reference)
    if dev > max_deviation_bps:
        raise PriceDeviationExceeded(
            f"{feed_id}: price {price} deviates {dev} bps from {reference} (max {max_deviation_bps})"
        )


def accept_prices(pool: PoolState, prices: OraclePrices) -> None:
    """Store `prices` as the reference for the next deviation check."""
    pool.last_price_a = prices.price_a
    pool.last_price_b = prices.price_b


def oracle_rate(prices: OraclePrices, *, is_a_to_b: bool) -> int:
    """Output units per input unit implied by the oracle, scaled by PRICE_PRECISION."""
    price_in, price_out = (prices.price_a, prices.price_b) if is_a_to_b else (prices.price_b, prices.price_a)
    return mul_div_floor(price_in, PRICE_PRECISION, price_out)


def check_execution_price(
    pool: PoolState,
    prices: OraclePrices,
    *,
    amount_in: int,
    amount_out: int,
    is_a_to_b: bool,
) -> None:
    """
    Reject a trade whose realized rate strays more than `oracle_max_deviation_bps`
    from the oracle rate. The gap is measured against the larger of the two
    rates, so the bound is symmetric. Both tokens are compared in raw units.

    Raises:
        PriceDeviationExceeded
    """
    executed = mul_div_floor(amount_out, PRICE_PRECISION, amount_in)
    expected = oracle_rate(prices, is_a_to_b=is_a_to_b)
    larger, smaller = max(executed, expected), min(executed, expected)
    if larger == 0:
        return
    dev = mul_div_floor(larger - smaller, BPS_DENOM, larger)
    if dev > pool.oracle_max_deviation_bps:
        raise PriceDeviationExceeded(
            f"pool {pool.pool_id}: execution rate {executed} is {dev} bps from oracle rate {expected}"
            f" (max {pool.oracle_max_deviation_bps})"
        )
