"""
In-memory price feed.

Satisfies the `PriceFeed` read contract for local runs, simulations and
tests. Production deployments plug in a feed backed by a real oracle network.
"""

from __future__ import annotations

from typing import Dict

from ..core.oracle import PriceReading
from ..errors import InvalidOracle


class InMemoryPriceFeed:
    def __init__(self) -> None:
        self._readings: Dict[str, PriceReading] = {}

    def set_price(
        self,
        feed_id: str,
        price: int,
        *,
        publish_time: int,
        exponent: int = -9,
        confidence: int = 0,
    ) -> PriceReading:
        reading = PriceReading(price=price, confidence=confidence, exponent=exponent, publish_time=publish_time)
        self._readings[feed_id] = reading
        return reading

    def get_price(self, feed_id: str) -> PriceReading:
        reading = self._readings.get(feed_id)
        if reading is None:
            raise InvalidOracle(f"no price published for feed {feed_id}")
        return reading

    def __repr__(self) -> str:
        return f"InMemoryPriceFeed({len(self._readings)} feeds)"
