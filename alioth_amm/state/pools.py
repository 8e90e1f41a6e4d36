"""
Pool state for constant-product AMM pools.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .balances import Amount, AssetId, PubKey
from .canonical import derive_address


def compute_pool_id(token_a: AssetId, token_b: AssetId) -> str:
    """
    Deterministically compute a pool_id for a token pair.

    The pair is ordered: (A, B) and (B, A) address different pools.
    """
    if not isinstance(token_a, str) or not token_a or not isinstance(token_b, str) or not token_b:
        raise ValueError("token identities must be non-empty strings")
    if token_a == token_b:
        raise ValueError(f"pool tokens must differ: {token_a}")
    return derive_address("pool", token_a, token_b)


def pool_vault_address(pool_id: str) -> PubKey:
    """Custody address that holds a pool's reserves and fees."""
    return derive_address("pool_vault", pool_id)


@dataclass
class PoolState:
    """
    State of a constant-product pool.

    Attributes:
        pool_id: deterministic pool identifier (hex string)
        authority: account allowed to run admin instructions
        token_a / token_b: token identities
        reserve_a / reserve_b: reserves (u64)
        lp_supply: total LP shares, including the locked minimum
        fee_numerator / fee_denominator: swap fee ratio
        oracle_a / oracle_b: price-feed identifiers for each side
        oracle_max_age: max seconds between publish and use
        oracle_max_deviation_bps: max move vs the last accepted price
        is_paused: blocks liquidity, swaps and flash loans
        cumulative_price_a / cumulative_price_b: time-integrated reserve spot
            prices (A in B, B in A), u128
        last_update_time: timestamp of the last accumulator update
        last_price_a / last_price_b: last accepted normalized oracle prices
        total_volume_a / total_volume_b, total_fees_a / total_fees_b: counters
        created_at: timestamp of initialization
    """

    pool_id: str
    authority: PubKey
    token_a: AssetId
    token_b: AssetId
    oracle_a: str
    oracle_b: str
    fee_numerator: int
    fee_denominator: int
    oracle_max_age: int
    oracle_max_deviation_bps: int
    created_at: int
    reserve_a: Amount = 0
    reserve_b: Amount = 0
    lp_supply: Amount = 0
    is_paused: bool = False
    cumulative_price_a: int = 0
    cumulative_price_b: int = 0
    last_update_time: int = 0
    last_price_a: Optional[int] = None
    last_price_b: Optional[int] = None
    total_volume_a: int = 0
    total_volume_b: int = 0
    total_fees_a: int = 0
    total_fees_b: int = 0

    def __post_init__(self) -> None:
        if self.token_a == self.token_b:
            raise ValueError(f"pool tokens must differ: {self.token_a}")
        if self.reserve_a < 0 or self.reserve_b < 0:
            raise ValueError(f"Reserves must be non-negative: ({self.reserve_a}, {self.reserve_b})")
        if self.lp_supply < 0:
            raise ValueError(f"LP supply must be non-negative: {self.lp_supply}")

    @property
    def vault(self) -> PubKey:
        return pool_vault_address(self.pool_id)

    def is_empty(self) -> bool:
        return self.lp_supply == 0

    def get_reserve(self, asset: AssetId) -> Amount:
        if asset == self.token_a:
            return self.reserve_a
        if asset == self.token_b:
            return self.reserve_b
        raise ValueError(f"Asset {asset} not in pool {self.pool_id}")

    def other_token(self, asset: AssetId) -> AssetId:
        if asset == self.token_a:
            return self.token_b
        if asset == self.token_b:
            return self.token_a
        raise ValueError(f"Asset {asset} not in pool {self.pool_id}")

    def get_constant_product(self) -> int:
        return self.reserve_a * self.reserve_b

    def verify_invariant(self) -> bool:
        """Reserves and supply are either all zero or all positive."""
        zeros = (self.reserve_a == 0, self.reserve_b == 0, self.lp_supply == 0)
        return all(zeros) or not any(zeros)

    def __repr__(self) -> str:
        return (
            f"PoolState(pool_id={self.pool_id[:16]}..., "
            f"tokens=({self.token_a}, {self.token_b}), "
            f"reserves=({self.reserve_a}, {self.reserve_b}), "
            f"lp_supply={self.lp_supply}, paused={self.is_paused})"
        )
