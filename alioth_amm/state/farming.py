"""
Farming records: one FarmingPool per AMM pool, one UserStake per (farm, owner).
"""

from __future__ import annotations

from dataclasses import dataclass

from .balances import Amount, AssetId, PubKey
from .canonical import derive_address


def compute_farm_id(pool_id: str) -> str:
    return derive_address("farm", pool_id)


def farm_reward_vault(farm_id: str) -> PubKey:
    """Custody address holding undistributed reward tokens."""
    return derive_address("farm_rewards", farm_id)


def farm_stake_vault(farm_id: str) -> PubKey:
    """Custody address holding staked LP shares."""
    return derive_address("farm_stake", farm_id)


@dataclass
class FarmingPool:
    farm_id: str
    pool_id: str
    authority: PubKey
    reward_asset: AssetId
    reward_per_slot: Amount
    start_time: int
    end_time: int
    last_reward_time: int
    created_at: int
    acc_reward_per_share: int = 0
    total_staked: Amount = 0
    total_rewards_distributed: Amount = 0
    is_active: bool = True

    def __post_init__(self) -> None:
        if self.end_time <= self.start_time:
            raise ValueError(f"end_time must be after start_time: {self.start_time}..{self.end_time}")
        if self.total_staked < 0 or self.acc_reward_per_share < 0:
            raise ValueError("farm accumulators must be non-negative")


@dataclass
class UserStake:
    farm_id: str
    owner: PubKey
    created_at: int
    staked_amount: Amount = 0
    reward_debt: int = 0
    total_rewards_claimed: Amount = 0
    last_claim_time: int = 0
