"""
LP staking with per-share reward accrual.

Each farm accrues `reward_per_slot` reward units per time unit between
`start_time` and `end_time`, split across stakers in proportion to staked LP:

    acc_reward_per_share += elapsed * reward_per_slot * PRECISION / total_staked
    pending               = staked * acc_reward_per_share / PRECISION - reward_debt

`reward_debt` is reset to `staked * acc / PRECISION` whenever a stake is
settled, so a staker only earns for time their shares were actually staked.
Intervals with nothing staked accrue nothing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..errors import (
    FarmingEnded,
    FarmingNotActive,
    FarmingNotStarted,
    InsufficientStake,
    InvalidPoolConfig,
    NoRewards,
    Unauthorized,
    ZeroAmount,
)
from ..state.balances import Amount, AssetId, PubKey
from ..state.farming import FarmingPool, UserStake, compute_farm_id, farm_reward_vault, farm_stake_vault
from ..state.ledger import Ledger
from .checked import add_u128, add_u64, check_u64, div_floor, mul_u128, sub_u64


logger = logging.getLogger(__name__)

REWARD_PRECISION = 10**12


@dataclass(frozen=True)
class FarmReceipt:
    farm_id: str
    owner: PubKey
    staked_amount: Amount
    rewards_paid: Amount


def settle(farm: FarmingPool, now: int) -> None:
    """Bring `acc_reward_per_share` up to min(now, end_time)."""
    effective = min(now, farm.end_time)
    if effective <= farm.last_reward_time:
        return
    if farm.total_staked == 0:
        farm.last_reward_time = effective
        return
    elapsed = effective - farm.last_reward_time
    reward = mul_u128(elapsed, farm.reward_per_slot)
    farm.acc_reward_per_share = add_u128(
        farm.acc_reward_per_share,
        div_floor(mul_u128(reward, REWARD_PRECISION), farm.total_staked),
    )
    farm.last_reward_time = effective


def accrued(farm: FarmingPool, staked_amount: Amount) -> int:
    return div_floor(mul_u128(staked_amount, farm.acc_reward_per_share), REWARD_PRECISION)


def pending_rewards(farm: FarmingPool, stake: UserStake) -> Amount:
    """Rewards owed to `stake` as of the farm's last settlement."""
    return accrued(farm, stake.staked_amount) - stake.reward_debt


def _pay_pending(ledger: Ledger, farm: FarmingPool, stake: UserStake, now: int) -> Amount:
    pending = pending_rewards(farm, stake)
    if pending > 0:
        ledger.balances.transfer(farm_reward_vault(farm.farm_id), stake.owner, farm.reward_asset, pending)
        stake.total_rewards_claimed = add_u128(stake.total_rewards_claimed, pending)
        stake.last_claim_time = now
        farm.total_rewards_distributed = add_u128(farm.total_rewards_distributed, pending)
    return pending


def initialize_farm(
    ledger: Ledger,
    *,
    pool_id: str,
    signer: PubKey,
    reward_asset: AssetId,
    reward_per_slot: Amount,
    start_time: int,
    end_time: int,
    now: int,
    min_duration: int,
    max_duration: int,
) -> FarmingPool:
    """
    Open a farm for `pool_id`'s LP shares. Only the pool authority may do this.

    Raises:
        Unauthorized: if `signer` is not the pool authority
        InvalidPoolConfig: bad rate or schedule, or the pool already has a farm
    """
    pool = ledger.get_pool(pool_id)
    if signer != pool.authority:
        raise Unauthorized(f"{signer} is not the authority of pool {pool_id}")
    check_u64(reward_per_slot, name="reward_per_slot")
    if reward_per_slot == 0:
        raise InvalidPoolConfig("reward_per_slot must be positive")
    if start_time < now:
        raise InvalidPoolConfig(f"start_time {start_time} is in the past (now {now})")
    if end_time <= start_time:
        raise InvalidPoolConfig(f"end_time {end_time} must be after start_time {start_time}")
    duration = end_time - start_time
    if not (min_duration <= duration <= max_duration):
        raise InvalidPoolConfig(f"farm duration {duration} outside [{min_duration}, {max_duration}]")

    farm_id = compute_farm_id(pool_id)
    if farm_id in ledger.farms:
        raise InvalidPoolConfig(f"pool {pool_id} already has a farm")

    farm = FarmingPool(
        farm_id=farm_id,
        pool_id=pool_id,
        authority=signer,
        reward_asset=reward_asset,
        reward_per_slot=reward_per_slot,
        start_time=start_time,
        end_time=end_time,
        last_reward_time=start_time,
        created_at=now,
    )
    ledger.farms[farm_id] = farm
    logger.info("farm %s opened on pool %s: %d/slot over [%d, %d)", farm_id, pool_id, reward_per_slot, start_time, end_time)
    return farm


def fund_farm(ledger: Ledger, *, farm_id: str, signer: PubKey, amount: Amount) -> None:
    """Deposit reward tokens into the farm's reward vault. Anyone may fund a farm."""
    farm = ledger.get_farm(farm_id)
    ledger.balances.transfer(signer, farm_reward_vault(farm_id), farm.reward_asset, amount)
    logger.info("farm %s funded with %d by %s", farm_id, amount, signer)


def stake(ledger: Ledger, *, farm_id: str, signer: PubKey, amount: Amount, now: int) -> FarmReceipt:
    """
    Stake LP shares, paying out any pending rewards first.

    Raises:
        FarmingNotActive, FarmingNotStarted, FarmingEnded, ZeroAmount,
        InsufficientLiquidity (not enough LP shares)
    """
    farm = ledger.get_farm(farm_id)
    if not farm.is_active:
        raise FarmingNotActive(f"farm {farm_id} is not active")
    if now < farm.start_time:
        raise FarmingNotStarted(f"farm {farm_id} starts at {farm.start_time}")
    if now >= farm.end_time:
        raise FarmingEnded(f"farm {farm_id} ended at {farm.end_time}")
    check_u64(amount, name="amount")
    if amount == 0:
        raise ZeroAmount("stake amount must be positive")

    settle(farm, now)
    key = (farm_id, signer)
    user = ledger.stakes.get(key)
    if user is None:
        user = UserStake(farm_id=farm_id, owner=signer, created_at=now)
        ledger.stakes[key] = user
    paid = _pay_pending(ledger, farm, user, now)

    ledger.lp_balances.move(signer, farm_stake_vault(farm_id), farm.pool_id, amount)
    user.staked_amount = add_u64(user.staked_amount, amount)
    farm.total_staked = add_u64(farm.total_staked, amount)
    user.reward_debt = accrued(farm, user.staked_amount)

    logger.info("stake on farm %s by %s: +%d (paid %d)", farm_id, signer, amount, paid)
    return FarmReceipt(farm_id=farm_id, owner=signer, staked_amount=user.staked_amount, rewards_paid=paid)


def unstake(ledger: Ledger, *, farm_id: str, signer: PubKey, amount: Amount, now: int) -> FarmReceipt:
    """Return staked LP shares, paying out any pending rewards first."""
    farm = ledger.get_farm(farm_id)
    check_u64(amount, name="amount")
    if amount == 0:
        raise ZeroAmount("unstake amount must be positive")
    user = ledger.stakes.get((farm_id, signer))
    staked = 0 if user is None else user.staked_amount
    if user is None or amount > staked:
        raise InsufficientStake(f"{signer} has {staked} staked on {farm_id}, tried to unstake {amount}")

    settle(farm, now)
    paid = _pay_pending(ledger, farm, user, now)

    user.staked_amount = sub_u64(user.staked_amount, amount)
    farm.total_staked = sub_u64(farm.total_staked, amount)
    user.reward_debt = accrued(farm, user.staked_amount)
    ledger.lp_balances.move(farm_stake_vault(farm_id), signer, farm.pool_id, amount)

    logger.info("unstake on farm %s by %s: -%d (paid %d)", farm_id, signer, amount, paid)
    return FarmReceipt(farm_id=farm_id, owner=signer, staked_amount=user.staked_amount, rewards_paid=paid)


def claim_rewards(ledger: Ledger, *, farm_id: str, signer: PubKey, now: int) -> FarmReceipt:
    """
    Raises:
        NoRewards: if nothing is pending
    """
    farm = ledger.get_farm(farm_id)
    user = ledger.stakes.get((farm_id, signer))
    if user is None:
        raise NoRewards(f"{signer} has never staked on {farm_id}")

    settle(farm, now)
    if pending_rewards(farm, user) == 0:
        raise NoRewards(f"no rewards pending for {signer} on {farm_id}")
    paid = _pay_pending(ledger, farm, user, now)
    user.reward_debt = accrued(farm, user.staked_amount)

    logger.info("rewards claimed on farm %s by %s: %d", farm_id, signer, paid)
    return FarmReceipt(farm_id=farm_id, owner=signer, staked_amount=user.staked_amount, rewards_paid=paid)
