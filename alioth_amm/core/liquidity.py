"""
Liquidity management operations: initialize pool, add/remove liquidity.

All functions mutate the given ledger in place and expect to run inside a
transaction, which discards partial effects when they raise.

Deposits and withdrawals are refused while a flash loan is open on the pool,
and both credit the pool TWAP before reserves move.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..errors import InsufficientLiquidity, InvalidPoolConfig, PoolPaused, SlippageExceeded, Unauthorized, ZeroAmount
from ..state.balances import Amount, AssetId, PubKey
from ..state.ledger import Ledger
from ..state.lp import LOCKED_LP_OWNER
from ..state.pools import PoolState, compute_pool_id
from .checked import add_u64, check_u64, sub_u64
from .cpmm import MINIMUM_LIQUIDITY, compute_lp_burn, compute_lp_mint
from .fees import validate_fee_config
from .flash_loan import require_no_open_loan
from .oracle import validate_oracle_config
from .twap import accumulate


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LiquidityReceipt:
    pool_id: str
    amount_a: Amount
    amount_b: Amount
    lp_amount: Amount
    locked_lp: Amount = 0


def initialize_pool(
    ledger: Ledger,
    *,
    signer: PubKey,
    token_a: AssetId,
    token_b: AssetId,
    oracle_a: str,
    oracle_b: str,
    fee_numerator: int,
    fee_denominator: int,
    oracle_max_age: int,
    oracle_max_deviation_bps: int,
    now: int,
) -> PoolState:
    """
    Create an empty pool for (token_a, token_b); `signer` becomes its authority.

    Raises:
        InvalidFeeConfig: unless 0 < fee_numerator < fee_denominator (and at most 10%)
        InvalidOracle: if max age is not positive or max deviation exceeds 10000 bps
        InvalidPoolConfig: if the tokens are equal or the pool exists
    """
    validate_fee_config(fee_numerator, fee_denominator)
    validate_oracle_config(oracle_max_age, oracle_max_deviation_bps)
    if token_a == token_b:
        raise InvalidPoolConfig(f"pool tokens must differ: {token_a}")
    if not oracle_a or not oracle_b:
        raise InvalidPoolConfig("both oracle feeds must be set")

    pool_id = compute_pool_id(token_a, token_b)
    if pool_id in ledger.pools:
        raise InvalidPoolConfig(f"pool already exists: {pool_id}")

    pool = PoolState(
        pool_id=pool_id,
        authority=signer,
        token_a=token_a,
        token_b=token_b,
        oracle_a=oracle_a,
        oracle_b=oracle_b,
        fee_numerator=fee_numerator,
        fee_denominator=fee_denominator,
        oracle_max_age=oracle_max_age,
        oracle_max_deviation_bps=oracle_max_deviation_bps,
        created_at=now,
        last_update_time=now,
    )
    ledger.pools[pool_id] = pool
    logger.info("pool %s initialized for %s/%s by %s", pool_id, token_a, token_b, signer)
    return pool


def add_liquidity(
    ledger: Ledger,
    *,
    pool_id: str,
    signer: PubKey,
    amount_a: Amount,
    amount_b: Amount,
    min_lp_out: Amount,
    now: int,
) -> LiquidityReceipt:
    """
    Deposit both tokens and mint LP shares.

    The first deposit mints floor(sqrt(a * b)) shares and locks
    MINIMUM_LIQUIDITY of them. Later deposits mint the smaller of the two
    proportional shares; any excess of the other token stays in the pool.
    """
    pool = ledger.get_pool(pool_id)
    if pool.is_paused:
        raise PoolPaused(f"pool {pool_id} is paused")
    require_no_open_loan(ledger, pool_id)
    if amount_a == 0 or amount_b == 0:
        raise ZeroAmount("both deposit amounts must be positive")

    genesis = pool.lp_supply == 0
    lp_minted, user_share = compute_lp_mint(
        reserve_a=pool.reserve_a,
        reserve_b=pool.reserve_b,
        amount_a=amount_a,
        amount_b=amount_b,
        lp_supply=pool.lp_supply,
    )
    if user_share < min_lp_out:
        raise SlippageExceeded(f"minted {user_share} LP < min_lp_out {min_lp_out}")

    new_reserve_a = add_u64(pool.reserve_a, amount_a)
    new_reserve_b = add_u64(pool.reserve_b, amount_b)
    new_supply = add_u64(pool.lp_supply, lp_minted)

    accumulate(pool, now)
    ledger.balances.transfer(signer, pool.vault, pool.token_a, amount_a)
    ledger.balances.transfer(signer, pool.vault, pool.token_b, amount_b)

    pool.reserve_a = new_reserve_a
    pool.reserve_b = new_reserve_b
    pool.lp_supply = new_supply
    ledger.lp_balances.add(signer, pool_id, user_share)
    locked = 0
    if genesis:
        locked = MINIMUM_LIQUIDITY
        ledger.lp_balances.add(LOCKED_LP_OWNER, pool_id, locked)

    logger.info(
        "liquidity added to %s: a=%d b=%d lp=%d locked=%d", pool_id, amount_a, amount_b, user_share, locked
    )
    return LiquidityReceipt(pool_id=pool_id, amount_a=amount_a, amount_b=amount_b, lp_amount=user_share, locked_lp=locked)


def remove_liquidity(
    ledger: Ledger,
    *,
    pool_id: str,
    signer: PubKey,
    lp_amount: Amount,
    min_amount_a: Amount,
    min_amount_b: Amount,
    now: int,
) -> LiquidityReceipt:
    """Burn LP shares for a pro-rata share of both reserves."""
    pool = ledger.get_pool(pool_id)
    if pool.is_paused:
        raise PoolPaused(f"pool {pool_id} is paused")
    require_no_open_loan(ledger, pool_id)
    check_u64(lp_amount, name="lp_amount")
    if lp_amount == 0:
        raise ZeroAmount("lp_amount must be positive")
    if signer == LOCKED_LP_OWNER:
        raise Unauthorized("locked liquidity cannot be withdrawn")
    held = ledger.lp_balances.get(signer, pool_id)
    if lp_amount > held:
        raise InsufficientLiquidity(f"{signer} holds {held} LP, tried to burn {lp_amount}")

    amount_a, amount_b = compute_lp_burn(
        reserve_a=pool.reserve_a,
        reserve_b=pool.reserve_b,
        lp_amount=lp_amount,
        lp_supply=pool.lp_supply,
    )
    if amount_a < min_amount_a or amount_b < min_amount_b:
        raise SlippageExceeded(
            f"withdrawal ({amount_a}, {amount_b}) below minimum ({min_amount_a}, {min_amount_b})"
        )

    accumulate(pool, now)
    ledger.lp_balances.subtract(signer, pool_id, lp_amount)
    pool.lp_supply = sub_u64(pool.lp_supply, lp_amount)
    pool.reserve_a = sub_u64(pool.reserve_a, amount_a)
    pool.reserve_b = sub_u64(pool.reserve_b, amount_b)
    if amount_a > 0:
        ledger.balances.transfer(pool.vault, signer, pool.token_a, amount_a)
    if amount_b > 0:
        ledger.balances.transfer(pool.vault, signer, pool.token_b, amount_b)

    logger.info("liquidity removed from %s: lp=%d a=%d b=%d", pool_id, lp_amount, amount_a, amount_b)
    return LiquidityReceipt(pool_id=pool_id, amount_a=amount_a, amount_b=amount_b, lp_amount=lp_amount)
