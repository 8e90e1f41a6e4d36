"""
Single-pool swap execution.

Oracle validation of both legs happens before any balance or reserve changes.
The quoted trade must also execute close to the oracle rate, and a pool with
an open flash loan does not trade.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..errors import PoolPaused, SlippageExceeded, ZeroAmount
from ..state.balances import Amount, AssetId, PubKey
from ..state.ledger import Ledger
from ..state.pools import PoolState
from .checked import add_u128, check_u64
from .cpmm import SwapQuote, quote_exact_in
from .flash_loan import require_no_open_loan
from .oracle import OracleValidator, accept_prices, check_execution_price
from .twap import accumulate


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SwapReceipt:
    pool_id: str
    token_in: AssetId
    token_out: AssetId
    amount_in: Amount
    fee: Amount
    amount_out: Amount


def quote_pool(pool: PoolState, *, amount_in: Amount, is_a_to_b: bool) -> SwapQuote:
    """Read-only quote against the pool's current reserves."""
    reserve_in, reserve_out = (pool.reserve_a, pool.reserve_b) if is_a_to_b else (pool.reserve_b, pool.reserve_a)
    return quote_exact_in(
        reserve_in=reserve_in,
        reserve_out=reserve_out,
        amount_in=amount_in,
        fee_numerator=pool.fee_numerator,
        fee_denominator=pool.fee_denominator,
    )


def swap(
    ledger: Ledger,
    validator: OracleValidator,
    *,
    pool_id: str,
    signer: PubKey,
    amount_in: Amount,
    min_amount_out: Amount,
    is_a_to_b: bool,
    now: int,
) -> SwapReceipt:
    """
    Execute one exact-in swap.

    Raises:
        PoolPaused, FlashLoanActive, ZeroAmount, StaleOraclePrice,
        PriceDeviationExceeded, SlippageExceeded, InsufficientLiquidity,
        InsufficientBalance
    """
    pool = ledger.get_pool(pool_id)
    if pool.is_paused:
        raise PoolPaused(f"pool {pool_id} is paused")
    require_no_open_loan(ledger, pool_id)
    check_u64(amount_in, name="amount_in")
    if amount_in == 0:
        raise ZeroAmount("amount_in must be positive")

    prices = validator.validate_pool(pool, now=now)
    quote = quote_pool(pool, amount_in=amount_in, is_a_to_b=is_a_to_b)
    if quote.amount_out < min_amount_out:
        raise SlippageExceeded(f"amount_out {quote.amount_out} < min_amount_out {min_amount_out}")
    check_execution_price(pool, prices, amount_in=amount_in, amount_out=quote.amount_out, is_a_to_b=is_a_to_b)

    accumulate(pool, now)
    token_in, token_out = (pool.token_a, pool.token_b) if is_a_to_b else (pool.token_b, pool.token_a)
    ledger.balances.transfer(signer, pool.vault, token_in, amount_in)
    ledger.balances.transfer(pool.vault, signer, token_out, quote.amount_out)

    if is_a_to_b:
        pool.reserve_a = quote.new_reserve_in
        pool.reserve_b = quote.new_reserve_out
        pool.total_volume_a = add_u128(pool.total_volume_a, amount_in)
        pool.total_fees_a = add_u128(pool.total_fees_a, quote.fee)
    else:
        pool.reserve_b = quote.new_reserve_in
        pool.reserve_a = quote.new_reserve_out
        pool.total_volume_b = add_u128(pool.total_volume_b, amount_in)
        pool.total_fees_b = add_u128(pool.total_fees_b, quote.fee)
    accept_prices(pool, prices)

    logger.info(
        "swap on %s: %d %s -> %d %s (fee %d)",
        pool_id, amount_in, token_in, quote.amount_out, token_out, quote.fee,
    )
    return SwapReceipt(
        pool_id=pool_id,
        token_in=token_in,
        token_out=token_out,
        amount_in=amount_in,
        fee=quote.fee,
        amount_out=quote.amount_out,
    )
