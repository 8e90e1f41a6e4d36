"""
Flash loans: borrow from pool reserves and repay principal plus fee within the
same transaction.

Per (pool, borrower) the record moves None -> Borrowed -> Closed. This module
only opens and closes records; the transaction refuses to commit while one is
still open, which discards the borrow and everything after it.

While any loan on a pool is open its reserve fields are short by the
principal, so nothing may price against them: swaps and liquidity changes on
that pool are refused until every loan on it is repaid.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..errors import FlashLoanActive, FlashLoanNotRepaid, InsufficientBalance, InsufficientLiquidity, PoolPaused, ZeroAmount
from ..state.balances import Amount, PubKey
from ..state.flash_loans import FlashLoanRecord
from ..state.ledger import Ledger
from .checked import add_u128, add_u64, check_u64, sub_u64
from .fees import compute_flash_loan_fee
from .twap import accumulate


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FlashRepayReceipt:
    pool_id: str
    borrower: PubKey
    repaid_a: Amount
    repaid_b: Amount
    fee_a: Amount
    fee_b: Amount


def flash_loan(
    ledger: Ledger,
    *,
    pool_id: str,
    signer: PubKey,
    amount_a: Amount,
    amount_b: Amount,
    fee_bps: int,
    now: int,
    min_fee: int = 0,
) -> FlashLoanRecord:
    """
    Lend `amount_a` / `amount_b` out of the pool's reserves to `signer`.

    Raises:
        PoolPaused: if the pool is paused
        ZeroAmount: if both amounts are zero
        InsufficientLiquidity: if either amount exceeds its reserve
        FlashLoanNotRepaid: if the borrower already has an open loan on this pool
    """
    pool = ledger.get_pool(pool_id)
    if pool.is_paused:
        raise PoolPaused(f"pool {pool_id} is paused")
    check_u64(amount_a, name="amount_a")
    check_u64(amount_b, name="amount_b")
    if amount_a == 0 and amount_b == 0:
        raise ZeroAmount("flash loan must borrow a positive amount")
    if amount_a > pool.reserve_a or amount_b > pool.reserve_b:
        raise InsufficientLiquidity(
            f"flash loan ({amount_a}, {amount_b}) exceeds reserves ({pool.reserve_a}, {pool.reserve_b})"
        )
    key = (pool_id, signer)
    if key in ledger.flash_loans:
        raise FlashLoanNotRepaid(f"{signer} already has an open flash loan on {pool_id}")

    accumulate(pool, now)
    record = FlashLoanRecord(
        pool_id=pool_id,
        borrower=signer,
        principal_a=amount_a,
        principal_b=amount_b,
        fee_a=compute_flash_loan_fee(amount_a, fee_bps, min_fee=min_fee),
        fee_b=compute_flash_loan_fee(amount_b, fee_bps, min_fee=min_fee),
        initiated_at=now,
    )
    pool.reserve_a = sub_u64(pool.reserve_a, amount_a)
    pool.reserve_b = sub_u64(pool.reserve_b, amount_b)
    if amount_a > 0:
        ledger.balances.transfer(pool.vault, signer, pool.token_a, amount_a)
    if amount_b > 0:
        ledger.balances.transfer(pool.vault, signer, pool.token_b, amount_b)
    ledger.flash_loans[key] = record

    logger.info(
        "flash loan on %s to %s: a=%d b=%d owes (%d, %d)",
        pool_id, signer, amount_a, amount_b, record.total_repay_a, record.total_repay_b,
    )
    return record


def flash_loan_repay(ledger: Ledger, *, pool_id: str, signer: PubKey) -> FlashRepayReceipt:
    """
    Close the borrower's open loan by paying principal plus fee back into the pool.

    Raises:
        FlashLoanNotRepaid: if no loan is open or the borrower cannot cover it
    """
    key = (pool_id, signer)
    record = ledger.flash_loans.get(key)
    if record is None:
        raise FlashLoanNotRepaid(f"no open flash loan for {signer} on {pool_id}")
    pool = ledger.get_pool(pool_id)

    repay_a = record.total_repay_a
    repay_b = record.total_repay_b
    try:
        if repay_a > 0:
            ledger.balances.transfer(signer, pool.vault, pool.token_a, repay_a)
        if repay_b > 0:
            ledger.balances.transfer(signer, pool.vault, pool.token_b, repay_b)
    except InsufficientBalance as exc:
        raise FlashLoanNotRepaid(f"{signer} cannot repay flash loan on {pool_id}: {exc}") from exc

    pool.reserve_a = add_u64(pool.reserve_a, repay_a)
    pool.reserve_b = add_u64(pool.reserve_b, repay_b)
    pool.total_fees_a = add_u128(pool.total_fees_a, record.fee_a)
    pool.total_fees_b = add_u128(pool.total_fees_b, record.fee_b)
    del ledger.flash_loans[key]

    logger.info("flash loan on %s repaid by %s: a=%d b=%d", pool_id, signer, repay_a, repay_b)
    return FlashRepayReceipt(
        pool_id=pool_id,
        borrower=signer,
        repaid_a=repay_a,
        repaid_b=repay_b,
        fee_a=record.fee_a,
        fee_b=record.fee_b,
    )


def require_no_open_loan(ledger: Ledger, pool_id: str) -> None:
    """
    Raises:
        FlashLoanActive: if any borrower has an open loan on `pool_id`
    """
    borrowers = sorted(borrower for pid, borrower in ledger.flash_loans if pid == pool_id)
    if borrowers:
        raise FlashLoanActive(f"pool {pool_id} has open flash loans from {', '.join(borrowers)}")
