# [TESTER] v1

from __future__ import annotations

import pytest

from alioth_amm import AmmEngine, AmmSettings, InMemoryPriceFeed
from alioth_amm.errors import FlashLoanNotRepaid, InsufficientLiquidity
from alioth_amm.integration.instructions import Instruction, InstructionKind
from alioth_amm.integration.transaction import TxStatus
from alioth_amm.state.ledger import Ledger
from alioth_amm.state.pools import compute_pool_id


ONE = 1_000_000_000
T = 5_000
POOL_ID = compute_pool_id("SOL", "USDC")


def _engine(settings: AmmSettings | None = None) -> AmmEngine:
    feed = InMemoryPriceFeed()
    feed.set_price("feed:SOL", ONE, publish_time=T)
    feed.set_price("feed:USDC", ONE, publish_time=T)
    ledger = Ledger()
    ledger.balances.set("lp", "SOL", 50_000)
    ledger.balances.set("lp", "USDC", 50_000)
    ledger.balances.set("borrower", "SOL", 9)
    engine = AmmEngine(feed, settings=settings, ledger=ledger)
    engine.execute_or_raise(
        [
            Instruction.of(
                InstructionKind.INITIALIZE_POOL,
                "admin",
                token_a="SOL",
                token_b="USDC",
                oracle_a="feed:SOL",
                oracle_b="feed:USDC",
                fee_numerator=3,
                fee_denominator=1000,
                oracle_max_age=300,
                oracle_max_deviation_bps=500,
            ),
            Instruction.of(
                InstructionKind.ADD_LIQUIDITY, "lp", pool_id=POOL_ID, amount_a=50_000, amount_b=50_000, min_lp_out=0
            ),
        ],
        now=T,
    )
    return engine


def _borrow(amount_a: int = 10_000) -> Instruction:
    return Instruction.of(InstructionKind.FLASH_LOAN, "borrower", pool_id=POOL_ID, amount_a=amount_a, amount_b=0)


def _repay() -> Instruction:
    return Instruction.of(InstructionKind.FLASH_LOAN_REPAY, "borrower", pool_id=POOL_ID)


def test_flash_loan_repaid_in_same_transaction() -> None:
    engine = _engine()
    result = engine.execute([_borrow(), _repay()], now=T)
    assert result.ok, result.error
    pool = engine.ledger.pools[POOL_ID]
    assert pool.reserve_a == 50_009
    assert engine.ledger.balances.get("borrower", "SOL") == 0
    assert engine.ledger.balances.get(pool.vault, "SOL") == 50_009
    assert not engine.ledger.flash_loans


def test_unrepaid_flash_loan_rolls_back_everything() -> None:
    engine = _engine()
    before = engine.snapshot().commitment_hex()
    result = engine.execute([_borrow()], now=T)
    assert not result.ok
    assert result.code == "FLASH_LOAN_NOT_REPAID"
    assert engine.snapshot().commitment_hex() == before
    assert engine.ledger.pools[POOL_ID].reserve_a == 50_000
    assert engine.ledger.balances.get("borrower", "SOL") == 9


def test_flash_loan_fee_follows_settings() -> None:
    engine = _engine(AmmSettings(flash_loan_fee_bps=5))
    receipts = engine.execute_or_raise([_borrow(), _repay()], now=T)
    assert receipts[0].fee_a == 5
    assert engine.ledger.pools[POOL_ID].reserve_a == 50_005


def test_borrower_logic_between_borrow_and_repay() -> None:
    engine = _engine()
    with engine.begin(now=T) as tx:
        loan = tx.apply(_borrow())
        # The borrower holds the funds mid-transaction.
        assert tx.ledger.balances.get("borrower", "SOL") == loan.total_repay_a
        tx.apply(_repay())
    assert tx.status is TxStatus.COMMITTED
    assert engine.ledger.pools[POOL_ID].reserve_a == 50_009


def test_context_manager_without_repay_raises() -> None:
    engine = _engine()
    with pytest.raises(FlashLoanNotRepaid):
        with engine.begin(now=T) as tx:
            tx.apply(_borrow())
    assert tx.status is TxStatus.ROLLED_BACK
    assert engine.ledger.pools[POOL_ID].reserve_a == 50_000


def test_exception_in_block_rolls_back() -> None:
    engine = _engine()
    with pytest.raises(RuntimeError, match="borrower bailed"):
        with engine.begin(now=T) as tx:
            tx.apply(_borrow())
            tx.apply(_repay())
            raise RuntimeError("borrower bailed")
    assert tx.status is TxStatus.ROLLED_BACK
    assert engine.ledger.pools[POOL_ID].reserve_a == 50_000


def test_failed_apply_closes_transaction() -> None:
    engine = _engine()
    tx = engine.begin(now=T)
    with pytest.raises(InsufficientLiquidity):
        tx.apply(_borrow(amount_a=60_000))
    assert tx.status is TxStatus.ROLLED_BACK
    assert tx.receipts == ()
    with pytest.raises(RuntimeError):
        tx.apply(_borrow())


def test_commit_against_stale_ledger_is_refused() -> None:
    engine = _engine()
    tx = engine.begin(now=T)
    tx.apply(_borrow())
    tx.apply(_repay())
    engine.execute_or_raise([_borrow(100), _repay()], now=T)
    with pytest.raises(RuntimeError, match="ledger changed"):
        tx.commit()
    assert engine.ledger.pools[POOL_ID].reserve_a == 50_000


def test_swap_against_borrowed_reserves_is_refused() -> None:
    engine = _engine()
    before = engine.snapshot().commitment_hex()
    result = engine.execute(
        [
            _borrow(amount_a=49_000),
            Instruction.of(
                InstructionKind.SWAP, "borrower", pool_id=POOL_ID, amount_in=1000, min_amount_out=0, is_a_to_b=True
            ),
            _repay(),
        ],
        now=T,
    )
    assert not result.ok
    assert result.code == "FLASH_LOAN_ACTIVE"
    assert engine.snapshot().commitment_hex() == before


def test_deposit_against_borrowed_reserves_is_refused() -> None:
    engine = _engine()
    before = engine.snapshot().commitment_hex()
    result = engine.execute(
        [
            _borrow(amount_a=49_999),
            Instruction.of(
                InstructionKind.ADD_LIQUIDITY, "borrower", pool_id=POOL_ID, amount_a=1, amount_b=1000, min_lp_out=0
            ),
            _repay(),
        ],
        now=T,
    )
    assert result.code == "FLASH_LOAN_ACTIVE"
    assert engine.snapshot().commitment_hex() == before
    assert engine.ledger.lp_balances.get("borrower", POOL_ID) == 0


def test_minimum_flash_loan_fee_from_settings() -> None:
    engine = _engine(AmmSettings(flash_loan_min_fee=1))
    receipts = engine.execute_or_raise([_borrow(100), _repay()], now=T)
    assert receipts[0].fee_a == 1
    assert receipts[0].fee_b == 0
    assert engine.ledger.pools[POOL_ID].reserve_a == 50_001
