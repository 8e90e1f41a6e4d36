# [TESTER] v1

from __future__ import annotations

from typing import Any, Dict

import pytest

from alioth_amm import AmmEngine, AmmSettings, InMemoryPriceFeed
from alioth_amm.errors import SlippageExceeded
from alioth_amm.state.farming import compute_farm_id
from alioth_amm.state.ledger import Ledger
from alioth_amm.state.lp import LOCKED_LP_OWNER
from alioth_amm.state.pools import compute_pool_id


ONE = 1_000_000_000
T = 10_000
POOL_ID = compute_pool_id("SOL", "USDC")


def _ix(kind: str, signer: str, **fields: Any) -> Dict[str, Any]:
    return {"kind": kind, "signer": signer, **fields}


def _init_pool(**overrides: Any) -> Dict[str, Any]:
    fields: Dict[str, Any] = dict(
        token_a="SOL",
        token_b="USDC",
        oracle_a="feed:SOL",
        oracle_b="feed:USDC",
        fee_numerator=3,
        fee_denominator=1000,
        oracle_max_age=300,
        oracle_max_deviation_bps=500,
    )
    fields.update(overrides)
    return _ix("initialize_pool", "admin", **fields)


def _engine(settings: AmmSettings | None = None) -> tuple[AmmEngine, InMemoryPriceFeed]:
    feed = InMemoryPriceFeed()
    feed.set_price("feed:SOL", ONE, publish_time=T)
    feed.set_price("feed:USDC", ONE, publish_time=T)
    ledger = Ledger()
    for who in ("alice", "bob"):
        ledger.balances.set(who, "SOL", 200 * ONE)
        ledger.balances.set(who, "USDC", 200 * ONE)
    ledger.balances.set("admin", "RWD", 10**12)
    return AmmEngine(feed, settings=settings, ledger=ledger), feed


def test_pool_lifecycle_through_engine() -> None:
    engine, _ = _engine()
    result = engine.execute(
        [
            _init_pool(),
            _ix("add_liquidity", "alice", pool_id=POOL_ID, amount_a=100 * ONE, amount_b=100 * ONE, min_lp_out=0),
        ],
        now=T,
    )
    assert result.ok, result.error
    assert result.receipts[1].lp_amount == 99_999_999_000

    pool = engine.ledger.pools[POOL_ID]
    assert pool.lp_supply == 100 * ONE
    assert engine.ledger.lp_balances.get(LOCKED_LP_OWNER, POOL_ID) == 1000

    swap_result = engine.execute(
        [_ix("swap", "bob", pool_id=POOL_ID, amount_in=ONE, min_amount_out=1, is_a_to_b=True)], now=T
    )
    assert swap_result.ok
    assert engine.ledger.pools[POOL_ID].get_constant_product() >= (100 * ONE) ** 2


def test_failed_instruction_discards_whole_batch() -> None:
    engine, _ = _engine()
    engine.execute_or_raise(
        [
            _init_pool(oracle_max_deviation_bps=1000),
            _ix("add_liquidity", "alice", pool_id=POOL_ID, amount_a=10_000, amount_b=10_000, min_lp_out=0),
        ],
        now=T,
    )
    before = engine.snapshot().commitment_hex()

    result = engine.execute(
        [
            _ix("swap", "bob", pool_id=POOL_ID, amount_in=1000, min_amount_out=0, is_a_to_b=True),
            _ix("swap", "bob", pool_id=POOL_ID, amount_in=1000, min_amount_out=10_000, is_a_to_b=True),
        ],
        now=T,
    )
    assert not result.ok
    assert result.code == "SLIPPAGE_EXCEEDED"
    assert result.receipts == ()
    assert engine.snapshot().commitment_hex() == before

    with pytest.raises(SlippageExceeded):
        engine.execute_or_raise(
            [_ix("swap", "bob", pool_id=POOL_ID, amount_in=1000, min_amount_out=908, is_a_to_b=True)], now=T
        )
    assert engine.execute(
        [_ix("swap", "bob", pool_id=POOL_ID, amount_in=1000, min_amount_out=907, is_a_to_b=True)], now=T
    ).receipts[0].amount_out == 907


def test_malformed_instruction_is_reported() -> None:
    engine, _ = _engine()
    result = engine.execute([_ix("swap", "bob", pool_id=POOL_ID)], now=T)
    assert not result.ok
    assert result.code == "INVALID_INSTRUCTION"
    assert "missing field" in (result.error or "")


def test_stale_oracle_reported_by_code() -> None:
    engine, _ = _engine()
    engine.execute_or_raise(
        [
            _init_pool(),
            _ix("add_liquidity", "alice", pool_id=POOL_ID, amount_a=10_000, amount_b=10_000, min_lp_out=0),
        ],
        now=T,
    )
    result = engine.execute(
        [_ix("swap", "bob", pool_id=POOL_ID, amount_in=100, min_amount_out=0, is_a_to_b=True)], now=T + 301
    )
    assert result.code == "STALE_ORACLE_PRICE"


def test_admin_instructions_through_engine() -> None:
    engine, _ = _engine()
    engine.execute_or_raise([_init_pool()], now=T)
    result = engine.execute([_ix("pause_pool", "mallory", pool_id=POOL_ID)], now=T)
    assert result.code == "UNAUTHORIZED"

    engine.execute_or_raise(
        [
            _ix("pause_pool", "admin", pool_id=POOL_ID),
            _ix("update_fees", "admin", pool_id=POOL_ID, fee_numerator=1, fee_denominator=100),
            _ix("update_oracle_config", "admin", pool_id=POOL_ID, max_age=60),
        ],
        now=T,
    )
    pool = engine.ledger.pools[POOL_ID]
    assert pool.is_paused
    assert (pool.fee_numerator, pool.oracle_max_age, pool.oracle_max_deviation_bps) == (1, 60, 500)

    paused = engine.execute(
        [_ix("add_liquidity", "alice", pool_id=POOL_ID, amount_a=10_000, amount_b=10_000, min_lp_out=0)], now=T
    )
    assert paused.code == "POOL_PAUSED"

    engine.execute_or_raise(
        [
            _ix("unpause_pool", "admin", pool_id=POOL_ID),
            _ix("transfer_authority", "admin", pool_id=POOL_ID, new_authority="dao"),
        ],
        now=T,
    )
    assert engine.ledger.pools[POOL_ID].authority == "dao"


def test_farming_rewards_through_engine() -> None:
    engine, _ = _engine()
    farm_id = compute_farm_id(POOL_ID)
    engine.execute_or_raise(
        [
            _init_pool(),
            _ix("add_liquidity", "alice", pool_id=POOL_ID, amount_a=100 * ONE, amount_b=100 * ONE, min_lp_out=0),
            _ix(
                "initialize_farm",
                "admin",
                pool_id=POOL_ID,
                reward_asset="RWD",
                reward_per_slot=1_000_000,
                start_time=T,
                end_time=T + 10_000,
            ),
            _ix("fund_farm", "admin", farm_id=farm_id, amount=10**9),
            _ix("stake", "alice", farm_id=farm_id, amount=50 * ONE),
        ],
        now=T,
    )

    receipts = engine.execute_or_raise([_ix("claim_rewards", "alice", farm_id=farm_id)], now=T + 100)
    assert receipts[0].rewards_paid == 100_000_000
    assert engine.ledger.balances.get("alice", "RWD") == 100_000_000

    engine.execute_or_raise([_ix("unstake", "alice", farm_id=farm_id, amount=50 * ONE)], now=T + 200)
    assert engine.ledger.lp_balances.get("alice", POOL_ID) == 99_999_999_000
    assert engine.ledger.balances.get("alice", "RWD") == 200_000_000

    result = engine.execute([_ix("set_farm_active", "admin", farm_id=farm_id, active=False)], now=T + 200)
    assert result.ok
    inactive = engine.execute([_ix("stake", "alice", farm_id=farm_id, amount=ONE)], now=T + 300)
    assert inactive.code == "FARMING_NOT_ACTIVE"


def test_farm_duration_follows_settings() -> None:
    engine, _ = _engine(AmmSettings(min_farming_duration=100, max_farming_duration=1000))
    farm = _ix(
        "initialize_farm",
        "admin",
        pool_id=POOL_ID,
        reward_asset="RWD",
        reward_per_slot=1,
        start_time=T,
        end_time=T + 5000,
    )
    result = engine.execute([_init_pool(), farm], now=T)
    assert result.code == "INVALID_POOL_CONFIG"


def test_multi_hop_through_engine() -> None:
    engine, feed = _engine()
    feed.set_price("feed:ETH", ONE, publish_time=T)
    engine.ledger.balances.set("alice", "ETH", 200 * ONE)
    usdc_eth = compute_pool_id("USDC", "ETH")
    engine.execute_or_raise(
        [
            _init_pool(),
            _init_pool(token_a="USDC", token_b="ETH", oracle_a="feed:USDC", oracle_b="feed:ETH"),
            _ix("add_liquidity", "alice", pool_id=POOL_ID, amount_a=ONE, amount_b=ONE, min_lp_out=0),
            _ix("add_liquidity", "alice", pool_id=usdc_eth, amount_a=ONE, amount_b=ONE, min_lp_out=0),
        ],
        now=T,
    )
    result = engine.execute(
        [
            _ix(
                "multi_hop_swap",
                "bob",
                token_in="SOL",
                amount_in=1_000_000,
                min_amount_out=990_000,
                hops=2,
                route=[POOL_ID, usdc_eth],
            )
        ],
        now=T,
    )
    assert result.ok, result.error
    assert engine.ledger.balances.get("bob", "ETH") == result.receipts[0].amount_out

    too_many = engine.execute(
        [
            _ix(
                "multi_hop_swap",
                "bob",
                token_in="SOL",
                amount_in=1_000,
                min_amount_out=0,
                hops=4,
                route=[POOL_ID, usdc_eth, POOL_ID, usdc_eth],
            )
        ],
        now=T,
    )
    assert too_many.code == "MAX_HOPS_EXCEEDED"
