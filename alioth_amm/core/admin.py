"""
Authority-gated pool and farm administration.

Each instruction compares the signer against the record's `authority` field;
signature verification happens before instructions reach the ledger.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..errors import InvalidPoolConfig, PoolPaused, Unauthorized
from ..state.balances import PubKey
from ..state.farming import FarmingPool
from ..state.ledger import Ledger
from ..state.pools import PoolState
from .fees import validate_fee_config
from .oracle import validate_oracle_config


logger = logging.getLogger(__name__)


def _authorized_pool(ledger: Ledger, pool_id: str, signer: PubKey) -> PoolState:
    pool = ledger.get_pool(pool_id)
    if signer != pool.authority:
        raise Unauthorized(f"{signer} is not the authority of pool {pool_id}")
    return pool


def pause_pool(ledger: Ledger, *, pool_id: str, signer: PubKey) -> None:
    pool = _authorized_pool(ledger, pool_id, signer)
    if pool.is_paused:
        raise PoolPaused(f"pool {pool_id} is already paused")
    pool.is_paused = True
    logger.warning("pool %s paused by %s", pool_id, signer)


def unpause_pool(ledger: Ledger, *, pool_id: str, signer: PubKey) -> None:
    """Resume a paused pool. Unpausing a running pool is a no-op."""
    pool = _authorized_pool(ledger, pool_id, signer)
    if not pool.is_paused:
        return
    pool.is_paused = False
    logger.info("pool %s unpaused by %s", pool_id, signer)


def update_fees(ledger: Ledger, *, pool_id: str, signer: PubKey, fee_numerator: int, fee_denominator: int) -> None:
    pool = _authorized_pool(ledger, pool_id, signer)
    validate_fee_config(fee_numerator, fee_denominator)
    pool.fee_numerator = fee_numerator
    pool.fee_denominator = fee_denominator
    logger.info("pool %s fee set to %d/%d", pool_id, fee_numerator, fee_denominator)


def update_oracle_config(
    ledger: Ledger,
    *,
    pool_id: str,
    signer: PubKey,
    max_age: Optional[int] = None,
    max_deviation_bps: Optional[int] = None,
) -> None:
    """Change either oracle bound; a None argument keeps the current value."""
    pool = _authorized_pool(ledger, pool_id, signer)
    new_age = pool.oracle_max_age if max_age is None else max_age
    new_dev = pool.oracle_max_deviation_bps if max_deviation_bps is None else max_deviation_bps
    validate_oracle_config(new_age, new_dev)
    pool.oracle_max_age = new_age
    pool.oracle_max_deviation_bps = new_dev
    logger.info("pool %s oracle bounds set to max_age=%d max_deviation_bps=%d", pool_id, new_age, new_dev)


def transfer_authority(ledger: Ledger, *, pool_id: str, signer: PubKey, new_authority: PubKey) -> None:
    pool = _authorized_pool(ledger, pool_id, signer)
    if not isinstance(new_authority, str) or not new_authority:
        raise InvalidPoolConfig("new_authority must be a non-empty string")
    pool.authority = new_authority
    logger.warning("pool %s authority transferred from %s to %s", pool_id, signer, new_authority)


def set_farm_active(ledger: Ledger, *, farm_id: str, signer: PubKey, active: bool) -> FarmingPool:
    farm = ledger.get_farm(farm_id)
    if signer != farm.authority:
        raise Unauthorized(f"{signer} is not the authority of farm {farm_id}")
    farm.is_active = bool(active)
    logger.info("farm %s active=%s", farm_id, farm.is_active)
    return farm
