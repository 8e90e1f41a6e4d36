"""
The full AMM ledger: token balances, LP shares, pools, farms, stakes and open
flash loans, keyed by deterministic addresses.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, Tuple

from ..errors import FarmingNotActive, InvalidPoolConfig
from .balances import BalanceTable, PubKey
from .farming import FarmingPool, UserStake
from .flash_loans import FlashLoanRecord
from .lp import LPTable
from .pools import PoolState


@dataclass
class Ledger:
    balances: BalanceTable = field(default_factory=BalanceTable)
    lp_balances: LPTable = field(default_factory=LPTable)
    pools: Dict[str, PoolState] = field(default_factory=dict)
    farms: Dict[str, FarmingPool] = field(default_factory=dict)
    stakes: Dict[Tuple[str, PubKey], UserStake] = field(default_factory=dict)
    flash_loans: Dict[Tuple[str, PubKey], FlashLoanRecord] = field(default_factory=dict)

    def get_pool(self, pool_id: str) -> PoolState:
        pool = self.pools.get(pool_id)
        if pool is None:
            raise InvalidPoolConfig(f"unknown pool: {pool_id}")
        return pool

    def get_farm(self, farm_id: str) -> FarmingPool:
        farm = self.farms.get(farm_id)
        if farm is None:
            raise FarmingNotActive(f"unknown farm: {farm_id}")
        return farm

    def copy(self) -> "Ledger":
        """Independent copy; mutating the copy never touches `self`."""
        return Ledger(
            balances=self.balances.copy(),
            lp_balances=self.lp_balances.copy(),
            pools={k: replace(v) for k, v in self.pools.items()},
            farms={k: replace(v) for k, v in self.farms.items()},
            stakes={k: replace(v) for k, v in self.stakes.items()},
            flash_loans=dict(self.flash_loans),
        )
