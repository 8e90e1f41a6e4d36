"""
State management for the Alioth AMM ledger
"""

from .balances import BalanceTable
from .farming import FarmingPool, UserStake
from .flash_loans import FlashLoanRecord
from .ledger import Ledger
from .lp import LOCKED_LP_OWNER, LPTable
from .pools import PoolState, compute_pool_id

__all__ = [
    "BalanceTable",
    "FarmingPool",
    "UserStake",
    "FlashLoanRecord",
    "Ledger",
    "LOCKED_LP_OWNER",
    "LPTable",
    "PoolState",
    "compute_pool_id",
]
