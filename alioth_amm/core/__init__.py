"""
Core AMM algorithms
"""

from .cpmm import MINIMUM_LIQUIDITY, compute_lp_burn, compute_lp_mint, get_amount_in, quote_exact_in, spot_price
from .farming import REWARD_PRECISION, claim_rewards, fund_farm, initialize_farm, settle, stake, unstake
from .flash_loan import flash_loan, flash_loan_repay
from .liquidity import add_liquidity, initialize_pool, remove_liquidity
from .oracle import PRICE_PRECISION, OracleValidator, PriceFeed, PriceReading
from .routing import MAX_SWAP_HOPS, best_route_exact_in, multi_hop_swap, quote_route
from .swap import swap
from .twap import MIN_TWAP_WINDOW, observe, window_twap

__all__ = [
    "MINIMUM_LIQUIDITY",
    "compute_lp_burn",
    "compute_lp_mint",
    "get_amount_in",
    "quote_exact_in",
    "spot_price",
    "REWARD_PRECISION",
    "claim_rewards",
    "fund_farm",
    "initialize_farm",
    "settle",
    "stake",
    "unstake",
    "flash_loan",
    "flash_loan_repay",
    "add_liquidity",
    "initialize_pool",
    "remove_liquidity",
    "PRICE_PRECISION",
    "OracleValidator",
    "PriceFeed",
    "PriceReading",
    "MAX_SWAP_HOPS",
    "best_route_exact_in",
    "multi_hop_swap",
    "quote_route",
    "swap",
    "MIN_TWAP_WINDOW",
    "observe",
    "window_twap",
]
