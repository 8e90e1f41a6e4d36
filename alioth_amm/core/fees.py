"""
Fee rules (deterministic, integer-only).

Swap fees are a ratio `fee_numerator / fee_denominator` of the gross input,
rounded down. Flash-loan fees are basis points of the principal, rounded down.
"""

from __future__ import annotations

from ..errors import InvalidFeeConfig
from .checked import _require_int, check_u64, mul_div_floor


BPS_DENOM = 10_000

# A pool may never charge more than 1/MAX_FEE_FRACTION of the input.
MAX_FEE_FRACTION = 10

DEFAULT_FEE_NUMERATOR = 3
DEFAULT_FEE_DENOMINATOR = 1000
DEFAULT_FLASH_LOAN_FEE_BPS = 9


def validate_fee_config(fee_numerator: int, fee_denominator: int) -> None:
    """
    Raises:
        InvalidFeeConfig: unless 0 < fee_numerator < fee_denominator and the fee is at most 10%
    """
    _require_int("fee_numerator", fee_numerator)
    _require_int("fee_denominator", fee_denominator)
    if fee_denominator <= 0:
        raise InvalidFeeConfig(f"fee_denominator must be positive: {fee_denominator}")
    if not (0 < fee_numerator < fee_denominator):
        raise InvalidFeeConfig(f"fee must satisfy 0 < {fee_numerator} < {fee_denominator}")
    if fee_numerator * MAX_FEE_FRACTION > fee_denominator:
        raise InvalidFeeConfig(f"fee {fee_numerator}/{fee_denominator} exceeds 1/{MAX_FEE_FRACTION}")
    check_u64(fee_denominator, name="fee_denominator")


def compute_swap_fee(amount_in: int, fee_numerator: int, fee_denominator: int) -> int:
    """`fee = floor(amount_in * fee_numerator / fee_denominator)`."""
    check_u64(amount_in, name="amount_in")
    return mul_div_floor(amount_in, fee_numerator, fee_denominator)


def compute_flash_loan_fee(principal: int, fee_bps: int, *, min_fee: int = 0) -> int:
    """
    `fee = floor(principal * fee_bps / 10_000)`; a 10_000 loan at 9 bps owes 9.

    A non-zero principal owes at least `min_fee`. Nothing borrowed, nothing owed.
    """
    check_u64(principal, name="principal")
    _require_int("fee_bps", fee_bps)
    _require_int("min_fee", min_fee)
    if not (0 <= fee_bps <= BPS_DENOM):
        raise InvalidFeeConfig(f"fee_bps must be in [0, {BPS_DENOM}]: {fee_bps}")
    if min_fee < 0:
        raise InvalidFeeConfig(f"min_fee must be non-negative: {min_fee}")
    fee = mul_div_floor(principal, fee_bps, BPS_DENOM)
    if principal == 0:
        return fee
    return max(fee, min_fee)
