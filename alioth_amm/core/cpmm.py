"""
Constant Product Market Maker (CPMM) math.

Pure, integer-only functions over reserves. Nothing here touches the ledger;
`core.swap` and `core.liquidity` apply the results.

Swap (exact in):
    fee        = floor(amount_in * fee_num / fee_den)
    net_in     = amount_in - fee
    k          = reserve_in * reserve_out
    amount_out = reserve_out - floor(k / (reserve_in + net_in))

Post-swap reserves:
    new_reserve_in  = reserve_in + amount_in   (fee stays in pool)
    new_reserve_out = reserve_out - amount_out

Invariant: new_reserve_in * new_reserve_out >= k. A quote that would break it
through rounding is rejected rather than adjusted.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from ..errors import InsufficientLiquidity, ZeroAmount
from .checked import add_u128, add_u64, check_u64, div_floor, isqrt, mul_div_floor, mul_u128, sub_u64
from .fees import compute_swap_fee
from .oracle import PRICE_PRECISION


# Shares locked forever on the first deposit so the supply can never return to zero.
MINIMUM_LIQUIDITY = 1000


@dataclass(frozen=True)
class SwapQuote:
    amount_in: int
    fee: int
    net_in: int
    amount_out: int
    new_reserve_in: int
    new_reserve_out: int
    k_before: int
    k_after: int


def quote_exact_in(
    *,
    reserve_in: int,
    reserve_out: int,
    amount_in: int,
    fee_numerator: int,
    fee_denominator: int,
) -> SwapQuote:
    """
    Quote an exact-in swap.

    Raises:
        ZeroAmount: if amount_in is zero or the output rounds to zero
        InsufficientLiquidity: if the pool is empty, would be drained, or k would decrease
    """
    check_u64(reserve_in, name="reserve_in")
    check_u64(reserve_out, name="reserve_out")
    check_u64(amount_in, name="amount_in")
    if amount_in == 0:
        raise ZeroAmount("amount_in must be positive")
    if reserve_in == 0 or reserve_out == 0:
        raise InsufficientLiquidity("pool has no liquidity")

    fee = compute_swap_fee(amount_in, fee_numerator, fee_denominator)
    net_in = amount_in - fee
    k_before = mul_u128(reserve_in, reserve_out)
    amount_out = reserve_out - div_floor(k_before, add_u128(reserve_in, net_in))

    if amount_out == 0:
        raise ZeroAmount("swap output rounds to zero")
    if amount_out >= reserve_out:
        raise InsufficientLiquidity(f"swap would drain reserve: out={amount_out} reserve={reserve_out}")

    new_reserve_in = add_u64(reserve_in, amount_in)
    new_reserve_out = sub_u64(reserve_out, amount_out)
    k_after = mul_u128(new_reserve_in, new_reserve_out)
    if k_after < k_before:
        raise InsufficientLiquidity(f"swap would decrease k: {k_before} -> {k_after}")

    return SwapQuote(
        amount_in=amount_in,
        fee=fee,
        net_in=net_in,
        amount_out=amount_out,
        new_reserve_in=new_reserve_in,
        new_reserve_out=new_reserve_out,
        k_before=k_before,
        k_after=k_after,
    )


def get_amount_in(
    *,
    reserve_in: int,
    reserve_out: int,
    amount_out: int,
    fee_numerator: int,
    fee_denominator: int,
) -> int:
    """
    Input needed to receive at least `amount_out` (rounded up by one unit).
    """
    check_u64(amount_out, name="amount_out")
    if amount_out == 0:
        raise ZeroAmount("amount_out must be positive")
    if reserve_in == 0 or reserve_out <= amount_out:
        raise InsufficientLiquidity(f"cannot buy {amount_out} from reserve {reserve_out}")
    numerator = mul_u128(mul_u128(reserve_in, amount_out), fee_denominator)
    denominator = mul_u128(reserve_out - amount_out, fee_denominator - fee_numerator)
    return add_u64(div_floor(numerator, denominator), 1)


def compute_lp_mint(
    *,
    reserve_a: int,
    reserve_b: int,
    amount_a: int,
    amount_b: int,
    lp_supply: int,
) -> Tuple[int, int]:
    """
    Compute LP shares for a deposit.

    Returns:
        (lp_minted, user_share). On the genesis deposit `lp_minted` includes the
        `MINIMUM_LIQUIDITY` shares that are locked; otherwise both are equal.

    Raises:
        ZeroAmount: if either amount is zero
        InsufficientLiquidity: if the user's share would be zero or less
    """
    check_u64(amount_a, name="amount_a")
    check_u64(amount_b, name="amount_b")
    if amount_a == 0 or amount_b == 0:
        raise ZeroAmount("both deposit amounts must be positive")

    if lp_supply == 0:
        lp_minted = check_u64(isqrt(mul_u128(amount_a, amount_b)), name="lp_minted")
        user_share = lp_minted - MINIMUM_LIQUIDITY
        if user_share <= 0:
            raise InsufficientLiquidity(
                f"initial liquidity {lp_minted} does not exceed the locked minimum {MINIMUM_LIQUIDITY}"
            )
        return lp_minted, user_share

    if reserve_a == 0 or reserve_b == 0:
        raise InsufficientLiquidity("pool has supply but no reserves")
    lp_a = mul_div_floor(amount_a, lp_supply, reserve_a)
    lp_b = mul_div_floor(amount_b, lp_supply, reserve_b)
    lp_minted = check_u64(min(lp_a, lp_b), name="lp_minted")
    if lp_minted == 0:
        raise InsufficientLiquidity("deposit too small to mint any LP shares")
    return lp_minted, lp_minted


def compute_lp_burn(
    *,
    reserve_a: int,
    reserve_b: int,
    lp_amount: int,
    lp_supply: int,
) -> Tuple[int, int]:
    """Return (amount_a, amount_b) paid out for burning `lp_amount` shares."""
    check_u64(lp_amount, name="lp_amount")
    if lp_amount == 0:
        raise ZeroAmount("lp_amount must be positive")
    if lp_amount > lp_supply:
        raise InsufficientLiquidity(f"lp_amount {lp_amount} exceeds supply {lp_supply}")
    amount_a = mul_div_floor(reserve_a, lp_amount, lp_supply)
    amount_b = mul_div_floor(reserve_b, lp_amount, lp_supply)
    return amount_a, amount_b


def spot_price(*, reserve_a: int, reserve_b: int) -> int:
    """Price of A in units of B, scaled by PRICE_PRECISION."""
    if reserve_a == 0:
        raise InsufficientLiquidity("pool has no liquidity")
    return mul_div_floor(reserve_b, PRICE_PRECISION, reserve_a)
