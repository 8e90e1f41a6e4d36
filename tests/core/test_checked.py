# [TESTER] v1

from __future__ import annotations

import pytest

from alioth_amm.core.checked import (
    U64_MAX,
    U128_MAX,
    add_u64,
    check_u64,
    div_floor,
    isqrt,
    mul_div_floor,
    mul_u128,
    sub_u64,
)
from alioth_amm.errors import AmmArithmeticError, ArithmeticOverflow, DivisionByZero


def test_u64_bounds() -> None:
    assert check_u64(0) == 0
    assert check_u64(U64_MAX) == U64_MAX
    with pytest.raises(ArithmeticOverflow):
        check_u64(U64_MAX + 1)
    with pytest.raises(ArithmeticOverflow):
        check_u64(-1)


def test_add_and_sub_stay_in_range() -> None:
    assert add_u64(U64_MAX - 1, 1) == U64_MAX
    with pytest.raises(ArithmeticOverflow):
        add_u64(U64_MAX, 1)
    with pytest.raises(ArithmeticOverflow, match="u64 difference"):
        sub_u64(1, 2)


def test_u128_product_overflow() -> None:
    assert mul_u128(U64_MAX, U64_MAX) < U128_MAX
    with pytest.raises(ArithmeticOverflow):
        mul_u128(U128_MAX, 2)


def test_division_by_zero_is_an_arithmetic_error() -> None:
    with pytest.raises(DivisionByZero):
        div_floor(10, 0)
    with pytest.raises(AmmArithmeticError):
        mul_div_floor(1, 1, 0)


def test_mul_div_floor_rounds_down() -> None:
    assert mul_div_floor(10, 3, 4) == 7
    assert mul_div_floor(U64_MAX, U64_MAX, U64_MAX) == U64_MAX


def test_isqrt_exact_and_floor() -> None:
    assert isqrt(10**22) == 10**11
    assert isqrt(10**22 - 1) == 10**11 - 1


def test_bools_are_not_amounts() -> None:
    with pytest.raises(TypeError):
        check_u64(True)  # type: ignore[arg-type]
