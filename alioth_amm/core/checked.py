"""
Checked fixed-width integer arithmetic.

Amounts are u64 and intermediates u128. Python ints never wrap, so every
helper bounds its result explicitly and raises `ArithmeticOverflow` when it
leaves the target width (negative results count as overflow).
"""

from __future__ import annotations

import math

from ..errors import ArithmeticOverflow, DivisionByZero


U64_MAX = (1 << 64) - 1
U128_MAX = (1 << 128) - 1


def _require_int(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")


def check_u64(value: int, *, name: str = "value") -> int:
    _require_int(name, value)
    if not (0 <= value <= U64_MAX):
        raise ArithmeticOverflow(f"{name} out of u64 range: {value}")
    return value


def check_u128(value: int, *, name: str = "value") -> int:
    _require_int(name, value)
    if not (0 <= value <= U128_MAX):
        raise ArithmeticOverflow(f"{name} out of u128 range: {value}")
    return value


def add_u64(a: int, b: int) -> int:
    return check_u64(a + b, name="u64 sum")


def sub_u64(a: int, b: int) -> int:
    return check_u64(a - b, name="u64 difference")


def add_u128(a: int, b: int) -> int:
    return check_u128(a + b, name="u128 sum")


def mul_u128(a: int, b: int) -> int:
    return check_u128(a * b, name="u128 product")


def div_floor(numerator: int, denominator: int) -> int:
    _require_int("numerator", numerator)
    _require_int("denominator", denominator)
    if denominator == 0:
        raise DivisionByZero("division by zero")
    if numerator < 0 or denominator < 0:
        raise ArithmeticOverflow("floor division expects non-negative operands")
    return numerator // denominator


def mul_div_floor(a: int, b: int, denominator: int) -> int:
    """floor(a * b / denominator) with a u128 intermediate."""
    return div_floor(mul_u128(a, b), denominator)


def isqrt(value: int) -> int:
    check_u128(value, name="isqrt input")
    return math.isqrt(value)
