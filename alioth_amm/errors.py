"""Exception types for the Alioth AMM ledger.

Every failure aborts the enclosing transaction. Callers that prefer result
objects over exceptions use ``AmmEngine.execute()``, which maps these into
``TxResult.code``.
"""

from __future__ import annotations


class AmmError(Exception):
    """Base class for all ledger failures. ``code`` is stable across releases."""

    code = "AMM_ERROR"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.code
        super().__init__(self.message)


class AmmArithmeticError(AmmError):
    """Raised when fixed-point arithmetic leaves its integer domain."""

    code = "ARITHMETIC_ERROR"


class ArithmeticOverflow(AmmArithmeticError):
    code = "ARITHMETIC_OVERFLOW"


class DivisionByZero(AmmArithmeticError):
    code = "DIVISION_BY_ZERO"


class AmmRuleError(AmmError):
    """Raised when an instruction violates a business rule."""

    code = "RULE_VIOLATION"


class StaleOraclePrice(AmmRuleError):
    code = "STALE_ORACLE_PRICE"


class PriceDeviationExceeded(AmmRuleError):
    code = "PRICE_DEVIATION_EXCEEDED"


class InvalidOracle(AmmRuleError):
    code = "INVALID_ORACLE"


class SlippageExceeded(AmmRuleError):
    code = "SLIPPAGE_EXCEEDED"


class InsufficientLiquidity(AmmRuleError):
    code = "INSUFFICIENT_LIQUIDITY"


class InsufficientBalance(AmmRuleError):
    code = "INSUFFICIENT_BALANCE"


class ZeroAmount(AmmRuleError):
    code = "ZERO_AMOUNT"


class Unauthorized(AmmRuleError):
    code = "UNAUTHORIZED"


class PoolPaused(AmmRuleError):
    code = "POOL_PAUSED"


class InvalidFeeConfig(AmmRuleError):
    code = "INVALID_FEE_CONFIG"


class InvalidPoolConfig(AmmRuleError):
    code = "INVALID_POOL_CONFIG"


class FlashLoanNotRepaid(AmmRuleError):
    code = "FLASH_LOAN_NOT_REPAID"


class MaxHopsExceeded(AmmRuleError):
    code = "MAX_HOPS_EXCEEDED"


class InvalidSwapRoute(AmmRuleError):
    code = "INVALID_SWAP_ROUTE"


class InvalidTimeRange(AmmRuleError):
    code = "INVALID_TIME_RANGE"


class FarmingNotActive(AmmRuleError):
    code = "FARMING_NOT_ACTIVE"


class FarmingNotStarted(AmmRuleError):
    code = "FARMING_NOT_STARTED"


class FarmingEnded(AmmRuleError):
    code = "FARMING_ENDED"


class InsufficientStake(AmmRuleError):
    code = "INSUFFICIENT_STAKE"


class NoRewards(AmmRuleError):
    code = "NO_REWARDS"


class FlashLoanActive(AmmRuleError):
    """A flash loan is open against the pool, so its reserves are not live."""

    code = "FLASH_LOAN_ACTIVE"
