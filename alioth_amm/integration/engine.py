"""
AMM engine: owns the live ledger and applies instruction batches as atomic
transactions.

Two entry points:
- `execute()` returns a `TxResult` and never raises for ledger failures,
- `execute_or_raise()` raises the underlying `AmmError` instead.

`begin()` exposes the transaction directly for callers that interleave their
own logic between instructions (e.g. a flash-loan borrower acting on the
borrowed funds before repaying).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Tuple, Union

from ..config import AmmSettings
from ..core import admin, farming, liquidity, routing
from ..core.flash_loan import flash_loan, flash_loan_repay
from ..core.swap import swap
from ..core.oracle import OracleValidator, PriceFeed
from ..errors import AmmError
from ..state.ledger import Ledger
from .instructions import Instruction, InstructionKind, parse_instructions
from .ledger_snapshot import LedgerSnapshot, snapshot_from_ledger
from .transaction import Transaction


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TxResult:
    ok: bool
    receipts: Tuple[Any, ...] = ()
    error: Optional[str] = None
    code: Optional[str] = None


@dataclass(frozen=True)
class _ExecContext:
    validator: OracleValidator
    settings: AmmSettings
    now: int


def _initialize_pool(ctx: _ExecContext, ledger: Ledger, signer: str, a: Mapping[str, Any]) -> Any:
    return liquidity.initialize_pool(ledger, signer=signer, now=ctx.now, **a)


def _add_liquidity(ctx: _ExecContext, ledger: Ledger, signer: str, a: Mapping[str, Any]) -> Any:
    return liquidity.add_liquidity(ledger, signer=signer, now=ctx.now, **a)


def _remove_liquidity(ctx: _ExecContext, ledger: Ledger, signer: str, a: Mapping[str, Any]) -> Any:
    return liquidity.remove_liquidity(ledger, signer=signer, now=ctx.now, **a)


def _swap(ctx: _ExecContext, ledger: Ledger, signer: str, a: Mapping[str, Any]) -> Any:
    return swap(ledger, ctx.validator, signer=signer, now=ctx.now, **a)


def _flash_loan(ctx: _ExecContext, ledger: Ledger, signer: str, a: Mapping[str, Any]) -> Any:
    return flash_loan(
        ledger,
        signer=signer,
        fee_bps=ctx.settings.flash_loan_fee_bps,
        min_fee=ctx.settings.flash_loan_min_fee,
        now=ctx.now,
        **a,
    )


def _flash_loan_repay(ctx: _ExecContext, ledger: Ledger, signer: str, a: Mapping[str, Any]) -> Any:
    return flash_loan_repay(ledger, signer=signer, **a)


def _multi_hop_swap(ctx: _ExecContext, ledger: Ledger, signer: str, a: Mapping[str, Any]) -> Any:
    return routing.multi_hop_swap(ledger, ctx.validator, signer=signer, now=ctx.now, **a)


def _initialize_farm(ctx: _ExecContext, ledger: Ledger, signer: str, a: Mapping[str, Any]) -> Any:
    return farming.initialize_farm(
        ledger,
        signer=signer,
        now=ctx.now,
        min_duration=ctx.settings.min_farming_duration,
        max_duration=ctx.settings.max_farming_duration,
        **a,
    )


def _fund_farm(ctx: _ExecContext, ledger: Ledger, signer: str, a: Mapping[str, Any]) -> Any:
    return farming.fund_farm(ledger, signer=signer, **a)


def _stake(ctx: _ExecContext, ledger: Ledger, signer: str, a: Mapping[str, Any]) -> Any:
    return farming.stake(ledger, signer=signer, now=ctx.now, **a)


def _unstake(ctx: _ExecContext, ledger: Ledger, signer: str, a: Mapping[str, Any]) -> Any:
    return farming.unstake(ledger, signer=signer, now=ctx.now, **a)


def _claim_rewards(ctx: _ExecContext, ledger: Ledger, signer: str, a: Mapping[str, Any]) -> Any:
    return farming.claim_rewards(ledger, signer=signer, now=ctx.now, **a)


def _set_farm_active(ctx: _ExecContext, ledger: Ledger, signer: str, a: Mapping[str, Any]) -> Any:
    return admin.set_farm_active(ledger, signer=signer, **a)


def _pause_pool(ctx: _ExecContext, ledger: Ledger, signer: str, a: Mapping[str, Any]) -> Any:
    return admin.pause_pool(ledger, signer=signer, **a)


def _unpause_pool(ctx: _ExecContext, ledger: Ledger, signer: str, a: Mapping[str, Any]) -> Any:
    return admin.unpause_pool(ledger, signer=signer, **a)


def _update_fees(ctx: _ExecContext, ledger: Ledger, signer: str, a: Mapping[str, Any]) -> Any:
    return admin.update_fees(ledger, signer=signer, **a)


def _update_oracle_config(ctx: _ExecContext, ledger: Ledger, signer: str, a: Mapping[str, Any]) -> Any:
    return admin.update_oracle_config(ledger, signer=signer, **a)


def _transfer_authority(ctx: _ExecContext, ledger: Ledger, signer: str, a: Mapping[str, Any]) -> Any:
    return admin.transfer_authority(ledger, signer=signer, **a)


_DISPATCH: Dict[InstructionKind, Callable[[_ExecContext, Ledger, str, Mapping[str, Any]], Any]] = {
    InstructionKind.INITIALIZE_POOL: _initialize_pool,
    InstructionKind.ADD_LIQUIDITY: _add_liquidity,
    InstructionKind.REMOVE_LIQUIDITY: _remove_liquidity,
    InstructionKind.SWAP: _swap,
    InstructionKind.FLASH_LOAN: _flash_loan,
    InstructionKind.FLASH_LOAN_REPAY: _flash_loan_repay,
    InstructionKind.MULTI_HOP_SWAP: _multi_hop_swap,
    InstructionKind.INITIALIZE_FARM: _initialize_farm,
    InstructionKind.FUND_FARM: _fund_farm,
    InstructionKind.STAKE: _stake,
    InstructionKind.UNSTAKE: _unstake,
    InstructionKind.CLAIM_REWARDS: _claim_rewards,
    InstructionKind.SET_FARM_ACTIVE: _set_farm_active,
    InstructionKind.PAUSE_POOL: _pause_pool,
    InstructionKind.UNPAUSE_POOL: _unpause_pool,
    InstructionKind.UPDATE_FEES: _update_fees,
    InstructionKind.UPDATE_ORACLE_CONFIG: _update_oracle_config,
    InstructionKind.TRANSFER_AUTHORITY: _transfer_authority,
}


class AmmEngine:
    def __init__(
        self,
        feed: PriceFeed,
        *,
        settings: Optional[AmmSettings] = None,
        ledger: Optional[Ledger] = None,
    ) -> None:
        self.settings = settings or AmmSettings()
        self.validator = OracleValidator(feed, max_confidence_bps=self.settings.max_oracle_confidence_bps)
        self._ledger = ledger if ledger is not None else Ledger()

    @property
    def ledger(self) -> Ledger:
        """The committed ledger. Mutate it only through transactions."""
        return self._ledger

    def _execute_one(self, ledger: Ledger, instruction: Instruction, now: int) -> Any:
        handler = _DISPATCH.get(instruction.kind)
        if handler is None:
            raise ValueError(f"unsupported instruction kind: {instruction.kind}")
        ctx = _ExecContext(validator=self.validator, settings=self.settings, now=now)
        return handler(ctx, ledger, instruction.signer, instruction.args)

    def _install(self, base: Ledger, staged: Ledger) -> None:
        if base is not self._ledger:
            raise RuntimeError("ledger changed since the transaction began")
        self._ledger = staged

    def begin(self, *, now: int) -> Transaction:
        return Transaction(self._ledger, now=now, execute=self._execute_one, on_commit=self._install)

    def execute_or_raise(
        self, instructions: Sequence[Union[Instruction, Mapping[str, Any]]], *, now: int
    ) -> Tuple[Any, ...]:
        """
        Apply `instructions` atomically and return their receipts.

        Raises:
            AmmError: the first failure; the ledger is unchanged
            ValueError: malformed instructions; the ledger is unchanged
        """
        parsed = parse_instructions(instructions)
        tx = self.begin(now=now)
        for instruction in parsed:
            tx.apply(instruction)
        receipts = tx.commit()
        logger.info("transaction at %d committed (%d instructions)", now, len(parsed))
        return receipts

    def execute(self, instructions: Sequence[Union[Instruction, Mapping[str, Any]]], *, now: int) -> TxResult:
        try:
            receipts = self.execute_or_raise(instructions, now=now)
        except AmmError as exc:
            logger.warning("transaction at %d rolled back: %s (%s)", now, exc.code, exc.message)
            return TxResult(ok=False, error=exc.message, code=exc.code)
        except (ValueError, TypeError) as exc:
            logger.warning("transaction at %d rejected: %s", now, exc)
            return TxResult(ok=False, error=str(exc), code="INVALID_INSTRUCTION")
        return TxResult(ok=True, receipts=receipts)

    def snapshot(self) -> LedgerSnapshot:
        return snapshot_from_ledger(self._ledger)
