"""
All-or-nothing transactions over a Ledger.

A transaction stages every mutation on a private copy of the ledger. Commit
hands the staged copy to the owner; rollback (explicit, on any failed
instruction, or on a commit-time check) throws it away. A transaction with an
open flash loan never commits.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, List, Optional, Tuple

from ..errors import AmmError, FlashLoanNotRepaid
from ..state.ledger import Ledger
from .instructions import Instruction


logger = logging.getLogger(__name__)

ExecuteFn = Callable[[Ledger, Instruction, int], Any]
CommitFn = Callable[[Ledger, Ledger], None]


class TxStatus(Enum):
    OPEN = "open"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class Transaction:
    """
    Usable as a context manager: a clean exit commits, an exception rolls back
    and propagates.
    """

    def __init__(self, base: Ledger, *, now: int, execute: ExecuteFn, on_commit: CommitFn) -> None:
        self._base = base
        self._staged: Optional[Ledger] = base.copy()
        self._now = now
        self._execute = execute
        self._on_commit = on_commit
        self._receipts: List[Any] = []
        self.status = TxStatus.OPEN

    @property
    def now(self) -> int:
        return self._now

    @property
    def ledger(self) -> Ledger:
        """The staged ledger. Only valid while the transaction is open."""
        if self._staged is None:
            raise RuntimeError(f"transaction is {self.status.value}")
        return self._staged

    @property
    def receipts(self) -> Tuple[Any, ...]:
        return tuple(self._receipts)

    def apply(self, instruction: Instruction) -> Any:
        """Run one instruction on the staged ledger; any failure rolls the whole transaction back."""
        ledger = self.ledger
        try:
            receipt = self._execute(ledger, instruction, self._now)
        except (AmmError, ValueError, TypeError):
            self.rollback()
            raise
        self._receipts.append(receipt)
        return receipt

    def commit(self) -> Tuple[Any, ...]:
        """
        Raises:
            FlashLoanNotRepaid: if a flash loan is still open; the transaction is rolled back
        """
        ledger = self.ledger
        if ledger.flash_loans:
            open_loans = ", ".join(f"{pool_id}/{borrower}" for pool_id, borrower in sorted(ledger.flash_loans))
            self.rollback()
            raise FlashLoanNotRepaid(f"transaction ends with open flash loans: {open_loans}")
        self._on_commit(self._base, ledger)
        self._staged = None
        self.status = TxStatus.COMMITTED
        return self.receipts

    def rollback(self) -> None:
        if self.status is not TxStatus.OPEN:
            return
        self._staged = None
        self._receipts.clear()
        self.status = TxStatus.ROLLED_BACK
        logger.debug("transaction at %d rolled back", self._now)

    def __enter__(self) -> "Transaction":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None:
            self.rollback()
            return False
        if self.status is TxStatus.OPEN:
            self.commit()
        return False
