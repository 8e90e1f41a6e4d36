"""
Open flash-loan records. A record lives only between a borrow and its repay
inside one transaction; a transaction cannot commit while any is open.
"""

from __future__ import annotations

from dataclasses import dataclass

from .balances import Amount, PubKey


@dataclass(frozen=True)
class FlashLoanRecord:
    pool_id: str
    borrower: PubKey
    principal_a: Amount
    principal_b: Amount
    fee_a: Amount
    fee_b: Amount
    initiated_at: int

    @property
    def total_repay_a(self) -> Amount:
        return self.principal_a + self.fee_a

    @property
    def total_repay_b(self) -> Amount:
        return self.principal_b + self.fee_b
