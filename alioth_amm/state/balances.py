"""
Multi-asset balance tracking.

`BalanceTable` maps (holder, asset) to a non-negative amount and provides the
all-or-nothing `transfer` every instruction moves tokens through. LP shares
use the same sparse layout (see `lp.LPTable`).
"""

from __future__ import annotations

from typing import Dict, Tuple, Type

from ..errors import AmmRuleError, InsufficientBalance, ZeroAmount


# Type aliases
PubKey = str  # account or derived custody address
AssetId = str  # token identity
Amount = int  # Non-negative integer


class _SparseTable:
    """
    (holder, key) -> amount with zero entries dropped.

    Iteration order is insertion order; callers sort at serialization and
    hashing boundaries.
    """

    _shortfall: Type[AmmRuleError] = InsufficientBalance
    _what = "balance"

    def __init__(self) -> None:
        self._entries: Dict[Tuple[str, str], Amount] = {}

    def get(self, holder: str, key: str) -> Amount:
        return self._entries.get((holder, key), 0)

    def set(self, holder: str, key: str, amount: Amount) -> None:
        """
        Raises:
            ValueError: If amount is negative
        """
        if amount < 0:
            raise ValueError(f"{self._what} cannot be negative: {amount}")
        if amount:
            self._entries[(holder, key)] = amount
        else:
            self._entries.pop((holder, key), None)

    def add(self, holder: str, key: str, delta: int) -> None:
        """Apply a signed delta; going below zero raises the table's shortfall error."""
        current = self.get(holder, key)
        if current + delta < 0:
            raise self._shortfall(f"{holder} has {current} {self._what} of {key}, cannot apply {delta}")
        self.set(holder, key, current + delta)

    def subtract(self, holder: str, key: str, amount: Amount) -> None:
        if amount < 0:
            raise ValueError(f"amount to subtract must be non-negative: {amount}")
        self.add(holder, key, -amount)

    def get_all_balances(self) -> Dict[Tuple[str, str], Amount]:
        return dict(self._entries)

    def copy(self):
        out = type(self)()
        out._entries = dict(self._entries)
        return out

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({len(self)} entries)"


class BalanceTable(_SparseTable):
    def transfer(self, src: PubKey, dst: PubKey, asset: AssetId, amount: Amount) -> None:
        """
        Move `amount` of `asset` from `src` to `dst`. Either both legs apply or neither does.

        Raises:
            ZeroAmount: If amount is not positive
            InsufficientBalance: If `src` holds less than `amount`
        """
        if not isinstance(amount, int) or isinstance(amount, bool):
            raise TypeError("amount must be an int")
        if amount <= 0:
            raise ZeroAmount(f"transfer amount must be positive: {amount}")
        have = self.get(src, asset)
        if have < amount:
            raise InsufficientBalance(f"{src} holds {have} of {asset}, needs {amount}")
        if src != dst:
            self.set(src, asset, have - amount)
            self.set(dst, asset, self.get(dst, asset) + amount)
