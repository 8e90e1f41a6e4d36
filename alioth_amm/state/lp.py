"""
LP share tracking, keyed by (holder, pool_id).

The first deposit into a pool locks `MINIMUM_LIQUIDITY` shares under
`LOCKED_LP_OWNER`. Nothing can sign for that address, so those shares are
never burned and a seeded pool's supply never returns to zero.
"""

from __future__ import annotations

from ..errors import InsufficientLiquidity
from .balances import Amount, PubKey, _SparseTable
from .canonical import derive_address

PoolId = str

LOCKED_LP_OWNER: PubKey = derive_address("locked_lp")


class LPTable(_SparseTable):
    _shortfall = InsufficientLiquidity
    _what = "LP shares"

    def move(self, src: PubKey, dst: PubKey, pool_id: PoolId, amount: Amount) -> None:
        """Move shares between holders; the pool's supply is unchanged."""
        self.subtract(src, pool_id, amount)
        self.add(dst, pool_id, amount)

    def total_for_pool(self, pool_id: PoolId) -> Amount:
        return sum(amount for (_, pid), amount in self._entries.items() if pid == pool_id)
