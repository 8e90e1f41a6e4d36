"""
Multi-hop swap routing.

Execution (`multi_hop_swap`) chains single-pool swaps across up to
MAX_SWAP_HOPS pools, feeding each hop's output into the next. Intermediate
hops accept any output; only the final amount is checked against the
caller's minimum. Every hop is oracle-validated on its own pool, including
the execution-rate check, and no pool on the route may have an open flash
loan.

Quoting (`quote_route`, `best_route_exact_in`) is read-only and ignores
oracles; it is meant for picking a route off-ledger before submitting it.

Determinism:
- Ties on output are broken by (hop_count, pool_id sequence).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from ..errors import AmmRuleError, InvalidSwapRoute, MaxHopsExceeded, SlippageExceeded, ZeroAmount
from ..state.balances import Amount, AssetId, PubKey
from ..state.ledger import Ledger
from ..state.pools import PoolState
from .flash_loan import require_no_open_loan
from .oracle import OracleValidator
from .swap import SwapReceipt, quote_pool, swap


logger = logging.getLogger(__name__)

MAX_SWAP_HOPS = 3


@dataclass(frozen=True)
class RouteHop:
    pool_id: str
    asset_in: AssetId
    asset_out: AssetId
    amount_in: Amount
    amount_out: Amount


@dataclass(frozen=True)
class RouteQuote:
    asset_in: AssetId
    asset_out: AssetId
    amount_in: Amount
    amount_out: Amount
    hops: Tuple[RouteHop, ...]


@dataclass(frozen=True)
class MultiHopReceipt:
    token_in: AssetId
    token_out: AssetId
    amount_in: Amount
    amount_out: Amount
    hops: Tuple[SwapReceipt, ...]


def _check_hops(hops: int, route: Sequence[str]) -> None:
    if not isinstance(hops, int) or isinstance(hops, bool):
        raise TypeError("hops must be an int")
    if not (1 <= hops <= MAX_SWAP_HOPS):
        raise MaxHopsExceeded(f"hops must be in [1, {MAX_SWAP_HOPS}]: {hops}")
    if len(route) != hops:
        raise InvalidSwapRoute(f"route lists {len(route)} pools for {hops} hops")


def _direction(pool: PoolState, asset_in: AssetId) -> bool:
    """True for A->B. Raises InvalidSwapRoute if `asset_in` is not in the pool."""
    if asset_in == pool.token_a:
        return True
    if asset_in == pool.token_b:
        return False
    raise InvalidSwapRoute(f"pool {pool.pool_id} does not trade {asset_in}")


def multi_hop_swap(
    ledger: Ledger,
    validator: OracleValidator,
    *,
    signer: PubKey,
    token_in: AssetId,
    amount_in: Amount,
    min_amount_out: Amount,
    hops: int,
    route: Sequence[str],
    now: int,
) -> MultiHopReceipt:
    """
    Swap `amount_in` of `token_in` through `route` (pool ids, in order).

    Raises:
        MaxHopsExceeded: unless 1 <= hops <= MAX_SWAP_HOPS
        InvalidSwapRoute: if the route length differs from `hops` or the pools do not chain
        FlashLoanActive: if any pool on the route has an open flash loan
        SlippageExceeded: if the final output is below `min_amount_out`
        and anything a single-pool swap raises.
    """
    _check_hops(hops, route)
    if amount_in == 0:
        raise ZeroAmount("amount_in must be positive")
    # Check the whole chain before the first hop mutates anything.
    asset = token_in
    for pool_id in route:
        pool = ledger.get_pool(pool_id)
        _direction(pool, asset)
        require_no_open_loan(ledger, pool_id)
        asset = pool.other_token(asset)

    receipts: List[SwapReceipt] = []
    current_asset = token_in
    current_amount = amount_in
    for pool_id in route:
        pool = ledger.get_pool(pool_id)
        receipt = swap(
            ledger,
            validator,
            pool_id=pool_id,
            signer=signer,
            amount_in=current_amount,
            min_amount_out=0,
            is_a_to_b=_direction(pool, current_asset),
            now=now,
        )
        receipts.append(receipt)
        current_asset = receipt.token_out
        current_amount = receipt.amount_out

    if current_amount < min_amount_out:
        raise SlippageExceeded(f"final amount_out {current_amount} < min_amount_out {min_amount_out}")

    logger.info(
        "multi-hop swap by %s over %d hops: %d %s -> %d %s",
        signer, hops, amount_in, token_in, current_amount, current_asset,
    )
    return MultiHopReceipt(
        token_in=token_in,
        token_out=current_asset,
        amount_in=amount_in,
        amount_out=current_amount,
        hops=tuple(receipts),
    )


def quote_route(
    *,
    pools_by_id: Dict[str, PoolState],
    asset_in: AssetId,
    amount_in: Amount,
    route: Sequence[str],
) -> RouteQuote:
    """Quote a fixed route against current reserves without touching the ledger."""
    _check_hops(len(route), route)
    hops: List[RouteHop] = []
    current_asset = asset_in
    current_amount = amount_in
    for pool_id in route:
        pool = pools_by_id.get(pool_id)
        if pool is None:
            raise InvalidSwapRoute(f"unknown pool: {pool_id}")
        is_a_to_b = _direction(pool, current_asset)
        out_asset = pool.other_token(current_asset)
        quote = quote_pool(pool, amount_in=current_amount, is_a_to_b=is_a_to_b)
        hops.append(RouteHop(pool_id, current_asset, out_asset, current_amount, quote.amount_out))
        current_asset = out_asset
        current_amount = quote.amount_out
    return RouteQuote(
        asset_in=asset_in,
        asset_out=current_asset,
        amount_in=amount_in,
        amount_out=current_amount,
        hops=tuple(hops),
    )


def _quote_key(q: RouteQuote) -> Tuple[int, int, str]:
    # Prefer higher output, then fewer hops, then lexicographic pool_id sequence.
    return (-int(q.amount_out), len(q.hops), ",".join(h.pool_id for h in q.hops))


def best_route_exact_in(
    *,
    pools_by_id: Dict[str, PoolState],
    asset_in: AssetId,
    asset_out: AssetId,
    amount_in: Amount,
    max_hops: int = MAX_SWAP_HOPS,
) -> Optional[RouteQuote]:
    """
    Best exact-in route of up to `max_hops` pools, each pool used at most once.

    Paused pools and hops that cannot be quoted are skipped. Returns None when
    no route exists.
    """
    if amount_in <= 0 or asset_in == asset_out:
        return None
    max_hops = min(max_hops, MAX_SWAP_HOPS)
    pools = sorted((p for p in pools_by_id.values() if not p.is_paused), key=lambda p: p.pool_id)

    best: Optional[RouteQuote] = None

    def _extend(asset: AssetId, amount: Amount, path: Tuple[RouteHop, ...]) -> None:
        nonlocal best
        used = {h.pool_id for h in path}
        for pool in pools:
            if pool.pool_id in used or asset not in (pool.token_a, pool.token_b):
                continue
            out_asset = pool.other_token(asset)
            try:
                quote = quote_pool(pool, amount_in=amount, is_a_to_b=(asset == pool.token_a))
            except AmmRuleError:
                continue
            hop = RouteHop(pool.pool_id, asset, out_asset, amount, quote.amount_out)
            new_path = path + (hop,)
            if out_asset == asset_out:
                q = RouteQuote(asset_in, asset_out, amount_in, quote.amount_out, new_path)
                if best is None or _quote_key(q) < _quote_key(best):
                    best = q
            elif len(new_path) < max_hops:
                _extend(out_asset, quote.amount_out, new_path)

    _extend(asset_in, amount_in, ())
    return best
