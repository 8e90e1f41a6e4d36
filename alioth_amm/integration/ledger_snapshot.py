"""
Ledger snapshot encoding.

Goals:
- Deterministic JSON serialization for hashing / snapshot distribution.
- Round-trippable into `Ledger`.
- Explicit versioning.

Open flash loans exist only inside a transaction, so a ledger holding one
cannot be snapshotted.
"""

from __future__ import annotations

import hashlib
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Mapping, Sequence

from ..state.balances import BalanceTable
from ..state.canonical import canonical_json_bytes, domain_sep_bytes, sha256_hex
from ..state.farming import FarmingPool, UserStake
from ..state.ledger import Ledger
from ..state.lp import LPTable
from ..state.pools import PoolState


LEDGER_SNAPSHOT_VERSION = 1

_POOL_STRS = ("pool_id", "authority", "token_a", "token_b", "oracle_a", "oracle_b")
_POOL_INTS = (
    "fee_numerator",
    "fee_denominator",
    "oracle_max_age",
    "oracle_max_deviation_bps",
    "created_at",
    "reserve_a",
    "reserve_b",
    "lp_supply",
    "cumulative_price_a",
    "cumulative_price_b",
    "last_update_time",
    "total_volume_a",
    "total_volume_b",
    "total_fees_a",
    "total_fees_b",
)
_POOL_OPT_INTS = ("last_price_a", "last_price_b")

_FARM_STRS = ("farm_id", "pool_id", "authority", "reward_asset")
_FARM_INTS = (
    "reward_per_slot",
    "start_time",
    "end_time",
    "last_reward_time",
    "created_at",
    "acc_reward_per_share",
    "total_staked",
    "total_rewards_distributed",
)

_STAKE_STRS = ("farm_id", "owner")
_STAKE_INTS = ("created_at", "staked_amount", "reward_debt", "total_rewards_claimed", "last_claim_time")


def _require_str(value: Any, *, name: str, non_empty: bool = True, max_len: int = 4096) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{name} must be a string")
    if non_empty and not value:
        raise ValueError(f"{name} must be non-empty")
    if max_len > 0 and len(value) > max_len:
        raise ValueError(f"{name} too large")
    return value


def _require_int(value: Any, *, name: str, non_negative: bool = True) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if non_negative and value < 0:
        raise ValueError(f"{name} must be non-negative")
    return int(value)


def _require_list(snapshot: Mapping[str, Any], key: str) -> List[Any]:
    entries = snapshot.get(key)
    if entries is None:
        return []
    if not isinstance(entries, list):
        raise TypeError(f"snapshot.{key} must be a list")
    for entry in entries:
        if not isinstance(entry, Mapping):
            raise TypeError(f"snapshot.{key} entries must be objects")
    return entries


def _load_fields(
    entry: Mapping[str, Any],
    *,
    name: str,
    strs: Sequence[str],
    ints: Sequence[str],
    bools: Sequence[str] = (),
    opt_ints: Sequence[str] = (),
) -> Dict[str, Any]:
    expected = set(strs) | set(ints) | set(bools) | set(opt_ints)
    unknown = sorted(set(entry) - expected)
    if unknown:
        raise ValueError(f"{name}: unknown fields {', '.join(unknown)}")
    out: Dict[str, Any] = {}
    for f in strs:
        out[f] = _require_str(entry.get(f), name=f"{name}.{f}")
    for f in ints:
        out[f] = _require_int(entry.get(f), name=f"{name}.{f}")
    for f in bools:
        v = entry.get(f)
        if not isinstance(v, bool):
            raise TypeError(f"{name}.{f} must be a bool")
        out[f] = v
    for f in opt_ints:
        v = entry.get(f)
        out[f] = None if v is None else _require_int(v, name=f"{name}.{f}")
    return out


@dataclass(frozen=True)
class LedgerSnapshot:
    """
    Deterministic, versioned snapshot of a `Ledger`.

    The commitment is *not* included inside `data` to avoid self-reference.
    """

    version: int
    data: Dict[str, Any]

    def canonical_bytes(self) -> bytes:
        return canonical_json_bytes(self.data)

    def commitment_bytes(self) -> bytes:
        payload = domain_sep_bytes("ledger_snapshot", version=self.version) + self.canonical_bytes()
        return hashlib.sha256(payload).digest()

    def commitment_hex(self) -> str:
        payload = domain_sep_bytes("ledger_snapshot", version=self.version) + self.canonical_bytes()
        return sha256_hex(payload)


def snapshot_from_ledger(ledger: Ledger, *, version: int = LEDGER_SNAPSHOT_VERSION) -> LedgerSnapshot:
    if not isinstance(version, int) or isinstance(version, bool) or version <= 0:
        raise ValueError("version must be a positive int")
    if ledger.flash_loans:
        raise ValueError("cannot snapshot a ledger with open flash loans")

    balances_entries = [
        {"pubkey": pk, "asset": asset, "amount": int(amount)}
        for (pk, asset), amount in ledger.balances.get_all_balances().items()
    ]
    balances_entries.sort(key=lambda e: (e["pubkey"], e["asset"]))

    lp_entries = [
        {"pubkey": pk, "pool_id": pool_id, "amount": int(amount)}
        for (pk, pool_id), amount in ledger.lp_balances.get_all_balances().items()
    ]
    lp_entries.sort(key=lambda e: (e["pubkey"], e["pool_id"]))

    pools_entries = [asdict(pool) for pool in ledger.pools.values()]
    pools_entries.sort(key=lambda e: e["pool_id"])

    farms_entries = [asdict(farm) for farm in ledger.farms.values()]
    farms_entries.sort(key=lambda e: e["farm_id"])

    stakes_entries = [asdict(stake) for stake in ledger.stakes.values()]
    stakes_entries.sort(key=lambda e: (e["farm_id"], e["owner"]))

    data: Dict[str, Any] = {
        "version": int(version),
        "balances": balances_entries,
        "lp_balances": lp_entries,
        "pools": pools_entries,
        "farms": farms_entries,
        "stakes": stakes_entries,
    }
    return LedgerSnapshot(version=version, data=data)


def ledger_from_snapshot(snapshot: Mapping[str, Any]) -> Ledger:
    if not isinstance(snapshot, Mapping):
        raise TypeError("snapshot must be a mapping")

    version = snapshot.get("version", LEDGER_SNAPSHOT_VERSION)
    if not isinstance(version, int) or isinstance(version, bool) or version <= 0:
        raise ValueError("snapshot.version must be a positive int")
    if version != LEDGER_SNAPSHOT_VERSION:
        raise ValueError(f"unsupported snapshot version: {version}")

    balances = BalanceTable()
    seen_balances: set[tuple[str, str]] = set()
    for entry in _require_list(snapshot, "balances"):
        f = _load_fields(entry, name="balance", strs=("pubkey", "asset"), ints=("amount",))
        key = (f["pubkey"], f["asset"])
        if key in seen_balances:
            raise ValueError("duplicate balance entry (pubkey, asset)")
        seen_balances.add(key)
        balances.set(f["pubkey"], f["asset"], f["amount"])

    lp_balances = LPTable()
    seen_lp: set[tuple[str, str]] = set()
    for entry in _require_list(snapshot, "lp_balances"):
        f = _load_fields(entry, name="lp", strs=("pubkey", "pool_id"), ints=("amount",))
        key = (f["pubkey"], f["pool_id"])
        if key in seen_lp:
            raise ValueError("duplicate lp entry (pubkey, pool_id)")
        seen_lp.add(key)
        lp_balances.set(f["pubkey"], f["pool_id"], f["amount"])

    pools: Dict[str, PoolState] = {}
    for entry in _require_list(snapshot, "pools"):
        f = _load_fields(
            entry, name="pool", strs=_POOL_STRS, ints=_POOL_INTS, bools=("is_paused",), opt_ints=_POOL_OPT_INTS
        )
        if f["pool_id"] in pools:
            raise ValueError("duplicate pool entry (pool_id)")
        pools[f["pool_id"]] = PoolState(**f)

    farms: Dict[str, FarmingPool] = {}
    for entry in _require_list(snapshot, "farms"):
        f = _load_fields(entry, name="farm", strs=_FARM_STRS, ints=_FARM_INTS, bools=("is_active",))
        if f["farm_id"] in farms:
            raise ValueError("duplicate farm entry (farm_id)")
        if f["pool_id"] not in pools:
            raise ValueError(f"farm {f['farm_id']} references unknown pool {f['pool_id']}")
        farms[f["farm_id"]] = FarmingPool(**f)

    stakes: Dict[tuple[str, str], UserStake] = {}
    for entry in _require_list(snapshot, "stakes"):
        f = _load_fields(entry, name="stake", strs=_STAKE_STRS, ints=_STAKE_INTS)
        key = (f["farm_id"], f["owner"])
        if key in stakes:
            raise ValueError("duplicate stake entry (farm_id, owner)")
        if f["farm_id"] not in farms:
            raise ValueError(f"stake references unknown farm {f['farm_id']}")
        stakes[key] = UserStake(**f)

    return Ledger(balances=balances, lp_balances=lp_balances, pools=pools, farms=farms, stakes=stakes)
