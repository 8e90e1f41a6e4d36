"""
Instruction types and parsing.

An instruction is `{"kind": <name>, "signer": <pubkey>, **fields}`. Each kind
has a fixed field schema; unknown or missing fields are rejected with
ValueError before anything touches the ledger.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum, unique
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..state.balances import PubKey


@unique
class InstructionKind(Enum):
    INITIALIZE_POOL = "initialize_pool"
    ADD_LIQUIDITY = "add_liquidity"
    REMOVE_LIQUIDITY = "remove_liquidity"
    SWAP = "swap"
    FLASH_LOAN = "flash_loan"
    FLASH_LOAN_REPAY = "flash_loan_repay"
    MULTI_HOP_SWAP = "multi_hop_swap"
    INITIALIZE_FARM = "initialize_farm"
    FUND_FARM = "fund_farm"
    STAKE = "stake"
    UNSTAKE = "unstake"
    CLAIM_REWARDS = "claim_rewards"
    SET_FARM_ACTIVE = "set_farm_active"
    PAUSE_POOL = "pause_pool"
    UNPAUSE_POOL = "unpause_pool"
    UPDATE_FEES = "update_fees"
    UPDATE_ORACLE_CONFIG = "update_oracle_config"
    TRANSFER_AUTHORITY = "transfer_authority"


# Field kinds: "str", "int" (non-negative), "bool", "opt_int", "str_list".
_SCHEMA: Dict[InstructionKind, Dict[str, str]] = {
    InstructionKind.INITIALIZE_POOL: {
        "token_a": "str",
        "token_b": "str",
        "oracle_a": "str",
        "oracle_b": "str",
        "fee_numerator": "int",
        "fee_denominator": "int",
        "oracle_max_age": "int",
        "oracle_max_deviation_bps": "int",
    },
    InstructionKind.ADD_LIQUIDITY: {"pool_id": "str", "amount_a": "int", "amount_b": "int", "min_lp_out": "int"},
    InstructionKind.REMOVE_LIQUIDITY: {
        "pool_id": "str",
        "lp_amount": "int",
        "min_amount_a": "int",
        "min_amount_b": "int",
    },
    InstructionKind.SWAP: {"pool_id": "str", "amount_in": "int", "min_amount_out": "int", "is_a_to_b": "bool"},
    InstructionKind.FLASH_LOAN: {"pool_id": "str", "amount_a": "int", "amount_b": "int"},
    InstructionKind.FLASH_LOAN_REPAY: {"pool_id": "str"},
    InstructionKind.MULTI_HOP_SWAP: {
        "token_in": "str",
        "amount_in": "int",
        "min_amount_out": "int",
        "hops": "int",
        "route": "str_list",
    },
    InstructionKind.INITIALIZE_FARM: {
        "pool_id": "str",
        "reward_asset": "str",
        "reward_per_slot": "int",
        "start_time": "int",
        "end_time": "int",
    },
    InstructionKind.FUND_FARM: {"farm_id": "str", "amount": "int"},
    InstructionKind.STAKE: {"farm_id": "str", "amount": "int"},
    InstructionKind.UNSTAKE: {"farm_id": "str", "amount": "int"},
    InstructionKind.CLAIM_REWARDS: {"farm_id": "str"},
    InstructionKind.SET_FARM_ACTIVE: {"farm_id": "str", "active": "bool"},
    InstructionKind.PAUSE_POOL: {"pool_id": "str"},
    InstructionKind.UNPAUSE_POOL: {"pool_id": "str"},
    InstructionKind.UPDATE_FEES: {"pool_id": "str", "fee_numerator": "int", "fee_denominator": "int"},
    InstructionKind.UPDATE_ORACLE_CONFIG: {"pool_id": "str", "max_age": "opt_int", "max_deviation_bps": "opt_int"},
    InstructionKind.TRANSFER_AUTHORITY: {"pool_id": "str", "new_authority": "str"},
}


def _require_str(value: Any, *, name: str, non_empty: bool = True, max_len: int = 4096) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{name} must be a string")
    if non_empty and not value:
        raise ValueError(f"{name} must be non-empty")
    if max_len > 0 and len(value) > max_len:
        raise ValueError(f"{name} too large")
    return value


def _require_int(value: Any, *, name: str, non_negative: bool = True) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"{name} must be an int")
    if non_negative and value < 0:
        raise ValueError(f"{name} must be non-negative")
    return int(value)


def _optional_int(value: Any, *, name: str) -> Optional[int]:
    if value is None:
        return None
    return _require_int(value, name=name)


def _require_bool(value: Any, *, name: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"{name} must be a bool")
    return value


def _require_str_list(value: Any, *, name: str) -> Tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"{name} must be a list")
    return tuple(_require_str(v, name=f"{name}[{i}]") for i, v in enumerate(value))


def _coerce_field(kind: str, value: Any, *, name: str) -> Any:
    if kind == "str":
        return _require_str(value, name=name)
    if kind == "int":
        return _require_int(value, name=name)
    if kind == "bool":
        return _require_bool(value, name=name)
    if kind == "opt_int":
        return _optional_int(value, name=name)
    if kind == "str_list":
        return _require_str_list(value, name=name)
    raise ValueError(f"unknown field kind: {kind}")


def _validate_args(kind: InstructionKind, args: Mapping[str, Any]) -> Dict[str, Any]:
    schema = _SCHEMA[kind]
    unknown = sorted(set(args) - set(schema))
    if unknown:
        raise ValueError(f"{kind.value}: unknown fields {', '.join(unknown)}")
    out: Dict[str, Any] = {}
    for field_name, field_kind in schema.items():
        if field_name not in args and field_kind != "opt_int":
            raise ValueError(f"{kind.value}: missing field {field_name}")
        out[field_name] = _coerce_field(field_kind, args.get(field_name), name=f"{kind.value}.{field_name}")
    return out


@dataclass(frozen=True)
class Instruction:
    kind: InstructionKind
    signer: PubKey
    args: Mapping[str, Any]

    @classmethod
    def of(cls, kind: InstructionKind, signer: PubKey, **args: Any) -> "Instruction":
        """Build a validated instruction."""
        _require_str(signer, name="signer")
        return cls(kind=kind, signer=signer, args=_validate_args(kind, args))

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"kind": self.kind.value, "signer": self.signer}
        for k, v in self.args.items():
            out[k] = list(v) if isinstance(v, tuple) else v
        return out


def parse_instruction(obj: Any) -> Instruction:
    """
    Parse one instruction object.

    Raises:
        ValueError: If the object is malformed
    """
    if not isinstance(obj, Mapping):
        raise ValueError(f"instruction must be an object, got {type(obj)}")
    kind_raw = _require_str(obj.get("kind"), name="kind")
    try:
        kind = InstructionKind(kind_raw)
    except ValueError as exc:
        raise ValueError(f"unknown instruction kind: {kind_raw!r}") from exc
    signer = _require_str(obj.get("signer"), name="signer")
    args = {k: v for k, v in obj.items() if k not in ("kind", "signer")}
    return Instruction.of(kind, signer, **args)


def parse_instructions(objs: Sequence[Any]) -> List[Instruction]:
    if not isinstance(objs, (list, tuple)):
        raise ValueError(f"instructions must be a list, got {type(objs)}")
    return [item if isinstance(item, Instruction) else parse_instruction(item) for item in objs]
