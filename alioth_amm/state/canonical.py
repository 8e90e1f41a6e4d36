"""
Canonical encoding and record addressing.

Snapshots hash the canonical JSON form of the ledger, and every ledger record
(pool, vault, farm, locked-LP owner) lives at an address derived from a
domain-separated hash, so the same inputs always name the same record.
"""

from __future__ import annotations

import hashlib
import json
import re
from typing import Any


ADDRESS_VERSION = 1

_LABEL_RE = re.compile(r"[a-z][a-z0-9_]*")


def _check_encodable(value: Any, path: str = "$") -> None:
    if isinstance(value, float):
        raise TypeError(f"{path}: floats have no canonical encoding")
    if isinstance(value, dict):
        for k, v in value.items():
            if not isinstance(k, str):
                raise TypeError(f"{path}: object keys must be strings, got {type(k).__name__}")
            _check_encodable(v, f"{path}.{k}")
    elif isinstance(value, (list, tuple)):
        for i, item in enumerate(value):
            _check_encodable(item, f"{path}[{i}]")


def canonical_json_bytes(value: Any) -> bytes:
    """
    UTF-8 JSON with sorted keys and no whitespace. Integers only: floats are
    rejected so every value has exactly one encoding.
    """
    _check_encodable(value)
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False, allow_nan=False).encode("utf-8")


def sha256_hex(data: bytes) -> str:
    return "0x" + hashlib.sha256(data).hexdigest()


def domain_sep_bytes(label: str, version: int = ADDRESS_VERSION) -> bytes:
    """`alioth:<label>:v<version>` followed by a NUL byte."""
    if not isinstance(label, str):
        raise TypeError("label must be a str")
    if not _LABEL_RE.fullmatch(label):
        raise ValueError(f"label must be lowercase ascii [a-z0-9_]: {label!r}")
    if not isinstance(version, int) or isinstance(version, bool) or version <= 0:
        raise ValueError("version must be a positive int")
    return f"alioth:{label}:v{version}".encode("ascii") + b"\x00"


def derive_address(seed: str, *parts: str) -> str:
    """
    Address of the record named by `seed` and `parts`, e.g.
    `derive_address("pool", token_a, token_b)`.

    Each part is NUL-terminated so ("ab", "c") and ("a", "bc") differ.
    """
    h = hashlib.sha256(domain_sep_bytes(seed))
    for part in parts:
        if not isinstance(part, str) or not part:
            raise ValueError("address parts must be non-empty strings")
        h.update(part.encode("utf-8") + b"\x00")
    return "0x" + h.hexdigest()
