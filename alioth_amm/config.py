"""
Operator-tunable settings for the AMM ledger.

Settings come from (lowest to highest precedence):
- dataclass defaults,
- an optional YAML file (a flat mapping of field names),
- `ALIOTH_*` environment variables.

Protocol constants (minimum liquidity, reward precision, hop limits) are not
settings; they live next to the code that enforces them.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml


_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class AmmSettings:
    flash_loan_fee_bps: int = 9
    # Floor on the fee for any non-zero borrowed side; 0 keeps the plain bps rounding.
    flash_loan_min_fee: int = 0
    max_oracle_confidence_bps: int = 10_000
    min_farming_duration: int = 9_000
    max_farming_duration: int = 6_480_000
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        for name in (
            "flash_loan_fee_bps",
            "flash_loan_min_fee",
            "max_oracle_confidence_bps",
            "min_farming_duration",
            "max_farming_duration",
        ):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise ValueError(f"{name} must be a non-negative int")
        if self.flash_loan_fee_bps > 10_000:
            raise ValueError(f"flash_loan_fee_bps must be in [0, 10000]: {self.flash_loan_fee_bps}")
        if self.max_oracle_confidence_bps > 10_000:
            raise ValueError(f"max_oracle_confidence_bps must be in [0, 10000]: {self.max_oracle_confidence_bps}")
        if self.min_farming_duration > self.max_farming_duration:
            raise ValueError("min_farming_duration must be <= max_farming_duration")
        if not isinstance(self.log_level, str) or self.log_level.upper() not in _LOG_LEVELS:
            raise ValueError(f"unsupported log_level: {self.log_level!r}")


def _env_int(environ: Mapping[str, str], name: str, default: int, *, lo: int, hi: int) -> int:
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return int(default)
    try:
        v = int(raw.strip())
    except ValueError:
        return int(default)
    if v < lo:
        return int(lo)
    if v > hi:
        return int(hi)
    return int(v)


def _env_str(environ: Mapping[str, str], name: str, default: str) -> str:
    raw = environ.get(name)
    if raw is None:
        return default
    v = raw.strip()
    return v if v else default


def settings_from_mapping(obj: Mapping[str, Any], *, base: Optional[AmmSettings] = None) -> AmmSettings:
    """Overlay a plain mapping on `base`, rejecting unknown keys."""
    if not isinstance(obj, Mapping):
        raise TypeError("settings must be a mapping")
    known = {f.name for f in fields(AmmSettings)}
    unknown = sorted(set(obj) - known)
    if unknown:
        raise ValueError(f"unknown settings: {', '.join(unknown)}")
    return replace(base or AmmSettings(), **dict(obj))


def settings_from_yaml(path: Path | str, *, base: Optional[AmmSettings] = None) -> AmmSettings:
    obj = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    if obj is None:
        return base or AmmSettings()
    return settings_from_mapping(obj, base=base)


def settings_from_env(environ: Optional[Mapping[str, str]] = None, *, base: Optional[AmmSettings] = None) -> AmmSettings:
    env = os.environ if environ is None else environ
    cur = base or AmmSettings()
    return replace(
        cur,
        flash_loan_fee_bps=_env_int(env, "ALIOTH_FLASH_LOAN_FEE_BPS", cur.flash_loan_fee_bps, lo=0, hi=10_000),
        flash_loan_min_fee=_env_int(env, "ALIOTH_FLASH_LOAN_MIN_FEE", cur.flash_loan_min_fee, lo=0, hi=2**64 - 1),
        max_oracle_confidence_bps=_env_int(
            env, "ALIOTH_MAX_ORACLE_CONFIDENCE_BPS", cur.max_oracle_confidence_bps, lo=0, hi=10_000
        ),
        min_farming_duration=_env_int(
            env, "ALIOTH_MIN_FARMING_DURATION", cur.min_farming_duration, lo=1, hi=cur.max_farming_duration
        ),
        max_farming_duration=_env_int(
            env, "ALIOTH_MAX_FARMING_DURATION", cur.max_farming_duration, lo=cur.min_farming_duration, hi=2**63 - 1
        ),
        log_level=_env_str(env, "ALIOTH_LOG_LEVEL", cur.log_level).upper(),
    )


def load_settings(path: Path | str | None = None, *, environ: Optional[Mapping[str, str]] = None) -> AmmSettings:
    """Defaults, then YAML file (if given), then environment overrides."""
    base = settings_from_yaml(path) if path is not None else AmmSettings()
    return settings_from_env(environ, base=base)


def configure_logging(settings: AmmSettings) -> None:
    logging.getLogger("alioth_amm").setLevel(settings.log_level.upper())
