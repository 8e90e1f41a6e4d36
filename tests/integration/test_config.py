# [TESTER] v1

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from alioth_amm.config import (
    AmmSettings,
    configure_logging,
    load_settings,
    settings_from_env,
    settings_from_mapping,
    settings_from_yaml,
)


def test_defaults() -> None:
    s = AmmSettings()
    assert s.flash_loan_fee_bps == 9
    assert s.flash_loan_min_fee == 0
    assert s.max_oracle_confidence_bps == 10_000
    assert (s.min_farming_duration, s.max_farming_duration) == (9_000, 6_480_000)
    assert s.log_level == "INFO"


def test_invalid_settings_rejected() -> None:
    with pytest.raises(ValueError):
        AmmSettings(flash_loan_fee_bps=10_001)
    with pytest.raises(ValueError):
        AmmSettings(flash_loan_min_fee=-1)
    with pytest.raises(ValueError):
        AmmSettings(min_farming_duration=10, max_farming_duration=5)
    with pytest.raises(ValueError):
        AmmSettings(log_level="LOUD")


def test_env_overrides_and_clamps() -> None:
    s = settings_from_env(
        {
            "ALIOTH_FLASH_LOAN_FEE_BPS": "30",
            "ALIOTH_MAX_ORACLE_CONFIDENCE_BPS": "99999",
            "ALIOTH_MIN_FARMING_DURATION": "not-a-number",
            "ALIOTH_LOG_LEVEL": "debug",
        }
    )
    assert s.flash_loan_fee_bps == 30
    assert s.max_oracle_confidence_bps == 10_000
    assert s.min_farming_duration == 9_000
    assert s.log_level == "DEBUG"


def test_empty_env_keeps_base() -> None:
    base = AmmSettings(flash_loan_fee_bps=1)
    assert settings_from_env({}, base=base) == base


def test_yaml_file(tmp_path: Path) -> None:
    path = tmp_path / "amm.yaml"
    path.write_text("flash_loan_fee_bps: 25\nlog_level: WARNING\n", encoding="utf-8")
    s = settings_from_yaml(path)
    assert s.flash_loan_fee_bps == 25
    assert s.log_level == "WARNING"

    empty = tmp_path / "empty.yaml"
    empty.write_text("", encoding="utf-8")
    assert settings_from_yaml(empty) == AmmSettings()


def test_yaml_rejects_unknown_and_invalid(tmp_path: Path) -> None:
    path = tmp_path / "amm.yaml"
    path.write_text("flash_loan_fee: 25\n", encoding="utf-8")
    with pytest.raises(ValueError, match="unknown settings"):
        settings_from_yaml(path)
    path.write_text("flash_loan_fee_bps: -1\n", encoding="utf-8")
    with pytest.raises(ValueError):
        settings_from_yaml(path)
    with pytest.raises(TypeError):
        settings_from_mapping(["flash_loan_fee_bps"])  # type: ignore[arg-type]


def test_env_wins_over_yaml(tmp_path: Path) -> None:
    path = tmp_path / "amm.yaml"
    path.write_text("flash_loan_fee_bps: 25\nmin_farming_duration: 100\n", encoding="utf-8")
    s = load_settings(path, environ={"ALIOTH_FLASH_LOAN_FEE_BPS": "7"})
    assert s.flash_loan_fee_bps == 7
    assert s.min_farming_duration == 100
    assert load_settings(environ={}) == AmmSettings()


def test_configure_logging_sets_package_level() -> None:
    logger = logging.getLogger("alioth_amm")
    previous = logger.level
    try:
        configure_logging(AmmSettings(log_level="ERROR"))
        assert logger.level == logging.ERROR
    finally:
        logger.setLevel(previous)


def test_env_minimum_flash_loan_fee() -> None:
    assert settings_from_env({"ALIOTH_FLASH_LOAN_MIN_FEE": "2"}).flash_loan_min_fee == 2
    assert settings_from_env({"ALIOTH_FLASH_LOAN_MIN_FEE": "-5"}).flash_loan_min_fee == 0
