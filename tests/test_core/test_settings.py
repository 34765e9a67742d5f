"""Tests for environment-driven settings."""

import pytest

from config.settings import Settings
from launchstats.fees import DEFAULT_FEE_SCHEDULE, FeeScheduleError


def test_default_fee_schedule_matches_contracts() -> None:
    assert Settings(_env_file=None).fee_schedule() == DEFAULT_FEE_SCHEDULE


def test_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REFERRAL_BPS", "10")
    monkeypatch.setenv("LEADERBOARD_TOP_N", "50")
    settings = Settings(_env_file=None)
    assert settings.fee_schedule().referral_bps == 10
    assert settings.leaderboard_top_n == 50


def test_inconsistent_fee_split_rejected() -> None:
    with pytest.raises(FeeScheduleError):
        Settings(_env_file=None, buy_user_bps=60).fee_schedule()
