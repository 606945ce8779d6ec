"""Tests for cycle_policy.yaml loading and validation."""

from __future__ import annotations

from pathlib import Path

import pytest

from skintrack.cycle.config_loader import (
    CyclePolicy,
    CyclePolicyError,
    get_cycle_policy,
    load_cycle_policy,
    policy_from_dict,
    reload_cycle_policy,
)
from skintrack.cycle.ports import CycleProfileError, validate_profile


class TestPolicyLoading:
    """Tests for loading the bundled cycle_policy.yaml."""

    def test_load_default_policy(self, cycle_policy: CyclePolicy) -> None:
        assert cycle_policy.version == "1.0"

    def test_length_bounds(self, cycle_policy: CyclePolicy) -> None:
        cl = cycle_policy.cycle_length
        pl = cycle_policy.period_length
        assert (cl.min_days, cl.max_days, cl.default_days) == (21, 60, 28)
        assert (pl.min_days, pl.max_days, pl.default_days) == (2, 12, 5)
        assert pl.inferred_min_days == 3
        assert cl.rolling_window == pl.rolling_window == 6

    def test_forecast_constants(self, cycle_policy: CyclePolicy) -> None:
        fc = cycle_policy.forecast
        assert fc.luteal_phase_days == 17
        assert fc.min_cycles == 8
        assert fc.horizon_extra_cycles == 2

    def test_fertile_window_offsets(self, cycle_policy: CyclePolicy) -> None:
        fw = cycle_policy.fertile_window
        assert (fw.days_before_ovulation, fw.days_after_ovulation) == (5, 1)

    def test_clamp_helpers(self, cycle_policy: CyclePolicy) -> None:
        pl = cycle_policy.period_length
        assert pl.clamp(1) == 2
        assert pl.clamp_inferred(1) == 3
        assert pl.clamp(99) == pl.clamp_inferred(99) == 12

    def test_singleton_is_cached(self) -> None:
        assert get_cycle_policy() is get_cycle_policy()


class TestPolicyValidation:
    """Tests for policy validation logic."""

    def test_empty_mapping_uses_defaults(self) -> None:
        policy = policy_from_dict({})
        assert policy.cycle_length.default_days == 28
        assert policy.forecast.luteal_phase_days == 17

    def test_non_numeric_value_raises(self) -> None:
        with pytest.raises(CyclePolicyError, match="must be an integer"):
            policy_from_dict({"forecast": {"luteal_phase_days": "seventeen"}})

    def test_inverted_bounds_raise(self) -> None:
        with pytest.raises(CyclePolicyError, match="min_days"):
            policy_from_dict({"cycle_length": {"min_days": 40, "max_days": 30}})

    def test_default_outside_bounds_raises(self) -> None:
        with pytest.raises(CyclePolicyError, match="default_days"):
            policy_from_dict({"period_length": {"default_days": 20}})

    def test_all_errors_reported_together(self) -> None:
        with pytest.raises(CyclePolicyError, match="2 validation error"):
            policy_from_dict(
                {
                    "forecast": {"min_cycles": 0},
                    "fertile_window": {"days_before_ovulation": -1},
                }
            )

    def test_hot_reload(self, tmp_path: Path) -> None:
        """reload_cycle_policy() should replace the global singleton."""
        policy_file = tmp_path / "cycle_policy.yaml"
        policy_file.write_text(
            'version: "2.0-test"\n'
            "forecast:\n"
            "  luteal_phase_days: 14\n"
        )
        try:
            new_policy = reload_cycle_policy(path=policy_file)
            assert new_policy.version == "2.0-test"
            assert get_cycle_policy().forecast.luteal_phase_days == 14
        finally:
            reload_cycle_policy()
        assert get_cycle_policy().version == "1.0"

    def test_malformed_yaml_raises(self, tmp_path: Path) -> None:
        policy_file = tmp_path / "broken.yaml"
        policy_file.write_text("forecast: [unclosed\n")
        with pytest.raises(CyclePolicyError, match="YAML parse error"):
            load_cycle_policy(path=policy_file)

    def test_load_nonexistent_file_raises(self) -> None:
        with pytest.raises(FileNotFoundError):
            load_cycle_policy(path=Path("/nonexistent/path/cycle_policy.yaml"))


class TestProfileValidation:
    def test_period_cannot_exceed_cycle(self, cycle_policy: CyclePolicy) -> None:
        with pytest.raises(CycleProfileError, match="cannot exceed"):
            validate_profile(21, 22, cycle_policy)

    def test_equal_lengths_rejected_only_by_range(self, cycle_policy: CyclePolicy) -> None:
        # 21/21 passes the ordering check but 21 is above the period maximum
        with pytest.raises(CycleProfileError, match="period length must be between"):
            validate_profile(21, 21, cycle_policy)

    def test_valid_profile(self, cycle_policy: CyclePolicy) -> None:
        validate_profile(28, 5, cycle_policy)
        validate_profile(21, 12, cycle_policy)
        validate_profile(60, 2, cycle_policy)
