"""Tests for cycle/period length inference."""

from __future__ import annotations

from skintrack.cycle.config_loader import CyclePolicy
from skintrack.cycle.inference import StatSource, infer_cycle_stats, round_half_up, start_gaps
from skintrack.cycle.runs import detect_runs


class TestDefaults:
    def test_no_runs_uses_defaults(self, cycle_policy: CyclePolicy) -> None:
        stats = infer_cycle_stats([], policy=cycle_policy)
        assert stats.cycle_length == 28
        assert stats.period_length == 5
        assert stats.cycle_length_source is StatSource.default
        assert stats.period_length_source is StatSource.default

    def test_single_run_infers_period_but_not_cycle(
        self, cycle_policy: CyclePolicy, period_days
    ) -> None:
        stats = infer_cycle_stats(detect_runs(period_days((0, 4))), policy=cycle_policy)
        assert stats.cycle_length == 28
        assert stats.cycle_length_source is StatSource.default
        assert stats.period_length == 4
        assert stats.period_length_source is StatSource.inferred


class TestInferred:
    def test_two_runs_thirty_days_apart(self, cycle_policy: CyclePolicy, period_days) -> None:
        runs = detect_runs(period_days((0, 5), (30, 5)))
        stats = infer_cycle_stats(runs, policy=cycle_policy)
        assert stats.cycle_length == 30
        assert stats.period_length == 5

    def test_uses_only_six_most_recent(self, cycle_policy: CyclePolicy, period_days) -> None:
        # Old cycles of 50 days, then six gaps of 26 days; old runs of 10 days
        runs_spec = [(0, 10), (50, 10)]
        start = 100
        for _ in range(7):
            runs_spec.append((start, 4))
            start += 26
        runs = detect_runs(period_days(*runs_spec))
        stats = infer_cycle_stats(runs, policy=cycle_policy)
        assert stats.cycle_length == 26
        assert stats.period_length == 4

    def test_mean_rounds_half_up(self, cycle_policy: CyclePolicy, period_days) -> None:
        # Gaps 28 and 29 → 28.5 → 29; lengths 4 and 5 and 4 and 5 → 4.5 → 5
        runs = detect_runs(period_days((0, 4), (28, 5), (57, 4), (85, 5)))
        assert start_gaps(runs) == [28, 29, 28]
        stats = infer_cycle_stats(runs[:3], policy=cycle_policy)
        assert stats.cycle_length == 29
        assert round_half_up(4.5) == 5
        assert round_half_up(2.5) == 3

    def test_inferred_cycle_clamped_to_minimum(
        self, cycle_policy: CyclePolicy, period_days
    ) -> None:
        # Two runs 3 days apart must not produce a 3-day cycle
        runs = detect_runs(period_days((0, 1), (3, 1)))
        stats = infer_cycle_stats(runs, policy=cycle_policy)
        assert stats.cycle_length == 21

    def test_inferred_cycle_clamped_to_maximum(
        self, cycle_policy: CyclePolicy, period_days
    ) -> None:
        runs = detect_runs(period_days((0, 5), (90, 5)))
        assert infer_cycle_stats(runs, policy=cycle_policy).cycle_length == 60

    def test_inferred_period_clamped(self, cycle_policy: CyclePolicy, period_days) -> None:
        short = detect_runs(period_days((0, 1), (28, 2)))
        long = detect_runs(period_days((0, 15)))
        assert infer_cycle_stats(short, policy=cycle_policy).period_length == 3
        assert infer_cycle_stats(long, policy=cycle_policy).period_length == 12


class TestOverrides:
    def test_override_ignores_history(self, cycle_policy: CyclePolicy, period_days) -> None:
        runs = detect_runs(period_days((0, 5), (30, 5)))
        stats = infer_cycle_stats(
            runs,
            cycle_length_override=25,
            period_length_override=3,
            policy=cycle_policy,
        )
        assert (stats.cycle_length, stats.period_length) == (25, 3)
        assert stats.cycle_length_source is StatSource.configured
        assert stats.period_length_source is StatSource.configured

    def test_override_is_clamped_not_rejected(self, cycle_policy: CyclePolicy) -> None:
        stats = infer_cycle_stats(
            [], cycle_length_override=5, period_length_override=40, policy=cycle_policy
        )
        assert stats.cycle_length == 21
        assert stats.period_length == 12

    def test_override_period_may_use_configurable_minimum(
        self, cycle_policy: CyclePolicy
    ) -> None:
        # Configured values use [2, 12]; only inferred values floor at 3
        stats = infer_cycle_stats([], period_length_override=2, policy=cycle_policy)
        assert stats.period_length == 2

    def test_one_override_leaves_other_inferred(
        self, cycle_policy: CyclePolicy, period_days
    ) -> None:
        runs = detect_runs(period_days((0, 6), (32, 6)))
        stats = infer_cycle_stats(runs, cycle_length_override=28, policy=cycle_policy)
        assert stats.cycle_length == 28
        assert stats.period_length == 6
        assert stats.period_length_source is StatSource.inferred
