"""Tests for run statistics over per-step counts."""

import pytest

from rebellion_stats import (
    SeriesSummary,
    outbreak_count,
    outbreak_episodes,
    recovery_time,
    series_summary,
    stability_index,
    summarize_run,
)


class TestOutbreaks:

    def test_episodes(self):
        assert outbreak_episodes([0, 2, 3, 0, 0, 1, 0]) == [(1, 2), (5, 1)]
        assert outbreak_count([0, 2, 3, 0, 0, 1, 0]) == 2

    def test_open_episode_counts_observed_steps(self):
        assert outbreak_episodes([1, 1, 0, 4]) == [(0, 2), (3, 1)]

    def test_no_outbreak(self):
        assert outbreak_episodes([0, 0, 0]) == []
        assert recovery_time([0, 0, 0]) == 0.0

    def test_recovery_time_is_mean_episode_length(self):
        assert recovery_time([0, 2, 3, 0, 0, 1, 0]) == pytest.approx(1.5)


class TestStabilityIndex:

    def test_population_standard_deviation(self):
        assert stability_index([2, 4, 4, 4, 5, 5, 7, 9]) == pytest.approx(2.0)
        assert stability_index([1, 3]) == pytest.approx(1.0)

    def test_constant_and_empty_series(self):
        assert stability_index([5, 5, 5]) == 0.0
        assert stability_index([]) == 0.0


def test_series_summary():
    assert series_summary([3, 1, 2]) == SeriesSummary(1, 3, 2.0)
    assert series_summary([]) == SeriesSummary(0, 0, 0.0)


class TestSummarizeRun:

    stats = {
        'active_agents': [0, 1, 2, 0],
        'jailed_agents': [0, 0, 1, 2],
        'quiet_agents': [5, 4, 2, 3],
    }

    def test_skips_setup_counts_by_default(self):
        summary = summarize_run(self.stats)
        assert summary.steps == 3
        assert summary.outbreak_count == 1
        assert summary.rebellion_frequency == pytest.approx(1 / 3)
        assert summary.total_rebellion_steps == 2
        assert summary.max_rebellion_size == 2
        assert summary.avg_rebellion_size == pytest.approx(1.0)
        assert summary.recovery_time == pytest.approx(2.0)
        assert summary.jailed == SeriesSummary(0, 2, 1.0)
        assert summary.quiet == SeriesSummary(2, 4, 3.0)

    def test_include_initial(self):
        summary = summarize_run(self.stats, include_initial=True)
        assert summary.steps == 4
        assert summary.outbreak_count == 1
        assert summary.active == SeriesSummary(0, 2, 0.75)

    def test_setup_only_history(self):
        summary = summarize_run({'active_agents': [0], 'jailed_agents': [0], 'quiet_agents': [9]})
        assert summary.steps == 0
        assert summary.rebellion_frequency == 0.0
        assert summary.stability_index == 0.0
