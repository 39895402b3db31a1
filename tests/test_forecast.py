"""Tests for the Monte Carlo forecast."""

import random
from datetime import date, datetime, timezone

from jira_portfolio.forecast import MAX_PERIODS, add_months, forecast, simulate_periods
from jira_portfolio.models import ThroughputPoint

NOW = datetime(2026, 1, 31, 9, 0, tzinfo=timezone.utc)


class ScriptedSource:
    """Random source that returns values from a fixed script, in order."""

    def __init__(self, values):
        self.values = list(values)
        self.calls = 0

    def choice(self, seq):
        value = self.values[self.calls % len(self.values)]
        self.calls += 1
        return value


def _history(*counts):
    return [ThroughputPoint(period=f"2025-{i + 1:02d}", count=c) for i, c in enumerate(counts)]


class TestAddMonths:
    """Tests for add_months."""

    def test_clamps_to_month_end(self):
        assert add_months(date(2026, 1, 31), 1) == date(2026, 2, 28)

    def test_crosses_year(self):
        assert add_months(date(2026, 11, 15), 3) == date(2027, 2, 15)


class TestSimulatePeriods:
    """Tests for a single trial."""

    def test_stops_when_backlog_is_done(self):
        assert simulate_periods([3], 10, ScriptedSource([3])) == 4

    def test_zero_throughput_hits_cap(self):
        assert simulate_periods([0], 5, ScriptedSource([0])) == MAX_PERIODS


class TestForecast:
    """Tests for forecast."""

    def test_constant_throughput_is_deterministic(self):
        report = forecast(_history(5), 10, simulations=500, now=NOW, rng=random.Random(1))
        assert report.simulations == 500
        assert report.insufficient_data is False
        assert report.percentiles["p50"].periods == 2
        assert report.percentiles["p85"].periods == 2
        assert report.percentiles["p95"].periods == 2
        assert report.percentiles["p85"].confidence == "85%"
        assert report.percentiles["p50"].date == date(2026, 3, 31)
        assert report.avg_throughput == 5

    def test_distribution_is_cumulative(self):
        report = forecast(_history(5), 10, simulations=100, now=NOW, rng=random.Random(1))
        assert [(p.periods, p.probability) for p in report.distribution] == [(1, 0), (2, 100)]
        assert report.distribution[0].date == date(2026, 2, 28)

    def test_scripted_sampling(self):
        # trials alternate: [4, 4] takes 2 periods, [1, 1, 1, 1] takes 4
        rng = ScriptedSource([4, 4, 1, 1, 1, 1])
        report = forecast([4, 1], 8, simulations=2, now=NOW, rng=rng)
        assert report.percentiles["p50"].periods == 2
        assert report.percentiles["p95"].periods == 4
        assert [(p.periods, p.probability) for p in report.distribution] == [
            (1, 0), (2, 50), (3, 50), (4, 100),
        ]
        assert report.avg_throughput == 2.5

    def test_distribution_capped_at_24_periods(self):
        report = forecast([1], 30, simulations=10, now=NOW, rng=random.Random(3))
        assert report.percentiles["p50"].periods == 30
        assert len(report.distribution) == 24

    def test_zero_throughput_history_terminates(self):
        report = forecast([0], 3, simulations=20, now=NOW, rng=random.Random(0))
        assert report.percentiles["p95"].periods == MAX_PERIODS

    def test_empty_history_is_insufficient(self):
        rng = ScriptedSource([1])
        report = forecast([], 10, now=NOW, rng=rng)
        assert report.insufficient_data is True
        assert report.simulations == 0
        assert report.percentiles == {}
        assert report.distribution == []
        assert report.message == "Insufficient data for forecast"
        assert rng.calls == 0

    def test_avg_throughput_rounds_half_up(self):
        report = forecast([2, 2, 2, 3], 5, simulations=10, now=NOW, rng=random.Random(2))
        assert report.avg_throughput == 2.3

    def test_nothing_remaining_is_insufficient(self):
        report = forecast(_history(3, 4), 0, now=NOW)
        assert report.insufficient_data is True
        assert report.remaining_items == 0
