"""Tests for portfolio insights and the combined portfolio view."""

import random
from datetime import date, datetime, timedelta, timezone

from jira_portfolio.health import evaluate_epics
from jira_portfolio.insights import generate_insights
from jira_portfolio.models import (
    Epic,
    ForecastPercentile,
    ForecastReport,
    LeadTimeReport,
    ThroughputPoint,
    WeeklySnapshot,
    WIPAgeEntry,
    WIPReport,
)
from jira_portfolio.portfolio import build_portfolio_view
from jira_portfolio.serialize import to_dict

NOW = datetime(2026, 6, 17, 15, 0, tzinfo=timezone.utc)


def _lead_time(average=0, p50=0, p85=0):
    return LeadTimeReport(
        total_resolved=0,
        average=average,
        percentiles={"p50": p50, "p70": 0, "p85": p85, "p95": 0},
        histogram=[],
        epics=[],
    )


def _wip(ages=(), avg_age=0):
    entries = [WIPAgeEntry(key=k, summary="", assignee="Ana", age_days=a, health="on-track")
               for k, a in ages]
    return WIPReport(len(entries), [], [], entries, avg_age)


def _flow(*in_progress, done=5, todo=5):
    return [WeeklySnapshot(f"w{i}", done, n, todo) for i, n in enumerate(in_progress)]


def _types(insights):
    return [(i.type, i.text.split(" ")[0]) for i in insights]


NO_FORECAST = ForecastReport(remaining_items=0, simulations=0, insufficient_data=True)


class TestGenerateInsights:
    """Tests for generate_insights."""

    def test_quiet_portfolio_has_no_insights(self):
        insights = generate_insights(_flow(3, 3), [], _lead_time(), _wip(), NO_FORECAST)
        assert insights == []

    def test_wip_increase(self):
        insights = generate_insights(_flow(2, 2, 3, 4, 6), [], _lead_time(), _wip(), NO_FORECAST)
        assert insights[0].type == "warning"
        assert insights[0].text.startswith("WIP increased from 2 to 6")

    def test_wip_decrease(self):
        insights = generate_insights(_flow(9, 8, 7, 6, 5), [], _lead_time(), _wip(), NO_FORECAST)
        assert insights[0].type == "success"
        assert insights[0].text.startswith("WIP decreased from 9 to 5")

    def test_throughput_declining(self):
        throughput = [ThroughputPoint(f"2026-0{i}", c) for i, c in enumerate([6, 6, 6, 2, 2, 2], 1)]
        insights = generate_insights([], throughput, _lead_time(), _wip(), NO_FORECAST)
        assert _types(insights) == [("warning", "Throughput")]
        assert "2.0 epics/period" in insights[0].text

    def test_stalled_and_stale_wip(self):
        wip = _wip(ages=[("E-1", 120), ("E-2", 95), ("E-3", 10)], avg_age=75)
        insights = generate_insights([], [], _lead_time(average=30), wip, NO_FORECAST)
        assert [i.type for i in insights] == ["danger", "danger"]
        assert "(75d)" in insights[0].text
        assert insights[1].text.startswith("2 epics in progress for over 90 days: E-1, E-2.")

    def test_lead_time_variability(self):
        insights = generate_insights([], [], _lead_time(average=20, p50=5, p85=20), _wip(), NO_FORECAST)
        assert _types(insights) == [("warning", "High")]
        assert "4.0x" in insights[0].text

    def test_forecast_date(self):
        report = ForecastReport(
            remaining_items=7,
            simulations=100,
            percentiles={"p85": ForecastPercentile(3, date(2026, 9, 17), "85%")},
        )
        insights = generate_insights([], [], _lead_time(), _wip(), report)
        assert insights[0].text.endswith("remaining 7 epics by 2026-09-17.")

    def test_done_ratio(self):
        low = generate_insights(_flow(5, done=1, todo=14), [], _lead_time(), _wip(), NO_FORECAST)
        assert low[0].text.startswith("Only 5% of epics are completed")

        high = generate_insights(_flow(1, done=8, todo=1), [], _lead_time(), _wip(), NO_FORECAST)
        assert high[0].type == "success"
        assert high[0].text.startswith("80% of epics are completed")


class TestBuildPortfolioView:
    """Tests for build_portfolio_view."""

    def _epics(self):
        epics = [
            Epic(key=f"D-{m}", status_category="done",
                 created=datetime(2026, m, 1, tzinfo=timezone.utc),
                 resolution_date=datetime(2026, m, 20, tzinfo=timezone.utc))
            for m in (1, 2, 3, 4, 5)
        ]
        epics += [
            Epic(key="W-1", status_category="indeterminate", created=NOW - timedelta(days=20)),
            Epic(key="T-1", status_category="new", created=NOW - timedelta(days=5)),
        ]
        return evaluate_epics(epics, now=NOW)

    def test_combines_all_metrics(self):
        view = build_portfolio_view(self._epics(), [], weeks=4, simulations=200,
                                    now=NOW, rng=random.Random(7))
        assert len(view.throughput) == 5
        assert len(view.cumulative_flow) == 4
        assert view.lead_cycle_time.total_resolved == 5
        assert view.wip_metrics.total_wip == 1
        # one epic per month, two not done
        assert view.forecast.remaining_items == 2
        assert view.forecast.percentiles["p50"].periods == 2

    def test_explicit_remaining_items(self):
        view = build_portfolio_view(self._epics(), remaining_items=0, now=NOW)
        assert view.forecast.insufficient_data is True

    def test_serializes_to_plain_data(self):
        view = build_portfolio_view(self._epics(), weeks=2, simulations=10,
                                    now=NOW, rng=random.Random(1))
        data = to_dict(view)
        assert data["forecast"]["percentiles"]["p85"]["date"] == "2026-08-17"
        assert data["cumulative_flow"][-1]["week"] == "2026-06-17"
        assert isinstance(data["insights"], list)
