"""Portfolio view: flow metrics, forecast and insights in one call."""

from datetime import datetime

from jira_portfolio.flow import (
    compute_cumulative_flow,
    compute_lead_cycle_time,
    compute_throughput,
    compute_wip,
)
from jira_portfolio.forecast import DEFAULT_SIMULATIONS, RandomSource, forecast
from jira_portfolio.insights import generate_insights
from jira_portfolio.models import EpicView, Initiative, PortfolioView
from jira_portfolio.stats import utc_now


def build_portfolio_view(
    epics: list[EpicView],
    initiatives: list[Initiative] | None = None,
    remaining_items: int | None = None,
    weeks: int = 12,
    simulations: int = DEFAULT_SIMULATIONS,
    now: datetime | None = None,
    rng: RandomSource | None = None,
) -> PortfolioView:
    """Compute every flow metric for a set of evaluated epics.

    The forecast uses monthly throughput. When remaining_items is not given
    it is the number of epics that are not done yet.
    """
    now = now or utc_now()
    if remaining_items is None:
        remaining_items = sum(1 for e in epics if e.status_category != "done")

    throughput = compute_throughput(epics, "month")
    cumulative_flow = compute_cumulative_flow(epics, weeks=weeks, now=now)
    lead_time = compute_lead_cycle_time(epics)
    wip = compute_wip(epics, initiatives, now=now)
    completion = forecast(throughput, remaining_items, simulations, now=now, rng=rng)

    return PortfolioView(
        throughput=throughput,
        cumulative_flow=cumulative_flow,
        lead_cycle_time=lead_time,
        wip_metrics=wip,
        forecast=completion,
        insights=generate_insights(cumulative_flow, throughput, lead_time, wip, completion),
    )
