"""Monte Carlo completion forecasts from historical throughput."""

import logging
import random
from bisect import bisect_right
from datetime import date, datetime
from typing import Protocol, Sequence

from dateutil.relativedelta import relativedelta

from jira_portfolio.models import (
    ForecastPercentile,
    ForecastPoint,
    ForecastReport,
    ThroughputPoint,
)
from jira_portfolio.stats import percentile, round_half_up, round_half_up_to, utc_now

logger = logging.getLogger(__name__)

DEFAULT_SIMULATIONS = 10000
MAX_SIMULATIONS = 100000
# A trial stops after this many periods even if work remains (zero throughput)
MAX_PERIODS = 100
MAX_DISTRIBUTION_PERIODS = 24
FORECAST_PERCENTILES = (50, 85, 95)
INSUFFICIENT_DATA_MESSAGE = "Insufficient data for forecast"


class RandomSource(Protocol):
    """Anything that can pick a random element, like random.Random."""

    def choice(self, seq: Sequence[int]) -> int: ...


def add_months(start: date, months: int) -> date:
    """Add calendar months, clamping the day to the end of shorter months."""
    return start + relativedelta(months=months)


def simulate_periods(
    throughput_values: Sequence[int], remaining_items: int, rng: RandomSource
) -> int:
    """Run one trial: number of periods until the remaining items are done."""
    items_left = remaining_items
    periods = 0
    while items_left > 0 and periods < MAX_PERIODS:
        items_left -= rng.choice(throughput_values)
        periods += 1
    return periods


def forecast(
    throughput: Sequence[ThroughputPoint | int],
    remaining_items: int,
    simulations: int = DEFAULT_SIMULATIONS,
    now: datetime | None = None,
    rng: RandomSource | None = None,
) -> ForecastReport:
    """Forecast when the remaining items will be done.

    Each trial resamples the historical per-period counts with replacement
    until the backlog is used up. Periods are treated as calendar months
    when converting to dates.

    Args:
        throughput: Historical throughput, as ThroughputPoint or plain counts
        remaining_items: Backlog size to burn down
        simulations: Number of Monte Carlo trials
        now: Reference time for the forecast dates
        rng: Random source with a choice() method; defaults to random.Random()

    Returns:
        ForecastReport; flagged as insufficient data when there is no
        history or nothing remains
    """
    values = [t.count if isinstance(t, ThroughputPoint) else int(t) for t in throughput or []]

    if not values or remaining_items <= 0 or simulations <= 0:
        return ForecastReport(
            remaining_items=remaining_items,
            simulations=0,
            insufficient_data=True,
            message=INSUFFICIENT_DATA_MESSAGE,
        )

    rng = rng or random.Random()
    today = (now or utc_now()).date()

    logger.debug(
        "Running %d simulations for %d items over %d periods of history",
        simulations, remaining_items, len(values),
    )
    results = sorted(simulate_periods(values, remaining_items, rng) for _ in range(simulations))

    percentiles = {}
    for p in FORECAST_PERCENTILES:
        periods = percentile(results, p)
        percentiles[f"p{p}"] = ForecastPercentile(
            periods=periods,
            date=add_months(today, periods),
            confidence=f"{p}%",
        )

    distribution = []
    for horizon in range(1, min(results[-1], MAX_DISTRIBUTION_PERIODS) + 1):
        finished = bisect_right(results, horizon)
        distribution.append(ForecastPoint(
            periods=horizon,
            date=add_months(today, horizon),
            probability=round_half_up(finished / simulations * 100),
        ))

    return ForecastReport(
        remaining_items=remaining_items,
        simulations=simulations,
        percentiles=percentiles,
        distribution=distribution,
        avg_throughput=round_half_up_to(sum(values) / len(values), 1),
    )
