"""Plain-language observations derived from flow metrics."""

from jira_portfolio.models import (
    ForecastReport,
    Insight,
    LeadTimeReport,
    ThroughputPoint,
    WeeklySnapshot,
    WIPReport,
)
from jira_portfolio.stats import round_half_up

WIP_TREND_THRESHOLD = 2
STALE_WIP_DAYS = 90


def _wip_trend(cumulative_flow: list[WeeklySnapshot]) -> Insight | None:
    if len(cumulative_flow) <= 4:
        return None
    now = cumulative_flow[-1].in_progress
    before = cumulative_flow[-5].in_progress
    if now > before + WIP_TREND_THRESHOLD:
        return Insight("warning", (
            f"WIP increased from {before} to {now} in-progress epics over the last month. "
            "Growing WIP leads to longer lead times."
        ))
    if now < before - WIP_TREND_THRESHOLD:
        return Insight("success", (
            f"WIP decreased from {before} to {now} in-progress epics. "
            "Less WIP means better focus and faster delivery."
        ))
    return None


def _throughput_trend(throughput: list[ThroughputPoint]) -> Insight | None:
    if len(throughput) < 3:
        return None
    recent = sum(t.count for t in throughput[-3:]) / 3
    prior = throughput[-6:-3]
    older = sum(t.count for t in prior) / max(len(prior), 1)
    if older <= 0:
        return None
    if recent > older * 1.2:
        return Insight("success", (
            f"Throughput is trending up: {recent:.1f} epics/period (last 3) "
            f"vs {older:.1f} (prior 3)."
        ))
    if recent < older * 0.7:
        return Insight("warning", (
            f"Throughput is declining: {recent:.1f} epics/period (last 3) "
            f"vs {older:.1f} (prior 3). Consider reducing WIP or removing blockers."
        ))
    return None


def generate_insights(
    cumulative_flow: list[WeeklySnapshot],
    throughput: list[ThroughputPoint],
    lead_time: LeadTimeReport,
    wip: WIPReport,
    forecast: ForecastReport,
) -> list[Insight]:
    """Collect warnings and highlights about WIP, throughput and predictability."""
    insights = [i for i in (_wip_trend(cumulative_flow), _throughput_trend(throughput)) if i]

    if lead_time.average > 0 and wip.avg_age > lead_time.average * 1.5:
        insights.append(Insight("danger", (
            f"Average WIP age ({wip.avg_age}d) is much higher than average lead time "
            f"({lead_time.average}d). Some epics may be stalled."
        )))

    p50 = lead_time.percentiles.get("p50", 0)
    p85 = lead_time.percentiles.get("p85", 0)
    if p50 > 0 and p85 > 0 and p85 / p50 > 3:
        insights.append(Insight("warning", (
            f"High lead time variability: p85 ({p85}d) is {p85 / p50:.1f}x the p50 ({p50}d). "
            "Predictability is low; look for systemic blockers."
        )))

    stale = [w.key for w in wip.wip_age if w.age_days > STALE_WIP_DAYS]
    if stale:
        listed = ", ".join(stale[:3])
        more = f" and {len(stale) - 3} more" if len(stale) > 3 else ""
        plural = "s" if len(stale) > 1 else ""
        insights.append(Insight("danger", (
            f"{len(stale)} epic{plural} in progress for over {STALE_WIP_DAYS} days: "
            f"{listed}{more}. Consider splitting or deprioritizing."
        )))

    p85_forecast = forecast.percentiles.get("p85")
    if p85_forecast:
        insights.append(Insight("info", (
            f"At current throughput, 85% chance of completing all remaining "
            f"{forecast.remaining_items} epics by {p85_forecast.date.isoformat()}."
        )))

    if cumulative_flow:
        latest = cumulative_flow[-1]
        total = latest.done + latest.in_progress + latest.todo
        done_ratio = round_half_up(latest.done / total * 100) if total else 0
        if done_ratio < 20:
            insights.append(Insight("info", (
                f"Only {done_ratio}% of epics are completed. {latest.todo} still in backlog, "
                f"{latest.in_progress} in progress."
            )))
        elif done_ratio > 70:
            insights.append(Insight("success", (
                f"{done_ratio}% of epics are completed ({latest.done} done). "
                "Portfolio is maturing well."
            )))

    return insights
