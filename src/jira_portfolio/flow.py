"""Flow metrics: throughput, cumulative flow, lead time and WIP."""

import logging
from collections import Counter
from datetime import datetime, timedelta, timezone

from jira_portfolio.models import (
    EpicView,
    HistogramBucket,
    Initiative,
    LeadTimeEpic,
    LeadTimeReport,
    NamedCount,
    ThroughputPoint,
    WeeklySnapshot,
    WIPAgeEntry,
    WIPReport,
)
from jira_portfolio.stats import days_between, percentile, round_half_up, utc_now

logger = logging.getLogger(__name__)

PERIODS = ("week", "month", "quarter")
HISTOGRAM_BUCKET_DAYS = 7
LEAD_TIME_PERCENTILES = (50, 70, 85, 95)


def period_key(moment: datetime, period: str) -> str:
    """Grouping key for a resolution timestamp.

    month: "2026-03", quarter: "2026 Q1", week: ISO date of the Sunday the
    week starts on. All formats sort chronologically as plain strings.
    """
    moment = moment.astimezone(timezone.utc)
    if period == "month":
        return f"{moment.year}-{moment.month:02d}"
    if period == "quarter":
        return f"{moment.year} Q{(moment.month - 1) // 3 + 1}"
    if period == "week":
        day = moment.date()
        # weekday(): Monday=0 .. Sunday=6
        return (day - timedelta(days=(day.weekday() + 1) % 7)).isoformat()
    raise ValueError(f"Unknown period {period!r}; expected one of {', '.join(PERIODS)}")


def compute_throughput(epics: list[EpicView], period: str = "month") -> list[ThroughputPoint]:
    """Count done epics per period of their resolution date, oldest first."""
    if period not in PERIODS:
        raise ValueError(f"Unknown period {period!r}; expected one of {', '.join(PERIODS)}")

    counts: Counter[str] = Counter()
    for epic in epics:
        if epic.status_category == "done" and epic.resolution_date:
            counts[period_key(epic.resolution_date, period)] += 1

    return [ThroughputPoint(period=key, count=counts[key]) for key in sorted(counts)]


def compute_cumulative_flow(
    epics: list[EpicView], weeks: int = 12, now: datetime | None = None
) -> list[WeeklySnapshot]:
    """Approximate done / in progress / to do counts at the end of each past week.

    Only the current state of each epic is known, so history is
    reconstructed: an epic counts as done once its resolution date has
    passed, as in progress if it is in progress today or was resolved after
    the snapshot, and as to do otherwise. Epics that did not exist yet are
    left out. Status changes that were later reverted are invisible, so the
    older snapshots are estimates rather than a record.
    """
    now = now or utc_now()
    snapshots = []

    for i in range(weeks - 1, -1, -1):
        week_end = (now - timedelta(days=i * 7)).replace(
            hour=23, minute=59, second=59, microsecond=999999
        )
        done = in_progress = todo = 0

        for epic in epics:
            if epic.created is None or epic.created > week_end:
                continue
            resolved = epic.resolution_date
            if resolved is not None and resolved <= week_end:
                done += 1
            elif epic.status_category in ("indeterminate", "done"):
                in_progress += 1
            else:
                todo += 1

        snapshots.append(WeeklySnapshot(
            week=week_end.date().isoformat(),
            done=done,
            in_progress=in_progress,
            todo=todo,
        ))

    return snapshots


def compute_lead_cycle_time(epics: list[EpicView]) -> LeadTimeReport:
    """Lead time (created to resolved, in days) of resolved epics."""
    resolved = [
        e for e in epics
        if e.status_category == "done" and e.resolution_date and e.created
    ]

    details: list[LeadTimeEpic] = []
    for epic in resolved:
        days = round_half_up(days_between(epic.created, epic.resolution_date))
        if days < 0:
            logger.debug("Skipping %s: resolved before it was created", epic.key)
            continue
        details.append(LeadTimeEpic(
            key=epic.key,
            summary=epic.summary,
            created=epic.created,
            resolved=epic.resolution_date,
            lead_time_days=days,
        ))

    lead_times = sorted(d.lead_time_days for d in details)
    average = round_half_up(sum(lead_times) / len(lead_times)) if lead_times else 0

    histogram: list[HistogramBucket] = []
    if lead_times:
        for start in range(0, lead_times[-1] + 1, HISTOGRAM_BUCKET_DAYS):
            end = start + HISTOGRAM_BUCKET_DAYS
            histogram.append(HistogramBucket(
                range=f"{start}-{end}d",
                start=start,
                end=end,
                count=sum(1 for d in lead_times if start <= d < end),
            ))

    return LeadTimeReport(
        total_resolved=len(resolved),
        average=average,
        percentiles={f"p{p}": percentile(lead_times, p) for p in LEAD_TIME_PERCENTILES},
        histogram=histogram,
        epics=sorted(details, key=lambda d: d.lead_time_days, reverse=True),
    )


def _ranked(counts: Counter) -> list[NamedCount]:
    # sorted() is stable, so ties keep first-seen order
    return [
        NamedCount(name=name, count=count)
        for name, count in sorted(counts.items(), key=lambda item: item[1], reverse=True)
    ]


def compute_wip(
    epics: list[EpicView],
    initiatives: list[Initiative] | None = None,
    now: datetime | None = None,
) -> WIPReport:
    """Work in progress by assignee and initiative, with the age of each epic."""
    now = now or utc_now()
    initiative_names = {i.key: i.summary for i in initiatives or []}
    wip = [e for e in epics if e.status_category == "indeterminate"]

    by_assignee: Counter[str] = Counter()
    by_initiative: Counter[str] = Counter()
    ages: list[WIPAgeEntry] = []

    for epic in wip:
        by_assignee[epic.assignee or "Unassigned"] += 1
        by_initiative[initiative_names.get(epic.parent_key) or "Unlinked"] += 1
        if epic.created is None:
            continue
        ages.append(WIPAgeEntry(
            key=epic.key,
            summary=epic.summary,
            assignee=epic.assignee,
            age_days=round_half_up(days_between(epic.created, now)),
            health=epic.health,
        ))

    ages.sort(key=lambda a: a.age_days, reverse=True)

    return WIPReport(
        total_wip=len(wip),
        wip_by_assignee=_ranked(by_assignee),
        wip_by_initiative=_ranked(by_initiative),
        wip_age=ages,
        avg_age=round_half_up(sum(a.age_days for a in ages) / len(ages)) if ages else 0,
    )
