"""Epic progress and health evaluation."""

from datetime import datetime

from jira_portfolio.exceptions import InvalidSnapshotError
from jira_portfolio.models import (
    ChildIssue,
    Dependencies,
    DependencyOverview,
    Epic,
    EpicView,
    HealthVerdict,
    PortfolioSummary,
    ProgressSummary,
)
from jira_portfolio.stats import round_half_up, start_of_day, utc_now

CLOSED_STATUSES = frozenset({"done", "closed", "resolved"})

# Work progress may trail time progress by this many points before an epic is at risk
AT_RISK_MARGIN = 15


def calculate_progress(children: list[ChildIssue]) -> ProgressSummary:
    """Count done / in progress / to do children and sum their story points."""
    if not children:
        return ProgressSummary()

    done = in_progress = todo = 0
    total_points = completed_points = 0

    for child in children:
        points = child.story_points or 0
        total_points += points
        if child.status_category == "done":
            done += 1
            completed_points += points
        elif child.status_category == "indeterminate":
            in_progress += 1
        else:
            todo += 1

    total = len(children)
    return ProgressSummary(
        total=total,
        done=done,
        in_progress=in_progress,
        todo=todo,
        total_points=total_points,
        completed_points=completed_points,
        progress=round_half_up(done / total * 100),
    )


def unresolved_blockers(dependencies: Dependencies | None) -> list[str]:
    """Keys of blocked-by links whose status is not closed, in link order."""
    if dependencies is None:
        return []
    return [
        link.key
        for link in dependencies.blocked_by
        if (link.status or "").lower() not in CLOSED_STATUSES
    ]


def calculate_health(
    epic: Epic,
    children: list[ChildIssue],
    dependencies: Dependencies | None,
    now: datetime | None = None,
) -> HealthVerdict:
    """Derive the health verdict of an epic.

    Rules are checked in order and the first match wins: done, blocked,
    no child issues, no due date (always on track), overdue, and finally
    work progress compared with the share of planned time already elapsed.
    """
    if epic.status_category == "done":
        return HealthVerdict("done", "Completed")

    blockers = unresolved_blockers(dependencies)
    if blockers:
        return HealthVerdict("blocked", f"Blocked by {', '.join(blockers)}")

    progress = calculate_progress(children)
    if progress.total == 0:
        return HealthVerdict("no-data", "No child issues")

    if epic.due_date is None:
        return HealthVerdict("on-track", f"{progress.progress}% done (no due date)")

    now = now or utc_now()
    due = start_of_day(epic.due_date)

    if now > due and progress.progress < 100:
        return HealthVerdict("at-risk", f"Overdue ({progress.progress}% done)")

    if epic.created is not None:
        total_time = (due - epic.created).total_seconds()
        elapsed = (now - epic.created).total_seconds()
        time_progress = round_half_up(elapsed / total_time * 100) if total_time > 0 else 100

        if progress.progress < time_progress - AT_RISK_MARGIN:
            return HealthVerdict(
                "at-risk",
                f"{progress.progress}% done, {time_progress}% time elapsed",
            )

    return HealthVerdict("on-track", f"{progress.progress}% done")


def evaluate_epic(
    epic: Epic,
    children: list[ChildIssue] | None = None,
    dependencies: Dependencies | None = None,
    now: datetime | None = None,
) -> EpicView:
    """Attach progress and health to an epic.

    Children and dependencies default to the ones carried by the epic.
    """
    if children is None:
        children = epic.children
    if dependencies is None:
        dependencies = epic.dependencies

    progress = calculate_progress(children)
    verdict = calculate_health(epic, children, dependencies, now=now)

    return EpicView(
        key=epic.key,
        summary=epic.summary,
        status=epic.status,
        status_category=epic.status_category,
        priority=epic.priority,
        labels=list(epic.labels),
        components=list(epic.components),
        fix_versions=list(epic.fix_versions),
        assignee=epic.assignee,
        created=epic.created,
        due_date=epic.due_date,
        resolution_date=epic.resolution_date,
        target_start=epic.target_start,
        target_end=epic.target_end,
        story_points=epic.story_points,
        parent_key=epic.parent_key,
        children=progress,
        issues=list(children),
        progress=progress.progress,
        health=verdict.health,
        health_reason=verdict.reason,
        dependencies=dependencies,
        raw_fields=dict(epic.raw_fields),
    )


def evaluate_epics(epics: list[Epic], now: datetime | None = None) -> list[EpicView]:
    """Evaluate every epic of a snapshot against the same point in time.

    Raises:
        InvalidSnapshotError: If epics is not a list of Epic
    """
    if not isinstance(epics, (list, tuple)):
        raise InvalidSnapshotError(f"Epics must be a list, got {type(epics).__name__}")
    now = now or utc_now()
    views = []
    for epic in epics:
        if not isinstance(epic, Epic):
            raise InvalidSnapshotError(f"Expected Epic, got {type(epic).__name__}")
        views.append(evaluate_epic(epic, now=now))
    return views


def summarize_epics(epics: list[EpicView]) -> PortfolioSummary:
    """Headline status, health and story point totals."""
    return PortfolioSummary(
        total=len(epics),
        done=sum(1 for e in epics if e.status_category == "done"),
        in_progress=sum(1 for e in epics if e.status_category == "indeterminate"),
        todo=sum(1 for e in epics if e.status_category == "new"),
        at_risk=sum(1 for e in epics if e.health == "at-risk"),
        blocked=sum(1 for e in epics if e.health == "blocked"),
        total_story_points=sum(e.children.total_points for e in epics),
        completed_story_points=sum(e.children.completed_points for e in epics),
    )


def summarize_dependencies(epics: list[EpicView]) -> DependencyOverview:
    """Count dependency links across epics that have any."""
    with_deps = [
        e for e in epics
        if e.dependencies.blocks or e.dependencies.blocked_by or e.dependencies.relates_to
    ]
    return DependencyOverview(
        epics_with_dependencies=[e.key for e in with_deps],
        total_blocks=sum(len(e.dependencies.blocks) for e in with_deps),
        total_blocked_by=sum(len(e.dependencies.blocked_by) for e in with_deps),
        total_relates_to=sum(len(e.dependencies.relates_to) for e in with_deps),
    )
