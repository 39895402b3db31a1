"""Roll-up of evaluated epics into their parent initiatives."""

from jira_portfolio.models import (
    EpicView,
    Initiative,
    InitiativeEpic,
    InitiativeRollup,
    InitiativeView,
)
from jira_portfolio.stats import round_half_up

UNLINKED_KEY = "_unlinked"


def _unlinked_bucket() -> InitiativeView:
    return InitiativeView(
        key=UNLINKED_KEY,
        summary="Epics without Initiative",
        status="-",
        status_category="new",
        assignee="-",
        due_date=None,
    )


def _derive_health(init: InitiativeView) -> str:
    if init.total_epics == 0:
        return "no-data"
    if init.status_category == "done" or init.completed_epics == init.total_epics:
        return "done"
    if any(e.health == "blocked" for e in init.epics):
        return "blocked"
    if any(e.health == "at-risk" for e in init.epics):
        return "at-risk"
    return "on-track"


def aggregate_initiatives(
    initiatives: list[Initiative], epics: list[EpicView]
) -> list[InitiativeView]:
    """Group evaluated epics under their parent initiatives.

    Epics without a parent, or whose parent is not among the known
    initiatives, go to the "_unlinked" bucket. That bucket is left out of
    the result when it stays empty.
    """
    buckets: dict[str, InitiativeView] = {}
    for init in initiatives:
        buckets[init.key] = InitiativeView(
            key=init.key,
            summary=init.summary,
            status=init.status,
            status_category=init.status_category,
            assignee=init.assignee,
            due_date=init.due_date,
        )
    buckets[UNLINKED_KEY] = _unlinked_bucket()

    for epic in epics:
        bucket = buckets.get(epic.parent_key or UNLINKED_KEY) or buckets[UNLINKED_KEY]
        bucket.epics.append(InitiativeEpic(
            key=epic.key,
            summary=epic.summary,
            status=epic.status,
            progress=epic.progress,
            health=epic.health,
            story_points=epic.children.total_points,
            completed_points=epic.children.completed_points,
        ))
        bucket.total_epics += 1
        if epic.status_category == "done":
            bucket.completed_epics += 1
        bucket.total_story_points += epic.children.total_points
        bucket.completed_story_points += epic.children.completed_points

    for init in buckets.values():
        if init.total_epics > 0:
            init.progress = round_half_up(init.completed_epics / init.total_epics * 100)
        init.health = _derive_health(init)

    return [i for i in buckets.values() if i.key != UNLINKED_KEY or i.epics]


def summarize_initiatives(initiatives: list[InitiativeView]) -> InitiativeRollup:
    """Totals across real initiatives (the unlinked bucket is excluded)."""
    inits = [i for i in initiatives if i.key != UNLINKED_KEY]
    total = len(inits)
    return InitiativeRollup(
        total_initiatives=total,
        completed_initiatives=sum(1 for i in inits if i.progress == 100),
        active_initiatives=sum(1 for i in inits if 0 < i.progress < 100),
        average_progress=round_half_up(sum(i.progress for i in inits) / total) if total else 0,
        total_epics=sum(i.total_epics for i in inits),
        completed_epics=sum(i.completed_epics for i in inits),
    )
