"""WSJF scoring, MoSCoW categorization and value/effort quadrants."""

from datetime import datetime

from jira_portfolio.models import (
    EpicView,
    FieldMappings,
    PrioritizationReport,
    PrioritizedEpic,
    Quadrants,
    WSJFScore,
)
from jira_portfolio.stats import days_between, round_half_up_to, start_of_day, utc_now

PRIORITY_SCORES = {"Highest": 5, "High": 4, "Medium": 3, "Low": 2, "Lowest": 1}
DEFAULT_PRIORITY_SCORE = 3

MUST_HAVE = "Must Have"
SHOULD_HAVE = "Should Have"
COULD_HAVE = "Could Have"
WONT_HAVE = "Won't Have"
MOSCOW_CATEGORIES = (MUST_HAVE, SHOULD_HAVE, COULD_HAVE, WONT_HAVE)

MIN_JOB_SIZE = 0.5
DEFAULT_MEDIAN_EFFORT = 5
DEFAULT_MEDIAN_VALUE = 3

# Stand-in for "no due date" when comparing against due-soon thresholds
NO_DUE_DATE_DAYS = 999


def _active_mappings(field_mappings: FieldMappings | None) -> FieldMappings | None:
    if field_mappings is None or field_mappings.is_empty():
        return None
    return field_mappings


def _numeric_field(raw_fields: dict, field_id: str | None) -> float:
    """Read a numeric custom field; select fields arrive as {"value": "5"}."""
    if not field_id:
        return 0
    value = raw_fields.get(field_id)
    if isinstance(value, dict):
        value = value.get("value")
    if isinstance(value, bool) or value is None:
        return 0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0


def _text_field(raw_fields: dict, field_id: str | None) -> str:
    if not field_id:
        return ""
    value = raw_fields.get(field_id)
    if isinstance(value, dict):
        value = value.get("value") or value.get("name")
    return str(value).lower() if value else ""


def _days_until_due(epic: EpicView, now: datetime) -> float | None:
    if epic.due_date is None:
        return None
    return days_between(now, start_of_day(epic.due_date))


MOSCOW_KEYWORDS = (
    (("must",), MUST_HAVE),
    (("should",), SHOULD_HAVE),
    (("could",), COULD_HAVE),
    (("wont", "won't"), WONT_HAVE),
)


def _moscow_match(texts: list[str]) -> str | None:
    """First category whose keyword appears in any of the texts."""
    for keywords, category in MOSCOW_KEYWORDS:
        if any(keyword in text for text in texts for keyword in keywords):
            return category
    return None


def calculate_wsjf(
    epic: EpicView,
    field_mappings: FieldMappings | None = None,
    now: datetime | None = None,
) -> WSJFScore:
    """Weighted Shortest Job First: cost of delay divided by job size.

    With field mappings the four inputs are read from the epic's custom
    fields. Without them they are estimated from priority, size, progress,
    health and due date.
    """
    mappings = _active_mappings(field_mappings)

    if mappings:
        raw = epic.raw_fields
        business_value = _numeric_field(raw, mappings.business_value)
        time_criticality = _numeric_field(raw, mappings.time_criticality)
        risk_reduction = _numeric_field(raw, mappings.risk_reduction)
        job_size = _numeric_field(raw, mappings.job_size) or epic.children.total_points or 1
    else:
        base_priority = PRIORITY_SCORES.get(epic.priority, DEFAULT_PRIORITY_SCORE)

        child_count = epic.children.total
        if child_count >= 20:
            child_bonus = 2
        elif child_count >= 10:
            child_bonus = 1.5
        elif child_count >= 5:
            child_bonus = 1
        else:
            child_bonus = 0.5

        progress_bonus = 0.5 if epic.progress > 50 else 0

        if epic.health == "blocked":
            health_bonus = 1
        elif epic.health == "at-risk":
            health_bonus = 0.5
        else:
            health_bonus = 0

        business_value = min(
            8, round_half_up_to(base_priority + child_bonus + progress_bonus + health_bonus, 1)
        )

        days_until_due = _days_until_due(epic, now or utc_now())
        if days_until_due is None:
            time_criticality = 2
        elif days_until_due < 14:
            time_criticality = 5
        elif days_until_due < 30:
            time_criticality = 4
        elif days_until_due < 60:
            time_criticality = 3
        elif days_until_due < 90:
            time_criticality = 2
        else:
            time_criticality = 1

        if epic.health == "blocked":
            risk_reduction = 4
        elif epic.health == "at-risk":
            risk_reduction = 3
        else:
            risk_reduction = 2

        job_size = epic.children.total_points or epic.story_points or 1

    job_size = max(job_size, MIN_JOB_SIZE)
    cost_of_delay = business_value + time_criticality + risk_reduction

    return WSJFScore(
        business_value=business_value,
        time_criticality=time_criticality,
        risk_reduction=risk_reduction,
        job_size=job_size,
        cost_of_delay=cost_of_delay,
        wsjf_score=round_half_up_to(cost_of_delay / job_size, 2),
    )


def categorize_moscow(
    epic: EpicView,
    field_mappings: FieldMappings | None = None,
    now: datetime | None = None,
) -> str:
    """MoSCoW category from labels, a mapped field, or a composite score."""
    category = _moscow_match([label.lower() for label in epic.labels])
    if category:
        return category

    mappings = _active_mappings(field_mappings)
    if mappings and mappings.moscow:
        category = _moscow_match([_text_field(epic.raw_fields, mappings.moscow)])
        if category:
            return category

    score = PRIORITY_SCORES.get(epic.priority, DEFAULT_PRIORITY_SCORE)
    child_count = epic.children.total
    days_until_due = _days_until_due(epic, now or utc_now())
    if days_until_due is None:
        days_until_due = NO_DUE_DATE_DAYS

    if epic.health == "blocked":
        score += 1.5
    if epic.health == "at-risk":
        score += 1
    if child_count >= 15:
        score += 1
    if days_until_due < 30:
        score += 1.5
    elif days_until_due < 60:
        score += 0.5
    if child_count <= 2 and epic.due_date is None:
        score -= 1

    if score >= 6:
        return MUST_HAVE
    if score >= 4.5:
        return SHOULD_HAVE
    if score >= 3:
        return COULD_HAVE
    return WONT_HAVE


def _lower_median(values: list[float], default: float) -> float:
    if not values:
        return default
    ordered = sorted(values)
    return ordered[len(ordered) // 2]


def prioritize(
    epics: list[EpicView],
    field_mappings: FieldMappings | None = None,
    now: datetime | None = None,
) -> PrioritizationReport:
    """Rank active epics by WSJF and place them on the value/effort grid."""
    now = now or utc_now()
    prioritized: list[PrioritizedEpic] = []

    for epic in epics:
        if epic.status_category == "done":
            continue
        wsjf = calculate_wsjf(epic, field_mappings, now=now)

        # One child issue stands in for roughly two story points
        sp_effort = epic.children.total_points or epic.story_points or 0
        effort = sp_effort if sp_effort > 0 else epic.children.total * 2

        prioritized.append(PrioritizedEpic(
            key=epic.key,
            summary=epic.summary,
            status=epic.status,
            status_category=epic.status_category,
            priority=epic.priority,
            health=epic.health,
            assignee=epic.assignee,
            progress=epic.progress,
            labels=list(epic.labels),
            effort=effort,
            effort_source="story_points" if sp_effort > 0 else "child_count",
            value=wsjf.business_value,
            wsjf=wsjf,
            moscow=categorize_moscow(epic, field_mappings, now=now),
        ))

    prioritized.sort(key=lambda p: p.wsjf.wsjf_score, reverse=True)

    distribution = {category: 0 for category in MOSCOW_CATEGORIES}
    for p in prioritized:
        distribution[p.moscow] += 1

    median_effort = _lower_median(
        [p.effort for p in prioritized if p.effort > 0], DEFAULT_MEDIAN_EFFORT
    )
    median_value = _lower_median(
        [p.value for p in prioritized if p.value > 0], DEFAULT_MEDIAN_VALUE
    )

    quadrants = Quadrants()
    for p in prioritized:
        high_value = p.value >= median_value
        low_effort = p.effort < median_effort
        if high_value and low_effort:
            quadrants.quick_wins += 1
        elif high_value:
            quadrants.big_bets += 1
        elif low_effort:
            quadrants.fill_ins += 1
        else:
            quadrants.money_pit += 1

    return PrioritizationReport(
        epics=prioritized,
        moscow_distribution=distribution,
        quadrants=quadrants,
        median_effort=median_effort,
        median_value=median_value,
    )
