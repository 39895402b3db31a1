"""Data models for JIRA Portfolio."""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any


# ----------------------------------------------------------------------------
# Input records
# ----------------------------------------------------------------------------


@dataclass(frozen=True)
class ChildIssue:
    """A story, task or bug that belongs to an epic."""

    key: str
    status_category: str = "new"  # "new" | "indeterminate" | "done"
    story_points: float = 0
    summary: str = ""
    status: str = "Unknown"
    issue_type: str = "Unknown"
    assignee: str = "Unassigned"


@dataclass(frozen=True)
class DependencyLink:
    """One end of an issue link: the linked issue key and its status name."""

    key: str
    status: str = ""


@dataclass(frozen=True)
class Dependencies:
    """Issue links of an epic, grouped by direction."""

    blocks: list[DependencyLink] = field(default_factory=list)
    blocked_by: list[DependencyLink] = field(default_factory=list)
    relates_to: list[DependencyLink] = field(default_factory=list)


@dataclass(frozen=True)
class Epic:
    """An epic as fetched from JIRA, before any analytics are attached."""

    key: str
    status_category: str = "new"
    priority: str = "None"
    created: datetime | None = None
    due_date: date | None = None
    resolution_date: datetime | None = None
    target_start: date | None = None
    target_end: date | None = None
    children: list[ChildIssue] = field(default_factory=list)
    dependencies: Dependencies = field(default_factory=Dependencies)
    raw_fields: dict[str, Any] = field(default_factory=dict)
    parent_key: str | None = None
    summary: str = ""
    status: str = "Unknown"
    labels: list[str] = field(default_factory=list)
    components: list[str] = field(default_factory=list)
    fix_versions: list[str] = field(default_factory=list)
    assignee: str = "Unassigned"
    story_points: float = 0  # epic-level estimate, not the sum of children


@dataclass(frozen=True)
class Initiative:
    """A parent initiative that groups epics across teams."""

    key: str
    summary: str = ""
    status: str = "Unknown"
    status_category: str = "new"
    assignee: str = "Unassigned"
    due_date: date | None = None


@dataclass
class PortfolioSnapshot:
    """Everything needed for one analytics request."""

    initiatives: list[Initiative]
    epics: list[Epic]


# ----------------------------------------------------------------------------
# Progress and health
# ----------------------------------------------------------------------------


@dataclass
class ProgressSummary:
    """Completion counts for the children of one epic."""

    total: int = 0
    done: int = 0
    in_progress: int = 0
    todo: int = 0
    total_points: float = 0
    completed_points: float = 0
    progress: int = 0  # percentage of children done


@dataclass
class HealthVerdict:
    """Qualitative health of an epic with a human-readable reason."""

    health: str  # "done" | "blocked" | "on-track" | "at-risk" | "no-data"
    reason: str


@dataclass
class EpicView:
    """An epic with progress and health attached."""

    key: str
    summary: str
    status: str
    status_category: str
    priority: str
    labels: list[str]
    components: list[str]
    fix_versions: list[str]
    assignee: str
    created: datetime | None
    due_date: date | None
    resolution_date: datetime | None
    target_start: date | None
    target_end: date | None
    story_points: float
    parent_key: str | None
    children: ProgressSummary
    issues: list[ChildIssue]
    progress: int
    health: str
    health_reason: str
    dependencies: Dependencies
    raw_fields: dict[str, Any] = field(default_factory=dict)


@dataclass
class PortfolioSummary:
    """Headline counts across all evaluated epics."""

    total: int
    done: int
    in_progress: int
    todo: int
    at_risk: int
    blocked: int
    total_story_points: float
    completed_story_points: float


@dataclass
class DependencyOverview:
    """Totals of dependency links across the portfolio."""

    epics_with_dependencies: list[str]
    total_blocks: int
    total_blocked_by: int
    total_relates_to: int


# ----------------------------------------------------------------------------
# Initiatives
# ----------------------------------------------------------------------------


@dataclass
class InitiativeEpic:
    """Summary of one epic as shown inside its initiative."""

    key: str
    summary: str
    status: str
    progress: int
    health: str
    story_points: float
    completed_points: float


@dataclass
class InitiativeView:
    """An initiative with its epics rolled up."""

    key: str
    summary: str
    status: str
    status_category: str
    assignee: str
    due_date: date | None
    epics: list[InitiativeEpic] = field(default_factory=list)
    total_epics: int = 0
    completed_epics: int = 0
    progress: int = 0
    total_story_points: float = 0
    completed_story_points: float = 0
    health: str = "no-data"


@dataclass
class InitiativeRollup:
    """Portfolio-wide totals across real initiatives."""

    total_initiatives: int
    completed_initiatives: int
    active_initiatives: int
    average_progress: int
    total_epics: int
    completed_epics: int


# ----------------------------------------------------------------------------
# Flow
# ----------------------------------------------------------------------------


@dataclass
class ThroughputPoint:
    """Number of epics completed in one period."""

    period: str
    count: int


@dataclass
class WeeklySnapshot:
    """Approximate status counts at the end of one week."""

    week: str
    done: int
    in_progress: int
    todo: int


@dataclass
class HistogramBucket:
    """Lead times in the half-open day range [start, end)."""

    range: str
    start: int
    end: int
    count: int


@dataclass
class LeadTimeEpic:
    """Lead time of one resolved epic."""

    key: str
    summary: str
    created: datetime
    resolved: datetime
    lead_time_days: int


@dataclass
class LeadTimeReport:
    """Lead time distribution for resolved epics."""

    total_resolved: int
    average: int
    percentiles: dict[str, int]
    histogram: list[HistogramBucket]
    epics: list[LeadTimeEpic]


@dataclass
class NamedCount:
    """A count keyed by a display name."""

    name: str
    count: int


@dataclass
class WIPAgeEntry:
    """Age of one in-progress epic."""

    key: str
    summary: str
    assignee: str
    age_days: int
    health: str


@dataclass
class WIPReport:
    """Work in progress broken down by assignee and initiative."""

    total_wip: int
    wip_by_assignee: list[NamedCount]
    wip_by_initiative: list[NamedCount]
    wip_age: list[WIPAgeEntry]
    avg_age: int


# ----------------------------------------------------------------------------
# Prioritization
# ----------------------------------------------------------------------------


@dataclass
class FieldMappings:
    """JIRA custom field ids used for WSJF and MoSCoW scoring."""

    business_value: str | None = None
    time_criticality: str | None = None
    risk_reduction: str | None = None
    job_size: str | None = None
    moscow: str | None = None

    def is_empty(self) -> bool:
        """Return True if no field is mapped."""
        return not any((
            self.business_value,
            self.time_criticality,
            self.risk_reduction,
            self.job_size,
            self.moscow,
        ))


@dataclass
class WSJFScore:
    """Weighted Shortest Job First breakdown."""

    business_value: float
    time_criticality: float
    risk_reduction: float
    job_size: float
    cost_of_delay: float
    wsjf_score: float


@dataclass
class PrioritizedEpic:
    """An active epic with its prioritization data."""

    key: str
    summary: str
    status: str
    status_category: str
    priority: str
    health: str
    assignee: str
    progress: int
    labels: list[str]
    effort: float
    effort_source: str  # "story_points" | "child_count"
    value: float
    wsjf: WSJFScore
    moscow: str


@dataclass
class Quadrants:
    """Value vs effort quadrant counts."""

    quick_wins: int = 0
    big_bets: int = 0
    fill_ins: int = 0
    money_pit: int = 0


@dataclass
class PrioritizationReport:
    """WSJF ranking, MoSCoW distribution and value/effort quadrants."""

    epics: list[PrioritizedEpic]
    moscow_distribution: dict[str, int]
    quadrants: Quadrants
    median_effort: float
    median_value: float


# ----------------------------------------------------------------------------
# Forecast
# ----------------------------------------------------------------------------


@dataclass
class ForecastPercentile:
    """Number of periods needed at one confidence level."""

    periods: int
    date: date
    confidence: str


@dataclass
class ForecastPoint:
    """Probability of finishing within a number of periods."""

    periods: int
    date: date
    probability: int


@dataclass
class ForecastReport:
    """Result of a Monte Carlo completion forecast."""

    remaining_items: int
    simulations: int
    percentiles: dict[str, ForecastPercentile] = field(default_factory=dict)
    distribution: list[ForecastPoint] = field(default_factory=list)
    avg_throughput: float = 0
    insufficient_data: bool = False
    message: str | None = None


# ----------------------------------------------------------------------------
# Portfolio view
# ----------------------------------------------------------------------------


@dataclass
class Insight:
    """A short observation about portfolio flow."""

    type: str  # "warning" | "success" | "danger" | "info"
    text: str


@dataclass
class PortfolioView:
    """Flow metrics, forecast and insights for one portfolio."""

    throughput: list[ThroughputPoint]
    cumulative_flow: list[WeeklySnapshot]
    lead_cycle_time: LeadTimeReport
    wip_metrics: WIPReport
    forecast: ForecastReport
    insights: list[Insight]
