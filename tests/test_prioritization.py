"""Tests for WSJF scoring, MoSCoW categorization and quadrants."""

from datetime import date, datetime, timezone

from jira_portfolio.health import evaluate_epic
from jira_portfolio.models import ChildIssue, Dependencies, DependencyLink, Epic, FieldMappings
from jira_portfolio.prioritization import (
    COULD_HAVE,
    MUST_HAVE,
    SHOULD_HAVE,
    WONT_HAVE,
    calculate_wsjf,
    categorize_moscow,
    prioritize,
)

NOW = datetime(2026, 6, 15, 12, 0, tzinfo=timezone.utc)

MAPPINGS = FieldMappings(
    business_value="customfield_1",
    time_criticality="customfield_2",
    risk_reduction="customfield_3",
    job_size="customfield_4",
    moscow="customfield_5",
)


def _view(key="E-1", children=0, points=0, done_children=0, blocked=False, **kwargs):
    """Build an evaluated epic with the given number of open children."""
    kids = [ChildIssue(key=f"{key}-{i}", story_points=points) for i in range(children)]
    kids += [
        ChildIssue(key=f"{key}-d{i}", status_category="done", story_points=points)
        for i in range(done_children)
    ]
    kwargs.setdefault("status_category", "indeterminate")
    if blocked:
        kwargs["dependencies"] = Dependencies(blocked_by=[DependencyLink("X-1", "Open")])
    return evaluate_epic(Epic(key=key, children=kids, **kwargs), now=NOW)


class TestCalculateWsjf:
    """Tests for calculate_wsjf."""

    def test_mapped_fields(self):
        epic = _view(raw_fields={
            "customfield_1": 5,
            "customfield_2": 3,
            "customfield_3": 2,
            "customfield_4": 2,
        })
        score = calculate_wsjf(epic, MAPPINGS, now=NOW)
        assert score.cost_of_delay == 10
        assert score.wsjf_score == 5.0

    def test_mapped_select_fields_and_strings(self):
        epic = _view(raw_fields={
            "customfield_1": {"value": "8"},
            "customfield_2": "2",
            "customfield_3": "n/a",
            "customfield_4": 3,
        })
        score = calculate_wsjf(epic, MAPPINGS, now=NOW)
        assert score.business_value == 8
        assert score.time_criticality == 2
        assert score.risk_reduction == 0
        assert score.wsjf_score == 3.33

    def test_mapped_job_size_falls_back_to_child_points_then_one(self):
        with_points = _view(children=2, points=3, raw_fields={"customfield_1": 4})
        assert calculate_wsjf(with_points, MAPPINGS, now=NOW).job_size == 6

        without_points = _view(raw_fields={"customfield_1": 4})
        assert calculate_wsjf(without_points, MAPPINGS, now=NOW).job_size == 1

    def test_score_rounds_half_up(self):
        # 9 / 8 = 1.125 exactly
        epic = _view(raw_fields={"customfield_1": 9, "customfield_4": 8})
        assert calculate_wsjf(epic, MAPPINGS, now=NOW).wsjf_score == 1.13

    def test_job_size_floor(self):
        epic = _view(raw_fields={"customfield_1": 1, "customfield_4": 0.1})
        score = calculate_wsjf(epic, MAPPINGS, now=NOW)
        assert score.job_size == 0.5
        assert score.wsjf_score == 2.0

    def test_fallback_composite_scores(self):
        # High (4) + 10 children (1.5), no due date, on track
        epic = _view(children=10, points=5, priority="High")
        score = calculate_wsjf(epic, None, now=NOW)
        assert score.business_value == 5.5
        assert score.time_criticality == 2
        assert score.risk_reduction == 2
        assert score.job_size == 50
        assert score.wsjf_score == 0.19

    def test_fallback_business_value_is_capped(self):
        epic = _view(children=5, done_children=20, priority="Highest", blocked=True)
        score = calculate_wsjf(epic, None, now=NOW)
        # 5 + 2 + 0.5 + 1 = 8.5, capped at 8
        assert score.business_value == 8
        assert score.risk_reduction == 4

    def test_fallback_time_criticality_buckets(self):
        cases = [(5, 5), (20, 4), (45, 3), (75, 2), (120, 1)]
        for days, expected in cases:
            due = date.fromordinal(NOW.date().toordinal() + days)
            epic = _view(children=1, due_date=due, created=datetime(2026, 6, 14, tzinfo=timezone.utc))
            assert calculate_wsjf(epic, None, now=NOW).time_criticality == expected, days

    def test_fallback_job_size_uses_epic_points_then_one(self):
        assert calculate_wsjf(_view(story_points=13), None, now=NOW).job_size == 13
        assert calculate_wsjf(_view(), None, now=NOW).job_size == 1

    def test_empty_mapping_uses_fallback(self):
        epic = _view(children=1, priority="Low", raw_fields={"customfield_1": 100})
        score = calculate_wsjf(epic, FieldMappings(), now=NOW)
        assert score.business_value == 2.5


class TestCategorizeMoscow:
    """Tests for categorize_moscow."""

    def test_label_short_circuits_composite_score(self):
        epic = _view(labels=["must-have"], priority="Lowest")
        assert categorize_moscow(epic, None, now=NOW) == MUST_HAVE

    def test_label_precedence(self):
        epic = _view(labels=["could-have", "should-have"])
        assert categorize_moscow(epic, None, now=NOW) == SHOULD_HAVE

    def test_wont_label_variants(self):
        assert categorize_moscow(_view(labels=["WONT"]), None, now=NOW) == WONT_HAVE
        assert categorize_moscow(_view(labels=["won't-have"]), None, now=NOW) == WONT_HAVE

    def test_mapped_field(self):
        epic = _view(priority="Lowest", raw_fields={"customfield_5": {"value": "Could Have"}})
        assert categorize_moscow(epic, MAPPINGS, now=NOW) == COULD_HAVE

    def test_label_beats_mapped_field(self):
        epic = _view(labels=["should"], raw_fields={"customfield_5": "Must"})
        assert categorize_moscow(epic, MAPPINGS, now=NOW) == SHOULD_HAVE

    def test_composite_must_have(self):
        # Highest (5) + blocked (1.5)
        epic = _view(children=3, priority="Highest", blocked=True)
        assert categorize_moscow(epic, None, now=NOW) == MUST_HAVE

    def test_composite_should_have(self):
        # Medium (3) + due within 30 days (1.5)
        due = date(2026, 7, 1)
        epic = _view(children=3, priority="Medium", due_date=due, created=datetime(2026, 6, 14, tzinfo=timezone.utc))
        assert categorize_moscow(epic, None, now=NOW) == SHOULD_HAVE

    def test_composite_could_have(self):
        epic = _view(children=3, priority="Medium")
        assert categorize_moscow(epic, None, now=NOW) == COULD_HAVE

    def test_small_epic_without_deadline_is_wont_have(self):
        # Low (2) - 1
        epic = _view(children=1, priority="Low")
        assert categorize_moscow(epic, None, now=NOW) == WONT_HAVE


class TestPrioritize:
    """Tests for prioritize."""

    def test_excludes_done_and_sorts_by_wsjf(self):
        epics = [
            _view("E-1", children=2, points=8),
            _view("E-2", children=1, points=1),
            _view("E-3", status_category="done"),
            _view("E-4", children=2, points=3),
        ]
        report = prioritize(epics, None, now=NOW)
        assert [e.key for e in report.epics] == ["E-2", "E-4", "E-1"]

    def test_effort_prefers_points_then_child_count(self):
        epics = [
            _view("E-1", children=2, points=4),
            _view("E-2", children=3),
            _view("E-3", story_points=5),
        ]
        report = prioritize(epics, None, now=NOW)
        by_key = {e.key: e for e in report.epics}
        assert (by_key["E-1"].effort, by_key["E-1"].effort_source) == (8, "story_points")
        assert (by_key["E-2"].effort, by_key["E-2"].effort_source) == (6, "child_count")
        assert (by_key["E-3"].effort, by_key["E-3"].effort_source) == (5, "story_points")

    def test_moscow_distribution_has_every_category(self):
        report = prioritize([_view(labels=["must"]), _view("E-2", labels=["must"])], None, now=NOW)
        assert report.moscow_distribution == {
            MUST_HAVE: 2,
            SHOULD_HAVE: 0,
            COULD_HAVE: 0,
            WONT_HAVE: 0,
        }

    def test_defaults_when_no_positive_effort(self):
        report = prioritize([_view("E-1")], None, now=NOW)
        assert report.median_effort == 5
        # value is always positive in fallback mode
        assert report.median_value == report.epics[0].value

    def test_defaults_for_empty_portfolio(self):
        report = prioritize([], None, now=NOW)
        assert report.median_effort == 5
        assert report.median_value == 3
        assert report.epics == []

    def test_quadrants(self):
        raw = lambda value, size: {"customfield_1": value, "customfield_4": size}  # noqa: E731
        epics = [
            _view("E-1", raw_fields=raw(8, 1), story_points=1),
            _view("E-2", raw_fields=raw(8, 20), story_points=20),
            _view("E-3", raw_fields=raw(1, 1), story_points=1),
            _view("E-4", raw_fields=raw(1, 20), story_points=20),
        ]
        report = prioritize(epics, MAPPINGS, now=NOW)
        # element n // 2 of [1, 1, 20, 20] is 20; of [1, 1, 8, 8] is 8
        assert report.median_effort == 20
        assert report.median_value == 8
        assert report.quadrants.quick_wins == 1
        assert report.quadrants.big_bets == 1
        assert report.quadrants.fill_ins == 1
        assert report.quadrants.money_pit == 1
