"""Normalization of raw JIRA issues and plain snapshot records."""

import logging
from collections.abc import Mapping
from datetime import date, datetime, timezone

from dateutil.parser import isoparse

from jira_portfolio.exceptions import InvalidSnapshotError
from jira_portfolio.models import (
    ChildIssue,
    Dependencies,
    DependencyLink,
    Epic,
    Initiative,
    PortfolioSnapshot,
)

logger = logging.getLogger(__name__)

DEFAULT_STORY_POINTS_FIELD = "customfield_10061"
DEFAULT_TARGET_START_FIELDS = ("customfield_10015", "customfield_10011")
DEFAULT_TARGET_END_FIELD = "customfield_10016"

STATUS_CATEGORIES = ("new", "indeterminate", "done")


def parse_timestamp(value) -> datetime | None:
    """Parse a JIRA timestamp to an aware UTC datetime.

    JIRA sends values like "2026-03-15T10:30:00.000+0000". Naive values are
    read as UTC. Anything unparseable becomes None.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif not value:
        return None
    else:
        try:
            parsed = isoparse(str(value))
        except (ValueError, TypeError, OverflowError):
            logger.debug("Ignoring unparseable timestamp %r", value)
            return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_date(value) -> date | None:
    """Parse a JIRA date value ("YYYY-MM-DD", or a timestamp) to a date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value:
        return None
    try:
        # JIRA date fields are typically "YYYY-MM-DD"
        return date.fromisoformat(str(value)[:10])
    except (ValueError, TypeError):
        logger.debug("Ignoring unparseable date %r", value)
        return None


def parse_points(value) -> float:
    """Coerce a story point estimate to a non-negative number."""
    if isinstance(value, bool) or value is None:
        return 0
    try:
        points = float(value)
    except (TypeError, ValueError):
        return 0
    if points != points or points < 0:  # NaN or negative
        return 0
    return int(points) if points.is_integer() else points


def get_status_category(status_field: dict | None) -> str:
    """Extract the status category key from a JIRA status field.

    Returns one of: "new", "indeterminate", "done".
    """
    category = (status_field or {}).get("statusCategory") or {}
    key = (category.get("key") or "").lower()
    if key in STATUS_CATEGORIES:
        return key
    # Fallback based on category name
    name = (category.get("name") or "").lower()
    if "done" in name:
        return "done"
    if "progress" in name or "indeterminate" in name:
        return "indeterminate"
    return "new"


def _status_category_value(value) -> str:
    value = (value or "").lower()
    return value if value in STATUS_CATEGORIES else "new"


def _display_name(user: dict | None) -> str:
    return (user or {}).get("displayName") or "Unassigned"


def _require_mapping(record, what: str) -> Mapping:
    if not isinstance(record, Mapping):
        raise InvalidSnapshotError(f"{what} must be an object, got {type(record).__name__}")
    if not record.get("key"):
        raise InvalidSnapshotError(f"{what} is missing its key")
    return record


def _require_list(value, what: str) -> list:
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        raise InvalidSnapshotError(f"{what} must be a list, got {type(value).__name__}")
    return list(value)


# ----------------------------------------------------------------------------
# Raw JIRA issues ({"key": ..., "fields": {...}})
# ----------------------------------------------------------------------------


def child_from_issue(issue: dict, story_points_field: str = DEFAULT_STORY_POINTS_FIELD) -> ChildIssue:
    """Build a ChildIssue from a raw JIRA issue dict."""
    fields = issue.get("fields", {})
    status_field = fields.get("status") or {}
    return ChildIssue(
        key=issue["key"],
        status_category=get_status_category(status_field),
        story_points=parse_points(fields.get(story_points_field)),
        summary=fields.get("summary") or "",
        status=status_field.get("name") or "Unknown",
        issue_type=(fields.get("issuetype") or {}).get("name") or "Unknown",
        assignee=_display_name(fields.get("assignee")),
    )


def dependencies_from_issue_links(fields: dict) -> Dependencies:
    """Group JIRA issue links into blocks / blocked by / relates to.

    For "Blocks" links, an outwardIssue is blocked by this issue and an
    inwardIssue blocks it. Every other link type counts as "relates to".
    """
    blocks: list[DependencyLink] = []
    blocked_by: list[DependencyLink] = []
    relates_to: list[DependencyLink] = []

    for link in fields.get("issuelinks") or []:
        link_type = (link.get("type") or {}).get("name", "")
        is_blocks = link_type.lower() == "blocks"
        for direction in ("outwardIssue", "inwardIssue"):
            linked = link.get(direction)
            if not linked or not linked.get("key"):
                continue
            status = ((linked.get("fields") or {}).get("status") or {}).get("name", "")
            dep = DependencyLink(key=linked["key"], status=status)
            if not is_blocks:
                relates_to.append(dep)
            elif direction == "outwardIssue":
                blocks.append(dep)
            else:
                blocked_by.append(dep)

    return Dependencies(blocks=blocks, blocked_by=blocked_by, relates_to=relates_to)


def epic_from_issue(
    issue: dict,
    children: list[ChildIssue] | None = None,
    story_points_field: str = DEFAULT_STORY_POINTS_FIELD,
    target_start_fields: tuple[str, ...] = DEFAULT_TARGET_START_FIELDS,
    target_end_field: str = DEFAULT_TARGET_END_FIELD,
) -> Epic:
    """Build an Epic from a raw JIRA issue dict and its already-built children."""
    fields = issue.get("fields", {})
    status_field = fields.get("status") or {}

    target_start = None
    for field_id in target_start_fields:
        target_start = parse_date(fields.get(field_id))
        if target_start:
            break

    return Epic(
        key=issue["key"],
        status_category=get_status_category(status_field),
        priority=(fields.get("priority") or {}).get("name") or "None",
        created=parse_timestamp(fields.get("created")),
        due_date=parse_date(fields.get("duedate")),
        resolution_date=parse_timestamp(fields.get("resolutiondate")),
        target_start=target_start,
        target_end=parse_date(fields.get(target_end_field)),
        children=list(children or []),
        dependencies=dependencies_from_issue_links(fields),
        raw_fields={k: v for k, v in fields.items() if k.startswith("customfield_")},
        parent_key=(fields.get("parent") or {}).get("key"),
        summary=fields.get("summary") or "",
        status=status_field.get("name") or "Unknown",
        labels=list(fields.get("labels") or []),
        components=[c.get("name", "") for c in fields.get("components") or []],
        fix_versions=[v.get("name", "") for v in fields.get("fixVersions") or []],
        assignee=_display_name(fields.get("assignee")),
        story_points=parse_points(fields.get(story_points_field)),
    )


def initiative_from_issue(issue: dict) -> Initiative:
    """Build an Initiative from a raw JIRA issue dict."""
    fields = issue.get("fields", {})
    status_field = fields.get("status") or {}
    return Initiative(
        key=issue["key"],
        summary=fields.get("summary") or "",
        status=status_field.get("name") or "Unknown",
        status_category=get_status_category(status_field),
        assignee=_display_name(fields.get("assignee")),
        due_date=parse_date(fields.get("duedate")),
    )


# ----------------------------------------------------------------------------
# Plain records (JSON snapshots)
# ----------------------------------------------------------------------------


def child_from_record(record) -> ChildIssue:
    """Build a ChildIssue from a plain snapshot record."""
    record = _require_mapping(record, "Child issue")
    return ChildIssue(
        key=str(record["key"]),
        status_category=_status_category_value(record.get("status_category")),
        story_points=parse_points(record.get("story_points")),
        summary=record.get("summary") or "",
        status=record.get("status") or "Unknown",
        issue_type=record.get("issue_type") or "Unknown",
        assignee=record.get("assignee") or "Unassigned",
    )


def dependencies_from_record(record) -> Dependencies:
    """Build Dependencies from {"blocks": [...], "blocked_by": [...], "relates_to": [...]}."""
    if not record:
        return Dependencies()
    if not isinstance(record, Mapping):
        raise InvalidSnapshotError("Dependencies must be an object")

    def links(name: str) -> list[DependencyLink]:
        result = []
        for link in _require_list(record.get(name), f"Dependencies.{name}"):
            link = _require_mapping(link, f"Dependency link in {name}")
            result.append(DependencyLink(key=str(link["key"]), status=link.get("status") or ""))
        return result

    return Dependencies(
        blocks=links("blocks"),
        blocked_by=links("blocked_by"),
        relates_to=links("relates_to"),
    )


def epic_from_record(record) -> Epic:
    """Build an Epic from a plain snapshot record."""
    record = _require_mapping(record, "Epic")
    key = str(record["key"])
    children = [
        child_from_record(child)
        for child in _require_list(record.get("children"), f"Epic {key} children")
    ]
    raw_fields = record.get("raw_fields") or {}
    if not isinstance(raw_fields, Mapping):
        raise InvalidSnapshotError(f"Epic {key} raw_fields must be an object")

    return Epic(
        key=key,
        status_category=_status_category_value(record.get("status_category")),
        priority=record.get("priority") or "None",
        created=parse_timestamp(record.get("created")),
        due_date=parse_date(record.get("due_date")),
        resolution_date=parse_timestamp(record.get("resolution_date")),
        target_start=parse_date(record.get("target_start")),
        target_end=parse_date(record.get("target_end")),
        children=children,
        dependencies=dependencies_from_record(record.get("dependencies")),
        raw_fields=dict(raw_fields),
        parent_key=record.get("parent_key") or None,
        summary=record.get("summary") or "",
        status=record.get("status") or "Unknown",
        labels=[str(label) for label in _require_list(record.get("labels"), f"Epic {key} labels")],
        components=list(record.get("components") or []),
        fix_versions=list(record.get("fix_versions") or []),
        assignee=record.get("assignee") or "Unassigned",
        story_points=parse_points(record.get("story_points")),
    )


def initiative_from_record(record) -> Initiative:
    """Build an Initiative from a plain snapshot record."""
    record = _require_mapping(record, "Initiative")
    return Initiative(
        key=str(record["key"]),
        summary=record.get("summary") or "",
        status=record.get("status") or "Unknown",
        status_category=_status_category_value(record.get("status_category")),
        assignee=record.get("assignee") or "Unassigned",
        due_date=parse_date(record.get("due_date")),
    )


def snapshot_from_dict(payload) -> PortfolioSnapshot:
    """Build a PortfolioSnapshot from a JSON payload.

    Raises:
        InvalidSnapshotError: If the payload or its records are malformed
    """
    if not isinstance(payload, Mapping):
        raise InvalidSnapshotError("Snapshot must be a JSON object")

    epics = [epic_from_record(r) for r in _require_list(payload.get("epics"), "epics")]
    initiatives = [
        initiative_from_record(r)
        for r in _require_list(payload.get("initiatives"), "initiatives")
    ]
    return PortfolioSnapshot(initiatives=initiatives, epics=epics)
