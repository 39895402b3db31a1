"""Loading a portfolio snapshot (epics, children, initiatives) from JIRA."""

import logging

from jira_portfolio.config import config_exists, load_config
from jira_portfolio.exceptions import (
    ConfigNotFoundError,
    InvalidConfigError,
    InvalidJqlError,
    JiraAuthError,
    JiraConnectionError,
    JiraRateLimitError,
    NoIssuesFoundError,
)
from jira_portfolio.jira_client import (
    AuthenticationError,
    JiraClient,
    RateLimitError,
)
from jira_portfolio.jira_client import (
    ConnectionError as JiraClientConnectionError,
)
from jira_portfolio.models import ChildIssue, PortfolioSnapshot
from jira_portfolio.normalize import (
    DEFAULT_TARGET_START_FIELDS,
    child_from_issue,
    epic_from_issue,
    initiative_from_issue,
)

logger = logging.getLogger(__name__)

CHILD_FIELDS = ["summary", "issuetype", "status", "assignee", "parent"]


def fetch_portfolio_snapshot(jql: str) -> PortfolioSnapshot:
    """Fetch epics matching a JQL query, with their children and initiatives.

    Args:
        jql: JQL query for finding epics

    Returns:
        PortfolioSnapshot with normalized epics and their parent initiatives

    Raises:
        ConfigNotFoundError: If config file not found
        InvalidConfigError: If config is invalid
        JiraAuthError: If JIRA authentication fails
        JiraRateLimitError: If rate limited
        JiraConnectionError: If cannot connect
        InvalidJqlError: If JQL is invalid
        NoIssuesFoundError: If no issues match query
    """
    if not config_exists():
        raise ConfigNotFoundError(
            "Configuration not found. Create ~/.jira-portfolio/config.toml to set up."
        )

    try:
        config = load_config()
    except ValueError as e:
        raise InvalidConfigError(f"Invalid configuration: {e}")

    client = JiraClient(config)

    try:
        raw_epics = client.search_issues(jql)
    except AuthenticationError:
        raise JiraAuthError(
            "JIRA authentication failed. Check your credentials in "
            "~/.jira-portfolio/config.toml."
        )
    except RateLimitError:
        raise JiraRateLimitError(
            "JIRA rate limit exceeded. Please wait a moment and try again."
        )
    except JiraClientConnectionError as e:
        raise JiraConnectionError(str(e))
    except ValueError as e:
        raise InvalidJqlError(f"Invalid JQL query: {e}. Check your query syntax.")

    if not raw_epics:
        raise NoIssuesFoundError("No issues found matching your query.")

    epic_keys = [issue["key"] for issue in raw_epics]

    # Child stories/tasks via the parent field; missing children degrade to "no data"
    children: dict[str, list[ChildIssue]] = {key: [] for key in epic_keys}
    child_fields = CHILD_FIELDS + [config.story_points_field]
    children_jql = "parent in (" + ", ".join(epic_keys) + ")"
    try:
        raw_children = client.search_issues(children_jql, fields=child_fields)
    except (AuthenticationError, RateLimitError, JiraClientConnectionError, ValueError) as e:
        logger.warning("Could not fetch child issues: %s", e)
        raw_children = []

    for child in raw_children:
        parent_key = (child.get("fields", {}).get("parent") or {}).get("key", "")
        if parent_key in children:
            children[parent_key].append(
                child_from_issue(child, story_points_field=config.story_points_field)
            )

    target_start_fields = (config.target_start_field, *DEFAULT_TARGET_START_FIELDS)
    epics = [
        epic_from_issue(
            issue,
            children[issue["key"]],
            story_points_field=config.story_points_field,
            target_start_fields=target_start_fields,
            target_end_field=config.target_end_field,
        )
        for issue in raw_epics
    ]

    # Parent initiatives of the fetched epics
    parent_keys = sorted({e.parent_key for e in epics if e.parent_key})
    raw_initiatives: list[dict] = []
    if parent_keys:
        initiatives_jql = "key in (" + ", ".join(parent_keys) + ")"
        try:
            raw_initiatives = client.search_issues(initiatives_jql)
        except (AuthenticationError, RateLimitError, JiraClientConnectionError, ValueError) as e:
            logger.warning("Could not fetch parent initiatives: %s", e)

    logger.info(
        "Loaded %d epics, %d child issues and %d initiatives",
        len(epics), len(raw_children), len(raw_initiatives),
    )

    return PortfolioSnapshot(
        initiatives=[initiative_from_issue(issue) for issue in raw_initiatives],
        epics=epics,
    )
