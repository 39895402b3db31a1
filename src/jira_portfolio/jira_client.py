"""JIRA API client with retry logic."""

import logging

from jira import JIRA, JIRAError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from jira_portfolio.config import Config

logger = logging.getLogger(__name__)

BASE_FIELDS = [
    "summary",
    "issuetype",
    "status",
    "priority",
    "labels",
    "components",
    "fixVersions",
    "assignee",
    "created",
    "updated",
    "duedate",
    "resolutiondate",
    "issuelinks",
    "parent",
]

# Custom field schema types that can hold a score or a MoSCoW value
MAPPABLE_FIELD_TYPES = ("number", "option", "string")


class RateLimitError(Exception):
    """Raised when JIRA API rate limit is hit."""

    pass


class AuthenticationError(Exception):
    """Raised when JIRA authentication fails."""

    pass


class ConnectionError(Exception):
    """Raised when JIRA server cannot be reached."""

    pass


class JiraClient:
    """Client for interacting with JIRA Cloud API."""

    def __init__(self, config: Config) -> None:
        """Initialize JIRA client with configuration."""
        self.config = config
        self._client: JIRA | None = None

    def _get_client(self) -> JIRA:
        """Get or create JIRA client instance."""
        if self._client is None:
            try:
                self._client = JIRA(
                    server=self.config.jira_url,
                    basic_auth=(self.config.jira_email, self.config.jira_api_token),
                    timeout=15,
                )
            except JIRAError as e:
                if e.status_code == 401:
                    raise AuthenticationError(
                        "Authentication failed. Check your email and API token."
                    ) from e
                raise
            except Exception as e:
                error_msg = str(e).lower()
                if "connection" in error_msg or "resolve" in error_msg or "timeout" in error_msg:
                    raise ConnectionError(
                        f"Cannot connect to JIRA server at {self.config.jira_url}. "
                        "Check the URL and your network connection."
                    ) from e
                raise
        return self._client

    def portfolio_fields(self) -> list[str]:
        """Fields needed to build epics: the base set plus configured custom fields."""
        fields = list(BASE_FIELDS)
        extra = [
            self.config.story_points_field,
            self.config.target_start_field,
            self.config.target_end_field,
            *vars(self.config.field_mappings).values(),
        ]
        for field_id in extra:
            if field_id and field_id not in fields:
                fields.append(field_id)
        return fields

    @retry(
        retry=retry_if_exception_type(RateLimitError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=4, max=60),
        reraise=True,
    )
    def search_issues(self, jql: str, fields: list[str] | None = None) -> list[dict]:
        """Search for issues with the given JQL.

        Args:
            jql: JQL query string
            fields: Field ids to fetch; defaults to portfolio_fields()

        Returns:
            List of raw issue dicts

        Raises:
            RateLimitError: If rate limited (will be retried)
            AuthenticationError: If authentication fails
            ValueError: If the JQL is rejected
            JIRAError: For other JIRA API errors
        """
        client = self._get_client()

        try:
            result = client.enhanced_search_issues(
                jql,
                maxResults=0,
                fields=fields or self.portfolio_fields(),
            )
            issues = [self._issue_to_dict(issue) for issue in result]
            logger.debug("JQL %r returned %d issues", jql, len(issues))
            return issues

        except JIRAError as e:
            if e.status_code == 429:
                logger.warning("Rate limited by JIRA, backing off")
                raise RateLimitError(
                    "Rate limited by JIRA. Retrying with exponential backoff..."
                ) from e
            if e.status_code == 401:
                raise AuthenticationError(
                    "Authentication failed. Check your email and API token."
                ) from e
            if e.status_code == 400:
                raise ValueError(f"Invalid JQL query: {e.text}") from e
            raise

    def list_custom_fields(self) -> list[dict]:
        """List custom fields that can be mapped to WSJF or MoSCoW inputs.

        Returns:
            List of {"id", "name", "type"} dicts sorted by name

        Raises:
            AuthenticationError: If authentication fails
        """
        client = self._get_client()
        try:
            fields = client.fields()
        except JIRAError as e:
            if e.status_code == 401:
                raise AuthenticationError(
                    "Authentication failed. Check your email and API token."
                ) from e
            raise

        result = []
        for f in fields:
            field_type = (f.get("schema") or {}).get("type", "")
            if f.get("custom") and field_type in MAPPABLE_FIELD_TYPES:
                result.append({"id": f["id"], "name": f.get("name", f["id"]), "type": field_type})
        return sorted(result, key=lambda f: f["name"].lower())

    def _issue_to_dict(self, issue) -> dict:
        """Convert JIRA issue object to dictionary."""
        return {
            "key": issue.key,
            "fields": issue.raw.get("fields", {}),
        }
