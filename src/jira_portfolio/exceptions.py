"""Exception hierarchy for JIRA Portfolio.

The web layer maps each of these to an HTTP status; anything else that
escapes an analytics call is a bug.
"""


class PortfolioError(Exception):
    """Base exception for portfolio errors."""

    pass


class ConfigNotFoundError(PortfolioError):
    """No config.toml in the portfolio config directory; live JIRA fetches are unavailable."""

    pass


class InvalidConfigError(PortfolioError):
    """config.toml was read but failed validation (credentials, URL or analytics settings)."""

    pass


class JiraAuthError(PortfolioError):
    """JIRA rejected the configured email / API token."""

    pass


class JiraConnectionError(PortfolioError):
    """The JIRA server could not be reached."""

    pass


class JiraRateLimitError(PortfolioError):
    """JIRA kept answering 429 after the client's retries ran out."""

    pass


class InvalidJqlError(PortfolioError):
    """JIRA refused the epic query."""

    pass


class NoIssuesFoundError(PortfolioError):
    """The epic query matched nothing, so there is no portfolio to analyze."""

    pass


class InvalidSnapshotError(PortfolioError):
    """A posted snapshot, mapping or parameter does not have the expected shape."""

    pass
