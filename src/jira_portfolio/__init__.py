"""Portfolio analytics for JIRA epics."""

__version__ = "0.1.0"
