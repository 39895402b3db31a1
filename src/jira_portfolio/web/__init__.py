"""JSON web API for JIRA Portfolio."""
