"""Configuration management for JIRA Portfolio."""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlparse

import tomli_w

from jira_portfolio.forecast import DEFAULT_SIMULATIONS, MAX_SIMULATIONS
from jira_portfolio.models import FieldMappings
from jira_portfolio.normalize import (
    DEFAULT_STORY_POINTS_FIELD,
    DEFAULT_TARGET_END_FIELD,
    DEFAULT_TARGET_START_FIELDS,
)

MAPPING_KEYS = ("business_value", "time_criticality", "risk_reduction", "job_size", "moscow")
THROUGHPUT_PERIODS = ("week", "month", "quarter")


@dataclass
class Config:
    """Configuration for JIRA connection, field ids and analytics defaults."""

    jira_url: str
    jira_email: str
    jira_api_token: str
    story_points_field: str = DEFAULT_STORY_POINTS_FIELD
    target_start_field: str = DEFAULT_TARGET_START_FIELDS[0]
    target_end_field: str = DEFAULT_TARGET_END_FIELD
    field_mappings: FieldMappings = field(default_factory=FieldMappings)
    cfd_weeks: int = 12
    simulations: int = DEFAULT_SIMULATIONS
    throughput_period: str = "month"

    def validate(self) -> list[str]:
        """Validate configuration values. Returns list of error messages."""
        errors: list[str] = []

        if not self.jira_url:
            errors.append("JIRA URL is required")
        else:
            parsed = urlparse(self.jira_url)
            if parsed.scheme not in ("http", "https"):
                errors.append("JIRA URL must start with http:// or https://")
            if not parsed.netloc:
                errors.append("JIRA URL must include a domain")

        if not self.jira_email:
            errors.append("JIRA email is required")
        elif "@" not in self.jira_email:
            errors.append("JIRA email must be a valid email address")

        if not self.jira_api_token:
            errors.append("JIRA API token is required")

        if not isinstance(self.cfd_weeks, int) or self.cfd_weeks <= 0:
            errors.append("analytics.cfd_weeks must be a positive integer")
        if not isinstance(self.simulations, int) or not 0 < self.simulations <= MAX_SIMULATIONS:
            errors.append(
                f"analytics.simulations must be a positive integer up to {MAX_SIMULATIONS}"
            )
        if self.throughput_period not in THROUGHPUT_PERIODS:
            errors.append(
                f"analytics.throughput_period must be one of {', '.join(THROUGHPUT_PERIODS)}"
            )

        return errors


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    override = os.environ.get("JIRA_PORTFOLIO_HOME")
    if override:
        return Path(override)
    return Path.home() / ".jira-portfolio"


def get_config_path() -> Path:
    """Get the configuration file path."""
    return get_config_dir() / "config.toml"


def config_exists() -> bool:
    """Check if configuration file exists."""
    return get_config_path().exists()


def field_mappings_from_dict(data: dict | None) -> FieldMappings:
    """Build FieldMappings from a dict, ignoring unknown keys and blank values."""
    data = data or {}
    return FieldMappings(**{key: data.get(key) or None for key in MAPPING_KEYS})


def field_mappings_to_dict(mappings: FieldMappings) -> dict[str, str]:
    """Mapped field ids only; unset mappings are left out."""
    return {key: getattr(mappings, key) for key in MAPPING_KEYS if getattr(mappings, key)}


def load_config() -> Config:
    """Load configuration from TOML file.

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config is invalid
    """
    config_path = get_config_path()

    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration not found at {config_path}. "
            "Create ~/.jira-portfolio/config.toml to set up."
        )

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    jira_section = data.get("jira", {})
    fields_section = data.get("fields", {})
    analytics_section = data.get("analytics", {})

    config = Config(
        jira_url=jira_section.get("url", ""),
        jira_email=jira_section.get("email", ""),
        jira_api_token=jira_section.get("api_token", ""),
        story_points_field=fields_section.get("story_points", DEFAULT_STORY_POINTS_FIELD),
        target_start_field=fields_section.get("target_start", DEFAULT_TARGET_START_FIELDS[0]),
        target_end_field=fields_section.get("target_end", DEFAULT_TARGET_END_FIELD),
        field_mappings=field_mappings_from_dict(data.get("prioritization")),
        cfd_weeks=analytics_section.get("cfd_weeks", 12),
        simulations=analytics_section.get("simulations", DEFAULT_SIMULATIONS),
        throughput_period=analytics_section.get("throughput_period", "month"),
    )

    errors = config.validate()
    if errors:
        raise ValueError(f"Invalid configuration: {'; '.join(errors)}")

    return config


def save_config(config: Config) -> None:
    """Save configuration to TOML file."""
    config_dir = get_config_dir()
    config_dir.mkdir(parents=True, exist_ok=True)

    config_path = get_config_path()

    data: dict = {
        "jira": {
            "url": config.jira_url,
            "email": config.jira_email,
            "api_token": config.jira_api_token,
        },
        "fields": {
            "story_points": config.story_points_field,
            "target_start": config.target_start_field,
            "target_end": config.target_end_field,
        },
        "analytics": {
            "cfd_weeks": config.cfd_weeks,
            "simulations": config.simulations,
            "throughput_period": config.throughput_period,
        },
    }

    mappings = field_mappings_to_dict(config.field_mappings)
    if mappings:
        data["prioritization"] = mappings

    with open(config_path, "wb") as f:
        tomli_w.dump(data, f)
